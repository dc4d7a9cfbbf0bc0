"""
Tests for the console front-end.
"""

import io

import pytest

from guidecircle.adapters.cli import ConsoleRenderer, handle_line, parse_command
from guidecircle.orchestrator import InteractionMode, SessionState
from guidecircle.protocol.message import Speaker
from guidecircle.protocol.phases import Topic


def test_parse_command():
    assert parse_command("I grew up near a coastline") == ("say", "I grew up near a coastline")
    assert parse_command("/ASK what now?") == ("/ask", "what now?")
    assert parse_command("  /quit ") == ("/quit", "")


@pytest.mark.asyncio
async def test_handle_line_drives_session(manager, adapter):
    session = manager.begin_session(Topic.CLIMATE_CHANGE)

    assert await handle_line(session, "I grew up near a coastline") is True
    assert session.snapshot.turn == Speaker.B

    await handle_line(session, "/hint how do I respond?")
    assert session.snapshot.private_hint == adapter.answer_reply
    assert session.snapshot.interaction_mode == InteractionMode.PARTNER

    await handle_line(session, "/ask what is the goal here?")
    assert len(session.snapshot.transcript) == 4

    await handle_line(session, "/dismiss")
    assert session.snapshot.private_hint is None

    assert await handle_line(session, "/quit") is False


@pytest.mark.asyncio
async def test_handle_line_resend_after_rejection(manager, adapter):
    adapter.moderation_replies["Whatever"] = '{"status": "rejected", "title": "Tone", "message": "Dismissive"}'
    session = manager.begin_session(Topic.CLIMATE_CHANGE)

    await handle_line(session, "Whatever")
    assert session.snapshot.state == SessionState.REVIEWING

    adapter.moderation_replies.clear()
    await handle_line(session, "/send")
    assert session.snapshot.turn == Speaker.B
    assert session.snapshot.pending_utterance is None


@pytest.mark.asyncio
async def test_console_renderer_prints_new_entries(manager, adapter):
    adapter.moderation_replies["Rude"] = '{"status": "rejected", "title": "Tone", "message": "Be kind"}'
    stream = io.StringIO()
    session = manager.begin_session(Topic.CLIMATE_CHANGE)
    renderer = ConsoleRenderer(stream)
    session.register_observer(renderer)
    renderer(session.snapshot)

    await handle_line(session, "I grew up near a coastline")
    await handle_line(session, "Rude")

    output = stream.getvalue().splitlines()
    assert output[0].startswith('[1] Guide: Welcome.')
    assert output[1] == "[1] User A: I grew up near a coastline"
    assert output.count("! Tone: Be kind") == 1
