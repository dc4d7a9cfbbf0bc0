"""
Console front-end for Guide Circle.

This module provides a command-line interface for checking a text-generation
provider and for running a dialogue in the terminal, with typed lines standing
in for transcribed speech.
"""

import asyncio
import argparse
import logging
import os
import sys
from typing import Optional, Tuple

from guidecircle.adapters.base.adapter import AdapterConfig, AdapterFactory, TextGenerationAdapter
from guidecircle.orchestrator.dialogue_manager import (
    DialogueConfig,
    DialogueManager,
    DialogueSession,
    SessionSnapshot,
    SessionSummary,
)
from guidecircle.orchestrator.dialogue_state import InteractionMode, InvalidTransition
from guidecircle.protocol.message import speaker_label
from guidecircle.protocol.phases import Topic

PROVIDER_ENV = "GUIDECIRCLE_PROVIDER"
MODEL_ENV = "GUIDECIRCLE_MODEL"

HELP_TEXT = """Type a line to speak as the current participant.
  /ask <question>   ask the Guide in front of both participants
  /hint <question>  ask the Guide privately
  /send             send the pending utterance again
  /discard          drop the pending utterance
  /dismiss          hide the current notice or hint
  /quit             leave the dialogue"""

COMMAND_MODES = {
    "/ask": InteractionMode.PUBLIC_GUIDE,
    "/hint": InteractionMode.PRIVATE_GUIDE,
}


def parse_command(line: str) -> Tuple[str, str]:
    """
    Split a console line into a command and its argument.

    Plain text is the "say" command.
    """
    line = line.strip()
    if not line.startswith("/"):
        return "say", line
    command, _, argument = line.partition(" ")
    return command.lower(), argument.strip()


class ConsoleRenderer:
    """Prints what changed in each snapshot."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._printed_entries = 0
        self._last_notice: Optional[str] = None

    def __call__(self, snapshot: SessionSnapshot) -> None:
        for entry in snapshot.transcript[self._printed_entries:]:
            print(f"[{entry.phase}] {speaker_label(entry)}: {entry.text}", file=self.stream)
        self._printed_entries = len(snapshot.transcript)

        notice = None
        if snapshot.moderation_error is not None:
            notice = f"! {snapshot.moderation_error.title}: {snapshot.moderation_error.message}"
        elif snapshot.private_hint is not None:
            notice = f"(private hint) {snapshot.private_hint}"
        if notice and notice != self._last_notice:
            print(notice, file=self.stream)
        self._last_notice = notice


def print_summary(summary: SessionSummary) -> None:
    print(f"\nDialogue on {summary.topic.value} complete.")
    for speaker, count in summary.utterances.items():
        print(f"  {speaker.label}: {count} contributions, {summary.audio_seconds[speaker]:.0f}s recorded")
    print(f"  Public questions: {summary.clarifications}, private hints: {summary.hints_requested}")


def build_adapter_config(provider: str, model: Optional[str], timeout: float) -> AdapterConfig:
    """Build adapter configuration from the environment."""
    env_var = f"{provider.upper()}_API_KEY"
    api_key = os.environ.get(env_var)
    if not api_key:
        print(f"Error: No API key provided. Please set the {env_var} environment variable.")
        sys.exit(1)
    return AdapterConfig(api_key=api_key, model=model or os.environ.get(MODEL_ENV), timeout=timeout)


async def handle_line(session: DialogueSession, line: str) -> bool:
    """
    Apply one console line to the session.

    Returns:
        False when the user wants to leave, True otherwise
    """
    command, argument = parse_command(line)

    if command == "/quit":
        return False
    if command in ("/help", "/?"):
        print(HELP_TEXT)
        return True
    if command == "/dismiss":
        session.dismiss_moderation_error()
        session.dismiss_private_hint()
        return True
    if command == "/discard":
        session.discard_utterance()
        return True

    if command == "say" or command in COMMAND_MODES:
        if not argument:
            return True
        session.set_interaction_mode(COMMAND_MODES.get(command, InteractionMode.PARTNER))
        session.capture_utterance(argument)
    elif command != "/send":
        print(f"Unknown command {command}. Type /help for options.")
        return True

    await session.dispatch()
    return True


async def run_dialogue(adapter: TextGenerationAdapter, topic: Topic, config: DialogueConfig) -> None:
    """Run an interactive dialogue until it completes or the user quits."""
    manager = DialogueManager(adapter, config)
    session = manager.begin_session(topic)
    renderer = ConsoleRenderer()
    session.register_observer(renderer)
    finished = asyncio.Event()

    def on_summary(summary: SessionSummary) -> None:
        print_summary(summary)
        finished.set()

    session.register_summary_handler(on_summary)
    renderer(session.snapshot)
    print(HELP_TEXT)

    try:
        while not session.snapshot.is_terminal:
            speaker = session.snapshot.current_speaker
            line = await asyncio.to_thread(input, f"{speaker.label if speaker else 'You'}> ")
            try:
                if not await handle_line(session, line):
                    return
            except InvalidTransition as e:
                print(f"Not now: {e}")
        await finished.wait()
    finally:
        await manager.close()


async def check_provider(provider: str, config: AdapterConfig) -> None:
    """Create an adapter and report its connection status."""
    try:
        adapter = await AdapterFactory.create_adapter(provider, config)
    except Exception as e:
        print(f"Error creating adapter for {provider}: {e}")
        return

    status = adapter.connection_status
    print(f"Connection status for {provider}: {status.connected}")
    if status.connected:
        print(f"Model: {adapter.model}, latency: {status.latency_ms:.2f}ms")
    else:
        print(f"Connection error: {status.last_error}")
    await adapter.disconnect()


async def main() -> None:
    """Main function to parse arguments and run commands."""
    parser = argparse.ArgumentParser(description="Guide Circle console")
    parser.add_argument(
        "--provider",
        type=str,
        default=os.environ.get(PROVIDER_ENV, "openai"),
        choices=["openai", "anthropic"],
        help="Text-generation provider"
    )
    parser.add_argument("--model", type=str, help="Specific model to use")
    parser.add_argument("--verbose", action="store_true", help="Show orchestration logs")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("check", help="Check the provider connection")

    run_parser = subparsers.add_parser("run", help="Run a dialogue in the terminal")
    run_parser.add_argument(
        "--topic",
        type=str,
        required=True,
        choices=[topic.value for topic in Topic],
        help="Topic of the dialogue"
    )
    run_parser.add_argument(
        "--timeout",
        type=float,
        default=DialogueConfig().gateway_timeout,
        help="Seconds to wait for each Guide response"
    )
    run_parser.add_argument(
        "--fail-closed",
        action="store_true",
        help="Reject utterances when the safety check is unavailable"
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )

    if args.command == "check":
        await check_provider(args.provider, build_adapter_config(args.provider, args.model, 30.0))

    elif args.command == "run":
        dialogue_config = DialogueConfig(
            gateway_timeout=args.timeout,
            moderation_fail_open=not args.fail_closed
        )
        adapter_config = build_adapter_config(args.provider, args.model, args.timeout)
        adapter = await AdapterFactory.create_adapter(args.provider, adapter_config)
        try:
            await run_dialogue(adapter, Topic(args.topic), dialogue_config)
        finally:
            await adapter.disconnect()

    else:
        parser.print_help()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
