"""
Shared fixtures for the Guide Circle tests.

The fake adapter stands in for the text-generation backend: it recognises
which of the Guide's prompts it received and answers from canned replies.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from guidecircle.adapters.base.adapter import AdapterConfig, GatewayUnavailable, TextGenerationAdapter
from guidecircle.capture.source import CaptureUnavailable, ResultCallback, TranscriptionSource
from guidecircle.orchestrator.dialogue_manager import DialogueConfig, DialogueManager

APPROVED = '{ "status": "approved" }'

SAFETY_MARKER = "Analyze this message for hostility"
TRANSITION_MARKER = "The NEXT goal is"
ANSWER_MARKER = "The user just asked you"


class FakeAdapter(TextGenerationAdapter):
    """Canned text-generation backend recording every prompt it receives."""

    def __init__(self):
        super().__init__(AdapterConfig(api_key="test-key"))
        self.prompts: List[str] = []
        self.moderation_replies: Dict[str, str] = {}
        self.transition_reply = "Thank you both. What experience shaped your view?"
        self.answer_reply = "Try sharing a moment when this topic felt personal."
        self.fail = False
        self.delay: float = 0.0
        self.gate: Optional[asyncio.Event] = None
        self.gate_marker: Optional[str] = None
        self.entered: Optional[asyncio.Event] = None

    async def connect(self) -> bool:
        return True

    async def disconnect(self) -> bool:
        return True

    def prompts_with(self, marker: str) -> List[str]:
        return [prompt for prompt in self.prompts if marker in prompt]

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)

        if self.gate is not None and self.gate_marker in prompt:
            if self.entered is not None:
                self.entered.set()
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise GatewayUnavailable("backend offline")

        if SAFETY_MARKER in prompt:
            for utterance, reply in self.moderation_replies.items():
                if f'Message: "{utterance}"' in prompt:
                    return reply
            return APPROVED
        if TRANSITION_MARKER in prompt:
            return self.transition_reply
        return self.answer_reply


class FakeTranscription(TranscriptionSource):
    """Transcription source driven by the test."""

    def __init__(self, available: bool = True):
        self.available = available
        self.on_result: Optional[ResultCallback] = None
        self.listening = False
        self.final_text: Optional[str] = None

    async def start(self, on_result: ResultCallback) -> None:
        if not self.available:
            raise CaptureUnavailable("Speech recognition permission denied")
        self.on_result = on_result
        self.listening = True

    async def stop(self) -> None:
        if self.final_text is not None and self.on_result is not None:
            self.on_result(self.final_text)
        self.listening = False

    def hear(self, text: str) -> None:
        self.on_result(text)


@pytest.fixture
def adapter():
    """Fixture to provide a canned text-generation adapter."""
    return FakeAdapter()


@pytest.fixture
def config():
    """Fixture to provide a fast dialogue configuration."""
    return DialogueConfig(gateway_timeout=1.0, summary_delay=0.0)


@pytest.fixture
def manager(adapter, config):
    """Fixture to provide a dialogue manager wired to the fake adapter."""
    return DialogueManager(adapter, config)
