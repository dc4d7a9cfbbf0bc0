"""
Guide Authoring Gateway for Guide Circle.

Asks the text-generation backend to write the Guide's phase transitions and
its answers to participants' questions. Failures are reported as None so the
caller can substitute its deterministic fallback text.
"""

import logging
from typing import Optional, Sequence

from guidecircle.adapters.base.adapter import GatewayUnavailable, TextGenerationAdapter
from guidecircle.gateways.prompts import build_answer_prompt, build_transition_prompt
from guidecircle.protocol.message import Entry
from guidecircle.protocol.phases import PhaseDefinition, Topic

logger = logging.getLogger("guidecircle.gateways.authoring")


class GuideAuthoringGateway:
    """Writes Guide messages with a text-generation adapter."""

    def __init__(self, adapter: TextGenerationAdapter):
        self.adapter = adapter

    async def _complete(self, prompt: str, purpose: str) -> Optional[str]:
        try:
            text = await self.adapter.generate(prompt)
        except GatewayUnavailable as e:
            logger.warning(f"Could not author {purpose}: {e}")
            return None

        text = (text or "").strip()
        if not text:
            logger.warning(f"Empty {purpose} returned by text generation backend")
            return None
        return text

    async def compose_transition(
        self,
        history: Sequence[Entry],
        from_phase: PhaseDefinition,
        to_phase: PhaseDefinition,
        topic: Topic
    ) -> Optional[str]:
        """
        Write the bridge from one phase to the next.

        Args:
            history: Transcript so far, including the round just completed
            from_phase: Phase that has just been completed
            to_phase: Phase the dialogue moves into
            topic: Topic of the dialogue

        Returns:
            Acknowledgement, transition and next question, or None on failure
        """
        prompt = build_transition_prompt(history, from_phase, to_phase, topic)
        return await self._complete(prompt, "phase transition")

    async def answer_question(
        self,
        history: Sequence[Entry],
        question: str,
        topic: Topic,
        phase: PhaseDefinition
    ) -> Optional[str]:
        """
        Answer a participant's question to the Guide.

        Args:
            history: Transcript so far
            question: The participant's question
            topic: Topic of the dialogue
            phase: Phase the dialogue is in

        Returns:
            A brief, neutral answer, or None on failure
        """
        prompt = build_answer_prompt(history, question, topic, phase)
        return await self._complete(prompt, "answer")
