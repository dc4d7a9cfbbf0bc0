"""
Moderation Gateway for Guide Circle.

Screens every partner utterance for hostility, insults or dismissiveness
before it may enter the shared transcript. The gateway always returns a
decision: transport failures and unparseable replies are resolved according
to its availability policy (fail open by default).
"""

import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from guidecircle.adapters.base.adapter import GatewayUnavailable, TextGenerationAdapter
from guidecircle.gateways.prompts import build_safety_prompt
from guidecircle.protocol.message import ModerationDecision, ModerationStatus

logger = logging.getLogger("guidecircle.gateways.moderation")

FENCED_OBJECT_PATTERN = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)

DEFAULT_REJECTION_TITLE = "Let's keep it constructive"
DEFAULT_REJECTION_MESSAGE = "Please rephrase your message so your partner can hear it."

UNAVAILABLE_TITLE = "Guide unavailable"
UNAVAILABLE_MESSAGE = "Your message could not be checked right now. Please try sending it again."

_decoder = json.JSONDecoder()


def extract_json_object(raw: str) -> Optional[Dict[str, Any]]:
    """
    Pull the first JSON object out of a model reply.

    A fenced object is preferred. Otherwise the first `{` that starts a
    decodable object wins, and anything after that object is ignored.

    Returns:
        The decoded object, or None if no object can be decoded
    """
    if not raw:
        return None

    match = FENCED_OBJECT_PATTERN.search(raw)
    if match:
        try:
            payload = json.loads(match.group(1))
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            return payload

    start = raw.find("{")
    while start != -1:
        try:
            payload, _ = _decoder.raw_decode(raw, start)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            return payload
        start = raw.find("{", start + 1)
    return None


def parse_moderation_reply(raw: str) -> Optional[ModerationDecision]:
    """
    Interpret a safety-check reply.

    Returns:
        The decision, or None when the reply carries no recognisable status
    """
    payload = extract_json_object(raw)
    if payload is None:
        return None

    if isinstance(payload.get("status"), str):
        payload["status"] = payload["status"].strip().lower()
    try:
        decision = ModerationDecision.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"Safety check reply failed validation: {e}")
        return None

    if decision.status == ModerationStatus.REJECTED:
        return ModerationDecision.reject(
            title=decision.title or DEFAULT_REJECTION_TITLE,
            message=decision.message or DEFAULT_REJECTION_MESSAGE,
        )
    return ModerationDecision.approve()


class ModerationGateway:
    """Hostility check backed by a text-generation adapter."""

    def __init__(self, adapter: TextGenerationAdapter, fail_open: bool = True):
        """
        Initialize the gateway.

        Args:
            adapter: Text-generation capability used for classification
            fail_open: Approve utterances when the check cannot be performed.
                When False, such utterances are rejected with a retry notice.
        """
        self.adapter = adapter
        self.fail_open = fail_open

    def unavailable_decision(self) -> ModerationDecision:
        """Decision used when the check could not be performed."""
        if self.fail_open:
            return ModerationDecision.approve()
        return ModerationDecision.reject(UNAVAILABLE_TITLE, UNAVAILABLE_MESSAGE)

    async def classify(self, utterance: str) -> ModerationDecision:
        """
        Classify an utterance as approved or rejected.

        Args:
            utterance: Text the participant wants to send

        Returns:
            The moderation decision
        """
        try:
            raw = await self.adapter.generate(build_safety_prompt(utterance))
        except GatewayUnavailable as e:
            logger.warning(f"Safety check unavailable, applying fallback policy: {e}")
            return self.unavailable_decision()

        decision = parse_moderation_reply(raw)
        if decision is None:
            logger.warning(f"Unparseable safety check reply, applying fallback policy: {raw!r}")
            return self.unavailable_decision()

        if not decision.approved:
            logger.info(f"Utterance rejected by safety check: {decision.title}")
        return decision
