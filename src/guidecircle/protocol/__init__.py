"""
Protocol layer for Guide Circle

This package defines the transcript entries exchanged in a Guide Circle
dialogue and the fixed phase catalog the Guide facilitates.
"""

from guidecircle.protocol.message import (
    Entry,
    GuideMessage,
    GuideMessagePurpose,
    ModerationDecision,
    ModerationStatus,
    PartnerUtterance,
    PublicClarification,
    Speaker,
)
from guidecircle.protocol.phases import PHASES, FINAL_PHASE, PhaseDefinition, Topic, get_phase

__all__ = [
    "Entry",
    "GuideMessage",
    "GuideMessagePurpose",
    "ModerationDecision",
    "ModerationStatus",
    "PartnerUtterance",
    "PublicClarification",
    "Speaker",
    "PHASES",
    "FINAL_PHASE",
    "PhaseDefinition",
    "Topic",
    "get_phase",
]
