"""
Dialogue Orchestrator for Guide Circle

This module provides the orchestration engine of the Guide Circle system,
handling turn-taking between the two participants, phase transitions, and
the partner, public-clarification and private-hint pipelines.
"""

from guidecircle.orchestrator.dialogue_manager import (
    DialogueConfig,
    DialogueManager,
    DialogueSession,
    SessionSnapshot,
    SessionSummary,
)
from guidecircle.orchestrator.dialogue_state import InteractionMode, InvalidTransition, SessionState

__all__ = [
    "DialogueConfig",
    "DialogueManager",
    "DialogueSession",
    "SessionSnapshot",
    "SessionSummary",
    "InteractionMode",
    "InvalidTransition",
    "SessionState",
]
