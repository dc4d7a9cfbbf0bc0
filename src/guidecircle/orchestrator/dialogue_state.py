"""
Dialogue State Management for Guide Circle.

This module defines the states a dialogue session can be in, the modes that
route a captured utterance, and the state transition rules.
"""

from enum import Enum
from typing import Dict, FrozenSet, List


class SessionState(str, Enum):
    """
    Interaction states of a dialogue session.

    These represent what the session is doing right now, independent of
    which phase of the script it is in.
    """

    AWAITING_UTTERANCE = "awaiting_utterance"  # Waiting for the current speaker
    RECORDING = "recording"                    # Transcription source is listening
    REVIEWING = "reviewing"                    # Utterance captured, waiting for send or discard
    DISPATCHING = "dispatching"                # Pipeline running, not interactive
    TRANSITIONING = "transitioning"            # Round complete, Guide writing the bridge
    TERMINAL = "terminal"                      # Final round complete


class InteractionMode(str, Enum):
    """How the next captured utterance is routed."""

    PARTNER = "partner"              # Attributed to A or B, moderated
    PUBLIC_GUIDE = "public_guide"    # Question to the Guide, answered in the transcript
    PRIVATE_GUIDE = "private_guide"  # Question to the Guide, answered privately


class InvalidTransition(Exception):
    """Raised when an operation is invoked in a state that forbids it."""
    pass


# Define valid state transitions
VALID_STATE_TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.AWAITING_UTTERANCE: frozenset({SessionState.RECORDING, SessionState.REVIEWING}),
    SessionState.RECORDING: frozenset({SessionState.REVIEWING, SessionState.AWAITING_UTTERANCE}),
    SessionState.REVIEWING: frozenset({
        SessionState.RECORDING,
        SessionState.DISPATCHING,
        SessionState.AWAITING_UTTERANCE,
    }),
    SessionState.DISPATCHING: frozenset({
        SessionState.AWAITING_UTTERANCE,
        SessionState.REVIEWING,          # Rejected, or dispatch cancelled
        SessionState.TRANSITIONING,
        SessionState.TERMINAL,
    }),
    SessionState.TRANSITIONING: frozenset({SessionState.AWAITING_UTTERANCE, SessionState.REVIEWING}),
    SessionState.TERMINAL: frozenset(),  # Nothing follows the final round
}

BUSY_STATES: FrozenSet[SessionState] = frozenset({SessionState.DISPATCHING, SessionState.TRANSITIONING})


def validate_state_transition(current_state: SessionState, new_state: SessionState) -> bool:
    """
    Validate whether a state transition is allowed.

    Args:
        current_state: The current session state
        new_state: The proposed new state

    Returns:
        True if the transition is valid, False otherwise
    """
    if current_state == new_state:
        return current_state != SessionState.TERMINAL

    return new_state in VALID_STATE_TRANSITIONS.get(current_state, frozenset())


def require_state_transition(current_state: SessionState, new_state: SessionState) -> None:
    """
    Fail fast on an illegal state transition.

    Raises:
        InvalidTransition: If the transition is not allowed
    """
    if not validate_state_transition(current_state, new_state):
        raise InvalidTransition(f"Invalid state transition: {current_state.value} -> {new_state.value}")


def get_valid_next_states(current_state: SessionState) -> List[SessionState]:
    """
    Get all valid states that can follow the current state.

    Args:
        current_state: The current session state

    Returns:
        List of valid next states
    """
    return sorted(VALID_STATE_TRANSITIONS.get(current_state, frozenset()), key=lambda s: s.value)
