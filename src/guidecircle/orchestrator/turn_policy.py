"""
Turn Policy implementation for Guide Circle.

Participants A and B alternate within each phase: A speaks, then B. A round
is complete once the phase holds one partner utterance from each of them,
and only a complete round may advance the phase.
"""

from typing import Dict, Sequence

from guidecircle.protocol.message import Entry, Speaker, partner_utterances
from guidecircle.protocol.phases import FINAL_PHASE

OPENING_SPEAKER = Speaker.A


def next_speaker(current: Speaker) -> Speaker:
    """Speaker solicited after `current` within the same phase."""
    return current.other


def contributions(transcript: Sequence[Entry], phase: int) -> Dict[Speaker, int]:
    """
    Count partner utterances per speaker for a phase.

    Public clarifications and Guide messages do not count.
    """
    counts = {speaker: 0 for speaker in Speaker}
    for entry in partner_utterances(transcript, phase):
        counts[entry.speaker] += 1
    return counts


def is_round_complete(transcript: Sequence[Entry], phase: int) -> bool:
    """Whether both A and B have contributed to `phase`."""
    return all(count >= 1 for count in contributions(transcript, phase).values())


def can_advance(transcript: Sequence[Entry], phase: int) -> bool:
    """Whether the dialogue may move from `phase` to the next one."""
    return phase < FINAL_PHASE and is_round_complete(transcript, phase)
