"""
Transcript Protocol for Guide Circle

This module defines the entries that make up the shared transcript of a
Guide Circle dialogue, together with the moderation decision returned by
the Guide's hostility check.

The transcript protocol supports:
- Partner utterances attributed to participant A or B
- Public clarification questions directed at the Guide
- Guide messages (phase openings, transitions and public answers)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Sequence, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Speaker(str, Enum):
    """The two human participants of a dialogue."""

    A = "A"
    B = "B"

    @property
    def label(self) -> str:
        return f"User {self.value}"

    @property
    def other(self) -> "Speaker":
        return Speaker.B if self is Speaker.A else Speaker.A


class GuideMessagePurpose(str, Enum):
    """Why the Guide added a message to the transcript."""

    OPENING = "opening"          # Welcome and first prompt of the session
    TRANSITION = "transition"    # Bridge from one phase to the next
    ANSWER = "answer"            # Public answer to a clarification question


class ModerationStatus(str, Enum):
    """Outcome of the Guide's hostility check."""

    APPROVED = "approved"
    REJECTED = "rejected"


class ModerationDecision(BaseModel):
    """
    Decision returned by the moderation gateway.

    Rejections carry a short title and a feedback message that the
    presentation layer shows to the speaker.
    """

    model_config = ConfigDict(frozen=True)

    status: ModerationStatus = Field(..., description="Whether the utterance may enter the transcript")
    title: Optional[str] = Field(None, description="Short heading for a rejection")
    message: Optional[str] = Field(None, description="Feedback explaining a rejection")

    @property
    def approved(self) -> bool:
        return self.status == ModerationStatus.APPROVED

    @classmethod
    def approve(cls) -> "ModerationDecision":
        return cls(status=ModerationStatus.APPROVED)

    @classmethod
    def reject(cls, title: str, message: str) -> "ModerationDecision":
        return cls(status=ModerationStatus.REJECTED, title=title, message=message)


class _Entry(BaseModel):
    """Fields shared by every transcript entry."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier for this entry")
    text: str = Field(..., description="Text content of the entry")
    phase: int = Field(..., ge=1, description="Phase the entry belongs to")
    timestamp: datetime = Field(default_factory=_utcnow, description="When the entry was created")

    @field_validator('text')
    def text_must_not_be_empty(cls, v):
        """Validate that the text content is not empty."""
        if not v or not v.strip():
            raise ValueError("Entry text cannot be empty")
        return v


class PartnerUtterance(_Entry):
    """An approved contribution from A or B; counts toward the current round."""

    kind: Literal["partner_utterance"] = "partner_utterance"
    speaker: Speaker = Field(..., description="Participant who spoke")
    audio_duration: float = Field(default=0.0, ge=0.0, description="Length of the voice note in seconds")


class PublicClarification(_Entry):
    """A question put to the Guide in front of both participants."""

    kind: Literal["public_clarification"] = "public_clarification"
    speaker: Speaker = Field(..., description="Participant who asked")


class GuideMessage(_Entry):
    """A message authored by the Guide, attributed to neither participant."""

    kind: Literal["guide_message"] = "guide_message"
    purpose: GuideMessagePurpose = Field(..., description="What prompted this message")


Entry = Annotated[
    Union[PartnerUtterance, PublicClarification, GuideMessage],
    Field(discriminator="kind"),
]


def speaker_label(entry: Union[PartnerUtterance, PublicClarification, GuideMessage]) -> str:
    """Human-readable attribution used when rendering transcripts."""
    if isinstance(entry, GuideMessage):
        return "Guide"
    if isinstance(entry, PublicClarification):
        return f"{entry.speaker.label} (to Guide)"
    return entry.speaker.label


def partner_utterances(
    transcript: Sequence[Entry],
    phase: Optional[int] = None
) -> List[PartnerUtterance]:
    """
    Select the partner utterances of a transcript.

    Args:
        transcript: Transcript entries in insertion order
        phase: Restrict to entries of this phase when given

    Returns:
        Partner utterances in transcript order
    """
    return [
        entry for entry in transcript
        if isinstance(entry, PartnerUtterance)
        and (phase is None or entry.phase == phase)
    ]
