"""
Dialogue Manager for Guide Circle.

This module implements the core orchestration logic of a Guide Circle
dialogue: whose turn it is, which phase is active, how captured utterances
are admitted or rejected, how phase transitions are authored, and how the
partner, public-clarification and private-hint pipelines interleave without
corrupting turn and phase state.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from guidecircle.adapters.base.adapter import TextGenerationAdapter
from guidecircle.capture.source import TranscriptionSource
from guidecircle.gateways.authoring import GuideAuthoringGateway
from guidecircle.gateways.moderation import ModerationGateway
from guidecircle.orchestrator.dialogue_state import (
    BUSY_STATES,
    InteractionMode,
    InvalidTransition,
    SessionState,
    require_state_transition,
)
from guidecircle.orchestrator.turn_policy import (
    OPENING_SPEAKER,
    can_advance,
    is_round_complete,
    next_speaker,
)
from guidecircle.protocol.message import (
    Entry,
    GuideMessage,
    GuideMessagePurpose,
    ModerationDecision,
    PartnerUtterance,
    PublicClarification,
    Speaker,
    partner_utterances,
)
from guidecircle.protocol.phases import (
    FINAL_PHASE,
    FIRST_PHASE,
    PHASES,
    PhaseDefinition,
    Topic,
    get_phase,
    welcome_message,
)

FALLBACK_ANSWER = "I'm here to help you understand each other better."


def fallback_transition(to_phase: PhaseDefinition) -> str:
    """Deterministic bridge used when the Guide cannot author one."""
    return f"Let's move on. {to_phase.goal}"


class DialogueConfig(BaseModel):
    """Configuration for dialogue sessions."""

    gateway_timeout: float = Field(default=20.0, gt=0, description="Seconds to wait for each gateway call")
    moderation_fail_open: bool = Field(default=True, description="Approve utterances when the safety check is unavailable")
    summary_delay: float = Field(default=2.0, ge=0, description="Seconds between the final round and the summary hand-off")


class SessionSnapshot(BaseModel):
    """Immutable view of a dialogue session after an operation."""

    model_config = ConfigDict(frozen=True)

    session_id: UUID = Field(default_factory=uuid4, description="ID of the session")
    topic: Topic = Field(..., description="Topic chosen at the start of the session")
    state: SessionState = Field(default=SessionState.AWAITING_UTTERANCE, description="Interaction state")
    phase: int = Field(default=FIRST_PHASE, ge=FIRST_PHASE, le=FINAL_PHASE, description="Active phase id")
    turn: Speaker = Field(default=OPENING_SPEAKER, description="Whose partner utterance is solicited")
    interaction_mode: InteractionMode = Field(default=InteractionMode.PARTNER, description="Routing of the next utterance")
    transcript: Tuple[Entry, ...] = Field(default_factory=tuple, description="Shared transcript, append-only")
    pending_utterance: Optional[str] = Field(None, description="Captured text awaiting send or discard")
    pending_audio_duration: float = Field(default=0.0, ge=0.0, description="Seconds recorded for the pending utterance")
    moderation_error: Optional[ModerationDecision] = Field(None, description="Feedback from the last rejection")
    private_hint: Optional[str] = Field(None, description="Guide answer visible only to the requester")
    hints_requested: int = Field(default=0, ge=0, description="Private hints answered so far")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def current_phase(self) -> PhaseDefinition:
        return get_phase(self.phase)

    @property
    def is_terminal(self) -> bool:
        return self.state == SessionState.TERMINAL

    @property
    def current_speaker(self) -> Optional[Speaker]:
        """The participant whose utterance is solicited, if any."""
        if self.is_terminal or self.interaction_mode != InteractionMode.PARTNER:
            return None
        return self.turn


class SessionSummary(BaseModel):
    """Figures handed to the summary view once a session ends."""

    session_id: UUID
    topic: Topic
    completed: bool
    phases_completed: int
    utterances: Dict[Speaker, int]
    audio_seconds: Dict[Speaker, float]
    clarifications: int
    hints_requested: int


SnapshotObserver = Callable[[SessionSnapshot], None]
SummaryHandler = Callable[[SessionSummary], None]


class DialogueSession:
    """
    Owns the state of a single Guide Circle dialogue.

    Every operation validates the current state, transforms the session
    atomically and publishes the resulting snapshot to registered observers.
    At most one dispatch runs at a time; a second concurrent dispatch is
    rejected rather than queued.
    """

    def __init__(
        self,
        snapshot: SessionSnapshot,
        moderation: ModerationGateway,
        authoring: GuideAuthoringGateway,
        config: Optional[DialogueConfig] = None,
        transcription: Optional[TranscriptionSource] = None
    ):
        """
        Initialize the session.

        Args:
            snapshot: Initial session state
            moderation: Gateway screening partner utterances
            authoring: Gateway writing Guide transitions and answers
            config: Session configuration
            transcription: Speech-to-text source used by start/stop recording
        """
        self._snapshot = snapshot
        self.moderation = moderation
        self.authoring = authoring
        self.config = config or DialogueConfig()
        self.transcription = transcription
        self._lock = asyncio.Lock()
        self._observers: List[SnapshotObserver] = []
        self._summary_handlers: List[SummaryHandler] = []
        self._summary_task: Optional[asyncio.Task] = None
        self._recording_started_at: Optional[float] = None
        self.logger = logging.getLogger("guidecircle.orchestrator")

    @classmethod
    def begin(
        cls,
        topic: Union[Topic, str],
        moderation: ModerationGateway,
        authoring: GuideAuthoringGateway,
        config: Optional[DialogueConfig] = None,
        transcription: Optional[TranscriptionSource] = None
    ) -> "DialogueSession":
        """
        Start a new dialogue on a topic.

        The session opens in phase 1 with A to speak and the Guide's welcome
        message as the only transcript entry.

        Raises:
            ValueError: If the topic is not one of the supported topics
        """
        topic = Topic(topic)
        opening = GuideMessage(
            text=welcome_message(topic),
            phase=FIRST_PHASE,
            purpose=GuideMessagePurpose.OPENING
        )
        snapshot = SessionSnapshot(topic=topic, transcript=(opening,))
        session = cls(snapshot, moderation, authoring, config, transcription)
        session.logger.info(f"Began session {snapshot.session_id} on {topic.value}")
        return session

    @property
    def snapshot(self) -> SessionSnapshot:
        """The latest committed session state."""
        return self._snapshot

    @property
    def session_id(self) -> UUID:
        return self._snapshot.session_id

    @property
    def is_dispatching(self) -> bool:
        return self._lock.locked()

    def register_observer(self, handler: SnapshotObserver) -> None:
        """
        Register a function called with the new snapshot after every change.

        Args:
            handler: Callable that accepts a SessionSnapshot
        """
        self._observers.append(handler)

    def register_summary_handler(self, handler: SummaryHandler) -> None:
        """
        Register a function called with the session summary once the final
        round completes, after the configured display delay.
        """
        self._summary_handlers.append(handler)

    def _publish(self) -> None:
        for handler in list(self._observers):
            try:
                handler(self._snapshot)
            except Exception as e:
                self.logger.error(f"Error in snapshot observer: {e}")

    def _commit(self, **changes: Any) -> SessionSnapshot:
        """Apply changes to the session in one step and publish the result."""
        if "state" in changes:
            require_state_transition(self._snapshot.state, changes["state"])

        # The two transient signals belong to different pipelines
        if changes.get("moderation_error") is not None:
            changes["private_hint"] = None
        if changes.get("private_hint") is not None:
            changes["moderation_error"] = None

        changes["updated_at"] = datetime.now(timezone.utc)
        self._snapshot = self._snapshot.model_copy(update=changes)
        self._publish()
        return self._snapshot

    def _restore(self, state: SessionState) -> None:
        """Return to an interactive state after an aborted pipeline."""
        self._snapshot = self._snapshot.model_copy(
            update={"state": state, "updated_at": datetime.now(timezone.utc)}
        )
        self._publish()

    def _ensure_interactive(self, action: str) -> None:
        if self._snapshot.is_terminal:
            raise InvalidTransition(f"Cannot {action}: the dialogue has ended")
        if self._lock.locked() or self._snapshot.state in BUSY_STATES:
            raise InvalidTransition(f"Cannot {action} while a dispatch is in flight")

    def set_interaction_mode(self, mode: Union[InteractionMode, str]) -> SessionSnapshot:
        """
        Choose how the next captured utterance is routed.

        Raises:
            InvalidTransition: While dispatching or after the dialogue has ended
        """
        mode = InteractionMode(mode)
        self._ensure_interactive("change interaction mode")
        return self._commit(interaction_mode=mode)

    def capture_utterance(self, text: str, audio_duration: float = 0.0) -> SessionSnapshot:
        """
        Store transcribed text as the pending utterance.

        Empty text is accepted here and refused by `dispatch`.

        Args:
            text: Text delivered by the transcription collaborator
            audio_duration: Length of the recording in seconds

        Raises:
            InvalidTransition: While recording, dispatching or after the end
        """
        self._ensure_interactive("capture an utterance")
        if self._snapshot.state == SessionState.RECORDING:
            raise InvalidTransition("Stop recording before capturing an utterance")
        return self._commit(
            state=SessionState.REVIEWING,
            pending_utterance=text or "",
            pending_audio_duration=max(audio_duration, 0.0)
        )

    async def start_recording(
        self,
        mode: Optional[Union[InteractionMode, str]] = None
    ) -> SessionSnapshot:
        """
        Start capturing speech for the next utterance.

        Args:
            mode: Interaction mode for the utterance; keeps the current one if omitted

        Raises:
            InvalidTransition: If a recording or dispatch is already running
            CaptureUnavailable: If the transcription source cannot start
        """
        self._ensure_interactive("start recording")
        previous = self._snapshot
        if previous.state == SessionState.RECORDING:
            raise InvalidTransition("Already recording")
        require_state_transition(previous.state, SessionState.RECORDING)

        self._commit(
            state=SessionState.RECORDING,
            interaction_mode=InteractionMode(mode) if mode is not None else previous.interaction_mode,
            pending_utterance=None,
            pending_audio_duration=0.0
        )
        if self.transcription is not None:
            try:
                await self.transcription.start(self.on_transcription_result)
            except BaseException:
                self._snapshot = previous
                self._publish()
                raise

        self._recording_started_at = time.monotonic()
        return self._snapshot

    def on_transcription_result(self, text: str) -> None:
        """Receive a partial or final transcription; the latest result wins."""
        if self._snapshot.state != SessionState.RECORDING:
            self.logger.debug(f"Ignoring transcription result outside recording in session {self.session_id}")
            return
        self._commit(pending_utterance=text)

    async def stop_recording(self) -> SessionSnapshot:
        """
        Stop capturing speech and hold the transcription for review.

        Raises:
            InvalidTransition: If no recording is running
        """
        if self._snapshot.state != SessionState.RECORDING:
            raise InvalidTransition(f"Cannot stop recording from state {self._snapshot.state.value}")

        if self.transcription is not None:
            await self.transcription.stop()

        elapsed = 0.0
        if self._recording_started_at is not None:
            elapsed = time.monotonic() - self._recording_started_at
        self._recording_started_at = None

        return self._commit(
            state=SessionState.REVIEWING,
            pending_utterance=self._snapshot.pending_utterance or "",
            pending_audio_duration=round(elapsed, 1)
        )

    def discard_utterance(self) -> SessionSnapshot:
        """
        Drop the pending utterance without sending it.

        Raises:
            InvalidTransition: If no utterance is under review
        """
        self._ensure_interactive("discard the utterance")
        if self._snapshot.state != SessionState.REVIEWING:
            raise InvalidTransition(f"Nothing to discard in state {self._snapshot.state.value}")
        return self._commit(
            state=SessionState.AWAITING_UTTERANCE,
            interaction_mode=InteractionMode.PARTNER,
            pending_utterance=None,
            pending_audio_duration=0.0
        )

    def dismiss_moderation_error(self) -> SessionSnapshot:
        """Clear the moderation feedback; the pending utterance is kept."""
        return self._commit(moderation_error=None)

    def dismiss_private_hint(self) -> SessionSnapshot:
        return self._commit(private_hint=None)

    async def dispatch(self) -> SessionSnapshot:
        """
        Send the pending utterance through the pipeline for the current mode.

        Returns:
            The snapshot after the pipeline has been applied

        Raises:
            InvalidTransition: If a dispatch is already in flight, the dialogue
                has ended, or there is no non-empty utterance under review
        """
        if self._lock.locked():
            raise InvalidTransition("A dispatch is already in flight for this session")

        async with self._lock:
            current = self._snapshot
            if current.is_terminal:
                raise InvalidTransition("Cannot dispatch: the dialogue has ended")
            if current.state != SessionState.REVIEWING:
                raise InvalidTransition(f"Cannot dispatch from state {current.state.value}")

            text = (current.pending_utterance or "").strip()
            if not text:
                raise InvalidTransition("Cannot dispatch an empty utterance")

            pipelines = {
                InteractionMode.PARTNER: self._partner_pipeline,
                InteractionMode.PUBLIC_GUIDE: self._public_pipeline,
                InteractionMode.PRIVATE_GUIDE: self._private_pipeline,
            }
            pipeline = pipelines[current.interaction_mode]

            # A new send attempt clears earlier feedback
            self._commit(state=SessionState.DISPATCHING, moderation_error=None)
            try:
                changes = await pipeline(current, text)
            except BaseException:
                # Pipelines only compute changes; nothing has been applied yet
                self._restore(SessionState.REVIEWING)
                raise

            snapshot = self._commit(**changes)

        if snapshot.is_terminal:
            self.logger.info(f"Session {self.session_id} completed its final round")
            self._schedule_summary()
        return snapshot

    async def _bounded(self, awaitable: Awaitable[Any], fallback: Any, what: str) -> Any:
        """Await a gateway call, substituting `fallback` on timeout."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.config.gateway_timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                f"{what} timed out after {self.config.gateway_timeout}s "
                f"in session {self.session_id}, using fallback"
            )
            return fallback

    async def _partner_pipeline(self, current: SessionSnapshot, text: str) -> Dict[str, Any]:
        decision = await self._bounded(
            self.moderation.classify(text),
            self.moderation.unavailable_decision(),
            "Safety check"
        )
        if not decision.approved:
            self.logger.info(f"Rejected utterance from {current.turn.label} in session {self.session_id}")
            return {"state": SessionState.REVIEWING, "moderation_error": decision}

        utterance = PartnerUtterance(
            speaker=current.turn,
            text=text,
            phase=current.phase,
            audio_duration=current.pending_audio_duration
        )
        transcript = current.transcript + (utterance,)
        changes: Dict[str, Any] = {
            "transcript": transcript,
            "pending_utterance": None,
            "pending_audio_duration": 0.0,
            "private_hint": None,
            "interaction_mode": InteractionMode.PARTNER,
        }

        if not is_round_complete(transcript, current.phase):
            changes.update(state=SessionState.AWAITING_UTTERANCE, turn=next_speaker(current.turn))
            return changes

        if not can_advance(transcript, current.phase):
            changes.update(state=SessionState.TERMINAL)
            return changes

        self._commit(state=SessionState.TRANSITIONING)
        from_phase = get_phase(current.phase)
        to_phase = get_phase(current.phase + 1)
        bridge = await self._bounded(
            self.authoring.compose_transition(transcript, from_phase, to_phase, current.topic),
            None,
            "Phase transition"
        )
        guide_message = GuideMessage(
            text=bridge or fallback_transition(to_phase),
            phase=to_phase.id,
            purpose=GuideMessagePurpose.TRANSITION
        )
        self.logger.info(f"Session {self.session_id} advancing from phase {from_phase.id} to {to_phase.id}")
        changes.update(
            state=SessionState.AWAITING_UTTERANCE,
            transcript=transcript + (guide_message,),
            phase=to_phase.id,
            turn=OPENING_SPEAKER
        )
        return changes

    async def _public_pipeline(self, current: SessionSnapshot, text: str) -> Dict[str, Any]:
        # Questions to the facilitator are not screened
        clarification = PublicClarification(speaker=current.turn, text=text, phase=current.phase)
        answer = await self._bounded(
            self.authoring.answer_question(current.transcript, text, current.topic, current.current_phase),
            None,
            "Public answer"
        )
        guide_message = GuideMessage(
            text=answer or FALLBACK_ANSWER,
            phase=current.phase,
            purpose=GuideMessagePurpose.ANSWER
        )
        return {
            "state": SessionState.AWAITING_UTTERANCE,
            "transcript": current.transcript + (clarification, guide_message),
            "pending_utterance": None,
            "pending_audio_duration": 0.0,
            "interaction_mode": InteractionMode.PARTNER,
        }

    async def _private_pipeline(self, current: SessionSnapshot, text: str) -> Dict[str, Any]:
        answer = await self._bounded(
            self.authoring.answer_question(current.transcript, text, current.topic, current.current_phase),
            None,
            "Private hint"
        )
        return {
            "state": SessionState.AWAITING_UTTERANCE,
            "private_hint": answer or FALLBACK_ANSWER,
            "hints_requested": current.hints_requested + 1,
            "pending_utterance": None,
            "pending_audio_duration": 0.0,
            "interaction_mode": InteractionMode.PARTNER,
        }

    def summary(self) -> SessionSummary:
        """Summarise participation in the session so far."""
        snapshot = self._snapshot
        utterances = {speaker: 0 for speaker in Speaker}
        audio_seconds = {speaker: 0.0 for speaker in Speaker}
        for entry in partner_utterances(snapshot.transcript):
            utterances[entry.speaker] += 1
            audio_seconds[entry.speaker] += entry.audio_duration

        return SessionSummary(
            session_id=snapshot.session_id,
            topic=snapshot.topic,
            completed=snapshot.is_terminal,
            phases_completed=sum(
                1 for phase in PHASES if is_round_complete(snapshot.transcript, phase.id)
            ),
            utterances=utterances,
            audio_seconds=audio_seconds,
            clarifications=sum(1 for entry in snapshot.transcript if isinstance(entry, PublicClarification)),
            hints_requested=snapshot.hints_requested
        )

    def _schedule_summary(self) -> None:
        if not self._summary_handlers:
            return
        self._summary_task = asyncio.get_running_loop().create_task(self._deliver_summary())

    async def _deliver_summary(self) -> None:
        await asyncio.sleep(self.config.summary_delay)
        summary = self.summary()
        for handler in list(self._summary_handlers):
            try:
                handler(summary)
            except Exception as e:
                self.logger.error(f"Error in summary handler: {e}")

    async def close(self) -> None:
        """Release the session's transcription source and pending hand-offs."""
        if self._summary_task is not None and not self._summary_task.done():
            self._summary_task.cancel()
            try:
                await self._summary_task
            except asyncio.CancelledError:
                pass
        self._summary_task = None
        if self._snapshot.state == SessionState.RECORDING and self.transcription is not None:
            await self.transcription.stop()
        self._observers.clear()
        self._summary_handlers.clear()


class DialogueManager:
    """
    Creates and tracks dialogue sessions.

    The DialogueManager is responsible for:
    - Wiring the moderation and authoring gateways to a text-generation adapter
    - Starting sessions on a chosen topic
    - Restarting (discarding) sessions

    Sessions share no mutable state; each carries its own dispatch guard.
    """

    def __init__(
        self,
        adapter: TextGenerationAdapter,
        config: Optional[DialogueConfig] = None,
        transcription_factory: Optional[Callable[[], TranscriptionSource]] = None
    ):
        """
        Initialize the dialogue manager.

        Args:
            adapter: Text-generation capability used by both gateways
            config: Configuration applied to every session
            transcription_factory: Builds a transcription source per session
        """
        self.config = config or DialogueConfig()
        self.moderation = ModerationGateway(adapter, fail_open=self.config.moderation_fail_open)
        self.authoring = GuideAuthoringGateway(adapter)
        self.transcription_factory = transcription_factory
        self.sessions: Dict[UUID, DialogueSession] = {}
        self.logger = logging.getLogger("guidecircle.orchestrator")

    def begin_session(self, topic: Union[Topic, str]) -> DialogueSession:
        """
        Start a new session on a topic.

        Raises:
            ValueError: If the topic is not supported
        """
        transcription = self.transcription_factory() if self.transcription_factory else None
        session = DialogueSession.begin(
            topic,
            self.moderation,
            self.authoring,
            config=self.config,
            transcription=transcription
        )
        self.sessions[session.session_id] = session
        return session

    def get_session(self, session_id: UUID) -> Optional[DialogueSession]:
        return self.sessions.get(session_id)

    async def restart(self, session_id: UUID) -> bool:
        """
        Discard a session so a new one can be started.

        Returns:
            True if the session existed, False otherwise
        """
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        self.logger.info(f"Discarded session {session_id}")
        return True

    async def close(self) -> None:
        for session_id in list(self.sessions):
            await self.restart(session_id)
