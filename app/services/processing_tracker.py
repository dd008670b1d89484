"""
Processing Status Tracker

Tracks the transcription, analysis and feedback stages of a recording
independently. Allowed transitions per stage:

    pending    -> processing | failed
    processing -> completed  | failed
    failed     -> processing
    completed  -> (final)

Every transition is appended to ``processing_status.history``, so a failure
stays visible after the stage is retried. Stage results are committed in the
same document write that marks the stage completed.
"""
from typing import Any, Optional, Union

from pydantic import ValidationError as SchemaValidationError

from app.config import get_settings
from app.exceptions import ConflictError, InvalidStateError, ValidationError
from app.models.session import (
    FeedbackReport,
    ProcessingStage,
    ProcessingStatus,
    SessionRecording,
    StageEvent,
    StageStatus,
    VocalAnalysis,
)
from app.services.session_service import load_session
from app.services.storage.base import StorageGateway
from app.utils.error_handling import update_with_retry
from app.utils.logger import get_logger
from app.utils.time_utils import Clock, elapsed_ms, utc_now
from app.utils.uuid_utils import new_id

logger = get_logger(__name__)

TRANSITIONS = {
    StageStatus.PENDING: frozenset({StageStatus.PROCESSING, StageStatus.FAILED}),
    StageStatus.PROCESSING: frozenset({StageStatus.COMPLETED, StageStatus.FAILED}),
    StageStatus.FAILED: frozenset({StageStatus.PROCESSING}),
    StageStatus.COMPLETED: frozenset(),
}

MAX_FAILURE_REASON_LENGTH = 500


def can_transition(current: StageStatus, target: StageStatus) -> bool:
    return target in TRANSITIONS[current]


def _parse_stage(stage: Union[str, ProcessingStage]) -> ProcessingStage:
    if isinstance(stage, ProcessingStage):
        return stage
    try:
        return ProcessingStage(str(stage).lower())
    except ValueError:
        raise ValidationError(
            f"Unknown processing stage: {stage}",
            context={"allowed": [s.value for s in ProcessingStage]},
        )


class ProcessingStatusTracker:
    """Applies stage transitions to session recordings."""

    def __init__(self, storage: StorageGateway, clock: Clock = utc_now, settings=None):
        settings = settings or get_settings()
        self.storage = storage
        self.clock = clock
        self.stale_after_ms = settings.PROCESSING_STALE_SECONDS * 1000
        self.max_write_attempts = settings.STORAGE_WRITE_RETRIES

    def _record(
        self,
        session: SessionRecording,
        stage: ProcessingStage,
        target: StageStatus,
        reason: Optional[str] = None,
        attempt_id: Optional[str] = None
    ) -> None:
        current = session.processing_status.get(stage)
        if not can_transition(current, target):
            raise InvalidStateError(
                f"Cannot move {stage.value} stage from {current.value} to {target.value}",
                context={"stage": stage.value, "status": current.value},
            )
        now = self.clock()
        setattr(session.processing_status, stage.value, target)
        session.processing_status.history.append(
            StageEvent(stage=stage, status=target, at=now, reason=reason, attempt_id=attempt_id)
        )
        session.updated_at = now

    @staticmethod
    def _check_attempt(session: SessionRecording, stage: ProcessingStage, attempt_id: Optional[str]) -> None:
        """Reject writes from an attempt that no longer owns the stage."""
        if attempt_id is None:
            return
        if session.processing_status.current_attempt(stage) != attempt_id:
            raise ConflictError(
                f"{stage.value.capitalize()} attempt was superseded",
                context={"session_id": session.id, "stage": stage.value, "attempt_id": attempt_id},
            )

    def _update(self, session_id: str, apply, description: str) -> SessionRecording:
        return update_with_retry(
            load=lambda: load_session(self.storage, session_id),
            apply=apply,
            save=self.storage.save_session,
            max_attempts=self.max_write_attempts,
            description=f"{description} of session {session_id}",
        )

    def begin_stage(self, session_id: str, stage: Union[str, ProcessingStage]) -> SessionRecording:
        """
        Move a stage to ``processing`` under a new attempt id.

        A stage already in progress is a ConflictError unless that attempt
        started more than PROCESSING_STALE_SECONDS ago; a stale attempt is
        recorded as failed and replaced. The new attempt id is available as
        ``processing_status.current_attempt(stage)`` on the returned session.
        """
        stage = _parse_stage(stage)
        attempt_id = new_id()

        def apply(session: SessionRecording) -> SessionRecording:
            if session.processing_status.get(stage) == StageStatus.PROCESSING:
                started = session.processing_status.last_event(stage, StageStatus.PROCESSING)
                age_ms = elapsed_ms(started.at, self.clock()) if started else 0
                if started is not None and age_ms <= self.stale_after_ms:
                    raise ConflictError(
                        f"{stage.value.capitalize()} is already in progress",
                        context={"session_id": session.id, "stage": stage.value},
                    )
                logger.warning(f"Abandoning stale {stage.value} attempt on session {session.id} ({age_ms} ms old)")
                self._record(
                    session, stage, StageStatus.FAILED,
                    reason="Attempt abandoned after timeout",
                    attempt_id=started.attempt_id if started else None,
                )
            self._record(session, stage, StageStatus.PROCESSING, attempt_id=attempt_id)
            return session

        session = self._update(session_id, apply, f"{stage.value} start")
        logger.info(f"Stage {stage.value} processing for session {session_id} (attempt {attempt_id})")
        return session

    def complete_stage(
        self,
        session_id: str,
        stage: Union[str, ProcessingStage],
        result: Any = None,
        attempt_id: Optional[str] = None
    ) -> SessionRecording:
        """
        Mark a processing stage completed and commit its result.

        With ``attempt_id`` the write is rejected (ConflictError) unless that
        attempt still owns the stage.
        """
        stage = _parse_stage(stage)
        result = self._coerce_result(stage, result)

        def apply(session: SessionRecording) -> SessionRecording:
            if stage == ProcessingStage.FEEDBACK and session.feedback_report is not None:
                raise ConflictError(
                    "Feedback has already been generated for this session",
                    context={"session_id": session.id},
                )
            self._check_attempt(session, stage, attempt_id)
            self._record(session, stage, StageStatus.COMPLETED, attempt_id=attempt_id)
            now = self.clock()
            if stage == ProcessingStage.FEEDBACK:
                session.feedback_report = result
                session.feedback_generated_at = now
                session.overall_score = result.overall_score
            elif stage == ProcessingStage.ANALYSIS:
                if result is not None:
                    session.vocal_analysis = result
                    if session.overall_score is None:
                        session.overall_score = result.overall_score
            else:
                session.transcript_complete = True
            return session

        session = self._update(session_id, apply, f"{stage.value} completion")
        logger.info(f"Stage {stage.value} completed for session {session_id}")
        return session

    @staticmethod
    def _coerce_result(stage: ProcessingStage, result: Any):
        if stage == ProcessingStage.FEEDBACK:
            if result is None:
                raise ValidationError("Completing the feedback stage requires a feedback report")
            model = FeedbackReport
        elif stage == ProcessingStage.ANALYSIS:
            if result is None:
                return None
            model = VocalAnalysis
        else:
            return None

        if isinstance(result, model):
            return result
        try:
            return model.model_validate(result)
        except SchemaValidationError as e:
            raise ValidationError(
                f"Invalid {stage.value} result",
                context={"errors": [err["msg"] for err in e.errors()]},
            )

    def fail_stage(
        self,
        session_id: str,
        stage: Union[str, ProcessingStage],
        reason: str,
        attempt_id: Optional[str] = None
    ) -> SessionRecording:
        """Mark a stage failed. A superseded ``attempt_id`` is a ConflictError and writes nothing."""
        stage = _parse_stage(stage)
        reason = (reason or "Unknown error")[:MAX_FAILURE_REASON_LENGTH]

        def apply(session: SessionRecording) -> SessionRecording:
            self._check_attempt(session, stage, attempt_id)
            self._record(session, stage, StageStatus.FAILED, reason=reason, attempt_id=attempt_id)
            return session

        session = self._update(session_id, apply, f"{stage.value} failure")
        logger.warning(f"Stage {stage.value} failed for session {session_id}: {reason}")
        return session

    async def get_processing_status(self, session_id: str, requester_id: str) -> ProcessingStatus:
        return load_session(self.storage, session_id, requester_id).processing_status
