"""
Unit tests for the processing-status tracker.
"""
import pytest

from app.exceptions import ConflictError, ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from app.models.session import ProcessingStage, StageStatus, VocalAnalysis
from app.services.processing_tracker import can_transition


class TestTransitionTable:

    @pytest.mark.unit
    @pytest.mark.parametrize("current,target,allowed", [
        (StageStatus.PENDING, StageStatus.PROCESSING, True),
        (StageStatus.PENDING, StageStatus.FAILED, True),
        (StageStatus.PENDING, StageStatus.COMPLETED, False),
        (StageStatus.PROCESSING, StageStatus.COMPLETED, True),
        (StageStatus.PROCESSING, StageStatus.FAILED, True),
        (StageStatus.FAILED, StageStatus.PROCESSING, True),
        (StageStatus.FAILED, StageStatus.COMPLETED, False),
        (StageStatus.COMPLETED, StageStatus.PROCESSING, False),
        (StageStatus.COMPLETED, StageStatus.FAILED, False),
    ])
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed


class TestProcessingStatusTracker:
    """Test cases for ProcessingStatusTracker."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stages_are_independent(self, tracker, recording):
        session = tracker.begin_stage(recording.id, ProcessingStage.TRANSCRIPTION)

        assert session.processing_status.transcription == StageStatus.PROCESSING
        assert session.processing_status.analysis == StageStatus.PENDING
        assert session.processing_status.feedback == StageStatus.PENDING

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_complete_transcription_marks_transcript_complete(self, tracker, recording):
        tracker.begin_stage(recording.id, "transcription")
        session = tracker.complete_stage(recording.id, "transcription")

        assert session.processing_status.transcription == StageStatus.COMPLETED
        assert session.transcript_complete is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_complete_without_begin_is_invalid(self, tracker, recording):
        with pytest.raises(InvalidStateError):
            tracker.complete_stage(recording.id, ProcessingStage.TRANSCRIPTION)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_completed_never_regresses(self, tracker, recording):
        tracker.begin_stage(recording.id, "transcription")
        tracker.complete_stage(recording.id, "transcription")

        with pytest.raises(InvalidStateError):
            tracker.begin_stage(recording.id, "transcription")
        with pytest.raises(InvalidStateError):
            tracker.fail_stage(recording.id, "transcription", "late failure")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_is_kept_in_history_after_retry(self, tracker, recording):
        tracker.begin_stage(recording.id, "analysis")
        tracker.fail_stage(recording.id, "analysis", "analyzer crashed")
        session = tracker.begin_stage(recording.id, "analysis")

        status = session.processing_status
        assert status.analysis == StageStatus.PROCESSING
        assert status.failure_count(ProcessingStage.ANALYSIS) == 1
        assert status.last_event(ProcessingStage.ANALYSIS, StageStatus.FAILED).reason == "analyzer crashed"
        assert [e.status for e in status.history] == [
            StageStatus.PROCESSING, StageStatus.FAILED, StageStatus.PROCESSING,
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pending_stage_can_fail_directly(self, tracker, recording):
        session = tracker.fail_stage(recording.id, "transcription", "no audio")

        assert session.processing_status.transcription == StageStatus.FAILED

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_begin_while_processing_conflicts(self, tracker, recording, clock):
        tracker.begin_stage(recording.id, "feedback")
        clock.advance(seconds=30)

        with pytest.raises(ConflictError, match="already in progress"):
            tracker.begin_stage(recording.id, "feedback")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stale_attempt_is_replaced(self, tracker, recording, clock):
        """An attempt older than PROCESSING_STALE_SECONDS is failed and restarted."""
        tracker.begin_stage(recording.id, "feedback")
        clock.advance(seconds=301)

        session = tracker.begin_stage(recording.id, "feedback")

        status = session.processing_status
        assert status.feedback == StageStatus.PROCESSING
        assert status.failure_count(ProcessingStage.FEEDBACK) == 1
        assert status.last_event(ProcessingStage.FEEDBACK).at == clock()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_analysis_result_sets_vocal_analysis_and_score(self, tracker, recording):
        tracker.begin_stage(recording.id, "analysis")
        session = tracker.complete_stage(recording.id, "analysis", {"overall_score": 64})

        assert isinstance(session.vocal_analysis, VocalAnalysis)
        assert session.overall_score == 64

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_feedback_result_is_write_once(self, tracker, recording, report_factory):
        tracker.begin_stage(recording.id, "feedback")
        session = tracker.complete_stage(recording.id, "feedback", report_factory(overall_rating=8))

        assert session.overall_score == 80
        assert session.feedback_generated_at is not None

        with pytest.raises(ConflictError):
            tracker.complete_stage(recording.id, "feedback", report_factory(overall_rating=3))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_feedback_completion_requires_report(self, tracker, recording):
        tracker.begin_stage(recording.id, "feedback")

        with pytest.raises(ValidationError):
            tracker.complete_stage(recording.id, "feedback")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_stage_and_session(self, tracker, recording):
        with pytest.raises(ValidationError):
            tracker.begin_stage(recording.id, "rendering")
        with pytest.raises(NotFoundError):
            tracker.begin_stage("missing", "analysis")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_processing_status_checks_owner(self, tracker, recording):
        status = await tracker.get_processing_status(recording.id, "user-1")

        assert status.summary()["feedback"] == "pending"
        with pytest.raises(ForbiddenError):
            await tracker.get_processing_status(recording.id, "user-2")


class TestAttemptOwnership:
    """Writes from an attempt that lost the stage to a takeover are rejected."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_begin_assigns_attempt_id(self, tracker, recording):
        session = tracker.begin_stage(recording.id, "analysis")

        attempt_id = session.processing_status.current_attempt(ProcessingStage.ANALYSIS)
        assert attempt_id is not None
        assert session.processing_status.last_event(ProcessingStage.ANALYSIS).attempt_id == attempt_id
        assert session.processing_status.current_attempt(ProcessingStage.FEEDBACK) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_takeover_records_old_attempt_as_failed(self, tracker, recording, clock):
        old = tracker.begin_stage(recording.id, "analysis").processing_status.current_attempt(ProcessingStage.ANALYSIS)
        clock.advance(seconds=301)

        session = tracker.begin_stage(recording.id, "analysis")

        status = session.processing_status
        new = status.current_attempt(ProcessingStage.ANALYSIS)
        assert new != old
        abandoned = status.last_event(ProcessingStage.ANALYSIS, StageStatus.FAILED)
        assert abandoned.attempt_id == old
        assert abandoned.reason == "Attempt abandoned after timeout"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_late_failure_of_replaced_attempt_is_rejected(self, tracker, recording, clock, report_factory):
        old = tracker.begin_stage(recording.id, "feedback").processing_status.current_attempt(ProcessingStage.FEEDBACK)
        clock.advance(seconds=301)
        new = tracker.begin_stage(recording.id, "feedback").processing_status.current_attempt(ProcessingStage.FEEDBACK)

        with pytest.raises(ConflictError, match="superseded") as exc_info:
            tracker.fail_stage(recording.id, "feedback", "connection reset", attempt_id=old)

        assert exc_info.value.context["attempt_id"] == old
        status = await tracker.get_processing_status(recording.id, "user-1")
        assert status.feedback == StageStatus.PROCESSING
        assert status.current_attempt(ProcessingStage.FEEDBACK) == new

        session = tracker.complete_stage(recording.id, "feedback", report_factory(), attempt_id=new)
        assert session.processing_status.feedback == StageStatus.COMPLETED
        assert session.feedback_report is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_late_success_of_replaced_attempt_is_rejected(self, tracker, recording, clock, report_factory):
        old = tracker.begin_stage(recording.id, "feedback").processing_status.current_attempt(ProcessingStage.FEEDBACK)
        clock.advance(seconds=301)
        tracker.begin_stage(recording.id, "feedback")

        with pytest.raises(ConflictError, match="superseded"):
            tracker.complete_stage(recording.id, "feedback", report_factory(), attempt_id=old)

        status = await tracker.get_processing_status(recording.id, "user-1")
        assert status.feedback == StageStatus.PROCESSING

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_after_new_attempt_completed_is_rejected(self, tracker, recording, clock):
        old = tracker.begin_stage(recording.id, "analysis").processing_status.current_attempt(ProcessingStage.ANALYSIS)
        clock.advance(seconds=301)
        new = tracker.begin_stage(recording.id, "analysis").processing_status.current_attempt(ProcessingStage.ANALYSIS)
        tracker.complete_stage(recording.id, "analysis", {"overall_score": 70}, attempt_id=new)

        with pytest.raises(ConflictError):
            tracker.fail_stage(recording.id, "analysis", "worker crashed", attempt_id=old)

        status = await tracker.get_processing_status(recording.id, "user-1")
        assert status.analysis == StageStatus.COMPLETED
        assert [e.status for e in status.history if e.stage == ProcessingStage.ANALYSIS] == [
            StageStatus.PROCESSING, StageStatus.FAILED, StageStatus.PROCESSING, StageStatus.COMPLETED,
        ]
