"""
Feedback Orchestrator

Runs the feedback stage of a recording: checks preconditions, calls the
analysis collaborator under a bounded timeout and commits the report through
the processing tracker. Failures are recorded on the stage and surfaced as
typed upstream errors; nothing is retried automatically.
"""
import asyncio
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError as SchemaValidationError

from app.config import get_settings
from app.exceptions import (
    CoachException,
    ConflictError,
    NotFoundError,
    StaleWriteError,
    UpstreamError,
    ValidationError,
)
from app.models.analysis_models import DEFAULT_MAJOR, InterviewContext, UserProfile
from app.models.interview import Interview
from app.models.session import (
    FeedbackReport,
    ProcessingStage,
    ProcessingStatus,
    SessionRecording,
    StageStatus,
)
from app.services.analysis_client import (
    AnalysisCollaborator,
    NullProfileProvider,
    UserProfileProvider,
)
from app.services.processing_tracker import ProcessingStatusTracker
from app.services.session_service import load_session
from app.services.storage.base import StorageGateway
from app.utils.error_handling import with_logging
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class FeedbackResult:
    report: FeedbackReport
    overall_score: float
    processing_status: ProcessingStatus


def build_context(interview: Interview, profile: Optional[UserProfile]) -> InterviewContext:
    questions = sorted(interview.questions, key=lambda q: q.order)
    return InterviewContext(
        interview_type=interview.interview_type,
        difficulty=interview.difficulty,
        major=(profile.target_major if profile and profile.target_major else DEFAULT_MAJOR),
        questions=[q.text for q in questions],
        duration_minutes=interview.duration_minutes,
    )


class FeedbackOrchestrator:
    """Generates the feedback report of a session recording."""

    def __init__(
        self,
        storage: StorageGateway,
        tracker: ProcessingStatusTracker,
        collaborator: AnalysisCollaborator,
        profile_provider: UserProfileProvider = None,
        settings=None
    ):
        settings = settings or get_settings()
        self.storage = storage
        self.tracker = tracker
        self.collaborator = collaborator
        self.profile_provider = profile_provider or NullProfileProvider()
        self.timeout_seconds = settings.ANALYSIS_TIMEOUT_SECONDS

    def _check_preconditions(self, session_id: str, requester_id: str) -> SessionRecording:
        # Order matters: existence, ownership, already generated, then content
        session = load_session(self.storage, session_id, requester_id)
        if (session.processing_status.feedback == StageStatus.COMPLETED
                or session.feedback_report is not None):
            raise ConflictError(
                "Feedback already generated for this session",
                context={"session_id": session_id},
            )
        if not session.has_user_responses():
            raise ValidationError(
                "No user responses to analyze",
                context={"session_id": session_id},
            )
        return session

    @with_logging("generate_feedback")
    async def generate_feedback(self, session_id: str, requester_id: str) -> FeedbackResult:
        session = self._check_preconditions(session_id, requester_id)

        interview = self.storage.get_interview(session.interview_id)
        if interview is None:
            raise NotFoundError("Interview not found", context={"interview_id": session.interview_id})

        started = self.tracker.begin_stage(session_id, ProcessingStage.FEEDBACK)
        attempt_id = started.processing_status.current_attempt(ProcessingStage.FEEDBACK)

        try:
            profile = await self.profile_provider.get_profile(session.owner_id)
            context = build_context(interview, profile)
            report = await asyncio.wait_for(
                self.collaborator.analyze(session.transcript, context, profile, session_id=session_id),
                timeout=self.timeout_seconds,
            )
            if not isinstance(report, FeedbackReport):
                report = FeedbackReport.model_validate(report)
        except asyncio.TimeoutError:
            self._record_failure(session_id, attempt_id, f"Analysis timed out after {self.timeout_seconds} seconds")
            raise UpstreamError(
                "Feedback analysis timed out",
                context={"timeout_seconds": self.timeout_seconds},
            )
        except UpstreamError as e:
            self._record_failure(session_id, attempt_id, e.message)
            raise
        except SchemaValidationError as e:
            self._record_failure(session_id, attempt_id, "Malformed feedback report")
            raise UpstreamError(
                "Analysis collaborator returned a malformed feedback report",
                context={"errors": [err["msg"] for err in e.errors()][:10]},
            )
        except Exception as e:
            self._record_failure(session_id, attempt_id, str(e) or type(e).__name__)
            logger.error(f"Analysis collaborator {self.collaborator.name} failed: {e}")
            raise UpstreamError("Feedback analysis failed") from e

        try:
            session = self.tracker.complete_stage(
                session_id, ProcessingStage.FEEDBACK, report, attempt_id=attempt_id
            )
        except CoachException as e:
            # A plain conflict means another attempt owns or already finished the stage
            if isinstance(e, StaleWriteError) or not isinstance(e, ConflictError):
                self._record_failure(session_id, attempt_id, f"Could not store feedback report: {e.message}")
            raise
        logger.info(f"Feedback generated for session {session_id} with score {session.overall_score}")
        return FeedbackResult(
            report=session.feedback_report,
            overall_score=session.overall_score,
            processing_status=session.processing_status,
        )

    def _record_failure(self, session_id: str, attempt_id: Optional[str], reason: str) -> None:
        try:
            self.tracker.fail_stage(session_id, ProcessingStage.FEEDBACK, reason, attempt_id=attempt_id)
        except CoachException as e:
            # The collaborator error is the one the caller needs to see
            logger.error(f"Could not record feedback failure for session {session_id}: {e.message}")
