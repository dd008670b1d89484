"""
Session Service

Creates, retrieves and ends the SessionRecording of an interview. There is at
most one recording per interview; the storage gateway enforces that.
"""
from typing import Optional

from app.config import get_settings
from app.exceptions import InvalidStateError, NotFoundError
from app.models.interview import InterviewStatus
from app.models.session import FeedbackReport, SessionRecording, SessionStatus
from app.services.access_guard import assert_ownership
from app.services.storage.base import StorageGateway
from app.utils.error_handling import update_with_retry, with_logging
from app.utils.logger import get_logger
from app.utils.time_utils import Clock, utc_now

logger = get_logger(__name__)


def load_session(
    storage: StorageGateway,
    session_id: str,
    requester_id: Optional[str] = None
) -> SessionRecording:
    """
    Fetch a recording, raising NotFoundError when absent.

    When ``requester_id`` is given the Access Guard runs after the existence
    check. Internal callers (the processing pipeline) pass None.
    """
    session = storage.get_session(session_id)
    if session is None:
        raise NotFoundError("Session recording not found", context={"session_id": session_id})
    if requester_id is not None:
        assert_ownership(session.owner_id, requester_id, "session")
    return session


class SessionService:
    """Service for managing session recordings."""

    def __init__(self, storage: StorageGateway, clock: Clock = utc_now, settings=None):
        settings = settings or get_settings()
        self.storage = storage
        self.clock = clock
        self.max_write_attempts = settings.STORAGE_WRITE_RETRIES

    @with_logging("create_session")
    async def create_session(self, interview_id: str, requester_id: str) -> SessionRecording:
        """Open the recording for an active interview."""
        interview = self.storage.get_interview(interview_id)
        if interview is None:
            raise NotFoundError("Interview not found", context={"interview_id": interview_id})
        assert_ownership(interview.owner_id, requester_id, "interview")
        if interview.status != InterviewStatus.ACTIVE:
            raise InvalidStateError(
                "A session can only be recorded for an active interview",
                context={"status": interview.status.value},
            )

        now = self.clock()
        session = SessionRecording(
            interview_id=interview.id,
            owner_id=interview.owner_id,
            created_at=now,
            updated_at=now,
        )
        # ConflictError carrying the existing session id when one is already there
        stored = self.storage.create_session(session)
        logger.info(f"Created session recording {stored.id} for interview {interview_id}")
        return stored

    async def get_session(self, session_id: str, requester_id: str) -> SessionRecording:
        return load_session(self.storage, session_id, requester_id)

    async def get_session_by_interview(self, interview_id: str, requester_id: str) -> SessionRecording:
        session = self.storage.get_session_by_interview_id(interview_id)
        if session is None:
            raise NotFoundError(
                "No session recording exists for this interview",
                context={"interview_id": interview_id},
            )
        assert_ownership(session.owner_id, requester_id, "session")
        return session

    @with_logging("end_session")
    async def end_session(self, session_id: str, requester_id: str) -> SessionRecording:
        """Mark the recording completed and freeze its duration."""
        def apply(session: SessionRecording) -> SessionRecording:
            if not session.is_active:
                raise InvalidStateError(
                    "Session has already ended",
                    context={"session_status": session.session_status.value},
                )
            now = self.clock()
            session.session_status = SessionStatus.COMPLETED
            session.ended_at = now
            session.cumulative_duration_ms = session.calculate_duration_ms(now)
            session.updated_at = now
            return session

        session = update_with_retry(
            load=lambda: load_session(self.storage, session_id, requester_id),
            apply=apply,
            save=self.storage.save_session,
            max_attempts=self.max_write_attempts,
            description=f"end of session {session_id}",
        )
        logger.info(f"Session {session_id} ended after {session.cumulative_duration_ms} ms")
        return session

    async def get_feedback(self, session_id: str, requester_id: str) -> FeedbackReport:
        session = load_session(self.storage, session_id, requester_id)
        if session.feedback_report is None:
            raise NotFoundError(
                "Feedback has not been generated for this session",
                context={"session_id": session_id},
            )
        return session.feedback_report
