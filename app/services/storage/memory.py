"""
In-memory Storage Gateway

Fallback gateway used in development and tests. Documents are kept as deep
copies behind per-entity locks, so it enforces the same uniqueness and
versioning rules as the SQL gateway.
"""
import threading
import weakref
from typing import Dict, List, Optional

from app.exceptions import ConflictError, NotFoundError, StaleWriteError
from app.models.interview import Interview
from app.models.session import SessionRecording
from app.services.storage.base import StorageGateway
from app.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryStorageGateway(StorageGateway):
    """Process-local storage with per-entity mutexes."""

    backend_name = "memory"

    def __init__(self):
        self._interviews: Dict[str, Interview] = {}
        self._sessions: Dict[str, SessionRecording] = {}
        self._session_by_interview: Dict[str, str] = {}
        self._session_tokens: Dict[str, str] = {}
        self._registry_lock = threading.Lock()
        # Entries vanish once no caller holds the lock
        self._locks = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    # Interviews
    def get_interview(self, interview_id: str) -> Optional[Interview]:
        interview = self._interviews.get(interview_id)
        return interview.model_copy(deep=True) if interview else None

    def create_interview(self, interview: Interview) -> Interview:
        with self._registry_lock:
            if interview.id in self._interviews:
                raise ConflictError("Interview already exists", context={"interview_id": interview.id})
            if interview.session_token in self._session_tokens:
                raise ConflictError("Session token already in use")
            self._interviews[interview.id] = interview.model_copy(deep=True)
            self._session_tokens[interview.session_token] = interview.id
        return interview.model_copy(deep=True)

    def save_interview(self, interview: Interview) -> Interview:
        with self._lock_for(f"interview:{interview.id}"):
            current = self._interviews.get(interview.id)
            if current is None:
                raise NotFoundError("Interview not found", context={"interview_id": interview.id})
            if current.version != interview.version:
                raise StaleWriteError(
                    "Interview was modified concurrently, please retry",
                    context={"interview_id": interview.id},
                )
            stored = interview.model_copy(update={"version": interview.version + 1}, deep=True)
            self._interviews[interview.id] = stored
        return stored.model_copy(deep=True)

    def list_interviews(self, owner_id: str) -> List[Interview]:
        owned = [i for i in list(self._interviews.values()) if i.owner_id == owner_id]
        owned.sort(key=lambda i: i.created_at, reverse=True)
        return [i.model_copy(deep=True) for i in owned]

    # Session recordings
    def get_session(self, session_id: str) -> Optional[SessionRecording]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    def get_session_by_interview_id(self, interview_id: str) -> Optional[SessionRecording]:
        session_id = self._session_by_interview.get(interview_id)
        return self.get_session(session_id) if session_id else None

    def create_session(self, session: SessionRecording) -> SessionRecording:
        with self._lock_for(f"interview-session:{session.interview_id}"):
            existing_id = self._session_by_interview.get(session.interview_id)
            if existing_id is not None:
                raise ConflictError(
                    "A session recording already exists for this interview",
                    context={"session_id": existing_id, "interview_id": session.interview_id},
                )
            if session.id in self._sessions:
                raise ConflictError("Session recording already exists", context={"session_id": session.id})
            self._sessions[session.id] = session.model_copy(deep=True)
            self._session_by_interview[session.interview_id] = session.id
        return session.model_copy(deep=True)

    def save_session(self, session: SessionRecording) -> SessionRecording:
        with self._lock_for(f"session:{session.id}"):
            current = self._sessions.get(session.id)
            if current is None:
                raise NotFoundError("Session recording not found", context={"session_id": session.id})
            if current.version != session.version:
                raise StaleWriteError(
                    "Session recording was modified concurrently, please retry",
                    context={"session_id": session.id},
                )
            stored = session.model_copy(update={"version": session.version + 1}, deep=True)
            self._sessions[session.id] = stored
        return stored.model_copy(deep=True)
