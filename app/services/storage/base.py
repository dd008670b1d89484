"""
Storage Gateway contract

Defines the persistence operations the session pipeline relies on. Concrete
gateways (in-memory, SQL) must behave identically, including uniqueness of
``interview_id`` across session recordings and optimistic versioning.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from app.models.interview import Interview
from app.models.session import SessionRecording
from app.utils.logger import get_logger

logger = get_logger(__name__)


class StorageGateway(ABC):
    """
    Abstract base class for all storage gateways.

    Entities handed out are detached copies: mutating them has no effect until
    they are passed back to a ``save_*`` call. Saves are optimistic: the entity's
    ``version`` must match the stored version, otherwise StaleWriteError is
    raised and nothing is written. A successful save returns the stored entity
    with its version incremented.
    """

    backend_name = "abstract"

    @abstractmethod
    def get_interview(self, interview_id: str) -> Optional[Interview]:
        """Return the interview or None."""

    @abstractmethod
    def create_interview(self, interview: Interview) -> Interview:
        """
        Insert a new interview.

        Raises:
            ConflictError: If the id or session token is already taken
        """

    @abstractmethod
    def save_interview(self, interview: Interview) -> Interview:
        """
        Replace an interview, checking its version.

        Raises:
            NotFoundError: If the interview does not exist
            StaleWriteError: If the stored version differs from ``interview.version``
        """

    @abstractmethod
    def list_interviews(self, owner_id: str) -> List[Interview]:
        """Return the owner's interviews, newest first."""

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[SessionRecording]:
        """Return the session recording or None."""

    @abstractmethod
    def get_session_by_interview_id(self, interview_id: str) -> Optional[SessionRecording]:
        """Return the recording attached to an interview or None."""

    @abstractmethod
    def create_session(self, session: SessionRecording) -> SessionRecording:
        """
        Insert a new session recording.

        Raises:
            ConflictError: If a recording already exists for ``session.interview_id``;
                the context carries the existing ``session_id``
        """

    @abstractmethod
    def save_session(self, session: SessionRecording) -> SessionRecording:
        """
        Atomically replace a whole session recording document, checking its version.

        Raises:
            NotFoundError: If the recording does not exist
            StaleWriteError: If the stored version differs from ``session.version``
        """

    def health_check(self) -> bool:
        """Check the backing store is reachable."""
        return True
