"""
SQL Storage Gateway

Persists interviews and session recordings through SQLAlchemy. Each entity is
one row holding the full JSON document, and saves are compare-and-swap
updates on the ``version`` column, so a write either replaces the whole
document or fails as stale.
"""
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.database.connection import check_db_connection
from app.database.models import InterviewRecord, SessionRecordingRecord
from app.exceptions import ConflictError, NotFoundError, StaleWriteError, StorageError
from app.models.interview import Interview
from app.models.session import SessionRecording
from app.services.storage.base import StorageGateway
from app.utils.logger import get_logger

logger = get_logger(__name__)


class SqlStorageGateway(StorageGateway):
    """Relational storage gateway."""

    backend_name = "database"

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _db(self, operation: str):
        db: Session = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error during {operation}: {e}")
            raise StorageError(f"Storage failure during {operation}")
        finally:
            db.close()

    # Conversion helpers
    @staticmethod
    def _to_interview(record: InterviewRecord) -> Interview:
        return Interview.model_validate({**record.document, "version": record.version})

    @staticmethod
    def _to_session(record: SessionRecordingRecord) -> SessionRecording:
        return SessionRecording.model_validate({**record.document, "version": record.version})

    # Interviews
    def get_interview(self, interview_id: str) -> Optional[Interview]:
        with self._db("get_interview") as db:
            record = db.get(InterviewRecord, interview_id)
            return self._to_interview(record) if record else None

    def create_interview(self, interview: Interview) -> Interview:
        with self._db("create_interview") as db:
            db.add(InterviewRecord(
                id=interview.id,
                owner_id=interview.owner_id,
                session_token=interview.session_token,
                status=interview.status.value,
                version=interview.version,
                document=interview.model_dump(mode="json"),
                created_at=interview.created_at,
                updated_at=interview.updated_at,
            ))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ConflictError("Interview id or session token already in use",
                                    context={"interview_id": interview.id})
        return interview.model_copy(deep=True)

    def save_interview(self, interview: Interview) -> Interview:
        stored = interview.model_copy(update={"version": interview.version + 1}, deep=True)
        with self._db("save_interview") as db:
            result = db.execute(
                update(InterviewRecord)
                .where(InterviewRecord.id == interview.id)
                .where(InterviewRecord.version == interview.version)
                .values(
                    status=stored.status.value,
                    version=stored.version,
                    document=stored.model_dump(mode="json"),
                    updated_at=stored.updated_at,
                )
            )
            if result.rowcount == 0:
                db.rollback()
                if db.get(InterviewRecord, interview.id) is None:
                    raise NotFoundError("Interview not found", context={"interview_id": interview.id})
                raise StaleWriteError(
                    "Interview was modified concurrently, please retry",
                    context={"interview_id": interview.id},
                )
            db.commit()
        return stored

    def list_interviews(self, owner_id: str) -> List[Interview]:
        with self._db("list_interviews") as db:
            records = db.execute(
                select(InterviewRecord)
                .where(InterviewRecord.owner_id == owner_id)
                .order_by(InterviewRecord.created_at.desc())
            ).scalars().all()
            return [self._to_interview(r) for r in records]

    # Session recordings
    def get_session(self, session_id: str) -> Optional[SessionRecording]:
        with self._db("get_session") as db:
            record = db.get(SessionRecordingRecord, session_id)
            return self._to_session(record) if record else None

    def get_session_by_interview_id(self, interview_id: str) -> Optional[SessionRecording]:
        with self._db("get_session_by_interview_id") as db:
            record = db.execute(
                select(SessionRecordingRecord).where(SessionRecordingRecord.interview_id == interview_id)
            ).scalar_one_or_none()
            return self._to_session(record) if record else None

    def create_session(self, session: SessionRecording) -> SessionRecording:
        with self._db("create_session") as db:
            existing = db.execute(
                select(SessionRecordingRecord.id).where(SessionRecordingRecord.interview_id == session.interview_id)
            ).scalar_one_or_none()
            if existing is not None:
                raise self._duplicate_session(existing, session.interview_id)

            db.add(SessionRecordingRecord(
                id=session.id,
                interview_id=session.interview_id,
                owner_id=session.owner_id,
                session_status=session.session_status.value,
                version=session.version,
                document=session.model_dump(mode="json"),
                created_at=session.created_at,
                updated_at=session.updated_at,
            ))
            try:
                db.commit()
            except IntegrityError:
                # Lost a race with a concurrent create for the same interview
                db.rollback()
                existing = db.execute(
                    select(SessionRecordingRecord.id).where(SessionRecordingRecord.interview_id == session.interview_id)
                ).scalar_one_or_none()
                raise self._duplicate_session(existing or session.id, session.interview_id)
        return session.model_copy(deep=True)

    @staticmethod
    def _duplicate_session(existing_id: str, interview_id: str) -> ConflictError:
        return ConflictError(
            "A session recording already exists for this interview",
            context={"session_id": existing_id, "interview_id": interview_id},
        )

    def save_session(self, session: SessionRecording) -> SessionRecording:
        stored = session.model_copy(update={"version": session.version + 1}, deep=True)
        with self._db("save_session") as db:
            result = db.execute(
                update(SessionRecordingRecord)
                .where(SessionRecordingRecord.id == session.id)
                .where(SessionRecordingRecord.version == session.version)
                .values(
                    session_status=stored.session_status.value,
                    version=stored.version,
                    document=stored.model_dump(mode="json"),
                    updated_at=stored.updated_at,
                )
            )
            if result.rowcount == 0:
                db.rollback()
                if db.get(SessionRecordingRecord, session.id) is None:
                    raise NotFoundError("Session recording not found", context={"session_id": session.id})
                raise StaleWriteError(
                    "Session recording was modified concurrently, please retry",
                    context={"session_id": session.id},
                )
            db.commit()
        return stored

    def health_check(self) -> bool:
        return check_db_connection(self.session_factory.kw["bind"])
