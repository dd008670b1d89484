"""
Contract tests run against both storage gateways.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import ConfigurationError, ConflictError, NotFoundError, StaleWriteError
from app.models.interview import Interview, InterviewDifficulty, InterviewStatus, InterviewType
from app.models.session import SessionRecording, Speaker, TranscriptEntry
from app.services.storage import InMemoryStorageGateway, create_storage_gateway

T0 = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


def make_interview(owner_id="user-1", token="session_1_abc", created_at=T0) -> Interview:
    return Interview(
        owner_id=owner_id,
        interview_type=InterviewType.TECHNICAL,
        difficulty=InterviewDifficulty.BEGINNER,
        duration_minutes=30,
        session_token=token,
        created_at=created_at,
        updated_at=created_at,
    )


def make_session(interview: Interview) -> SessionRecording:
    return SessionRecording(interview_id=interview.id, owner_id=interview.owner_id, created_at=T0, updated_at=T0)


class TestStorageGatewayContract:
    """Both backends honour the same contract."""

    @pytest.mark.unit
    def test_interview_round_trip(self, any_storage):
        interview = any_storage.create_interview(make_interview())

        loaded = any_storage.get_interview(interview.id)

        assert loaded == interview
        assert any_storage.get_interview("missing") is None

    @pytest.mark.unit
    def test_returned_copies_are_detached(self, any_storage):
        interview = any_storage.create_interview(make_interview())
        loaded = any_storage.get_interview(interview.id)
        loaded.status = InterviewStatus.ACTIVE

        assert any_storage.get_interview(interview.id).status == InterviewStatus.PENDING

    @pytest.mark.unit
    def test_duplicate_session_token_conflicts(self, any_storage):
        any_storage.create_interview(make_interview(token="session_dup"))

        with pytest.raises(ConflictError):
            any_storage.create_interview(make_interview(token="session_dup"))

    @pytest.mark.unit
    def test_save_increments_version(self, any_storage):
        interview = any_storage.create_interview(make_interview())
        interview.status = InterviewStatus.ACTIVE

        saved = any_storage.save_interview(interview)

        assert saved.version == 1
        assert any_storage.get_interview(interview.id).status == InterviewStatus.ACTIVE

    @pytest.mark.unit
    def test_stale_save_rejected(self, any_storage):
        interview = any_storage.create_interview(make_interview())
        first = any_storage.get_interview(interview.id)
        second = any_storage.get_interview(interview.id)

        first.status = InterviewStatus.ACTIVE
        any_storage.save_interview(first)
        second.status = InterviewStatus.CANCELLED

        with pytest.raises(StaleWriteError):
            any_storage.save_interview(second)
        assert any_storage.get_interview(interview.id).status == InterviewStatus.ACTIVE

    @pytest.mark.unit
    def test_save_unknown_interview(self, any_storage):
        with pytest.raises(NotFoundError):
            any_storage.save_interview(make_interview())

    @pytest.mark.unit
    def test_list_interviews_newest_first(self, any_storage):
        older = any_storage.create_interview(make_interview(token="t1"))
        newer = any_storage.create_interview(make_interview(token="t2", created_at=T0 + timedelta(minutes=5)))
        any_storage.create_interview(make_interview(owner_id="user-2", token="t3"))

        assert [i.id for i in any_storage.list_interviews("user-1")] == [newer.id, older.id]

    @pytest.mark.unit
    def test_one_session_per_interview(self, any_storage):
        interview = any_storage.create_interview(make_interview())
        first = any_storage.create_session(make_session(interview))

        with pytest.raises(ConflictError) as exc_info:
            any_storage.create_session(make_session(interview))

        assert exc_info.value.context["session_id"] == first.id
        assert any_storage.get_session_by_interview_id(interview.id).id == first.id

    @pytest.mark.unit
    def test_session_document_round_trip(self, any_storage):
        """Transcript entries and nested status survive a save."""
        interview = any_storage.create_interview(make_interview())
        session = any_storage.create_session(make_session(interview))
        session.transcript.append(TranscriptEntry(speaker=Speaker.USER, text="Hello", timestamp_ms=1200, confidence=0.8))
        session.cumulative_duration_ms = 1200

        saved = any_storage.save_session(session)
        loaded = any_storage.get_session(session.id)

        assert loaded == saved
        assert loaded.transcript[0].timestamp_ms == 1200
        assert loaded.version == 1

    @pytest.mark.unit
    def test_stale_session_save_rejected(self, any_storage):
        interview = any_storage.create_interview(make_interview())
        session = any_storage.create_session(make_session(interview))
        stale = any_storage.get_session(session.id)
        any_storage.save_session(session)

        with pytest.raises(StaleWriteError):
            any_storage.save_session(stale)

    @pytest.mark.unit
    def test_health_check(self, any_storage):
        assert any_storage.health_check() is True


class TestStorageFactory:

    @pytest.mark.unit
    def test_memory_backend(self):
        assert isinstance(create_storage_gateway("memory"), InMemoryStorageGateway)

    @pytest.mark.unit
    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_storage_gateway("redis")

    @pytest.mark.unit
    def test_database_backend_needs_session_factory(self):
        with pytest.raises(ConfigurationError):
            create_storage_gateway("database")


class TestInMemoryLocks:

    @pytest.mark.unit
    def test_lock_registry_does_not_grow(self, memory_storage):
        """Per-document locks are dropped once no save is using them."""
        for i in range(20):
            interview = memory_storage.create_interview(make_interview(token=f"session_{i}_abc"))
            memory_storage.save_interview(interview)
            session = memory_storage.create_session(make_session(interview))
            memory_storage.save_session(session)

        assert len(memory_storage._locks) == 0
        assert len(memory_storage.list_interviews("user-1")) == 20
