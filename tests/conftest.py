"""
Test configuration for the Interview Coach tests.

This module provides a pinned clock, both storage backends, the session
pipeline services, a scriptable analysis collaborator and an API client.
"""
# Set test environment variables BEFORE any imports that might use them
import os
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("ANALYSIS_BACKEND", "mock")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings
from app.database.connection import create_session_factory
from app.database.models import Base
from app.dependencies import get_service_factory
from app.main import app
from app.models.interview import InterviewDifficulty, InterviewType
from app.models.session import DetailedScores, FeedbackReport, Priority, Recommendation, Speaker
from app.services.analysis_client import AnalysisCollaborator, StaticProfileProvider
from app.services.feedback_service import FeedbackOrchestrator
from app.services.interview_service import InterviewService
from app.services.processing_tracker import ProcessingStatusTracker
from app.services.service_factory import ServiceFactory
from app.services.session_service import SessionService
from app.services.storage import InMemoryStorageGateway, SqlStorageGateway
from app.services.transcript_service import TranscriptService

OWNER_ID = "user-1"
OTHER_USER_ID = "user-2"


class FakeClock:
    """Clock whose time only moves when a test says so."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeCollaborator(AnalysisCollaborator):
    """Analysis collaborator that returns a canned report or raises a canned error."""

    name = "fake"

    def __init__(self, report=None, error=None, delay: float = 0):
        self.report = report if report is not None else make_report()
        self.error = error
        self.delay = delay
        self.calls = []

    async def analyze(self, transcript, context, user_profile=None, session_id=None):
        self.calls.append({
            "transcript": transcript,
            "context": context,
            "user_profile": user_profile,
            "session_id": session_id,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.report


def make_report(overall_rating: float = 7.5, summary: str = "Solid answers with room to add detail.") -> FeedbackReport:
    return FeedbackReport(
        overall_rating=overall_rating,
        strengths=["Clear examples"],
        weaknesses=["Answers were short"],
        recommendations=[
            Recommendation(area="Structure", suggestion="Use the STAR method", priority=Priority.HIGH),
        ],
        detailed_scores=DetailedScores(
            content_relevance=75, communication=80, confidence=70, structure=65, engagement=85,
        ),
        summary=summary,
    )


def make_settings(**overrides) -> Settings:
    settings = Settings()
    settings.STORAGE_BACKEND = "memory"
    settings.ANALYSIS_BACKEND = "mock"
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def make_token(user_id: str) -> str:
    settings = get_settings()
    return jwt.encode({"sub": user_id}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers(user_id: str = OWNER_ID) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


# Core fixtures
@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def sql_engine():
    """In-memory SQLite shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def memory_storage():
    return InMemoryStorageGateway()


@pytest.fixture
def sql_storage(sql_engine):
    return SqlStorageGateway(create_session_factory(sql_engine))


@pytest.fixture(params=["memory", "database"])
def any_storage(request):
    """Runs a test once per storage backend."""
    if request.param == "memory":
        return request.getfixturevalue("memory_storage")
    return request.getfixturevalue("sql_storage")


@pytest.fixture
def storage(memory_storage):
    return memory_storage


# Services
@pytest.fixture
def interview_service(storage, clock, settings):
    return InterviewService(storage, clock, settings)


@pytest.fixture
def session_service(storage, clock, settings):
    return SessionService(storage, clock, settings)


@pytest.fixture
def transcript_service(storage, clock, settings):
    return TranscriptService(storage, clock, settings)


@pytest.fixture
def tracker(storage, clock, settings):
    return ProcessingStatusTracker(storage, clock, settings)


@pytest.fixture
def collaborator():
    return FakeCollaborator()


@pytest.fixture
def profile_provider():
    return StaticProfileProvider()


@pytest.fixture
def orchestrator(storage, tracker, collaborator, profile_provider, settings):
    return FeedbackOrchestrator(storage, tracker, collaborator, profile_provider, settings)


# Pipeline state
@pytest_asyncio.fixture
async def pending_interview(interview_service):
    return await interview_service.create_interview(
        owner_id=OWNER_ID,
        interview_type=InterviewType.BEHAVIORAL,
        difficulty=InterviewDifficulty.INTERMEDIATE,
        duration_minutes=30,
    )


@pytest_asyncio.fixture
async def active_interview(interview_service, pending_interview):
    return await interview_service.start_interview(pending_interview.id, OWNER_ID)


@pytest_asyncio.fixture
async def recording(session_service, active_interview):
    return await session_service.create_session(active_interview.id, OWNER_ID)


@pytest_asyncio.fixture
async def answered_recording(transcript_service, recording, clock):
    await transcript_service.append_entry(recording.id, OWNER_ID, Speaker.AI, "Tell me about a time you led a team.")
    clock.advance(seconds=5)
    await transcript_service.append_entry(recording.id, OWNER_ID, Speaker.USER, "I led a team of five", duration_ms=4000)
    return recording


# API client
@pytest.fixture
def service_factory(storage, collaborator, profile_provider, clock, settings):
    return ServiceFactory(
        settings=settings,
        storage=storage,
        collaborator=collaborator,
        profile_provider=profile_provider,
        clock=clock,
    )


@pytest.fixture
def client(service_factory):
    """FastAPI test client wired to the test service factory."""
    app.dependency_overrides[get_service_factory] = lambda: service_factory
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def report_factory():
    return make_report


@pytest.fixture
def headers_for():
    """Builds Bearer headers for a user id."""
    return auth_headers


@pytest.fixture
def owner_headers():
    return auth_headers(OWNER_ID)
