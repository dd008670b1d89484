"""
Dependency injection utilities for the Interview Coach API.

Routes receive services from the shared service factory; tests replace
``get_service_factory`` through ``app.dependency_overrides``.
"""
from fastapi import Depends

from app.services.feedback_service import FeedbackOrchestrator
from app.services.interview_service import InterviewService
from app.services.processing_tracker import ProcessingStatusTracker
from app.services.service_factory import ServiceFactory, service_factory
from app.services.session_service import SessionService
from app.services.transcript_service import TranscriptService


def get_service_factory() -> ServiceFactory:
    return service_factory


def get_interview_service(factory: ServiceFactory = Depends(get_service_factory)) -> InterviewService:
    return factory.get_service("interview_service")


def get_session_service(factory: ServiceFactory = Depends(get_service_factory)) -> SessionService:
    return factory.get_service("session_service")


def get_transcript_service(factory: ServiceFactory = Depends(get_service_factory)) -> TranscriptService:
    return factory.get_service("transcript_service")


def get_processing_tracker(factory: ServiceFactory = Depends(get_service_factory)) -> ProcessingStatusTracker:
    return factory.get_service("processing_tracker")


def get_feedback_orchestrator(factory: ServiceFactory = Depends(get_service_factory)) -> FeedbackOrchestrator:
    return factory.get_service("feedback_orchestrator")
