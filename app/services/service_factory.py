"""
Service Factory for the Interview Coach service

Builds the storage gateway, analysis collaborator and session-pipeline
services once from configuration and hands out the shared instances.
"""
from typing import Any, Dict, Optional

from app.config import get_settings
from app.database.connection import create_db_engine, create_session_factory, init_db
from app.exceptions import ConfigurationError
from app.services.analysis_client import (
    AnalysisCollaborator,
    AnalysisServiceClient,
    NullProfileProvider,
    UserProfileProvider,
)
from app.services.feedback_service import FeedbackOrchestrator
from app.services.interview_service import InterviewService
from app.services.mock_logic import HeuristicAnalysisCollaborator
from app.services.processing_tracker import ProcessingStatusTracker
from app.services.session_service import SessionService
from app.services.storage import StorageGateway, create_storage_gateway
from app.services.transcript_service import TranscriptService
from app.utils.logger import get_logger
from app.utils.time_utils import Clock, utc_now

logger = get_logger(__name__)

# Analysis backend registry
COLLABORATOR_REGISTRY = {
    "http": AnalysisServiceClient,
    "mock": HeuristicAnalysisCollaborator,
}


class ServiceFactory:
    """Creates and caches the service instances for one application."""

    def __init__(
        self,
        settings=None,
        storage: Optional[StorageGateway] = None,
        collaborator: Optional[AnalysisCollaborator] = None,
        profile_provider: Optional[UserProfileProvider] = None,
        clock: Clock = utc_now
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.engine = None
        self._storage = storage
        self._collaborator = collaborator
        self._profile_provider = profile_provider
        self._services: Dict[str, Any] = {}
        self._initialized = False

    def initialize(self):
        """Initialize the service factory."""
        if self._initialized:
            return

        problems = self.settings.validate_configuration()
        if problems:
            raise ConfigurationError("Invalid configuration", context={"errors": problems})

        storage = self._storage or self._create_storage()
        collaborator = self._collaborator or self._create_collaborator()
        profile_provider = self._profile_provider or NullProfileProvider()
        tracker = ProcessingStatusTracker(storage, self.clock, self.settings)

        self._services = {
            "storage": storage,
            "analysis_collaborator": collaborator,
            "processing_tracker": tracker,
            "interview_service": InterviewService(storage, self.clock, self.settings),
            "session_service": SessionService(storage, self.clock, self.settings),
            "transcript_service": TranscriptService(storage, self.clock, self.settings),
            "feedback_orchestrator": FeedbackOrchestrator(
                storage, tracker, collaborator, profile_provider, self.settings
            ),
        }
        self._initialized = True
        logger.info(
            f"Service factory initialized (storage={storage.backend_name}, analysis={collaborator.name})"
        )

    def _create_storage(self) -> StorageGateway:
        backend = self.settings.STORAGE_BACKEND
        if backend != "database":
            return create_storage_gateway(backend)
        self.engine = create_db_engine(self.settings.DATABASE_URL)
        init_db(self.engine)
        return create_storage_gateway(backend, create_session_factory(self.engine))

    def _create_collaborator(self) -> AnalysisCollaborator:
        backend = self.settings.ANALYSIS_BACKEND
        if backend not in COLLABORATOR_REGISTRY:
            raise ConfigurationError(
                f"Unknown analysis backend: {backend}. Available: {', '.join(COLLABORATOR_REGISTRY)}"
            )
        return COLLABORATOR_REGISTRY[backend]()

    def get_service(self, service_name: str) -> Any:
        """Get a service instance by name."""
        if not self._initialized:
            self.initialize()
        if service_name not in self._services:
            raise ValueError(f"Unknown service: {service_name}")
        return self._services[service_name]

    def get_available_services(self) -> list:
        if not self._initialized:
            self.initialize()
        return list(self._services.keys())

    async def health(self) -> Dict[str, bool]:
        """Reachability of the storage backend and the analysis collaborator."""
        storage = self.get_service("storage")
        collaborator = self.get_service("analysis_collaborator")
        return {
            "storage": storage.health_check(),
            "analysis": await collaborator.health_check(),
        }

    async def shutdown(self):
        if not self._initialized:
            return
        await self._services["analysis_collaborator"].close()
        if self.engine is not None:
            self.engine.dispose()
        self._services.clear()
        self._initialized = False
        logger.info("Service factory shut down")


# Global service factory instance
service_factory = ServiceFactory()

