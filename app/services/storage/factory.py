"""
Storage Gateway Factory

Selects the storage backend once at startup from configuration.
"""

from typing import Optional

from sqlalchemy.orm import sessionmaker

from app.config import get_settings
from app.exceptions import ConfigurationError
from app.services.storage.base import StorageGateway
from app.services.storage.memory import InMemoryStorageGateway
from app.services.storage.sql import SqlStorageGateway
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Backend registry
BACKEND_REGISTRY = {
    "memory": InMemoryStorageGateway,
    "database": SqlStorageGateway,
}


def create_storage_gateway(
    backend: Optional[str] = None,
    session_factory: Optional[sessionmaker] = None
) -> StorageGateway:
    """
    Create a storage gateway.

    Args:
        backend: Backend name (memory, database). Defaults to STORAGE_BACKEND
        session_factory: SQLAlchemy session factory, required for the database backend

    Returns:
        StorageGateway: Gateway instance

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured
    """
    backend = (backend or get_settings().STORAGE_BACKEND).lower()

    if backend not in BACKEND_REGISTRY:
        raise ConfigurationError(
            f"Unknown storage backend: {backend}. Available: {', '.join(BACKEND_REGISTRY)}"
        )

    if backend == "database":
        if session_factory is None:
            raise ConfigurationError("The database storage backend needs a session factory")
        gateway = SqlStorageGateway(session_factory)
    else:
        gateway = InMemoryStorageGateway()

    logger.info(f"Using {gateway.backend_name} storage gateway")
    return gateway
