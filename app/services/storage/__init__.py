"""
Storage Gateway abstraction

One contract, two interchangeable backends (in-memory and SQL) selected at
startup by ``STORAGE_BACKEND``.
"""

from app.services.storage.base import StorageGateway
from app.services.storage.memory import InMemoryStorageGateway
from app.services.storage.sql import SqlStorageGateway
from app.services.storage.factory import create_storage_gateway

__all__ = [
    "StorageGateway",
    "InMemoryStorageGateway",
    "SqlStorageGateway",
    "create_storage_gateway",
]
