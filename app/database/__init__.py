"""
Database package: SQLAlchemy tables and engine helpers used by the SQL storage gateway.
"""
from . import models
from .models import Base

__all__ = ["Base", "models"]
