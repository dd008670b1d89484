"""
SQLAlchemy models for the Interview Coach database schema.

Interviews and session recordings are stored as whole JSON documents, one row
each, so a single UPDATE replaces a document atomically. Columns duplicated out
of the document exist for lookups, uniqueness and the optimistic version check.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in development and tests)
DocumentType = JSON().with_variant(JSONB(), "postgresql")


class InterviewRecord(Base):
    """Interview document table."""
    __tablename__ = "interviews"

    id = Column(String(36), primary_key=True)
    owner_id = Column(String(255), nullable=False, index=True)
    session_token = Column(String(128), nullable=False, unique=True)
    status = Column(String(20), nullable=False, index=True)  # pending, active, completed, cancelled
    version = Column(Integer, nullable=False, default=0)
    document = Column(DocumentType, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_interviews_owner_created", "owner_id", "created_at"),
    )

    def __repr__(self):
        return f"<InterviewRecord(id={self.id}, owner_id={self.owner_id}, status={self.status}, version={self.version})>"


class SessionRecordingRecord(Base):
    """Session recording document table. One recording per interview."""
    __tablename__ = "session_recordings"

    id = Column(String(36), primary_key=True)
    interview_id = Column(String(36), ForeignKey("interviews.id"), nullable=False, unique=True)
    owner_id = Column(String(255), nullable=False, index=True)
    session_status = Column(String(20), nullable=False, index=True)  # active, completed
    version = Column(Integer, nullable=False, default=0)
    document = Column(DocumentType, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<SessionRecordingRecord(id={self.id}, interview_id={self.interview_id}, version={self.version})>"
