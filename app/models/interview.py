"""
Interview domain model and its lifecycle enums.
"""
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.utils.time_utils import utc_now
from app.utils.uuid_utils import new_id


class InterviewType(str, Enum):
    """Kinds of mock interview."""
    BEHAVIORAL = "behavioral"
    TECHNICAL = "technical"
    CASE_STUDY = "case-study"
    GENERAL = "general"


class InterviewDifficulty(str, Enum):
    """Difficulty levels."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class InterviewStatus(str, Enum):
    """Interview lifecycle: pending -> active -> completed | cancelled."""
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({InterviewStatus.COMPLETED, InterviewStatus.CANCELLED})

MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 120
MAX_CUSTOM_PROMPT_LENGTH = 500
MAX_TAGS = 10
MAX_TAG_LENGTH = 50


class InterviewQuestion(BaseModel):
    """A question attached to an interview, in asking order."""
    id: str = Field(default_factory=new_id)
    text: str = Field(..., min_length=1, max_length=1000)
    category: Optional[str] = Field(None, max_length=100)
    expected_duration_seconds: Optional[int] = Field(None, ge=30, le=600)
    order: int = Field(..., ge=0, description="0-based position in the interview")


class Interview(BaseModel):
    """A planned mock-interview session."""
    id: str = Field(default_factory=new_id)
    owner_id: str
    interview_type: InterviewType
    difficulty: InterviewDifficulty
    duration_minutes: int = Field(..., ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    session_token: str
    status: InterviewStatus = InterviewStatus.PENDING
    questions: List[InterviewQuestion] = Field(default_factory=list)
    custom_prompt: Optional[str] = Field(None, max_length=MAX_CUSTOM_PROMPT_LENGTH)
    tags: List[str] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    actual_duration_minutes: Optional[int] = Field(None, ge=0)
    score: Optional[float] = Field(None, ge=0, le=100)
    cancellation_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = Field(0, ge=0, description="Optimistic concurrency counter")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self, now: datetime, expiration_hours: int) -> bool:
        """Unstarted interviews expire ``expiration_hours`` after creation."""
        if self.status != InterviewStatus.PENDING:
            return False
        return now - self.created_at > timedelta(hours=expiration_hours)
