"""
Models exchanged with the analysis collaborator.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.interview import InterviewDifficulty, InterviewType
from app.models.session import TranscriptEntry

DEFAULT_MAJOR = "General Studies"


class UserProfile(BaseModel):
    """Optional personalisation hints about the interviewee."""
    target_major: Optional[str] = None
    grade: Optional[int] = None
    target_colleges: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)


class InterviewContext(BaseModel):
    """Interview metadata the collaborator needs to judge the transcript."""
    interview_type: InterviewType
    difficulty: InterviewDifficulty
    major: str = DEFAULT_MAJOR
    questions: List[str] = Field(default_factory=list)
    duration_minutes: int


class AnalysisRequest(BaseModel):
    """Wire payload sent to the analysis service. Carries text only, never audio."""
    session_id: Optional[str] = None
    transcript: List[TranscriptEntry]
    context: InterviewContext
    user_profile: Optional[UserProfile] = None
