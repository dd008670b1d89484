from pydantic import BaseModel, Field, validator
from typing import List, Optional, Dict, Any, Union
from datetime import datetime

from app.models.interview import InterviewDifficulty, InterviewQuestion, InterviewStatus, InterviewType
from app.models.session import (
    FeedbackReport,
    ProcessingStatus,
    SessionStatus,
    StageEvent,
    StageStatus,
    TranscriptEntry,
    VocalAnalysis,
)

# Request Models
# Business rules (ranges, enum membership) are enforced by the services so that
# every violation is reported the same way.


class CreateInterviewRequest(BaseModel):
    interview_type: str = Field(..., description="behavioral, technical, case-study or general")
    difficulty: str = Field(..., description="beginner, intermediate or advanced")
    duration_minutes: int = Field(30, description="Planned duration in minutes (5-120)")
    custom_prompt: Optional[str] = Field(None, description="Extra instructions for question generation")
    tags: Optional[List[str]] = None


class CompleteInterviewRequest(BaseModel):
    score: Optional[float] = Field(None, description="Completion score 0-100")


class CancelInterviewRequest(BaseModel):
    reason: Optional[str] = None


class QuestionInput(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)
    category: Optional[str] = None
    expected_duration_seconds: Optional[int] = None

    @validator('text')
    def validate_text(cls, v):
        if not v or not v.strip():
            raise ValueError('Question text cannot be empty')
        return v.strip()


class AddQuestionsRequest(BaseModel):
    questions: List[Union[str, QuestionInput]] = Field(..., min_length=1)

    def as_payload(self) -> List[Union[str, Dict[str, Any]]]:
        return [q if isinstance(q, str) else q.model_dump(exclude_none=True) for q in self.questions]


class CreateSessionRequest(BaseModel):
    interview_id: str = Field(..., min_length=1)


class AppendTranscriptRequest(BaseModel):
    speaker: str = Field(..., description="user, ai or system")
    text: str
    duration_ms: Optional[int] = None
    confidence: Optional[float] = None
    audio_url: Optional[str] = None


# Response Models
class InterviewResponse(BaseModel):
    id: str
    owner_id: str
    interview_type: InterviewType
    difficulty: InterviewDifficulty
    duration_minutes: int
    session_token: str
    status: InterviewStatus
    questions: List[InterviewQuestion]
    custom_prompt: Optional[str] = None
    tags: List[str]
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    actual_duration_minutes: Optional[int] = None
    score: Optional[float] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InterviewListResponse(BaseModel):
    interviews: List[InterviewResponse]
    total: int


class SessionRecordingResponse(BaseModel):
    id: str
    interview_id: str
    owner_id: str
    transcript: List[TranscriptEntry]
    transcript_complete: bool
    vocal_analysis: Optional[VocalAnalysis] = None
    feedback_report: Optional[FeedbackReport] = None
    feedback_generated_at: Optional[datetime] = None
    overall_score: Optional[float] = None
    processing_status: ProcessingStatus
    session_status: SessionStatus
    cumulative_duration_ms: int
    ended_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AppendTranscriptResponse(BaseModel):
    entry: TranscriptEntry
    total_entries: int
    cumulative_duration_ms: int


class TranscriptTextResponse(BaseModel):
    session_id: str
    speaker: Optional[str] = None
    text: str


class ProcessingStatusResponse(BaseModel):
    session_id: str
    transcription: StageStatus
    analysis: StageStatus
    feedback: StageStatus
    history: List[StageEvent]


class FeedbackResponse(BaseModel):
    session_id: str
    feedback_report: FeedbackReport
    overall_score: float
    processing_status: Dict[str, str]


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
