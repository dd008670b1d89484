"""
SessionRecording domain model: the runtime record of one interview.

A recording owns the append-only transcript, the three processing-stage
statuses, and the analysis results committed by those stages.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from app.utils.time_utils import utc_now, elapsed_ms
from app.utils.uuid_utils import new_id

MAX_TRANSCRIPT_TEXT_LENGTH = 5000


class Speaker(str, Enum):
    """Who said a transcript entry."""
    USER = "user"
    AI = "ai"
    SYSTEM = "system"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class ProcessingStage(str, Enum):
    """Pipeline stages tracked per session."""
    TRANSCRIPTION = "transcription"
    ANALYSIS = "analysis"
    FEEDBACK = "feedback"


class StageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TranscriptEntry(BaseModel):
    """One turn of dialogue. Immutable once appended."""
    speaker: Speaker
    text: str = Field(..., min_length=1, max_length=MAX_TRANSCRIPT_TEXT_LENGTH)
    timestamp_ms: int = Field(..., ge=0, description="Milliseconds since the recording was created")
    duration_ms: Optional[int] = Field(None, ge=0, description="Speaking duration in milliseconds")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="Recognition confidence (0-1)")
    audio_url: Optional[str] = None

    class Config:
        frozen = True


class StageEvent(BaseModel):
    """A recorded stage transition. Failures stay in the history after a retry."""
    stage: ProcessingStage
    status: StageStatus
    at: datetime = Field(default_factory=utc_now)
    reason: Optional[str] = None
    attempt_id: Optional[str] = Field(None, description="Set on processing events; identifies the attempt")


class ProcessingStatus(BaseModel):
    """Independent status of the transcription, analysis and feedback stages."""
    transcription: StageStatus = StageStatus.PENDING
    analysis: StageStatus = StageStatus.PENDING
    feedback: StageStatus = StageStatus.PENDING
    history: List[StageEvent] = Field(default_factory=list)

    def get(self, stage: ProcessingStage) -> StageStatus:
        return getattr(self, stage.value)

    def last_event(self, stage: ProcessingStage, status: Optional[StageStatus] = None) -> Optional[StageEvent]:
        for event in reversed(self.history):
            if event.stage == stage and (status is None or event.status == status):
                return event
        return None

    def current_attempt(self, stage: ProcessingStage) -> Optional[str]:
        """Attempt id of the in-flight run of a stage, None unless it is processing."""
        if self.get(stage) != StageStatus.PROCESSING:
            return None
        started = self.last_event(stage, StageStatus.PROCESSING)
        return started.attempt_id if started else None

    def failure_count(self, stage: ProcessingStage) -> int:
        return sum(1 for e in self.history if e.stage == stage and e.status == StageStatus.FAILED)

    def summary(self) -> dict:
        return {stage.value: self.get(stage).value for stage in ProcessingStage}


class Recommendation(BaseModel):
    area: str = Field(..., min_length=1, max_length=100)
    suggestion: str = Field(..., min_length=1, max_length=1000)
    priority: Priority
    examples: List[str] = Field(default_factory=list)


class DetailedScores(BaseModel):
    """Category scores, each 0-100."""
    content_relevance: float = Field(..., ge=0, le=100)
    communication: float = Field(..., ge=0, le=100)
    confidence: float = Field(..., ge=0, le=100)
    structure: float = Field(..., ge=0, le=100)
    engagement: float = Field(..., ge=0, le=100)


class QuestionFeedback(BaseModel):
    question_id: str
    score: float = Field(..., ge=0, le=100)
    feedback: str = Field("", max_length=1000)
    improvements: List[str] = Field(default_factory=list)


class FeedbackReport(BaseModel):
    """Structured feedback produced by the analysis collaborator."""
    overall_rating: float = Field(..., ge=1, le=10)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    detailed_scores: DetailedScores
    question_feedback: List[QuestionFeedback] = Field(default_factory=list)
    summary: str = Field(..., max_length=2000)
    generated_at: datetime = Field(default_factory=utc_now)

    @validator('summary')
    def validate_summary(cls, v):
        if not v or not v.strip():
            raise ValueError('Summary cannot be empty')
        return v.strip()

    @property
    def overall_score(self) -> float:
        """Overall rating on the 0-100 scale used for display."""
        return self.overall_rating * 10


class VocalTone(BaseModel):
    confidence: float = Field(0.0, ge=0, le=1)
    clarity: float = Field(0.0, ge=0, le=1)
    enthusiasm: float = Field(0.0, ge=0, le=1)
    professionalism: float = Field(0.0, ge=0, le=1)


class SpeechPatterns(BaseModel):
    pace: float = Field(0.0, ge=0, description="Words per minute")
    average_pause_duration_ms: float = Field(0.0, ge=0)
    filler_words: List[str] = Field(default_factory=list)
    filler_count: int = Field(0, ge=0)
    long_pauses: int = Field(0, ge=0)


class SpeechMetrics(BaseModel):
    total_speaking_time_ms: int = Field(0, ge=0)
    total_words: int = Field(0, ge=0)
    unique_words: int = Field(0, ge=0)


class VocalAnalysis(BaseModel):
    """Delivery metrics produced by an out-of-process vocal analyzer."""
    overall_score: float = Field(..., ge=0, le=100)
    tone: VocalTone = Field(default_factory=VocalTone)
    speech_patterns: SpeechPatterns = Field(default_factory=SpeechPatterns)
    metrics: SpeechMetrics = Field(default_factory=SpeechMetrics)


class SessionRecording(BaseModel):
    """What was actually said during one interview, plus derived analysis."""
    id: str = Field(default_factory=new_id)
    interview_id: str
    owner_id: str
    transcript: List[TranscriptEntry] = Field(default_factory=list)
    transcript_complete: bool = False
    vocal_analysis: Optional[VocalAnalysis] = None
    feedback_report: Optional[FeedbackReport] = None
    feedback_generated_at: Optional[datetime] = None
    overall_score: Optional[float] = Field(None, ge=0, le=100)
    processing_status: ProcessingStatus = Field(default_factory=ProcessingStatus)
    session_status: SessionStatus = SessionStatus.ACTIVE
    cumulative_duration_ms: int = Field(0, ge=0)
    ended_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = Field(0, ge=0, description="Optimistic concurrency counter")

    @property
    def is_active(self) -> bool:
        return self.session_status == SessionStatus.ACTIVE

    @property
    def last_entry(self) -> Optional[TranscriptEntry]:
        return self.transcript[-1] if self.transcript else None

    def entries_by(self, speaker: Speaker) -> List[TranscriptEntry]:
        return [entry for entry in self.transcript if entry.speaker == speaker]

    def has_user_responses(self) -> bool:
        return any(entry.speaker == Speaker.USER for entry in self.transcript)

    def transcript_text(self, speaker: Optional[Speaker] = None) -> str:
        entries = self.entries_by(speaker) if speaker else self.transcript
        return " ".join(entry.text for entry in entries)

    def calculate_duration_ms(self, now: datetime) -> int:
        """Session duration: last entry end, else time elapsed since creation."""
        last = self.last_entry
        if last is not None:
            return last.timestamp_ms + (last.duration_ms or 0)
        return elapsed_ms(self.created_at, self.ended_at or now)
