# Models package: domain models and API schemas

from .interview import Interview, InterviewQuestion, InterviewStatus, InterviewType, InterviewDifficulty
from .session import (
    SessionRecording, TranscriptEntry, ProcessingStatus, ProcessingStage, StageStatus,
    FeedbackReport, VocalAnalysis, Speaker
)

__all__ = [
    "Interview", "InterviewQuestion", "InterviewStatus", "InterviewType", "InterviewDifficulty",
    "SessionRecording", "TranscriptEntry", "ProcessingStatus", "ProcessingStage", "StageStatus",
    "FeedbackReport", "VocalAnalysis", "Speaker"
]
