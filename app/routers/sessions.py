from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.dependencies import (
    get_feedback_orchestrator,
    get_processing_tracker,
    get_session_service,
    get_transcript_service,
)
from app.middleware.auth_middleware import get_current_user_id
from app.models.schemas import (
    AppendTranscriptRequest,
    AppendTranscriptResponse,
    CreateSessionRequest,
    FeedbackResponse,
    ProcessingStatusResponse,
    SessionRecordingResponse,
    TranscriptTextResponse,
)
from app.services.feedback_service import FeedbackOrchestrator
from app.services.processing_tracker import ProcessingStatusTracker
from app.services.session_service import SessionService
from app.services.transcript_service import TranscriptService

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


def _to_response(session) -> SessionRecordingResponse:
    return SessionRecordingResponse.model_validate(session.model_dump())


@router.post("/", response_model=SessionRecordingResponse, status_code=201)
async def create_session(
    request: CreateSessionRequest,
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service)
):
    """Open the session recording of an active interview."""
    return _to_response(await service.create_session(request.interview_id, user_id))


@router.get("/interview/{interview_id}", response_model=SessionRecordingResponse)
async def get_session_by_interview(
    interview_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service)
):
    return _to_response(await service.get_session_by_interview(interview_id, user_id))


@router.get("/{session_id}", response_model=SessionRecordingResponse)
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service)
):
    return _to_response(await service.get_session(session_id, user_id))


@router.post("/{session_id}/transcript", response_model=AppendTranscriptResponse, status_code=201)
async def append_transcript_entry(
    session_id: str,
    request: AppendTranscriptRequest,
    user_id: str = Depends(get_current_user_id),
    service: TranscriptService = Depends(get_transcript_service)
):
    """Append one dialogue turn. The server assigns the timestamp."""
    result = await service.append_entry(
        session_id,
        user_id,
        speaker=request.speaker,
        text=request.text,
        duration_ms=request.duration_ms,
        confidence=request.confidence,
        audio_url=request.audio_url,
    )
    return AppendTranscriptResponse(
        entry=result.entry,
        total_entries=result.total_entries,
        cumulative_duration_ms=result.cumulative_duration_ms,
    )


@router.get("/{session_id}/transcript/text", response_model=TranscriptTextResponse)
async def get_transcript_text(
    session_id: str,
    speaker: Optional[str] = Query(None, description="Only include entries by this speaker"),
    user_id: str = Depends(get_current_user_id),
    service: TranscriptService = Depends(get_transcript_service)
):
    text = await service.get_transcript_text(session_id, user_id, speaker=speaker)
    return TranscriptTextResponse(session_id=session_id, speaker=speaker, text=text)


@router.post("/{session_id}/end", response_model=SessionRecordingResponse)
async def end_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service)
):
    return _to_response(await service.end_session(session_id, user_id))


@router.post("/{session_id}/feedback", response_model=FeedbackResponse)
async def generate_feedback(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    orchestrator: FeedbackOrchestrator = Depends(get_feedback_orchestrator)
):
    """Analyze the transcript and store the feedback report. Runs once per session."""
    result = await orchestrator.generate_feedback(session_id, user_id)
    return FeedbackResponse(
        session_id=session_id,
        feedback_report=result.report,
        overall_score=result.overall_score,
        processing_status=result.processing_status.summary(),
    )


@router.get("/{session_id}/feedback", response_model=FeedbackResponse)
async def get_feedback(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service)
):
    session = await service.get_session(session_id, user_id)
    report = await service.get_feedback(session_id, user_id)
    return FeedbackResponse(
        session_id=session_id,
        feedback_report=report,
        overall_score=session.overall_score if session.overall_score is not None else report.overall_score,
        processing_status=session.processing_status.summary(),
    )


@router.get("/{session_id}/processing-status", response_model=ProcessingStatusResponse)
async def get_processing_status(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    tracker: ProcessingStatusTracker = Depends(get_processing_tracker)
):
    status = await tracker.get_processing_status(session_id, user_id)
    return ProcessingStatusResponse(
        session_id=session_id,
        transcription=status.transcription,
        analysis=status.analysis,
        feedback=status.feedback,
        history=status.history,
    )
