from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.dependencies import get_interview_service
from app.middleware.auth_middleware import get_current_user_id
from app.models.schemas import (
    AddQuestionsRequest,
    CancelInterviewRequest,
    CompleteInterviewRequest,
    CreateInterviewRequest,
    InterviewListResponse,
    InterviewResponse,
)
from app.services.interview_service import InterviewService

router = APIRouter(prefix="/api/v1/interviews", tags=["interviews"])


def _to_response(interview) -> InterviewResponse:
    return InterviewResponse.model_validate(interview.model_dump())


@router.post("/", response_model=InterviewResponse, status_code=201)
async def create_interview(
    request: CreateInterviewRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    """Create a new interview in pending status."""
    interview = await service.create_interview(
        owner_id=user_id,
        interview_type=request.interview_type,
        difficulty=request.difficulty,
        duration_minutes=request.duration_minutes,
        custom_prompt=request.custom_prompt,
        tags=request.tags,
    )
    return _to_response(interview)


@router.get("/", response_model=InterviewListResponse)
async def list_interviews(
    status: Optional[str] = Query(None, description="Filter by interview status"),
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    """List the requester's interviews, newest first."""
    interviews = await service.list_interviews(user_id, status=status)
    return InterviewListResponse(
        interviews=[_to_response(i) for i in interviews],
        total=len(interviews),
    )


@router.get("/{interview_id}", response_model=InterviewResponse)
async def get_interview(
    interview_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    return _to_response(await service.get_interview(interview_id, user_id))


@router.post("/{interview_id}/start", response_model=InterviewResponse)
async def start_interview(
    interview_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    return _to_response(await service.start_interview(interview_id, user_id))


@router.post("/{interview_id}/complete", response_model=InterviewResponse)
async def complete_interview(
    interview_id: str,
    request: Optional[CompleteInterviewRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    score = request.score if request else None
    return _to_response(await service.complete_interview(interview_id, user_id, score=score))


@router.post("/{interview_id}/cancel", response_model=InterviewResponse)
async def cancel_interview(
    interview_id: str,
    request: Optional[CancelInterviewRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    reason = request.reason if request else None
    return _to_response(await service.cancel_interview(interview_id, user_id, reason=reason))


@router.post("/{interview_id}/questions", response_model=InterviewResponse)
async def add_questions(
    interview_id: str,
    request: AddQuestionsRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterviewService = Depends(get_interview_service)
):
    """Attach generated questions to a pending or active interview."""
    interview = await service.add_questions(interview_id, user_id, request.as_payload())
    return _to_response(interview)
