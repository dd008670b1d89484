"""
Interview Service

State machine for the Interview resource:

    pending -> active -> completed
       \\         \\
        +---------+--> cancelled

Completed and cancelled are terminal; no transition ever returns to pending.
Every mutating operation checks existence, then ownership, then state.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as SchemaValidationError

from app.config import get_settings
from app.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.models.interview import (
    Interview,
    InterviewDifficulty,
    InterviewQuestion,
    InterviewStatus,
    InterviewType,
    MAX_CUSTOM_PROMPT_LENGTH,
    MAX_DURATION_MINUTES,
    MAX_TAG_LENGTH,
    MAX_TAGS,
    MIN_DURATION_MINUTES,
)
from app.services.access_guard import assert_ownership
from app.services.storage.base import StorageGateway
from app.utils.error_handling import update_with_retry, with_logging
from app.utils.logger import get_logger
from app.utils.time_utils import Clock, elapsed_ms, utc_now
from app.utils.uuid_utils import generate_session_token

logger = get_logger(__name__)

MAX_CANCELLATION_REASON_LENGTH = 200


def parse_choice(enum_cls, value: Any, label: str):
    """Coerce a raw value into an enum member or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    valid = [member.value for member in enum_cls]
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required", context={"allowed": valid})
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"{label} must be one of: {', '.join(valid)}",
            context={"received": value, "allowed": valid},
        )


class InterviewService:
    """Service for creating interviews and moving them through their lifecycle."""

    def __init__(self, storage: StorageGateway, clock: Clock = utc_now, settings=None):
        settings = settings or get_settings()
        self.storage = storage
        self.clock = clock
        self.token_prefix = settings.SESSION_TOKEN_PREFIX
        self.expiration_hours = settings.INTERVIEW_EXPIRATION_HOURS
        self.max_write_attempts = settings.STORAGE_WRITE_RETRIES

    # Creation
    @with_logging("create_interview")
    async def create_interview(
        self,
        owner_id: str,
        interview_type: Union[str, InterviewType],
        difficulty: Union[str, InterviewDifficulty],
        duration_minutes: int = 30,
        custom_prompt: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> Interview:
        """Validate the request and create an interview in ``pending``."""
        interview_type = parse_choice(InterviewType, interview_type, "Interview type")
        difficulty = parse_choice(InterviewDifficulty, difficulty, "Interview difficulty")
        duration_minutes = self._validate_duration(duration_minutes)
        custom_prompt = self._validate_custom_prompt(custom_prompt)
        tags = self._validate_tags(tags)

        now = self.clock()
        interview = Interview(
            owner_id=str(owner_id),
            interview_type=interview_type,
            difficulty=difficulty,
            duration_minutes=duration_minutes,
            session_token=generate_session_token(self.token_prefix),
            custom_prompt=custom_prompt,
            tags=tags,
            created_at=now,
            updated_at=now,
        )
        stored = self.storage.create_interview(interview)
        logger.info(f"Created {interview_type.value} interview {stored.id} for user {owner_id}")
        return stored

    @staticmethod
    def _validate_duration(duration_minutes: Any) -> int:
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, (int, float)):
            raise ValidationError("Duration must be a number")
        if isinstance(duration_minutes, float) and not duration_minutes.is_integer():
            raise ValidationError("Duration must be a whole number of minutes")
        duration_minutes = int(duration_minutes)
        if not MIN_DURATION_MINUTES <= duration_minutes <= MAX_DURATION_MINUTES:
            raise ValidationError(
                f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes",
                context={"received": duration_minutes},
            )
        return duration_minutes

    @staticmethod
    def _validate_custom_prompt(custom_prompt: Any) -> Optional[str]:
        if custom_prompt is None:
            return None
        if not isinstance(custom_prompt, str):
            raise ValidationError("Custom prompt must be a string")
        custom_prompt = custom_prompt.strip()
        if len(custom_prompt) > MAX_CUSTOM_PROMPT_LENGTH:
            raise ValidationError(f"Custom prompt cannot exceed {MAX_CUSTOM_PROMPT_LENGTH} characters")
        return custom_prompt or None

    @staticmethod
    def _validate_tags(tags: Any) -> List[str]:
        if tags is None:
            return []
        if not isinstance(tags, list):
            raise ValidationError("Tags must be a list of strings")
        if len(tags) > MAX_TAGS:
            raise ValidationError(f"Cannot have more than {MAX_TAGS} tags")
        cleaned = []
        for tag in tags:
            if not isinstance(tag, str) or not tag.strip():
                raise ValidationError("Each tag must be a non-empty string")
            if len(tag.strip()) > MAX_TAG_LENGTH:
                raise ValidationError(f"Each tag cannot exceed {MAX_TAG_LENGTH} characters")
            cleaned.append(tag.strip())
        return cleaned

    # Retrieval
    def _load_owned(self, interview_id: str, requester_id: str) -> Interview:
        interview = self.storage.get_interview(interview_id)
        if interview is None:
            raise NotFoundError("Interview not found", context={"interview_id": interview_id})
        assert_ownership(interview.owner_id, requester_id, "interview")
        return interview

    async def get_interview(self, interview_id: str, requester_id: str) -> Interview:
        return self._load_owned(interview_id, requester_id)

    async def list_interviews(
        self,
        owner_id: str,
        status: Optional[Union[str, InterviewStatus]] = None
    ) -> List[Interview]:
        interviews = self.storage.list_interviews(str(owner_id))
        if status is not None:
            status = parse_choice(InterviewStatus, status, "Interview status")
            interviews = [i for i in interviews if i.status == status]
        return interviews

    # Transitions
    def _update(self, interview_id: str, requester_id: str, apply, description: str) -> Interview:
        return update_with_retry(
            load=lambda: self._load_owned(interview_id, requester_id),
            apply=apply,
            save=self.storage.save_interview,
            max_attempts=self.max_write_attempts,
            description=f"{description} of interview {interview_id}",
        )

    @with_logging("start_interview")
    async def start_interview(self, interview_id: str, requester_id: str) -> Interview:
        """pending -> active. Expired pending interviews cannot be started."""
        def apply(interview: Interview) -> Interview:
            if interview.status != InterviewStatus.PENDING:
                raise InvalidStateError(
                    "Interview can only be started from pending status",
                    context={"status": interview.status.value},
                )
            now = self.clock()
            if interview.is_expired(now, self.expiration_hours):
                raise InvalidStateError(
                    f"Interview expired {self.expiration_hours} hours after creation and can no longer be started",
                    context={"status": interview.status.value},
                )
            interview.status = InterviewStatus.ACTIVE
            interview.started_at = now
            interview.updated_at = now
            return interview

        interview = self._update(interview_id, requester_id, apply, "start")
        logger.info(f"Interview {interview_id} started")
        return interview

    @with_logging("complete_interview")
    async def complete_interview(
        self,
        interview_id: str,
        requester_id: str,
        score: Optional[float] = None
    ) -> Interview:
        """active -> completed, recording completion time and actual duration."""
        if score is not None:
            if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0 <= score <= 100:
                raise ValidationError("Score must be a number between 0 and 100")

        def apply(interview: Interview) -> Interview:
            if interview.status != InterviewStatus.ACTIVE:
                raise InvalidStateError(
                    "Only active interviews can be completed",
                    context={"status": interview.status.value},
                )
            now = self.clock()
            interview.status = InterviewStatus.COMPLETED
            interview.completed_at = now
            if interview.started_at is not None:
                interview.actual_duration_minutes = round(elapsed_ms(interview.started_at, now) / 60000)
            if score is not None:
                interview.score = float(score)
            interview.updated_at = now
            return interview

        interview = self._update(interview_id, requester_id, apply, "completion")
        logger.info(f"Interview {interview_id} completed after {interview.actual_duration_minutes} minutes")
        return interview

    @with_logging("cancel_interview")
    async def cancel_interview(
        self,
        interview_id: str,
        requester_id: str,
        reason: Optional[str] = None
    ) -> Interview:
        """pending | active -> cancelled."""
        if reason is not None:
            if not isinstance(reason, str):
                raise ValidationError("Cancellation reason must be a string")
            reason = reason.strip()[:MAX_CANCELLATION_REASON_LENGTH] or None

        def apply(interview: Interview) -> Interview:
            if interview.is_terminal:
                raise InvalidStateError(
                    f"Interview is already {interview.status.value} and cannot be cancelled",
                    context={"status": interview.status.value},
                )
            now = self.clock()
            interview.status = InterviewStatus.CANCELLED
            interview.cancellation_reason = reason
            interview.updated_at = now
            return interview

        interview = self._update(interview_id, requester_id, apply, "cancellation")
        logger.info(f"Interview {interview_id} cancelled")
        return interview

    @with_logging("add_questions")
    async def add_questions(
        self,
        interview_id: str,
        requester_id: str,
        questions: List[Union[str, Dict[str, Any]]]
    ) -> Interview:
        """Append generated questions while the interview is pending or active."""
        if not isinstance(questions, list) or not questions:
            raise ValidationError("At least one question is required")
        for question in questions:
            if not isinstance(question, (str, dict)):
                raise ValidationError("Each question must be a string or an object with a 'text' field")

        def apply(interview: Interview) -> Interview:
            if interview.is_terminal:
                raise InvalidStateError(
                    f"Cannot add questions to a {interview.status.value} interview",
                    context={"status": interview.status.value},
                )
            start = len(interview.questions)
            for offset, raw in enumerate(questions):
                data = {"text": raw} if isinstance(raw, str) else dict(raw)
                data.pop("id", None)
                data["order"] = start + offset
                if isinstance(data.get("text"), str):
                    data["text"] = data["text"].strip()
                try:
                    interview.questions.append(InterviewQuestion(**data))
                except SchemaValidationError as e:
                    raise ValidationError(
                        f"Invalid question at position {offset}",
                        context={"errors": [err["msg"] for err in e.errors()]},
                    )
            interview.updated_at = self.clock()
            return interview

        interview = self._update(interview_id, requester_id, apply, "question update")
        logger.info(f"Added {len(questions)} questions to interview {interview_id}")
        return interview
