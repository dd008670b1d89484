"""
Analysis Collaborator contract and its HTTP client.

The collaborator turns a transcript plus interview context into a
FeedbackReport. This module only makes HTTP calls to the analysis service;
there is no fallback logic here. A non-conforming response is an error,
never a partially accepted report.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import httpx
from pydantic import ValidationError as SchemaValidationError

from app.config import get_settings
from app.exceptions import RateLimitError, UpstreamAuthError, UpstreamError
from app.models.analysis_models import AnalysisRequest, InterviewContext, UserProfile
from app.models.session import FeedbackReport, TranscriptEntry
from app.utils.logger import get_logger

logger = get_logger(__name__)


class AnalysisCollaborator(ABC):
    """Anything that can produce a FeedbackReport from a transcript."""

    name = "base"

    @abstractmethod
    async def analyze(
        self,
        transcript: List[TranscriptEntry],
        context: InterviewContext,
        user_profile: Optional[UserProfile] = None,
        session_id: Optional[str] = None
    ) -> FeedbackReport:
        """
        Analyze a transcript.

        Raises:
            RateLimitError: The collaborator is throttling us
            UpstreamAuthError: The collaborator rejected our credentials
            UpstreamError: Any other failure, including malformed reports
        """
        pass

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class UserProfileProvider(ABC):
    """Source of optional personalisation hints for the analysis request."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        pass


class NullProfileProvider(UserProfileProvider):
    """Used when no profile store is wired in."""

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return None


class StaticProfileProvider(UserProfileProvider):
    """Profiles held in memory, keyed by user id."""

    def __init__(self, profiles: Optional[Dict[str, UserProfile]] = None):
        self.profiles = dict(profiles or {})

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(str(user_id))


class AnalysisServiceClient(AnalysisCollaborator):
    """
    HTTP client for the analysis microservice.

    POSTs ``AnalysisRequest`` JSON to ``{AI_SERVICE_URL}/analyze/feedback`` and
    validates the response body as a FeedbackReport.
    """

    name = "http"

    def __init__(self, base_url: str = None, timeout: float = None):
        settings = get_settings()
        self.base_url = (base_url or settings.AI_SERVICE_URL).rstrip("/")
        self.timeout = timeout or settings.AI_SERVICE_TIMEOUT

        # HTTP client
        self.client = httpx.AsyncClient(timeout=self.timeout)

        logger.info(f"Analysis service client initialized: {self.base_url}")

    async def health_check(self) -> bool:
        """
        Check if the analysis service is healthy

        Returns:
            bool: True if healthy, False otherwise
        """
        try:
            response = await self.client.get(f"{self.base_url}/health")
            if response.status_code == 200:
                return True
            logger.warning(f"Analysis service health check failed: {response.status_code}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Analysis service health check error: {e}")
            return False

    async def analyze(
        self,
        transcript: List[TranscriptEntry],
        context: InterviewContext,
        user_profile: Optional[UserProfile] = None,
        session_id: Optional[str] = None
    ) -> FeedbackReport:
        request = AnalysisRequest(
            session_id=session_id,
            transcript=transcript,
            context=context,
            user_profile=user_profile,
        )
        # Text only; audio references never leave the service
        payload = request.model_dump(mode="json", exclude={"transcript": {"__all__": {"audio_url"}}})

        logger.info(
            f"Requesting feedback analysis for {context.interview_type.value} interview "
            f"({len(transcript)} transcript entries)"
        )
        try:
            response = await self.client.post(f"{self.base_url}/analyze/feedback", json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Analysis service timed out: {e}")
            raise UpstreamError("Analysis service timed out", context={"timeout_seconds": self.timeout})
        except httpx.RequestError as e:
            logger.error(f"Failed to connect to analysis service: {e}")
            raise UpstreamError(f"Analysis service unavailable: {e}")

        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError:
            logger.error("Analysis service returned a non-JSON body")
            raise UpstreamError("Analysis service returned an invalid response")

        try:
            report = FeedbackReport.model_validate(data)
        except SchemaValidationError as e:
            logger.error(f"Analysis service returned a malformed report: {e.error_count()} errors")
            raise UpstreamError(
                "Analysis service returned a malformed feedback report",
                context={"errors": [err["msg"] for err in e.errors()][:10]},
            )

        logger.info(f"Feedback analysis received with overall rating {report.overall_rating}/10")
        return report

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status == 200:
            return
        if status == 429:
            logger.error("Analysis service rate limit exceeded")
            context = {}
            if response.headers.get("retry-after"):
                context["retry_after"] = response.headers["retry-after"]
            raise RateLimitError("Analysis service rate limit exceeded. Please try again later.", context=context)
        if status in (401, 403):
            logger.error(f"Analysis service rejected credentials: {status}")
            raise UpstreamAuthError("Analysis service authentication failed")
        logger.error(f"Feedback analysis failed: {status}")
        raise UpstreamError(f"Feedback analysis failed: {status}", context={"status_code": status})

    async def close(self) -> None:
        await self.client.aclose()
