"""
Transcript Service

Appends dialogue turns to a recording. Entries are immutable once written and
their server-assigned timestamps never go backwards.
"""
from dataclasses import dataclass
from typing import Any, Optional, Union

from app.config import get_settings
from app.exceptions import InvalidStateError, ValidationError
from app.models.session import (
    MAX_TRANSCRIPT_TEXT_LENGTH,
    SessionRecording,
    Speaker,
    TranscriptEntry,
)
from app.services.session_service import load_session
from app.services.storage.base import StorageGateway
from app.utils.error_handling import update_with_retry, with_logging
from app.utils.logger import get_logger
from app.utils.time_utils import Clock, elapsed_ms, utc_now

logger = get_logger(__name__)


@dataclass
class AppendResult:
    entry: TranscriptEntry
    total_entries: int
    cumulative_duration_ms: int


def _parse_speaker(speaker: Any) -> Speaker:
    if isinstance(speaker, Speaker):
        return speaker
    try:
        return Speaker(str(speaker).strip().lower())
    except ValueError:
        valid = [s.value for s in Speaker]
        raise ValidationError(
            f"Speaker must be one of: {', '.join(valid)}",
            context={"received": speaker, "allowed": valid},
        )


class TranscriptService:
    """Transcript accumulator for session recordings."""

    def __init__(self, storage: StorageGateway, clock: Clock = utc_now, settings=None):
        settings = settings or get_settings()
        self.storage = storage
        self.clock = clock
        self.max_write_attempts = settings.STORAGE_WRITE_RETRIES

    @staticmethod
    def _validate_entry_input(text, duration_ms, confidence, audio_url) -> str:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Transcript text is required")
        text = text.strip()
        if len(text) > MAX_TRANSCRIPT_TEXT_LENGTH:
            raise ValidationError(
                f"Transcript text cannot exceed {MAX_TRANSCRIPT_TEXT_LENGTH} characters",
                context={"length": len(text)},
            )
        if duration_ms is not None:
            if isinstance(duration_ms, bool) or not isinstance(duration_ms, int) or duration_ms < 0:
                raise ValidationError("Duration must be a non-negative number of milliseconds")
        if confidence is not None:
            if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) \
                    or not 0 <= confidence <= 1:
                raise ValidationError("Confidence must be between 0 and 1")
        if audio_url is not None and not isinstance(audio_url, str):
            raise ValidationError("Audio URL must be a string")
        return text

    @with_logging("append_entry")
    async def append_entry(
        self,
        session_id: str,
        requester_id: str,
        speaker: Union[str, Speaker],
        text: str,
        duration_ms: Optional[int] = None,
        confidence: Optional[float] = None,
        audio_url: Optional[str] = None
    ) -> AppendResult:
        """
        Append one entry to an active recording.

        The timestamp is the elapsed server time since the recording was
        created, raised to the previous entry's timestamp if the clock would
        put it earlier.
        """
        speaker = _parse_speaker(speaker)
        text = self._validate_entry_input(text, duration_ms, confidence, audio_url)

        def apply(session: SessionRecording) -> SessionRecording:
            if not session.is_active:
                raise InvalidStateError(
                    "Cannot add transcript entries to a session that has ended",
                    context={"session_status": session.session_status.value},
                )
            timestamp_ms = elapsed_ms(session.created_at, self.clock())
            last = session.last_entry
            if last is not None and timestamp_ms < last.timestamp_ms:
                timestamp_ms = last.timestamp_ms

            entry = TranscriptEntry(
                speaker=speaker,
                text=text,
                timestamp_ms=timestamp_ms,
                duration_ms=duration_ms,
                confidence=confidence,
                audio_url=audio_url,
            )
            session.transcript.append(entry)
            session.cumulative_duration_ms = timestamp_ms + (duration_ms or 0)
            session.updated_at = self.clock()
            return session

        session = update_with_retry(
            load=lambda: load_session(self.storage, session_id, requester_id),
            apply=apply,
            save=self.storage.save_session,
            max_attempts=self.max_write_attempts,
            description=f"transcript of session {session_id}",
        )
        entry = session.last_entry
        logger.debug(f"Appended {speaker.value} entry at {entry.timestamp_ms} ms to session {session_id}")
        return AppendResult(
            entry=entry,
            total_entries=len(session.transcript),
            cumulative_duration_ms=session.cumulative_duration_ms,
        )

    async def get_transcript_text(
        self,
        session_id: str,
        requester_id: str,
        speaker: Optional[Union[str, Speaker]] = None
    ) -> str:
        """Join entry texts, optionally only those of one speaker."""
        if speaker is not None:
            speaker = _parse_speaker(speaker)
        session = load_session(self.storage, session_id, requester_id)
        return session.transcript_text(speaker)
