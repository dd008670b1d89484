"""
Unit tests for the small helpers: ownership checks, clocks and identifiers.
"""
import re
from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import ForbiddenError
from app.services.access_guard import assert_ownership
from app.utils.time_utils import elapsed_ms, utc_now
from app.utils.uuid_utils import generate_session_token, new_id


class TestAccessGuard:

    @pytest.mark.unit
    def test_owner_passes(self):
        assert_ownership("user-1", "user-1", "interview")

    @pytest.mark.unit
    def test_ids_compared_as_strings(self):
        assert_ownership(42, "42")

    @pytest.mark.unit
    def test_other_user_is_forbidden(self):
        with pytest.raises(ForbiddenError) as exc_info:
            assert_ownership("user-1", "user-2", "session")
        assert exc_info.value.context == {"resource": "session"}


class TestTimeUtils:

    @pytest.mark.unit
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    @pytest.mark.unit
    def test_elapsed_ms(self):
        start = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)
        assert elapsed_ms(start, start + timedelta(seconds=2, milliseconds=500)) == 2500

    @pytest.mark.unit
    def test_elapsed_ms_never_negative(self):
        start = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)
        assert elapsed_ms(start, start - timedelta(seconds=1)) == 0

    @pytest.mark.unit
    def test_elapsed_ms_treats_naive_as_utc(self):
        """SQLite hands back naive datetimes."""
        start = datetime(2025, 1, 15, 9, 0)
        end = datetime(2025, 1, 15, 9, 0, 1, tzinfo=timezone.utc)
        assert elapsed_ms(start, end) == 1000


class TestIdentifiers:

    @pytest.mark.unit
    def test_new_id_is_unique(self):
        assert new_id() != new_id()

    @pytest.mark.unit
    def test_session_token_format(self):
        token = generate_session_token("session")
        assert re.fullmatch(r"session_\d+_[0-9a-f]{32}", token)

    @pytest.mark.unit
    def test_session_tokens_are_unique(self):
        tokens = {generate_session_token() for _ in range(100)}
        assert len(tokens) == 100
