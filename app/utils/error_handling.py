"""
Error handling utilities for consistent error management across services.
"""

import functools
from typing import Callable, TypeVar
from app.exceptions import CoachException, StaleWriteError
from app.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def update_with_retry(
    load: Callable[[], T],
    apply: Callable[[T], T],
    save: Callable[[T], T],
    max_attempts: int = 3,
    description: str = "document"
) -> T:
    """
    Optimistic read-modify-write loop.

    ``apply`` runs against a fresh copy on every attempt, so the business checks
    it performs are re-evaluated after a concurrent write. Only StaleWriteError is
    retried; any other error from ``apply`` or ``save`` propagates immediately.

    Args:
        load: Returns the latest copy (raises NotFoundError when absent)
        apply: Mutates and returns the copy
        save: Persists the copy with a version check
        max_attempts: Attempts before the StaleWriteError is surfaced
        description: Used in log messages
    """
    for attempt in range(1, max_attempts + 1):
        updated = apply(load())
        try:
            return save(updated)
        except StaleWriteError:
            if attempt >= max_attempts:
                logger.error(f"Giving up on {description} after {attempt} stale writes")
                raise
            logger.warning(f"Stale write on {description} (attempt {attempt}/{max_attempts}), retrying")
    raise StaleWriteError(f"Could not update {description}")


def with_logging(operation: str = None):
    """
    Decorator for async service operations: logs typed failures as warnings and
    anything else as errors, then re-raises.

    Usage:
        @with_logging("start_interview")
        async def start_interview(self, interview_id, requester_id):
            ...
    """
    def decorator(func: Callable) -> Callable:
        op_name = operation or func.__name__

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except CoachException as e:
                logger.warning(f"{op_name} rejected ({e.kind}): {e.message}")
                raise
            except Exception as e:
                logger.error(f"Unexpected error in {op_name}: {e}")
                raise
        return wrapper
    return decorator
