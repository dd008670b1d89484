"""
Ownership check shared by every session-pipeline operation.

Callers look the resource up first, so a missing resource is reported as
NotFoundError before ownership is ever considered.
"""
from app.exceptions import ForbiddenError
from app.utils.logger import get_logger

logger = get_logger(__name__)


def assert_ownership(resource_owner_id: str, requester_id: str, resource: str = "resource") -> None:
    """Raise ForbiddenError unless ``requester_id`` owns the resource."""
    if str(resource_owner_id) != str(requester_id):
        logger.warning(f"Denied access to {resource} owned by {resource_owner_id} for user {requester_id}")
        raise ForbiddenError(
            f"Access denied. You can only access your own {resource}s.",
            context={"resource": resource},
        )
