"""Owner-or-admin authorization rule for course-scoped resources."""

from typing import Optional

from knowledge_chakra.exceptions import ForbiddenError
from knowledge_chakra.models import User, UserRole


def is_owner_or_admin(user: User, owner_id: Optional[int]) -> bool:
    """True when ``user`` owns the resource or is an admin."""

    if user.role == UserRole.ADMIN:
        return True
    return owner_id is not None and user.id == owner_id


def ensure_owner_or_admin(user: User, owner_id: Optional[int], message: str = "Not authorized") -> None:
    if not is_owner_or_admin(user, owner_id):
        raise ForbiddenError(message)
