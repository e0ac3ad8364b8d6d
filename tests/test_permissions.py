import pytest

from knowledge_chakra.exceptions import ForbiddenError
from knowledge_chakra.models import User, UserRole
from knowledge_chakra.services.permissions import ensure_owner_or_admin, is_owner_or_admin


def _user(user_id, role):
    return User(id=user_id, email=f"u{user_id}@example.com", password_hash="x",
                first_name="U", last_name=str(user_id), role=role)


def test_owner_is_allowed():
    assert is_owner_or_admin(_user(1, UserRole.TEACHER), 1)


def test_admin_is_allowed_on_any_resource():
    assert is_owner_or_admin(_user(9, UserRole.ADMIN), 1)
    assert is_owner_or_admin(_user(9, UserRole.ADMIN), None)


def test_other_users_are_denied():
    assert not is_owner_or_admin(_user(2, UserRole.TEACHER), 1)
    assert not is_owner_or_admin(_user(1, UserRole.STUDENT), None)


def test_ensure_owner_or_admin_raises_forbidden():
    with pytest.raises(ForbiddenError) as exc_info:
        ensure_owner_or_admin(_user(2, UserRole.STUDENT), 1, "Not yours")
    assert exc_info.value.status_code == 403
    assert exc_info.value.to_dict() == {"detail": "Not yours", "code": "FORBIDDEN"}
