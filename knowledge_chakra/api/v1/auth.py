"""Authentication API - signed bearer tokens, no external JWT dependency."""

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Form, Header, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from knowledge_chakra.config import get_settings
from knowledge_chakra.db import get_db
from knowledge_chakra.exceptions import ForbiddenError, InvalidStateError, UnauthorizedError
from knowledge_chakra.logging_config import get_logger
from knowledge_chakra.models import User, UserRole

router = APIRouter()
logger = get_logger(__name__)


# === Schemas ===

class Token(BaseModel):
    access_token: str
    token_type: str


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: UserRole = UserRole.STUDENT


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole

    class Config:
        from_attributes = True


# === Token helpers ===

def hash_password(password: str) -> str:
    """Salted SHA-256 of the password, keyed by the app secret."""
    salt = get_settings().secret_key
    return hashlib.sha256(f"{salt}{password}".encode()).hexdigest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return hmac.compare_digest(hash_password(plain_password), hashed_password)


def _sign(payload_b64: str) -> str:
    secret = get_settings().secret_key
    return hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).hexdigest()


def create_token(user_id: int, role: str) -> str:
    """Create a ``<base64 payload>.<hmac>`` token."""
    expire = datetime.now(timezone.utc) + timedelta(hours=get_settings().token_expire_hours)
    payload = {
        "sub": user_id,
        "role": role,
        "exp": expire.isoformat()
    }
    payload_b64 = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()
    return f"{payload_b64}.{_sign(payload_b64)}"


def decode_token(token: str) -> Optional[dict]:
    """Return the payload of a valid, unexpired token, else None."""
    parts = token.split(".")
    if len(parts) != 2:
        return None
    payload_b64, signature = parts
    if not hmac.compare_digest(signature, _sign(payload_b64)):
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64.encode()).decode())
        exp = datetime.fromisoformat(payload["exp"])
    except (ValueError, KeyError, TypeError):
        return None
    if datetime.now(timezone.utc) > exp:
        return None
    return payload


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


# === Dependencies ===

async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the caller from the bearer token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("No token, authorization denied")

    payload = decode_token(authorization[7:])
    if not payload or payload.get("sub") is None:
        raise UnauthorizedError("Token is not valid")

    user = db.get(User, payload["sub"])
    if user is None:
        raise UnauthorizedError("Token is not valid")
    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Dependency factory allowing only the given roles."""

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise ForbiddenError("Forbidden - insufficient permissions")
        return current_user

    return checker


require_staff = require_roles(UserRole.TEACHER, UserRole.ADMIN)
require_admin = require_roles(UserRole.ADMIN)


# === API endpoints ===

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a student or teacher account."""
    if user_data.role == UserRole.ADMIN:
        raise ForbiddenError("Admin accounts cannot be self-registered")
    if get_user_by_email(db, user_data.email):
        raise InvalidStateError("Email is already registered", field="email")

    user = User(
        email=normalize_email(user_data.email),
        password_hash=hash_password(user_data.password),
        first_name=user_data.first_name.strip(),
        last_name=user_data.last_name.strip(),
        role=user_data.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s as %s", user.id, user.role.value)
    return user


@router.post("/login", response_model=Token)
async def login(
    username: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db)
):
    """Log in with email (form field ``username``) and password."""
    user = get_user_by_email(db, username)
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", normalize_email(username))
        raise UnauthorizedError("Invalid email or password")

    access_token = create_token(user.id, user.role.value)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Current user's profile."""
    return current_user
