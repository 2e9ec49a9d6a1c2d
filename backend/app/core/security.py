"""
Identity token verification

Tokens are issued by the external identity provider and signed with the
shared SECRET_KEY. This module only verifies them and extracts the profile
id; create_access_token exists for service-to-service calls and tests.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt

from app.core.config import settings
from app.logging_config import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    """Capability variant resolved once per request."""
    ADMIN = "admin"
    OPERATOR = "operator"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""
    user_id: int
    role: Role
    full_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_operator(self) -> bool:
        return self.role is Role.OPERATOR


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a signed access token for a profile id."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(user_id),
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def get_user_from_token(token: str, expected_type: str = "access") -> Optional[int]:
    """
    Decode a token and return the profile id it names.

    Returns None for expired, tampered or malformed tokens.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected invalid access token: {e}")
        return None

    if payload.get("type", "access") != expected_type:
        return None

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None
