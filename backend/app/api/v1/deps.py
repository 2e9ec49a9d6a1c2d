"""
API Dependencies

Authentication dependencies and common query parameter dependencies.

The bearer token is resolved into a Principal exactly once per request;
endpoints then depend on require_admin or require_staff instead of
inspecting roles themselves.
"""
from typing import Annotated, Optional

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.security import Principal, Role, get_user_from_token
from app.db.session import get_db
from app.exceptions import AuthenticationError, InvalidTokenError, PermissionDeniedError
from app.logging_config import get_logger
from app.models.profile import UserProfile
from app.schemas.common import PaginationParams

logger = get_logger(__name__)

# Tokens come from the identity provider; there is no login endpoint here
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolve the caller from the Authorization header.

    Raises:
        AuthenticationError 401 if no bearer token was sent
        InvalidTokenError 401 if the token is bad or names an unknown profile
        PermissionDeniedError 403 if the profile has no recognised role
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    user_id = get_user_from_token(credentials.credentials, expected_type="access")
    if user_id is None:
        raise InvalidTokenError("Could not validate credentials")

    profile = db.get(UserProfile, user_id)
    if profile is None:
        raise InvalidTokenError("Could not validate credentials")

    try:
        role = Role(profile.role)
    except ValueError:
        logger.warning(f"Profile {user_id} has unrecognised role '{profile.role}'")
        raise PermissionDeniedError("Account has no shop-floor role")

    return Principal(user_id=profile.id, role=role, full_name=profile.full_name)


def require_admin(
    principal: Annotated[Principal, Depends(get_current_principal)]
) -> Principal:
    """
    Dependency to require admin access.

    Use for catalog maintenance, order creation and the dashboard.
    """
    if not principal.is_admin:
        raise PermissionDeniedError("Admin access required", required_role=Role.ADMIN.value)
    return principal


def require_staff(
    principal: Annotated[Principal, Depends(get_current_principal)]
) -> Principal:
    """
    Dependency to require staff access (admin or operator).

    Endpoints using this narrow what operators see themselves, e.g. to
    their own work orders.
    """
    if principal.role not in (Role.ADMIN, Role.OPERATOR):
        raise PermissionDeniedError("Staff access required")
    return principal


def get_pagination_params(
    offset: int = Query(0, ge=0, description="Rows to skip"),
    limit: int = Query(50, ge=1, le=500, description="Page size (1-500)"),
) -> PaginationParams:
    return PaginationParams(offset=offset, limit=limit)


AdminPrincipal = Annotated[Principal, Depends(require_admin)]
StaffPrincipal = Annotated[Principal, Depends(require_staff)]
Pagination = Annotated[PaginationParams, Depends(get_pagination_params)]
