"""
API key authentication and RBAC for protected endpoints.
"""
import logging
from typing import Optional
from fastapi import HTTPException, status, Security, Depends, Header
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.roles import Role, normalize_role, has_permission
from app.models.user import User

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


class APIClient:
    """Simple object representing an authenticated API client."""
    def __init__(self, source: str, role: str, user_id: Optional[int] = None):
        self.source = source  # "static" or "user"
        self.role = normalize_role(role)
        self.user_id = user_id  # Acting user for activity logging, if known


def get_current_api_client(
    api_key: Optional[str] = Security(api_key_header),
    x_user_id: Optional[int] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> APIClient:
    """
    Dependency to verify the API key and resolve the acting user.

    If API_KEY is not configured, authentication is disabled and every caller is
    treated as an admin. The optional X-User-Id header names the acting user; when
    it matches a row in the users table, that user's role is applied.

    Raises:
        HTTPException: If API key is missing or invalid
    """
    if settings.API_KEY and settings.API_KEY.strip() != "":
        if not api_key:
            logger.warning("API key missing from request")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing API key",
                headers={"WWW-Authenticate": "ApiKey"},
            )
        if api_key != settings.API_KEY:
            logger.warning(f"Invalid API key attempted: {api_key[:4]}...")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid API key",
                headers={"WWW-Authenticate": "ApiKey"},
            )
    else:
        logger.debug("API_KEY not configured - authentication is disabled (TESTING mode)")

    if x_user_id is not None:
        user = db.get(User, x_user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Unknown user {x_user_id}",
            )
        return APIClient(source="user", role=user.role, user_id=user.id)

    return APIClient(source="static", role=Role.ADMIN.value)


def require_role(min_role: str = Role.OUTLET_USER.value):
    """
    Dependency factory for role-based access control.

    Args:
        min_role: Minimum required role (outlet_user, manager, admin)
    """
    def check_role(client: APIClient = Depends(get_current_api_client)) -> APIClient:
        if not has_permission(client.role, min_role):
            normalized_min = normalize_role(min_role)
            logger.warning(
                f"Access denied: client role '{client.role}' does not meet minimum requirement '{normalized_min}'"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {normalized_min}",
            )
        return client

    return check_role
