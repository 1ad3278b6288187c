"""
Shared FastAPI dependencies
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.security import AdminCredentials
from app.domain.errors import ForbiddenError, InternalError
from app.infrastructure.db.database import get_session_factory
from app.services.container import LedgerServices, build_services


def get_services(factory: async_sessionmaker = Depends(get_session_factory)) -> LedgerServices:
    return build_services(factory)


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Acting user, as asserted by the upstream auth layer"""
    if not x_user_id or not x_user_id.strip():
        raise ForbiddenError("X-User-Id header is required")
    return x_user_id.strip()


def require_admin(
    request: Request,
    x_admin_token: Optional[str] = Header(default=None),
    x_admin_id: Optional[str] = Header(default=None),
) -> str:
    """Returns the acting admin's name (used for approved_by)"""
    credentials: Optional[AdminCredentials] = getattr(request.app.state, "admin_credentials", None)
    if credentials is None:
        raise InternalError("Admin credentials are not configured")
    if not credentials.verify(x_admin_token):
        raise ForbiddenError("Admin access required")
    return (x_admin_id or "admin").strip() or "admin"
