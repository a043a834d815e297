"""FastAPI dependency injection — DB sessions, the service, and the actor.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on
error; the service and repositories only ``flush()``.
"""

import hmac
import logging
from typing import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auditking.library import TemplateLibrary
from auditking.models.answer import Actor
from auditking.service import InspectionService
from auditking_db.engine import session_scope

logger = logging.getLogger(__name__)

KNOWN_ROLES = ("admin", "manager", "inspector")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped unit of work (see ``auditking_db.engine.session_scope``)."""
    async with session_scope() as session:
        yield session


def get_service(request: Request) -> InspectionService:
    """Return the service singleton from ``app.state``."""
    return request.app.state.service


def get_library(request: Request) -> TemplateLibrary:
    return request.app.state.library


async def get_actor(
    request: Request,
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_user_name: str | None = Header(None, alias="X-User-Name"),
    x_user_role: str | None = Header(None, alias="X-User-Role"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> Actor:
    """Build the acting user from identity headers set by the gateway.

    ``X-User-ID`` is required (401 without it).  Unknown roles are treated
    as ``inspector``.  When ``TRUSTED_PROXY_SECRET`` is configured the
    request must also carry a matching ``X-Proxy-Secret``.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is required")

    expected_secret: str | None = request.app.state.settings.trusted_proxy_secret
    if expected_secret:
        if not x_proxy_secret:
            raise HTTPException(status_code=403, detail="X-Proxy-Secret header is required")
        # Constant-time comparison
        if not hmac.compare_digest(x_proxy_secret, expected_secret):
            raise HTTPException(status_code=403, detail="Invalid proxy secret")

    role = (x_user_role or "inspector").strip().lower()
    if role not in KNOWN_ROLES:
        logger.warning("Unknown role %r for user %s; using inspector", x_user_role, x_user_id)
        role = "inspector"
    return Actor(user_id=x_user_id, name=x_user_name or None, role=role)
