"""
dependencies.py
---------------
FastAPI dependencies: authorization guard and collaborator lookups.

Flow:
  1. OAuth2PasswordBearer extracts the Bearer token from the Authorization
     header (auto_error=False: a missing token is reported by the resolver
     as Unauthenticated, with the same error body as a bad token).
  2. IdentityContextResolver (built at startup, kept on app.state) turns
     the token into a Principal. No DB round-trip.
  3. require_admin layers a role check on top of require_session.

Guards are route dependencies, so they finish before any repository call.
The org_id every service receives is principal.org_id, never a payload value.
"""

from typing import Annotated, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from offerdesk.core.errors import RateLimited, ServiceUnavailable
from offerdesk.core.identity import IdentityContextResolver, Principal, ensure_admin
from offerdesk.core.logging import get_logger
from offerdesk.db.session import get_db
from offerdesk.services.integrations import PdfRenderer

logger = get_logger(__name__)

# tokenUrl must match the login endpoint path
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)


def get_identity_resolver(request: Request) -> IdentityContextResolver:
    return request.app.state.identity_resolver


async def require_session(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    resolver: Annotated[IdentityContextResolver, Depends(get_identity_resolver)],
) -> Principal:
    """
    Raises Unauthenticated (no / bad token) or MissingOrganization.
    """
    return resolver.resolve_context(token)


async def require_admin(
    principal: Annotated[Principal, Depends(require_session)],
) -> Principal:
    """Raises Forbidden for a non-admin session."""
    return ensure_admin(principal)


def rate_limited(key: str) -> Callable:
    """
    Dependency factory consulting app.state.rate_limiter under `key`.
    No limiter configured means every request passes.
    """

    async def check_rate_limit(request: Request) -> None:
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is None:
            return
        result = await limiter.limit_request(request, key)
        if not result.ok:
            logger.warning(
                "Request rate limited",
                key=key,
                path=request.url.path,
                retry_after=result.retry_after,
            )
            raise RateLimited(result.retry_after)

    return check_rate_limit


def get_pdf_renderer(request: Request) -> PdfRenderer:
    renderer = getattr(request.app.state, "pdf_renderer", None)
    if renderer is None:
        raise ServiceUnavailable("PDF export is not configured")
    return renderer


# ── Shorthands for route signatures ──────────────────────────────────────────
DbSession = Annotated[AsyncSession, Depends(get_db)]
SessionPrincipal = Annotated[Principal, Depends(require_session)]
AdminPrincipal = Annotated[Principal, Depends(require_admin)]
