"""
Request identity for API endpoints.

The calling user and the domain root account are asserted by the fronting
gateway in the ``X-User-Id`` and ``X-Root-Account-Id`` headers. When
``auth_enabled`` is ``False`` (local / dev) a missing user header falls back
to ``LTR_DEV_USER_ID`` so the API stays usable without a gateway.

Usage::

    from api.auth import RequestContext, get_request_context

    @router.get("/example")
    async def example(ctx: RequestContext = Depends(get_request_context)):
        print(ctx.user_id, ctx.root_account_id)
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, Request

from lti_registry.settings import get_settings


@dataclass
class RequestContext:
    """Resolved identity for the current request."""

    user_id: int
    root_account_id: int | None = None
    source: str = "header"  # "header" | "dev"


def _parse_id(value: str | None) -> int | None:
    if value is None or not value.strip().isdigit():
        return None
    return int(value.strip())


async def get_request_context(request: Request) -> RequestContext:
    """FastAPI dependency: resolve the current user and domain root account."""
    settings = get_settings()
    root_account_id = _parse_id(request.headers.get("x-root-account-id"))
    if root_account_id is None:
        root_account_id = settings.default_root_account_id

    user_id = _parse_id(request.headers.get("x-user-id"))
    if user_id is not None:
        return RequestContext(user_id=user_id, root_account_id=root_account_id)

    if settings.auth_enabled or settings.dev_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    # Dev fallback (auth_enabled=False)
    return RequestContext(
        user_id=settings.dev_user_id,
        root_account_id=root_account_id,
        source="dev",
    )
