"""
Comm messages API.

Lists the messages (emails, SMS, dashboard notifications) that have been
sent to a user.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth import RequestContext, get_request_context
from api.database import get_db_session
from api.pagination import build_link_header, clamp_per_page
from lti_registry.models import AccountModel, CommMessage, UserModel
from lti_registry.services.comm_message_service import list_user_messages, try_parse_time
from lti_registry.services.permission_service import MessageAccess, message_history_access

logger = logging.getLogger(__name__)

router = APIRouter(tags=["comm_messages"])

UNAUTHORIZED_BODY = {
    "status": "unauthorized",
    "errors": [{"message": "user not authorized to perform that action"}],
}


@router.get("/comm_messages", response_model=list[CommMessage])
async def list_comm_messages(
    request: Request,
    response: Response,
    user_id: int = Query(..., description="The user whose messages to list"),
    start_time: str | None = Query(None, description="Beginning of the time range"),
    end_time: str | None = Query(None, description="End of the time range"),
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Paginated list of messages sent to a user, newest first.

    Site admins see every message; root account admins only see messages
    from their root account, and only when the account allows it.
    """
    user = await session.get(UserModel, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")

    domain_root = None
    if ctx.root_account_id is not None:
        domain_root = await session.get(AccountModel, ctx.root_account_id)
    if domain_root is None:
        raise HTTPException(status_code=404, detail="Domain root account not found")

    access = await message_history_access(session, ctx.user_id, domain_root)
    if access == MessageAccess.DENIED:
        return JSONResponse(status_code=403, content=UNAUTHORIZED_BODY)

    per_page = clamp_per_page(per_page)
    result = await list_user_messages(
        session,
        user.id,
        root_account_id=domain_root.id if access == MessageAccess.ROOT_ACCOUNT else None,
        start_time=try_parse_time(start_time),
        end_time=try_parse_time(end_time),
        page=page,
        per_page=per_page,
    )

    response.headers["Link"] = build_link_header(request, page, per_page, result.has_next)
    return [CommMessage.model_validate(message) for message in result.messages]
