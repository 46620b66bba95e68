"""
Message history queries for the comm messages API.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lti_registry.models import MessageModel


@dataclass
class MessagePage:
    """One page of a user's messages, newest first."""

    messages: list[MessageModel]
    page: int
    per_page: int
    has_next: bool


def try_parse_time(value: str | None) -> datetime | None:
    """
    Parse an ISO 8601 timestamp, or return None when it is missing or malformed.

    Naive timestamps are taken as UTC.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


async def list_user_messages(
    session: AsyncSession,
    user_id: int,
    *,
    root_account_id: int | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    page: int = 1,
    per_page: int = 10,
) -> MessagePage:
    """
    Messages sent to a user, newest first.

    Args:
        session: Database session
        user_id: Recipient
        root_account_id: Limit to messages from this root account
        start_time: Inclusive lower bound on created_at
        end_time: Inclusive upper bound on created_at
        page: 1-based page number
        per_page: Page size

    Returns:
        The requested page
    """
    page = max(page, 1)
    query = select(MessageModel).where(MessageModel.user_id == user_id)

    if root_account_id is not None:
        query = query.where(MessageModel.root_account_id == root_account_id)
    if start_time is not None:
        query = query.where(MessageModel.created_at >= start_time)
    if end_time is not None:
        query = query.where(MessageModel.created_at <= end_time)

    # One extra row tells us whether a next page exists
    query = (
        query.order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page + 1)
    )
    result = await session.execute(query)
    rows = list(result.scalars().all())

    return MessagePage(
        messages=rows[:per_page],
        page=page,
        per_page=per_page,
        has_next=len(rows) > per_page,
    )
