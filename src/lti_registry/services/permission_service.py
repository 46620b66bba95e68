"""
Account rights for the LTI tool registry.

A right listed on an account_users row applies to that account and to
every account below it.
"""

import logging
from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lti_registry.models import (
    RIGHT_READ,
    RIGHT_READ_MESSAGES,
    RIGHT_VIEW_NOTIFICATIONS,
    SETTING_ADMINS_CAN_VIEW_NOTIFICATIONS,
    AccountModel,
    AccountUserModel,
)
from lti_registry.services.context_service import account_chain

logger = logging.getLogger(__name__)


class MessageAccess(StrEnum):
    """How much message history a user may browse."""

    ALL = "all"
    ROOT_ACCOUNT = "root_account"
    DENIED = "denied"


async def grants_right(
    session: AsyncSession, account: AccountModel, user_id: int, right: str
) -> bool:
    """Whether the user holds `right` on the account or any of its ancestors."""
    chain_ids = [a.id for a in await account_chain(session, account)]
    if not chain_ids:
        return False

    result = await session.execute(
        select(AccountUserModel.permissions).where(
            AccountUserModel.user_id == user_id,
            AccountUserModel.account_id.in_(chain_ids),
        )
    )
    return any(right in (permissions or []) for permissions in result.scalars())


async def get_site_admin_account(session: AsyncSession) -> AccountModel | None:
    result = await session.execute(
        select(AccountModel).where(AccountModel.is_site_admin.is_(True)).order_by(AccountModel.id)
    )
    return result.scalars().first()


async def message_history_access(
    session: AsyncSession, user_id: int, domain_root_account: AccountModel
) -> MessageAccess:
    """
    Decide what message history the user may read.

    Site admins with read access to the domain root account see everything.
    Otherwise the domain root account must allow admins to view
    notifications and grant the user that right; results are then limited
    to messages from that root account.
    """
    site_admin = await get_site_admin_account(session)
    if (
        site_admin is not None
        and await grants_right(session, site_admin, user_id, RIGHT_READ_MESSAGES)
        and await grants_right(session, domain_root_account, user_id, RIGHT_READ)
    ):
        return MessageAccess.ALL

    settings = domain_root_account.settings or {}
    if settings.get(SETTING_ADMINS_CAN_VIEW_NOTIFICATIONS) and await grants_right(
        session, domain_root_account, user_id, RIGHT_VIEW_NOTIFICATIONS
    ):
        return MessageAccess.ROOT_ACCOUNT

    logger.info(
        "User %s denied message history in root account %s", user_id, domain_root_account.id
    )
    return MessageAccess.DENIED
