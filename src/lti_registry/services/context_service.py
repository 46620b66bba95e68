"""
Context service for the LTI tool registry.

Creates accounts and courses and walks the containment chain a tool is
searched along: course, its account, parent accounts, root account.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from lti_registry.models import (
    AccountCreate,
    AccountModel,
    ContextModel,
    ContextType,
    CourseCreate,
    CourseModel,
)

logger = logging.getLogger(__name__)


class ContextNotFoundError(Exception):
    """Raised when an account or course cannot be found."""


async def get_account(session: AsyncSession, account_id: int) -> AccountModel:
    account = await session.get(AccountModel, account_id)
    if account is None:
        raise ContextNotFoundError(f"Account {account_id} not found")
    return account


async def get_course(session: AsyncSession, course_id: int) -> CourseModel:
    course = await session.get(CourseModel, course_id)
    if course is None:
        raise ContextNotFoundError(f"Course {course_id} not found")
    return course


async def get_context(
    session: AsyncSession, context_type: ContextType | str, context_id: int
) -> ContextModel:
    """
    Load an account or course by its polymorphic reference.

    Raises:
        ContextNotFoundError: If the type is unknown or the row does not exist
    """
    if context_type == ContextType.ACCOUNT:
        return await get_account(session, context_id)
    if context_type == ContextType.COURSE:
        return await get_course(session, context_id)
    raise ContextNotFoundError(f"Unknown context type {context_type!r}")


def root_account_id_for(context: ContextModel) -> int:
    """Id of the root account a context lives under."""
    if isinstance(context, CourseModel):
        return context.root_account_id
    return context.resolved_root_account_id


async def create_account(session: AsyncSession, data: AccountCreate) -> AccountModel:
    """
    Create a root account or, with parent_account_id, a sub-account.

    Sub-accounts inherit the parent's root account.

    Raises:
        ContextNotFoundError: If the parent account does not exist
    """
    root_account_id = None
    if data.parent_account_id is not None:
        parent = await get_account(session, data.parent_account_id)
        root_account_id = parent.resolved_root_account_id

    account = AccountModel(
        name=data.name,
        parent_account_id=data.parent_account_id,
        root_account_id=root_account_id,
        is_site_admin=data.is_site_admin,
        settings=dict(data.settings),
    )
    session.add(account)
    await session.commit()
    await session.refresh(account)
    return account


async def create_course(session: AsyncSession, data: CourseCreate) -> CourseModel:
    """
    Create a course under an account.

    Raises:
        ContextNotFoundError: If the account does not exist
    """
    account = await get_account(session, data.account_id)
    course = CourseModel(
        name=data.name,
        account_id=account.id,
        root_account_id=account.resolved_root_account_id,
    )
    session.add(course)
    await session.commit()
    await session.refresh(course)
    return course


async def account_chain(session: AsyncSession, account: AccountModel) -> list[AccountModel]:
    """
    The account followed by its ancestors up to the root account.

    An account without a parent that still names a different root account
    continues at that root. An id seen twice ends the walk.

    Returns:
        Accounts from nearest to farthest (account first, root last)
    """
    chain: list[AccountModel] = []
    seen: set[int] = set()
    current: AccountModel | None = account

    while current is not None and current.id is not None and current.id not in seen:
        chain.append(current)
        seen.add(current.id)

        next_id = current.parent_account_id
        if next_id is None and current.root_account_id not in (None, current.id):
            next_id = current.root_account_id
        if next_id is None:
            break

        current = await session.get(AccountModel, next_id)
        if current is None:
            logger.warning("Account %s references missing account %s", chain[-1].id, next_id)

    return chain


async def context_chain(session: AsyncSession, context: ContextModel | None) -> list[ContextModel]:
    """
    Ordered search chain for tool lookups, nearest context first.

    - Course: [course, course account, ..., root account]; a course without
      an account goes straight to its root account.
    - Account: [account, parent, ..., root account].

    A detached context (no id) has no chain.
    """
    if context is None or context.id is None:
        return []

    if isinstance(context, CourseModel):
        chain: list[ContextModel] = [context]
        accounts: list[AccountModel] = []
        if context.account_id is not None:
            account = await session.get(AccountModel, context.account_id)
            if account is not None:
                accounts = await account_chain(session, account)

        if context.root_account_id not in {a.id for a in accounts}:
            root = await session.get(AccountModel, context.root_account_id)
            if root is not None:
                accounts.append(root)

        chain.extend(accounts)
        return chain

    return list(await account_chain(session, context))
