"""
Tests for accounts, courses and the context search chain.
"""

import pytest

from lti_registry.models import AccountCreate, AccountModel, ContextType, CourseCreate, CourseModel
from lti_registry.services.context_service import (
    ContextNotFoundError,
    account_chain,
    context_chain,
    create_account,
    create_course,
    get_context,
    root_account_id_for,
)


def ids(chain):
    return [(c.context_type, c.id) for c in chain]


class TestCreate:
    async def test_root_account_has_no_root(self, account):
        assert account.is_root_account
        assert account.resolved_root_account_id == account.id

    async def test_sub_account_inherits_root(self, async_session, account, sub_account):
        nested = await create_account(
            async_session, AccountCreate(name="Nested", parent_account_id=sub_account.id)
        )

        assert sub_account.root_account_id == account.id
        assert nested.root_account_id == account.id
        assert not nested.is_root_account

    async def test_course_root_account(self, async_session, sub_account, account):
        course = await create_course(
            async_session, CourseCreate(name="Sub Course", account_id=sub_account.id)
        )

        assert course.account_id == sub_account.id
        assert course.root_account_id == account.id
        assert root_account_id_for(course) == account.id

    async def test_missing_parent(self, async_session):
        with pytest.raises(ContextNotFoundError):
            await create_account(async_session, AccountCreate(name="Orphan", parent_account_id=99))

    async def test_missing_course_account(self, async_session):
        with pytest.raises(ContextNotFoundError):
            await create_course(async_session, CourseCreate(name="Orphan", account_id=99))


class TestGetContext:
    async def test_loads_by_type(self, async_session, account, course):
        assert (await get_context(async_session, ContextType.ACCOUNT, account.id)).id == account.id
        assert (await get_context(async_session, "Course", course.id)).id == course.id

    async def test_missing_row(self, async_session):
        with pytest.raises(ContextNotFoundError):
            await get_context(async_session, ContextType.COURSE, 42)

    async def test_unknown_type(self, async_session, account):
        with pytest.raises(ContextNotFoundError):
            await get_context(async_session, "Group", account.id)


class TestContextChain:
    async def test_root_account(self, async_session, account):
        assert ids(await context_chain(async_session, account)) == [("Account", account.id)]

    async def test_sub_account_walks_to_root(self, async_session, account, sub_account):
        nested = await create_account(
            async_session, AccountCreate(name="Nested", parent_account_id=sub_account.id)
        )

        assert ids(await context_chain(async_session, nested)) == [
            ("Account", nested.id),
            ("Account", sub_account.id),
            ("Account", account.id),
        ]

    async def test_course_in_root_account(self, async_session, account, course):
        assert ids(await context_chain(async_session, course)) == [
            ("Course", course.id),
            ("Account", account.id),
        ]

    async def test_course_in_sub_account(self, async_session, account, sub_account):
        course = await create_course(
            async_session, CourseCreate(name="Sub Course", account_id=sub_account.id)
        )

        assert ids(await context_chain(async_session, course)) == [
            ("Course", course.id),
            ("Account", sub_account.id),
            ("Account", account.id),
        ]

    async def test_course_without_account(self, async_session, account):
        course = CourseModel(name="Loose", root_account_id=account.id)
        async_session.add(course)
        await async_session.commit()

        assert ids(await context_chain(async_session, course)) == [
            ("Course", course.id),
            ("Account", account.id),
        ]

    async def test_detached_contexts_have_no_chain(self, async_session):
        assert await context_chain(async_session, None) == []
        assert await context_chain(async_session, AccountModel(name="unsaved")) == []

    async def test_account_without_parent_continues_at_root(self, async_session, account):
        detached = AccountModel(name="Detached", root_account_id=account.id)
        async_session.add(detached)
        await async_session.commit()

        assert [a.id for a in await account_chain(async_session, detached)] == [
            detached.id,
            account.id,
        ]

    async def test_cycles_end_the_walk(self, async_session, account):
        first = AccountModel(name="First", root_account_id=account.id)
        second = AccountModel(name="Second", root_account_id=account.id)
        async_session.add_all([first, second])
        await async_session.flush()
        first.parent_account_id = second.id
        second.parent_account_id = first.id
        await async_session.commit()

        assert [a.id for a in await account_chain(async_session, first)] == [first.id, second.id]
