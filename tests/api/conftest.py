"""
Shared fixtures for the API tests.

Fixtures:
  - test_settings:      Settings(auth_enabled=False), no dev user
  - test_settings_auth: Settings(auth_enabled=True)
  - app / client:       FastAPI app with the patched session factory + settings
  - app_auth / client_auth: Same but auth_enabled=True
  - users:              recipient, site admin and root admin
  - create_message:     Factory for messages sent to the recipient
  - as_user:            Factory for identity headers
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from lti_registry.models import (
    RIGHT_READ,
    RIGHT_READ_MESSAGES,
    RIGHT_VIEW_NOTIFICATIONS,
    SETTING_ADMINS_CAN_VIEW_NOTIFICATIONS,
    AccountCreate,
    AccountUserModel,
    MessageModel,
    UserModel,
)
from lti_registry.services.context_service import create_account
from lti_registry.settings import Settings, clear_settings_cache

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    clear_settings_cache()
    return Settings(
        env="local",
        database_url="sqlite+aiosqlite:///:memory:",
        auth_enabled=False,
        dev_user_id=None,
        default_root_account_id=None,
        debug=True,
    )


@pytest.fixture(scope="function")
def test_settings_auth(test_settings: Settings) -> Settings:
    clear_settings_cache()
    return Settings(**{**test_settings.model_dump(), "auth_enabled": True})


# ---------------------------------------------------------------------------
# FastAPI app builder
# ---------------------------------------------------------------------------


def _build_test_app(engine: AsyncEngine, sf: async_sessionmaker[AsyncSession]):
    """Build a FastAPI app with patched singletons (no real lifespan)."""
    from fastapi import FastAPI

    import api.database as db_mod
    from api.routes import comm_messages_router

    db_mod._engine = engine
    db_mod._session_factory = sf

    test_app = FastAPI(title="Test")
    test_app.include_router(comm_messages_router, prefix="/api/v1")
    return test_app


@contextmanager
def _serve(settings: Settings, engine, sf) -> Iterator:
    import api.database as db_mod

    with patch("api.auth.get_settings", return_value=settings), \
         patch("api.pagination.get_settings", return_value=settings):
        yield _build_test_app(engine, sf)
    db_mod._engine = None
    db_mod._session_factory = None
    clear_settings_cache()


@pytest_asyncio.fixture(scope="function")
async def app(test_settings, async_engine, session_factory) -> AsyncGenerator:
    with _serve(test_settings, async_engine, session_factory) as test_app:
        yield test_app


@pytest_asyncio.fixture(scope="function")
async def app_auth(test_settings_auth, async_engine, session_factory) -> AsyncGenerator:
    with _serve(test_settings_auth, async_engine, session_factory) as test_app:
        yield test_app


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator:
    from httpx import ASGITransport, AsyncClient

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture(scope="function")
async def client_auth(app_auth) -> AsyncGenerator:
    from httpx import ASGITransport, AsyncClient

    transport = ASGITransport(app=app_auth)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def other_root(async_session):
    return await create_account(async_session, AccountCreate(name="Other Root"))


@pytest_asyncio.fixture
async def users(async_session, account):
    """recipient, site_admin and root_admin users with their account rights."""
    site_admin_account = await create_account(
        async_session, AccountCreate(name="Site Admin", is_site_admin=True)
    )
    account.settings = {SETTING_ADMINS_CAN_VIEW_NOTIFICATIONS: True}

    recipient = UserModel(name="Recipient")
    site_admin = UserModel(name="Site Admin")
    root_admin = UserModel(name="Root Admin")
    async_session.add_all([recipient, site_admin, root_admin])
    await async_session.flush()

    async_session.add_all(
        [
            AccountUserModel(
                account_id=site_admin_account.id,
                user_id=site_admin.id,
                permissions=[RIGHT_READ_MESSAGES],
            ),
            AccountUserModel(account_id=account.id, user_id=site_admin.id, permissions=[RIGHT_READ]),
            AccountUserModel(
                account_id=account.id, user_id=root_admin.id, permissions=[RIGHT_VIEW_NOTIFICATIONS]
            ),
        ]
    )
    await async_session.commit()
    return {"recipient": recipient, "site_admin": site_admin, "root_admin": root_admin}


@pytest.fixture
def create_message(async_session, users):
    """Factory fixture: create_message(root_account, hours=0) for the recipient."""

    async def _create(root_account, hours: int = 0, subject: str = "hello") -> MessageModel:
        message = MessageModel(
            user_id=users["recipient"].id,
            root_account_id=root_account.id,
            workflow_state="sent",
            from_address="notifications@example.com",
            from_name="Canvas",
            to="recipient@example.com",
            subject=subject,
            body="body",
            created_at=BASE_TIME + timedelta(hours=hours),
        )
        async_session.add(message)
        await async_session.commit()
        return message

    return _create


@pytest.fixture
def as_user():
    """Factory fixture: as_user(user, root_account) -> identity headers."""

    def _headers(user, root_account) -> dict[str, str]:
        return {"X-User-Id": str(user.id), "X-Root-Account-Id": str(root_account.id)}

    return _headers
