"""
Pytest configuration and fixtures for the LTI tool registry tests.

Fixtures:
  - async_engine:            in-memory SQLite engine with all tables
  - async_session:           per-test session
  - account / sub_account / course: a small context hierarchy
  - product_family:          vendor "123", product "abc" in the root account
  - create_tool_proxy:       factory, optionally bound at a context
  - create_resource_handler: factory
  - create_message_handler:  factory
"""

from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from lti_registry.models import (
    BASIC_LTI_LAUNCH_REQUEST,
    AccountCreate,
    AccountModel,
    Base,
    CourseCreate,
    CourseModel,
    MessageHandlerModel,
    ProductFamilyModel,
    ResourceHandlerModel,
    ResourcePlacementModel,
    ToolProxyBindingModel,
    ToolProxyModel,
)
from lti_registry.services.context_service import create_account, create_course

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def account(async_session: AsyncSession) -> AccountModel:
    return await create_account(async_session, AccountCreate(name="Root Account"))


@pytest_asyncio.fixture
async def sub_account(async_session: AsyncSession, account: AccountModel) -> AccountModel:
    return await create_account(
        async_session, AccountCreate(name="Sub Account", parent_account_id=account.id)
    )


@pytest_asyncio.fixture
async def course(async_session: AsyncSession, account: AccountModel) -> CourseModel:
    return await create_course(async_session, CourseCreate(name="Course", account_id=account.id))


@pytest_asyncio.fixture
async def product_family(async_session: AsyncSession, account: AccountModel) -> ProductFamilyModel:
    family = ProductFamilyModel(
        vendor_code="123", product_code="abc", vendor_name="acme", root_account_id=account.id
    )
    async_session.add(family)
    await async_session.commit()
    return family


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def create_binding(async_session: AsyncSession):
    """Factory fixture: create_binding(tool_proxy, context, enabled=True)."""

    async def _create(tool_proxy, context, enabled: bool = True) -> ToolProxyBindingModel:
        binding = ToolProxyBindingModel(
            tool_proxy_id=tool_proxy.id,
            context_type=context.context_type,
            context_id=context.id,
            enabled=enabled,
        )
        async_session.add(binding)
        await async_session.commit()
        return binding

    return _create


@pytest.fixture
def create_tool_proxy(async_session: AsyncSession, account, product_family, create_binding):
    """Factory fixture: installed at `context` (default: root account), bound there if bind."""

    async def _create(
        context=None,
        *,
        bind: bool = True,
        family: ProductFamilyModel | None = None,
        workflow_state: str = "active",
    ) -> ToolProxyModel:
        context = context or account
        tool_proxy = ToolProxyModel(
            context_type=context.context_type,
            context_id=context.id,
            shared_secret="shared_secret",
            guid=str(uuid4()),
            product_version="1.0beta",
            lti_version="LTI-2p0",
            product_family=family or product_family,
            workflow_state=workflow_state,
            raw_data="some raw data",
        )
        async_session.add(tool_proxy)
        await async_session.commit()
        if bind:
            await create_binding(tool_proxy, context)
        return tool_proxy

    return _create


@pytest.fixture
def create_resource_handler(async_session: AsyncSession, create_tool_proxy):
    """Factory fixture: create_resource_handler(tool_proxy=None, resource_type_code="code")."""

    async def _create(
        tool_proxy: ToolProxyModel | None = None,
        resource_type_code: str = "code",
        name: str = "resource name",
    ) -> ResourceHandlerModel:
        tool_proxy = tool_proxy or await create_tool_proxy()
        resource_handler = ResourceHandlerModel(
            resource_type_code=str(resource_type_code), name=name, tool_proxy=tool_proxy
        )
        async_session.add(resource_handler)
        await async_session.commit()
        return resource_handler

    return _create


@pytest.fixture
def create_message_handler(async_session: AsyncSession, create_resource_handler):
    """Factory fixture: create_message_handler(resource_handler=None, placements=(), ...)."""

    async def _create(
        resource_handler: ResourceHandlerModel | None = None,
        message_type: str = BASIC_LTI_LAUNCH_REQUEST,
        launch_path: str = "https://samplelaunch/blti",
        placements: tuple[str, ...] = (),
    ) -> MessageHandlerModel:
        resource_handler = resource_handler or await create_resource_handler()
        handler = MessageHandlerModel(
            message_type=message_type,
            launch_path=launch_path,
            resource_handler=resource_handler,
            placements=[ResourcePlacementModel(placement=p) for p in placements],
        )
        async_session.add(handler)
        await async_session.commit()
        return handler

    return _create
