"""
Tool proxy installation for the LTI tool registry.

Creates a tool proxy together with its product family, an enabled binding
at its own context, and its resource handlers, message handlers and
placements. An install either lands completely or not at all; installing
a known guid again replaces the tool's handlers and keeps its bindings.
"""

import json
import logging
import secrets
from pathlib import Path
from uuid import uuid4

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lti_registry.models import (
    ContextModel,
    InstallResult,
    MessageHandlerModel,
    ProductFamilyModel,
    ResourceHandlerModel,
    ResourcePlacementModel,
    ToolProxyBindingModel,
    ToolProxyInstall,
    ToolProxyModel,
    ToolProxyState,
)
from lti_registry.services.context_service import get_context, root_account_id_for
from lti_registry.services.message_handler_service import validate_message_handler

logger = logging.getLogger(__name__)


class ToolProxyError(Exception):
    """Base exception for tool proxy operations."""


class ToolProxyNotFoundError(ToolProxyError):
    """Referenced tool proxy does not exist."""


class InstallationError(ToolProxyError):
    """The install payload was rejected; nothing was written."""

    def __init__(self, message: str, errors: dict[str, dict[str, list[str]]] | None = None):
        self.errors = errors or {}
        super().__init__(message)


async def get_tool_proxy(session: AsyncSession, tool_proxy_id: int) -> ToolProxyModel:
    tool_proxy = await session.get(ToolProxyModel, tool_proxy_id)
    if tool_proxy is None:
        raise ToolProxyNotFoundError(f"Tool proxy {tool_proxy_id} not found")
    return tool_proxy


async def list_bindings(session: AsyncSession, tool_proxy_id: int) -> list[ToolProxyBindingModel]:
    result = await session.execute(
        select(ToolProxyBindingModel)
        .where(ToolProxyBindingModel.tool_proxy_id == tool_proxy_id)
        .order_by(ToolProxyBindingModel.id)
    )
    return list(result.scalars().all())


async def list_resource_handlers(
    session: AsyncSession, tool_proxy_id: int
) -> list[ResourceHandlerModel]:
    result = await session.execute(
        select(ResourceHandlerModel)
        .where(ResourceHandlerModel.tool_proxy_id == tool_proxy_id)
        .order_by(ResourceHandlerModel.id)
    )
    return list(result.scalars().all())


async def get_or_create_product_family(
    session: AsyncSession,
    vendor_code: str,
    product_code: str,
    root_account_id: int,
    vendor_name: str = "",
) -> ProductFamilyModel:
    """Product family for the codes within a root account; created on first use."""
    result = await session.execute(
        select(ProductFamilyModel).where(
            ProductFamilyModel.vendor_code == vendor_code,
            ProductFamilyModel.product_code == product_code,
            ProductFamilyModel.root_account_id == root_account_id,
        )
    )
    family = result.scalar_one_or_none()
    if family is not None:
        return family

    family = ProductFamilyModel(
        vendor_code=vendor_code,
        product_code=product_code,
        vendor_name=vendor_name,
        root_account_id=root_account_id,
    )
    session.add(family)
    await session.flush()
    return family


def validate_install(data: ToolProxyInstall) -> dict[str, dict[str, list[str]]]:
    """
    Field-level errors for every message handler in an install payload.

    Keys are the handler's location in the payload, e.g.
    "resource_handlers[0].message_handlers[1]". Empty when the payload
    can be installed.
    """
    errors: dict[str, dict[str, list[str]]] = {}
    for rh_index, rh_data in enumerate(data.resource_handlers):
        resource_handler = ResourceHandlerModel(
            resource_type_code=rh_data.resource_type_code, name=rh_data.name
        )
        for mh_index, mh_data in enumerate(rh_data.message_handlers):
            handler = MessageHandlerModel(
                message_type=mh_data.message_type,
                launch_path=mh_data.launch_path,
                resource_handler=resource_handler,
            )
            handler_errors = validate_message_handler(handler)
            if handler_errors:
                errors[f"resource_handlers[{rh_index}].message_handlers[{mh_index}]"] = (
                    handler_errors
                )
    return errors


async def _get_tool_proxy_by_guid(session: AsyncSession, guid: str) -> ToolProxyModel | None:
    result = await session.execute(select(ToolProxyModel).where(ToolProxyModel.guid == guid))
    return result.scalar_one_or_none()


async def _delete_resource_handlers(session: AsyncSession, tool_proxy_id: int) -> None:
    """Remove a tool proxy's resource handlers with their message handlers and placements."""
    resource_handler_ids = select(ResourceHandlerModel.id).where(
        ResourceHandlerModel.tool_proxy_id == tool_proxy_id
    )
    message_handler_ids = select(MessageHandlerModel.id).where(
        MessageHandlerModel.resource_handler_id.in_(resource_handler_ids)
    )
    for statement in (
        delete(ResourcePlacementModel).where(
            ResourcePlacementModel.message_handler_id.in_(message_handler_ids)
        ),
        delete(MessageHandlerModel).where(
            MessageHandlerModel.resource_handler_id.in_(resource_handler_ids)
        ),
        delete(ResourceHandlerModel).where(ResourceHandlerModel.tool_proxy_id == tool_proxy_id),
    ):
        await session.execute(statement.execution_options(synchronize_session="fetch"))


async def _binding_at(
    session: AsyncSession, tool_proxy: ToolProxyModel, context: ContextModel
) -> ToolProxyBindingModel:
    """The tool proxy's first binding at context; an enabled one is added if it has none."""
    result = await session.execute(
        select(ToolProxyBindingModel)
        .where(
            ToolProxyBindingModel.tool_proxy_id == tool_proxy.id,
            ToolProxyBindingModel.points_at(context),
        )
        .order_by(ToolProxyBindingModel.id)
    )
    binding = result.scalars().first()
    if binding is None:
        binding = ToolProxyBindingModel(
            tool_proxy_id=tool_proxy.id,
            context_type=context.context_type,
            context_id=context.id,
            enabled=True,
        )
        session.add(binding)
    return binding


async def _add_resource_handlers(
    session: AsyncSession, tool_proxy: ToolProxyModel, data: ToolProxyInstall
) -> tuple[int, int]:
    """Create the payload's handlers; returns (message handler count, placement count)."""
    message_handler_count = 0
    placement_count = 0

    for rh_data in data.resource_handlers:
        resource_handler = ResourceHandlerModel(
            resource_type_code=rh_data.resource_type_code,
            name=rh_data.name,
            description=rh_data.description,
            tool_proxy_id=tool_proxy.id,
        )
        session.add(resource_handler)
        await session.flush()

        for mh_data in rh_data.message_handlers:
            handler = MessageHandlerModel(
                message_type=mh_data.message_type,
                launch_path=mh_data.launch_path,
                capabilities=list(mh_data.capabilities),
                parameters=list(mh_data.parameters),
                resource_handler_id=resource_handler.id,
                # Duplicates collapse to one placement row
                placements=[
                    ResourcePlacementModel(placement=placement.value)
                    for placement in dict.fromkeys(mh_data.placements)
                ],
            )
            session.add(handler)
            message_handler_count += 1
            placement_count += len(handler.placements)

    return message_handler_count, placement_count


async def install_tool_proxy(session: AsyncSession, data: ToolProxyInstall) -> InstallResult:
    """
    Install a tool into an account or course.

    A payload whose guid matches an installed tool proxy reinstalls it:
    the proxy is updated in place, its resource handlers are replaced and
    its bindings are kept.

    Args:
        session: Database session
        data: Install payload

    Returns:
        Summary of what was created

    Raises:
        ContextNotFoundError: If the target context does not exist
        InstallationError: If any message handler is invalid or the
            tool proxy could not be stored
    """
    context = await get_context(session, data.context_type, data.context_id)

    errors = validate_install(data)
    if errors:
        raise InstallationError(
            f"Tool {data.vendor_code}/{data.product_code} has invalid message handlers",
            errors,
        )

    try:
        family = await get_or_create_product_family(
            session,
            data.vendor_code,
            data.product_code,
            root_account_id_for(context),
            data.vendor_name,
        )

        tool_proxy = await _get_tool_proxy_by_guid(session, data.guid) if data.guid else None
        reinstall = tool_proxy is not None
        if tool_proxy is None:
            tool_proxy = ToolProxyModel(
                guid=data.guid or str(uuid4()),
                shared_secret=data.shared_secret or secrets.token_hex(32),
            )
            session.add(tool_proxy)
        else:
            await _delete_resource_handlers(session, tool_proxy.id)
            if data.shared_secret:
                tool_proxy.shared_secret = data.shared_secret

        tool_proxy.name = data.name
        tool_proxy.product_version = data.product_version
        tool_proxy.lti_version = data.lti_version
        tool_proxy.product_family_id = family.id
        tool_proxy.context_type = context.context_type
        tool_proxy.context_id = context.id
        tool_proxy.workflow_state = ToolProxyState.ACTIVE.value
        tool_proxy.raw_data = data.raw_data
        await session.flush()

        binding = await _binding_at(session, tool_proxy, context)
        message_handler_count, placement_count = await _add_resource_handlers(
            session, tool_proxy, data
        )
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise InstallationError(
            f"Tool {data.vendor_code}/{data.product_code} could not be installed: {e}"
        ) from e

    logger.info(
        "%s tool proxy %s (%s/%s) in %s %s",
        "Reinstalled" if reinstall else "Installed",
        tool_proxy.id,
        data.vendor_code,
        data.product_code,
        context.context_type,
        context.id,
    )

    return InstallResult(
        tool_proxy_id=tool_proxy.id,
        guid=tool_proxy.guid,
        binding_id=binding.id,
        resource_handler_count=len(data.resource_handlers),
        message_handler_count=message_handler_count,
        placement_count=placement_count,
    )


async def bind_tool_proxy(
    session: AsyncSession,
    tool_proxy_id: int,
    context: ContextModel,
    enabled: bool = True,
) -> ToolProxyBindingModel:
    """
    Enable (or explicitly disable) a tool proxy at another context.

    Raises:
        ToolProxyNotFoundError: If the tool proxy does not exist
    """
    await get_tool_proxy(session, tool_proxy_id)

    binding = ToolProxyBindingModel(
        tool_proxy_id=tool_proxy_id,
        context_type=context.context_type,
        context_id=context.id,
        enabled=enabled,
    )
    session.add(binding)
    await session.commit()
    await session.refresh(binding)
    return binding


async def set_tool_proxy_state(
    session: AsyncSession, tool_proxy_id: int, state: ToolProxyState
) -> ToolProxyModel:
    """
    Move a tool proxy to another workflow state.

    Raises:
        ToolProxyNotFoundError: If the tool proxy does not exist
    """
    tool_proxy = await get_tool_proxy(session, tool_proxy_id)
    tool_proxy.workflow_state = ToolProxyState(state).value
    await session.commit()
    await session.refresh(tool_proxy)
    return tool_proxy


def load_install_file(path: Path) -> ToolProxyInstall:
    """
    Read an install payload from a JSON file.

    Raises:
        InstallationError: If the file is not valid JSON or not a valid payload
    """
    try:
        raw = json.loads(Path(path).read_text())
        return ToolProxyInstall.model_validate(raw)
    except json.JSONDecodeError as e:
        raise InstallationError(f"{path} is not valid JSON: {e}") from e
    except ValidationError as e:
        raise InstallationError(f"{path} is not a valid install payload: {e}") from e
