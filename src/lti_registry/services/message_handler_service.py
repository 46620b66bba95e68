"""
Message handler service for the LTI tool registry.

Validation and the query scopes used by the resolver and the tab
projection. Scope builders take and return a Select so they can be
combined; the async helpers run a single scope.
"""

from urllib.parse import urlsplit

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from lti_registry.models import (
    ContextModel,
    MessageHandlerModel,
    ResourceHandlerModel,
    ResourcePlacement,
    ResourcePlacementModel,
    ToolProxyBindingModel,
    ToolProxyModel,
    ToolProxyState,
)

BLANK = "can't be blank"
INVALID_URL = "is not a valid URL"

ValidationErrors = dict[str, list[str]]


# ============================================================================
# Validation
# ============================================================================


def _is_absolute_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def validate_message_handler(handler: MessageHandlerModel) -> ValidationErrors:
    """
    Field-level errors for a message handler; empty when valid.

    message_type, launch_path and resource_handler are required and
    launch_path must be an absolute http(s) URL.
    """
    errors: ValidationErrors = {}

    if not (handler.message_type or "").strip():
        errors.setdefault("message_type", []).append(BLANK)

    launch_path = (handler.launch_path or "").strip()
    if not launch_path:
        errors.setdefault("launch_path", []).append(BLANK)
    elif not _is_absolute_url(launch_path):
        errors.setdefault("launch_path", []).append(INVALID_URL)

    if handler.resource_handler_id is None and handler.resource_handler is None:
        errors.setdefault("resource_handler", []).append(BLANK)

    return errors


async def save_message_handler(
    session: AsyncSession, handler: MessageHandlerModel
) -> ValidationErrors:
    """
    Persist a message handler if it is valid.

    Returns:
        The validation errors; an empty dict means the handler was saved
    """
    errors = validate_message_handler(handler)
    if errors:
        return errors

    session.add(handler)
    await session.commit()
    await session.refresh(handler)
    return {}


async def add_placement(
    session: AsyncSession, handler: MessageHandlerModel, placement: ResourcePlacement | str
) -> ResourcePlacementModel:
    """
    Attach a handler to a UI surface.

    Raises:
        ValueError: If the placement name is not recognised
    """
    placement = ResourcePlacement(placement)
    model = ResourcePlacementModel(message_handler_id=handler.id, placement=placement.value)
    session.add(model)
    await session.commit()
    await session.refresh(handler, attribute_names=["placements"])
    return model


# ============================================================================
# Scope builders
# ============================================================================


def message_handlers_query() -> Select:
    return select(MessageHandlerModel)


def where_message_types(query: Select, *message_types: str) -> Select:
    return query.where(MessageHandlerModel.message_type.in_(message_types))


def where_bound_to(query: Select, context: ContextModel) -> Select:
    """Handlers of active tool proxies with an enabled binding at context."""
    bound_proxy_ids = select(ToolProxyBindingModel.tool_proxy_id).where(
        ToolProxyBindingModel.points_at(context),
        ToolProxyBindingModel.enabled.is_(True),
    )
    return (
        query.join(
            ResourceHandlerModel,
            MessageHandlerModel.resource_handler_id == ResourceHandlerModel.id,
        )
        .join(ToolProxyModel, ResourceHandlerModel.tool_proxy_id == ToolProxyModel.id)
        .where(
            ToolProxyModel.workflow_state == ToolProxyState.ACTIVE.value,
            ToolProxyModel.id.in_(bound_proxy_ids),
        )
    )


def where_placements(query: Select, *placements: str) -> Select:
    with_placement = select(ResourcePlacementModel.message_handler_id).where(
        ResourcePlacementModel.placement.in_([str(p) for p in placements])
    )
    return query.where(MessageHandlerModel.id.in_(with_placement))


# ============================================================================
# Scopes
# ============================================================================


async def _all(session: AsyncSession, query: Select) -> list[MessageHandlerModel]:
    result = await session.execute(query.order_by(MessageHandlerModel.id))
    return list(result.scalars().all())


async def by_message_types(session: AsyncSession, *message_types: str) -> list[MessageHandlerModel]:
    """All message handlers accepting any of the given message types."""
    return await _all(session, where_message_types(message_handlers_query(), *message_types))


async def for_context(session: AsyncSession, context: ContextModel) -> list[MessageHandlerModel]:
    """All message handlers whose tool proxy is bound at exactly this context."""
    return await _all(session, where_bound_to(message_handlers_query(), context))


async def has_placements(session: AsyncSession, *placements: str) -> list[MessageHandlerModel]:
    """Message handlers with at least one of the placements, each listed once."""
    return await _all(session, where_placements(message_handlers_query(), *placements))
