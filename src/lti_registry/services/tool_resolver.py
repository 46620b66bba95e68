"""
Tool resolver for the LTI tool registry.

Finds the one installed message handler for a (vendor, product, resource
type) identity as seen from an account or course. Contexts are searched
nearest first and the first match wins, so a tool bound at a sub-account
or course shadows the same tool bound further up the chain.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lti_registry.models import (
    BASIC_LTI_LAUNCH_REQUEST,
    ContextModel,
    MessageHandlerModel,
    ProductFamilyModel,
    ResourceCodes,
    ResourceHandlerModel,
    ToolProxyBindingModel,
    ToolProxyModel,
    ToolProxyState,
)
from lti_registry.services.context_service import context_chain

logger = logging.getLogger(__name__)


async def _find_at_context(
    session: AsyncSession,
    vendor_code: str,
    product_code: str,
    resource_type_code: str,
    context: ContextModel,
    message_type: str,
) -> MessageHandlerModel | None:
    """
    First matching handler reachable through a binding at this context.

    Several bindings of the same identity at one context are resolved by
    binding id, then tool proxy id, then handler id.
    """
    query = (
        select(MessageHandlerModel)
        .join(
            ResourceHandlerModel,
            MessageHandlerModel.resource_handler_id == ResourceHandlerModel.id,
        )
        .join(ToolProxyModel, ResourceHandlerModel.tool_proxy_id == ToolProxyModel.id)
        .join(ProductFamilyModel, ToolProxyModel.product_family_id == ProductFamilyModel.id)
        .join(ToolProxyBindingModel, ToolProxyBindingModel.tool_proxy_id == ToolProxyModel.id)
        .where(
            ProductFamilyModel.vendor_code == vendor_code,
            ProductFamilyModel.product_code == product_code,
            ToolProxyModel.workflow_state == ToolProxyState.ACTIVE.value,
            ToolProxyBindingModel.points_at(context),
            ToolProxyBindingModel.enabled.is_(True),
            ResourceHandlerModel.resource_type_code == resource_type_code,
            MessageHandlerModel.message_type == message_type,
        )
        .order_by(ToolProxyBindingModel.id, ToolProxyModel.id, MessageHandlerModel.id)
        .limit(1)
    )
    result = await session.execute(query)
    return result.scalars().first()


async def find_handler(
    session: AsyncSession,
    vendor_code: str,
    product_code: str,
    resource_type_code: str,
    context: ContextModel | None,
    message_type: str = BASIC_LTI_LAUNCH_REQUEST,
) -> MessageHandlerModel | None:
    """
    Resolve the message handler for a tool identity from a context.

    Args:
        session: Database session
        vendor_code: Product family vendor code
        product_code: Product family product code
        resource_type_code: Resource handler type code
        context: Account or course the lookup starts from
        message_type: Only handlers of this message type match

    Returns:
        The handler reachable from the nearest context, or None
    """
    chain = await context_chain(session, context)

    for search_context in chain:
        handler = await _find_at_context(
            session, vendor_code, product_code, resource_type_code, search_context, message_type
        )
        if handler is not None:
            logger.debug(
                "Resolved %s/%s/%s to message handler %s at %s %s",
                vendor_code,
                product_code,
                resource_type_code,
                handler.id,
                search_context.context_type,
                search_context.id,
            )
            return handler

    logger.debug(
        "No message handler for %s/%s/%s across %d contexts",
        vendor_code,
        product_code,
        resource_type_code,
        len(chain),
    )
    return None


async def by_resource_codes(
    session: AsyncSession,
    *,
    vendor_code: str,
    product_code: str,
    resource_type_code: str,
    context: ContextModel | None,
    message_type: str = BASIC_LTI_LAUNCH_REQUEST,
) -> MessageHandlerModel | None:
    """Keyword-only form of find_handler."""
    return await find_handler(
        session, vendor_code, product_code, resource_type_code, context, message_type
    )


async def find_handler_by_codes(
    session: AsyncSession,
    codes: ResourceCodes,
    context: ContextModel | None,
    message_type: str = BASIC_LTI_LAUNCH_REQUEST,
) -> MessageHandlerModel | None:
    """Resolve using the dict returned by MessageHandlerModel.resource_codes()."""
    return await find_handler(
        session,
        codes["vendor_code"],
        codes["product_code"],
        codes["resource_type_code"],
        context,
        message_type,
    )
