"""
Navigation tabs for message handlers placed on account or course navigation.
"""

from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from lti_registry.models import (
    BASIC_LTI_LAUNCH_REQUEST,
    ContextModel,
    ContextType,
    MessageHandlerModel,
)
from lti_registry.services.message_handler_service import (
    message_handlers_query,
    where_bound_to,
    where_message_types,
    where_placements,
)

LAUNCH_PATH_HELPERS = {
    ContextType.ACCOUNT.value: "account_basic_lti_launch_request_path",
    ContextType.COURSE.value: "course_basic_lti_launch_request_path",
}

NAV_RESOURCE_LINK_FRAGMENT = "nav"


class Tab(BaseModel):
    """One navigation tab."""

    id: str
    label: str
    css_class: str
    href: str
    visibility: str | None = None
    external: bool = True
    hidden: bool = False
    args: dict[str, Any] = Field(default_factory=dict)


def handler_tab(
    handler: MessageHandlerModel, context: ContextModel, extra_args: dict[str, Any] | None = None
) -> Tab:
    """Tab for one handler; extra_args never override the launch arguments."""
    args: dict[str, Any] = dict(extra_args or {})
    args.update(
        {
            "message_handler_id": handler.id,
            "resource_link_fragment": NAV_RESOURCE_LINK_FRAGMENT,
            f"{context.context_type.lower()}_id": context.id,
        }
    )
    return Tab(
        id=handler.asset_string,
        label=handler.resource_handler.name,
        css_class=handler.asset_string,
        href=LAUNCH_PATH_HELPERS[context.context_type],
        args=args,
    )


async def list_ui_tabs(
    session: AsyncSession,
    context: ContextModel,
    placements: list[str],
    extra_args: dict[str, Any] | None = None,
) -> list[Tab]:
    """
    One tab per launchable handler bound at context with any of the placements.

    Returns:
        Tabs ordered by handler id
    """
    if not placements or context.id is None:
        return []

    query = where_bound_to(message_handlers_query(), context)
    query = where_placements(query, *placements)
    query = where_message_types(query, BASIC_LTI_LAUNCH_REQUEST)

    result = await session.execute(query.order_by(MessageHandlerModel.id))
    return [handler_tab(handler, context, extra_args) for handler in result.scalars().all()]


# Name used by navigation code
lti_apps_tabs = list_ui_tabs
