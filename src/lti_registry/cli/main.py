"""
Main CLI entry point for the LTI tool registry admin interface.

Usage:
    ltr db init
    ltr account create "District" --parent 1
    ltr tool install path/to/tool.json
    ltr handler resolve acme gradebook grades --context course:12
"""

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path

import typer

from lti_registry.db.connection import close_engine, get_session_factory, init_schema
from lti_registry.models import (
    Account,
    AccountCreate,
    ContextType,
    Course,
    CourseCreate,
    CourseModel,
    MessageHandler,
    ProductFamily,
    ResourceHandler,
    ResourcePlacement,
    ToolProxy,
    ToolProxyBinding,
    ToolProxyState,
)

# Main app
app = typer.Typer(name="ltr", help="LTI Tool Registry Admin CLI")


# ============================================================================
# Database Session Helper
# ============================================================================


@asynccontextmanager
async def get_async_session():
    """Open a session, disposing the engine once the command is done."""
    try:
        async with get_session_factory()() as session:
            yield session
    finally:
        await close_engine()


def run_async(coro):
    """Helper to run async functions from Typer commands."""
    return asyncio.run(coro)


def parse_context(value: str) -> tuple[ContextType, int]:
    """Parse 'account:12' or 'course:7' into a context reference."""
    kind, _, raw_id = value.partition(":")
    types = {t.value.lower(): t for t in ContextType}
    if kind.lower() not in types or not raw_id.isdigit():
        raise typer.BadParameter(f"expected account:<id> or course:<id>, got {value!r}")
    return types[kind.lower()], int(raw_id)


def describe(context) -> str:
    return f"{context.context_type} {context.id} ({context.name})"


def context_schema(context) -> Account | Course:
    if isinstance(context, CourseModel):
        return Course.model_validate(context)
    return Account.model_validate(context)


def echo_field_errors(errors: dict[str, dict[str, list[str]]]) -> None:
    for location, field_errors in errors.items():
        for field, messages in field_errors.items():
            typer.echo(f"  - {location}.{field}: {', '.join(messages)}", err=True)


# ============================================================================
# Database Commands
# ============================================================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create all registry tables."""

    async def _init():
        try:
            await init_schema()
        finally:
            await close_engine()

    run_async(_init())
    typer.echo("Tables created")


# ============================================================================
# Account / Course Commands
# ============================================================================

account_app = typer.Typer(help="Account management")
app.add_typer(account_app, name="account")


@account_app.command("create")
def account_create(
    name: str = typer.Argument(..., help="Account name"),
    parent: int | None = typer.Option(None, "--parent", "-p", help="Parent account ID"),
):
    """Create a root account or a sub-account."""
    from lti_registry.services.context_service import ContextNotFoundError, create_account

    async def _create():
        async with get_async_session() as session:
            return await create_account(
                session, AccountCreate(name=name, parent_account_id=parent)
            )

    try:
        account = run_async(_create())
    except ContextNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(f"Created account: {account.id}")
    typer.echo(f"  Root account: {account.resolved_root_account_id}")


course_app = typer.Typer(help="Course management")
app.add_typer(course_app, name="course")


@course_app.command("create")
def course_create(
    name: str = typer.Argument(..., help="Course name"),
    account_id: int = typer.Option(..., "--account", "-a", help="Owning account ID"),
):
    """Create a course under an account."""
    from lti_registry.services.context_service import ContextNotFoundError, create_course

    async def _create():
        async with get_async_session() as session:
            return await create_course(session, CourseCreate(name=name, account_id=account_id))

    try:
        course = run_async(_create())
    except ContextNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(f"Created course: {course.id}")
    typer.echo(f"  Root account: {course.root_account_id}")


# ============================================================================
# Context Commands
# ============================================================================

context_app = typer.Typer(help="Context hierarchy")
app.add_typer(context_app, name="context")


@context_app.command("chain")
def context_show_chain(
    context: str = typer.Argument(..., help="account:<id> or course:<id>"),
    as_json: bool = typer.Option(False, "--json", help="Print the chain as JSON"),
):
    """Show the search chain tool lookups walk from a context."""
    from lti_registry.services.context_service import (
        ContextNotFoundError,
        context_chain,
        get_context,
    )

    context_type, context_id = parse_context(context)

    async def _chain():
        async with get_async_session() as session:
            start = await get_context(session, context_type, context_id)
            return await context_chain(session, start)

    try:
        chain = run_async(_chain())
    except ContextNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if as_json:
        rows = [
            {"type": c.context_type, **context_schema(c).model_dump(mode="json")} for c in chain
        ]
        typer.echo(json.dumps(rows, indent=2))
        return

    for depth, entry in enumerate(chain):
        typer.echo(f"{'  ' * depth}○ {describe(entry)}")


# ============================================================================
# Tool Commands
# ============================================================================

tool_app = typer.Typer(help="Tool proxy installation")
app.add_typer(tool_app, name="tool")


@tool_app.command("install")
def tool_install(
    file: Path = typer.Argument(..., help="JSON install payload"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate without installing"),
):
    """
    Install a tool proxy from file.

    Expects vendor/product codes, a context and resource handlers with
    their message handlers.
    """
    from lti_registry.services.context_service import ContextNotFoundError
    from lti_registry.services.tool_proxy_service import (
        InstallationError,
        install_tool_proxy,
        load_install_file,
        validate_install,
    )

    try:
        payload = load_install_file(file)
    except InstallationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if dry_run:
        errors = validate_install(payload)
        if errors:
            typer.echo(
                f"Error: Tool {payload.vendor_code}/{payload.product_code} "
                "has invalid message handlers",
                err=True,
            )
            echo_field_errors(errors)
            raise typer.Exit(1)

        handler_count = sum(len(rh.message_handlers) for rh in payload.resource_handlers)
        typer.echo("Dry run - no changes made")
        typer.echo(f"Would install: {payload.vendor_code}/{payload.product_code}")
        typer.echo(f"Would create: {len(payload.resource_handlers)} resource handlers")
        typer.echo(f"Would create: {handler_count} message handlers")
        return

    async def _install():
        async with get_async_session() as session:
            return await install_tool_proxy(session, payload)

    try:
        result = run_async(_install())
    except (ContextNotFoundError, InstallationError) as e:
        typer.echo(f"Error: {e}", err=True)
        echo_field_errors(getattr(e, "errors", {}))
        raise typer.Exit(1) from e

    typer.echo(f"Installed tool proxy: {result.tool_proxy_id}")
    typer.echo(f"  GUID: {result.guid}")
    typer.echo(f"  Resource handlers: {result.resource_handler_count}")
    typer.echo(f"  Message handlers: {result.message_handler_count}")
    typer.echo(f"  Placements: {result.placement_count}")


@tool_app.command("bind")
def tool_bind(
    tool_proxy_id: int = typer.Argument(..., help="Tool proxy ID"),
    context: str = typer.Option(..., "--context", "-c", help="account:<id> or course:<id>"),
    disabled: bool = typer.Option(False, "--disabled", help="Record a disabled binding"),
):
    """Bind a tool proxy to another context."""
    from lti_registry.services.context_service import ContextNotFoundError, get_context
    from lti_registry.services.tool_proxy_service import ToolProxyNotFoundError, bind_tool_proxy

    context_type, context_id = parse_context(context)

    async def _bind():
        async with get_async_session() as session:
            target = await get_context(session, context_type, context_id)
            return await bind_tool_proxy(session, tool_proxy_id, target, enabled=not disabled)

    try:
        binding = run_async(_bind())
    except (ContextNotFoundError, ToolProxyNotFoundError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    state = "enabled" if binding.enabled else "disabled"
    typer.echo(f"Bound tool proxy {tool_proxy_id} at {context} ({state})")


@tool_app.command("show")
def tool_show(
    tool_proxy_id: int = typer.Argument(..., help="Tool proxy ID"),
):
    """Print a tool proxy with its product family, bindings and resource handlers as JSON."""
    from lti_registry.services.tool_proxy_service import (
        ToolProxyNotFoundError,
        get_tool_proxy,
        list_bindings,
        list_resource_handlers,
    )

    async def _show():
        async with get_async_session() as session:
            tool_proxy = await get_tool_proxy(session, tool_proxy_id)
            bindings = await list_bindings(session, tool_proxy_id)
            resource_handlers = await list_resource_handlers(session, tool_proxy_id)
            return {
                "tool_proxy": ToolProxy.model_validate(tool_proxy).model_dump(mode="json"),
                "product_family": ProductFamily.model_validate(
                    tool_proxy.product_family
                ).model_dump(mode="json"),
                "bindings": [
                    ToolProxyBinding.model_validate(b).model_dump(mode="json") for b in bindings
                ],
                "resource_handlers": [
                    ResourceHandler.model_validate(rh).model_dump(mode="json")
                    for rh in resource_handlers
                ],
            }

    try:
        details = run_async(_show())
    except ToolProxyNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(json.dumps(details, indent=2))


@tool_app.command("state")
def tool_state(
    tool_proxy_id: int = typer.Argument(..., help="Tool proxy ID"),
    state: ToolProxyState = typer.Argument(..., help="active, disabled or deleted"),
):
    """Change a tool proxy's workflow state."""
    from lti_registry.services.tool_proxy_service import (
        ToolProxyNotFoundError,
        set_tool_proxy_state,
    )

    async def _set():
        async with get_async_session() as session:
            return await set_tool_proxy_state(session, tool_proxy_id, state)

    try:
        tool_proxy = run_async(_set())
    except ToolProxyNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(f"Tool proxy {tool_proxy.id} is now {tool_proxy.workflow_state}")


# ============================================================================
# Handler Commands
# ============================================================================

handler_app = typer.Typer(help="Message handler lookups")
app.add_typer(handler_app, name="handler")


@handler_app.command("resolve")
def handler_resolve(
    vendor_code: str = typer.Argument(..., help="Vendor code"),
    product_code: str = typer.Argument(..., help="Product code"),
    resource_type_code: str = typer.Argument(..., help="Resource type code"),
    context: str = typer.Option(..., "--context", "-c", help="account:<id> or course:<id>"),
    message_type: str = typer.Option(
        "basic-lti-launch-request", "--message-type", "-m", help="Message type to match"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the handler as JSON"),
):
    """Resolve the message handler serving a tool identity from a context."""
    from lti_registry.services.context_service import ContextNotFoundError, get_context
    from lti_registry.services.tool_resolver import find_handler

    context_type, context_id = parse_context(context)

    async def _resolve():
        async with get_async_session() as session:
            start = await get_context(session, context_type, context_id)
            handler = await find_handler(
                session, vendor_code, product_code, resource_type_code, start, message_type
            )
            if handler is None:
                return None, None
            return MessageHandler.model_validate(handler), handler.resource_handler.tool_proxy_id

    try:
        found, tool_proxy_id = run_async(_resolve())
    except ContextNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if found is None:
        typer.echo("No message handler found.")
        raise typer.Exit(1)

    if as_json:
        typer.echo(found.model_dump_json(indent=2))
        return

    typer.echo(f"Message handler: {found.id}")
    typer.echo(f"  Launch path: {found.launch_path}")
    typer.echo(f"  Tool proxy: {tool_proxy_id}")


@handler_app.command("tabs")
def handler_tabs(
    context: str = typer.Option(..., "--context", "-c", help="account:<id> or course:<id>"),
    placements: list[ResourcePlacement] = typer.Option(
        ..., "--placement", "-p", help="Placement to include (repeatable)"
    ),
):
    """Print navigation tabs for a context as JSON."""
    from lti_registry.services.context_service import ContextNotFoundError, get_context
    from lti_registry.services.tab_service import list_ui_tabs

    context_type, context_id = parse_context(context)

    async def _tabs():
        async with get_async_session() as session:
            target = await get_context(session, context_type, context_id)
            tabs = await list_ui_tabs(session, target, [p.value for p in placements])
            return [tab.model_dump() for tab in tabs]

    try:
        tabs = run_async(_tabs())
    except ContextNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(json.dumps(tabs, indent=2))


if __name__ == "__main__":
    app()
