"""CLI entry point for notion-safe.

Invoked as::

    notion-safe [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m notion_safe.cli.main

Commands
--------
- version          Show version information
- config init      Write a starter config file
- config validate  Validate a config file
- config show      List the configured rules in evaluation order
- check            Decide whether an operation on a resource is allowed
- page             Guarded page get / create / update
- db               Guarded database get / query / create-page
- block            Guarded block get / children / append / delete
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import NoReturn

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from notion_safe.client import GuardedNotionClient, InvalidParentError, PermissionDeniedError
from notion_safe.config.loader import (
    ConfigError,
    ConfigLoader,
    NotionSafeConfig,
    default_config_path,
    get_notion_token,
    validate_config,
)
from notion_safe.permissions.rules import KNOWN_PERMISSIONS, PageScope, PermissionDecision
from notion_safe.store.base import ResourceStoreError, StoreContractError
from notion_safe.store.notion import NotionAPIError

console = Console()
err_console = Console(stderr=True)

_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to config.yaml (default: $NOTION_SAFE_CONFIG or ~/.config/notion-safe/config.yaml).",
)


def _resolve_path(config_path: str | None) -> Path:
    return Path(config_path) if config_path else default_config_path()


def _load_config_or_exit(config_path: str | None) -> NotionSafeConfig:
    path = _resolve_path(config_path)
    try:
        return ConfigLoader().load(path)
    except (FileNotFoundError, ConfigError) as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


def _token_or_exit() -> str:
    try:
        return get_notion_token()
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="notion-safe")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """notion-safe: rule-guarded access to a Notion workspace."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from notion_safe import __version__

    console.print(
        Panel(
            f"[bold]notion-safe[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Rule-guarded Notion access for automated clients.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# config group
# ---------------------------------------------------------------------------


@cli.group(name="config")
def config_group() -> None:
    """Configuration file commands."""


@config_group.command(name="init")
@_config_option
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
def config_init_command(config_path: str | None, force: bool) -> None:
    """Write a starter config file."""
    from notion_safe.config.templates import write_config_template

    path = _resolve_path(config_path)
    try:
        written = write_config_template(path, overwrite=force)
    except FileExistsError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    console.print(f"[green]Created[/green] config template: [bold]{written}[/bold]")


@config_group.command(name="validate")
@_config_option
def config_validate_command(config_path: str | None) -> None:
    """Validate a config file and report every problem."""
    path = _resolve_path(config_path)
    issues = validate_config(path)
    if issues:
        console.print(Panel("[red]INVALID[/red]", title=str(path), border_style="red"))
        for issue in issues:
            console.print(f"  - {issue}")
        sys.exit(1)
    console.print(Panel("[green]VALID[/green]", title=str(path), border_style="green"))


@config_group.command(name="show")
@_config_option
def config_show_command(config_path: str | None) -> None:
    """List the configured rules in evaluation order."""
    config = _load_config_or_exit(config_path)
    rule_set = config.to_rule_set()

    table = Table(title="Rules (first match wins)", box=box.SIMPLE)
    table.add_column("#", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Scope", style="magenta")
    table.add_column("Permissions")
    table.add_column("Condition")
    for index, rule in enumerate(rule_set.rules, start=1):
        if isinstance(rule.scope, PageScope):
            scope = f"page {rule.scope.page_id}"
        else:
            scope = f"database {rule.scope.database_id}" if rule.scope else "-"
        table.add_row(
            str(index),
            rule.name,
            scope,
            ", ".join(sorted(rule.permissions)),
            rule.condition.describe() if rule.condition else "",
        )
    console.print(table)
    console.print(f"  Default permission: [cyan]{rule_set.default_policy.value}[/cyan]")


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


async def _decide(
    config: NotionSafeConfig,
    token: str,
    resource_id: str,
    operation: str,
    condition_target: str | None,
) -> PermissionDecision:
    async with GuardedNotionClient.from_config(config, token) as client:
        return await client.check_permission(resource_id, operation, condition_target)


@cli.command(name="check")
@click.argument("resource_id")
@click.argument("operation", type=click.Choice(sorted(KNOWN_PERMISSIONS)))
@click.option(
    "--condition-target",
    default=None,
    help="Page whose properties a write condition is checked against.",
)
@_config_option
def check_command(
    resource_id: str,
    operation: str,
    condition_target: str | None,
    config_path: str | None,
) -> None:
    """Decide whether OPERATION on RESOURCE_ID is allowed (exit 1 if denied)."""
    config = _load_config_or_exit(config_path)
    token = _token_or_exit()

    try:
        decision = asyncio.run(
            _decide(config, token, resource_id, operation, condition_target)
        )
    except (ResourceStoreError, StoreContractError) as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    _print_decision(decision)
    sys.exit(0 if decision.allowed else 1)


def _print_decision(decision: PermissionDecision) -> None:
    status = "[green]ALLOWED[/green]" if decision.allowed else "[red]DENIED[/red]"
    console.print(Panel(status, title="Permission Check Result", border_style="blue"))
    console.print(f"  Operation: [cyan]{decision.operation}[/cyan]")
    console.print(f"  Resource:  [cyan]{decision.resource_id}[/cyan]")
    if decision.rule_name:
        console.print(f"  Rule:      [bold]{decision.rule_name}[/bold]")
    console.print(f"  Code:      {decision.code.value}")
    console.print(f"  Reason:    {decision.reason}")


# ---------------------------------------------------------------------------
# Guarded API commands: page / db / block
# ---------------------------------------------------------------------------


class JsonParamType(click.ParamType):
    """Parameter whose value is a JSON document."""

    name = "json"

    def convert(
        self, value: object, param: click.Parameter | None, ctx: click.Context | None
    ) -> object:
        if not isinstance(value, str):
            return value
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            self.fail(f"invalid JSON: {exc.msg}", param, ctx)


JSON = JsonParamType()

GuardedCall = Callable[[GuardedNotionClient], Awaitable[dict[str, object]]]


def _run_guarded(config_path: str | None, call: GuardedCall) -> None:
    """Run one guarded API call and print its JSON result.

    Denials and API failures are printed as ``{"error", "code"}`` objects
    and exit with status 1.
    """
    config = _load_config_or_exit(config_path)
    token = _token_or_exit()

    async def _run() -> dict[str, object]:
        async with GuardedNotionClient.from_config(config, token) as client:
            return await call(client)

    try:
        result = asyncio.run(_run())
    except (PermissionDeniedError, InvalidParentError) as exc:
        _fail_json(exc.to_dict())
    except NotionAPIError as exc:
        _fail_json({"error": exc.message, "code": exc.code})
    except (ResourceStoreError, StoreContractError) as exc:
        _fail_json({"error": str(exc), "code": "UNKNOWN_ERROR"})
    console.print_json(data=result)


def _fail_json(payload: dict[str, object]) -> NoReturn:
    console.print_json(data=payload)
    sys.exit(1)


@cli.group(name="page")
def page_group() -> None:
    """Guarded page operations."""


@page_group.command(name="get")
@click.argument("page_id")
@_config_option
def page_get_command(page_id: str, config_path: str | None) -> None:
    """Retrieve a page."""
    _run_guarded(config_path, lambda client: client.get_page(page_id))


@page_group.command(name="create")
@click.option("--parent", "parent_id", required=True, help="Parent page or database id.")
@click.option(
    "--parent-type",
    type=click.Choice(["page", "database"]),
    default="page",
    show_default=True,
)
@click.option("--title", required=True, help="Page title.")
@click.option("--icon", default=None, help="Page icon emoji.")
@click.option("--content", type=JSON, default=None, help="Child blocks as a JSON array.")
@_config_option
def page_create_command(
    parent_id: str,
    parent_type: str,
    title: str,
    icon: str | None,
    content: object,
    config_path: str | None,
) -> None:
    """Create a page under a page or database."""
    params: dict[str, object] = {
        "parent": {f"{parent_type}_id": parent_id},
        "properties": {"title": {"title": [{"text": {"content": title}}]}},
    }
    if icon:
        params["icon"] = {"emoji": icon}
    if content is not None:
        if not isinstance(content, list):
            raise click.BadParameter("must be a JSON array of blocks", param_hint="--content")
        params["children"] = content
    _run_guarded(config_path, lambda client: client.create_page(params))


@page_group.command(name="update")
@click.argument("page_id")
@click.option("--properties", type=JSON, required=True, help="Properties as a JSON object.")
@_config_option
def page_update_command(page_id: str, properties: object, config_path: str | None) -> None:
    """Update a page's properties."""
    if not isinstance(properties, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--properties")
    _run_guarded(config_path, lambda client: client.update_page(page_id, properties))


@cli.group(name="db")
def db_group() -> None:
    """Guarded database operations."""


@db_group.command(name="get")
@click.argument("database_id")
@_config_option
def db_get_command(database_id: str, config_path: str | None) -> None:
    """Retrieve a database."""
    _run_guarded(config_path, lambda client: client.get_database(database_id))


@db_group.command(name="query")
@click.argument("database_id")
@click.option("--filter", "filter_", type=JSON, default=None, help="Filter as JSON.")
@click.option("--sorts", type=JSON, default=None, help="Sorts as a JSON array.")
@click.option("--start-cursor", default=None, help="Pagination cursor.")
@click.option("--page-size", type=click.IntRange(1, 100), default=100, show_default=True)
@_config_option
def db_query_command(
    database_id: str,
    filter_: object,
    sorts: object,
    start_cursor: str | None,
    page_size: int,
    config_path: str | None,
) -> None:
    """Query a database."""
    params: dict[str, object] = {"page_size": page_size}
    if filter_ is not None:
        params["filter"] = filter_
    if sorts is not None:
        params["sorts"] = sorts
    if start_cursor:
        params["start_cursor"] = start_cursor
    _run_guarded(config_path, lambda client: client.query_database(database_id, params))


@db_group.command(name="create-page")
@click.argument("database_id")
@click.option("--properties", type=JSON, required=True, help="Properties as a JSON object.")
@_config_option
def db_create_page_command(
    database_id: str, properties: object, config_path: str | None
) -> None:
    """Create a page in a database."""
    if not isinstance(properties, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--properties")
    _run_guarded(
        config_path, lambda client: client.create_database_page(database_id, properties)
    )


@cli.group(name="block")
def block_group() -> None:
    """Guarded block operations."""


@block_group.command(name="get")
@click.argument("block_id")
@_config_option
def block_get_command(block_id: str, config_path: str | None) -> None:
    """Retrieve a block."""
    _run_guarded(config_path, lambda client: client.get_block(block_id))


@block_group.command(name="children")
@click.argument("block_id")
@click.option("--start-cursor", default=None, help="Pagination cursor.")
@click.option("--page-size", type=click.IntRange(1, 100), default=None)
@_config_option
def block_children_command(
    block_id: str, start_cursor: str | None, page_size: int | None, config_path: str | None
) -> None:
    """List a block's (or page's) children."""
    _run_guarded(
        config_path,
        lambda client: client.get_block_children(block_id, start_cursor, page_size),
    )


@block_group.command(name="append")
@click.argument("block_id")
@click.option("--children", type=JSON, required=True, help="Child blocks as a JSON array.")
@_config_option
def block_append_command(block_id: str, children: object, config_path: str | None) -> None:
    """Append child blocks."""
    if not isinstance(children, list):
        raise click.BadParameter("must be a JSON array of blocks", param_hint="--children")
    _run_guarded(config_path, lambda client: client.append_block_children(block_id, children))


@block_group.command(name="delete")
@click.argument("block_id")
@_config_option
def block_delete_command(block_id: str, config_path: str | None) -> None:
    """Delete (archive) a block."""
    _run_guarded(config_path, lambda client: client.delete_block(block_id))


if __name__ == "__main__":
    cli()
