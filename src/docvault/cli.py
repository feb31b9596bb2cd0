"""Command line interface for the docvault document store."""

from __future__ import annotations

import difflib
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from docvault.config import ConfigError, ConfigManager, DocvaultConfig
from docvault.log_config import setup_logging
from docvault.store import (
    Cursor,
    DocumentStatus,
    DocumentStore,
    DocumentUpdate,
    FilterConfig,
    ItemType,
    ListOptions,
    NewDocument,
    NewFolder,
    NewUser,
    Role,
    SortConfig,
    SortDirection,
    StoreError,
    User,
    UserStore,
)

console = Console()

_STATUS_CHOICES = [status.name.lower() for status in DocumentStatus]
_ROLE_CHOICES = [role.name.lower() for role in Role]
_SORT_CHOICES = ["created_at", "updated_at", "name", "status"]


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, quiet: bool) -> None:
    """Print CLI output unless quiet mode suppresses it.

    Args:
        message: Renderable or string to emit.
        quiet: Whether quiet mode is active.
    """

    if quiet:
        return
    console.print(message)


def _run_guarded(json_output: bool, action: Any) -> None:
    """Run a command body, mapping failures onto standard CLI errors.

    Args:
        json_output: Whether errors should be rendered as JSON payloads.
        action: Zero-argument callable holding the command body.
    """

    try:
        action()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except StoreError as exc:
        _handle_cli_error(
            str(exc),
            code="store_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


def _load_config(ctx: click.Context) -> DocvaultConfig:
    """Load configuration with CLI overrides and configure logging.

    Args:
        ctx: Click context carrying group-level overrides.

    Returns:
        DocvaultConfig: Effective configuration.
    """
    overrides = (ctx.obj or {}).get("overrides") or None
    config = ConfigManager().load(cli_overrides=overrides)
    setup_logging(config.logging)
    return config


def _open_stores(ctx: click.Context) -> tuple[DocvaultConfig, DocumentStore, UserStore]:
    config = _load_config(ctx)
    store = DocumentStore.from_config(config)
    return config, store, UserStore(store.sessions)


def _resolve_quiet(
    ctx: click.Context, config: DocvaultConfig, quiet: bool, json_output: bool
) -> bool:
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        return False
    return quiet_enabled


def _require_user(users: UserStore, external_id: str) -> User:
    user = users.get_user_by_external_id(external_id)
    if user is None:
        raise click.ClickException(
            f"Unknown user '{external_id}'. Create it with `docvault user add {external_id}`."
        )
    return user


def _item_row(item: Any) -> list[str]:
    status = item.status.name.lower() if item.status is not None else "-"
    size = str(item.size) if item.item_type is ItemType.FILE else "-"
    return [
        item.item_type.value.lower(),
        item.name,
        status,
        size,
        item.created_at.strftime("%Y-%m-%d %H:%M"),
        item.id,
    ]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="docvault")
@click.option(
    "--database-url",
    type=str,
    default=None,
    help="Override the configured database URL for this invocation.",
)
@click.pass_context
def cli(ctx: click.Context, database_url: str | None) -> None:
    """docvault stores per-user trees of documents and folders.

    Args:
        ctx: Click context populated with group-level overrides.
        database_url: Optional database URL taking precedence over configuration.
    """
    overrides: dict[str, Any] = {}
    if database_url:
        overrides["database.url"] = database_url
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = overrides


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the database tables if they do not exist."""

    def _action() -> None:
        config, _, _ = _open_stores(ctx)
        console.print(f"[green]Database ready at {config.database.url}.[/green]")

    _run_guarded(False, _action)


@cli.group()
def user() -> None:
    """Manage user accounts."""


@user.command("add")
@click.argument("external_id")
@click.option(
    "--role",
    type=click.Choice(_ROLE_CHOICES),
    default="user",
    show_default=True,
    help="Role assigned to the new account.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the created user as JSON.")
@click.pass_context
def user_add(ctx: click.Context, external_id: str, role: str, json_output: bool) -> None:
    """Register a user identified by EXTERNAL_ID."""

    def _action() -> None:
        _, _, users = _open_stores(ctx)
        if users.get_user_by_external_id(external_id) is not None:
            raise click.ClickException(f"User '{external_id}' already exists.")
        created = users.create_user(NewUser(external_id=external_id, role=Role[role.upper()]))
        if json_output:
            console.print_json(data=created.model_dump(mode="json"))
            return
        console.print(f"[green]Created user {created.external_id} ({created.id}).[/green]")

    _run_guarded(json_output, _action)


@cli.command()
@click.argument("name")
@click.option("--user", "external_id", required=True, help="External id of the owner.")
@click.option("--parent", "parent_id", type=str, default=None, help="Parent folder id.")
@click.option("--json", "json_output", is_flag=True, help="Emit the created folder as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def mkdir(
    ctx: click.Context,
    name: str,
    external_id: str,
    parent_id: str | None,
    json_output: bool,
    quiet: bool,
) -> None:
    """Create a folder called NAME."""

    def _action() -> None:
        config, store, users = _open_stores(ctx)
        quiet_enabled = _resolve_quiet(ctx, config, quiet, json_output)
        owner = _require_user(users, external_id)
        folder = store.create_folder(NewFolder(user_id=owner.id, name=name, parent_id=parent_id))
        if json_output:
            console.print_json(data=folder.model_dump(mode="json"))
            return
        _emit_message(
            f"[green]Created folder {folder.name} ({folder.id}).[/green]", quiet=quiet_enabled
        )

    _run_guarded(json_output, _action)


@cli.command()
@click.argument("name")
@click.option("--user", "external_id", required=True, help="External id of the owner.")
@click.option("--type", "mime_type", required=True, help="MIME type of the file.")
@click.option("--path", "storage_path", type=str, default=None, help="Storage path of the blob.")
@click.option(
    "--size", type=click.IntRange(min=0), default=0, show_default=True, help="Size in bytes."
)
@click.option(
    "--status",
    "status_name",
    type=click.Choice(_STATUS_CHOICES),
    default="uploaded",
    show_default=True,
    help="Initial processing status.",
)
@click.option("--parent", "parent_id", type=str, default=None, help="Parent folder id.")
@click.option("--collection", "collection_id", type=str, default=None, help="Collection id tag.")
@click.option("--json", "json_output", is_flag=True, help="Emit the created file as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def add(
    ctx: click.Context,
    name: str,
    external_id: str,
    mime_type: str,
    storage_path: str | None,
    size: int,
    status_name: str,
    parent_id: str | None,
    collection_id: str | None,
    json_output: bool,
    quiet: bool,
) -> None:
    """Register a file called NAME."""

    def _action() -> None:
        config, store, users = _open_stores(ctx)
        quiet_enabled = _resolve_quiet(ctx, config, quiet, json_output)
        owner = _require_user(users, external_id)
        document = store.create_document(
            NewDocument(
                user_id=owner.id,
                name=name,
                path=storage_path or name,
                type=mime_type,
                size=size,
                status=DocumentStatus[status_name.upper()],
                parent_id=parent_id,
                collection_id=collection_id,
            )
        )
        if json_output:
            console.print_json(data=document.model_dump(mode="json"))
            return
        _emit_message(
            f"[green]Added file {document.name} ({document.id}).[/green]", quiet=quiet_enabled
        )

    _run_guarded(json_output, _action)


@cli.command("ls")
@click.option("--user", "external_id", required=True, help="External id of the owner.")
@click.option("--parent", "parent_id", type=str, default=None, help="Folder to list.")
@click.option(
    "--sort",
    "sort_field",
    type=click.Choice(_SORT_CHOICES),
    default="created_at",
    show_default=True,
    help="Secondary sort column.",
)
@click.option(
    "--direction",
    type=click.Choice([direction.value for direction in SortDirection]),
    default="desc",
    show_default=True,
    help="Sort direction.",
)
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Page size.")
@click.option("--name", "name_filter", type=str, default=None, help="Case-insensitive name filter.")
@click.option(
    "--status",
    "status_name",
    type=click.Choice(_STATUS_CHOICES),
    default=None,
    help="Only list files with this status.",
)
@click.option("--cursor", "cursor_token", type=str, default=None, help="Next-page token.")
@click.option("--json", "json_output", is_flag=True, help="Emit the page as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def list_items(
    ctx: click.Context,
    external_id: str,
    parent_id: str | None,
    sort_field: str,
    direction: str,
    limit: int | None,
    name_filter: str | None,
    status_name: str | None,
    cursor_token: str | None,
    json_output: bool,
    quiet: bool,
) -> None:
    """List one page of a folder's direct children."""

    def _action() -> None:
        config, store, users = _open_stores(ctx)
        quiet_enabled = _resolve_quiet(ctx, config, quiet, json_output)
        owner = _require_user(users, external_id)
        options = ListOptions(
            parent_id=parent_id,
            filters=FilterConfig(
                name=name_filter,
                status=DocumentStatus[status_name.upper()] if status_name else None,
            ),
            sort=SortConfig(field=sort_field, direction=SortDirection(direction)),
            limit=limit,
            cursor=Cursor.decode(cursor_token) if cursor_token else None,
        )
        page = store.list_items(owner.id, options)
        token = page.next_cursor.encode() if page.next_cursor is not None else None

        if json_output:
            console.print_json(
                data={
                    "items": [item.model_dump(mode="json") for item in page.items],
                    "has_more": page.has_more,
                    "next_cursor": token,
                }
            )
            return

        if not page.items:
            _emit_message("[yellow]No items found.[/yellow]", quiet=quiet_enabled)
            return

        table = Table(title="Items", show_lines=False)
        for column in ("Type", "Name", "Status", "Size", "Created", "Id"):
            table.add_column(column, overflow="fold")
        for item in page.items:
            table.add_row(*_item_row(item))
        _emit_message(table, quiet=quiet_enabled)
        if token:
            _emit_message(f"Next page: --cursor {token}", quiet=quiet_enabled)

    _run_guarded(json_output, _action)


@cli.command("rm")
@click.argument("item_id")
@click.option("--json", "json_output", is_flag=True, help="Emit the deletion result as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def remove(ctx: click.Context, item_id: str, json_output: bool, quiet: bool) -> None:
    """Delete ITEM_ID and, for folders, everything beneath it."""

    def _action() -> None:
        config, store, _ = _open_stores(ctx)
        quiet_enabled = _resolve_quiet(ctx, config, quiet, json_output)
        result = store.delete_item(item_id)
        if json_output:
            console.print_json(data=result.model_dump(mode="json"))
            return
        if not result.deleted:
            _emit_message(
                f"[yellow]No item {item_id}; nothing deleted.[/yellow]", quiet=quiet_enabled
            )
            return
        _emit_message(
            f"[green]Deleted {len(result.deleted_ids)} item(s) under {item_id}.[/green]",
            quiet=quiet_enabled,
        )

    _run_guarded(json_output, _action)


@cli.command()
@click.argument("item_id")
@click.argument("status_name", type=click.Choice(_STATUS_CHOICES))
@click.option("--error", "error_message", type=str, default=None, help="Failure message.")
@click.option("--json", "json_output", is_flag=True, help="Emit the updated file as JSON.")
@click.pass_context
def status(
    ctx: click.Context,
    item_id: str,
    status_name: str,
    error_message: str | None,
    json_output: bool,
) -> None:
    """Set the processing status of file ITEM_ID."""

    def _action() -> None:
        _, store, _ = _open_stores(ctx)
        updated = store.update_document(
            item_id,
            DocumentUpdate(status=DocumentStatus[status_name.upper()], error=error_message),
        )
        if updated is None:
            raise click.ClickException(f"No file with id {item_id}.")
        if json_output:
            console.print_json(data=updated.model_dump(mode="json"))
            return
        console.print(f"[green]{updated.name} is now {updated.status.name.lower()}.[/green]")

    _run_guarded(json_output, _action)


@cli.command("path")
@click.argument("folder_id", required=False)
@click.option("--user", "external_id", required=True, help="External id of the owner.")
@click.option("--json", "json_output", is_flag=True, help="Emit breadcrumbs as JSON.")
@click.pass_context
def folder_path(
    ctx: click.Context,
    folder_id: str | None,
    external_id: str,
    json_output: bool,
) -> None:
    """Show the breadcrumb trail from the root to FOLDER_ID."""

    def _action() -> None:
        _, store, users = _open_stores(ctx)
        owner = _require_user(users, external_id)
        crumbs = store.get_folder_path(owner.id, folder_id)
        if json_output:
            console.print_json(data=[crumb.model_dump(mode="json") for crumb in crumbs])
            return
        trail = " / ".join(crumb.name for crumb in crumbs)
        console.print(f"/ {trail}" if trail else "/")

    _run_guarded(json_output, _action)


@cli.group()
def config() -> None:
    """Manage docvault configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()
    before = manager.read_text().splitlines()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    # The timestamp header always changes; only report real edits.
    meaningful = [
        line
        for line in diff
        if line.startswith(("+", "-"))
        and not line.startswith(("+++", "---", "+# Last updated", "-# Last updated"))
    ]
    if not meaningful:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key.strip()}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
