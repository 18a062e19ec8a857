"""CLI entry point for view-matrix-auth.

Invoked as::

    view-auth [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m view_matrix_auth.cli.main

Commands
--------
- check       Decide whether a principal holds a permission on a view
- principals  List every principal mentioned by any grant table
- show        Render the permission matrix of a view or the global table
- validate    Load the catalog and matrix and report skipped records
- grant       Replace a grant table from a submitted JSON form
- version     Show version information
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path

import click
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from view_matrix_auth.config import ConfigLoader, MatrixAuthConfig
from view_matrix_auth.logging_setup import configure_logging
from view_matrix_auth.permissions.catalog import (
    CatalogConfigError,
    PermissionCatalog,
    PermissionScope,
)
from view_matrix_auth.permissions.catalog_loader import CatalogLoader
from view_matrix_auth.permissions.grant_table import ANONYMOUS, GrantTable
from view_matrix_auth.permissions.strategy import MatrixStrategy, View
from view_matrix_auth.permissions.submission import (
    GrantSubmissionError,
    GrantSubmissionParser,
)
from view_matrix_auth.persistence.codec import DecodeContext
from view_matrix_auth.persistence.store import MatrixStore, StoreFormatError

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("view-auth.yaml")


@dataclass
class _Session:
    config: MatrixAuthConfig
    catalog: PermissionCatalog
    store: MatrixStore
    strategy: MatrixStrategy
    context: DecodeContext


def _load_session(config_path: str) -> _Session:
    loader = ConfigLoader()
    cfg_path = Path(config_path)
    try:
        config = loader.load(cfg_path) if cfg_path.exists() else loader.defaults()
    except ValidationError as exc:
        err_console.print(
            f"[red]Error:[/red] Invalid configuration {escape(str(cfg_path))}: "
            f"{escape(str(exc))}"
        )
        sys.exit(1)
    configure_logging(config.log_level)

    try:
        catalog = CatalogLoader().load(config.catalog_path)
        store = MatrixStore(catalog)
        if config.store_path.exists():
            strategy, context = store.load(config.store_path)
        else:
            strategy, context = MatrixStrategy(), DecodeContext()
    except (FileNotFoundError, CatalogConfigError, StoreFormatError) as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)

    return _Session(config, catalog, store, strategy, context)


_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to view-auth.yaml.",
)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="view-matrix-auth")
def cli() -> None:
    """View matrix authorization: check, list and edit per-view grants."""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from view_matrix_auth import __version__

    console.print(
        Panel(
            f"[bold]view-matrix-auth[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Per-view permission matrix authorization.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.option("--principal", "-u", required=True, help="User or group identifier.")
@click.option("--permission", "-p", "permission_id", required=True, help="Permission id, e.g. View.Read.")
@click.option("--view", "-v", "view_name", default=None, help="View name. Omit to check the global table.")
@_config_option
def check_command(principal: str, permission_id: str, view_name: str | None, config_path: str) -> None:
    """Decide whether PRINCIPAL holds PERMISSION on a view."""
    session = _load_session(config_path)

    permission = session.catalog.resolve(permission_id)
    if permission is None:
        err_console.print(f"[red]Unknown permission:[/red] {escape(permission_id)}")
        sys.exit(1)

    has_local = False
    if view_name is None:
        acl = session.strategy.get_root_acl()
    else:
        view = session.strategy.get_view(view_name)
        if view is None:
            err_console.print(f"[red]Unknown view:[/red] {escape(view_name)}")
            sys.exit(1)
        has_local = view.grant_table is not None
        acl = session.strategy.get_acl(view)

    decision = acl.check(principal, permission)
    if decision.allowed:
        via = decision.granted_by.id if decision.granted_by else permission.id
        source = "local" if has_local and decision.table_index == 0 else "global"
        status_str = f"[green]ALLOWED[/green] via {via} ({source})"
    else:
        status_str = "[red]DENIED[/red]"

    console.print(
        Panel(
            status_str,
            title=f"{principal} / {permission.id} / {view_name or '<global>'}",
            border_style="blue",
        )
    )
    sys.exit(0 if decision.allowed else 1)


# ---------------------------------------------------------------------------
# principals
# ---------------------------------------------------------------------------


@cli.command(name="principals")
@_config_option
def principals_command(config_path: str) -> None:
    """List every principal named by the global or any view table."""
    session = _load_session(config_path)
    principals = sorted(session.strategy.get_all_known_principals())
    if not principals:
        console.print("[yellow]No principals found.[/yellow]")
        return
    for principal in principals:
        console.print(principal)


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


def _render_matrix(
    title: str,
    table: GrantTable,
    catalog: PermissionCatalog,
    scope: PermissionScope,
) -> Table:
    granted = table.all_granted_permissions()
    columns = [
        permission
        for group in catalog.groups_for_scope(scope)
        for permission in group.permissions
        if catalog.show_permission(permission, scope)
    ]
    matrix = Table(title=title, box=box.SIMPLE)
    matrix.add_column("Principal", style="cyan", no_wrap=True)
    for permission in columns:
        matrix.add_column(permission.id, justify="center")

    principals = table.all_principals()
    if ANONYMOUS in table.groups():
        principals.append(ANONYMOUS)
    for principal in principals:
        cells = [
            "[green]x[/green]" if principal in granted.get(permission, frozenset()) else ""
            for permission in columns
        ]
        matrix.add_row(principal, *cells)
    return matrix


@cli.command(name="show")
@click.option("--view", "-v", "view_name", default=None, help="View name. Omit to show the global table.")
@_config_option
def show_command(view_name: str | None, config_path: str) -> None:
    """Render the permission matrix of a view or of the global table."""
    session = _load_session(config_path)

    if view_name is None:
        table = session.strategy.global_table
        scope = PermissionScope.GLOBAL
        title = "Global permissions"
    else:
        view = session.strategy.get_view(view_name)
        if view is None:
            err_console.print(f"[red]Unknown view:[/red] {escape(view_name)}")
            sys.exit(1)
        table = view.grant_table
        scope = PermissionScope.VIEW
        title = f"View {view_name}"

    if table is None:
        console.print(f"[yellow]{title}: no grant table configured.[/yellow]")
        return

    console.print(_render_matrix(title, table, session.catalog, scope))
    if view_name is not None:
        inherit = "[red]blocked[/red]" if table.blocks_inheritance else "[green]inherited[/green]"
        console.print(f"  Global permissions: {inherit}")


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.option("--strict", is_flag=True, default=False, help="Exit non-zero when records were skipped.")
@_config_option
def validate_command(strict: bool, config_path: str) -> None:
    """Load the catalog and matrix and report skipped records."""
    session = _load_session(config_path)
    views = session.strategy.views()
    console.print(
        f"[green]Loaded[/green] {len(session.catalog)} permissions, "
        f"{len(views)} views, global table: "
        f"{'yes' if session.strategy.global_table is not None else 'no'}"
    )

    if not session.context.has_warnings:
        console.print("[green]No records skipped.[/green]")
        return

    table = Table(title="Skipped records", box=box.SIMPLE)
    table.add_column("Source", style="cyan")
    table.add_column("Record", style="magenta")
    table.add_column("Reason")
    for warning in session.context.warnings:
        table.add_row(
            warning.source or "",
            f"{warning.record.tag}={warning.record.value!r}",
            warning.reason,
        )
    console.print(table)
    sys.exit(1 if strict else 0)


# ---------------------------------------------------------------------------
# grant
# ---------------------------------------------------------------------------


@cli.command(name="grant")
@click.option("--form", "-f", "form_file", required=True, type=click.Path(exists=True), help="JSON form submission.")
@click.option("--view", "-v", "view_name", default=None, help="View to configure. Omit for the global table.")
@_config_option
def grant_command(form_file: str, view_name: str | None, config_path: str) -> None:
    """Replace a grant table with the one described by a JSON form."""
    session = _load_session(config_path)

    try:
        form_data = json.loads(Path(form_file).read_text(encoding="utf-8"))
        new_table = GrantSubmissionParser(session.catalog).parse(form_data)
    except json.JSONDecodeError as exc:
        err_console.print(f"[red]Invalid JSON:[/red] {escape(str(exc))}")
        sys.exit(1)
    except GrantSubmissionError as exc:
        err_console.print(f"[red]Rejected ({exc.field}):[/red] {escape(str(exc))}")
        sys.exit(1)

    if view_name is None:
        session.strategy.replace_global_table(new_table)
    else:
        view = session.strategy.get_view(view_name)
        if view is None:
            view = View(view_name)
            session.strategy.add_view(view)
        view.replace_grant_table(new_table)

    session.store.save(session.strategy, session.config.store_path)
    console.print(
        f"[green]Saved[/green] {len(new_table)} grants for "
        f"{view_name or '<global>'} to [bold]{session.config.store_path}[/bold]"
    )


if __name__ == "__main__":
    cli()
