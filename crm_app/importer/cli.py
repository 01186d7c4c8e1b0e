"""
CLI commands for spreadsheet client imports and maintenance.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
from flask import current_app
from flask.cli import with_appcontext

from crm_app.models import User
from crm_app.utils.access import resolve_scope

from .adapters import ClientCSVAdapter, CSVAdapterError
from .contracts import ImportAction, build_candidates
from .errors import ImportPayloadError, StoreUnavailableError
from .mapping import MappingLoadError, get_active_client_mapping
from .pipeline import backfill_normalized_fields, build_preview, execute_import, summarize_preview
from .views import serialize_import_result, serialize_preview


@click.group(name="clients")
def clients_cli():
    """Client import and maintenance commands."""


def _resolve_user(email: str) -> User:
    user = User.find_by_email(email)
    if user is None or not user.is_active:
        raise click.ClickException(f"No active user with email {email}.")
    return user


def _read_candidates(file_path: Path, *, default_action: Optional[str] = None):
    try:
        mapping = get_active_client_mapping()
        with file_path.open("r", encoding="utf-8", newline="") as handle:
            rows = ClientCSVAdapter(handle, mapping).read_rows(default_action=default_action)
        return build_candidates(rows)
    except (MappingLoadError, CSVAdapterError, ImportPayloadError) as exc:
        raise click.ClickException(str(exc)) from exc


_file_argument = click.argument(
    "file_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
)
_user_option = click.option("--user", "user_email", required=True, help="Email of the user running the import.")
_seller_option = click.option(
    "--seller-id",
    type=int,
    default=None,
    help="Narrow a manager or director's view to one seller.",
)


@clients_cli.command("preview")
@_file_argument
@_user_option
@_seller_option
@click.option("--json", "as_json", is_flag=True, help="Emit the full preview as JSON.")
@with_appcontext
def preview_command(file_path: Path, user_email: str, seller_id: Optional[int], as_json: bool):
    """Preview a CSV file without writing anything."""

    user = _resolve_user(user_email)
    candidates = _read_candidates(file_path)
    try:
        items = build_preview(candidates, resolve_scope(user, seller_id))
    except StoreUnavailableError as exc:
        raise click.ClickException(exc.message) from exc

    if as_json:
        click.echo(json.dumps(serialize_preview(items), indent=2, default=str))
        return

    summary = summarize_preview(items)
    click.echo(
        f"Preview of {file_path.name}: {summary.total} rows, {summary.new_count} new, "
        f"{summary.duplicate_count} duplicate, {summary.error_count} invalid."
    )
    payload = serialize_preview(items)
    for duplicate in payload["duplicados"]:
        target = duplicate["existingClientId"] or "-"
        click.echo(f"  row {duplicate['rowNumber']}: {duplicate['reason']} (existing: {target})")
    for error in payload["erros"]:
        click.echo(f"  row {error['rowNumber']}: {error['message']}")


@clients_cli.command("import")
@_file_argument
@_user_option
@_seller_option
@click.option(
    "--default-action",
    type=click.Choice([action.value for action in ImportAction]),
    default=None,
    help="Action applied to rows without an action column value.",
)
@click.option("--json", "as_json", is_flag=True, help="Emit the import summary as JSON.")
@with_appcontext
def import_command(
    file_path: Path,
    user_email: str,
    seller_id: Optional[int],
    default_action: Optional[str],
    as_json: bool,
):
    """Import clients from a CSV file."""

    user = _resolve_user(user_email)
    candidates = _read_candidates(file_path, default_action=default_action)
    try:
        result = execute_import(candidates, resolve_scope(user, seller_id))
    except StoreUnavailableError as exc:
        raise click.ClickException(exc.message) from exc

    if as_json:
        click.echo(json.dumps(serialize_import_result(result), indent=2))
        return

    click.echo(
        f"Imported {result.created}, updated {result.updated}, skipped {result.skipped}, "
        f"failed {result.failed} of {result.total} rows."
    )
    for error in result.errors:
        click.echo(f"  row {error.row_number} ({error.candidate_name}): {error.message}")


@clients_cli.command("backfill-normalized")
@click.option("--batch-size", type=int, default=None, help="Rows per batch (defaults to CLIENT_BACKFILL_BATCH_SIZE).")
@with_appcontext
def backfill_command(batch_size: Optional[int]):
    """Recompute normalized name, city, and document columns for every client."""

    size = batch_size or current_app.config.get("CLIENT_BACKFILL_BATCH_SIZE", 500)
    if size < 1:
        raise click.ClickException("--batch-size must be a positive integer.")
    try:
        summary = backfill_normalized_fields(batch_size=size)
    except StoreUnavailableError as exc:
        raise click.ClickException(exc.message) from exc
    click.echo(
        f"Backfill complete: {summary.rows_processed} processed, {summary.rows_updated} updated, "
        f"{summary.rows_conflicting} skipped as duplicates."
    )


def get_disabled_clients_group() -> click.Group:
    """
    Return a minimal command group that informs the operator the importer is disabled.
    """

    @click.group(name="clients", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Client import commands are unavailable because CLIENT_IMPORT_ENABLED=false.")

    return disabled_group
