"""
Client import feature package.

Mounts the import blueprint and the ``clients`` CLI group when
``CLIENT_IMPORT_ENABLED`` is set.
"""

from __future__ import annotations

from flask import Flask

from .cli import clients_cli, get_disabled_clients_group
from .views import client_import_blueprint

IMPORTER_EXTENSION_KEY = "client_import"

__all__ = ["init_importer", "IMPORTER_EXTENSION_KEY"]


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    # Avoid duplicate registrations when running tests
    command_name = clients_cli.name
    if command_name in app.cli.commands:
        app.cli.commands.pop(command_name)

    if enabled:
        app.cli.add_command(clients_cli)
    else:
        app.cli.add_command(get_disabled_clients_group())


def init_importer(app: Flask) -> None:
    """
    Conditionally mount the import blueprint and CLI based on configuration.
    """
    enabled = bool(app.config.get("CLIENT_IMPORT_ENABLED", True))
    state = app.extensions.setdefault(IMPORTER_EXTENSION_KEY, {})
    state.update(
        {
            "enabled": enabled,
            "max_rows": app.config.get("CLIENT_IMPORT_MAX_ROWS"),
        }
    )

    if not enabled:
        _set_cli(app, enabled=False)
        app.logger.info("Client import disabled via CLIENT_IMPORT_ENABLED flag; skipping registration.")
        return

    if client_import_blueprint.name not in app.blueprints:
        app.register_blueprint(client_import_blueprint)
    _set_cli(app, enabled=True)
    app.logger.info("Client import enabled (max rows per batch: %s)", state["max_rows"])
