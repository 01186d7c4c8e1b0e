"""
Client import blueprint: preview, simulate, and commit endpoints.
"""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from crm_app.utils.access import resolve_scope

from .contracts import parse_import_request
from .errors import ImportPayloadError
from .pipeline import DuplicateItem, ErrorItem, NewItem, build_preview, execute_import, summarize_preview

client_import_blueprint = Blueprint("client_import", __name__, url_prefix="/api/clients/import")


def _json_error(message: str, status: HTTPStatus | int):
    return jsonify({"message": message}), status


def _parse_request():
    body = request.get_json(silent=True)
    return parse_import_request(
        body,
        row_offset=current_app.config.get("CLIENT_IMPORT_ROW_OFFSET", 2),
        max_rows=current_app.config.get("CLIENT_IMPORT_MAX_ROWS"),
    )


def _current_scope():
    return resolve_scope(current_user, request.args.get("sellerId"))


def serialize_preview(items) -> dict:
    novos: list[dict] = []
    duplicados: list[dict] = []
    erros: list[dict] = []
    for item in items:
        if isinstance(item, NewItem):
            novos.append({"rowNumber": item.row_number, "row": dict(item.row)})
        elif isinstance(item, DuplicateItem):
            duplicados.append(
                {
                    "rowNumber": item.row_number,
                    "row": dict(item.row),
                    "existingClientId": item.existing_record_id or None,
                    "reason": item.reason,
                }
            )
        elif isinstance(item, ErrorItem):
            erros.append({"rowNumber": item.row_number, "row": dict(item.row), "message": item.message})
    return {"novos": novos, "duplicados": duplicados, "erros": erros}


def serialize_import_result(result) -> dict:
    return {
        "totalImportados": result.created,
        "totalAtualizados": result.updated,
        "totalIgnorados": result.skipped,
        "totalErros": result.failed,
        "errors": [
            {"rowNumber": error.row_number, "clientName": error.candidate_name, "message": error.message}
            for error in result.errors
        ],
    }


@client_import_blueprint.post("/preview")
@login_required
def preview_import():
    """
    Classify every submitted row as new, duplicate, or invalid without writing.
    """
    try:
        candidates = _parse_request()
    except ImportPayloadError as exc:
        return _json_error(exc.message, exc.status_code)

    items = build_preview(candidates, _current_scope())
    return jsonify(serialize_preview(items)), HTTPStatus.OK


@client_import_blueprint.post("/simulate")
@login_required
def simulate_import():
    try:
        candidates = _parse_request()
    except ImportPayloadError as exc:
        return _json_error(exc.message, exc.status_code)

    summary = summarize_preview(build_preview(candidates, _current_scope()))
    return jsonify({"simulated": True, "summary": summary.as_dict()}), HTTPStatus.OK


@client_import_blueprint.post("")
@login_required
def commit_import():
    """
    Import the submitted rows, applying each row's action to its duplicates.

    Row failures are reported in the summary; the request only fails as a
    whole for malformed payloads or an unreachable store.
    """
    try:
        candidates = _parse_request()
    except ImportPayloadError as exc:
        return _json_error(exc.message, exc.status_code)

    result = execute_import(candidates, _current_scope())
    current_app.logger.info(
        "Client import by user %s: %s rows, %s failed",
        current_user.id,
        result.total,
        result.failed,
    )
    return jsonify(serialize_import_result(result)), HTTPStatus.OK
