# crm_app/routes/clients.py

"""
Single-client JSON endpoints sharing the import engine's duplicate guard
"""

from dataclasses import replace

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from crm_app.importer.contracts import KnownIdentityFields, build_candidate, validate_candidate
from crm_app.importer.errors import DuplicateConflictError, ImportPayloadError, ShapeValidationError
from crm_app.importer.pipeline import ClientStore, build_index, ensure_not_duplicate, normalize_identity
from crm_app.models import Client, db
from crm_app.utils.access import resolve_scope

DOCUMENT_KEYS = ("cnpj", "document")


def _conflict(exc):
    return jsonify({"message": exc.message, "existingClientId": exc.existing_client_id}), 409


def _with_stored_identity(candidate, client):
    """Fill identity fields the caller left out with the stored values."""
    supplied = candidate.identity
    identity = KnownIdentityFields(
        name=client.name if supplied.name is None else supplied.name,
        city=client.city if supplied.city is None else supplied.city,
        state=client.state if supplied.state is None else supplied.state,
        document=client.cnpj if supplied.document is None else supplied.document,
    )
    return replace(candidate, identity=identity)


def _read_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ImportPayloadError("Invalid JSON data")
    return data


def register_client_routes(app):
    """Register client routes"""

    @app.route("/api/clients", methods=["GET"])
    @login_required
    def api_list_clients():
        scope = resolve_scope(current_user, request.args.get("sellerId"))
        clients = scope.apply(Client.query).order_by(Client.created_at, Client.id).all()
        return jsonify({"clients": [client.to_dict() for client in clients]}), 200

    @app.route("/api/clients/<client_id>", methods=["GET"])
    @login_required
    def api_get_client(client_id):
        scope = resolve_scope(current_user)
        client = ClientStore().get(client_id, scope)
        if client is None:
            return jsonify({"message": "Client not found."}), 404
        return jsonify(client.to_dict()), 200

    @app.route("/api/clients", methods=["POST"])
    @login_required
    def api_create_client():
        """
        Create one client. Rejected with 409 when a visible client already
        has the same document, or the same name, city and state.
        """
        scope = resolve_scope(current_user)
        store = ClientStore()
        try:
            payload = validate_candidate(build_candidate(_read_body(), index=0))
            payload = payload.with_owner(scope.resolve_owner_id(payload.owner_seller_id))
            identity = normalize_identity(payload.name, payload.city, payload.state, payload.cnpj)
            ensure_not_duplicate(identity, build_index(scope, store=store))
            client = store.create(payload, identity)
        except ImportPayloadError as exc:
            return jsonify({"message": exc.message}), 400
        except ShapeValidationError as exc:
            return jsonify({"message": exc.message, "field": exc.field}), 400
        except DuplicateConflictError as exc:
            current_app.logger.info(f"Duplicate client rejected for user {current_user.id}: {exc.message}")
            return _conflict(exc)

        current_app.logger.info(f"Client {client.id} created by user {current_user.id}")
        return jsonify(client.to_dict()), 201

    @app.route("/api/clients/<client_id>", methods=["PUT"])
    @login_required
    def api_update_client(client_id):
        """
        Partially update a client. Supplied fields overwrite stored ones and
        the result is re-checked against every other visible client.
        """
        scope = resolve_scope(current_user)
        store = ClientStore()
        client = db.session.get(Client, client_id)
        if client is None:
            return jsonify({"message": "Client not found."}), 404
        if not scope.allows(client):
            if current_user.is_seller:
                return jsonify({"message": "You can only edit your own clients."}), 403
            return jsonify({"message": "Client not found."}), 404

        try:
            body = _read_body()
            # An explicit empty document removes the stored one; other empty fields are ignored
            clear_document = any(body.get(key) == "" for key in DOCUMENT_KEYS)
            fields = {key: value for key, value in body.items() if value != "" or key in DOCUMENT_KEYS}
            candidate = build_candidate(fields, index=0)
            payload = validate_candidate(_with_stored_identity(candidate, client))
            if payload.owner_explicit:
                payload = payload.with_owner(scope.resolve_owner_id(payload.owner_seller_id))
            identity = normalize_identity(
                payload.name,
                payload.city,
                payload.state,
                payload.cnpj if payload.cnpj is not None or clear_document else client.cnpj,
            )
            ensure_not_duplicate(identity, build_index(scope, store=store), ignore_id=client.id)
            store.update(client, payload, identity, clear_document=clear_document)
        except ImportPayloadError as exc:
            return jsonify({"message": exc.message}), 400
        except ShapeValidationError as exc:
            return jsonify({"message": exc.message, "field": exc.field}), 400
        except DuplicateConflictError as exc:
            return _conflict(exc)

        current_app.logger.info(f"Client {client.id} updated by user {current_user.id}")
        return jsonify(client.to_dict()), 200
