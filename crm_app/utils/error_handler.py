# crm_app/utils/error_handler.py

"""
JSON error responses for the API
"""

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from crm_app.importer.errors import StoreUnavailableError
from crm_app.models import db


def init_error_handlers(app):
    """Register JSON error handlers on the app"""

    @app.errorhandler(StoreUnavailableError)
    def store_unavailable(error):
        current_app.logger.error(f"Client store unavailable: {error.message}")
        return jsonify({"message": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({"message": error.description}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        current_app.logger.error(f"Unhandled server error: {error}", exc_info=True)
        return jsonify({"message": "Internal server error."}), 500
