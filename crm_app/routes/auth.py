# crm_app/routes/auth.py

"""
Session authentication endpoints
"""

from flask import current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from crm_app.models import User


def register_auth_routes(app):
    """Register authentication routes"""

    @app.route("/api/auth/login", methods=["POST"])
    def api_login():
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"message": "Invalid JSON data"}), 400

        email = str(data.get("email") or "").strip()
        password = str(data.get("password") or "")
        if not email or not password:
            return jsonify({"message": "Email and password are required."}), 400

        user = User.find_by_email(email)
        if user is None or not user.is_active or not user.check_password(password):
            current_app.logger.warning(f"Failed login attempt for {email}")
            return jsonify({"message": "Invalid email or password."}), 401

        login_user(user)
        current_app.logger.info(f"User {user.email} logged in")
        return jsonify({"user": user.to_dict()}), 200

    @app.route("/api/auth/logout", methods=["POST"])
    @login_required
    def api_logout():
        current_app.logger.info(f"User {current_user.email} logged out")
        logout_user()
        return jsonify({"message": "Logged out."}), 200

    @app.route("/api/auth/me", methods=["GET"])
    @login_required
    def api_me():
        return jsonify({"user": current_user.to_dict()}), 200
