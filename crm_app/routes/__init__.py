# crm_app/routes/__init__.py
"""
Application routes package
"""

from .auth import register_auth_routes
from .clients import register_client_routes


def init_routes(app):
    """Initialize all application routes"""
    register_auth_routes(app)
    register_client_routes(app)
