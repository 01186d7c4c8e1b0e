# crm_app/utils/__init__.py
"""
Shared helpers: access scopes, logging setup, and JSON error handlers
"""
