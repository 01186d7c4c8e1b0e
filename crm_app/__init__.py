# crm_app/__init__.py
"""
CRM application package: models, client import engine, and HTTP routes.
"""
