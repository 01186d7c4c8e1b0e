# crm_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .client import Client
from .enums import ClientType, UserRole
from .user import User

__all__ = [
    "db",
    "BaseModel",
    "User",
    "Client",
    "ClientType",
    "UserRole",
]
