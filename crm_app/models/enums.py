# crm_app/models/enums.py
"""
Enums shared by user and client models.
"""

from enum import Enum as PyEnum


class UserRole(PyEnum):
    """Sales hierarchy roles; visibility scope depends on the role"""

    SELLER = "vendedor"
    MANAGER = "gerente"
    DIRECTOR = "diretor"


class ClientType(PyEnum):
    """Legal entity (PJ) or individual (PF) client"""

    PJ = "PJ"
    PF = "PF"
