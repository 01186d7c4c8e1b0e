# crm_app/utils/access.py

"""
Access scope resolution: which clients a caller can see and who owns the
clients they create.
"""

from __future__ import annotations

from dataclasses import dataclass

from crm_app.models import Client, UserRole


@dataclass(frozen=True)
class AccessScope:
    """
    Visibility filter derived from the authenticated caller.

    Attributes:
        user_id: Acting user; default owner of newly created clients.
        role: Acting user's role.
        owner_seller_id: When set, only clients owned by this seller are visible.
    """

    user_id: int
    role: UserRole
    owner_seller_id: int | None = None

    @property
    def can_choose_owner(self) -> bool:
        return self.role in {UserRole.MANAGER, UserRole.DIRECTOR}

    def apply(self, query):
        """Restrict a ``Client`` query to the visible subset."""
        if self.owner_seller_id is not None:
            query = query.filter(Client.owner_seller_id == self.owner_seller_id)
        return query

    def allows(self, client: Client) -> bool:
        return self.owner_seller_id is None or client.owner_seller_id == self.owner_seller_id

    def resolve_owner_id(self, requested_owner_id: int | None = None) -> int:
        """
        Decide who owns a client created by this caller.

        Sellers always own what they create; managers and directors may assign
        another seller and default to themselves.
        """
        if self.can_choose_owner and requested_owner_id:
            return requested_owner_id
        return self.user_id


def _coerce_seller_id(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def resolve_scope(user, seller_id=None) -> AccessScope:
    """
    Build the scope for ``user``.

    Sellers only see their own clients. Managers and directors see every
    client unless they narrow the view to one seller via ``seller_id``.
    """
    if user.role == UserRole.SELLER:
        return AccessScope(user_id=user.id, role=user.role, owner_seller_id=user.id)
    return AccessScope(user_id=user.id, role=user.role, owner_seller_id=_coerce_seller_id(seller_id))
