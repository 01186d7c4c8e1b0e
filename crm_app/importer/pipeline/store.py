"""
Client record store used by the import engine.

Wraps the SQLAlchemy session so the engine only sees load/get/create/update
operations and the import error taxonomy instead of driver exceptions.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Sequence

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from crm_app.models import Client, ClientType, db

from ..contracts import ClientPayload
from ..errors import DuplicateConflictError, StoreUnavailableError
from .normalize import NormalizedIdentity


_UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """Tell unique-constraint failures apart from other integrity errors (foreign keys, NOT NULL)."""
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code == _UNIQUE_VIOLATION_SQLSTATE
    return "unique constraint" in str(orig).lower()


@dataclass(frozen=True)
class ExistingRecord:
    """Identity columns of a stored client, including cached normalized values."""

    id: str
    name: str | None
    city: str | None
    state: str | None
    document: str | None
    name_normalized: str | None = None
    city_normalized: str | None = None
    document_normalized: str | None = None


class ClientStore:
    """Facade over the ``clients`` table for import reads and writes."""

    def __init__(self, session: Session | None = None):
        self.session: Session = session or db.session

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            self.session.rollback()
            if not is_unique_violation(exc):
                raise
            raise DuplicateConflictError() from exc
        except (OperationalError, InterfaceError) as exc:
            self.session.rollback()
            raise StoreUnavailableError() from exc

    def load_identities(self, scope) -> Sequence[ExistingRecord]:
        """
        Load identity columns of every client visible under ``scope`` in
        creation order (oldest first).
        """
        query = self.session.query(
            Client.id,
            Client.name,
            Client.city,
            Client.state,
            Client.cnpj,
            Client.name_normalized,
            Client.city_normalized,
            Client.cnpj_normalized,
        )
        query = scope.apply(query).order_by(Client.created_at, Client.id)
        with self._translate_errors():
            rows = query.all()
        return [
            ExistingRecord(
                id=row.id,
                name=row.name,
                city=row.city,
                state=row.state,
                document=row.cnpj,
                name_normalized=row.name_normalized,
                city_normalized=row.city_normalized,
                document_normalized=row.cnpj_normalized,
            )
            for row in rows
        ]

    def get(self, client_id: str, scope=None) -> Client | None:
        with self._translate_errors():
            client = self.session.get(Client, client_id)
        if client is None or (scope is not None and not scope.allows(client)):
            return None
        return client

    def create(self, payload: ClientPayload, identity: NormalizedIdentity) -> Client:
        client = Client(
            name=payload.name,
            city=payload.city,
            potential_ha=payload.potential_ha or 0,
            farm_size_ha=payload.farm_size_ha or 0,
            client_type=payload.client_type or ClientType.PJ,
            cnpj=payload.cnpj,
            region=payload.region,
            segment=payload.segment,
            owner_seller_id=payload.owner_seller_id,
            attributes_json=dict(payload.extra) or None,
        )
        _apply_identity(client, identity)
        with self._translate_errors():
            self.session.add(client)
            self.session.commit()
        return client

    def update(
        self,
        client: Client,
        payload: ClientPayload,
        identity: NormalizedIdentity,
        *,
        clear_document: bool = False,
    ) -> Client:
        """
        Merge ``payload`` into ``client``: supplied fields overwrite, absent
        ones keep their stored value. Ownership only changes when the payload
        names an owner explicitly; the document is only removed when
        ``clear_document`` is set.
        """
        client.name = payload.name or client.name
        client.city = payload.city or client.city
        if payload.cnpj is not None:
            client.cnpj = payload.cnpj
        elif clear_document:
            client.cnpj = None
        if payload.region is not None:
            client.region = payload.region
        if payload.potential_ha is not None:
            client.potential_ha = payload.potential_ha
        if payload.farm_size_ha is not None:
            client.farm_size_ha = payload.farm_size_ha
        if payload.client_type is not None:
            client.client_type = payload.client_type
        if payload.segment is not None:
            client.segment = payload.segment
        if payload.owner_explicit and payload.owner_seller_id is not None:
            client.owner_seller_id = payload.owner_seller_id
        if payload.extra:
            client.attributes_json = {**(client.attributes_json or {}), **payload.extra}
        _apply_identity(client, identity)
        with self._translate_errors():
            self.session.commit()
        return client

    def rollback(self) -> None:
        self.session.rollback()


def _apply_identity(client: Client, identity: NormalizedIdentity) -> None:
    client.state = identity.state
    client.name_normalized = identity.name_normalized
    client.city_normalized = identity.city_normalized
    client.cnpj_normalized = identity.document_normalized or None
