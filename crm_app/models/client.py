# crm_app/models/client.py
"""
Client (customer) records and the normalized identity columns used by import
deduplication.
"""

import uuid

from sqlalchemy import Enum, Index, text

from .base import BaseModel, db
from .enums import ClientType

_HAS_CNPJ = "cnpj_normalized IS NOT NULL AND cnpj_normalized <> ''"
_NO_CNPJ = "cnpj_normalized IS NULL OR cnpj_normalized = ''"


def _new_client_id():
    return str(uuid.uuid4())


class Client(BaseModel):
    """
    Customer record owned by a seller.

    ``name_normalized``, ``city_normalized`` and ``cnpj_normalized`` are caches
    of the import normalizer output; rows written before the columns existed
    may hold NULL until the backfill command runs.
    """

    __tablename__ = "clients"

    id = db.Column(db.String(36), primary_key=True, default=_new_client_id)
    name = db.Column(db.String(255), nullable=False)
    city = db.Column(db.String(120), nullable=False)
    state = db.Column(db.String(10), nullable=False, index=True)
    region = db.Column(db.String(120), nullable=True)
    potential_ha = db.Column(db.Float, nullable=False, default=0)
    farm_size_ha = db.Column(db.Float, nullable=False, default=0)
    client_type = db.Column(Enum(ClientType, name="client_type_enum"), nullable=False, default=ClientType.PJ)
    cnpj = db.Column(db.String(32), nullable=True)
    segment = db.Column(db.String(120), nullable=True)
    attributes_json = db.Column(db.JSON, nullable=True)

    name_normalized = db.Column(db.String(255), nullable=True)
    city_normalized = db.Column(db.String(120), nullable=True)
    cnpj_normalized = db.Column(db.String(32), nullable=True)

    owner_seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    owner_seller = db.relationship("User", back_populates="clients")

    # Store-level uniqueness is the last line of defense against concurrent imports
    __table_args__ = (
        Index(
            "uq_clients_cnpj_normalized",
            "cnpj_normalized",
            unique=True,
            sqlite_where=text(_HAS_CNPJ),
            postgresql_where=text(_HAS_CNPJ),
        ),
        Index(
            "uq_clients_identity_without_cnpj",
            "name_normalized",
            "city_normalized",
            "state",
            unique=True,
            sqlite_where=text(_NO_CNPJ),
            postgresql_where=text(_NO_CNPJ),
        ),
    )

    def __repr__(self):
        return f"<Client {self.name} ({self.city}/{self.state})>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "state": self.state,
            "region": self.region,
            "potentialHa": self.potential_ha,
            "farmSizeHa": self.farm_size_ha,
            "clientType": self.client_type.value if self.client_type else None,
            "cnpj": self.cnpj,
            "segment": self.segment,
            "ownerSellerId": self.owner_seller_id,
            "attributes": dict(self.attributes_json or {}),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
