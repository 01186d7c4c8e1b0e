"""Client import row contract.

Defines the canonical candidate-row fields, request parsing for import
batches, and the shape validation applied to each row before deduplication.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Sequence, Tuple

from crm_app.models import ClientType

from .errors import BatchTooLargeError, ImportPayloadError, ShapeValidationError


class ImportAction(str, Enum):
    """Caller decision attached to a row before the final import."""

    UPDATE = "update"
    SKIP = "skip"
    IMPORT_ANYWAY = "import_anyway"


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing a canonical client field."""

    name: str
    description: str
    kind: str = "text"
    required: bool = False
    min_length: int = 0
    aliases: Tuple[str, ...] = ()

    def keys(self) -> Tuple[str, ...]:
        """Return the canonical key plus accepted aliases."""

        return (self.name, *self.aliases)


CLIENT_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(name="name", description="Client (company or person) name.", required=True, min_length=2),
    FieldSpec(name="city", description="City where the client is located.", required=True, min_length=2),
    FieldSpec(name="state", description="State / administrative code (UF).", required=True, min_length=2),
    FieldSpec(
        name="cnpj",
        description="Government document number; formatting is ignored.",
        kind="document",
        aliases=("document",),
    ),
    FieldSpec(name="region", description="Commercial region.", min_length=2),
    FieldSpec(name="potentialHa", description="Potential area in hectares.", kind="number"),
    FieldSpec(name="farmSizeHa", description="Farm size in hectares.", kind="number"),
    FieldSpec(name="clientType", description="PJ (company) or PF (individual).", kind="client_type"),
    FieldSpec(name="segment", description="Market segment.", min_length=2),
    FieldSpec(name="ownerSellerId", description="Seller that owns the client.", kind="integer"),
)

IDENTITY_FIELDS = ("name", "city", "state", "cnpj")
CONTROL_KEYS = ("sourceRowNumber", "existingClientId", "action")


def get_client_field_specs() -> Tuple[FieldSpec, ...]:
    return CLIENT_FIELDS


def _alias_lookup() -> dict[str, str]:
    lookup: dict[str, str] = {}
    for spec in CLIENT_FIELDS:
        for key in spec.keys():
            lookup[key] = spec.name
    return lookup


_ALIASES = _alias_lookup()


@dataclass(frozen=True)
class KnownIdentityFields:
    """Raw identity values exactly as supplied by the caller."""

    name: object | None = None
    city: object | None = None
    state: object | None = None
    document: object | None = None


@dataclass(frozen=True)
class CandidateRow:
    """
    One record of an import batch.

    Attributes:
        source_row_number: 1-based row number in the uploaded file.
        identity: Raw identity fields used for matching.
        attributes: Every other client field, including unknown keys that are
            forwarded to the store untouched.
        raw: The row as received, echoed back in previews and results.
        existing_client_id: Caller hint for the update target (echoed only).
        action: Caller decision; ``None`` means undecided.
    """

    source_row_number: int
    identity: KnownIdentityFields
    attributes: Mapping[str, Any]
    raw: Mapping[str, Any]
    existing_client_id: str | None = None
    action: ImportAction | None = None

    @property
    def display_name(self) -> str:
        value = self.identity.name
        return "" if value is None else str(value)


@dataclass(frozen=True)
class ClientPayload:
    """Validated client fields ready to be written to the store."""

    name: str
    city: str
    state: str
    cnpj: str | None = None
    region: str | None = None
    potential_ha: float | None = None
    farm_size_ha: float | None = None
    client_type: ClientType | None = None
    segment: str | None = None
    owner_seller_id: int | None = None
    owner_explicit: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    def with_owner(self, owner_seller_id: int) -> "ClientPayload":
        return replace(self, owner_seller_id=owner_seller_id)


def _parse_row_number(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ImportPayloadError("sourceRowNumber must be a positive integer.")
    return value


def _parse_action(value: object) -> ImportAction | None:
    if value is None or value == "":
        return None
    try:
        return ImportAction(value)
    except ValueError as exc:
        raise ImportPayloadError(f"Unknown import action: {value!r}.") from exc


def _parse_existing_id(value: object) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value)
    raise ImportPayloadError("existingClientId must be a string.")


def build_candidate(raw: Mapping[str, Any], *, index: int, row_offset: int = 2) -> CandidateRow:
    """Split a raw row into identity fields, attributes, and control keys."""

    identity_values: dict[str, object | None] = {}
    attributes: dict[str, Any] = {}
    for key, value in raw.items():
        if key in CONTROL_KEYS:
            continue
        canonical = _ALIASES.get(key)
        if canonical in IDENTITY_FIELDS:
            # The canonical key wins over its alias when both are present
            if canonical not in identity_values or key == canonical:
                identity_values[canonical] = value
            continue
        attributes[canonical or key] = value

    return CandidateRow(
        source_row_number=_parse_row_number(raw.get("sourceRowNumber"), index + row_offset),
        identity=KnownIdentityFields(
            name=identity_values.get("name"),
            city=identity_values.get("city"),
            state=identity_values.get("state"),
            document=identity_values.get("cnpj"),
        ),
        attributes=attributes,
        raw=dict(raw),
        existing_client_id=_parse_existing_id(raw.get("existingClientId")),
        action=_parse_action(raw.get("action")),
    )


def parse_import_request(body: object, *, row_offset: int = 2, max_rows: int | None = None) -> list[CandidateRow]:
    """
    Parse an import request body into candidate rows.

    Accepts ``{"rows": [...]}`` or the legacy ``{"clients": [...]}``. Raises
    ``ImportPayloadError`` for anything that is not a list of objects with
    valid control keys, or when row numbers repeat.
    """

    if not isinstance(body, Mapping):
        raise ImportPayloadError()
    rows = body.get("rows")
    if rows is None:
        rows = body.get("clients")
    if rows is None:
        rows = []
    if not isinstance(rows, list) or not all(isinstance(row, Mapping) for row in rows):
        raise ImportPayloadError()
    if max_rows is not None and len(rows) > max_rows:
        raise BatchTooLargeError(max_rows)
    return build_candidates(rows, row_offset=row_offset)


def build_candidates(rows: Sequence[Mapping[str, Any]], *, row_offset: int = 2) -> list[CandidateRow]:
    candidates = [build_candidate(row, index=index, row_offset=row_offset) for index, row in enumerate(rows)]
    seen: set[int] = set()
    for candidate in candidates:
        if candidate.source_row_number in seen:
            raise ImportPayloadError(f"Row number {candidate.source_row_number} appears more than once.")
        seen.add(candidate.source_row_number)
    return candidates


def _coerce_text(spec: FieldSpec, value: object) -> str | None:
    if value is None:
        if spec.required:
            raise ShapeValidationError(spec.name, f"{spec.name} is required.")
        return None
    if not isinstance(value, str):
        raise ShapeValidationError(spec.name, f"{spec.name} must be text.")
    token = value.strip()
    if spec.required and not token:
        raise ShapeValidationError(spec.name, f"{spec.name} is required.")
    if token and len(token) < spec.min_length:
        raise ShapeValidationError(spec.name, f"{spec.name} must have at least {spec.min_length} characters.")
    return token or None


def _coerce_number(spec: FieldSpec, value: object) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        raise ShapeValidationError(spec.name, f"{spec.name} must be a number.")
    if value < 0:
        raise ShapeValidationError(spec.name, f"{spec.name} must not be negative.")
    return float(value)


def _coerce_integer(spec: FieldSpec, value: object) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ShapeValidationError(spec.name, f"{spec.name} must be an integer identifier.")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ShapeValidationError(spec.name, f"{spec.name} must be an integer identifier.")


def _coerce_document(spec: FieldSpec, value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ShapeValidationError(spec.name, f"{spec.name} must be text.")
    token = str(value).strip()
    return token or None


def _coerce_client_type(spec: FieldSpec, value: object) -> ClientType | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            return ClientType(value.strip().upper())
        except ValueError:
            pass
    raise ShapeValidationError(spec.name, f"{spec.name} must be PJ or PF.")


_COERCERS = {
    "text": _coerce_text,
    "number": _coerce_number,
    "integer": _coerce_integer,
    "document": _coerce_document,
    "client_type": _coerce_client_type,
}


def validate_candidate(candidate: CandidateRow) -> ClientPayload:
    """
    Validate a candidate's shape and return its typed payload.

    Raises ``ShapeValidationError`` for the first failing field, in canonical
    field order.
    """

    values: dict[str, object | None] = {
        "name": candidate.identity.name,
        "city": candidate.identity.city,
        "state": candidate.identity.state,
        "cnpj": candidate.identity.document,
    }
    for spec in CLIENT_FIELDS:
        if spec.name not in IDENTITY_FIELDS:
            values[spec.name] = candidate.attributes.get(spec.name)

    coerced: dict[str, Any] = {}
    for spec in CLIENT_FIELDS:
        coerced[spec.name] = _COERCERS[spec.kind](spec, values[spec.name])

    known = {spec.name for spec in CLIENT_FIELDS}
    extra = {key: value for key, value in candidate.attributes.items() if key not in known}

    return ClientPayload(
        name=coerced["name"],
        city=coerced["city"],
        state=coerced["state"],
        cnpj=coerced["cnpj"],
        region=coerced["region"],
        potential_ha=coerced["potentialHa"],
        farm_size_ha=coerced["farmSizeHa"],
        client_type=coerced["clientType"],
        segment=coerced["segment"],
        owner_seller_id=coerced["ownerSellerId"],
        owner_explicit=coerced["ownerSellerId"] is not None,
        extra=extra,
    )

