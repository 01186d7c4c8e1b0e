"""
Duplicate detection for client import candidates.

Classification runs in a fixed order: shape validation, ownership
attribution, collisions inside the batch, then the existing-client index
(document key before the name/city/state key).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

from ..contracts import CandidateRow, ClientPayload, validate_candidate
from ..errors import DuplicateConflictError, ShapeValidationError
from .fingerprint import build_fingerprint, composite_fingerprint, document_fingerprint
from .index import ExistingRecordIndex
from .normalize import NormalizedIdentity, normalize_identity

REASON_WITHIN_FILE = "duplicate within file"
REASON_DOCUMENT = "existing by document"
REASON_COMPOSITE = "existing by name/city/state"


@dataclass(frozen=True)
class ErrorItem:
    """Row rejected by shape validation."""

    row_number: int
    row: Mapping[str, Any]
    message: str


@dataclass(frozen=True)
class DuplicateItem:
    """
    Row matching an existing client or a sibling row of the same batch.

    ``existing_record_id`` is empty for collisions inside the batch; such rows
    have no update target.
    """

    row_number: int
    row: Mapping[str, Any]
    payload: ClientPayload
    existing_record_id: str
    reason: str

    @property
    def is_within_batch(self) -> bool:
        return not self.existing_record_id


@dataclass(frozen=True)
class NewItem:
    """Row with no known match; safe to create."""

    row_number: int
    row: Mapping[str, Any]
    payload: ClientPayload


PreviewItem = Union[ErrorItem, DuplicateItem, NewItem]


@dataclass(frozen=True)
class PreparedRow:
    """Candidate after validation, ownership attribution, and fingerprinting."""

    candidate: CandidateRow
    payload: ClientPayload | None = None
    identity: NormalizedIdentity | None = None
    fingerprint: str | None = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ExistingMatch:
    record_id: str
    reason: str


def prepare_candidate(candidate: CandidateRow, scope) -> PreparedRow:
    try:
        payload = validate_candidate(candidate)
    except ShapeValidationError as exc:
        return PreparedRow(candidate=candidate, error=exc.message)

    payload = payload.with_owner(scope.resolve_owner_id(payload.owner_seller_id))
    identity = normalize_identity(payload.name, payload.city, payload.state, payload.cnpj)
    return PreparedRow(
        candidate=candidate,
        payload=payload,
        identity=identity,
        fingerprint=build_fingerprint(identity),
    )


def find_existing_match(
    identity: NormalizedIdentity,
    index: ExistingRecordIndex,
    *,
    ignore_id: str | None = None,
) -> ExistingMatch | None:
    """
    Look ``identity`` up in the existing-client index.

    A candidate carrying a document is only ever matched by document; the
    name/city/state key applies to candidates without one.
    """

    doc_key = document_fingerprint(identity)
    if doc_key is not None:
        record_id = index.find_by_document(doc_key, ignore_id=ignore_id)
        if record_id:
            return ExistingMatch(record_id=record_id, reason=REASON_DOCUMENT)
        return None

    record_id = index.find_by_composite(composite_fingerprint(identity), ignore_id=ignore_id)
    if record_id:
        return ExistingMatch(record_id=record_id, reason=REASON_COMPOSITE)
    return None


def ensure_not_duplicate(
    identity: NormalizedIdentity,
    index: ExistingRecordIndex,
    *,
    ignore_id: str | None = None,
) -> None:
    match = find_existing_match(identity, index, ignore_id=ignore_id)
    if match is not None:
        raise DuplicateConflictError(existing_client_id=match.record_id)


def classify(
    prepared: PreparedRow,
    within_batch_counts: Mapping[str, int],
    index: ExistingRecordIndex,
) -> PreviewItem:
    candidate = prepared.candidate
    row_number = candidate.source_row_number

    if not prepared.is_valid:
        return ErrorItem(row_number=row_number, row=candidate.raw, message=prepared.error)

    if within_batch_counts.get(prepared.fingerprint, 0) > 1:
        return DuplicateItem(
            row_number=row_number,
            row=candidate.raw,
            payload=prepared.payload,
            existing_record_id="",
            reason=REASON_WITHIN_FILE,
        )

    match = find_existing_match(prepared.identity, index)
    if match is not None:
        return DuplicateItem(
            row_number=row_number,
            row=candidate.raw,
            payload=prepared.payload,
            existing_record_id=match.record_id,
            reason=match.reason,
        )

    return NewItem(row_number=row_number, row=candidate.raw, payload=prepared.payload)
