"""
In-memory index of existing clients keyed by identity fingerprint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .fingerprint import composite_fingerprint, document_fingerprint
from .normalize import NormalizedIdentity, normalize_document, normalize_state, normalize_text
from .store import ClientStore, ExistingRecord

logger = logging.getLogger(__name__)


def _cached_or(cached: str | None, recompute) -> str:
    """Use a cached normalized value only when one is actually present."""
    if cached:
        return cached
    return recompute()


def identity_of_record(record: ExistingRecord) -> NormalizedIdentity:
    """Derive a record's identity, falling back to recomputation for missing caches."""

    return NormalizedIdentity(
        name_normalized=_cached_or(record.name_normalized, lambda: normalize_text(record.name)),
        city_normalized=_cached_or(record.city_normalized, lambda: normalize_text(record.city)),
        state=normalize_state(record.state),
        document_normalized=_cached_or(record.document_normalized, lambda: normalize_document(record.document)),
    )


@dataclass
class ExistingRecordIndex:
    """
    Fingerprint lookups over the clients visible to one caller.

    Each key keeps every matching id in load order, so plain lookups resolve
    to the first-loaded (oldest) client while update re-validation can skip
    the client being updated.
    """

    by_document: dict[str, list[str]] = field(default_factory=dict)
    by_composite: dict[str, list[str]] = field(default_factory=dict)
    _keys_by_id: dict[str, tuple[str | None, str]] = field(default_factory=dict, repr=False)
    _load_order: dict[str, int] = field(default_factory=dict, repr=False)
    _next_position: int = field(default=0, repr=False)

    def __len__(self) -> int:
        return len(self._keys_by_id)

    def register(self, record_id: str, identity: NormalizedIdentity) -> None:
        """
        Add a client, or re-key one already indexed. A re-registered client
        keeps its original load position, so it still wins over clients
        loaded after it.
        """
        self._unlink(record_id)
        position = self._load_order.get(record_id)
        if position is None:
            position = self._load_order[record_id] = self._next_position
            self._next_position += 1
        doc_key = document_fingerprint(identity)
        composite_key = composite_fingerprint(identity)
        if doc_key is not None:
            self._insert(self.by_document.setdefault(doc_key, []), record_id, position)
        self._insert(self.by_composite.setdefault(composite_key, []), record_id, position)
        self._keys_by_id[record_id] = (doc_key, composite_key)

    def forget(self, record_id: str) -> None:
        self._unlink(record_id)
        self._load_order.pop(record_id, None)

    def _unlink(self, record_id: str) -> None:
        keys = self._keys_by_id.pop(record_id, None)
        if keys is None:
            return
        doc_key, composite_key = keys
        if doc_key is not None:
            _remove(self.by_document, doc_key, record_id)
        _remove(self.by_composite, composite_key, record_id)

    def _insert(self, ids: list[str], record_id: str, position: int) -> None:
        for offset, other_id in enumerate(ids):
            if self._load_order[other_id] > position:
                ids.insert(offset, record_id)
                return
        ids.append(record_id)

    def find_by_document(self, key: str, *, ignore_id: str | None = None) -> str | None:
        return _first(self.by_document.get(key, ()), ignore_id)

    def find_by_composite(self, key: str, *, ignore_id: str | None = None) -> str | None:
        return _first(self.by_composite.get(key, ()), ignore_id)


def _first(ids: Iterable[str], ignore_id: str | None) -> str | None:
    for record_id in ids:
        if record_id != ignore_id:
            return record_id
    return None


def _remove(mapping: dict[str, list[str]], key: str, record_id: str) -> None:
    ids = mapping.get(key)
    if not ids:
        return
    if record_id in ids:
        ids.remove(record_id)
    if not ids:
        del mapping[key]


def index_records(records: Iterable[ExistingRecord]) -> ExistingRecordIndex:
    index = ExistingRecordIndex()
    for record in records:
        index.register(record.id, identity_of_record(record))
    return index


def build_index(scope, store: ClientStore | None = None) -> ExistingRecordIndex:
    """Load every client visible under ``scope`` once and index it."""

    store = store or ClientStore()
    records = store.load_identities(scope)
    index = index_records(records)
    logger.debug("Indexed %s existing clients for scope %s", len(index), scope)
    return index
