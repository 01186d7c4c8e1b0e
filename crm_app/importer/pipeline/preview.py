"""
Preview builder: classify a whole candidate batch without writing anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..contracts import CandidateRow
from .detector import DuplicateItem, ErrorItem, NewItem, PreparedRow, PreviewItem, classify, prepare_candidate
from .fingerprint import composite_fingerprint, document_fingerprint
from .index import ExistingRecordIndex, build_index
from .store import ClientStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewSummary:
    """Aggregate counts returned by simulate mode."""

    total: int
    new_count: int
    duplicate_count: int
    error_count: int

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "newCount": self.new_count,
            "duplicateCount": self.duplicate_count,
            "errorCount": self.error_count,
        }


def _increment(counts: Mapping[str, int], key: str) -> int:
    return counts.get(key, 0) + 1


def tally_fingerprints(prepared_rows: Sequence[PreparedRow]) -> dict[str, int]:
    """
    Count identity keys across the valid rows of a batch.

    Every row contributes its name/city/state key and, when it has one, its
    document key, mirroring how existing clients are indexed. A row without a
    document therefore collides with a sibling that has one but shares its
    name, city and state.
    """

    counts: dict[str, int] = {}
    for prepared in prepared_rows:
        if not prepared.is_valid:
            continue
        keys = {composite_fingerprint(prepared.identity)}
        doc_key = document_fingerprint(prepared.identity)
        if doc_key is not None:
            keys.add(doc_key)
        for key in keys:
            counts[key] = _increment(counts, key)
    return counts


@dataclass(frozen=True)
class PreviewResult:
    items: tuple[PreviewItem, ...]
    prepared: tuple[PreparedRow, ...]
    index: ExistingRecordIndex


def run_preview(
    candidates: Sequence[CandidateRow],
    scope,
    *,
    store: ClientStore | None = None,
) -> PreviewResult:
    """Classify ``candidates`` and keep the intermediate state for the executor."""

    prepared = tuple(prepare_candidate(candidate, scope) for candidate in candidates)
    within_batch_counts = tally_fingerprints(prepared)
    index = build_index(scope, store=store)
    items = tuple(classify(row, within_batch_counts, index) for row in prepared)
    summary = summarize_preview(items)
    logger.info(
        "Client import preview: total=%s new=%s duplicate=%s error=%s",
        summary.total,
        summary.new_count,
        summary.duplicate_count,
        summary.error_count,
    )
    return PreviewResult(items=items, prepared=prepared, index=index)


def build_preview(
    candidates: Sequence[CandidateRow],
    scope,
    *,
    store: ClientStore | None = None,
) -> list[PreviewItem]:
    """
    Classify every candidate as new, duplicate, or error, in input order.

    The existing-client index is built once per batch. Nothing is written, so
    the call can be repeated freely as a dry run.
    """

    return list(run_preview(candidates, scope, store=store).items)


def summarize_preview(items: Sequence[PreviewItem]) -> PreviewSummary:
    return PreviewSummary(
        total=len(items),
        new_count=sum(1 for item in items if isinstance(item, NewItem)),
        duplicate_count=sum(1 for item in items if isinstance(item, DuplicateItem)),
        error_count=sum(1 for item in items if isinstance(item, ErrorItem)),
    )
