"""
Client import pipeline: normalization, fingerprinting, duplicate detection,
preview, and commit.
"""

from .backfill import BackfillSummary, backfill_normalized_fields
from .detector import (
    REASON_COMPOSITE,
    REASON_DOCUMENT,
    REASON_WITHIN_FILE,
    DuplicateItem,
    ErrorItem,
    NewItem,
    PreviewItem,
    classify,
    ensure_not_duplicate,
    find_existing_match,
    prepare_candidate,
)
from .executor import ClientImportExecutor, ImportResult, RowFailure, execute_import
from .fingerprint import build_fingerprint, composite_fingerprint, document_fingerprint
from .index import ExistingRecordIndex, build_index, index_records
from .normalize import NormalizedIdentity, normalize_document, normalize_identity, normalize_state, normalize_text
from .preview import PreviewSummary, build_preview, run_preview, summarize_preview, tally_fingerprints
from .store import ClientStore, ExistingRecord

__all__ = [
    "BackfillSummary",
    "ClientImportExecutor",
    "ClientStore",
    "DuplicateItem",
    "ErrorItem",
    "ExistingRecord",
    "ExistingRecordIndex",
    "ImportResult",
    "NewItem",
    "NormalizedIdentity",
    "PreviewItem",
    "PreviewSummary",
    "REASON_COMPOSITE",
    "REASON_DOCUMENT",
    "REASON_WITHIN_FILE",
    "RowFailure",
    "backfill_normalized_fields",
    "build_fingerprint",
    "build_index",
    "build_preview",
    "classify",
    "composite_fingerprint",
    "document_fingerprint",
    "ensure_not_duplicate",
    "execute_import",
    "find_existing_match",
    "index_records",
    "normalize_document",
    "normalize_identity",
    "normalize_state",
    "normalize_text",
    "prepare_candidate",
    "run_preview",
    "summarize_preview",
    "tally_fingerprints",
]
