"""
Import executor: commit a classified batch according to per-row actions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..contracts import CandidateRow, ImportAction
from ..errors import (
    IMPORT_FAILED_MESSAGE,
    NO_ACTION_MESSAGE,
    TARGET_MISSING_MESSAGE,
    UPDATE_FAILED_MESSAGE,
    DuplicateConflictError,
    MissingLinkError,
    RowWriteError,
    ShapeValidationError,
)
from .detector import DuplicateItem, ErrorItem, NewItem, PreviewItem, ensure_not_duplicate
from .index import ExistingRecordIndex, build_index
from .normalize import normalize_identity
from .preview import run_preview
from .store import ClientStore

logger = logging.getLogger(__name__)

OUTCOME_CREATED = "created"
OUTCOME_UPDATED = "updated"
OUTCOME_SKIPPED = "skipped"


@dataclass(frozen=True)
class RowFailure:
    row_number: int
    candidate_name: str
    message: str


@dataclass
class ImportResult:
    """Per-outcome counters plus the ordered list of failed rows."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[RowFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.updated + self.skipped + self.failed

    def record(self, outcome: str) -> None:
        if outcome == OUTCOME_CREATED:
            self.created += 1
        elif outcome == OUTCOME_UPDATED:
            self.updated += 1
        elif outcome == OUTCOME_SKIPPED:
            self.skipped += 1
        else:
            raise ValueError(f"Unknown import outcome: {outcome!r}")

    def record_failure(self, row_number: int, candidate_name: str, message: str) -> None:
        self.failed += 1
        self.errors.append(RowFailure(row_number=row_number, candidate_name=candidate_name, message=message))


class ClientImportExecutor:
    """
    Apply caller actions to preview items one row at a time.

    Each write is committed on its own and registered in the index so later
    rows of the same batch see it. Row failures are collected; only
    ``StoreUnavailableError`` propagates.
    """

    def __init__(self, scope, *, store: ClientStore | None = None, index: ExistingRecordIndex | None = None):
        self.scope = scope
        self.store = store or ClientStore()
        self.index = index if index is not None else build_index(scope, store=self.store)

    def run(self, items: Sequence[PreviewItem], candidates: Sequence[CandidateRow]) -> ImportResult:
        by_row_number = {candidate.source_row_number: candidate for candidate in candidates}
        result = ImportResult()

        for item in items:
            candidate = by_row_number.get(item.row_number)
            action = candidate.action if candidate is not None else None
            candidate_name = candidate.display_name if candidate is not None else str(item.row.get("name") or "")
            try:
                result.record(self.process(item, action))
            except (ShapeValidationError, DuplicateConflictError, MissingLinkError, RowWriteError) as exc:
                logger.warning("Client import row %s failed: %s", item.row_number, exc.message)
                result.record_failure(item.row_number, candidate_name, exc.message)

        logger.info(
            "Client import finished: created=%s updated=%s skipped=%s failed=%s",
            result.created,
            result.updated,
            result.skipped,
            result.failed,
        )
        return result

    def process(self, item: PreviewItem, action: ImportAction | None) -> str:
        if isinstance(item, ErrorItem):
            raise ShapeValidationError(None, item.message)
        if isinstance(item, DuplicateItem):
            return self._process_duplicate(item, action)
        if isinstance(item, NewItem):
            if action == ImportAction.SKIP:
                return OUTCOME_SKIPPED
            return self._create(item)
        raise TypeError(f"Unsupported preview item: {item!r}")

    def _process_duplicate(self, item: DuplicateItem, action: ImportAction | None) -> str:
        if action == ImportAction.SKIP:
            return OUTCOME_SKIPPED
        if action == ImportAction.UPDATE:
            return self._update(item)
        if action == ImportAction.IMPORT_ANYWAY:
            return self._create(item)
        # Undecided duplicates are never auto-resolved
        raise DuplicateConflictError(NO_ACTION_MESSAGE)

    def _create(self, item: NewItem | DuplicateItem) -> str:
        payload = item.payload
        identity = normalize_identity(payload.name, payload.city, payload.state, payload.cnpj)
        ensure_not_duplicate(identity, self.index)
        try:
            client = self.store.create(payload, identity)
        except SQLAlchemyError as exc:
            self.store.rollback()
            logger.error("Unexpected store error creating row %s: %s", item.row_number, exc)
            raise RowWriteError(IMPORT_FAILED_MESSAGE) from exc
        self.index.register(client.id, identity)
        return OUTCOME_CREATED

    def _update(self, item: DuplicateItem) -> str:
        if item.is_within_batch:
            raise MissingLinkError(item.row_number)

        try:
            client = self.store.get(item.existing_record_id, self.scope)
        except SQLAlchemyError as exc:
            self.store.rollback()
            logger.error("Unexpected store error loading update target for row %s: %s", item.row_number, exc)
            raise RowWriteError(UPDATE_FAILED_MESSAGE) from exc
        if client is None:
            raise RowWriteError(TARGET_MISSING_MESSAGE)

        payload = item.payload
        identity = normalize_identity(
            payload.name or client.name,
            payload.city or client.city,
            payload.state or client.state,
            payload.cnpj if payload.cnpj is not None else client.cnpj,
        )
        # The caller's edits may now collide with a third client
        ensure_not_duplicate(identity, self.index, ignore_id=client.id)
        try:
            self.store.update(client, payload, identity)
        except SQLAlchemyError as exc:
            self.store.rollback()
            logger.error("Unexpected store error updating row %s: %s", item.row_number, exc)
            raise RowWriteError(UPDATE_FAILED_MESSAGE) from exc
        self.index.register(client.id, identity)
        return OUTCOME_UPDATED


def execute_import(
    candidates: Sequence[CandidateRow],
    scope,
    *,
    store: ClientStore | None = None,
    preview: Sequence[PreviewItem] | None = None,
) -> ImportResult:
    """
    Classify ``candidates`` (unless a preview is supplied) and commit them
    according to each row's action.

    Always returns a full summary; ``created + updated + skipped + failed``
    equals the number of preview items.
    """

    store = store or ClientStore()
    if preview is None:
        preview_result = run_preview(candidates, scope, store=store)
        executor = ClientImportExecutor(scope, store=store, index=preview_result.index)
        items: Sequence[PreviewItem] = preview_result.items
    else:
        executor = ClientImportExecutor(scope, store=store)
        items = preview
    return executor.run(items, candidates)
