"""
Backfill the cached normalized identity columns on existing clients.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from crm_app.models import Client, db

from ..errors import StoreUnavailableError
from .normalize import normalize_document, normalize_text

logger = logging.getLogger(__name__)


@dataclass
class BackfillSummary:
    rows_processed: int = 0
    rows_updated: int = 0
    rows_conflicting: int = 0
    batches: int = 0


def _needs_update(current: str | None, expected: str) -> bool:
    return (current or "") != expected


def _expected_values(client: Client) -> dict[str, str | None]:
    return {
        "name_normalized": normalize_text(client.name),
        "city_normalized": normalize_text(client.city),
        "cnpj_normalized": normalize_document(client.cnpj) or None,
    }


def backfill_normalized_fields(*, batch_size: int = 500, session: Session | None = None) -> BackfillSummary:
    """
    Recompute ``name_normalized``, ``city_normalized`` and ``cnpj_normalized``
    for every client, walking the table in id order with keyset pagination and
    committing once per batch.

    Each client is flushed inside its own savepoint. Legacy rows whose
    recomputed identity collides with another client are left untouched and
    counted in ``rows_conflicting``; the rest of the batch still commits.
    """

    session = session or db.session
    summary = BackfillSummary()
    cursor: str | None = None

    while True:
        query = session.query(Client).order_by(Client.id)
        if cursor is not None:
            query = query.filter(Client.id > cursor)
        try:
            clients = query.limit(batch_size).all()
        except (OperationalError, InterfaceError) as exc:
            session.rollback()
            raise StoreUnavailableError() from exc
        if not clients:
            break

        # Ids are read up front; a rolled back savepoint expires the conflicting row
        cursor = clients[-1].id
        for client in clients:
            summary.rows_processed += 1
            expected = _expected_values(client)
            changes = {
                column: value
                for column, value in expected.items()
                if _needs_update(getattr(client, column), value or "")
            }
            if not changes:
                continue
            client_id = client.id
            try:
                with session.begin_nested():
                    for column, value in changes.items():
                        setattr(client, column, value)
            except IntegrityError as exc:
                summary.rows_conflicting += 1
                logger.warning(
                    "Backfill skipped client %s: normalized identity collides with another client (%s)",
                    client_id,
                    exc.orig,
                )
                continue
            except (OperationalError, InterfaceError) as exc:
                session.rollback()
                raise StoreUnavailableError() from exc
            summary.rows_updated += 1

        try:
            session.commit()
        except (OperationalError, InterfaceError) as exc:
            session.rollback()
            raise StoreUnavailableError() from exc
        summary.batches += 1
        logger.info(
            "Backfill batch %s: processed=%s updated=%s conflicting=%s",
            summary.batches,
            summary.rows_processed,
            summary.rows_updated,
            summary.rows_conflicting,
        )

    logger.info(
        "Backfill complete: processed=%s updated=%s conflicting=%s",
        summary.rows_processed,
        summary.rows_updated,
        summary.rows_conflicting,
    )
    return summary
