from crm_app.importer.pipeline import backfill_normalized_fields
from crm_app.models import Client, db


def test_backfill_walks_every_batch(seller, make_client):
    for index in range(5):
        make_client(seller, f"Cliente {index}", "Goiânia", "GO", cache_normalized=False)

    summary = backfill_normalized_fields(batch_size=2)

    assert summary.rows_processed == 5
    assert summary.rows_updated == 5
    assert summary.batches == 3
    assert {client.city_normalized for client in Client.query.all()} == {"goiania"}


def test_backfill_is_a_no_op_when_caches_are_current(seller, make_client):
    make_client(seller, "Acme", "Campinas", "SP", cnpj="12.345.678/0001-99")

    summary = backfill_normalized_fields()

    assert (summary.rows_processed, summary.rows_updated) == (1, 0)


def test_backfill_repairs_stale_values(seller, make_client):
    client = make_client(seller, "Acme", "Campinas", "SP")
    client.name_normalized = "stale"
    db.session.commit()

    summary = backfill_normalized_fields()

    assert summary.rows_updated == 1
    assert db.session.get(Client, client.id).name_normalized == "acme"


def test_backfill_skips_legacy_rows_that_collide_and_keeps_going(seller, make_client):
    first = make_client(seller, "Acme", "Campinas", "SP", cache_normalized=False)
    second = make_client(seller, "ACME", "Campinas", "SP", cache_normalized=False)
    beta = make_client(seller, "Beta", "Campinas", "SP", cache_normalized=False)

    summary = backfill_normalized_fields()

    assert summary.rows_processed == 3
    assert summary.rows_updated == 2
    assert summary.rows_conflicting == 1
    assert db.session.get(Client, beta.id).name_normalized == "beta"
    cached = sorted(db.session.get(Client, client.id).name_normalized or "" for client in (first, second))
    assert cached == ["", "acme"]
