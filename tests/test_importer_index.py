from crm_app.importer.pipeline import (
    REASON_COMPOSITE,
    REASON_DOCUMENT,
    ExistingRecord,
    ExistingRecordIndex,
    build_index,
    composite_fingerprint,
    document_fingerprint,
    find_existing_match,
    index_records,
    normalize_identity,
)
from crm_app.importer.pipeline.index import identity_of_record


def _record(record_id, name="Acme", city="Campinas", state="SP", document=None, **cached):
    return ExistingRecord(id=record_id, name=name, city=city, state=state, document=document, **cached)


def test_index_registers_document_and_composite_keys():
    index = index_records([_record("c1", document="11.222.333/0001-44")])
    identity = normalize_identity("Acme", "Campinas", "SP", "11222333000144")

    assert len(index) == 1
    assert index.find_by_document(document_fingerprint(identity)) == "c1"
    assert index.find_by_composite(composite_fingerprint(identity)) == "c1"


def test_first_loaded_record_wins_on_shared_keys():
    index = index_records([_record("older"), _record("newer", name=" ACME ")])
    key = composite_fingerprint(normalize_identity("acme", "campinas", "sp"))

    assert index.find_by_composite(key) == "older"
    assert index.find_by_composite(key, ignore_id="older") == "newer"


def test_forget_removes_every_key():
    index = index_records([_record("c1", document="123")])
    index.forget("c1")

    assert len(index) == 0
    assert index.by_document == {}
    assert index.by_composite == {}


def test_reregistering_moves_record_to_new_keys():
    index = ExistingRecordIndex()
    index.register("c1", normalize_identity("Acme", "Campinas", "SP"))
    index.register("c1", normalize_identity("Acme", "Sorocaba", "SP"))

    assert index.find_by_composite(composite_fingerprint(normalize_identity("Acme", "Campinas", "SP"))) is None
    assert index.find_by_composite(composite_fingerprint(normalize_identity("Acme", "Sorocaba", "SP"))) == "c1"



def test_reregistered_record_keeps_its_load_precedence():
    index = index_records([_record("older", document="123"), _record("newer", document="456")])
    index.register("older", normalize_identity("Acme", "Campinas", "SP", "123"))
    key = composite_fingerprint(normalize_identity("Acme", "Campinas", "SP"))

    assert index.by_composite[key] == ["older", "newer"]
    assert index.find_by_composite(key) == "older"


def test_reregistered_record_slots_into_load_order_on_new_keys():
    index = index_records([_record("first", city="Sorocaba"), _record("second"), _record("third")])
    index.register("first", normalize_identity("Acme", "Campinas", "SP"))
    key = composite_fingerprint(normalize_identity("Acme", "Campinas", "SP"))

    assert index.by_composite[key] == ["first", "second", "third"]


def test_forgotten_record_registered_again_counts_as_newest():
    index = index_records([_record("c1"), _record("c2")])
    index.forget("c1")
    index.register("c1", normalize_identity("Acme", "Campinas", "SP"))
    key = composite_fingerprint(normalize_identity("Acme", "Campinas", "SP"))

    assert index.by_composite[key] == ["c2", "c1"]

def test_cached_normalized_values_are_used_when_present():
    record = _record("c1", name="Ignored", city="Ignored", name_normalized="acme", city_normalized="campinas")
    identity = identity_of_record(record)

    assert identity.name_normalized == "acme"
    assert identity.city_normalized == "campinas"


def test_missing_cache_falls_back_to_recomputation():
    record = _record("c1", name="Açaí Agro", city="Belém", name_normalized="", city_normalized=None)
    identity = identity_of_record(record)

    assert identity.name_normalized == "acai agro"
    assert identity.city_normalized == "belem"


def test_document_match_takes_priority_over_composite():
    index = index_records(
        [
            _record("by-name", name="Acme", city="Campinas", state="SP"),
            _record("by-doc", name="Other Corp", city="Sorocaba", state="SP", document="11222333000144"),
        ]
    )
    match = find_existing_match(normalize_identity("Acme", "Campinas", "SP", "11.222.333/0001-44"), index)

    assert match.record_id == "by-doc"
    assert match.reason == REASON_DOCUMENT


def test_candidate_with_unknown_document_does_not_fall_back_to_composite():
    index = index_records([_record("by-name")])

    assert find_existing_match(normalize_identity("Acme", "Campinas", "SP", "999"), index) is None


def test_candidate_without_document_matches_composite():
    index = index_records([_record("c1", document="123")])
    match = find_existing_match(normalize_identity("ACME", "campinas", "sp"), index)

    assert match.record_id == "c1"
    assert match.reason == REASON_COMPOSITE


def test_build_index_respects_scope(seller, other_seller, make_client, seller_scope, manager_scope):
    mine = make_client(seller, "Acme", "Campinas", "SP")
    theirs = make_client(other_seller, "Beta", "Campinas", "SP")

    seller_index = build_index(seller_scope)
    manager_index = build_index(manager_scope)

    assert len(seller_index) == 1
    assert seller_index.find_by_composite(composite_fingerprint(normalize_identity("Acme", "Campinas", "SP"))) == mine.id
    assert len(manager_index) == 2
    assert manager_index.find_by_composite(composite_fingerprint(normalize_identity("Beta", "Campinas", "SP"))) == theirs.id
