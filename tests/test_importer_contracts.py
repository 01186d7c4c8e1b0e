import pytest

from crm_app.importer.contracts import (
    ImportAction,
    build_candidate,
    get_client_field_specs,
    parse_import_request,
    validate_candidate,
)
from crm_app.importer.errors import BatchTooLargeError, ImportPayloadError, ShapeValidationError
from crm_app.models import ClientType


def _row(**overrides):
    row = {"name": "Acme Ltda", "city": "Campinas", "state": "SP"}
    row.update(overrides)
    return row


def test_field_specs_cover_identity_fields():
    names = [spec.name for spec in get_client_field_specs()]
    assert names[:4] == ["name", "city", "state", "cnpj"]


def test_parse_accepts_rows_and_legacy_clients_key():
    assert len(parse_import_request({"rows": [_row()]})) == 1
    assert len(parse_import_request({"clients": [_row(), _row(name="Beta")]})) == 2
    assert parse_import_request({}) == []


@pytest.mark.parametrize(
    "body",
    [
        None,
        [],
        "rows",
        {"rows": "nope"},
        {"rows": [1, 2]},
        {"rows": [_row(action="merge")]},
        {"rows": [_row(sourceRowNumber=0)]},
        {"rows": [_row(sourceRowNumber="3")]},
        {"rows": [_row(existingClientId={"id": 1})]},
    ],
)
def test_parse_rejects_malformed_payloads(body):
    with pytest.raises(ImportPayloadError):
        parse_import_request(body)


def test_parse_rejects_repeated_row_numbers():
    with pytest.raises(ImportPayloadError, match="more than once"):
        parse_import_request({"rows": [_row(sourceRowNumber=5), _row(name="Beta", sourceRowNumber=5)]})


def test_parse_enforces_row_limit():
    with pytest.raises(BatchTooLargeError) as excinfo:
        parse_import_request({"rows": [_row(), _row(name="Beta")]}, max_rows=1)

    assert excinfo.value.status_code == 413


def test_default_row_numbers_follow_the_offset():
    candidates = parse_import_request({"rows": [_row(), _row(name="Beta")]})
    assert [candidate.source_row_number for candidate in candidates] == [2, 3]

    candidates = parse_import_request({"rows": [_row()]}, row_offset=1)
    assert candidates[0].source_row_number == 1


def test_build_candidate_splits_identity_attributes_and_controls():
    candidate = build_candidate(
        _row(document="12.345.678/0001-99", segment="Grains", farmCode="F-9", action="skip", existingClientId=7),
        index=0,
    )

    assert candidate.identity.document == "12.345.678/0001-99"
    assert candidate.attributes == {"segment": "Grains", "farmCode": "F-9"}
    assert candidate.action is ImportAction.SKIP
    assert candidate.existing_client_id == "7"
    assert candidate.raw["farmCode"] == "F-9"


def test_canonical_key_wins_over_alias():
    candidate = build_candidate(_row(document="111", cnpj="222"), index=0)
    assert candidate.identity.document == "222"


def test_empty_action_means_undecided():
    assert build_candidate(_row(action=""), index=0).action is None


def test_validate_candidate_builds_typed_payload():
    payload = validate_candidate(
        build_candidate(
            _row(cnpj=" 12.345.678/0001-99 ", potentialHa=120, farmSizeHa=80.5, clientType="pf", ownerSellerId="4", extra="x"),
            index=0,
        )
    )

    assert payload.name == "Acme Ltda"
    assert payload.cnpj == "12.345.678/0001-99"
    assert payload.potential_ha == 120.0
    assert payload.client_type is ClientType.PF
    assert payload.owner_seller_id == 4
    assert payload.owner_explicit
    assert payload.extra == {"extra": "x"}


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"name": None}, "name"),
        ({"name": "   "}, "name"),
        ({"city": "X"}, "city"),
        ({"state": 35}, "state"),
        ({"potentialHa": "ten"}, "potentialHa"),
        ({"farmSizeHa": -1}, "farmSizeHa"),
        ({"clientType": "LLC"}, "clientType"),
        ({"ownerSellerId": "abc"}, "ownerSellerId"),
        ({"region": "S"}, "region"),
    ],
)
def test_validate_candidate_reports_first_failing_field(overrides, field):
    with pytest.raises(ShapeValidationError) as excinfo:
        validate_candidate(build_candidate(_row(**overrides), index=0))

    assert excinfo.value.field == field


def test_region_is_optional():
    payload = validate_candidate(build_candidate(_row(), index=0))
    assert payload.region is None
    assert not payload.owner_explicit
