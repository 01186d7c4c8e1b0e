from sqlalchemy.exc import OperationalError

from crm_app.models import Client, db

ACME = {"name": "Acme Ltda", "city": "Campinas", "state": "sp", "document": "12.345.678/0001-99"}
ACME_NO_DOC = {"name": "ACME LTDA", "city": "CAMPINAS", "state": "SP", "document": ""}


def test_import_endpoints_require_login(client):
    for path in ("/api/clients/import/preview", "/api/clients/import/simulate", "/api/clients/import"):
        response = client.post(path, json={"rows": [ACME]})
        assert response.status_code == 401
        assert response.get_json()["message"] == "Authentication required."


def test_preview_groups_rows_by_classification(seller, seller_client, make_client):
    existing = make_client(seller, "Fazenda Boa Vista", "Rio Verde", "GO", cnpj="11222333000144")

    response = seller_client.post(
        "/api/clients/import/preview",
        json={
            "rows": [
                ACME,
                ACME_NO_DOC,
                {"name": "Boa Vista", "city": "Jataí", "state": "GO", "cnpj": "11.222.333/0001-44"},
                {"name": "X", "city": "Campinas", "state": "SP"},
            ]
        },
    )

    assert response.status_code == 200
    payload = response.get_json()
    assert [item["rowNumber"] for item in payload["novos"]] == [2]
    assert payload["novos"][0]["row"]["document"] == ACME["document"]
    assert payload["duplicados"] == [
        {"rowNumber": 3, "row": ACME_NO_DOC, "existingClientId": None, "reason": "duplicate within file"},
        {
            "rowNumber": 4,
            "row": {"name": "Boa Vista", "city": "Jataí", "state": "GO", "cnpj": "11.222.333/0001-44"},
            "existingClientId": existing.id,
            "reason": "existing by document",
        },
    ]
    assert payload["erros"][0]["rowNumber"] == 5
    assert "name" in payload["erros"][0]["message"]
    assert Client.query.count() == 1


def test_preview_accepts_legacy_clients_key(seller_client):
    response = seller_client.post("/api/clients/import/preview", json={"clients": [ACME]})

    assert response.status_code == 200
    assert len(response.get_json()["novos"]) == 1


def test_simulate_returns_only_counts(seller_client):
    response = seller_client.post("/api/clients/import/simulate", json={"rows": [ACME, ACME_NO_DOC, {"city": "X"}]})

    assert response.status_code == 200
    assert response.get_json() == {
        "simulated": True,
        "summary": {"total": 3, "newCount": 1, "duplicateCount": 1, "errorCount": 1},
    }
    assert Client.query.count() == 0


def test_import_reports_totals_and_row_errors(seller_client):
    response = seller_client.post(
        "/api/clients/import",
        json={
            "rows": [
                {**ACME, "sourceRowNumber": 10},
                {**ACME_NO_DOC, "sourceRowNumber": 11, "action": "update"},
                {"name": "Beta", "city": "Campinas", "state": "SP", "sourceRowNumber": 12},
            ]
        },
    )

    assert response.status_code == 200
    assert response.get_json() == {
        "totalImportados": 2,
        "totalAtualizados": 0,
        "totalIgnorados": 0,
        "totalErros": 1,
        "errors": [
            {
                "rowNumber": 11,
                "clientName": "ACME LTDA",
                "message": "Cannot update: duplicate within file, no existing client linked.",
            }
        ],
    }


def test_malformed_payloads_are_rejected(seller_client):
    assert seller_client.post("/api/clients/import", json={"rows": {"name": "Acme"}}).status_code == 400
    assert seller_client.post("/api/clients/import", data="not json", content_type="text/plain").status_code == 400

    response = seller_client.post("/api/clients/import/preview", json={"rows": [{**ACME, "action": "merge"}]})
    assert response.status_code == 400
    assert "merge" in response.get_json()["message"]


def test_oversized_batches_are_rejected(app, seller_client):
    app.config["CLIENT_IMPORT_MAX_ROWS"] = 1

    response = seller_client.post("/api/clients/import/preview", json={"rows": [ACME, ACME_NO_DOC]})

    assert response.status_code == 413
    assert "1 rows" in response.get_json()["message"]


def test_store_outage_returns_503(seller_client, monkeypatch):
    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("connection refused"))

    monkeypatch.setattr(db.session, "commit", broken_commit)

    response = seller_client.post("/api/clients/import", json={"rows": [ACME]})

    assert response.status_code == 503
    assert response.get_json() == {"message": "Client store is unavailable."}


def test_manager_can_narrow_scope_with_seller_id(client, login_as, manager, seller, other_seller, make_client):
    make_client(other_seller, "Acme Ltda", "Campinas", "SP")
    login_as(manager)

    everyone = client.post("/api/clients/import/simulate", json={"rows": [ACME_NO_DOC]}).get_json()
    narrowed = client.post(
        f"/api/clients/import/simulate?sellerId={seller.id}", json={"rows": [ACME_NO_DOC]}
    ).get_json()

    assert everyone["summary"]["duplicateCount"] == 1
    assert narrowed["summary"]["newCount"] == 1


def test_seller_id_is_ignored_for_sellers(client, login_as, seller, other_seller, make_client):
    make_client(other_seller, "Acme Ltda", "Campinas", "SP")
    login_as(seller)

    response = client.post(f"/api/clients/import/simulate?sellerId={other_seller.id}", json={"rows": [ACME_NO_DOC]})

    assert response.get_json()["summary"]["newCount"] == 1
