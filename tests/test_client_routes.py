from crm_app.models import Client, User, UserRole, db


def test_login_me_and_logout(client, seller):
    response = client.post("/api/auth/login", json={"email": "ANA@example.com ", "password": "testpass123"})
    assert response.status_code == 200
    assert response.get_json()["user"]["role"] == "vendedor"

    assert client.get("/api/auth/me").get_json()["user"]["email"] == "ana@example.com"
    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_login_rejects_bad_credentials(client, seller):
    assert client.post("/api/auth/login", json={"email": seller.email, "password": "wrong"}).status_code == 401
    assert client.post("/api/auth/login", json={"email": seller.email}).status_code == 400


def test_inactive_users_cannot_log_in(client, seller):
    seller.is_active = False
    seller.save()

    assert client.post("/api/auth/login", json={"email": seller.email, "password": "testpass123"}).status_code == 401


def test_create_client_assigns_caller_as_owner(seller, seller_client):
    response = seller_client.post(
        "/api/clients",
        json={"name": "Acme", "city": "Campinas", "state": "sp", "cnpj": "12.345.678/0001-99", "farmCode": "F-1"},
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["ownerSellerId"] == seller.id
    assert body["state"] == "SP"
    assert body["attributes"] == {"farmCode": "F-1"}
    stored = Client.query.one()
    assert stored.cnpj_normalized == "12345678000199"


def test_create_client_rejects_duplicates(seller, seller_client, make_client):
    existing = make_client(seller, "Acme", "Campinas", "SP", cnpj="12345678000199")

    response = seller_client.post(
        "/api/clients",
        json={"name": "Another Name", "city": "Sorocaba", "state": "SP", "cnpj": "12.345.678/0001-99"},
    )

    assert response.status_code == 409
    assert response.get_json() == {"message": "Client already registered.", "existingClientId": existing.id}


def test_create_client_rejects_invalid_shape(seller_client):
    response = seller_client.post("/api/clients", json={"name": "Acme", "city": "Campinas"})

    assert response.status_code == 400
    assert response.get_json()["field"] == "state"


def test_update_client_rechecks_duplicates_ignoring_itself(seller, seller_client, make_client):
    acme = make_client(seller, "Acme", "Campinas", "SP")
    make_client(seller, "Beta", "Campinas", "SP")

    same = seller_client.put(f"/api/clients/{acme.id}", json={"name": "ACME", "segment": "Coffee"})
    clash = seller_client.put(f"/api/clients/{acme.id}", json={"name": "Beta"})

    assert same.status_code == 200
    assert same.get_json()["segment"] == "Coffee"
    assert clash.status_code == 409



def test_update_client_with_empty_document_clears_it(seller, seller_client, make_client):
    acme = make_client(seller, "Acme", "Campinas", "SP", cnpj="12.345.678/0001-99", segment="Soy")

    response = seller_client.put(f"/api/clients/{acme.id}", json={"cnpj": "", "segment": ""})

    assert response.status_code == 200
    assert response.get_json()["cnpj"] is None
    stored = db.session.get(Client, acme.id)
    assert stored.cnpj_normalized is None
    assert stored.segment == "Soy"


def test_clearing_a_document_rechecks_name_city_state(seller, seller_client, make_client):
    make_client(seller, "Acme", "Campinas", "SP")
    with_document = make_client(seller, "Acme", "Campinas", "SP", cnpj="123")

    response = seller_client.put(f"/api/clients/{with_document.id}", json={"cnpj": ""})

    assert response.status_code == 409
    assert db.session.get(Client, with_document.id).cnpj == "123"

def test_update_client_visibility_rules(client, login_as, seller, other_seller, manager, make_client):
    theirs = make_client(other_seller, "Acme", "Campinas", "SP")

    login_as(seller)
    assert client.put(f"/api/clients/{theirs.id}", json={"segment": "Coffee"}).status_code == 403
    assert client.put("/api/clients/missing", json={"segment": "Coffee"}).status_code == 404
    assert client.get(f"/api/clients/{theirs.id}").status_code == 404

    login_as(manager)
    response = client.put(f"/api/clients/{theirs.id}", json={"ownerSellerId": seller.id})
    assert response.status_code == 200
    assert response.get_json()["ownerSellerId"] == seller.id


def test_list_clients_is_scoped(client, login_as, seller, other_seller, manager, make_client):
    make_client(seller, "Acme", "Campinas", "SP")
    make_client(other_seller, "Beta", "Campinas", "SP")

    login_as(seller)
    assert [item["name"] for item in client.get("/api/clients").get_json()["clients"]] == ["Acme"]

    login_as(manager)
    assert len(client.get("/api/clients").get_json()["clients"]) == 2
    assert len(client.get(f"/api/clients?sellerId={other_seller.id}").get_json()["clients"]) == 1


def test_safe_create_reports_errors_instead_of_raising(seller):
    duplicate, error = User.safe_create(
        name="Copy",
        email=seller.email,
        password_hash="x",
        role=UserRole.SELLER,
    )

    assert duplicate is None
    assert error
