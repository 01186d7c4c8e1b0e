# conftest.py

import os

import pytest

# Set testing environment BEFORE importing app so app.py picks TestingConfig
os.environ["FLASK_ENV"] = "testing"

from app import app as flask_app  # noqa: E402
from config import TestingConfig  # noqa: E402
from crm_app.importer.pipeline import normalize_identity  # noqa: E402
from crm_app.models import Client, ClientType, User, UserRole, db  # noqa: E402
from crm_app.utils.access import resolve_scope  # noqa: E402

DEFAULT_PASSWORD = "testpass123"


@pytest.fixture(scope="function")
def app():
    """Create and configure a test Flask application with a clean schema"""
    flask_app.config.update(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": True,
            "LOG_LEVEL": "DEBUG",
            "CLIENT_IMPORT_ENABLED": True,
            "CLIENT_IMPORT_MAX_ROWS": 5000,
            "CLIENT_IMPORT_ROW_OFFSET": 2,
            "CLIENT_IMPORT_CSV_MAPPING_PATH": TestingConfig.CLIENT_IMPORT_CSV_MAPPING_PATH,
        }
    )

    # Re-initialize logging with updated config to pick up LOG_LEVEL=DEBUG
    from crm_app.utils.logging_config import setup_logging

    setup_logging(flask_app)

    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create a test client for the Flask application"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


def _make_user(name, email, role, region=None):
    user = User(name=name, email=email, role=role, region=region, is_active=True)
    user.set_password(DEFAULT_PASSWORD)
    return user.save()


@pytest.fixture
def seller(app):
    return _make_user("Ana Vendedora", "ana@example.com", UserRole.SELLER, region="Sul")


@pytest.fixture
def other_seller(app):
    return _make_user("Bruno Vendedor", "bruno@example.com", UserRole.SELLER, region="Norte")


@pytest.fixture
def manager(app):
    return _make_user("Carla Gerente", "carla@example.com", UserRole.MANAGER)


@pytest.fixture
def director(app):
    return _make_user("Davi Diretor", "davi@example.com", UserRole.DIRECTOR)


@pytest.fixture
def seller_scope(seller):
    return resolve_scope(seller)


@pytest.fixture
def manager_scope(manager):
    return resolve_scope(manager)


def login(test_client, user, password=DEFAULT_PASSWORD):
    response = test_client.post("/api/auth/login", json={"email": user.email, "password": password})
    assert response.status_code == 200, response.get_json()
    return test_client


@pytest.fixture
def login_as(client):
    """Log the shared test client in as the given user"""

    def _login(user):
        return login(client, user)

    return _login


@pytest.fixture
def seller_client(client, seller):
    """Test client logged in as the seller"""
    return login(client, seller)


@pytest.fixture
def manager_client(client, manager):
    """Test client logged in as the manager"""
    return login(client, manager)


@pytest.fixture
def make_client():
    """Factory inserting a stored client with its normalized columns filled"""

    def _make(owner, name, city, state, cnpj=None, *, cache_normalized=True, **kwargs):
        identity = normalize_identity(name, city, state, cnpj)
        record = Client(
            name=name,
            city=city,
            state=identity.state,
            cnpj=cnpj,
            client_type=kwargs.pop("client_type", ClientType.PJ),
            owner_seller_id=owner.id if owner is not None else None,
            **kwargs,
        )
        if cache_normalized:
            record.name_normalized = identity.name_normalized
            record.city_normalized = identity.city_normalized
            record.cnpj_normalized = identity.document_normalized or None
        return record.save()

    return _make


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers and ensure testing environment"""
    os.environ["FLASK_ENV"] = "testing"

    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
