from crm_app.models import User, UserRole
from scripts.create_user import create_user


def test_create_user_hashes_password_and_normalizes_email(app):
    user, error = create_user("Eva Gerente", " EVA@Example.com ", "s3cret", role="gerente", region="Sul")

    assert error is None
    assert user.email == "eva@example.com"
    assert user.role is UserRole.MANAGER
    assert user.check_password("s3cret")
    assert User.find_by_email("eva@example.com").id == user.id


def test_create_user_rejects_existing_email(seller):
    user, error = create_user("Copy", seller.email, "pw")

    assert user is None
    assert error == "Email already exists."


def test_create_user_requires_password(app):
    assert create_user("Eva", "eva@example.com", "") == (None, "Password cannot be empty.")
