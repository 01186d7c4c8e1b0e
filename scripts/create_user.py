# create_user.py

import os
import sys
from getpass import getpass

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from werkzeug.security import generate_password_hash  # noqa: E402

from app import app  # noqa: E402
from crm_app.models import User, UserRole  # noqa: E402


def create_user(name, email, password, role=UserRole.SELLER, region=None):
    """
    Create an active user.

    Returns:
        tuple: (user, None) on success, (None, error message) on failure.
    """
    email = (email or "").strip().lower()
    if not name or not email:
        return None, "Name and email are required."
    if not password:
        return None, "Password cannot be empty."
    if User.find_by_email(email):
        return None, "Email already exists."

    return User.safe_create(
        name=name.strip(),
        email=email,
        password_hash=generate_password_hash(password),
        role=UserRole(role),
        region=region or None,
        is_active=True,
    )


def main():
    with app.app_context():
        name = input("Enter name: ").strip()
        email = input("Enter email: ").strip()
        role = input("Role (vendedor/gerente/diretor) [vendedor]: ").strip() or UserRole.SELLER.value
        region = input("Region (optional): ").strip()

        password = getpass("Enter password: ")
        password2 = getpass("Confirm password: ")
        if password != password2:
            print("Error: Passwords do not match.")
            sys.exit(1)

        try:
            user_role = UserRole(role)
        except ValueError:
            print(f"Error: Unknown role '{role}'.")
            sys.exit(1)

        user, error = create_user(name, email, password, user_role, region)
        if error:
            print(f"Error creating user: {error}")
            sys.exit(1)

        print("User created successfully!")
        print(f"   Name: {user.name}")
        print(f"   Email: {user.email}")
        print(f"   Role: {user.role.value}")


if __name__ == "__main__":
    main()
