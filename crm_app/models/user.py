# crm_app/models/user.py

from flask import current_app
from flask_login import UserMixin
from sqlalchemy import Enum
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from .base import BaseModel, db
from .enums import UserRole


class User(UserMixin, BaseModel):
    """Application user; the role decides which clients are visible"""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(Enum(UserRole, name="user_role_enum"), nullable=False, default=UserRole.SELLER, index=True)
    region = db.Column(db.String(100), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    clients = db.relationship("Client", back_populates="owner_seller")

    def __repr__(self):
        return f"<User {self.email}>"

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_seller(self):
        return self.role == UserRole.SELLER

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value if self.role else None,
            "region": self.region,
        }

    @staticmethod
    def find_by_email(email):
        """Find user by email with error handling"""
        try:
            return User.query.filter_by(email=(email or "").strip().lower()).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Database error finding user by email {email}: {str(e)}")
            return None
