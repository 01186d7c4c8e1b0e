# crm_app/models/base.py

from datetime import datetime, timezone

from flask import current_app, has_app_context
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


class BaseModel(db.Model):
    """Abstract base adding audit timestamps and persistence helpers"""

    __abstract__ = True

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def save(self):
        """Add and commit this instance, rolling back on failure"""
        try:
            db.session.add(self)
            db.session.commit()
            return self
        except SQLAlchemyError:
            db.session.rollback()
            raise

    @classmethod
    def safe_create(cls, **kwargs):
        """
        Create and commit a new instance.

        Returns:
            tuple: (instance, None) on success, (None, error message) on failure.
        """
        try:
            instance = cls(**kwargs)
            db.session.add(instance)
            db.session.commit()
            return instance, None
        except SQLAlchemyError as e:
            db.session.rollback()
            if has_app_context():
                current_app.logger.error(f"Error creating {cls.__name__}: {str(e)}")
            return None, str(e)
