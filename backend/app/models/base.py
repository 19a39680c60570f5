"""
Base model class for all SQLAlchemy models.

WHY: Centralizing common model functionality (timestamps, ID) in a base class
ensures consistency across all models and reduces code duplication.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    WHY: DeclarativeBase provides the foundation for SQLAlchemy 2.0 models
    with improved type hints and async support.
    """

    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.
    """

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class PrimaryKeyMixin:
    """
    Mixin to add an integer primary key to models.

    Used by tenant and identity tables (organizations, users, audit logs).
    """

    id = Column(Integer, primary_key=True, index=True)


def generate_uuid() -> str:
    """
    Generate a new UUID4 string identifier.

    WHY: Chat-side entities (sessions, knowledge items, bot personalities,
    n8n workflows) are referenced by external systems and in API paths;
    UUIDs keep those references opaque. Stored as String(36) so the same
    schema works on PostgreSQL and SQLite.
    """
    return str(uuid.uuid4())

