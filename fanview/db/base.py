"""Declarative base for Fanview models.

Every table gets a UUID primary key plus ``created_at``/``updated_at``
audit columns from advanced-alchemy.
"""

from advanced_alchemy.base import UUIDAuditBase


class Base(UUIDAuditBase):
    __abstract__ = True
