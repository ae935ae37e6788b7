"""
Store Manager Package

Durable session credentials, the shared GlobalSettings document and
per-instance feature documents.

Structure:
- main.py: SqlAlchemySessionStore (async SQLAlchemy backend)
- models.py: SQLAlchemy table definitions
- types.py: GlobalSettings model and the SessionStore / DocumentCollection protocols
"""

from .main import SqlAlchemySessionStore, SqlDocumentCollection
from .types import (
    GLOBAL_SETTINGS_ID, GLOBAL_SETTINGS_FIELDS, GlobalSettings,
    SessionStore, DocumentCollection, utcnow
)

__all__ = [
    'SqlAlchemySessionStore', 'SqlDocumentCollection',
    'GLOBAL_SETTINGS_ID', 'GLOBAL_SETTINGS_FIELDS', 'GlobalSettings',
    'SessionStore', 'DocumentCollection', 'utcnow',
]
