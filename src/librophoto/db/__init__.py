"""Database module exports."""

from librophoto.db.base import Base
from librophoto.db.models import BookRecord, CaptureRecord
from librophoto.db.repository import MetadataStore
from librophoto.db.session import create_engine, create_session_factory, init_models

__all__ = [
    "Base",
    "BookRecord",
    "CaptureRecord",
    "MetadataStore",
    "create_engine",
    "create_session_factory",
    "init_models",
]
