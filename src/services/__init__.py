"""Services module for the capture assistant."""

from services.database import create_db_engine, create_session_factory, init_db
from services.http_client import HttpClient

__all__ = [
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "HttpClient",
]
