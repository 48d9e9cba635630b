"""Listing store: SQLAlchemy persistence for the resource catalog.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository
    - ListingRepository: strategy queries, fallback query, counts, upsert

    # Catalog files
    - load_catalog_file(path) -> list[ResourceListing]

    # Exceptions
    - PersistenceError, DatabaseConnectionError, RecordNotFoundError,
      DataIntegrityError

Example usage:
    >>> from resource_matcher.persistence import init_database, get_session, ListingRepository
    >>> init_database("sqlite:///./data/resources.db")
    >>> with get_session() as session:
    ...     grants = ListingRepository(session).query("grant", "Austin", "TX", "local-and-nationwide")
"""

from .catalog import load_catalog_file
from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import ListingRepository

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repository
    "ListingRepository",
    # Catalog files
    "load_catalog_file",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
