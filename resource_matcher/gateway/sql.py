"""Gateway backed by the SQLAlchemy listing store."""

from contextlib import AbstractContextManager
from typing import Callable, Collection, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from resource_matcher.domain.models import GeoStrategy, ResourceListing
from resource_matcher.logging import get_logger
from resource_matcher.persistence.database import get_session
from resource_matcher.persistence.exceptions import DatabaseConnectionError, PersistenceError
from resource_matcher.persistence.repositories import ListingRepository

from .base import ListingQueryGateway
from .exceptions import CatalogUnavailableError, CategoryQueryError

logger = get_logger(__name__, component="gateway")

SessionScope = Callable[[], AbstractContextManager[Session]]


class SqlListingGateway(ListingQueryGateway):
    """ListingQueryGateway over ListingRepository.

    Every call opens its own session, so category tasks running in parallel
    threads never share one.

    Error mapping:
    - store not initialized / probe failure -> CatalogUnavailableError
    - any other failure of a single query -> CategoryQueryError
    """

    def __init__(self, session_scope: SessionScope = get_session):
        self._session_scope = session_scope

    def check_available(self) -> None:
        try:
            with self._session_scope() as session:
                session.execute(text("SELECT 1")).fetchone()
        except Exception as e:
            logger.error(
                f"Listing store unavailable: {e}",
                extra={"event": "catalog.unavailable", "error_type": type(e).__name__},
            )
            raise CatalogUnavailableError(f"Listing store unavailable: {e}") from e

    def query(
        self,
        category: str,
        city: Optional[str],
        state: Optional[str],
        strategy: GeoStrategy,
    ) -> List[ResourceListing]:
        strategy = GeoStrategy(strategy)
        try:
            with self._session_scope() as session:
                return ListingRepository(session).query(category, city, state, strategy)
        except DatabaseConnectionError as e:
            raise CatalogUnavailableError(str(e)) from e
        except PersistenceError as e:
            raise CategoryQueryError(str(e), category=category, strategy=strategy.value) from e

    def query_fallback(
        self, category: str, exclude_ids: Collection[str] = ()
    ) -> List[ResourceListing]:
        try:
            with self._session_scope() as session:
                return ListingRepository(session).query_fallback(category, exclude_ids)
        except DatabaseConnectionError as e:
            raise CatalogUnavailableError(str(e)) from e
        except PersistenceError as e:
            raise CategoryQueryError(str(e), category=category, strategy="fallback") from e

    def count_by_category(self) -> Dict[str, int]:
        try:
            with self._session_scope() as session:
                return ListingRepository(session).count_by_category()
        except PersistenceError as e:
            raise CatalogUnavailableError(f"Failed to count listings: {e}") from e
