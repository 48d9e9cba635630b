"""Data access for catalog listings.

The repository encapsulates SQL and returns domain models rather than ORM rows.
Matching only ever reads; the write methods exist for seeding and fixtures.
"""

import logging
from typing import Collection, Dict, List, Optional

from sqlalchemy import and_, false, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from resource_matcher.domain.models import GeoStrategy, ResourceListing

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import ListingModel

logger = logging.getLogger(__name__)


class ListingRepository:
    """Repository for catalog listing operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, listing_id: str) -> Optional[ResourceListing]:
        """Retrieve a listing by its identifier, or None.

        Raises:
            PersistenceError: If a database error occurs
        """
        return self._get_one(ListingModel.id == listing_id, f"id={listing_id}")

    def get_by_slug(self, slug: str) -> Optional[ResourceListing]:
        """Retrieve a listing by slug, or None.

        Raises:
            PersistenceError: If a database error occurs
        """
        return self._get_one(ListingModel.slug == slug, f"slug={slug}")

    def query(
        self,
        category: str,
        city: Optional[str],
        state: Optional[str],
        strategy: GeoStrategy,
    ) -> List[ResourceListing]:
        """Active listings of a category, narrowed by a geographic strategy.

        - local-only: city and state both equal the given ones
        - local-and-nationwide: local match, or any nationwide listing
        - state-level: state equals the given one

        City and state compare case-insensitively. Without a location the
        local-only and state-level strategies return nothing.

        Args:
            category: Catalog category
            city: Profile city, or None
            state: Profile state, or None
            strategy: Geographic strategy

        Returns:
            Listings in insertion order

        Raises:
            PersistenceError: If a database error occurs
        """
        strategy = GeoStrategy(strategy)
        local = self._local_clause(city, state)

        if strategy == GeoStrategy.LOCAL_ONLY:
            geo = local
        elif strategy == GeoStrategy.LOCAL_AND_NATIONWIDE:
            geo = or_(local, ListingModel.is_nationwide.is_(True))
        else:
            geo = (
                func.lower(ListingModel.state) == state.strip().lower()
                if state
                else false()
            )

        return self._select_active(category, geo, f"{category}/{strategy.value}")

    def query_fallback(
        self, category: str, exclude_ids: Collection[str] = ()
    ) -> List[ResourceListing]:
        """Active listings of a category that are nationwide, remote or featured.

        Geography of the profile is ignored. Listings whose ids are in
        ``exclude_ids`` are left out.

        Raises:
            PersistenceError: If a database error occurs
        """
        clause = or_(
            ListingModel.is_nationwide.is_(True),
            ListingModel.is_remote.is_(True),
            ListingModel.is_featured.is_(True),
        )
        if exclude_ids:
            clause = and_(clause, ListingModel.id.notin_(list(exclude_ids)))

        return self._select_active(category, clause, f"{category}/fallback")

    def count_by_category(self) -> Dict[str, int]:
        """Number of active listings per category.

        Raises:
            PersistenceError: If a database error occurs
        """
        try:
            stmt = (
                select(ListingModel.category, func.count(ListingModel.row_id))
                .where(ListingModel.is_active.is_(True))
                .group_by(ListingModel.category)
            )
            return {category: count for category, count in self.session.execute(stmt)}
        except SQLAlchemyError as e:
            logger.error(f"Error counting listings by category: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count listings: {e}") from e

    def upsert(self, listing: ResourceListing) -> ResourceListing:
        """Insert a new listing or update the one with the same id.

        Raises:
            DataIntegrityError: On constraint violations (e.g. duplicate slug)
            PersistenceError: On other database errors
        """
        try:
            existing = self.session.execute(
                select(ListingModel).where(ListingModel.id == listing.id)
            ).scalar_one_or_none()

            if existing is not None:
                existing.apply(listing)
                self.session.flush()
                return existing.to_domain()

            model = ListingModel.from_domain(listing)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting listing {listing.id}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to upsert listing due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting listing {listing.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert listing: {e}") from e

    def deactivate(self, listing_id: str) -> None:
        """Mark a listing inactive so it is never matched again.

        Raises:
            RecordNotFoundError: If the listing does not exist
            PersistenceError: On database errors
        """
        try:
            model = self.session.execute(
                select(ListingModel).where(ListingModel.id == listing_id)
            ).scalar_one_or_none()
            if model is None:
                raise RecordNotFoundError(f"Listing not found: {listing_id}")
            model.is_active = False
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error deactivating listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to deactivate listing: {e}") from e

    @staticmethod
    def _local_clause(city: Optional[str], state: Optional[str]):
        if not city or not state:
            return false()
        return and_(
            func.lower(ListingModel.city) == city.strip().lower(),
            func.lower(ListingModel.state) == state.strip().lower(),
        )

    def _select_active(self, category: str, clause, label: str) -> List[ResourceListing]:
        try:
            stmt = (
                select(ListingModel)
                .where(
                    ListingModel.is_active.is_(True),
                    ListingModel.category == category,
                    clause,
                )
                .order_by(ListingModel.row_id)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]
        except SQLAlchemyError as e:
            logger.error(f"Error querying listings {label}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to query listings ({label}): {e}") from e

    def _get_one(self, clause, label: str) -> Optional[ResourceListing]:
        try:
            model = self.session.execute(select(ListingModel).where(clause)).scalar_one_or_none()
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving listing {label}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve listing: {e}") from e
