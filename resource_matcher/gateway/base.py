"""Abstract listing query gateway.

The engine never talks to the catalog directly; it goes through a gateway that
returns active listings for one category at a time. Implementations must be
safe to call from several threads at once (one call per category task).
"""

from abc import ABC, abstractmethod
from typing import Collection, Dict, List, Optional

from resource_matcher.domain.models import GeoStrategy, ResourceListing
from resource_matcher.domain.profile import UserProfile

# Strategies that cannot produce anything without a location to match against
LOCATION_BOUND_STRATEGIES = frozenset({GeoStrategy.LOCAL_ONLY, GeoStrategy.STATE_LEVEL})


class ListingQueryGateway(ABC):
    """Read-only access to the catalog, one category per call."""

    @abstractmethod
    def query(
        self,
        category: str,
        city: Optional[str],
        state: Optional[str],
        strategy: GeoStrategy,
    ) -> List[ResourceListing]:
        """Return active listings of ``category`` narrowed by ``strategy``.

        Implementations must exclude inactive listings.

        Raises:
            CategoryQueryError: If the query for this category fails
            CatalogUnavailableError: If the store cannot be reached at all
        """

    @abstractmethod
    def query_fallback(
        self, category: str, exclude_ids: Collection[str] = ()
    ) -> List[ResourceListing]:
        """Return active nationwide, remote or featured listings of ``category``.

        Raises:
            CategoryQueryError: If the query for this category fails
            CatalogUnavailableError: If the store cannot be reached at all
        """

    @abstractmethod
    def count_by_category(self) -> Dict[str, int]:
        """Return the number of active listings per category.

        Raises:
            CatalogUnavailableError: If the store cannot be reached
        """

    def check_available(self) -> None:
        """Probe the store before a match starts.

        Raises:
            CatalogUnavailableError: If the store cannot be reached
        """
        return None

    def fetch(
        self, category: str, strategy: GeoStrategy, profile: UserProfile
    ) -> List[ResourceListing]:
        """Candidates for ``category`` under ``strategy`` for this profile.

        Without a profile location the local-only and state-level strategies
        yield nothing; local-and-nationwide still returns nationwide listings.
        """
        strategy = GeoStrategy(strategy)
        location = profile.location

        if location is None and strategy in LOCATION_BOUND_STRATEGIES:
            return []

        return self.query(
            category,
            location.city if location else None,
            location.state if location else None,
            strategy,
        )
