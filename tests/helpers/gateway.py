"""In-memory gateways for engine and API tests.

InMemoryGateway applies the same strategy semantics as the SQL store, over a
plain list, and can be told to fail for chosen categories or be unreachable.
"""

import threading
from typing import Collection, Dict, Iterable, List, Optional

from resource_matcher.domain.models import GeoStrategy, ResourceListing
from resource_matcher.gateway.base import ListingQueryGateway
from resource_matcher.gateway.exceptions import CatalogUnavailableError, CategoryQueryError


def _eq(a: Optional[str], b: Optional[str]) -> bool:
    return a is not None and b is not None and a.lower() == b.lower()


class InMemoryGateway(ListingQueryGateway):
    """Gateway over a list of listings, in insertion order.

    Attributes:
        calls: (method, category) tuples in call order
    """

    def __init__(
        self,
        listings: Iterable[ResourceListing] = (),
        failing_categories: Collection[str] = (),
        unavailable: bool = False,
    ):
        self.listings: List[ResourceListing] = list(listings)
        self.failing_categories = set(failing_categories)
        self.unavailable = unavailable
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def _record(self, method: str, category: str) -> None:
        with self._lock:
            self.calls.append((method, category))

    def _active(self, category: str) -> List[ResourceListing]:
        if self.unavailable:
            raise CatalogUnavailableError("catalog offline")
        if category in self.failing_categories:
            raise CategoryQueryError(f"query failed for {category}", category=category)
        return [l for l in self.listings if l.is_active and l.category == category]

    def check_available(self) -> None:
        if self.unavailable:
            raise CatalogUnavailableError("catalog offline")

    def query(self, category, city, state, strategy) -> List[ResourceListing]:
        self._record("query", category)
        strategy = GeoStrategy(strategy)
        result = []
        for listing in self._active(category):
            local = _eq(listing.city, city) and _eq(listing.state, state)
            if strategy == GeoStrategy.LOCAL_ONLY and local:
                result.append(listing)
            elif strategy == GeoStrategy.LOCAL_AND_NATIONWIDE and (local or listing.is_nationwide):
                result.append(listing)
            elif strategy == GeoStrategy.STATE_LEVEL and _eq(listing.state, state):
                result.append(listing)
        return result

    def query_fallback(self, category, exclude_ids=()) -> List[ResourceListing]:
        self._record("query_fallback", category)
        excluded = set(exclude_ids)
        return [
            listing
            for listing in self._active(category)
            if (listing.is_nationwide or listing.is_remote or listing.is_featured)
            and listing.id not in excluded
        ]

    def count_by_category(self) -> Dict[str, int]:
        if self.unavailable:
            raise CatalogUnavailableError("catalog offline")
        counts: Dict[str, int] = {}
        for listing in self.listings:
            if listing.is_active:
                counts[listing.category] = counts.get(listing.category, 0) + 1
        return counts


class BlockingGateway(InMemoryGateway):
    """Gateway whose queries block until ``release`` is set.

    ``entered`` is set once the first query starts, so tests can cancel a
    match while a category pass is in flight.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def query(self, category, city, state, strategy) -> List[ResourceListing]:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().query(category, city, state, strategy)
