"""Data models produced by the matching engine."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from resource_matcher.domain.models import ResourceListing


@dataclass
class ScoredListing:
    """A listing with its relevance score for one profile.

    Attributes:
        listing: The catalog listing
        match_score: Non-negative additive score
        match_reasons: Up to three human-readable reasons, in the order they fired
    """

    listing: ResourceListing
    match_score: int
    match_reasons: List[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.listing.id

    def sort_key(self):
        """Score desc, featured first, then listing id for a stable order."""
        return (-self.match_score, not self.listing.is_featured, self.listing.id)

    def to_dict(self) -> Dict[str, Any]:
        data = self.listing.to_dict()
        data["match_score"] = self.match_score
        data["match_reasons"] = list(self.match_reasons)
        return data


@dataclass
class CategoryRunStats:
    """
    Statistics for one category pass within a match run.

    Attributes:
        category: Category name
        strategy: Geographic strategy used for the primary query
        limit: Result cap applied
        candidates: Listings returned by the primary query
        scored: Candidates that scored above zero
        returned: Listings in the final ranked list
        used_fallback: Whether the fallback pass produced the result
        error: Query error message, if the category failed
        duration_seconds: Time spent on this category
    """

    category: str
    strategy: str
    limit: int
    candidates: int = 0
    scored: int = 0
    returned: int = 0
    used_fallback: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def had_errors(self) -> bool:
        return self.error is not None


@dataclass
class MatchRunResult:
    """
    Outcome of one match request.

    ``matches`` only holds categories with at least one listing, in the order
    the categories were requested.
    """

    run_id: str
    run_started_at: datetime
    run_finished_at: datetime
    matches: Dict[str, List[ScoredListing]] = field(default_factory=dict)
    category_stats: List[CategoryRunStats] = field(default_factory=list)
    total_duration_seconds: float = 0.0

    def __post_init__(self):
        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()

    @property
    def total_returned(self) -> int:
        return sum(len(items) for items in self.matches.values())

    @property
    def had_errors(self) -> bool:
        return any(s.had_errors for s in self.category_stats)

    @property
    def omitted_categories(self) -> List[str]:
        return [s.category for s in self.category_stats if s.category not in self.matches]

    def listings(self) -> List[ResourceListing]:
        """All matched listings, category by category."""
        return [item.listing for items in self.matches.values() for item in items]

    def matches_to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            category: [item.to_dict() for item in items]
            for category, items in self.matches.items()
        }
