"""Relevance scoring of a listing against a user profile.

Scoring is additive. Each rule looks at one aspect of the listing and returns
either nothing or a ScoreDelta of (points, optional reason). Rules are folded
in the order of SCORING_RULES:

1. Location (with or without a profile location)
2. Cause-area overlap
3. Venture type / subcategories
4. Category-specific rules (accelerator, grant, sba)
5. Featured boost

Reasons are kept in the order their rules fired and capped at MAX_REASONS.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from resource_matcher.domain.models import (
    AcceleratorDetails,
    GrantDetails,
    ResourceListing,
    SBADetails,
)
from resource_matcher.domain.profile import UserProfile

from .utils import format_thousands, humanize_cause

MAX_REASONS = 3

DIVERSE_FOUNDER_TAGS = frozenset({"women-owned", "minority-owned", "veteran"})
BUSINESS_SUBCATEGORY_TAGS = frozenset({"tech", "small-business"})
LOW_BUDGET_LEVELS = frozenset({"zero", "low"})


@dataclass(frozen=True)
class ScoreDelta:
    """Points contributed by one rule, with an optional human-readable reason."""

    points: int
    reason: Optional[str] = None


RuleFunc = Callable[[ResourceListing, UserProfile], Optional[ScoreDelta]]


@dataclass(frozen=True)
class ScoringRule:
    """A named scoring rule, optionally restricted to one category."""

    name: str
    func: RuleFunc
    category: Optional[str] = None

    def apply(self, listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
        if self.category is not None and listing.category != self.category:
            return None
        return self.func(listing, profile)


def _same(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return a.strip().lower() == b.strip().lower()


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------


def location_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    location = profile.location

    if location is None:
        # Bias the location-less view toward widely available resources
        if listing.is_geography_independent:
            return ScoreDelta(2)
        return None

    if listing.is_nationwide:
        return ScoreDelta(3, "Available nationwide")
    if listing.is_remote:
        return ScoreDelta(3, "Available remotely")
    if _same(listing.state, location.state):
        if _same(listing.city, location.city):
            return ScoreDelta(5 + 3, f"Located in {location.city}")
        return ScoreDelta(5, f"Available in {location.state}")
    return None


# ---------------------------------------------------------------------------
# Cause areas and venture type
# ---------------------------------------------------------------------------


def cause_area_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    if not profile.cause_areas or not listing.cause_areas:
        return None

    listing_causes = {cause.lower() for cause in listing.cause_areas}
    matched = [cause for cause in profile.cause_areas if cause.lower() in listing_causes]
    if not matched:
        return None

    names = ", ".join(humanize_cause(cause) for cause in matched)
    return ScoreDelta(4 * len(matched), f"Supports {names}")


def nonprofit_venture_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    if profile.venture_type == "nonprofit" and "nonprofit" in listing.subcategories:
        return ScoreDelta(3, "Supports nonprofits")
    return None


def business_venture_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    if profile.venture_type == "business" and BUSINESS_SUBCATEGORY_TAGS.intersection(
        listing.subcategories
    ):
        return ScoreDelta(2)
    return None


def social_impact_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    # Only evaluated when the profile states a venture type
    if profile.venture_type and "social-impact" in listing.subcategories:
        return ScoreDelta(3, "Social impact focus")
    return None


# ---------------------------------------------------------------------------
# Accelerators
# ---------------------------------------------------------------------------


def _accelerator(listing: ResourceListing) -> Optional[AcceleratorDetails]:
    details = listing.details
    return details if isinstance(details, AcceleratorDetails) else None


def no_equity_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    details = _accelerator(listing)
    if details is None or profile.budget_level not in LOW_BUDGET_LEVELS:
        return None
    if details.equity_taken is not None and details.equity_taken == 0:
        return ScoreDelta(4, "No equity required")
    return None


def intensive_program_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    details = _accelerator(listing)
    if details is None or profile.commitment_level != "all_in":
        return None
    if details.duration_weeks is not None and details.duration_weeks >= 12:
        return ScoreDelta(2)
    return None


def flexible_remote_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    if profile.commitment_level == "weekend" and listing.is_remote:
        return ScoreDelta(2, "Flexible remote program")
    return None


def funding_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    details = _accelerator(listing)
    if details is None or not details.funding_provided:
        return None
    return ScoreDelta(3, f"{format_thousands(details.funding_provided)} funding")


# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------


def grant_amount_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    details = listing.details
    if not isinstance(details, GrantDetails) or not details.amount_max:
        return None

    amount = details.amount_max
    if amount >= 50000:
        points = 3
    elif amount >= 10000:
        points = 2
    else:
        points = 1
    return ScoreDelta(points, f"Up to {format_thousands(amount)} available")


def grant_nonprofit_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    if profile.venture_type == "nonprofit" and "nonprofit" in listing.subcategories:
        return ScoreDelta(2)
    return None


def diverse_founder_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    if DIVERSE_FOUNDER_TAGS.intersection(listing.subcategories):
        return ScoreDelta(1)
    return None


# ---------------------------------------------------------------------------
# SBA
# ---------------------------------------------------------------------------


def sba_base_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    # Free government resource, relevant to every profile
    return ScoreDelta(2)


_SBA_TYPE_REASONS = {
    "SCORE": "Free mentorship",
    "SBDC": "Free business counseling",
}


def sba_type_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    details = listing.details
    if not isinstance(details, SBADetails) or details.sba_type is None:
        return None
    reason = _SBA_TYPE_REASONS.get(details.sba_type)
    if reason is None:
        return None
    return ScoreDelta(1, reason)


# ---------------------------------------------------------------------------
# Universal
# ---------------------------------------------------------------------------


def featured_rule(listing: ResourceListing, profile: UserProfile) -> Optional[ScoreDelta]:
    if listing.is_featured:
        return ScoreDelta(2)
    return None


SCORING_RULES: Tuple[ScoringRule, ...] = (
    ScoringRule("location", location_rule),
    ScoringRule("cause_area", cause_area_rule),
    ScoringRule("nonprofit_venture", nonprofit_venture_rule),
    ScoringRule("business_venture", business_venture_rule),
    ScoringRule("social_impact", social_impact_rule),
    ScoringRule("no_equity", no_equity_rule, category="accelerator"),
    ScoringRule("intensive_program", intensive_program_rule, category="accelerator"),
    ScoringRule("flexible_remote", flexible_remote_rule, category="accelerator"),
    ScoringRule("funding", funding_rule, category="accelerator"),
    ScoringRule("grant_amount", grant_amount_rule, category="grant"),
    ScoringRule("grant_nonprofit", grant_nonprofit_rule, category="grant"),
    ScoringRule("diverse_founder", diverse_founder_rule, category="grant"),
    ScoringRule("sba_base", sba_base_rule, category="sba"),
    ScoringRule("sba_type", sba_type_rule, category="sba"),
    ScoringRule("featured", featured_rule),
)


class Scorer:
    """Folds an ordered sequence of scoring rules over a listing.

    Pure and stateless: the same (listing, profile) always gives the same
    result, so one instance is shared by all category workers.
    """

    def __init__(
        self, rules: Sequence[ScoringRule] = SCORING_RULES, max_reasons: int = MAX_REASONS
    ):
        self.rules = tuple(rules)
        self.max_reasons = max_reasons

    def score(self, listing: ResourceListing, profile: UserProfile) -> Tuple[int, List[str]]:
        """Score a listing for a profile.

        Args:
            listing: Catalog listing
            profile: Validated user profile

        Returns:
            (score, reasons) where score >= 0 and reasons are in firing order,
            at most ``max_reasons`` long
        """
        total = 0
        reasons: List[str] = []

        for rule in self.rules:
            delta = rule.apply(listing, profile)
            if delta is None:
                continue
            total += delta.points
            if delta.reason:
                reasons.append(delta.reason)

        return total, reasons[: self.max_reasons]

    def explain(self, listing: ResourceListing, profile: UserProfile) -> List[Tuple[str, ScoreDelta]]:
        """Every rule that fired, by name, for debugging and tests."""
        fired = []
        for rule in self.rules:
            delta = rule.apply(listing, profile)
            if delta is not None:
                fired.append((rule.name, delta))
        return fired


_default_scorer = Scorer()


def score(listing: ResourceListing, profile: UserProfile) -> Tuple[int, List[str]]:
    """Score with the default rule set."""
    return _default_scorer.score(listing, profile)
