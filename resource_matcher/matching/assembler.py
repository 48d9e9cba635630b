"""Shape match results into the response contract.

Envelope::

    {"success": true,
     "data": {"matches": {category: [ScoredListing, ...]},
              "filters_applied": {...},
              "city_slug": "austin-tx" | null}}

Each listing carries its catalog fields plus ``match_score`` and
``match_reasons``, and display fields where they apply. When narration is
requested every listing also gets a ``relevance_note``: the narrator's note,
else the stored short description, else GENERIC_RELEVANCE_NOTE. Narration is
best effort and never fails a response.
"""

from typing import Any, Dict, List, Optional

from resource_matcher.domain.models import (
    AcceleratorDetails,
    CoworkingDetails,
    GrantDetails,
    SBADetails,
)
from resource_matcher.domain.profile import UserProfile
from resource_matcher.logging import get_logger
from resource_matcher.narration.base import NarrationContext, Narrator
from resource_matcher.narration.exceptions import NarrationError

from .models import MatchRunResult, ScoredListing
from .utils import city_slug, format_amount_range, format_price_range, format_thousands

logger = get_logger(__name__, component="assembler")

GENERIC_RELEVANCE_NOTE = "A valuable resource for your business."


def display_fields(scored: ScoredListing) -> Dict[str, Any]:
    """Pre-formatted values for rendering a listing card."""
    listing = scored.listing
    details = listing.details
    fields: Dict[str, Any] = {}

    if isinstance(details, GrantDetails):
        fields["amount_range"] = format_amount_range(details.amount_min, details.amount_max)
        fields["deadline"] = details.deadline
    elif isinstance(details, AcceleratorDetails):
        if details.funding_provided:
            fields["funding_amount"] = format_thousands(details.funding_provided)
        fields["deadline"] = details.next_deadline
    elif isinstance(details, CoworkingDetails):
        fields["price_range"] = format_price_range(
            details.price_monthly_min, details.price_monthly_max
        )
        fields["rating"] = details.rating
    elif isinstance(details, SBADetails):
        fields["services"] = list(details.services)

    fields["is_free"] = listing.category == "sba"
    return {key: value for key, value in fields.items() if value is not None}


def _profile_city_slug(profile: UserProfile) -> Optional[str]:
    location = profile.location
    if location is None:
        return None
    return city_slug(location.city, location.state)

class ResponseAssembler:
    """Builds response envelopes, optionally enriched with relevance notes."""

    def __init__(self, narrator: Optional[Narrator] = None):
        self.narrator = narrator

    @property
    def can_narrate(self) -> bool:
        return self.narrator is not None

    def assemble(
        self,
        result: MatchRunResult,
        profile: UserProfile,
        narrate: bool = False,
        context: Optional[NarrationContext] = None,
    ) -> Dict[str, Any]:
        """Build the success envelope for a match run.

        Args:
            result: Engine output
            profile: The profile that was matched (echoed as filters_applied)
            narrate: Attach a relevance_note to every listing
            context: Extra narration context (defaults to the profile alone)

        Returns:
            JSON-serializable response envelope
        """
        notes: Dict[str, str] = {}
        if narrate:
            notes = self._annotate(result, context or NarrationContext(profile=profile))

        matches: Dict[str, List[Dict[str, Any]]] = {}
        for category, items in result.matches.items():
            rendered = []
            for item in items:
                data = item.to_dict()
                data.update(display_fields(item))
                if narrate:
                    data["relevance_note"] = (
                        notes.get(item.id)
                        or item.listing.short_description
                        or GENERIC_RELEVANCE_NOTE
                    )
                rendered.append(data)
            matches[category] = rendered

        return {
            "success": True,
            "data": {
                "matches": matches,
                "filters_applied": profile.echo(),
                "city_slug": _profile_city_slug(profile),
            },
        }

    @staticmethod
    def error(message: str) -> Dict[str, Any]:
        """Failure envelope."""
        return {"success": False, "error": message}

    def _annotate(self, result: MatchRunResult, context: NarrationContext) -> Dict[str, str]:
        listings = result.listings()
        if self.narrator is None or not listings:
            return {}

        try:
            return self.narrator.annotate(listings, context)
        except NarrationError as e:
            logger.warning(
                f"Narration unavailable, using stored descriptions: {e}",
                extra={
                    "event": "narration.failed",
                    "run_id": result.run_id,
                    "error_type": type(e).__name__,
                },
            )
        except Exception as e:
            logger.error(
                f"Unexpected narration error, using stored descriptions: {e}",
                extra={
                    "event": "narration.failed",
                    "run_id": result.run_id,
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
        return {}
