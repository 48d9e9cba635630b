"""Narrator interface: short "why this matters to you" notes per listing."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from resource_matcher.domain.models import ResourceListing
from resource_matcher.domain.profile import UserProfile


@dataclass(frozen=True)
class NarrationContext:
    """What the narrator knows about the user beyond the listings themselves."""

    profile: UserProfile
    business_name: Optional[str] = None
    business_summary: Optional[str] = None


class Narrator(ABC):
    """Produces relevance notes keyed by listing id."""

    @abstractmethod
    def annotate(
        self, listings: Sequence[ResourceListing], context: NarrationContext
    ) -> Dict[str, str]:
        """Return a note per listing id.

        The result may cover only a subset of the listings. Callers treat a
        missing id as "no note".

        Raises:
            NarrationError: If notes could not be produced at all
        """
