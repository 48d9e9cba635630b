"""Matching input: the user's business profile.

Profiles are ephemeral; they arrive with each request and are never stored.
``parse_profile`` is the boundary check that turns a request body into a
UserProfile or raises InvalidProfileError.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import InvalidProfileError


class VentureType(str, Enum):
    PROJECT = "project"
    NONPROFIT = "nonprofit"
    BUSINESS = "business"
    HYBRID = "hybrid"


class BudgetLevel(str, Enum):
    ZERO = "zero"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CommitmentLevel(str, Enum):
    WEEKEND = "weekend"
    STEADY = "steady"
    ALL_IN = "all_in"


class Location(BaseModel):
    """City and state the user is based in."""

    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)

    @field_validator("city", "state")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    model_config = {"extra": "ignore"}


class UserProfile(BaseModel):
    """Business profile used to score catalog listings."""

    location: Optional[Location] = None
    cause_areas: List[str] = Field(default_factory=list)
    venture_type: Optional[VentureType] = None
    budget_level: Optional[BudgetLevel] = None
    commitment_level: Optional[CommitmentLevel] = None

    @field_validator("cause_areas")
    @classmethod
    def normalize_causes(cls, v: List[str]) -> List[str]:
        """Strip tags, drop blanks and duplicates, keep first-seen order."""
        seen = []
        for tag in v:
            stripped = tag.strip()
            if stripped and stripped not in seen:
                seen.append(stripped)
        return seen

    model_config = {"use_enum_values": True, "extra": "ignore"}

    def echo(self) -> Dict[str, Any]:
        """The filters as they were applied, for ``filters_applied``."""
        return {
            "cause_areas": list(self.cause_areas),
            "location": self.location.model_dump() if self.location else None,
            "commitment_level": self.commitment_level,
            "venture_type": self.venture_type,
            "budget_level": self.budget_level,
        }


def parse_profile(payload: Any) -> UserProfile:
    """Validate a request body into a UserProfile.

    Args:
        payload: Decoded JSON body

    Returns:
        Validated UserProfile

    Raises:
        InvalidProfileError: If the body is not an object or any field is malformed
    """
    if not isinstance(payload, dict):
        raise InvalidProfileError(
            "Request body must be a JSON object",
            errors=[f"got {type(payload).__name__}"],
        )

    try:
        return UserProfile.model_validate(payload)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path = ".".join(str(loc) for loc in error["loc"]) or "body"
            errors.append(f"{field_path}: {error['msg']}")
        raise InvalidProfileError("Invalid profile", errors=errors) from e
