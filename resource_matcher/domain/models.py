"""Core domain models for catalog listings.

This module defines the data structures shared by the store, the scorer and the
response layer:
- ResourceListing: one entry in the read-only resource catalog
- *Details: category-specific attributes, one variant per category family
- ResourceCategory / GeoStrategy: enumerations used across the engine
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class ResourceCategory(str, Enum):
    """Catalog categories known to this release.

    Listings may carry categories outside this set; they are matched with the
    registry's default configuration.
    """

    GRANT = "grant"
    ACCELERATOR = "accelerator"
    INCUBATOR = "incubator"
    COWORKING = "coworking"
    EVENT_SPACE = "event_space"
    SBA = "sba"
    PITCH_COMPETITION = "pitch_competition"
    MENTORSHIP = "mentorship"
    LEGAL = "legal"
    ACCOUNTING = "accounting"
    MARKETING = "marketing"
    INVESTOR = "investor"
    BUSINESS_ATTORNEY = "business-attorney"
    ACCOUNTANT = "accountant"
    MARKETING_AGENCY = "marketing-agency"
    PRINT_SHOP = "print-shop"
    COMMERCIAL_REAL_ESTATE = "commercial-real-estate"
    BUSINESS_INSURANCE = "business-insurance"
    CHAMBER_OF_COMMERCE = "chamber-of-commerce"
    VIRTUAL_OFFICE = "virtual-office"
    BUSINESS_CONSULTANT = "business-consultant"


class GeoStrategy(str, Enum):
    """Geographic filter applied when querying a category."""

    LOCAL_ONLY = "local-only"
    LOCAL_AND_NATIONWIDE = "local-and-nationwide"
    STATE_LEVEL = "state-level"


class _Details(BaseModel):
    model_config = {"extra": "ignore"}


class GrantDetails(_Details):
    """Attributes of grant listings."""

    kind: Literal["grant"] = "grant"
    amount_min: Optional[float] = Field(None, ge=0)
    amount_max: Optional[float] = Field(None, ge=0)
    deadline: Optional[str] = None
    eligibility: Optional[str] = None
    application_url: Optional[str] = None
    grant_type: Optional[str] = None


class AcceleratorDetails(_Details):
    """Attributes of accelerator listings."""

    kind: Literal["accelerator"] = "accelerator"
    duration_weeks: Optional[int] = Field(None, ge=0)
    equity_taken: Optional[float] = Field(None, ge=0)
    funding_provided: Optional[float] = Field(None, ge=0)
    batch_size: Optional[int] = Field(None, ge=0)
    next_deadline: Optional[str] = None


class SBADetails(_Details):
    """Attributes of SBA resource listings (SBDC, SCORE, WBC, VBOC)."""

    kind: Literal["sba"] = "sba"
    sba_type: Optional[str] = None
    services: List[str] = Field(default_factory=list)


class CoworkingDetails(_Details):
    """Attributes of coworking space listings."""

    kind: Literal["coworking"] = "coworking"
    price_monthly_min: Optional[float] = Field(None, ge=0)
    price_monthly_max: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)
    amenities: List[str] = Field(default_factory=list)


class ServiceDetails(_Details):
    """Attributes shared by every other category (attorneys, agencies, ...)."""

    kind: Literal["service"] = "service"
    specialty: Optional[str] = None
    focus_areas: List[str] = Field(default_factory=list)


ListingDetails = Annotated[
    Union[GrantDetails, AcceleratorDetails, SBADetails, CoworkingDetails, ServiceDetails],
    Field(discriminator="kind"),
]

_DETAIL_KINDS: Dict[str, str] = {
    ResourceCategory.GRANT.value: "grant",
    ResourceCategory.ACCELERATOR.value: "accelerator",
    ResourceCategory.SBA.value: "sba",
    ResourceCategory.COWORKING.value: "coworking",
}


def detail_kind_for(category: str) -> str:
    """Return the details variant tag a listing of ``category`` must carry."""
    return _DETAIL_KINDS.get(category, "service")


class ResourceListing(BaseModel):
    """An entry in the resource catalog.

    The ``details`` field is a tagged variant keyed by category. Raw payloads
    (as stored in the catalog) may omit the tag; it is derived from
    ``category`` before validation, and a tag that contradicts the category is
    rejected.
    """

    id: str = Field(..., min_length=1, description="Stable listing identifier")
    slug: str = Field(..., min_length=1, description="URL slug")
    name: str = Field(..., min_length=1, description="Display name")
    category: str = Field(..., min_length=1, description="Catalog category")
    subcategories: List[str] = Field(default_factory=list)
    cause_areas: List[str] = Field(default_factory=list)
    city: Optional[str] = None
    state: Optional[str] = None
    is_remote: bool = False
    is_nationwide: bool = False
    details: ListingDetails = Field(default_factory=ServiceDetails)
    short_description: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    is_featured: bool = False
    is_active: bool = True

    @field_validator("id", "slug", "name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """Strip whitespace from identity fields."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    @field_validator("category")
    @classmethod
    def normalize_category(cls, v: str) -> str:
        """Categories are compared lower-case."""
        stripped = v.strip().lower()
        if not stripped:
            raise ValueError("category cannot be empty")
        return stripped

    @field_validator("city", "state")
    @classmethod
    def strip_location(cls, v: Optional[str]) -> Optional[str]:
        """Blank location parts are treated as absent."""
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("subcategories", "cause_areas", mode="before")
    @classmethod
    def coerce_tags(cls, v: Any) -> Any:
        """Stored tag columns may be NULL."""
        return [] if v is None else v

    @model_validator(mode="before")
    @classmethod
    def tag_details(cls, data: Any) -> Any:
        """Attach the variant tag to untagged details before validation."""
        if not isinstance(data, dict):
            return data

        details = data.get("details")
        if isinstance(details, BaseModel):
            return data

        category = str(data.get("category") or "").strip().lower()
        raw = dict(details or {})
        raw.setdefault("kind", detail_kind_for(category))
        return {**data, "details": raw}

    @model_validator(mode="after")
    def check_details_match_category(self):
        """The details variant must belong to the listing's category."""
        expected = detail_kind_for(self.category)
        if self.details.kind != expected:
            raise ValueError(
                f"details of kind '{self.details.kind}' do not match category "
                f"'{self.category}' (expected '{expected}')"
            )
        return self

    @property
    def is_geography_independent(self) -> bool:
        """Nationwide and remote listings ignore any stray city/state values."""
        return self.is_nationwide or self.is_remote

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the wire; the variant tag is an internal detail."""
        data = self.model_dump(mode="json")
        data["details"].pop("kind", None)
        return data

    model_config = {"json_schema_extra": {"example": {
        "id": "grant-austin-green-fund",
        "slug": "austin-green-fund",
        "name": "Austin Green Fund",
        "category": "grant",
        "subcategories": ["small-business"],
        "cause_areas": ["environment"],
        "city": "Austin",
        "state": "TX",
        "is_remote": False,
        "is_nationwide": False,
        "details": {"amount_max": 20000, "deadline": "2026-03-01"},
        "is_featured": False,
        "is_active": True,
    }}}
