"""Domain models for the resource matcher."""

from .exceptions import InvalidProfileError
from .models import (
    AcceleratorDetails,
    CoworkingDetails,
    GeoStrategy,
    GrantDetails,
    ListingDetails,
    ResourceCategory,
    ResourceListing,
    SBADetails,
    ServiceDetails,
    detail_kind_for,
)
from .profile import (
    BudgetLevel,
    CommitmentLevel,
    Location,
    UserProfile,
    VentureType,
    parse_profile,
)

__all__ = [
    "ResourceListing",
    "ListingDetails",
    "GrantDetails",
    "AcceleratorDetails",
    "SBADetails",
    "CoworkingDetails",
    "ServiceDetails",
    "detail_kind_for",
    "ResourceCategory",
    "GeoStrategy",
    "UserProfile",
    "Location",
    "VentureType",
    "BudgetLevel",
    "CommitmentLevel",
    "parse_profile",
    "InvalidProfileError",
]
