"""Listing query gateways: the engine's read-only view of the catalog."""

from .base import LOCATION_BOUND_STRATEGIES, ListingQueryGateway
from .exceptions import CatalogUnavailableError, CategoryQueryError, GatewayError
from .sql import SqlListingGateway

__all__ = [
    "ListingQueryGateway",
    "SqlListingGateway",
    "LOCATION_BOUND_STRATEGIES",
    "GatewayError",
    "CatalogUnavailableError",
    "CategoryQueryError",
]
