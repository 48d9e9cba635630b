"""Exceptions raised by listing query gateways."""

from typing import Optional


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    pass


class CatalogUnavailableError(GatewayError):
    """The listing store cannot be reached at all.

    Fatal for the whole match request; surfaced to the caller as a 5xx.
    """

    pass


class CategoryQueryError(GatewayError):
    """A query for a single category failed.

    Recovered by the orchestrator: the category is treated as having zero
    candidates and the other categories proceed.
    """

    def __init__(self, message: str, category: str, strategy: Optional[str] = None) -> None:
        super().__init__(message)
        self.category = category
        self.strategy = strategy
