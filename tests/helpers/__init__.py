"""Test helper utilities for Resource Matcher tests."""

from .builders import FIXTURES_DIR, load_fixture_catalog, make_listing, make_profile
from .gateway import BlockingGateway, InMemoryGateway

__all__ = [
    "FIXTURES_DIR",
    "InMemoryGateway",
    "BlockingGateway",
    "load_fixture_catalog",
    "make_listing",
    "make_profile",
]
