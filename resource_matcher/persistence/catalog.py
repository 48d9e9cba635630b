"""Load catalog listings from YAML files (seeding and fixtures)."""

from pathlib import Path
from typing import List

import yaml
from pydantic import ValidationError

from resource_matcher.domain.models import ResourceListing

from .exceptions import PersistenceError


def load_catalog_file(catalog_path: Path) -> List[ResourceListing]:
    """Read a YAML catalog of the form ``listings: [ {...}, ... ]``.

    Args:
        catalog_path: Path to the YAML file

    Returns:
        Validated listings in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        PersistenceError: If the YAML is malformed or a listing is invalid
    """
    catalog_path = Path(catalog_path)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog file not found: {catalog_path}")

    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise PersistenceError(f"Failed to parse catalog {catalog_path}: {e}") from e

    raw_listings = data.get("listings", []) if isinstance(data, dict) else None
    if not isinstance(raw_listings, list):
        raise PersistenceError(f"Catalog {catalog_path} must contain a 'listings' list")

    listings = []
    for index, raw in enumerate(raw_listings):
        try:
            listings.append(ResourceListing.model_validate(raw))
        except ValidationError as e:
            raise PersistenceError(
                f"Invalid listing #{index} in {catalog_path}: {e.error_count()} error(s): {e}"
            ) from e

    return listings
