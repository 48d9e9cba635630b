"""ORM model for the resource_listings table.

The catalog keeps category-specific attributes in a JSON ``details`` column;
conversion to the domain model turns it into the typed variant for the
listing's category.
"""

import logging

from sqlalchemy import JSON, Boolean, Column, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from resource_matcher.domain.models import ResourceListing

logger = logging.getLogger(__name__)

Base = declarative_base()


class ListingModel(Base):
    """ORM model for catalog listings."""

    __tablename__ = "resource_listings"

    # Surrogate key; gives a stable insertion order
    row_id = Column(Integer, primary_key=True, autoincrement=True)

    id = Column(String(64), nullable=False, unique=True)
    slug = Column(String(255), nullable=False, unique=True)
    name = Column(Text, nullable=False)

    category = Column(String(64), nullable=False)
    subcategories = Column(JSON, nullable=False, default=list)
    cause_areas = Column(JSON, nullable=False, default=list)

    city = Column(String(255), nullable=True)
    state = Column(String(64), nullable=True)
    is_remote = Column(Boolean, nullable=False, default=False)
    is_nationwide = Column(Boolean, nullable=False, default=False)

    details = Column(JSON, nullable=False, default=dict)
    short_description = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    website = Column(Text, nullable=True)

    is_featured = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_listings_category_active", "category", "is_active"),
        Index("idx_listings_state_city", "state", "city"),
    )

    def to_domain(self) -> ResourceListing:
        """Convert to the domain model (details become a typed variant)."""
        return ResourceListing.model_validate(
            {
                "id": self.id,
                "slug": self.slug,
                "name": self.name,
                "category": self.category,
                "subcategories": self.subcategories or [],
                "cause_areas": self.cause_areas or [],
                "city": self.city,
                "state": self.state,
                "is_remote": bool(self.is_remote),
                "is_nationwide": bool(self.is_nationwide),
                "details": self.details or {},
                "short_description": self.short_description,
                "description": self.description,
                "website": self.website,
                "is_featured": bool(self.is_featured),
                "is_active": bool(self.is_active),
            }
        )

    def apply(self, listing: ResourceListing) -> None:
        """Copy every field of ``listing`` onto this row."""
        details = listing.details.model_dump(exclude_none=True)
        details.pop("kind", None)

        self.id = listing.id
        self.slug = listing.slug
        self.name = listing.name
        self.category = listing.category
        self.subcategories = list(listing.subcategories)
        self.cause_areas = list(listing.cause_areas)
        self.city = listing.city
        self.state = listing.state
        self.is_remote = listing.is_remote
        self.is_nationwide = listing.is_nationwide
        self.details = details
        self.short_description = listing.short_description
        self.description = listing.description
        self.website = listing.website
        self.is_featured = listing.is_featured
        self.is_active = listing.is_active

    @classmethod
    def from_domain(cls, listing: ResourceListing) -> "ListingModel":
        model = cls()
        model.apply(listing)
        return model


def create_schema(engine: Engine) -> None:
    """Create tables and indexes if they don't exist (idempotent)."""
    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
