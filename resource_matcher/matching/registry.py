"""Category registry: geographic strategy and result limit per category.

The built-in table is plain data; adding a category means adding a row here
or a ``categories`` entry in config.yaml. Categories that appear in neither
resolve to DEFAULT_CATEGORY_CONFIG.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from resource_matcher.config.models import AppConfig
from resource_matcher.domain.models import GeoStrategy


@dataclass(frozen=True)
class CategoryConfig:
    """How a category is queried and how many results it may return."""

    strategy: GeoStrategy
    limit: int

    def to_dict(self) -> Dict[str, object]:
        return {"strategy": self.strategy.value, "limit": self.limit}


DEFAULT_CATEGORY_CONFIG = CategoryConfig(GeoStrategy.LOCAL_ONLY, 2)

_LOCAL = GeoStrategy.LOCAL_ONLY
_LOCAL_AND_NATIONWIDE = GeoStrategy.LOCAL_AND_NATIONWIDE
_STATE = GeoStrategy.STATE_LEVEL

BUILTIN_CATEGORY_CONFIGS: Mapping[str, CategoryConfig] = MappingProxyType(
    {
        # Core categories
        "grant": CategoryConfig(_LOCAL_AND_NATIONWIDE, 5),
        "accelerator": CategoryConfig(_LOCAL_AND_NATIONWIDE, 3),
        "sba": CategoryConfig(_STATE, 3),
        "coworking": CategoryConfig(_LOCAL, 3),
        # Programs that frequently run online or nationally
        "incubator": CategoryConfig(_LOCAL_AND_NATIONWIDE, 3),
        "pitch_competition": CategoryConfig(_LOCAL_AND_NATIONWIDE, 3),
        "mentorship": CategoryConfig(_LOCAL_AND_NATIONWIDE, 3),
        "investor": CategoryConfig(_LOCAL_AND_NATIONWIDE, 3),
        "virtual-office": CategoryConfig(_LOCAL_AND_NATIONWIDE, 2),
        # Places
        "event_space": CategoryConfig(_LOCAL, 3),
        "commercial-real-estate": CategoryConfig(_LOCAL, 3),
        "chamber-of-commerce": CategoryConfig(_LOCAL, 2),
        # Local professional services
        "legal": CategoryConfig(_LOCAL, 2),
        "accounting": CategoryConfig(_LOCAL, 2),
        "marketing": CategoryConfig(_LOCAL, 2),
        "business-attorney": CategoryConfig(_LOCAL, 2),
        "accountant": CategoryConfig(_LOCAL, 2),
        "marketing-agency": CategoryConfig(_LOCAL, 2),
        "print-shop": CategoryConfig(_LOCAL, 2),
        "business-insurance": CategoryConfig(_LOCAL, 2),
        "business-consultant": CategoryConfig(_LOCAL, 2),
    }
)


class CategoryRegistry:
    """Read-only lookup of CategoryConfig by category name."""

    def __init__(
        self,
        overrides: Optional[Mapping[str, CategoryConfig]] = None,
        default: CategoryConfig = DEFAULT_CATEGORY_CONFIG,
    ):
        """Initialize the registry.

        Args:
            overrides: Entries that add to or replace the built-in table
            default: Config returned for unregistered categories
        """
        table = dict(BUILTIN_CATEGORY_CONFIGS)
        for category, config in (overrides or {}).items():
            table[category.strip().lower()] = config
        self._table: Mapping[str, CategoryConfig] = MappingProxyType(table)
        self._default = default

    @classmethod
    def from_config(cls, app_config: AppConfig) -> "CategoryRegistry":
        """Build a registry with the ``categories`` entries of the app config."""
        overrides = {
            entry.category: CategoryConfig(GeoStrategy(entry.strategy), entry.limit)
            for entry in app_config.categories
        }
        return cls(overrides=overrides)

    @property
    def default(self) -> CategoryConfig:
        return self._default

    def resolve(self, category: str) -> CategoryConfig:
        """Return the config for ``category``, or the default if unregistered."""
        return self._table.get(category.strip().lower(), self._default)

    def is_registered(self, category: str) -> bool:
        return category.strip().lower() in self._table

    def categories(self) -> List[str]:
        """Registered category names, sorted."""
        return sorted(self._table)
