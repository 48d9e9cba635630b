"""Matching engine: registry, scorer and per-category orchestration."""

from .assembler import GENERIC_RELEVANCE_NOTE, ResponseAssembler, display_fields
from .engine import ResourceMatcher, normalize_categories
from .exceptions import MatchCancelledError
from .models import CategoryRunStats, MatchRunResult, ScoredListing
from .registry import (
    BUILTIN_CATEGORY_CONFIGS,
    DEFAULT_CATEGORY_CONFIG,
    CategoryConfig,
    CategoryRegistry,
)
from .scorer import MAX_REASONS, SCORING_RULES, ScoreDelta, Scorer, ScoringRule, score
from .utils import (
    city_slug,
    format_amount_range,
    format_matches_for_prompt,
    format_price_range,
    humanize_cause,
)

__all__ = [
    "ResponseAssembler",
    "GENERIC_RELEVANCE_NOTE",
    "display_fields",
    "ResourceMatcher",
    "normalize_categories",
    "MatchCancelledError",
    "ScoredListing",
    "CategoryRunStats",
    "MatchRunResult",
    "CategoryConfig",
    "CategoryRegistry",
    "BUILTIN_CATEGORY_CONFIGS",
    "DEFAULT_CATEGORY_CONFIG",
    "Scorer",
    "ScoringRule",
    "ScoreDelta",
    "SCORING_RULES",
    "MAX_REASONS",
    "score",
    "format_matches_for_prompt",
    "format_amount_range",
    "format_price_range",
    "humanize_cause",
    "city_slug",
]
