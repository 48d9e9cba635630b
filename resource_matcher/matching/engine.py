"""Match orchestration: fetch, score, rank and fall back, one task per category.

For every requested category the engine:
1. Resolves the category's strategy and limit from the registry
2. Fetches candidates through the gateway under that strategy
3. Scores candidates and keeps those scoring above zero
4. Sorts (score desc, featured first, listing id) and truncates to the limit
5. If nothing is left, runs a fallback pass over nationwide/remote/featured
   listings of the category, ranked the same way

Category passes run concurrently on a thread pool and are joined before the
result is assembled. A failed category query costs only that category; an
unreachable catalog or a cancellation fails the whole match.
"""

import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

from resource_matcher.config.models import DEFAULT_MATCH_CATEGORIES, AppConfig
from resource_matcher.domain.models import ResourceListing
from resource_matcher.domain.profile import UserProfile
from resource_matcher.gateway.base import ListingQueryGateway
from resource_matcher.gateway.exceptions import CatalogUnavailableError, CategoryQueryError
from resource_matcher.logging import get_logger
from resource_matcher.logging.context import bind_log_context, log_context
from resource_matcher.utils.timestamps import elapsed_ms, utc_now

from .exceptions import MatchCancelledError
from .models import CategoryRunStats, MatchRunResult, ScoredListing
from .registry import CategoryConfig, CategoryRegistry
from .scorer import Scorer

logger = get_logger(__name__, component="matching")

# How often the joining thread re-checks cancellation while waiting
_POLL_INTERVAL_SECONDS = 0.05


def normalize_categories(categories: Optional[Iterable[str]]) -> List[str]:
    """Strip, lower-case and de-duplicate category names, keeping order."""
    normalized: List[str] = []
    for category in categories or []:
        value = category.strip().lower()
        if value and value not in normalized:
            normalized.append(value)
    return normalized


class ResourceMatcher:
    """Ranks catalog listings for a profile, per category.

    Stateless across calls: one instance serves concurrent requests.
    """

    def __init__(
        self,
        gateway: ListingQueryGateway,
        registry: Optional[CategoryRegistry] = None,
        scorer: Optional[Scorer] = None,
        default_categories: Sequence[str] = DEFAULT_MATCH_CATEGORIES,
        max_workers: int = 4,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize the matcher.

        Args:
            gateway: Read-only access to the catalog
            registry: Category strategy/limit lookup (built-in table if omitted)
            scorer: Listing scorer (default rule set if omitted)
            default_categories: Categories matched when a request names none
            max_workers: Upper bound on concurrently running category passes
            timeout_seconds: Default deadline for a whole match; None = no deadline
        """
        self.gateway = gateway
        self.registry = registry or CategoryRegistry()
        self.scorer = scorer or Scorer()
        self.default_categories = normalize_categories(default_categories)
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, app_config: AppConfig, gateway: ListingQueryGateway) -> "ResourceMatcher":
        matching = app_config.matching
        return cls(
            gateway=gateway,
            registry=CategoryRegistry.from_config(app_config),
            default_categories=matching.default_categories,
            max_workers=matching.max_workers,
            timeout_seconds=matching.timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def score_all(
        self, listings: Iterable[ResourceListing], profile: UserProfile
    ) -> List[ScoredListing]:
        scored = []
        for listing in listings:
            points, reasons = self.scorer.score(listing, profile)
            scored.append(ScoredListing(listing=listing, match_score=points, match_reasons=reasons))
        return scored

    @staticmethod
    def rank(scored: Iterable[ScoredListing], limit: int) -> List[ScoredListing]:
        """Sort by score desc, featured first, listing id; keep the top ``limit``."""
        return sorted(scored, key=ScoredListing.sort_key)[:limit]

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def match(
        self,
        profile: UserProfile,
        categories: Optional[Iterable[str]] = None,
        cancel_event: Optional[threading.Event] = None,
        timeout_seconds: Optional[float] = None,
    ) -> MatchRunResult:
        """Match a profile against the requested categories.

        Args:
            profile: Validated user profile
            categories: Categories to match (defaults when empty or None)
            cancel_event: Set by the caller to abandon the match
            timeout_seconds: Deadline override for this call

        Returns:
            MatchRunResult whose ``matches`` omits categories with no results

        Raises:
            CatalogUnavailableError: If the catalog cannot be reached
            MatchCancelledError: If cancelled or past the deadline
        """
        run_id = uuid4().hex
        run_started_at = utc_now()
        requested = normalize_categories(categories) or list(self.default_categories)
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds

        with log_context(run_id=run_id):
            logger.info(
                f"Match run started for {len(requested)} categories",
                extra={
                    "event": "match.run.started",
                    "categories": requested,
                    "has_location": profile.location is not None,
                    "cause_area_count": len(profile.cause_areas),
                },
            )

            self.gateway.check_available()

            outcomes = self._run_categories(requested, profile, run_id, cancel_event, timeout)

            matches: Dict[str, List[ScoredListing]] = {}
            category_stats: List[CategoryRunStats] = []
            for category in requested:
                ranked, stats = outcomes[category]
                category_stats.append(stats)
                if ranked:
                    matches[category] = ranked

            result = MatchRunResult(
                run_id=run_id,
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                matches=matches,
                category_stats=category_stats,
            )

            logger.info(
                "Match run completed",
                extra={
                    "event": "match.run.completed",
                    "duration_ms": int(result.total_duration_seconds * 1000),
                    "total_returned": result.total_returned,
                    "omitted_categories": result.omitted_categories,
                    "had_errors": result.had_errors,
                },
            )
            return result

    def _run_categories(
        self,
        categories: List[str],
        profile: UserProfile,
        run_id: str,
        cancel_event: Optional[threading.Event],
        timeout: Optional[float],
    ) -> Dict[str, Tuple[List[ScoredListing], CategoryRunStats]]:
        """Run one pass per category on a thread pool and join them all."""
        stop_event = threading.Event()
        deadline = time.monotonic() + timeout if timeout else None
        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self.max_workers, len(categories))),
            thread_name_prefix="match",
        )
        futures: Dict[Future, str] = {}

        try:
            for category in categories:
                task = bind_log_context(self._run_category)
                futures[executor.submit(task, category, profile, stop_event)] = category

            pending = set(futures)
            while pending:
                reason = self._stop_reason(cancel_event, deadline)
                if reason:
                    stop_event.set()
                    logger.warning(
                        f"Match run {reason}",
                        extra={"event": "match.run.cancelled", "reason": reason},
                    )
                    raise MatchCancelledError(f"Match {reason}", run_id=run_id)

                done, pending = wait(
                    pending, timeout=_POLL_INTERVAL_SECONDS, return_when=FIRST_EXCEPTION
                )
                for future in done:
                    error = future.exception()
                    if error is not None:
                        stop_event.set()
                        raise error

            return {futures[future]: future.result() for future in futures}

        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _stop_reason(
        cancel_event: Optional[threading.Event], deadline: Optional[float]
    ) -> Optional[str]:
        if cancel_event is not None and cancel_event.is_set():
            return "cancelled"
        if deadline is not None and time.monotonic() >= deadline:
            return "timed out"
        return None

    def _run_category(
        self, category: str, profile: UserProfile, stop_event: threading.Event
    ) -> Tuple[List[ScoredListing], CategoryRunStats]:
        """Primary pass plus fallback for one category.

        Query failures are recorded on the stats and yield an empty list.
        CatalogUnavailableError and MatchCancelledError propagate.
        """
        start = time.time()
        config: CategoryConfig = self.registry.resolve(category)
        stats = CategoryRunStats(
            category=category, strategy=config.strategy.value, limit=config.limit
        )

        with log_context(category=category):
            logger.debug(
                f"Category pass started: {category}",
                extra={
                    "event": "category.run.started",
                    "strategy": config.strategy.value,
                    "limit": config.limit,
                    "registered": self.registry.is_registered(category),
                },
            )

            try:
                self._check_stop(stop_event)
                candidates = self.gateway.fetch(category, config.strategy, profile)
                stats.candidates = len(candidates)

                scored = [s for s in self.score_all(candidates, profile) if s.match_score > 0]
                stats.scored = len(scored)
                ranked = self.rank(scored, config.limit)

                if not ranked:
                    self._check_stop(stop_event)
                    ranked = self._fallback(category, config, profile, ranked)
                    stats.used_fallback = bool(ranked)

                stats.returned = len(ranked)
                return ranked, stats

            except (CatalogUnavailableError, MatchCancelledError):
                raise

            except CategoryQueryError as e:
                stats.error = str(e)
                logger.error(
                    f"Query failed for category {category}: {e}",
                    extra={
                        "event": "category.query.failed",
                        "error_type": type(e).__name__,
                        "error": str(e),
                        "strategy": e.strategy,
                    },
                )
                return [], stats

            except Exception as e:
                # Unexpected error in this category only
                stats.error = str(e)
                logger.error(
                    f"Unexpected error matching category {category}: {e}",
                    extra={
                        "event": "category.query.failed",
                        "error_type": type(e).__name__,
                        "error": str(e),
                    },
                    exc_info=True,
                )
                return [], stats

            finally:
                stats.duration_seconds = time.time() - start
                logger.debug(
                    f"Category pass completed: {category}",
                    extra={
                        "event": "category.run.completed",
                        "duration_ms": elapsed_ms(start),
                        "candidates": stats.candidates,
                        "scored": stats.scored,
                        "returned": stats.returned,
                        "used_fallback": stats.used_fallback,
                    },
                )

    def _fallback(
        self,
        category: str,
        config: CategoryConfig,
        profile: UserProfile,
        primary_results: List[ScoredListing],
    ) -> List[ScoredListing]:
        """Geography-relaxed second pass over nationwide/remote/featured listings.

        Only emitted primary results are excluded; zero-scoring primary
        candidates stay eligible.
        """
        exclude_ids = [item.id for item in primary_results]
        logger.debug(
            f"Running fallback pass for {category}",
            extra={"event": "category.fallback.started", "excluded": len(exclude_ids)},
        )

        listings = self.gateway.query_fallback(category, exclude_ids)
        return self.rank(self.score_all(listings, profile), config.limit)

    @staticmethod
    def _check_stop(stop_event: threading.Event) -> None:
        if stop_event.is_set():
            raise MatchCancelledError("Match cancelled")
