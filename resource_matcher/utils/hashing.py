"""Deterministic keys for caching match responses.

A cached body echoes the request (``filters_applied``, location and cause
reasons), so the key is built from the profile exactly as echoed. Only the
requested categories are canonicalized, the same way the matcher does.
"""

import hashlib
import json
from typing import Iterable, List, Optional

from resource_matcher.domain.profile import UserProfile


def hash_string(value: str) -> str:
    """SHA256 hex digest (64 characters) of a string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _requested_categories(categories: Optional[Iterable[str]]) -> List[str]:
    # Order is kept: it decides the order of the response's category map
    seen: List[str] = []
    for category in categories or []:
        value = category.strip().lower() if category else ""
        if value and value not in seen:
            seen.append(value)
    return seen


def compute_profile_key(
    profile: UserProfile, categories: Optional[Iterable[str]] = None
) -> str:
    """Cache key for a (profile, requested categories) pair.

    Args:
        profile: Validated profile
        categories: Requested categories; None means the defaults

    Returns:
        Hexadecimal SHA256 digest
    """
    payload = {
        "profile": profile.echo(),
        "categories": _requested_categories(categories),
    }
    return hash_string(json.dumps(payload, sort_keys=True, separators=(",", ":")))
