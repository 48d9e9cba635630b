"""Utility functions for hashing and time handling."""

from .hashing import compute_profile_key, hash_string
from .timestamps import elapsed_ms, ensure_utc, format_timestamp, utc_now

__all__ = [
    # Hashing
    "hash_string",
    "compute_profile_key",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "format_timestamp",
    "elapsed_ms",
]
