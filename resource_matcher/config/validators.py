"""Non-fatal configuration checks."""

import os
import warnings
from typing import Any, Dict, List

KNOWN_SECTIONS = {"matching", "categories", "narration", "api", "logging"}


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """Look for settings that are valid but probably not what was intended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    for key in sorted(set(config_dict) - KNOWN_SECTIONS):
        warning_messages.append(f"Unknown configuration section '{key}' will be ignored")

    narration = config_dict.get("narration", {})
    if isinstance(narration, dict) and narration.get("enabled") and not os.getenv("ANTHROPIC_API_KEY"):
        warning_messages.append(
            "narration.enabled is true but ANTHROPIC_API_KEY is not set; "
            "stored descriptions will be used instead"
        )

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        max_workers = matching.get("max_workers")
        categories = matching.get("default_categories") or []
        if isinstance(max_workers, int) and isinstance(categories, list):
            if 0 < max_workers < len(categories):
                warning_messages.append(
                    f"max_workers ({max_workers}) is lower than the number of default "
                    f"categories ({len(categories)}); some categories will run sequentially"
                )

    categories = config_dict.get("categories", [])
    if isinstance(categories, list):
        for entry in categories:
            if isinstance(entry, dict) and isinstance(entry.get("limit"), int) and entry["limit"] > 10:
                warning_messages.append(
                    f"Large limit ({entry['limit']}) for category '{entry.get('category')}' "
                    "makes prompts and responses long"
                )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages through Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
