"""Relevance notes from the Anthropic Messages API.

The narrator sends the matched listings and a summary of the profile, asks
for a JSON object mapping listing ids to 1-2 sentence notes, and extracts the
first JSON object from the reply (code fences and surrounding prose are
tolerated).
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

import anthropic

from resource_matcher.config.environment import EnvironmentConfig
from resource_matcher.config.models import NarrationConfig
from resource_matcher.domain.models import ResourceListing
from resource_matcher.logging import get_logger

from .base import NarrationContext, Narrator
from .exceptions import (
    NarrationConfigurationError,
    NarrationHTTPError,
    NarrationResponseError,
    NarrationTimeoutError,
)

logger = get_logger(__name__, component="narration")

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

PROMPT_TEMPLATE = """You are helping an entrepreneur understand how business resources can help their specific venture.

ENTREPRENEUR:
{profile_block}

MATCHED RESOURCES:
{resources_json}

For each resource, write a 1-2 sentence relevance note explaining WHY this specific resource is useful for this entrepreneur. Be concrete.

Return a JSON object with resource IDs as keys and relevance notes as values:
{{
  "resource-id-1": "relevance note here",
  "resource-id-2": "relevance note here"
}}"""


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the first JSON object found in a model reply.

    Args:
        text: Raw reply text

    Returns:
        Decoded object

    Raises:
        NarrationResponseError: If no JSON object can be decoded
    """
    candidate = text.strip()
    fenced = _CODE_FENCE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()

    start = candidate.find("{")
    if start == -1:
        raise NarrationResponseError("Reply does not contain a JSON object")

    try:
        value, _ = json.JSONDecoder().raw_decode(candidate[start:])
    except json.JSONDecodeError as e:
        raise NarrationResponseError(f"Reply is not valid JSON: {e}") from e

    if not isinstance(value, dict):
        raise NarrationResponseError(f"Expected a JSON object, got {type(value).__name__}")
    return value


def _describe_profile(context: NarrationContext) -> str:
    profile = context.profile
    lines = []
    if context.business_name:
        lines.append(f"Business: {context.business_name}")
    if context.business_summary:
        lines.append(f"Summary: {context.business_summary}")
    if profile.location:
        lines.append(f"Location: {profile.location.city}, {profile.location.state}")
    if profile.cause_areas:
        lines.append(f"Cause areas: {', '.join(profile.cause_areas)}")
    if profile.venture_type:
        lines.append(f"Venture type: {profile.venture_type}")
    if profile.budget_level:
        lines.append(f"Budget: {profile.budget_level}")
    if profile.commitment_level:
        lines.append(f"Commitment: {profile.commitment_level}")
    return "\n".join(lines) or "No profile details provided."


def build_prompt(listings: Sequence[ResourceListing], context: NarrationContext) -> str:
    """Prompt asking for one note per listing id."""
    resources: List[Dict[str, Any]] = []
    for listing in listings:
        details = listing.details.model_dump(mode="json", exclude_none=True)
        details.pop("kind", None)
        resources.append(
            {
                "id": listing.id,
                "name": listing.name,
                "category": listing.category,
                "description": listing.short_description or "",
                "city": listing.city,
                "state": listing.state,
                "isNationwide": listing.is_nationwide,
                "details": details,
            }
        )

    return PROMPT_TEMPLATE.format(
        profile_block=_describe_profile(context),
        resources_json=json.dumps(resources, indent=2),
    )


class AnthropicNarrator(Narrator):
    """Narrator backed by the Anthropic Messages API (``anthropic`` SDK).

    Attributes:
        model: Model name sent with every request
        max_tokens: Reply token budget
        temperature: Sampling temperature
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        timeout: int = 30,
        user_agent: str = "ResourceMatcher/1.0",
    ) -> None:
        """Initialize the narrator.

        Raises:
            NarrationConfigurationError: If the API key is missing
        """
        if not api_key or not api_key.strip():
            raise NarrationConfigurationError("An Anthropic API key is required for narration")

        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

        # Narration is best effort; a failed call falls back to stored descriptions
        self._client = anthropic.Anthropic(
            api_key=api_key.strip(),
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            default_headers={"User-Agent": user_agent},
        )

    @classmethod
    def from_config(
        cls, narration_config: NarrationConfig, env_config: EnvironmentConfig
    ) -> "AnthropicNarrator":
        return cls(
            api_key=env_config.anthropic_api_key or "",
            model=narration_config.model,
            base_url=narration_config.base_url,
            max_tokens=narration_config.max_tokens,
            temperature=narration_config.temperature,
            timeout=narration_config.timeout_seconds,
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    def annotate(
        self, listings: Sequence[ResourceListing], context: NarrationContext
    ) -> Dict[str, str]:
        if not listings:
            return {}

        message = self._create_message(build_prompt(listings, context))
        raw_notes = extract_json_object(self._reply_text(message))

        known_ids = {listing.id for listing in listings}
        notes = {
            listing_id: note.strip()
            for listing_id, note in raw_notes.items()
            if listing_id in known_ids and isinstance(note, str) and note.strip()
        }

        logger.info(
            f"Generated {len(notes)} relevance notes for {len(listings)} listings",
            extra={
                "event": "narration.completed",
                "requested": len(listings),
                "returned": len(notes),
                "ignored": len(raw_notes) - len(notes),
            },
        )
        return notes

    @staticmethod
    def _reply_text(message: Any) -> str:
        """Concatenate the text blocks of a Messages API reply."""
        blocks = getattr(message, "content", None)
        if not isinstance(blocks, list):
            raise NarrationResponseError("Unexpected reply shape: missing 'content' list")

        text = "".join(
            getattr(block, "text", "") or ""
            for block in blocks
            if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise NarrationResponseError("Reply contains no text")
        return text

    def _create_message(self, prompt: str) -> Any:
        """Send one user message, mapping SDK errors onto narration errors.

        Raises:
            NarrationHTTPError: On an error status or connection failure
            NarrationTimeoutError: On request timeout
            NarrationResponseError: On a reply the SDK cannot parse
        """
        url = self.base_url
        logger.debug(
            f"Requesting relevance notes from {url}",
            extra={"event": "narration.request", "model": self.model, "timeout": self.timeout},
        )

        try:
            return self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}],
            )

        except anthropic.APITimeoutError as e:
            logger.warning(
                f"Narration request timed out after {self.timeout} seconds",
                extra={"event": "narration.failed", "error_type": "Timeout"},
            )
            raise NarrationTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds", url=url
            ) from e
        except anthropic.APIConnectionError as e:
            logger.error(
                f"Narration request failed: {e}",
                extra={"event": "narration.failed", "error_type": type(e).__name__},
            )
            raise NarrationHTTPError(
                f"Request to {url} failed: {e}", status_code=0, url=url
            ) from e
        except anthropic.APIStatusError as e:
            is_retryable = e.status_code >= 500 or e.status_code == 429
            log_level = logging.WARNING if is_retryable else logging.ERROR
            logger.log(
                log_level,
                f"HTTP {e.status_code} error from narration API",
                extra={
                    "event": "narration.failed",
                    "status_code": e.status_code,
                    "retryable": is_retryable,
                },
            )
            raise NarrationHTTPError(
                f"HTTP {e.status_code}: {e.message}", status_code=e.status_code, url=url
            ) from e
        except anthropic.APIResponseValidationError as e:
            raise NarrationResponseError(f"Failed to parse reply from {url}: {e}") from e

    def close(self) -> None:
        self._client.close()


def build_narrator(
    narration_config: NarrationConfig, env_config: EnvironmentConfig
) -> Optional[Narrator]:
    """Narrator for the app, or None when narration is disabled or unconfigured."""
    if not narration_config.enabled:
        return None
    if not env_config.anthropic_api_key:
        logger.warning(
            "Narration enabled but ANTHROPIC_API_KEY is not set; narration disabled",
            extra={"event": "narration.disabled", "reason": "missing_api_key"},
        )
        return None
    return AnthropicNarrator.from_config(narration_config, env_config)
