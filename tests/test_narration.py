"""Tests for the relevance-note narrator."""

import json
from types import SimpleNamespace
from unittest.mock import patch

import anthropic
import httpx
import pytest

from resource_matcher.config.environment import EnvironmentConfig
from resource_matcher.config.models import NarrationConfig
from resource_matcher.narration import (
    AnthropicNarrator,
    NarrationConfigurationError,
    NarrationContext,
    NarrationHTTPError,
    NarrationResponseError,
    NarrationTimeoutError,
    build_narrator,
)
from resource_matcher.narration.anthropic import build_prompt, extract_json_object
from tests.helpers import make_listing, make_profile


_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _reply(text):
    """Messages API reply with a single text block."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


@pytest.fixture
def narrator():
    n = AnthropicNarrator(api_key="test-key", model="test-model", timeout=5)
    yield n
    n.close()


@pytest.fixture
def listings():
    return [
        make_listing(
            "grant-austin-green-fund",
            city="Austin",
            state="TX",
            short_description="Small grants for emissions work.",
            details={"amount_max": 20000},
        ),
        make_listing("accel-impact", category="accelerator", is_nationwide=True),
    ]


@pytest.fixture
def context():
    return NarrationContext(
        profile=make_profile(
            location={"city": "Austin", "state": "TX"},
            cause_areas=["environment"],
            venture_type="business",
        ),
        business_name="Green Bikes",
    )


class TestExtractJsonObject:
    """Parsing the first JSON object out of a model reply."""

    def test_plain_object(self):
        assert extract_json_object('{"a": "note"}') == {"a": "note"}

    def test_code_fence(self):
        text = 'Here you go:\n```json\n{"a": "note"}\n```\nThanks'
        assert extract_json_object(text) == {"a": "note"}

    def test_surrounding_prose(self):
        """Prose before and after the object is ignored."""
        text = 'Sure! {"a": "first"} and also {"b": "second"}'
        assert extract_json_object(text) == {"a": "first"}

    def test_no_object(self):
        with pytest.raises(NarrationResponseError):
            extract_json_object("I cannot help with that.")

    def test_invalid_json(self):
        with pytest.raises(NarrationResponseError):
            extract_json_object('{"a": ')

    def test_array_rejected(self):
        """A fenced array is not an object of notes."""
        with pytest.raises(NarrationResponseError):
            extract_json_object('```json\n["a", "b"]\n```')


class TestBuildPrompt:
    def test_includes_profile_and_listings(self, listings, context):
        prompt = build_prompt(listings, context)

        assert "Business: Green Bikes" in prompt
        assert "Location: Austin, TX" in prompt
        assert "Cause areas: environment" in prompt
        assert '"id": "grant-austin-green-fund"' in prompt
        assert '"amount_max": 20000' in prompt
        assert '"kind"' not in prompt

    def test_empty_profile(self, listings):
        prompt = build_prompt(listings, NarrationContext(profile=make_profile()))
        assert "No profile details provided." in prompt


class TestAnthropicNarrator:
    """SDK calls and error mapping of the narrator."""

    def test_requires_api_key(self):
        with pytest.raises(NarrationConfigurationError):
            AnthropicNarrator(api_key="  ", model="m")

    def test_client_settings(self, narrator):
        """The SDK client carries the key and timeout and does not retry."""
        client = narrator._client
        assert client.api_key == "test-key"
        assert client.timeout == 5
        assert client.max_retries == 0

    def test_base_url_override(self):
        narrator = AnthropicNarrator(api_key="k", model="m", base_url="https://proxy.example/")
        try:
            assert narrator.base_url.startswith("https://proxy.example")
        finally:
            narrator.close()

    def test_annotate(self, narrator, listings, context):
        """Notes are parsed and keyed by listing id."""
        notes = {
            "grant-austin-green-fund": "Funds your emissions work. ",
            "accel-impact": "Equity-free support.",
        }
        with patch.object(
            narrator._client.messages, "create", return_value=_reply(json.dumps(notes))
        ) as create:
            result = narrator.annotate(listings, context)

        assert result == {
            "grant-austin-green-fund": "Funds your emissions work.",
            "accel-impact": "Equity-free support.",
        }
        _, kwargs = create.call_args
        assert kwargs["model"] == "test-model"
        assert kwargs["max_tokens"] == 2000
        assert kwargs["temperature"] == 0.7
        assert kwargs["messages"][0]["role"] == "user"
        assert "grant-austin-green-fund" in kwargs["messages"][0]["content"]

    def test_unknown_ids_and_bad_notes_ignored(self, narrator, listings, context):
        """Notes for ids that were not sent, or that are not strings, are dropped."""
        notes = {
            "grant-austin-green-fund": "Good fit.",
            "made-up-id": "Invented.",
            "accel-impact": 42,
        }
        with patch.object(narrator._client.messages, "create", return_value=_reply(json.dumps(notes))):
            result = narrator.annotate(listings, context)

        assert result == {"grant-austin-green-fund": "Good fit."}

    def test_no_listings_makes_no_request(self, narrator, context):
        with patch.object(narrator._client.messages, "create") as create:
            assert narrator.annotate([], context) == {}
        create.assert_not_called()

    def test_http_error(self, narrator, listings, context):
        error = anthropic.APIStatusError(
            "Overloaded",
            response=httpx.Response(529, request=_REQUEST),
            body=None,
        )
        with patch.object(narrator._client.messages, "create", side_effect=error):
            with pytest.raises(NarrationHTTPError) as exc_info:
                narrator.annotate(listings, context)

        assert exc_info.value.status_code == 529

    def test_timeout(self, narrator, listings, context):
        error = anthropic.APITimeoutError(request=_REQUEST)
        with patch.object(narrator._client.messages, "create", side_effect=error):
            with pytest.raises(NarrationTimeoutError):
                narrator.annotate(listings, context)

    def test_connection_error(self, narrator, listings, context):
        error = anthropic.APIConnectionError(message="refused", request=_REQUEST)
        with patch.object(narrator._client.messages, "create", side_effect=error):
            with pytest.raises(NarrationHTTPError) as exc_info:
                narrator.annotate(listings, context)

        assert exc_info.value.status_code == 0

    def test_unparseable_reply(self, narrator, listings, context):
        error = anthropic.APIResponseValidationError(
            response=httpx.Response(200, request=_REQUEST), body="not json"
        )
        with patch.object(narrator._client.messages, "create", side_effect=error):
            with pytest.raises(NarrationResponseError):
                narrator.annotate(listings, context)

    def test_reply_without_text(self, narrator, listings, context):
        reply = SimpleNamespace(content=[SimpleNamespace(type="tool_use", id="x")])
        with patch.object(narrator._client.messages, "create", return_value=reply):
            with pytest.raises(NarrationResponseError):
                narrator.annotate(listings, context)

    def test_reply_without_content(self, narrator, listings, context):
        with patch.object(narrator._client.messages, "create", return_value=SimpleNamespace()):
            with pytest.raises(NarrationResponseError):
                narrator.annotate(listings, context)


class TestBuildNarrator:
    """Narrator construction from configuration."""

    def test_disabled(self):
        env = EnvironmentConfig(anthropic_api_key="key")
        assert build_narrator(NarrationConfig(enabled=False), env) is None

    def test_enabled_without_key(self):
        assert build_narrator(NarrationConfig(enabled=True), EnvironmentConfig()) is None

    def test_enabled_with_key(self):
        config = NarrationConfig(enabled=True, model="m", max_tokens=500, temperature=0.2)
        narrator = build_narrator(config, EnvironmentConfig(anthropic_api_key="key"))

        assert isinstance(narrator, AnthropicNarrator)
        assert narrator.model == "m"
        assert narrator.max_tokens == 500
        assert narrator.temperature == 0.2
        narrator.close()
