"""Unit tests for hashing utilities."""

from resource_matcher.utils.hashing import compute_profile_key, hash_string
from tests.helpers import make_profile


class TestHashString:
    def test_sha256_hex(self):
        digest = hash_string("resource-matcher")
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)

    def test_known_value(self):
        assert hash_string("") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )


class TestComputeProfileKey:
    """Cache keys for (profile, categories) pairs."""

    def test_deterministic(self):
        profile = make_profile(cause_areas=["environment"])
        assert compute_profile_key(profile, ["grant"]) == compute_profile_key(profile, ["grant"])

    def test_equivalent_echo_shares_key(self):
        """Whitespace and duplicate tags are already dropped from the echoed profile."""
        first = make_profile(location={"city": "Austin", "state": "TX"}, cause_areas=["health"])
        second = make_profile(
            location={"city": " Austin ", "state": "TX"}, cause_areas=["health", " health"]
        )

        assert compute_profile_key(first, ["grant"]) == compute_profile_key(second, [" Grant"])

    def test_case_changes_key(self):
        """Responses echo the caller's spelling, so case is part of the key."""
        first = make_profile(location={"city": "Austin", "state": "TX"}, cause_areas=["arts"])
        second = make_profile(location={"city": "AUSTIN", "state": "tx"}, cause_areas=["Arts"])

        assert compute_profile_key(first) != compute_profile_key(second)

    def test_cause_order_changes_key(self):
        first = make_profile(cause_areas=["health", "education"])
        second = make_profile(cause_areas=["education", "health"])

        assert compute_profile_key(first) != compute_profile_key(second)

    def test_category_order_changes_key(self):
        """Category order decides the order of the response's category map."""
        profile = make_profile()
        assert compute_profile_key(profile, ["grant", "sba"]) != compute_profile_key(
            profile, ["sba", "grant"]
        )
        assert compute_profile_key(profile, ["grant", "GRANT"]) == compute_profile_key(
            profile, ["grant"]
        )

    def test_different_profiles_differ(self):
        base = make_profile(budget_level="low")
        other = make_profile(budget_level="high")
        assert compute_profile_key(base) != compute_profile_key(other)

    def test_categories_change_key(self):
        profile = make_profile()
        assert compute_profile_key(profile, ["grant"]) != compute_profile_key(profile, ["sba"])
        assert compute_profile_key(profile, None) == compute_profile_key(profile, [])
