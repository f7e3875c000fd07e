"""
Unit Tests for the Cache Key Codec

Tests scalar joining, escaping and order-independent fingerprints.
"""

from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from modernfinance.infrastructure.cache.cache_manager import CacheManager
from modernfinance.infrastructure.cache.key_codec import fingerprint, generate_key


class Query(BaseModel):
    symbol: str
    metrics: list[str]


@dataclass
class Window:
    start: int
    end: int


@pytest.mark.unit
class TestScalarParts:
    def test_joins_scalars_with_colons(self):
        assert generate_key("user", "123", "profile") == "user:123:profile"

    def test_non_string_scalars(self):
        assert generate_key("page", 2, 1.5, True, None) == "page:2:1.5:True:None"

    def test_empty_input(self):
        assert generate_key() == ""

    def test_separator_in_scalar_is_escaped(self):
        forged = generate_key("a:b", "c")
        honest = generate_key("a", "b", "c")

        assert forged == "a\\:b:c"
        assert forged != honest

    def test_backslash_is_escaped(self):
        assert generate_key("a\\", ":b") != generate_key("a", "\\:b")

    def test_static_method_matches_function(self):
        assert CacheManager.generate_key("perspective", "risk", "AAPL") == "perspective:risk:AAPL"


@pytest.mark.unit
class TestStructuredParts:
    def test_key_order_does_not_matter(self):
        assert generate_key("cache", {"b": 2, "a": 1}) == generate_key("cache", {"a": 1, "b": 2})

    def test_nested_key_order_does_not_matter(self):
        left = {"outer": {"y": [1, 2], "x": {"q": 1, "p": 2}}, "z": 0}
        right = {"z": 0, "outer": {"x": {"p": 2, "q": 1}, "y": [1, 2]}}

        assert fingerprint(left) == fingerprint(right)

    def test_different_values_differ(self):
        assert generate_key("cache", {"a": 1}) != generate_key("cache", {"a": 2})

    def test_list_order_matters(self):
        assert fingerprint([1, 2]) != fingerprint([2, 1])

    def test_fingerprint_is_md5_hex(self):
        key = generate_key("cache", {"a": 1})
        prefix, digest = key.split(":")

        assert prefix == "cache"
        assert len(digest) == 32
        assert all(c in "0123456789abcdef" for c in digest)

    def test_pydantic_models_and_dataclasses(self):
        assert generate_key(Query(symbol="AAPL", metrics=["pe"])) == generate_key(
            {"metrics": ["pe"], "symbol": "AAPL"}
        )
        assert generate_key(Window(1, 2)) == generate_key({"end": 2, "start": 1})

    def test_nested_dataclasses_sort_keys(self):
        assert fingerprint({"range": Window(1, 2), "tags": [Window(3, 4)]}) == fingerprint(
            {"tags": [{"start": 3, "end": 4}], "range": {"end": 2, "start": 1}}
        )

    def test_sets_are_order_independent(self):
        assert fingerprint({"tags": {"b", "a", "c"}}) == fingerprint({"tags": {"c", "a", "b"}})

    def test_unencodable_values_do_not_raise(self):
        assert len(fingerprint({"callback": object()})) == 32
