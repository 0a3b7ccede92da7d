"""
Tests for cache key construction.
"""

import pytest

from service_tasks.app.cache.keys import (
    CacheKeyBuilder,
    canonicalize_query,
    canonicalize_url_for_cache,
    record_subject,
)
from shared.errors import MalformedInputError


class TestCanonicalizeUrl:
    """Test cases for URL canonicalization."""

    def test_parameter_order_does_not_matter(self):
        first = canonicalize_url_for_cache("https://example.com/tasks?page=2&per_page=5")
        second = canonicalize_url_for_cache("https://example.com/tasks?per_page=5&page=2")

        assert first == second == "/tasks?page=2&per_page=5"

    def test_scheme_and_host_are_dropped(self):
        assert canonicalize_url_for_cache("http://a.example:8080/tasks?x=1") == \
            canonicalize_url_for_cache("https://b.example/tasks?x=1")

    def test_no_query(self):
        assert canonicalize_url_for_cache("https://example.com/tasks") == "/tasks"
        assert canonicalize_url_for_cache("https://example.com/tasks?") == "/tasks"

    def test_empty_path_becomes_root(self):
        assert canonicalize_url_for_cache("https://example.com") == "/"

    def test_repeated_names_sorted_by_value(self):
        assert canonicalize_url_for_cache("https://example.com/tasks?tag=b&tag=a") == "/tasks?tag=a&tag=b"

    def test_blank_values_kept(self):
        assert canonicalize_url_for_cache("https://example.com/tasks?search=&page=1") == "/tasks?page=1&search="

    def test_query_is_reencoded(self):
        assert canonicalize_url_for_cache("https://example.com/tasks?search=foo%20bar") == "/tasks?search=foo+bar"

    def test_fragment_ignored(self):
        assert canonicalize_url_for_cache("https://example.com/tasks?page=1#top") == "/tasks?page=1"

    @pytest.mark.parametrize("url", [
        "/tasks?page=1",
        "not a url",
        "",
        "   ",
        None,
        42,
        "https://example.com:notaport/tasks",
        "http://[::1/tasks",
    ])
    def test_malformed_url_rejected(self, url):
        with pytest.raises(MalformedInputError):
            canonicalize_url_for_cache(url)

    def test_canonicalize_query_sorts_by_code_point(self):
        assert canonicalize_query("b=1&B=2&a=3") == "B=2&a=3&b=1"

    @pytest.mark.parametrize("query", ["b=2&a=1&a=0", "q=a+b&x=", "z=%2F&y=%C3%A9", ""])
    def test_canonicalize_query_is_idempotent(self, query):
        once = canonicalize_query(query)

        assert canonicalize_query(once) == once


class TestRecordSubject:
    """Test cases for record identifiers."""

    def test_int_and_str_give_same_subject(self):
        assert record_subject(42) == record_subject("42") == "42"

    @pytest.mark.parametrize("record_id", [None, "", "  ", True, 1.5, ["1"]])
    def test_invalid_identifier_rejected(self, record_id):
        with pytest.raises(MalformedInputError):
            record_subject(record_id)


class TestCacheKeyBuilder:
    """Test cases for CacheKeyBuilder."""

    def test_list_key_layout(self):
        builder = CacheKeyBuilder()

        key = builder.list_key("v1", "https://example.com/tasks?per_page=5&page=2")

        assert key == "tasks:cache:v1:list:/tasks?page=2&per_page=5"

    def test_read_key_layout(self):
        builder = CacheKeyBuilder()

        assert builder.read_key("v1", 7) == "tasks:cache:v1:read:7"

    def test_version_changes_key(self):
        builder = CacheKeyBuilder()

        assert builder.read_key("v1", 7) != builder.read_key("v2", 7)

    def test_list_and_read_do_not_collide(self):
        builder = CacheKeyBuilder()

        assert builder.compose("v1", "list", "7") != builder.compose("v1", "read", "7")

    def test_custom_namespace(self):
        builder = CacheKeyBuilder("other")

        assert builder.read_key("v1", 1) == "other:v1:read:1"
        assert builder.version_key == "other:version"

    def test_malformed_input_propagates(self):
        with pytest.raises(MalformedInputError):
            CacheKeyBuilder().list_key("v1", "/relative")
