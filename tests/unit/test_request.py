"""
Unit tests for the HTTP request model.
"""

from datetime import datetime, timezone

import pytest

from bundler.http.request import HTTPRequest


class TestFromTarget:
    """Tests for HTTPRequest.from_target."""

    def test_path_and_query(self):
        """Test that the target is split into path and query."""
        request = HTTPRequest.from_target("get", "/bundle.js?v=abc&culture=fr")

        assert request.method == "GET"
        assert request.path == "/bundle.js"
        assert request.get_query("v") == "abc"
        assert request.get_query("culture") == "fr"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"

    def test_percent_decoding(self):
        """Test that the path is percent-decoded."""
        request = HTTPRequest.from_target("GET", "/my%20bundle.js")

        assert request.path == "/my bundle.js"

    def test_blank_query_values_kept(self):
        request = HTTPRequest.from_target("GET", "/a.js?v=")

        assert request.query_params == {"v": [""]}

    def test_headers_case_insensitive(self):
        """Test that header names are normalised to lower case."""
        request = HTTPRequest.from_target("GET", "/", {"User-Agent": "pytest", "ETag-Thing": "x"})

        assert request.get_header("user-agent") == "pytest"
        assert request.get_header("USER-AGENT") == "pytest"
        assert request.user_agent == "pytest"


class TestConditionalHeaders:
    """Tests for validator parsing."""

    def test_if_none_match_absent(self):
        assert HTTPRequest.from_target("GET", "/").if_none_match is None

    def test_if_none_match_list(self):
        """Test parsing of a comma separated entity-tag list."""
        request = HTTPRequest.from_target("GET", "/", {"If-None-Match": '"abc", W/"def" , "g,h"'})

        assert request.if_none_match == ['"abc"', 'W/"def"', '"g,h"']

    def test_if_none_match_star(self):
        request = HTTPRequest.from_target("GET", "/", {"If-None-Match": "*"})

        assert request.if_none_match == ["*"]

    def test_if_modified_since(self):
        """Test HTTP-date parsing into an aware datetime."""
        request = HTTPRequest.from_target("GET", "/", {"If-Modified-Since": "Wed, 21 Oct 2015 07:28:00 GMT"})

        assert request.if_modified_since == datetime(2015, 10, 21, 7, 28, tzinfo=timezone.utc)

    def test_invalid_if_modified_since_ignored(self):
        request = HTTPRequest.from_target("GET", "/", {"If-Modified-Since": "yesterday"})

        assert request.if_modified_since is None


class TestAcceptLanguage:
    """Tests for Accept-Language ordering."""

    def test_ordered_by_quality(self):
        request = HTTPRequest.from_target("GET", "/", {"Accept-Language": "en;q=0.5, fr-CA, de;q=0.8"})

        assert request.accept_language == ["fr-CA", "de", "en"]

    def test_equal_weights_keep_header_order(self):
        request = HTTPRequest.from_target("GET", "/", {"Accept-Language": "de, fr"})

        assert request.accept_language == ["de", "fr"]

    def test_wildcard_and_zero_dropped(self):
        request = HTTPRequest.from_target("GET", "/", {"Accept-Language": "*, it;q=0, es"})

        assert request.accept_language == ["es"]

    @pytest.mark.parametrize("header", ["", "   ", ";q=1"])
    def test_empty(self, header):
        request = HTTPRequest.from_target("GET", "/", {"Accept-Language": header})

        assert request.accept_language == []
