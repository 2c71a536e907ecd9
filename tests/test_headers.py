"""
Unit tests for HeaderMap and header validation.
"""

import pytest

from raw_http_core.exceptions import InvalidArgumentError
from raw_http_core.headers import HeaderMap, validate_header_name, validate_header_values
from raw_http_core.utils import serialize_headers


class TestValidation:
    """Test header name and value validation."""
    
    @pytest.mark.parametrize("name", ["Content-Type", "x-custom_1", "ETag", "!#$%&'*+.^_`|~"])
    def test_valid_names(self, name) -> None:
        """Test RFC 7230 tokens are accepted."""
        assert validate_header_name(name) == name
    
    @pytest.mark.parametrize("name", ["", "Bad Name", "Colon:", "Tab\t", "Ünicode", 42])
    def test_invalid_names(self, name) -> None:
        """Test non-token names are rejected."""
        with pytest.raises(InvalidArgumentError):
            validate_header_name(name)
    
    def test_values_are_trimmed(self) -> None:
        """Test surrounding spaces and tabs are stripped."""
        assert validate_header_values(" text/html\t") == ("text/html",)
    
    def test_numbers_are_stringified(self) -> None:
        """Test numeric values are converted to strings."""
        assert validate_header_values([5, 1.5]) == ("5", "1.5")
    
    @pytest.mark.parametrize("values", [[], True, None, "a\r\nb", ["ok", "bad\n"], {"a": 1}])
    def test_invalid_values(self, values) -> None:
        """Test empty lists, booleans and control characters are rejected."""
        with pytest.raises(InvalidArgumentError):
            validate_header_values(values)


class TestHeaderMap:
    """Test HeaderMap behavior."""
    
    def test_case_insensitive_lookup(self, sample_headers) -> None:
        """Test lookups ignore case while iteration keeps original casing."""
        headers = HeaderMap(sample_headers)
        assert headers["content-type"] == ["application/json"]
        assert headers["ACCEPT"] == ["text/html", "*/*"]
        assert "authorization" in headers
        assert list(headers) == ["Content-Type", "Authorization", "Accept"]
    
    def test_construct_from_pairs_merges(self) -> None:
        """Test repeated names in pairs are merged under the first casing."""
        headers = HeaderMap([("Set-Cookie", "a=1"), ("set-cookie", "b=2")])
        assert list(headers) == ["Set-Cookie"]
        assert headers["Set-Cookie"] == ["a=1", "b=2"]
    
    def test_missing_header(self) -> None:
        """Test missing names raise KeyError and get() gives the default."""
        headers = HeaderMap()
        with pytest.raises(KeyError):
            headers["Host"]
        assert headers.get("Host", []) == []
        assert headers.get_line("Host") == ""
    
    def test_get_line(self, sample_headers) -> None:
        """Test values are joined with a comma."""
        assert HeaderMap(sample_headers).get_line("accept") == "text/html, */*"
    
    def test_with_header_replaces_and_takes_new_casing(self) -> None:
        """Test with_header replaces values and the stored name."""
        headers = HeaderMap({"content-type": "text/plain"})
        updated = headers.with_header("Content-Type", ["application/json"])
        
        assert list(updated) == ["Content-Type"]
        assert updated["content-type"] == ["application/json"]
        assert headers["content-type"] == ["text/plain"]
    
    def test_with_header_first(self) -> None:
        """Test with_header can move the header to the front."""
        headers = HeaderMap({"Accept": "*/*", "User-Agent": "test"})
        updated = headers.with_header("Host", "example.com", first=True)
        assert list(updated) == ["Host", "Accept", "User-Agent"]
    
    def test_with_header_same_value_returns_self(self) -> None:
        """Test replacing a header with identical data is a no-op."""
        headers = HeaderMap({"Accept": "*/*"})
        assert headers.with_header("Accept", "*/*") is headers
        assert headers.with_header("Accept", ["*/*"]) is headers
    
    def test_with_added_header_keeps_first_casing(self) -> None:
        """Test appending values keeps the name casing seen first."""
        headers = HeaderMap({"X-Trace": "a"})
        updated = headers.with_added_header("x-trace", ["b", "c"])
        assert list(updated) == ["X-Trace"]
        assert updated["X-Trace"] == ["a", "b", "c"]
        assert headers["X-Trace"] == ["a"]
    
    def test_without_header(self, sample_headers) -> None:
        """Test removing a header case-insensitively."""
        headers = HeaderMap(sample_headers)
        updated = headers.without_header("AUTHORIZATION")
        assert "Authorization" not in updated
        assert "Authorization" in headers
        assert updated.without_header("Missing") is updated
    
    def test_raw_items(self) -> None:
        """Test one pair per value, in order."""
        headers = HeaderMap({"A": ["1", "2"], "B": "3"})
        assert headers.raw_items() == [("A", "1"), ("A", "2"), ("B", "3")]
    
    def test_invalid_header_rejected(self) -> None:
        """Test invalid names and values fail on construction and mutation."""
        with pytest.raises(InvalidArgumentError):
            HeaderMap({"Bad Name": "x"})
        with pytest.raises(InvalidArgumentError):
            HeaderMap().with_header("X-Test", "line\r\nbreak")
        with pytest.raises(InvalidArgumentError):
            HeaderMap().with_added_header("X-Test", [])
    
    def test_hashable(self) -> None:
        """Test equal maps hash equally."""
        assert hash(HeaderMap({"A": "1"})) == hash(HeaderMap({"A": "1"}))
    
    def test_serialize(self) -> None:
        """Test wire serialization of a header map."""
        headers = HeaderMap({"Host": "example.com", "Accept": ["text/html", "*/*"]})
        assert serialize_headers(headers) == "Host: example.com\r\nAccept: text/html, */*\r\n"

    def test_serialized_headers_parse_back(self) -> None:
        """Test serialized lines split back into the same names and values."""
        headers = HeaderMap({
            "Host": "example.com",
            "Accept": ["text/html", "*/*"],
            "X-Trace": ["a", "b", "c"],
            "content-type": "text/plain; charset=utf-8",
        })
        pairs = []
        for line in serialize_headers(headers).split("\r\n"):
            if not line:
                continue
            name, _, value = line.partition(": ")
            pairs.extend((name, part) for part in value.split(", "))
        parsed = HeaderMap(pairs)
        
        assert [name.lower() for name in parsed] == [name.lower() for name in headers]
        for name in headers:
            assert parsed[name] == headers[name]
        assert parsed.raw_items() == headers.raw_items()
