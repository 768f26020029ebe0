"""Tests for kima.http.headers — immutable, case-insensitive Headers."""

import pytest

from kima.http.headers import Headers


def _h(*pairs: tuple[str, str]) -> Headers:
    """Shorthand: build Headers from string pairs."""
    raw = tuple((k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs)
    return Headers(raw)


class TestHeaders:
    def test_case_insensitive(self) -> None:
        h = _h(("X-Module", "shop"))
        assert h["x-module"] == "shop"
        assert h["X-MODULE"] == "shop"
        assert "x-module" in h

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            _h()["X-Missing"]

    def test_get_default(self) -> None:
        assert _h().get("host") is None

    def test_repeated_headers(self) -> None:
        h = _h(("Cookie", "a=1"), ("cookie", "b=2"))
        assert h["cookie"] == "a=1"
        assert h.get_list("Cookie") == ["a=1", "b=2"]
        assert len(h) == 1

    def test_from_dict(self) -> None:
        h = Headers.from_dict({"Host": "example.com"})
        assert h["host"] == "example.com"
        assert list(h) == ["host"]
