"""Unit tests for URL and title helpers."""

from __future__ import annotations

import pytest

from link_preview.utils import first_url, host_of, resolve_url, titles_match, upgrade_to_https


class TestUrls:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("http://ex.com/a?b=1", "https://ex.com/a?b=1"),
            ("https://ex.com/a", "https://ex.com/a"),
            ("ftp://ex.com/a", "ftp://ex.com/a"),
        ],
    )
    def test_upgrade_to_https(self, url: str, expected: str) -> None:
        assert upgrade_to_https(url) == expected

    def test_host_of(self) -> None:
        assert host_of("https://WWW.Ex.com:8080/a") == "www.ex.com"
        assert host_of("not a url") == ""

    def test_resolve_url(self) -> None:
        """References resolve against the page and only web schemes survive."""
        assert resolve_url(" ../b.jpg ", "https://ex.com/a/c/") == "https://ex.com/a/b.jpg"
        assert resolve_url("javascript:void(0)", "https://ex.com/") is None
        assert resolve_url("data:image/gif;base64,R0", "https://ex.com/") is None
        assert resolve_url("", "https://ex.com/") is None

    def test_first_url(self) -> None:
        assert first_url("See [site](https://ex.com/a) now") == "https://ex.com/a"
        assert first_url("nothing here") is None


class TestTitles:
    def test_titles_match_ignores_case_and_accents(self) -> None:
        assert titles_match("Café   Menu", "cafe menu")

    def test_titles_differ(self) -> None:
        assert not titles_match("Cafe Menu", "Cafe Menus")
