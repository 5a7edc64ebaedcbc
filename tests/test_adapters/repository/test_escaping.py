"""Tests for URL to mirror directory escaping."""

from __future__ import annotations

import pytest

from gitmirror.adapters.repository.escaping import SAFE_CHARS, escape_url, unescape_name


class TestEscapeUrl:
    """Tests for escape_url."""

    def test_https_url(self):
        """Should percent-encode separators, colon and dots."""
        assert escape_url("https://example.com/repo.git") == "https%3A%2F%2Fexample%2Ecom%2Frepo%2Egit"

    def test_keeps_dash_and_underscore(self):
        """Should keep '-' and '_' literally."""
        assert escape_url("my-repo_name") == "my-repo_name"

    def test_space_becomes_plus(self):
        """Should encode a space as '+'."""
        assert escape_url("a b") == "a+b"

    def test_plus_is_encoded(self):
        """A literal '+' must not collide with an encoded space."""
        assert escape_url("a+b") == "a%2Bb"
        assert escape_url("a+b") != escape_url("a b")

    def test_non_ascii_uses_utf8_bytes(self):
        """Should encode each UTF-8 byte of non-ASCII characters."""
        assert escape_url("é") == "%C3%A9"

    def test_ssh_url(self):
        """Should escape '@' and ':' in scp-style URLs."""
        assert escape_url("git@github.com:user/repo.git") == "git%40github%2Ecom%3Auser%2Frepo%2Egit"

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/user/repo.git",
            "file:///tmp/some dir/repo",
            "../../etc/passwd",
            ".",
            "C:\\repos\\x",
        ],
    )
    def test_output_is_single_safe_segment(self, url):
        """Output must contain only safe characters, '+' and '%XX'."""
        escaped = escape_url(url)
        assert "/" not in escaped
        assert "\\" not in escaped
        assert "." not in escaped
        assert all(c in SAFE_CHARS or c in "+%" or c in "0123456789ABCDEF" for c in escaped)

    def test_stable_across_calls(self):
        """Same URL always yields the same name."""
        url = "https://example.com/repo.git"
        assert escape_url(url) == escape_url(url)

    def test_distinct_urls_distinct_names(self):
        """Distinct URLs must map to distinct directory names."""
        urls = [
            "https://example.com/repo.git",
            "https://example.com/repo",
            "https://example.com/repo.gi",
            "http://example.com/repo.git",
            "https://example.com/Repo.git",
            "https://example.com/re po.git",
            "https://example.com/re+po.git",
            "https://example.com/re%20po.git",
        ]
        names = {escape_url(u) for u in urls}
        assert len(names) == len(urls)


class TestUnescapeName:
    """Tests for unescape_name."""

    @pytest.mark.parametrize(
        "url",
        ["https://example.com/repo.git", "a b+c", "git@host:x/y", "ünïcode/ßpath"],
    )
    def test_inverts_escape(self, url):
        """Should recover the original URL."""
        assert unescape_name(escape_url(url)) == url

    def test_invalid_escape_raises(self):
        """Should reject truncated escapes."""
        with pytest.raises(ValueError):
            unescape_name("abc%G")

    @pytest.mark.parametrize(
        "name", [".hidden", "lost+found%", "abc%4", "a/b", "repo%2egit", "%41bc", "%2D"]
    )
    def test_rejects_foreign_names(self, name):
        """Names escape_url never produces are rejected."""
        with pytest.raises(ValueError):
            unescape_name(name)
