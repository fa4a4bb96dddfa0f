"""Tests for URL validation and audit formatting."""

import logging
from datetime import datetime, timezone

import pytest

from webpage_screensaver.security import (
    AUDIT_LOGGER_NAME,
    BLOCKED_PATTERNS,
    DANGEROUS_EXTENSIONS,
    MAX_URL_LENGTH,
    generate_audit_entry,
    is_local_url,
    log_audit,
    mask_for_audit,
    sanitize_url,
    validate,
    validate_list,
)


class TestValidate:
    """Validation pipeline, in order."""

    @pytest.mark.parametrize("raw", ["", "   ", "\t\n", None])
    def test_empty_input_rejected(self, raw):
        outcome = validate(raw)
        assert not outcome.is_valid
        assert outcome.reason == "empty"

    def test_whitespace_is_trimmed(self):
        outcome = validate("  https://example.com/page  ")
        assert outcome.is_valid
        assert outcome.url == "https://example.com/page"
        assert outcome.reason == ""

    @pytest.mark.parametrize("pattern", BLOCKED_PATTERNS)
    def test_denylisted_substrings_rejected_regardless_of_scheme(self, pattern):
        for url in (
            f"https://example.com/?next={pattern}x",
            f"file:///srv/{pattern}page.html",
            f"{pattern.upper()}alert(1)",
        ):
            outcome = validate(url)
            assert not outcome.is_valid, url
            # ms-appdata: also contains data:, which is checked first
            assert outcome.reason.startswith("blocked pattern: ")

    def test_javascript_url_rejected(self):
        outcome = validate("JavaScript:alert(1)")
        assert not outcome
        assert "javascript:" in outcome.reason

    @pytest.mark.parametrize("url", [
        "example.com",
        "/relative/path",
        "//example.com/page",
        "https://",
        "http://exa mple.com/",
        "https://example.com:99999/",
    ])
    def test_non_absolute_or_malformed_rejected(self, url):
        outcome = validate(url)
        assert not outcome.is_valid
        assert outcome.reason == "invalid format"

    @pytest.mark.parametrize("url,scheme", [
        ("ftp://example.com/file.txt", "ftp"),
        ("mailto:someone@example.com", "mailto"),
        ("chrome://settings", "chrome"),
        ("WS://example.com/socket", "ws"),
    ])
    def test_schemes_outside_allowlist_rejected(self, url, scheme):
        outcome = validate(url)
        assert not outcome.is_valid
        assert outcome.reason == f"scheme '{scheme}' not allowed (allowed: file, http, https)"

    @pytest.mark.parametrize("url", [
        "http://example.com",
        "HTTPS://Example.com/Path?q=1#frag",
        "https://localhost:8080/dashboard",
        "file:///home/kiosk/slides/index.html",
        "file://localhost/srv/page.htm",
    ])
    def test_allowed_urls(self, url):
        assert validate(url).is_valid

    @pytest.mark.parametrize("extension", sorted(DANGEROUS_EXTENSIONS))
    def test_dangerous_file_extensions_rejected(self, extension):
        for name in (f"payload{extension}", f"PAYLOAD{extension.upper()}"):
            outcome = validate(f"file:///tmp/{name}")
            assert not outcome.is_valid
            assert outcome.reason == f"blocked file extension: {extension}"

    def test_dangerous_extension_only_applies_to_file_urls(self):
        assert validate("https://example.com/app.js").is_valid

    @pytest.mark.parametrize("extension", [".html", ".htm", ".svg", ".png", ".pdf", ".txt"])
    def test_other_extensions_allowed(self, extension):
        assert validate(f"file:///srv/kiosk/page{extension}").is_valid

    @pytest.mark.parametrize("url", [
        "file:///srv/kiosk/../../etc/passwd",
        "file:///srv/kiosk/..",
        "file:///srv/kiosk/a%20b.html",
        "file:///srv/kiosk/%2e%2e/secret.html",
    ])
    def test_suspicious_file_paths_rejected(self, url):
        outcome = validate(url)
        assert not outcome.is_valid
        assert outcome.reason == "suspicious path"

    def test_traversal_in_http_path_not_checked(self):
        assert validate("https://example.com/a/../b").is_valid

    def test_length_limit(self):
        base = "https://example.com/"
        exact = base + "a" * (MAX_URL_LENGTH - len(base))
        assert len(exact) == 2048
        assert validate(exact).is_valid

        too_long = exact + "a"
        outcome = validate(too_long)
        assert not outcome.is_valid
        assert outcome.reason == "too long"

    def test_validate_never_raises(self):
        for junk in ("http://[::1", "::::", "\x00\x01", "h" * 5000, "https://%zz/"):
            outcome = validate(junk)
            assert isinstance(outcome.reason, str)


class TestValidateList:

    def test_stable_filter_with_removed_entries(self):
        urls = [
            "https://a.example",
            "javascript:alert(1)",
            " https://b.example ",
            "",
            "ftp://c.example",
            "https://d.example",
        ]
        valid, removed = validate_list(urls)

        assert valid == ["https://a.example", "https://b.example", "https://d.example"]
        assert [url for url, _ in removed] == ["javascript:alert(1)", "", "ftp://c.example"]
        assert removed[1][1] == "empty"
        assert removed[2][1].startswith("scheme 'ftp'")

    def test_empty_and_none(self):
        assert validate_list([]) == ([], [])
        assert validate_list(None) == ([], [])

    def test_duplicates_reported_each_time(self):
        _, removed = validate_list(["data:text/html,x", "data:text/html,x"])
        assert len(removed) == 2


class TestIsLocalUrl:

    @pytest.mark.parametrize("url", [
        "file:///srv/index.html",
        "http://localhost:3000/",
        "http://127.0.0.1/",
        "http://[::1]:8080/",
        "http://10.0.0.5/",
        "http://172.16.4.2/",
        "https://192.168.1.10/status",
        "http://kiosk.local/",
    ])
    def test_local(self, url):
        assert is_local_url(url)

    @pytest.mark.parametrize("url", [
        "https://example.com/",
        "http://172.17.0.1/",
        "http://8.8.8.8/",
        "not a url",
        "",
    ])
    def test_not_local(self, url):
        assert not is_local_url(url)


class TestMaskForAudit:

    def test_query_and_fragment_redacted(self):
        masked = mask_for_audit("https://example.com/login?token=secret#section")
        assert masked == "https://example.com/login?[REDACTED]#[REDACTED]"
        assert "secret" not in masked

    def test_plain_url(self):
        assert mask_for_audit("https://Example.com") == "https://example.com/"
        assert mask_for_audit("file:///srv/page.html") == "file:///srv/page.html"

    def test_userinfo_and_port_dropped(self):
        masked = mask_for_audit("https://user:pw@example.com:8443/x")
        assert masked == "https://example.com/x"

    def test_unparseable_truncated(self):
        raw = "not a url " * 10
        masked = mask_for_audit(raw)
        assert masked == raw[:50] + "...[TRUNCATED]"

    def test_unparseable_query_redacted(self):
        masked = mask_for_audit("https://exa mple.com/login?token=SECRET123")
        assert masked == "https://exa mple.com/login?[REDACTED]"

        masked = mask_for_audit("not a url#access_token=SECRET123")
        assert masked == "not a url#[REDACTED]"

        entry = generate_audit_entry("https://exa mple.com/login?token=SECRET123", False, "invalid format")
        assert "SECRET123" not in entry

    def test_long_unparseable_query_redacted(self):
        raw = "x y" * 30 + "?token=SECRET123"
        masked = mask_for_audit(raw)
        assert masked == raw[:50] + "...[TRUNCATED]?[REDACTED]"
        assert "SECRET123" not in masked

    def test_short_unparseable_kept(self):
        assert mask_for_audit("garbage") == "garbage"

    def test_empty(self):
        assert mask_for_audit("") == "[empty]"
        assert mask_for_audit(None) == "[empty]"


class TestAuditEntry:

    def test_format(self):
        now = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)
        entry = generate_audit_entry("https://example.com/?a=1", False, "too long", now=now)
        assert entry == (
            "[2024-05-01T12:30:45.123Z] URL_VALIDATION BLOCKED | "
            "URL: https://example.com/?[REDACTED] | Reason: too long"
        )

    def test_allowed_has_empty_reason(self):
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        entry = generate_audit_entry("https://example.com", True, now=now)
        assert entry.endswith("URL_VALIDATION ALLOWED | URL: https://example.com/ | Reason: ")

    def test_log_audit_levels(self, caplog):
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
            log_audit("https://example.com", True)
            log_audit("javascript:alert(1)", False, "blocked pattern: javascript:")

        records = [r for r in caplog.records if r.name == AUDIT_LOGGER_NAME]
        assert [r.levelno for r in records] == [logging.INFO, logging.WARNING]
        assert "ALLOWED" in records[0].getMessage()
        assert "BLOCKED" in records[1].getMessage()


class TestSanitizeUrl:

    def test_strips_control_characters(self):
        assert sanitize_url(" https://exa\x00mple.com/\r\n") == "https://example.com/"

    def test_blank(self):
        assert sanitize_url(None) == ""
        assert sanitize_url("  ") == ""
