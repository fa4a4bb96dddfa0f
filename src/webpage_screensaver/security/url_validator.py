"""
URL validation for pages shown by the screensaver.

Every address is checked here before it reaches the browser. The checks run
in a fixed order and stop at the first failure:

1. empty input
2. trimming (everything after this works on the trimmed value)
3. denylisted substrings, case-insensitive
4. absolute URI parsing
5. scheme allowlist
6. executable extensions for file URLs
7. traversal and percent-encoding markers in file paths
8. total length

Nothing in this module raises for bad input; a rejected URL is a
ValidationOutcome with is_valid=False and a reason.
"""

import ipaddress
import logging
import posixpath
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple
from urllib.parse import SplitResult, unquote, urlsplit

logger = logging.getLogger(__name__)
AUDIT_LOGGER_NAME = "webpage_screensaver.audit"
audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)


ALLOWED_SCHEMES = frozenset({"http", "https", "file"})

BLOCKED_PATTERNS = (
    "javascript:",
    "data:",
    "vbscript:",
    "about:",
    "ms-appx:",
    "ms-appx-web:",
    "ms-appdata:",
    "<script",
    "<iframe",
    "<object",
    "<embed",
)

DANGEROUS_EXTENSIONS = frozenset({
    ".exe", ".bat", ".cmd", ".com", ".pif", ".scr", ".vbs", ".js",
    ".jar", ".msi", ".hta", ".cpl", ".dll", ".ps1", ".psm1",
})

MAX_URL_LENGTH = 2048

REDACTED = "[REDACTED]"
TRUNCATED = "...[TRUNCATED]"
MASK_PREFIX_LENGTH = 50

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_QUERY_OR_FRAGMENT = re.compile(r"[?#]")
_PRIVATE_PREFIXES = ("10.", "172.16.", "192.168.")


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Result of validating one candidate URL.

    url is the trimmed value, which is what gets navigated to.
    """
    is_valid: bool
    reason: str = ""
    url: str = ""

    def __bool__(self) -> bool:
        return self.is_valid

    @classmethod
    def allowed(cls, url: str) -> 'ValidationOutcome':
        return cls(True, "", url)

    @classmethod
    def rejected(cls, reason: str, url: str = "") -> 'ValidationOutcome':
        return cls(False, reason, url)


def _parse_absolute(url: str) -> Optional[SplitResult]:
    """
    Parse an absolute URI, or return None.

    http and https need a host, file needs a path. Relative references
    are never resolved.
    """
    try:
        parts = urlsplit(url)
        # Accessing port validates it
        parts.port
    except ValueError:
        return None

    if not parts.scheme or not _SCHEME_PATTERN.match(parts.scheme):
        return None
    if _CONTROL_CHARS.search(url) or any(c.isspace() for c in parts.netloc):
        return None

    scheme = parts.scheme.lower()
    if scheme in ("http", "https") and not parts.hostname:
        return None
    if scheme == "file" and not (parts.path or parts.netloc):
        return None
    # "mailto:x" style URIs have no authority; accept them here so the scheme
    # check reports them by name
    if scheme not in ALLOWED_SCHEMES and not (parts.netloc or parts.path):
        return None
    return parts


def _local_path(parts: SplitResult) -> str:
    """Decoded local path of a file URL, including a UNC host if present."""
    path = unquote(parts.path)
    if parts.netloc and parts.netloc.lower() != "localhost":
        return f"//{unquote(parts.netloc)}{path}"
    return path


def validate(raw_url: Optional[str]) -> ValidationOutcome:
    """
    Validate a URL before it is shown on screen.

    Args:
        raw_url: Address as configured; may be None or blank

    Returns:
        ValidationOutcome; the url field holds the trimmed address
    """
    if raw_url is None or not raw_url.strip():
        return ValidationOutcome.rejected("empty")

    url = raw_url.strip()
    lowered = url.lower()

    for pattern in BLOCKED_PATTERNS:
        if pattern in lowered:
            logger.debug(f"Blocked URL with pattern '{pattern}'")
            return ValidationOutcome.rejected(f"blocked pattern: {pattern}", url)

    parts = _parse_absolute(url)
    if parts is None:
        return ValidationOutcome.rejected("invalid format", url)

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        return ValidationOutcome.rejected(
            f"scheme '{scheme}' not allowed (allowed: {', '.join(sorted(ALLOWED_SCHEMES))})",
            url,
        )

    if scheme == "file":
        local_path = _local_path(parts)
        extension = posixpath.splitext(local_path.replace("\\", "/"))[1].lower()
        if extension in DANGEROUS_EXTENSIONS:
            return ValidationOutcome.rejected(f"blocked file extension: {extension}", url)

        if ".." in local_path or "%" in local_path or "%" in parts.path:
            return ValidationOutcome.rejected("suspicious path", url)

    if len(url) > MAX_URL_LENGTH:
        return ValidationOutcome.rejected("too long", url)

    return ValidationOutcome.allowed(url)


def validate_list(urls: Optional[Iterable[str]]) -> Tuple[List[str], List[Tuple[str, str]]]:
    """
    Validate a list of URLs, keeping the valid ones in their original order.

    Args:
        urls: Candidate URLs

    Returns:
        Tuple of (valid trimmed URLs, [(original url, reason), ...])
    """
    valid: List[str] = []
    removed: List[Tuple[str, str]] = []

    for url in urls or []:
        outcome = validate(url)
        if outcome.is_valid:
            valid.append(outcome.url)
        else:
            removed.append((url, outcome.reason))

    return valid, removed


def sanitize_url(url: Optional[str]) -> str:
    """
    Strip ASCII control characters and surrounding whitespace.

    Validation never calls this; it is a separate cleanup step for
    addresses entered by hand.
    """
    if url is None or not url.strip():
        return ""
    return _CONTROL_CHARS.sub("", url).strip()


def is_local_url(url: str) -> bool:
    """
    Check whether a URL points at this machine or the local network.

    True for file URLs, loopback hosts, 10.*, 172.16.*, 192.168.* and
    *.local names.
    """
    parts = _parse_absolute(url.strip()) if url else None
    if parts is None:
        return False

    if parts.scheme.lower() == "file":
        return True

    host = (parts.hostname or "").lower()
    if host == "localhost" or host.endswith(".local"):
        return True
    if host.startswith(_PRIVATE_PREFIXES):
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def mask_for_audit(url: Optional[str]) -> str:
    """
    Reduce a URL to scheme://host/path for logging.

    Query strings and fragments are replaced with a redaction marker so
    tokens never end up in logs. Unparseable input loses everything from
    its first ? or # the same way, and is cut to its first 50 characters.
    """
    if url is None or not url.strip():
        return "[empty]"

    parts = _parse_absolute(url.strip())
    if parts is not None:
        scheme = parts.scheme.lower()
        host = parts.hostname or ""
        path = parts.path or ("/" if scheme in ("http", "https") else "")
        masked = f"{scheme}://{host}{path}"
        if parts.query:
            masked += f"?{REDACTED}"
        if parts.fragment:
            masked += f"#{REDACTED}"
        return masked

    suffix = ""
    cut = _QUERY_OR_FRAGMENT.search(url)
    if cut:
        suffix = f"{cut.group()}{REDACTED}"
        url = url[:cut.start()]

    if len(url) > MASK_PREFIX_LENGTH:
        return url[:MASK_PREFIX_LENGTH] + TRUNCATED + suffix
    return url + suffix


def generate_audit_entry(
    url: Optional[str],
    allowed: bool,
    reason: str = "",
    now: Optional[datetime] = None,
) -> str:
    """
    Format one audit line.

    Example:
        [2024-05-01T12:00:00.000Z] URL_VALIDATION BLOCKED | URL: https://x.org/ | Reason: too long
    """
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    timestamp = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    status = "ALLOWED" if allowed else "BLOCKED"
    return f"[{timestamp}] URL_VALIDATION {status} | URL: {mask_for_audit(url)} | Reason: {reason}"


def log_audit(url: Optional[str], allowed: bool, reason: str = "") -> str:
    """Emit an audit line to the audit logger and return it."""
    entry = generate_audit_entry(url, allowed, reason)
    audit_logger.log(logging.INFO if allowed else logging.WARNING, entry)
    return entry
