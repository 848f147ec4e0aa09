"""URL admissibility checks (scheme allow-list + basic SSRF protection).

The host is checked the way the browser will read it: backslashes count as
path separators, percent-escapes are decoded, and numeric IPv4/IPv6 spellings
(``2130706433``, ``127.1``, ``0x7f.0.0.1``, ``[0:0:0:0:0:0:0:1]``) are reduced
to their canonical address before matching.

The private-range check is a literal prefix match on that canonical host.
Hostnames are not resolved, so a DNS name pointing at a private address is
accepted, and IPv6 unique-local / link-local ranges are not covered.
"""

from __future__ import annotations

import ipaddress
import re
import unicodedata
from urllib.parse import unquote, urlsplit

from .errors import UrlRejected

_VALID_SCHEMES = {"http", "https"}

BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1", "[::1]"})

_PRIVATE_PREFIX_RE = re.compile(r"^(?:10\.|192\.168\.|172\.(?:1[6-9]|2[0-9]|3[0-1])\.)")

# Browsers drop these anywhere in the input
_STRIPPED_CHARS_RE = re.compile(r"[\t\n\r]")

# Full stops that IDNA mapping turns into "."
_DOT_VARIANTS = str.maketrans({"。": ".", "．": ".", "｡": "."})

_HEX_RE = re.compile(r"^[0-9a-f]*$")
_OCT_RE = re.compile(r"^[0-7]+$")


def _parse_ipv4_part(part: str) -> int | None:
    if part.startswith(("0x", "0X")):
        digits = part[2:].lower()
        if not _HEX_RE.match(digits):
            return None
        return int(digits, 16) if digits else 0
    if len(part) > 1 and part.startswith("0"):
        return int(part, 8) if _OCT_RE.match(part[1:]) else None
    return int(part) if part.isascii() and part.isdigit() else None


def _canonical_ipv4(host: str, raw_url: object) -> str | None:
    """Canonical dotted quad for a numeric IPv4 host, or ``None`` for a domain name.

    Accepts the same spellings browsers do: one to four parts, each decimal,
    octal (leading ``0``) or hex (``0x``), with the last part filling the
    remaining bytes.
    """
    parts = host.split(".")
    if len(parts) > 1 and parts[-1] == "":
        parts = parts[:-1]
    if not parts or len(parts) > 4 or "" in parts:
        return None

    numbers = [_parse_ipv4_part(part) for part in parts]
    if any(number is None for number in numbers):
        return None

    *leading, last = numbers
    if any(number > 255 for number in leading) or last >= 256 ** (5 - len(numbers)):
        raise UrlRejected("malformed", raw_url)

    value = last
    for index, number in enumerate(leading):
        value += number << (8 * (3 - index))
    return str(ipaddress.IPv4Address(value))


def canonical_host(hostname: str, raw_url: object = None) -> str:
    """Reduce *hostname* to the form the browser connects to."""
    host = unicodedata.normalize("NFKC", unquote(hostname)).translate(_DOT_VARIANTS).lower()

    if ":" in host:
        try:
            address = ipaddress.IPv6Address(host.strip("[]"))
        except ValueError:
            raise UrlRejected("malformed", raw_url) from None
        if address.ipv4_mapped is not None:
            return str(address.ipv4_mapped)
        return address.compressed

    return _canonical_ipv4(host, raw_url) or host


def validate_url(raw_url: object) -> None:
    """Raise :class:`UrlRejected` unless *raw_url* is a safe absolute http(s) URL."""
    if not isinstance(raw_url, str) or not raw_url.strip():
        raise UrlRejected("malformed", raw_url)

    candidate = _STRIPPED_CHARS_RE.sub("", raw_url.strip())
    try:
        parsed = urlsplit(candidate)
        if parsed.scheme.lower() in _VALID_SCHEMES:
            # "\" is a path separator in http(s) URLs
            parsed = urlsplit(candidate.replace("\\", "/"))
        # Accessing .port validates it; bad ports raise ValueError
        parsed.port
    except ValueError:
        raise UrlRejected("malformed", raw_url) from None

    if not parsed.scheme:
        raise UrlRejected("malformed", raw_url)

    if parsed.scheme.lower() not in _VALID_SCHEMES:
        raise UrlRejected("scheme", raw_url)

    if not parsed.hostname:
        raise UrlRejected("malformed", raw_url)

    hostname = canonical_host(parsed.hostname, raw_url)
    if not hostname:
        raise UrlRejected("malformed", raw_url)

    if hostname in BLOCKED_HOSTS or f"[{hostname}]" in BLOCKED_HOSTS:
        raise UrlRejected("blocked-host", raw_url)

    if _PRIVATE_PREFIX_RE.match(hostname):
        raise UrlRejected("private-range", raw_url)


def is_admissible(raw_url: object) -> bool:
    """Boolean form of :func:`validate_url`."""
    try:
        validate_url(raw_url)
    except UrlRejected:
        return False
    return True
