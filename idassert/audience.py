"""Default audience matcher.

An audience is an origin (scheme://host[:port]). Default ports are
normalized so that "https://example.com" and "https://example.com:443"
compare equal. The expected audience may be a single origin or a list of
acceptable origins.
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple, Union
from urllib.parse import urlsplit

DEFAULT_PORTS = {"http": 80, "https": 443, "app": 443}


def _normalize(audience: str) -> Optional[Tuple[str, str, int]]:
    if "://" not in audience:
        # Bare hostnames are accepted; legacy assertions used them.
        audience = f"https://{audience}"
    try:
        parts = urlsplit(audience)
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not host:
        return None
    if port is None:
        port = DEFAULT_PORTS.get(scheme)
        if port is None:
            return None
    return scheme, host, port


def _as_list(expected: Union[str, List[str], None]) -> List[str]:
    if expected is None:
        return []
    if isinstance(expected, str):
        return [expected]
    return list(expected)


def compare_audiences(asserted: Any, expected: Any) -> Optional[str]:
    """Return None when `asserted` matches `expected`, else a diagnostic."""
    if not isinstance(asserted, str) or not asserted:
        return "assertion does not contain an audience"
    want = _as_list(expected)
    if not want:
        return "no expected audience configured"

    got = _normalize(asserted)
    if got is None:
        return f"malformed audience in assertion: '{asserted}'"

    for candidate in want:
        if not isinstance(candidate, str):
            continue
        if _normalize(candidate) == got:
            return None

    if len(want) == 1:
        return f"'{asserted}' != '{want[0]}'"
    return f"'{asserted}' not in {want}"


__all__ = ["compare_audiences", "DEFAULT_PORTS"]
