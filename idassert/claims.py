"""Extraction of "extra" claims from certificate and assertion payloads."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

Claims = Dict[str, Any]


def extract_extra_claims(claims: Optional[Mapping[str, Any]], reserved_names: Iterable[str]) -> Optional[Claims]:
    """Return the claims of a payload that are not protocol-reserved.

    To conform with JWT these are the unrecognized top level properties. A
    historical exception is `principal`: when it is an object, its fields
    other than `email` are surfaced as if they were top level extensions,
    without overriding a top level claim of the same name.

    Returns None when nothing is left; callers treat None and {} alike.
    """
    if claims is None:
        return None
    reserved = reserved_names if isinstance(reserved_names, (set, frozenset)) else set(reserved_names)

    extra: Claims = {key: value for key, value in claims.items() if key not in reserved}

    principal = claims.get("principal")
    if isinstance(principal, Mapping):
        for key, value in principal.items():
            if key in reserved or key == "email" or key in extra:
                continue
            extra[key] = value

    return extra or None


__all__ = ["Claims", "extract_extra_claims"]
