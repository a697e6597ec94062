"""
Content digests binding attribute certificates to a primary certificate.

A descriptor has the shape {"alg": "S256", "dig": "<base64url>"} where the
digest is taken over the raw compact serialization of the primary
certificate. Digests are public values, so comparison is a plain exact match.
"""

from __future__ import annotations

import base64
from typing import Any, Callable, Mapping, Optional, Union

from .config import DIGEST_ALGORITHMS
from .errors import UnsupportedDigestError


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _as_bytes(data: Union[str, bytes]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class DigestBinder:
    """Computes and checks named digests (S256, S512 by default)."""

    def __init__(self, algorithms: Optional[Mapping[str, Callable[..., Any]]] = None):
        self._algorithms = algorithms if algorithms is not None else DIGEST_ALGORITHMS

    @property
    def algorithms(self):
        return sorted(self._algorithms)

    def digest(self, data: Union[str, bytes], alg: str) -> str:
        hash_factory = self._algorithms.get(alg) if isinstance(alg, str) else None
        if hash_factory is None:
            raise UnsupportedDigestError(f"unsupported digest algorithm '{alg}'")
        return _b64url(hash_factory(_as_bytes(data)).digest())

    def descriptor(self, data: Union[str, bytes], alg: str = "S256") -> dict:
        """Build a binding descriptor for `data` (used when issuing)."""
        return {"alg": alg, "dig": self.digest(data, alg)}

    def verify_binding(self, data: Union[str, bytes], descriptor: Any) -> bool:
        if not isinstance(descriptor, Mapping):
            return False
        alg = descriptor.get("alg")
        dig = descriptor.get("dig")
        if not isinstance(alg, str) or not isinstance(dig, str):
            return False
        if alg not in self._algorithms:
            return False
        return self.digest(data, alg) == dig


__all__ = ["DigestBinder"]
