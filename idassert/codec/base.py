"""
Token codec interface.

The codec owns token parsing and raw signature checks. The verifier never
touches signature bytes itself; it hands a token, a public key and the
shared verification instant to the codec and gets back the decoded token
or an exception.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..errors import BundleUnpackError


@dataclass(frozen=True)
class DecodedToken:
    raw: str
    header: Dict[str, Any] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Bundle:
    """Ordered certificates followed by the terminal signed assertion."""
    certs: List[str]
    signed_assertion: str

    @property
    def leaf_cert(self) -> str:
        if not self.certs:
            raise BundleUnpackError("bundle carries no certificate")
        return self.certs[-1]


class TokenCodec(ABC):
    """Interface every token codec implements."""

    @abstractmethod
    def unbundle(self, bundle: str) -> Bundle:
        """Split a bundle string into certificates and the signed assertion."""

    @abstractmethod
    def bundle(self, certs: List[str], signed_assertion: str) -> str:
        """Join certificates and an assertion into a bundle string."""

    @abstractmethod
    def decode(self, token: str) -> DecodedToken:
        """Decode a token without checking its signature."""

    @abstractmethod
    async def verify(self, token: str, public_key: Any, now: int) -> DecodedToken:
        """Check signature and validity window of `token` at `now` (ms).

        Raises InvalidSignatureError or ExpiredSignatureError.
        """
