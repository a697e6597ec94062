"""
Issuer resolver interface.

A resolver maps a domain to the public key it signs with and, optionally,
the authoritative issuer domain for principals of that domain.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class LookupRequest:
    domain: str
    principal_domain: Optional[str] = None
    # Caller-supplied verify() options, passed through untouched.
    args: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class IssuerDetails:
    public_key: Any
    authoritative_domain: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"publicKey": self.public_key}
        if self.authoritative_domain:
            data["authoritativeDomain"] = self.authoritative_domain
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IssuerDetails":
        return cls(public_key=data["publicKey"], authoritative_domain=data.get("authoritativeDomain"))


class IssuerResolver(ABC):
    """Interface for issuer key / authority discovery backends."""

    @abstractmethod
    async def lookup(self, request: LookupRequest) -> IssuerDetails:
        """Return details for `request.domain` or raise IssuerLookupError."""


__all__ = ["LookupRequest", "IssuerDetails", "IssuerResolver"]
