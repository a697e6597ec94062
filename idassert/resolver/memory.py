"""
In-memory issuer resolver.
"""

import logging
import threading
from typing import Any, Dict, Optional, Tuple

from ..errors import IssuerLookupError
from .base import IssuerDetails, IssuerResolver, LookupRequest

logger = logging.getLogger(__name__)


class StaticIssuerResolver(IssuerResolver):
    """Thread-safe resolver backed by a fixed table of domains.

    Suitable for tests, for verifiers with a pinned set of identity
    providers, or as the origin behind CachingIssuerResolver.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: Dict[str, Any] = {}               # domain -> public key
        self._authorities: Dict[str, str] = {}        # principal domain -> issuer domain
        self.lookups = 0

    def add_issuer(self, domain: str, public_key: Any) -> None:
        with self._lock:
            self._keys[domain.lower()] = public_key

    def remove_issuer(self, domain: str) -> None:
        with self._lock:
            self._keys.pop(domain.lower(), None)

    def delegate(self, principal_domain: str, issuer_domain: str) -> None:
        """Declare `issuer_domain` authoritative for `principal_domain`."""
        with self._lock:
            self._authorities[principal_domain.lower()] = issuer_domain

    def snapshot(self) -> Tuple[Dict[str, Any], Dict[str, str]]:
        with self._lock:
            return dict(self._keys), dict(self._authorities)

    async def lookup(self, request: LookupRequest) -> IssuerDetails:
        domain = request.domain.lower()
        with self._lock:
            self.lookups += 1
            public_key = self._keys.get(domain)
            authority: Optional[str] = self._authorities.get(domain)
            authority_key = self._keys.get(authority.lower()) if authority else None
        if authority is None and public_key is not None:
            # A domain with its own key speaks for itself.
            authority = domain
        if authority is not None and public_key is None:
            if authority_key is None:
                raise IssuerLookupError(request.domain, f"authority '{authority}' has no key")
            logger.debug(f"{domain} delegates to {authority}")
            return IssuerDetails(public_key=authority_key, authoritative_domain=authority)
        if public_key is None:
            raise IssuerLookupError(request.domain, "no such issuer")
        return IssuerDetails(public_key=public_key, authoritative_domain=authority)


__all__ = ["StaticIssuerResolver"]
