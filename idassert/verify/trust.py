"""Issuer trust decisions."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..config import VerifyArgs
from ..errors import IdAssertError, NoPrincipalUntrustedError, UntrustedIssuerError
from ..resolver.base import IssuerResolver, LookupRequest

logger = logging.getLogger(__name__)


class TrustResolver:
    """Decides whether the ultimate issuer may speak for the principal.

    Order:
     1. Explicitly trusted issuers pass without any lookup.
     2. With a principal domain, the issuer must equal the domain's
        authoritative issuer, or the caller's fallback when none resolves.
     3. Otherwise the assertion cannot be trusted.
    """

    async def expected_issuer(self, resolver: IssuerResolver, args: VerifyArgs, principal_domain: str) -> Optional[str]:
        """Authoritative issuer for `principal_domain`, else the fallback.

        Resolver and connection failures select the fallback. Any other
        exception propagates.
        """
        try:
            details = await resolver.lookup(
                LookupRequest(domain=principal_domain, principal_domain=principal_domain, args=dict(args.extra))
            )
        except (IdAssertError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Authority lookup for {principal_domain} failed, using fallback: {e}")
            return args.fallback
        return details.authoritative_domain or args.fallback

    async def resolve_trust(
        self,
        resolver: IssuerResolver,
        args: VerifyArgs,
        principal_domain: Optional[str],
        ultimate_issuer: Optional[str],
    ) -> None:
        if args.is_trusted(ultimate_issuer):
            logger.debug(f"Issuer {ultimate_issuer} is explicitly trusted")
            return

        if principal_domain:
            expected = await self.expected_issuer(resolver, args, principal_domain)
            if expected != ultimate_issuer:
                raise UntrustedIssuerError(expected, ultimate_issuer)
            return

        raise NoPrincipalUntrustedError()


__all__ = ["TrustResolver"]
