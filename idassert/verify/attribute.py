"""Attribute certificate verification.

An attribute certificate is signed with the identity provider's key and
carries claims under a `scope`. Its digest descriptor ties it to one
specific primary certificate, so it cannot be replayed next to another
certificate, even one from the same issuer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..claims import Claims, extract_extra_claims
from ..codec.base import TokenCodec
from ..config import REVISION_JAC, ProtocolRevision
from ..digest import DigestBinder
from ..errors import ChainVerificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedAttributeCert:
    token: str
    scope: str
    claims: Optional[Claims]


class AttributeCertificateVerifier:
    def __init__(
        self,
        codec: TokenCodec,
        revision: ProtocolRevision = REVISION_JAC,
        binder: Optional[DigestBinder] = None,
    ):
        self.codec = codec
        self.revision = revision
        self.binder = binder or DigestBinder(revision.digest_algorithms)

    async def check(
        self,
        token: Any,
        now: int,
        primary_public_key: Any,
        primary_cert: str,
        primary_issuer: Optional[str],
    ) -> Optional[VerifiedAttributeCert]:
        """Verify one attribute certificate; None means rejected."""
        if not isinstance(token, str):
            logger.debug("Rejecting attribute certificate: not a token string")
            return None
        try:
            decoded = await self.codec.verify(token, primary_public_key, now)
        except ChainVerificationError as e:
            logger.debug(f"Rejecting attribute certificate: {e}")
            return None

        payload = decoded.payload
        scope = payload.get("scope")
        if not scope or not isinstance(scope, str):
            logger.debug("Rejecting attribute certificate: missing scope")
            return None

        descriptor = self.revision.binding_descriptor(decoded.header, payload)
        if not self.binder.verify_binding(primary_cert, descriptor):
            logger.debug(f"Rejecting attribute certificate for scope '{scope}': digest binding mismatch")
            return None

        iss = payload.get("iss")
        if iss and iss != primary_issuer:
            logger.debug(f"Rejecting attribute certificate for scope '{scope}': issuer {iss} != {primary_issuer}")
            return None

        return VerifiedAttributeCert(
            token=token,
            scope=scope,
            claims=extract_extra_claims(payload, self.revision.reserved_claims),
        )

    async def verify(
        self,
        token: Any,
        now: int,
        primary_public_key: Any,
        primary_cert: str,
        primary_issuer: Optional[str],
    ) -> Optional[Claims]:
        """Return the extra claims of an accepted certificate, else None."""
        verified = await self.check(token, now, primary_public_key, primary_cert, primary_issuer)
        if verified is None:
            return None
        return verified.claims


__all__ = ["VerifiedAttributeCert", "AttributeCertificateVerifier"]
