"""Certificate chain and assertion signature verification.

Verification order:
 1. Tolerant unpack to discover the principal's email domain (the resolver
    may serve per-domain documents, so it needs this before key lookup).
 2. Strict unpack; more than one certificate is rejected outright.
 3. Each certificate is checked with its issuer's key from the resolver;
    the assertion is checked with the leaf certificate's `public-key`.
 4. Audience comparison.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from ..audience import compare_audiences
from ..codec.base import TokenCodec
from ..config import AudienceMatcher, VerifyArgs
from ..errors import (
    AudienceMismatchError,
    BundleUnpackError,
    ChainTooLongError,
    ChainVerificationError,
)
from ..resolver.base import IssuerResolver, LookupRequest

logger = logging.getLogger(__name__)

MAX_CHAIN_LENGTH = 1


@dataclass(frozen=True)
class ChainOutcome:
    issuer: str                  # issuer of the last certificate
    public_key: Any              # that issuer's key, as resolved
    leaf_cert: str               # raw leaf certificate (digest binding input)
    idp_claims: Dict[str, Any]   # verified leaf certificate payload
    user_claims: Dict[str, Any]  # verified assertion payload
    audience: Any
    expires_at: Any
    principal_domain: Optional[str] = None
    email: Optional[str] = None


def principal_email(idp_claims: Mapping[str, Any]) -> Optional[str]:
    """Email from `principal.email`, falling back to `sub`."""
    email = None
    principal = idp_claims.get("principal")
    if isinstance(principal, Mapping):
        email = principal.get("email")
    if not email:
        email = idp_claims.get("sub")
    return email if isinstance(email, str) and email else None


def email_domain(email: str) -> Optional[str]:
    _, sep, domain = email.partition("@")
    if not sep or not domain:
        return None
    return domain.lower()


class ChainVerifier:
    def __init__(self, codec: TokenCodec, audience_matcher: Optional[AudienceMatcher] = None):
        self.codec = codec
        self.audience_matcher = audience_matcher or compare_audiences

    def discover_principal(self, assertion: str) -> Tuple[Optional[str], Optional[str]]:
        """Return (email, domain) from the unverified leaf certificate.

        Failures leave both unset; trust resolution decides later whether an
        assertion without an email can still be trusted.
        """
        try:
            bundle = self.codec.unbundle(assertion)
            idp_claims = self.codec.decode(bundle.leaf_cert).payload
        except BundleUnpackError as e:
            logger.debug(f"Principal discovery skipped: {e}")
            return None, None
        email = principal_email(idp_claims)
        if email is None:
            return None, None
        return email, email_domain(email)

    async def verify_chain(
        self,
        assertion: str,
        now: int,
        resolver: IssuerResolver,
        args: VerifyArgs,
    ) -> ChainOutcome:
        _, principal_domain = self.discover_principal(assertion)

        bundle = self.codec.unbundle(assertion)
        if len(bundle.certs) > MAX_CHAIN_LENGTH:
            raise ChainTooLongError(len(bundle.certs))

        ultimate_issuer = None
        ultimate_key = None
        subject_key = None
        leaf = None
        for cert in bundle.certs:
            issuer = self.codec.decode(cert).payload.get("iss")
            if not isinstance(issuer, str) or not issuer:
                raise ChainVerificationError("certificate does not name an issuer")

            details = await resolver.lookup(
                LookupRequest(domain=issuer, principal_domain=principal_domain, args=dict(args.extra))
            )
            leaf = await self.codec.verify(cert, details.public_key, now)
            logger.debug(f"Verified certificate issued by {issuer}")

            ultimate_issuer = issuer
            ultimate_key = details.public_key
            subject_key = leaf.payload.get("public-key")
            if subject_key is None:
                raise ChainVerificationError("certificate does not carry a public key")

        signed = await self.codec.verify(bundle.signed_assertion, subject_key, now)

        audience = signed.payload.get("aud")
        mismatch = self.audience_matcher(audience, args.audience)
        if mismatch:
            raise AudienceMismatchError(mismatch)

        idp_claims = leaf.payload
        principal = idp_claims.get("principal")
        email = principal.get("email") if isinstance(principal, Mapping) else None

        return ChainOutcome(
            issuer=ultimate_issuer,
            public_key=ultimate_key,
            leaf_cert=bundle.leaf_cert,
            idp_claims=idp_claims,
            user_claims=signed.payload,
            audience=audience,
            expires_at=signed.payload.get("exp"),
            principal_domain=principal_domain,
            email=email if isinstance(email, str) and email else None,
        )


__all__ = [
    "MAX_CHAIN_LENGTH",
    "ChainOutcome",
    "ChainVerifier",
    "principal_email",
    "email_domain",
]
