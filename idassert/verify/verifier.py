"""
Top-level assertion verification.

This module composes chain verification, attribute certificate checks and
trust resolution into one all-or-nothing verify() call:

    unpack -> verify chain -> verify attribute certificates -> resolve trust

Any fatal error aborts the call and no result is produced.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from ..claims import Claims, extract_extra_claims
from ..codec.base import TokenCodec
from ..codec.jwt import JWTCodec, JWTCodecConfig
from ..config import VerifierConfig, VerifyArgs, to_millis
from ..errors import BundleUnpackError, IdAssertError, ScopeCollisionError
from ..monitoring import get_registry
from ..resolver.base import IssuerResolver
from .attribute import AttributeCertificateVerifier, VerifiedAttributeCert
from .chain import ChainOutcome, ChainVerifier
from .trust import TrustResolver

logger = logging.getLogger(__name__)

CLAIM_NAMES = "_claim_names"
CLAIM_SOURCES = "_claim_sources"

VerifyCallback = Callable[[Optional[Exception], Optional["VerificationResult"]], Any]


@dataclass
class VerificationResult:
    """Verified principal and the claims each party asserted."""
    audience: Any
    expires: Any
    issuer: str
    email: Optional[str] = None
    idp_claims: Optional[Claims] = None
    user_claims: Optional[Claims] = None
    attribute_cert_claims: Optional[Dict[str, Claims]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "audience": self.audience,
            "expires": self.expires,
            "issuer": self.issuer,
        }
        if self.email:
            data["email"] = self.email
        if self.idp_claims:
            data["idpClaims"] = self.idp_claims
        if self.user_claims:
            data["userClaims"] = self.user_claims
        if self.attribute_cert_claims is not None:
            data["attributeCertClaims"] = self.attribute_cert_claims
        return data


def aggregate_attribute_claims(result: VerificationResult, scope: str, token: str, claims: Claims) -> None:
    """Merge attribute claims into idp_claims, recording their provenance."""
    merged = dict(result.idp_claims or {})
    names = dict(merged.get(CLAIM_NAMES) or {})
    sources = dict(merged.get(CLAIM_SOURCES) or {})
    for name, value in claims.items():
        if name in (CLAIM_NAMES, CLAIM_SOURCES):
            continue
        merged[name] = value
        names[name] = scope
    sources[scope] = {"JWT": token}
    merged[CLAIM_NAMES] = names
    merged[CLAIM_SOURCES] = sources
    result.idp_claims = merged


class Verifier:
    """Verifies assertions against a single issuer resolver."""

    def __init__(
        self,
        resolver: IssuerResolver,
        config: Optional[VerifierConfig] = None,
        codec: Optional[TokenCodec] = None,
    ):
        self.resolver = resolver
        self.config = config or VerifierConfig()
        self.revision = self.config.protocol
        self.codec = codec or JWTCodec(JWTCodecConfig(clock_skew_ms=self.config.clock_skew_ms))
        self.chain_verifier = ChainVerifier(self.codec, self.config.audience_matcher)
        self.attribute_verifier = AttributeCertificateVerifier(self.codec, self.revision)
        self.trust_resolver = TrustResolver()
        self.metrics = get_registry() if self.config.metrics_enabled else None

    def verify(self, args: Union[VerifyArgs, Mapping[str, Any]]) -> Awaitable[VerificationResult]:
        """Validate the call shape now and return the verification coroutine.

        Missing `assertion` or `audience` raises MalformedInvocationError
        before anything is awaited.
        """
        if not isinstance(args, VerifyArgs):
            args = VerifyArgs.from_mapping(args)
        args.validate()
        now = to_millis(args.now)
        return self._verify(args, now)

    async def _verify(self, args: VerifyArgs, now: int) -> VerificationResult:
        try:
            result = await self._run(args, now)
        except IdAssertError as e:
            logger.warning(f"Assertion rejected: {e}")
            self._observe("rejected")
            raise
        self._observe("verified")
        logger.info(f"Verified assertion from {result.issuer} for {result.audience}")
        return result

    async def _run(self, args: VerifyArgs, now: int) -> VerificationResult:
        outcome = await self.chain_verifier.verify_chain(args.assertion, now, self.resolver, args)

        reserved = self.revision.reserved_claims
        result = VerificationResult(
            audience=outcome.audience,
            expires=outcome.expires_at,
            issuer=outcome.issuer,
            email=outcome.email,
            idp_claims=extract_extra_claims(outcome.idp_claims, reserved),
            user_claims=extract_extra_claims(outcome.user_claims, reserved),
        )

        await self._apply_attribute_certs(result, outcome, args, now)

        # Only reached once every attribute certificate branch has finished.
        await self.trust_resolver.resolve_trust(self.resolver, args, outcome.principal_domain, outcome.issuer)
        return result

    async def _apply_attribute_certs(
        self,
        result: VerificationResult,
        outcome: ChainOutcome,
        args: VerifyArgs,
        now: int,
    ) -> None:
        tokens = outcome.user_claims.get(self.revision.attr_cert_claim)
        if not isinstance(tokens, list):
            return

        aggregate = self.config.aggregate_attr_certs if args.aggregate_attr_certs is None else args.aggregate_attr_certs
        self._reject_duplicate_scopes(tokens)
        if not aggregate:
            result.attribute_cert_claims = {}

        checked: List[Optional[VerifiedAttributeCert]] = await asyncio.gather(*(
            self.attribute_verifier.check(token, now, outcome.public_key, outcome.leaf_cert, outcome.issuer)
            for token in tokens
        ))

        for cert in checked:
            if cert is None or not cert.claims:
                self._observe_attr("rejected" if cert is None else "empty")
                continue
            self._observe_attr("accepted")
            if aggregate:
                aggregate_attribute_claims(result, cert.scope, cert.token, cert.claims)
            else:
                result.attribute_cert_claims[cert.scope] = cert.claims

    def _reject_duplicate_scopes(self, tokens: List[Any]) -> None:
        """Two certificates naming one scope fail the call, valid or not."""
        seen = set()
        for token in tokens:
            if not isinstance(token, str):
                continue
            try:
                scope = self.codec.decode(token).payload.get("scope")
            except BundleUnpackError:
                continue
            if not isinstance(scope, str) or not scope:
                continue
            if scope in seen:
                raise ScopeCollisionError(scope)
            seen.add(scope)

    def _observe(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.observe_verification(outcome)

    def _observe_attr(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.observe_attr_cert(outcome)


async def _deliver(pending: Awaitable[VerificationResult], callback: VerifyCallback) -> Optional[VerificationResult]:
    try:
        result = await pending
    except Exception as e:
        callback(e, None)
        return None
    callback(None, result)
    return result


def verify(
    resolver: IssuerResolver,
    args: Union[VerifyArgs, Mapping[str, Any]],
    callback: Optional[VerifyCallback] = None,
    config: Optional[VerifierConfig] = None,
) -> Awaitable[Optional[VerificationResult]]:
    """Verify an assertion bundle.

    Returns an awaitable. Without a callback it resolves to the
    VerificationResult or raises. With a callback, the callback receives
    (error, None) or (None, result) exactly once and the awaitable resolves
    to the result or None. Malformed calls raise immediately either way.
    """
    pending = Verifier(resolver, config).verify(args)
    if callback is None:
        return pending
    return _deliver(pending, callback)


__all__ = [
    "CLAIM_NAMES",
    "CLAIM_SOURCES",
    "VerificationResult",
    "Verifier",
    "aggregate_attribute_claims",
    "verify",
]
