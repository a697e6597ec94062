"""
Helpers for minting certificates, assertions and attribute certificates.

Identity providers and user agents live outside this package; these helpers
exist so tooling and tests can produce well-formed bundles.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..config import BINDING_IN_HEADER, REVISION_JAC, ProtocolRevision
from ..digest import DigestBinder
from .jwt import JWTCodec, public_jwk


class TokenIssuer:
    """Signs protocol tokens with the JWS codec."""

    def __init__(
        self,
        codec: Optional[JWTCodec] = None,
        revision: ProtocolRevision = REVISION_JAC,
        binder: Optional[DigestBinder] = None,
    ):
        self.codec = codec or JWTCodec()
        self.revision = revision
        self.binder = binder or DigestBinder(revision.digest_algorithms)

    def certificate(
        self,
        issuer: str,
        issuer_key: Any,
        subject_key: Any,
        *,
        email: Optional[str] = None,
        sub: Optional[str] = None,
        issued_at: int,
        expires_at: int,
        principal: Optional[Dict[str, Any]] = None,
        **claims: Any,
    ) -> str:
        """Certify `subject_key` on behalf of `issuer`."""
        payload: Dict[str, Any] = {
            "iss": issuer,
            "iat": issued_at,
            "exp": expires_at,
            "public-key": public_jwk(subject_key),
        }
        if principal is not None or email is not None:
            principal = dict(principal or {})
            if email is not None:
                principal["email"] = email
            payload["principal"] = principal
        if sub is not None:
            payload["sub"] = sub
        payload.update(claims)
        return self.codec.sign(payload, issuer_key)

    def assertion(
        self,
        audience: str,
        user_key: Any,
        *,
        expires_at: int,
        attribute_certs: Optional[List[str]] = None,
        **claims: Any,
    ) -> str:
        payload: Dict[str, Any] = {"aud": audience, "exp": expires_at}
        if attribute_certs is not None:
            payload[self.revision.attr_cert_claim] = list(attribute_certs)
        payload.update(claims)
        return self.codec.sign(payload, user_key)

    def attribute_certificate(
        self,
        issuer_key: Any,
        primary_cert: str,
        scope: str,
        *,
        issued_at: int,
        expires_at: int,
        iss: Optional[str] = None,
        alg: str = "S256",
        binding: Optional[Dict[str, Any]] = None,
        **claims: Any,
    ) -> str:
        """Sign claims under `scope`, bound to `primary_cert` by digest.

        Pass `binding` to override the computed descriptor.
        """
        descriptor = binding if binding is not None else self.binder.descriptor(primary_cert, alg)
        payload: Dict[str, Any] = {"scope": scope, "iat": issued_at, "exp": expires_at}
        if iss is not None:
            payload["iss"] = iss
        headers: Dict[str, Any] = {}
        if self.revision.binding_location == BINDING_IN_HEADER:
            headers[self.revision.binding_field] = descriptor
        else:
            payload[self.revision.binding_field] = descriptor
        payload.update(claims)
        return self.codec.sign(payload, issuer_key, headers=headers)

    def bundle(self, certs: List[str], assertion: str) -> str:
        return self.codec.bundle(certs, assertion)


__all__ = ["TokenIssuer"]
