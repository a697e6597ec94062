"""
JWS token codec backed by PyJWT.

Tokens are JWS compact serializations whose payloads carry millisecond
timestamps (exp, nbf, iat). A bundle is the certificates followed by the
assertion, joined with '~'. Public keys are given either as JWK mappings
(the `public-key` claim of a certificate) or as `cryptography` key objects.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

import jwt
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from ..errors import (
    BundleUnpackError,
    ChainVerificationError,
    ExpiredSignatureError,
    InvalidSignatureError,
)
from .base import Bundle, DecodedToken, TokenCodec

logger = logging.getLogger(__name__)

BUNDLE_SEPARATOR = "~"

RSA_ALGORITHMS = ("RS256", "RS384", "RS512", "PS256", "PS384", "PS512")
EC_ALGORITHMS = {
    "secp256r1": ("ES256",),
    "secp384r1": ("ES384",),
    "secp521r1": ("ES512",),
}
OKP_ALGORITHMS = ("EdDSA",)


@dataclass
class JWTCodecConfig:
    """JWS codec settings."""
    separator: str = BUNDLE_SEPARATOR
    clock_skew_ms: int = 0
    require_exp: bool = True
    # Empty means "whatever the key type supports".
    allowed_algorithms: Sequence[str] = field(default_factory=tuple)


def load_public_key(public_key: Any) -> Any:
    """Turn a JWK mapping (or PyJWK) into a cryptography public key."""
    if isinstance(public_key, jwt.PyJWK):
        return public_key.key
    if isinstance(public_key, Mapping):
        try:
            return jwt.PyJWK(dict(public_key)).key
        except jwt.PyJWTError as e:
            raise InvalidSignatureError(f"unusable public key: {e}") from e
    return public_key


def algorithms_for_key(key: Any) -> List[str]:
    if isinstance(key, (rsa.RSAPublicKey, rsa.RSAPrivateKey)):
        return list(RSA_ALGORITHMS)
    if isinstance(key, (ec.EllipticCurvePublicKey, ec.EllipticCurvePrivateKey)):
        return list(EC_ALGORITHMS.get(key.curve.name, ()))
    if isinstance(key, (ed25519.Ed25519PublicKey, ed25519.Ed25519PrivateKey)):
        return list(OKP_ALGORITHMS)
    return []


def public_jwk(key: Any) -> dict:
    """Export the public half of a cryptography key as a JWK dict."""
    if hasattr(key, "public_key"):
        key = key.public_key()
    if isinstance(key, rsa.RSAPublicKey):
        exported = jwt.algorithms.RSAAlgorithm.to_jwk(key)
    elif isinstance(key, ec.EllipticCurvePublicKey):
        exported = jwt.algorithms.ECAlgorithm.to_jwk(key)
    elif isinstance(key, ed25519.Ed25519PublicKey):
        exported = jwt.algorithms.OKPAlgorithm.to_jwk(key)
    else:
        raise TypeError(f"unsupported key type: {type(key).__name__}")
    if isinstance(exported, str):
        exported = json.loads(exported)
    return dict(exported)


class JWTCodec(TokenCodec):
    """TokenCodec implementation using PyJWT's JWS layer."""

    def __init__(self, config: Optional[JWTCodecConfig] = None):
        self.config = config or JWTCodecConfig()
        self._jws = jwt.PyJWS()

    def unbundle(self, bundle: str) -> Bundle:
        if not isinstance(bundle, str) or not bundle:
            raise BundleUnpackError("bundle must be a non-empty string")
        parts = bundle.split(self.config.separator)
        if len(parts) < 2 or not all(parts):
            raise BundleUnpackError("bundle must contain at least one certificate and an assertion")
        return Bundle(certs=parts[:-1], signed_assertion=parts[-1])

    def bundle(self, certs: List[str], signed_assertion: str) -> str:
        return self.config.separator.join(list(certs) + [signed_assertion])

    def decode(self, token: str) -> DecodedToken:
        try:
            header = jwt.get_unverified_header(token)
            payload = self._load_payload(self._jws.decode(token, options={"verify_signature": False}))
        except (jwt.PyJWTError, ValueError) as e:
            raise BundleUnpackError(f"malformed token: {e}") from e
        return DecodedToken(raw=token, header=header, payload=payload)

    async def verify(self, token: str, public_key: Any, now: int) -> DecodedToken:
        key = load_public_key(public_key)
        allowed = algorithms_for_key(key)
        if self.config.allowed_algorithms:
            allowed = [a for a in allowed if a in self.config.allowed_algorithms]
        if not allowed:
            raise InvalidSignatureError(f"no signature algorithm usable with key type {type(key).__name__}")

        try:
            decoded = self._jws.decode_complete(token, key=key, algorithms=allowed)
            payload = self._load_payload(decoded["payload"])
        except jwt.InvalidSignatureError as e:
            raise InvalidSignatureError("bad signature") from e
        except (jwt.PyJWTError, ValueError) as e:
            raise InvalidSignatureError(f"unverifiable token: {e}") from e

        self._check_validity(payload, now)
        return DecodedToken(raw=token, header=dict(decoded["header"]), payload=payload)

    def sign(self, payload: Mapping[str, Any], private_key: Any, headers: Optional[Mapping[str, Any]] = None) -> str:
        algorithms = algorithms_for_key(private_key)
        if not algorithms:
            raise TypeError(f"unsupported key type: {type(private_key).__name__}")
        body = json.dumps(dict(payload), separators=(",", ":")).encode("utf-8")
        token = self._jws.encode(body, private_key, algorithm=algorithms[0], headers=dict(headers or {}))
        if isinstance(token, bytes):
            token = token.decode("utf-8")
        return token

    @staticmethod
    def _load_payload(raw: bytes) -> dict:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("token payload must be a JSON object")
        return payload

    def _check_validity(self, payload: Mapping[str, Any], now: int) -> None:
        skew = self.config.clock_skew_ms
        exp = payload.get("exp")
        if exp is None:
            if self.config.require_exp:
                raise ChainVerificationError("token carries no expiry")
        elif not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise ChainVerificationError("malformed 'exp' claim")
        elif exp < now - skew:
            raise ExpiredSignatureError(f"expired at {exp}, now {now}")

        nbf = payload.get("nbf")
        if isinstance(nbf, (int, float)) and not isinstance(nbf, bool) and nbf > now + skew:
            raise ExpiredSignatureError(f"not valid before {nbf}, now {now}")

        iat = payload.get("iat")
        if isinstance(iat, (int, float)) and not isinstance(iat, bool) and iat > now + skew:
            raise ExpiredSignatureError("issued later than verification date")


__all__ = [
    "BUNDLE_SEPARATOR",
    "JWTCodecConfig",
    "JWTCodec",
    "load_public_key",
    "algorithms_for_key",
    "public_jwk",
]
