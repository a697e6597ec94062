"""
Token codecs: parsing, bundling and single-signature verification.
"""

from .base import Bundle, DecodedToken, TokenCodec
from .issue import TokenIssuer
from .jwt import (
    BUNDLE_SEPARATOR,
    JWTCodec,
    JWTCodecConfig,
    algorithms_for_key,
    load_public_key,
    public_jwk,
)

__all__ = [
    "Bundle",
    "DecodedToken",
    "TokenCodec",
    "TokenIssuer",
    "BUNDLE_SEPARATOR",
    "JWTCodec",
    "JWTCodecConfig",
    "algorithms_for_key",
    "load_public_key",
    "public_jwk",
]
