"""
Error types raised while verifying identity assertions.

Every fatal condition aborts the whole verification; there is no
partial-trust result.
"""

from typing import Optional


class IdAssertError(Exception):
    """Base class for all idassert errors."""


class ConfigurationError(IdAssertError):
    """Invalid verifier configuration (unknown revision, bad env value)."""


class MalformedInvocationError(IdAssertError, ValueError):
    """Raised synchronously when required verify() arguments are missing."""


class BundleUnpackError(IdAssertError, ValueError):
    """The bundle could not be split or a token could not be decoded."""


class UnsupportedDigestError(IdAssertError, ValueError):
    """Requested digest algorithm is not in the configured table."""


class ChainVerificationError(IdAssertError):
    """A link of the certificate chain failed verification."""


class InvalidSignatureError(ChainVerificationError):
    """Signature does not verify under the resolved public key."""


class ExpiredSignatureError(ChainVerificationError):
    """Token is expired or not yet valid at the verification instant."""


class IssuerLookupError(ChainVerificationError):
    """The issuer resolver could not produce a public key for a domain."""

    def __init__(self, domain: str, reason: str = ""):
        self.domain = domain
        self.reason = reason
        message = f"unable to resolve public key for '{domain}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ChainTooLongError(IdAssertError):
    def __init__(self, length: int):
        self.length = length
        super().__init__("certificate chaining is not yet allowed")


class AudienceMismatchError(IdAssertError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"audience mismatch: {detail}")


class ScopeCollisionError(IdAssertError):
    def __init__(self, scope: Optional[str] = None):
        self.scope = scope
        super().__init__("multiple attribute certificates with same scope")


class TrustError(IdAssertError):
    """The ultimate issuer is not entitled to speak for the principal."""


class UntrustedIssuerError(TrustError):
    def __init__(self, expected: Optional[str], actual: Optional[str]):
        self.expected = expected
        self.actual = actual
        super().__init__(f"untrusted issuer, expected '{expected}', got '{actual}'")


class NoPrincipalUntrustedError(TrustError):
    def __init__(self):
        super().__init__("untrusted assertion, doesn't contain an email, and issuer is untrusted")


__all__ = [
    "IdAssertError",
    "ConfigurationError",
    "MalformedInvocationError",
    "BundleUnpackError",
    "UnsupportedDigestError",
    "ChainVerificationError",
    "InvalidSignatureError",
    "ExpiredSignatureError",
    "IssuerLookupError",
    "ChainTooLongError",
    "AudienceMismatchError",
    "ScopeCollisionError",
    "TrustError",
    "UntrustedIssuerError",
    "NoPrincipalUntrustedError",
]
