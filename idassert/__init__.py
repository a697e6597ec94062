"""
idassert Python Package

Verification of federated identity assertions (BrowserID/Persona style):
certificate chain checks, attribute certificates and issuer trust.
"""

__version__ = "0.1.0"

from .claims import Claims, extract_extra_claims
from .config import (
    REVISION_ATTR_CERTS,
    REVISION_JAC,
    REVISIONS,
    ProtocolRevision,
    VerifierConfig,
    VerifyArgs,
    get_revision,
)
from .digest import DigestBinder
from .errors import (
    AudienceMismatchError,
    BundleUnpackError,
    ChainTooLongError,
    ChainVerificationError,
    ConfigurationError,
    ExpiredSignatureError,
    IdAssertError,
    InvalidSignatureError,
    IssuerLookupError,
    MalformedInvocationError,
    NoPrincipalUntrustedError,
    ScopeCollisionError,
    TrustError,
    UnsupportedDigestError,
    UntrustedIssuerError,
)
from .resolver import IssuerDetails, IssuerResolver, LookupRequest, StaticIssuerResolver
from .verify import VerificationResult, Verifier, verify

__all__ = [
    "Claims",
    "extract_extra_claims",
    "REVISION_ATTR_CERTS",
    "REVISION_JAC",
    "REVISIONS",
    "ProtocolRevision",
    "VerifierConfig",
    "VerifyArgs",
    "get_revision",
    "DigestBinder",
    "AudienceMismatchError",
    "BundleUnpackError",
    "ChainTooLongError",
    "ChainVerificationError",
    "ConfigurationError",
    "ExpiredSignatureError",
    "IdAssertError",
    "InvalidSignatureError",
    "IssuerLookupError",
    "MalformedInvocationError",
    "NoPrincipalUntrustedError",
    "ScopeCollisionError",
    "TrustError",
    "UnsupportedDigestError",
    "UntrustedIssuerError",
    "IssuerDetails",
    "IssuerResolver",
    "LookupRequest",
    "StaticIssuerResolver",
    "VerificationResult",
    "Verifier",
    "verify",
]
