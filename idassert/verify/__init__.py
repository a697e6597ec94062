"""
Assertion verification pipeline: chain, attribute certificates, trust.
"""

from .attribute import AttributeCertificateVerifier, VerifiedAttributeCert
from .chain import ChainOutcome, ChainVerifier, MAX_CHAIN_LENGTH, email_domain, principal_email
from .trust import TrustResolver
from .verifier import (
    CLAIM_NAMES,
    CLAIM_SOURCES,
    VerificationResult,
    Verifier,
    aggregate_attribute_claims,
    verify,
)

__all__ = [
    "AttributeCertificateVerifier",
    "VerifiedAttributeCert",
    "ChainOutcome",
    "ChainVerifier",
    "MAX_CHAIN_LENGTH",
    "email_domain",
    "principal_email",
    "TrustResolver",
    "CLAIM_NAMES",
    "CLAIM_SOURCES",
    "VerificationResult",
    "Verifier",
    "aggregate_attribute_claims",
    "verify",
]
