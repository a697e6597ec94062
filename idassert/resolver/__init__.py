"""
Issuer resolvers map a domain to its signing key and authoritative issuer.

Key discovery over DNS/HTTP is not part of this package; plug a resolver
that performs it into the verifier, optionally behind CachingIssuerResolver.
"""

from .base import IssuerDetails, IssuerResolver, LookupRequest
from .cache import (
    CachingIssuerResolver,
    CachingResolverConfig,
    DetailsCache,
    MemoryDetailsCache,
    RedisDetailsCache,
)
from .memory import StaticIssuerResolver

__all__ = [
    "IssuerDetails",
    "IssuerResolver",
    "LookupRequest",
    "StaticIssuerResolver",
    "CachingIssuerResolver",
    "CachingResolverConfig",
    "DetailsCache",
    "MemoryDetailsCache",
    "RedisDetailsCache",
]
