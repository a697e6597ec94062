"""
Configuration objects for the assertion verifier.

Protocol revisions are immutable tables injected into each component at
construction; nothing here is mutated at runtime.
"""

from __future__ import annotations

import hashlib
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Union

from .errors import ConfigurationError, MalformedInvocationError

# Registered claim names from RFC 7519.
JWT_REGISTERED_CLAIMS: FrozenSet[str] = frozenset({
    "iss",
    "sub",
    "aud",
    "exp",
    "nbf",
    "iat",
    "jti",
})

DIGEST_ALGORITHMS: Mapping[str, Callable[..., Any]] = MappingProxyType({
    "S256": hashlib.sha256,
    "S512": hashlib.sha512,
})

BINDING_IN_PAYLOAD = "payload"
BINDING_IN_HEADER = "header"

# Audience matcher contract: returns a diagnostic string on mismatch, else None.
AudienceMatcher = Callable[[Any, Any], Optional[str]]


@dataclass(frozen=True)
class ProtocolRevision:
    """Describes how one protocol revision carries attribute certificates."""
    name: str
    attr_cert_claim: str
    reserved_claims: FrozenSet[str]
    binding_location: str = BINDING_IN_PAYLOAD
    binding_field: str = "cdi"
    digest_algorithms: Mapping[str, Callable[..., Any]] = field(
        default_factory=lambda: DIGEST_ALGORITHMS, compare=False, repr=False
    )

    def binding_descriptor(self, header: Mapping[str, Any], payload: Mapping[str, Any]) -> Any:
        """Return the {alg, dig} descriptor of an attribute certificate."""
        source = header if self.binding_location == BINDING_IN_HEADER else payload
        return source.get(self.binding_field)


REVISION_JAC = ProtocolRevision(
    name="jac",
    attr_cert_claim="jac",
    reserved_claims=JWT_REGISTERED_CLAIMS | {
        "public-key",
        "principal",
        "jac",                # attribute certificates in assertion
        "cdi",                # certificate digest information
        "scope",              # attribute certificate scope
        "scope_description",  # scope display name
    },
)

REVISION_ATTR_CERTS = ProtocolRevision(
    name="attr-certs",
    attr_cert_claim="attr-certs",
    reserved_claims=JWT_REGISTERED_CLAIMS | {
        "public-key",
        "principal",
        "attr-certs",
        "scope",
        "scope_description",
    },
    binding_location=BINDING_IN_HEADER,
)

REVISIONS: Mapping[str, ProtocolRevision] = MappingProxyType({
    REVISION_JAC.name: REVISION_JAC,
    REVISION_ATTR_CERTS.name: REVISION_ATTR_CERTS,
})


def get_revision(name: str) -> ProtocolRevision:
    try:
        return REVISIONS[name]
    except KeyError:
        raise ConfigurationError(f"unknown protocol revision '{name}'") from None


def env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got '{raw}'")


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from None


@dataclass
class VerifierConfig:
    """Verifier-wide settings shared by every verify() call."""
    revision: str = REVISION_JAC.name
    audience_matcher: Optional[AudienceMatcher] = None
    aggregate_attr_certs: bool = False
    clock_skew_ms: int = 0
    metrics_enabled: bool = True

    def __post_init__(self):
        # Fail early on typos.
        get_revision(self.revision)
        if self.clock_skew_ms < 0:
            raise ConfigurationError("clock_skew_ms must not be negative")

    @property
    def protocol(self) -> ProtocolRevision:
        return get_revision(self.revision)

    @classmethod
    def from_env(cls, **overrides: Any) -> "VerifierConfig":
        values: Dict[str, Any] = {
            "revision": os.getenv("IDASSERT_REVISION", REVISION_JAC.name),
            "aggregate_attr_certs": env_flag("IDASSERT_AGGREGATE_ATTR_CERTS", False),
            "clock_skew_ms": env_int("IDASSERT_CLOCK_SKEW_MS", 0),
            "metrics_enabled": env_flag("IDASSERT_METRICS", True),
        }
        values.update(overrides)
        return cls(**values)


def now_millis() -> int:
    return int(time.time() * 1000)


def to_millis(value: Union[int, float, datetime, None]) -> int:
    """Normalize a verification instant to integer epoch milliseconds."""
    if value is None:
        return now_millis()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedInvocationError(f"'now' must be epoch milliseconds or datetime, got {type(value).__name__}")
    return int(value)


def normalize_issuers(value: Any) -> Optional[FrozenSet[str]]:
    """Coerce trusted issuer input to a frozenset of domain names.

    A bare string names one issuer. Membership is always an exact match.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    elif not isinstance(value, (list, tuple, set, frozenset)):
        raise MalformedInvocationError(
            f"'trusted_issuers' must be a string or a list of strings, got {type(value).__name__}"
        )
    if not all(isinstance(issuer, str) and issuer for issuer in value):
        raise MalformedInvocationError("'trusted_issuers' entries must be non-empty strings")
    return frozenset(value)


@dataclass
class VerifyArgs:
    """Per-call verification arguments.

    `extra` is handed to the issuer resolver untouched, so callers can pass
    resolver-specific options alongside the recognized ones.
    """
    assertion: Optional[str] = None
    audience: Union[str, List[str], None] = None
    now: Union[int, float, datetime, None] = None
    trusted_issuers: Optional[FrozenSet[str]] = None
    fallback: Optional[str] = None
    aggregate_attr_certs: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.trusted_issuers = normalize_issuers(self.trusted_issuers)

    def validate(self) -> None:
        if not self.assertion:
            raise MalformedInvocationError("missing required 'assertion' argument")
        if not self.audience:
            raise MalformedInvocationError("missing required 'audience' argument")
        if not isinstance(self.assertion, str):
            raise MalformedInvocationError("'assertion' must be a string")
        self.trusted_issuers = normalize_issuers(self.trusted_issuers)

    def is_trusted(self, issuer: Optional[str]) -> bool:
        return bool(self.trusted_issuers) and issuer in normalize_issuers(self.trusted_issuers)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "VerifyArgs":
        """Build from a plain mapping; accepts snake_case and camelCase names."""
        known = {
            "assertion", "audience", "now", "fallback",
            "trusted_issuers", "trustedIssuers",
            "aggregate_attr_certs", "aggregateAttrCertClaims",
            "flatten_attr_certs", "flattenAttrCerts",
        }
        aggregate = None
        for key in ("aggregate_attr_certs", "aggregateAttrCertClaims", "flatten_attr_certs", "flattenAttrCerts"):
            if data.get(key) is not None:
                aggregate = bool(data[key])
                break
        trusted = data.get("trusted_issuers", data.get("trustedIssuers"))
        return cls(
            assertion=data.get("assertion"),
            audience=data.get("audience"),
            now=data.get("now"),
            trusted_issuers=trusted,
            fallback=data.get("fallback"),
            aggregate_attr_certs=aggregate,
            extra={k: v for k, v in data.items() if k not in known},
        )


__all__ = [
    "JWT_REGISTERED_CLAIMS",
    "DIGEST_ALGORITHMS",
    "BINDING_IN_PAYLOAD",
    "BINDING_IN_HEADER",
    "AudienceMatcher",
    "ProtocolRevision",
    "REVISION_JAC",
    "REVISION_ATTR_CERTS",
    "REVISIONS",
    "get_revision",
    "VerifierConfig",
    "VerifyArgs",
    "normalize_issuers",
    "env_flag",
    "env_int",
    "now_millis",
    "to_millis",
]
