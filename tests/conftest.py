from typing import Callable, Dict, List, Optional

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from idassert.codec import JWTCodec, TokenIssuer, public_jwk
from idassert.resolver import StaticIssuerResolver

# Fixed verification instant (ms) so validity windows are deterministic.
NOW = 1_700_000_000_000
MINUTE = 60_000
HOUR = 60 * MINUTE

AUDIENCE = "https://example.com"
IDP = "idp.example"


@pytest.fixture(scope="session")
def idp_key():
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture(scope="session")
def other_idp_key():
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture(scope="session")
def user_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def codec():
    return JWTCodec()


@pytest.fixture
def issuer(codec):
    return TokenIssuer(codec)


@pytest.fixture
def resolver(idp_key, other_idp_key):
    r = StaticIssuerResolver()
    r.add_issuer(IDP, public_jwk(idp_key))
    r.add_issuer("other.example", public_jwk(other_idp_key))
    r.delegate("example.com", IDP)
    return r


@pytest.fixture
def mint(issuer, idp_key, user_key):
    """Build a bundle; returns (bundle, leaf certificate)."""

    def _mint(
        email: Optional[str] = "alice@example.com",
        iss: str = IDP,
        signing_key=None,
        audience: str = AUDIENCE,
        sub: Optional[str] = None,
        cert_claims: Optional[Dict] = None,
        assertion_claims: Optional[Dict] = None,
        attribute_certs: Optional[Callable[[str], List[str]]] = None,
        cert_exp: int = NOW + HOUR,
        assertion_exp: int = NOW + 2 * MINUTE,
        tokenissuer: Optional[TokenIssuer] = None,
    ):
        ti = tokenissuer or issuer
        cert = ti.certificate(
            iss,
            signing_key or idp_key,
            user_key,
            email=email,
            sub=sub,
            issued_at=NOW - MINUTE,
            expires_at=cert_exp,
            **(cert_claims or {}),
        )
        attrs = attribute_certs(cert) if attribute_certs else None
        assertion = ti.assertion(
            audience,
            user_key,
            expires_at=assertion_exp,
            attribute_certs=attrs,
            **(assertion_claims or {}),
        )
        return ti.bundle([cert], assertion), cert

    return _mint
