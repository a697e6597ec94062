import pytest

from idassert.config import VerifyArgs
from idassert.errors import (
    AudienceMismatchError,
    BundleUnpackError,
    ChainTooLongError,
    ExpiredSignatureError,
    InvalidSignatureError,
    IssuerLookupError,
)
from idassert.resolver import IssuerDetails, IssuerResolver
from idassert.verify.chain import ChainVerifier, email_domain, principal_email

from conftest import AUDIENCE, HOUR, IDP, MINUTE, NOW


def make_args(bundle, audience=AUDIENCE, **kwargs):
    return VerifyArgs(assertion=bundle, audience=audience, now=NOW, **kwargs)


class RecordingResolver(IssuerResolver):
    def __init__(self, inner):
        self.inner = inner
        self.requests = []

    async def lookup(self, request):
        self.requests.append(request)
        return await self.inner.lookup(request)


class TestPrincipal:
    def test_principal_email_preferred(self):
        assert principal_email({"principal": {"email": "a@x.org"}, "sub": "b@y.org"}) == "a@x.org"

    def test_sub_fallback(self):
        assert principal_email({"sub": "b@y.org"}) == "b@y.org"
        assert principal_email({"principal": {}, "sub": "b@y.org"}) == "b@y.org"

    def test_no_email(self):
        assert principal_email({}) is None
        assert principal_email({"sub": 42}) is None

    def test_domain_is_lowercased(self):
        assert email_domain("Alice@Example.COM") == "example.com"

    def test_domain_requires_at_sign(self):
        assert email_domain("alice") is None
        assert email_domain("alice@") is None


@pytest.mark.asyncio
async def test_verifies_single_hop_chain(codec, resolver, mint):
    bundle, cert = mint(assertion_claims={"nonce": "n1"})
    recording = RecordingResolver(resolver)
    args = make_args(bundle, extra={"extra_option": "x"})
    outcome = await ChainVerifier(codec).verify_chain(bundle, NOW, recording, args)

    assert outcome.issuer == IDP
    assert outcome.leaf_cert == cert
    assert outcome.audience == AUDIENCE
    assert outcome.expires_at == NOW + 2 * MINUTE
    assert outcome.email == "alice@example.com"
    assert outcome.principal_domain == "example.com"
    assert outcome.user_claims["nonce"] == "n1"
    # The principal's domain and caller options travel with each key lookup.
    assert [(r.domain, r.principal_domain) for r in recording.requests] == [(IDP, "example.com")]
    assert recording.requests[0].args == {"extra_option": "x"}


@pytest.mark.asyncio
async def test_sub_claim_supplies_principal_domain(codec, resolver, mint):
    bundle, _ = mint(email=None, sub="bob@Example.com")
    outcome = await ChainVerifier(codec).verify_chain(bundle, NOW, resolver, make_args(bundle))
    assert outcome.principal_domain == "example.com"
    assert outcome.email is None


@pytest.mark.asyncio
async def test_chain_longer_than_one_rejected_before_crypto(codec, resolver, mint):
    bundle, cert = mint()
    certs, assertion = bundle.split("~")[:-1], bundle.split("~")[-1]
    # Second "certificate" is not even a valid token.
    long_bundle = codec.bundle(certs + ["x.y.z"], assertion)
    recording = RecordingResolver(resolver)
    with pytest.raises(ChainTooLongError):
        await ChainVerifier(codec).verify_chain(long_bundle, NOW, recording, make_args(long_bundle))
    assert recording.requests == []


@pytest.mark.asyncio
async def test_audience_mismatch(codec, resolver, mint):
    bundle, _ = mint(audience="https://evil.example")
    with pytest.raises(AudienceMismatchError) as exc:
        await ChainVerifier(codec).verify_chain(bundle, NOW, resolver, make_args(bundle))
    assert "audience mismatch" in str(exc.value)


@pytest.mark.asyncio
async def test_custom_audience_matcher(codec, resolver, mint):
    bundle, _ = mint(audience="anything")
    verifier = ChainVerifier(codec, audience_matcher=lambda got, want: None)
    outcome = await verifier.verify_chain(bundle, NOW, resolver, make_args(bundle))
    assert outcome.audience == "anything"


@pytest.mark.asyncio
async def test_unknown_issuer_lookup_error_propagates(codec, resolver, mint):
    bundle, _ = mint(iss="unknown.example")
    with pytest.raises(IssuerLookupError):
        await ChainVerifier(codec).verify_chain(bundle, NOW, resolver, make_args(bundle))


@pytest.mark.asyncio
async def test_resolver_exception_propagates_as_is(codec, mint):
    class Broken(IssuerResolver):
        async def lookup(self, request):
            raise ConnectionError("directory down")

    bundle, _ = mint()
    with pytest.raises(ConnectionError):
        await ChainVerifier(codec).verify_chain(bundle, NOW, Broken(), make_args(bundle))


@pytest.mark.asyncio
async def test_certificate_signed_by_wrong_key(codec, resolver, mint, other_idp_key):
    bundle, _ = mint(signing_key=other_idp_key)
    with pytest.raises(InvalidSignatureError):
        await ChainVerifier(codec).verify_chain(bundle, NOW, resolver, make_args(bundle))


@pytest.mark.asyncio
async def test_assertion_signed_by_other_key(codec, issuer, resolver, idp_key, user_key, other_idp_key):
    cert = issuer.certificate(IDP, idp_key, user_key, email="a@example.com",
                              issued_at=NOW - MINUTE, expires_at=NOW + HOUR)
    assertion = issuer.assertion(AUDIENCE, other_idp_key, expires_at=NOW + MINUTE)
    bundle = codec.bundle([cert], assertion)
    with pytest.raises(InvalidSignatureError):
        await ChainVerifier(codec).verify_chain(bundle, NOW, resolver, make_args(bundle))


@pytest.mark.asyncio
async def test_expired_certificate(codec, resolver, mint):
    bundle, _ = mint(cert_exp=NOW - 1)
    with pytest.raises(ExpiredSignatureError):
        await ChainVerifier(codec).verify_chain(bundle, NOW, resolver, make_args(bundle))


@pytest.mark.asyncio
async def test_expired_assertion(codec, resolver, mint):
    bundle, _ = mint(assertion_exp=NOW - 1)
    with pytest.raises(ExpiredSignatureError):
        await ChainVerifier(codec).verify_chain(bundle, NOW, resolver, make_args(bundle))


@pytest.mark.asyncio
async def test_resolver_returning_key_object(codec, mint, idp_key):
    class KeyObjectResolver(IssuerResolver):
        async def lookup(self, request):
            return IssuerDetails(public_key=idp_key.public_key())

    bundle, _ = mint()
    outcome = await ChainVerifier(codec).verify_chain(bundle, NOW, KeyObjectResolver(), make_args(bundle))
    assert outcome.issuer == IDP


@pytest.mark.asyncio
async def test_unparseable_bundle(codec, resolver):
    verifier = ChainVerifier(codec)
    assert verifier.discover_principal("not a bundle") == (None, None)
    with pytest.raises(BundleUnpackError):
        await verifier.verify_chain("not a bundle", NOW, resolver, make_args("not a bundle"))
