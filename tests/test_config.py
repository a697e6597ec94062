from datetime import datetime, timezone

import pytest

from idassert.config import (
    BINDING_IN_HEADER,
    REVISION_ATTR_CERTS,
    REVISION_JAC,
    VerifierConfig,
    VerifyArgs,
    get_revision,
    to_millis,
)
from idassert.errors import ConfigurationError, MalformedInvocationError


class TestRevisions:
    def test_lookup(self):
        assert get_revision("jac") is REVISION_JAC
        assert get_revision("attr-certs") is REVISION_ATTR_CERTS

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            get_revision("v0")

    def test_binding_locations(self):
        header = {"cdi": {"alg": "S256", "dig": "h"}}
        payload = {"cdi": {"alg": "S256", "dig": "p"}}
        assert REVISION_JAC.binding_descriptor(header, payload)["dig"] == "p"
        assert REVISION_ATTR_CERTS.binding_location == BINDING_IN_HEADER
        assert REVISION_ATTR_CERTS.binding_descriptor(header, payload)["dig"] == "h"

    def test_attribute_claim_is_reserved(self):
        for revision in (REVISION_JAC, REVISION_ATTR_CERTS):
            assert revision.attr_cert_claim in revision.reserved_claims
            assert "public-key" in revision.reserved_claims


class TestVerifierConfig:
    def test_defaults(self):
        config = VerifierConfig()
        assert config.protocol is REVISION_JAC
        assert config.aggregate_attr_certs is False
        assert config.metrics_enabled is True

    def test_rejects_unknown_revision(self):
        with pytest.raises(ConfigurationError):
            VerifierConfig(revision="nope")

    def test_rejects_negative_skew(self):
        with pytest.raises(ConfigurationError):
            VerifierConfig(clock_skew_ms=-1)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("IDASSERT_REVISION", "attr-certs")
        monkeypatch.setenv("IDASSERT_AGGREGATE_ATTR_CERTS", "yes")
        monkeypatch.setenv("IDASSERT_CLOCK_SKEW_MS", "2500")
        monkeypatch.setenv("IDASSERT_METRICS", "off")
        config = VerifierConfig.from_env()
        assert config.protocol is REVISION_ATTR_CERTS
        assert config.aggregate_attr_certs is True
        assert config.clock_skew_ms == 2500
        assert config.metrics_enabled is False

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("IDASSERT_CLOCK_SKEW_MS", "2500")
        assert VerifierConfig.from_env(clock_skew_ms=0).clock_skew_ms == 0

    @pytest.mark.parametrize("name, value", [
        ("IDASSERT_AGGREGATE_ATTR_CERTS", "maybe"),
        ("IDASSERT_CLOCK_SKEW_MS", "1s"),
        ("IDASSERT_REVISION", "v2"),
    ])
    def test_from_env_rejects_bad_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            VerifierConfig.from_env()


class TestToMillis:
    def test_int_passthrough(self):
        assert to_millis(1_700_000_000_000) == 1_700_000_000_000

    def test_datetime(self):
        assert to_millis(datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)) == 1_700_000_000_000

    def test_naive_datetime_is_utc(self):
        assert to_millis(datetime(2023, 11, 14, 22, 13, 20)) == 1_700_000_000_000

    def test_none_is_now(self):
        assert to_millis(None) > 1_700_000_000_000

    @pytest.mark.parametrize("value", ["now", True, [1]])
    def test_rejects_other_types(self, value):
        with pytest.raises(MalformedInvocationError):
            to_millis(value)


class TestVerifyArgs:
    def test_validate(self):
        VerifyArgs(assertion="a~b", audience="https://rp.example").validate()
        with pytest.raises(MalformedInvocationError):
            VerifyArgs(audience="https://rp.example").validate()
        with pytest.raises(MalformedInvocationError):
            VerifyArgs(assertion="a~b").validate()
        with pytest.raises(MalformedInvocationError):
            VerifyArgs(assertion=b"a~b", audience="https://rp.example").validate()

    def test_from_mapping_wire_names(self):
        args = VerifyArgs.from_mapping({
            "assertion": "a~b",
            "audience": "https://rp.example",
            "trustedIssuers": ["idp.example"],
            "aggregateAttrCertClaims": 1,
            "fallback": "fallback.example",
            "dnsTimeout": 5,
        })
        assert args.trusted_issuers == frozenset({"idp.example"})
        assert args.aggregate_attr_certs is True
        assert args.fallback == "fallback.example"
        assert args.extra == {"dnsTimeout": 5}

    def test_from_mapping_snake_case(self):
        args = VerifyArgs.from_mapping({
            "assertion": "a~b",
            "audience": "https://rp.example",
            "trusted_issuers": ("idp.example",),
            "flatten_attr_certs": False,
        })
        assert args.trusted_issuers == frozenset({"idp.example"})
        assert args.aggregate_attr_certs is False
        assert args.extra == {}

    def test_is_trusted(self):
        assert VerifyArgs(trusted_issuers=["idp.example"]).is_trusted("idp.example")
        assert not VerifyArgs(trusted_issuers=["idp.example"]).is_trusted("other.example")
        assert not VerifyArgs().is_trusted("idp.example")

    def test_bare_string_names_one_issuer(self):
        args = VerifyArgs(trusted_issuers="notidp.example")
        assert args.trusted_issuers == frozenset({"notidp.example"})
        assert args.is_trusted("notidp.example")
        # Membership is exact, never a substring test.
        assert not args.is_trusted("idp.example")

    def test_from_mapping_bare_string(self):
        args = VerifyArgs.from_mapping({
            "assertion": "a~b",
            "audience": "https://rp.example",
            "trustedIssuers": "idp.example",
        })
        assert args.trusted_issuers == frozenset({"idp.example"})
        assert args.is_trusted("idp.example")
        assert not args.is_trusted("i")

    @pytest.mark.parametrize("value", [42, {"idp.example": True}, ["idp.example", 7], [""]])
    def test_rejects_malformed_trusted_issuers(self, value):
        with pytest.raises(MalformedInvocationError):
            VerifyArgs(trusted_issuers=value)
        with pytest.raises(MalformedInvocationError):
            VerifyArgs.from_mapping({"assertion": "a~b", "audience": "https://rp.example", "trustedIssuers": value})

    def test_validate_normalizes_reassigned_value(self):
        args = VerifyArgs(assertion="a~b", audience="https://rp.example")
        args.trusted_issuers = "notidp.example"
        args.validate()
        assert args.trusted_issuers == frozenset({"notidp.example"})
        assert not args.is_trusted("idp.example")
