from idassert.audience import compare_audiences


def test_exact_match():
    assert compare_audiences("https://example.com", "https://example.com") is None


def test_default_port_normalized():
    assert compare_audiences("https://example.com:443", "https://example.com") is None
    assert compare_audiences("http://example.com", "http://example.com:80") is None


def test_scheme_mismatch():
    assert compare_audiences("http://example.com", "https://example.com") is not None


def test_port_mismatch():
    err = compare_audiences("https://example.com:8443", "https://example.com")
    assert err and "example.com:8443" in err


def test_host_case_insensitive():
    assert compare_audiences("https://Example.COM", "https://example.com") is None


def test_any_of_list():
    assert compare_audiences("https://b.example", ["https://a.example", "https://b.example"]) is None
    assert compare_audiences("https://c.example", ["https://a.example", "https://b.example"]) is not None


def test_missing_audience():
    assert compare_audiences(None, "https://example.com") is not None
    assert compare_audiences("", "https://example.com") is not None


def test_bare_hostname_treated_as_https():
    assert compare_audiences("example.com", "https://example.com") is None


def test_malformed_port():
    assert compare_audiences("https://example.com:notaport", "https://example.com") is not None
