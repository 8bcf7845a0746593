from a11yextract.uri_tail import friendly_uri_end, parse_uri


def test_file_name_is_used_as_tail() -> None:
    assert friendly_uri_end("/static/images/logo.png") == "logo.png"
    assert friendly_uri_end("https://cdn.example.com/assets/app-bundle.js") == "app-bundle.js"


def test_bare_domain_is_returned_without_www() -> None:
    assert friendly_uri_end("https://www.example.com/") == "example.com/"


def test_unusable_uris_have_no_tail() -> None:
    assert friendly_uri_end("data:image/png;base64,AAAA") is None
    assert friendly_uri_end("javascript:void(0)") is None
    assert friendly_uri_end("/search?q=shoes") is None
    assert friendly_uri_end("/") is None
    assert friendly_uri_end("") is None
    assert friendly_uri_end(None) is None


def test_numeric_and_index_paths_have_no_tail() -> None:
    assert friendly_uri_end("/orders/12345") is None
    assert friendly_uri_end("/docs/index.html") is None


def test_hash_tails() -> None:
    assert friendly_uri_end("#top") == "#top"
    assert friendly_uri_end("/guide/page#section") == "page#section"
    assert friendly_uri_end("/guide/a-very-long-page-name#and-a-long-section") is None


def test_parse_uri_parts() -> None:
    parts = parse_uri("https://example.com:8443/a/b.html#frag")
    assert parts.protocol == "https"
    assert parts.domain == "example.com"
    assert parts.port == "8443"
    assert parts.path == "/a/b.html"
    assert parts.hash == "#frag"
