import logging
from dataclasses import replace
from contextlib import contextmanager

import pytest

from a11yextract.browser_manager import StaticRenderer
from a11yextract.config import ExtractionSettings
from a11yextract.document import DocumentTree, parse_markup
from a11yextract.errors import InvalidMarkupError
from a11yextract.extraction import (
    ALLOWLIST,
    DEFAULT_CAPABILITIES,
    FUNCTION_NOT_AVAILABLE,
    SELECTOR_ERROR,
    XPATH_ERROR,
    Capabilities,
    extract_accessible_text,
    extract_from_document,
    extract_links,
)
from a11yextract.selector_rules import EXPOSED_ATTRIBUTE
from a11yextract.validation import validate_selector

STATIC = ExtractionSettings(renderer="static")

PAGE = """
<div id="x"><span aria-label="Hello"> ignored text </span></div>
<div class="menu">
  <a class="nav-link" href="/docs/guide.html">Guide</a>
  <a class="nav-link" href="/docs/faq.html" title="Questions">FAQ</a>
</div>
<button><img alt="Go"/> </button>
<span role="link" tabindex="0">Open</span>
"""


class _RecordingRenderer:
    def __init__(self) -> None:
        self.rendered: list[str] = []

    @contextmanager
    def render(self, markup: str):
        self.rendered.append(markup)
        yield DocumentTree(parse_markup(markup))


def _by_tag(records, tag):
    return [record for record in records if record.tag_name == tag]


def test_allowlist_order_and_size() -> None:
    assert len(ALLOWLIST) == 51
    assert ALLOWLIST[:2] == ("a[href]", '[role="link"]')
    assert ALLOWLIST[-1] == "xhtml\\:span"


def test_extracts_each_element_once_in_allowlist_order() -> None:
    records = extract_accessible_text(PAGE, settings=STATIC)

    tags = [record.tag_name for record in records]
    assert tags[:4] == ["a", "a", "span", "button"]
    assert tags[4:] == ["img", "div", "span"]
    assert sum(1 for record in records if record.aria_label == "Hello") == 1


def test_record_fields() -> None:
    records = extract_accessible_text(PAGE, settings=STATIC)

    hello = next(record for record in records if record.aria_label == "Hello")
    assert hello.accessible_text == "Hello"
    assert hello.inner_text == " ignored text "
    assert hello.selector == '#x > span[aria-label="Hello"]'
    assert hello.xpath == "//div[@id='x']/span"

    button = _by_tag(records, "button")[0]
    assert button.accessible_text == "Go"

    image = _by_tag(records, "img")[0]
    assert image.accessible_text == "Go"
    assert image.alt == "Go"

    guide, faq = _by_tag(records, "a")
    assert guide.selector != faq.selector
    assert guide.href == "/docs/guide.html"
    assert faq.title == "Questions"
    assert guide.title is None


def test_original_markup_is_captured_before_instrumentation() -> None:
    records = extract_accessible_text(PAGE, settings=STATIC)
    assert all(EXPOSED_ATTRIBUTE not in record.element for record in records if record.tag_name == "a")

    tree = DocumentTree(parse_markup(PAGE))
    extract_from_document(tree, settings=STATIC)
    links = tree.query_all("a")
    assert all(link.get(EXPOSED_ATTRIBUTE) == "true" for link in links)


def test_to_dict_uses_wire_keys_and_omits_absent_fields() -> None:
    records = extract_accessible_text('<img src="/a/photo.jpg" alt="Sunset">', settings=STATIC)
    payload = records[0].to_dict()

    assert payload["tagName"] == "img"
    assert payload["accessibleText"] == "Sunset"
    assert payload["alt"] == "Sunset"
    assert "ariaLabel" not in payload
    assert "pseudoBefore" not in payload
    assert set(payload) >= {"element", "innerText", "xpath", "selector"}


def test_pseudo_content_fields() -> None:
    markup = (
        '<style>#pseudo-1::before { content: "Note: " }</style>'
        '<div id="pseudo-1">Read this</div>'
    )
    records = extract_accessible_text(markup, settings=STATIC)
    record = next(item for item in records if item.tag_name == "div")

    assert record.pseudo_before == "Note: "
    assert record.pseudo_after is None
    assert record.accessible_text == "Note: Read this"
    assert record.to_dict()["pseudoBefore"] == "Note: "


def test_missing_capabilities_degrade_to_sentinels() -> None:
    capabilities = Capabilities(selector=None, xpath=None, accessible_name=None, pseudo_content=None)
    records = extract_accessible_text("<button> Press  me </button>", settings=STATIC, capabilities=capabilities)

    record = records[0]
    assert record.selector == FUNCTION_NOT_AVAILABLE
    assert record.xpath == FUNCTION_NOT_AVAILABLE
    assert record.accessible_text == " Press  me "


def test_failing_capabilities_do_not_abort_the_batch() -> None:
    def _boom(_context, _element):
        raise RuntimeError("synthesis failed")

    capabilities = replace(DEFAULT_CAPABILITIES, selector=_boom, xpath=_boom, accessible_name=_boom)
    records = extract_accessible_text("<button>One</button><button>Two</button>", settings=STATIC, capabilities=capabilities)

    assert [record.selector for record in records] == [SELECTOR_ERROR, SELECTOR_ERROR]
    assert [record.xpath for record in records] == [XPATH_ERROR, XPATH_ERROR]
    assert [record.accessible_text for record in records] == ["One", "Two"]


@pytest.mark.parametrize("markup", ["", "   ", None, 7])
def test_invalid_markup_is_rejected_before_rendering(markup) -> None:
    renderer = _RecordingRenderer()
    with pytest.raises(InvalidMarkupError):
        extract_accessible_text(markup, settings=STATIC, renderer=renderer)
    assert renderer.rendered == []


def test_oversize_markup_is_rejected() -> None:
    settings = replace(STATIC, max_markup_size=10)
    with pytest.raises(ValueError):
        extract_accessible_text("<p>" + "x" * 20 + "</p>", settings=settings)


def test_injected_renderer_is_used() -> None:
    renderer = _RecordingRenderer()
    records = extract_accessible_text("<button>Ok</button>", settings=STATIC, renderer=renderer)

    assert renderer.rendered == ["<button>Ok</button>"]
    assert records[0].accessible_text == "Ok"


def test_extract_links() -> None:
    links = extract_links(PAGE, settings=STATIC, renderer=StaticRenderer())

    assert [link.tag_name for link in links] == ["a", "a", "span"]
    assert [link.accessible_text for link in links] == ["Guide", "FAQ", "Open"]
    assert links[2].role == "link"
    assert links[2].href is None
    payload = links[1].to_dict()
    assert payload["title"] == "Questions"
    assert "role" not in payload


def test_comment_only_markup_yields_no_records() -> None:
    assert extract_accessible_text("<!-- placeholder -->", settings=STATIC, renderer=StaticRenderer()) == []


def test_selector_uniqueness_check_only_runs_for_debug_logging(monkeypatch, caplog) -> None:
    checked: list[str] = []

    def fake_validate(document, kind, locator):
        checked.append(locator)
        return validate_selector(document, kind, locator)

    monkeypatch.setattr("a11yextract.extraction.validate_selector", fake_validate)
    document = DocumentTree(parse_markup("<button>One</button>"))

    caplog.set_level(logging.INFO, logger="a11yextract.extraction")
    extract_from_document(document, settings=STATIC)
    assert checked == []

    caplog.set_level(logging.DEBUG, logger="a11yextract.extraction")
    extract_from_document(DocumentTree(parse_markup("<button>One</button>")), settings=STATIC)
    assert len(checked) == 1
