from a11yextract.document import DocumentTree, parse_markup
from a11yextract.models import XPathSegment
from a11yextract.xpath_generator import build_xpath_segments, generate_xpath, xpath_to_string


def _tree(markup: str) -> DocumentTree:
    return DocumentTree(parse_markup(markup))


def _evaluate(tree: DocumentTree, xpath: str) -> list:
    return tree.root.getroottree().xpath(xpath)


def test_root_element_has_fixed_path() -> None:
    tree = _tree("<p>hi</p>")
    assert generate_xpath(tree, tree.root) == "/html"


def test_unique_id_anchors_the_path() -> None:
    tree = _tree('<div id="main"><ul><li>one</li><li>two</li></ul></div>')
    second = tree.query_all("li")[1]

    xpath = generate_xpath(tree, second)

    assert xpath == "//div[@id='main']/ul/li[2]"
    assert _evaluate(tree, xpath) == [second]


def test_element_with_unique_id_resolves_to_itself() -> None:
    tree = _tree('<section><span id="target">x</span></section>')
    target = tree.element_by_id("target")

    xpath = generate_xpath(tree, target)

    assert xpath == "//span[@id='target']"
    assert _evaluate(tree, xpath) == [target]


def test_duplicate_ids_fall_back_to_positions() -> None:
    tree = _tree('<div id="dup"><b>a</b></div><div id="dup"><b>b</b></div>')
    second_bold = tree.query_all("b")[1]

    xpath = generate_xpath(tree, second_bold)

    assert xpath == "/html/body/div[2]/b"
    assert _evaluate(tree, xpath) == [second_bold]


def test_ordinal_only_when_previous_sibling_shares_tag() -> None:
    tree = _tree("<div><p>a</p><span>b</span><p>c</p></div>")
    first_p, second_p = tree.query_all("p")

    assert generate_xpath(tree, first_p) == "/html/body/div/p"
    assert generate_xpath(tree, second_p) == "/html/body/div/p[2]"


def test_class_segment_uses_first_token() -> None:
    tree = _tree('<div class="card wide"><a href="#">x</a></div>')
    link = tree.query_first("a")
    assert generate_xpath(tree, link) == "/html/body/div[@class='card']/a"


def test_detached_element_has_empty_path() -> None:
    tree = _tree("<div><span>x</span></div>")
    span = tree.query_first("span")
    span.getparent().remove(span)

    assert build_xpath_segments(tree, span) == []
    assert generate_xpath(tree, span) == ""


def test_segment_serialization_priority() -> None:
    segments = [
        XPathSegment(tag="html"),
        XPathSegment(tag="body"),
        XPathSegment(tag="div", class_name="'menu'", count=3),
        XPathSegment(tag="a", count=2),
    ]
    assert xpath_to_string(segments) == "/html/body/div[@class='menu']/a[2]"
