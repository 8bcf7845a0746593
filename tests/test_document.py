import pytest

from a11yextract.document import DocumentTree, parse_markup
from a11yextract.errors import RenderingError, SelectorQueryError


def _tree(markup: str) -> DocumentTree:
    return DocumentTree(parse_markup(markup))


def test_query_all_document_and_scoped() -> None:
    tree = _tree('<div id="a"><p>1</p></div><div id="b"><p>2</p><p>3</p></div>')
    scope = tree.element_by_id("b")

    assert len(tree.query_all("p")) == 3
    assert [p.text for p in tree.query_all("p", scope)] == ["2", "3"]
    assert tree.query_first("div > p").text == "1"
    assert tree.query_all("div", scope) == []


def test_invalid_selector_raises_selector_query_error() -> None:
    tree = _tree("<p>x</p>")
    with pytest.raises(SelectorQueryError) as excinfo:
        tree.query_all("p[")
    assert excinfo.value.selector == "p["


def test_namespaced_tag_selector_is_escaped() -> None:
    tree = _tree("<p>x</p>")
    assert tree.query_all("xml\\:element") == []


def test_child_nodes_and_text_content() -> None:
    tree = _tree("<label>Name <!-- hint --><input> here <b>now</b>!</label>")
    label = tree.query_first("label")

    nodes = [node if isinstance(node, str) else node.tag for node in tree.child_nodes(label)]
    assert nodes == ["Name ", "input", " here ", "b", "!"]
    assert tree.text_content(label) == "Name  here now!"
    assert tree.text_content(label, skip_tags=("b",)) == "Name  here !"


def test_ids_positions_and_attachment() -> None:
    tree = _tree('<ul><li id="x">a</li><li id="x">b</li><li>c</li></ul>')
    items = tree.query_all("li")

    assert tree.elements_by_id("x") == items[:2]
    assert tree.element_by_id("missing") is None
    assert [tree.child_index(item) for item in items] == [1, 2, 3]
    assert tree.children(tree.parent(items[0])) == items

    last = items[2]
    last.getparent().remove(last)
    assert not tree.is_attached(last)
    assert tree.is_attached(items[0])


def test_outer_html_excludes_tail() -> None:
    tree = _tree("<p><b>bold</b> tail</p>")
    assert tree.outer_html(tree.query_first("b")) == "<b>bold</b>"


def test_unparseable_markup_raises_rendering_error() -> None:
    with pytest.raises(RenderingError):
        parse_markup("")


def test_comment_only_markup_parses_to_empty_page() -> None:
    tree = _tree("<!-- nothing rendered -->")
    assert tree.root.tag == "html"
    assert tree.query_all("a, button, [role]") == []


def test_compiled_selectors_are_cached_per_document() -> None:
    first = _tree("<p>one</p>")
    second = _tree("<p>two</p>")

    first.query_all("p:nth-child(1)")
    first.query_all("p:nth-child(1)")

    assert list(first._compiled) == [("p:nth-child(1)", "descendant-or-self::")]
    assert second._compiled == {}


def test_detached_subtree_is_not_attached() -> None:
    tree = _tree("<div><section><b>x</b></section></div>")
    section = tree.query_first("section")
    bold = tree.query_first("b")

    section.getparent().remove(section)

    assert not tree.is_attached(section)
    assert not tree.is_attached(bold)
    assert tree.is_attached(tree.root)
