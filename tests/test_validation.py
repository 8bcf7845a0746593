from a11yextract.document import DocumentTree, parse_markup
from a11yextract.validation import count_selector_matches, validate_markup, validate_selector


def test_validate_markup_rejects_unusable_input() -> None:
    assert validate_markup(None, 100).ok is False
    assert validate_markup(42, 100).message == "Markup must be a string."
    assert validate_markup("   \n", 100).message == "Markup is required."
    assert validate_markup("x" * 101, 100).ok is False
    assert validate_markup("<p>x</p>", 100).ok is True


def test_count_selector_matches_for_css_and_xpath() -> None:
    tree = DocumentTree(parse_markup('<ul><li class="a">1</li><li>2</li></ul>'))

    assert count_selector_matches(tree, "CSS", "li") == 2
    assert count_selector_matches(tree, "CSS", "li.a") == 1
    assert count_selector_matches(tree, "XPath", "/html/body/ul/li[2]") == 1
    assert count_selector_matches(tree, "XPath", "count(//li)") == 0
    assert count_selector_matches(tree, "CSS", "li[") == 0
    assert count_selector_matches(tree, "XPath", "//li[") == 0
    assert count_selector_matches(tree, "CSS", "  ") == 0


def test_validate_selector_reports_uniqueness() -> None:
    tree = DocumentTree(parse_markup('<p id="a">x</p><p>y</p>'))

    assert validate_selector(tree, "CSS", "#a").unique is True
    duplicate = validate_selector(tree, "CSS", "p")
    assert duplicate.unique is False
    assert duplicate.match_count == 2
    assert validate_selector(tree, "CSS", "span").message == "Locator matches nothing in DOM."
