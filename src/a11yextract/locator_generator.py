from __future__ import annotations

import logging

from lxml.html import HtmlElement

from .dom_statistics import DEFAULT_VALUE_LIMIT, element_features
from .document import DocumentTree
from .models import FrequencyTable
from .selector_rules import escape_selector, is_generic_selector, normalize_classes

DEFAULT_CONTEXT_DEPTH = 3

logger = logging.getLogger("a11yextract.selector")


def _tag_fragment(element: HtmlElement) -> str:
    return escape_selector(element.tag)


def _unique_id_selector(document: DocumentTree, element: HtmlElement) -> str | None:
    element_id = element.get("id")
    if not element_id:
        return None
    if len(document.elements_by_id(element_id)) != 1:
        return None
    return f"#{escape_selector(element_id)}"


def _rarest_class(element: HtmlElement, table: FrequencyTable) -> str | None:
    best: str | None = None
    lowest = 0
    for token in normalize_classes(element.get("class")):
        escaped = escape_selector(token)
        count = table.class_count(escaped)
        if count > 0 and (best is None or count < lowest):
            best = escaped
            lowest = count
    return best


def _rarest_attribute(element: HtmlElement, table: FrequencyTable, value_limit: int) -> str | None:
    best: str | None = None
    lowest = 0
    for feature in element_features(element, value_limit):
        count = table.attribute_count(feature)
        if count > 0 and (best is None or count < lowest):
            best = feature
            lowest = count
    return best


def base_selector(
    document: DocumentTree,
    element: HtmlElement,
    table: FrequencyTable,
    value_limit: int = DEFAULT_VALUE_LIMIT,
) -> str:
    """Conventional single-fragment selector: id, rarest class, rarest attribute, tag."""
    id_selector = _unique_id_selector(document, element)
    if id_selector:
        return id_selector
    best_class = _rarest_class(element, table)
    if best_class:
        return f".{best_class}"
    best_attribute = _rarest_attribute(element, table, value_limit)
    if best_attribute:
        return f"{_tag_fragment(element)}[{best_attribute}]"
    return _tag_fragment(element)


def _ancestor_fragment(element: HtmlElement, table: FrequencyTable) -> str:
    best_class = _rarest_class(element, table)
    if best_class:
        return f"{_tag_fragment(element)}.{best_class}"
    return _tag_fragment(element)


def contextual_selector(
    document: DocumentTree,
    element: HtmlElement,
    base: str,
    table: FrequencyTable,
    max_depth: int = DEFAULT_CONTEXT_DEPTH,
) -> str:
    """Prefix ``base`` with up to ``max_depth`` ancestor fragments."""
    selector = base
    current = document.parent(element)
    depth = 0
    while current is not None and current is not document.root and depth < max_depth:
        ancestor_id = current.get("id")
        if ancestor_id:
            return f"#{escape_selector(ancestor_id)} > {selector}"

        fragment = _ancestor_fragment(current, table)
        if document.count(f"{fragment} > {selector}") > 1:
            fragment = f"{fragment}:nth-child({document.child_index(current)})"
        selector = f"{fragment} > {selector}"
        current = document.parent(current)
        depth += 1
    return selector


def hierarchical_selector(document: DocumentTree, element: HtmlElement) -> str:
    """Positional ``tag[.class][:nth-child(N)]`` chain that ignores document statistics."""
    path: list[str] = []
    current: HtmlElement | None = element
    while current is not None and current is not document.root:
        id_selector = _unique_id_selector(document, current)
        if id_selector:
            path.insert(0, id_selector)
            break

        fragment = _tag_fragment(current)
        classes = normalize_classes(current.get("class"))
        if classes:
            fragment += f".{escape_selector(classes[0])}"
        parent = document.parent(current)
        if parent is not None and len(document.children(parent)) > 1:
            fragment += f":nth-child({document.child_index(current)})"
        path.insert(0, fragment)
        current = parent

    if not path:
        return _tag_fragment(element)
    return " > ".join(path)


def generate_selector(
    document: DocumentTree,
    element: HtmlElement,
    table: FrequencyTable,
    *,
    max_depth: int = DEFAULT_CONTEXT_DEPTH,
    value_limit: int = DEFAULT_VALUE_LIMIT,
) -> str:
    try:
        base = base_selector(document, element, table, value_limit)
        if not is_generic_selector(base) and document.count(base) == 1:
            return base

        selector = contextual_selector(document, element, base, table, max_depth)
        if document.count(selector) > 1:
            positioned = f"{base}:nth-child({document.child_index(element)})"
            selector = contextual_selector(document, element, positioned, table, max_depth)
        return selector
    except Exception:
        logger.warning("Selector synthesis failed for <%s>; using positional fallback", element.tag, exc_info=True)
        return hierarchical_selector(document, element)
