from __future__ import annotations

from typing import Sequence

from lxml.html import HtmlElement

from .document import DocumentTree, is_element
from .models import XPathSegment
from .selector_rules import normalize_classes, xpath_literal


def _sibling_ordinal(element: HtmlElement) -> int | None:
    previous = sum(
        1 for sibling in element.itersiblings(preceding=True) if is_element(sibling) and sibling.tag == element.tag
    )
    if not previous:
        return None
    return previous + 1


def _segment(document: DocumentTree, element: HtmlElement) -> XPathSegment:
    element_id = element.get("id")
    unique_id = None
    if element_id and len(document.elements_by_id(element_id)) == 1:
        unique_id = xpath_literal(element_id)

    class_name = None
    classes = normalize_classes(element.get("class"))
    if classes:
        class_name = xpath_literal(classes[0])

    return XPathSegment(
        tag=element.tag,
        id=unique_id,
        class_name=class_name,
        count=_sibling_ordinal(element),
    )


def build_xpath_segments(document: DocumentTree, element: HtmlElement) -> list[XPathSegment]:
    """Segments from the outermost ancestor needed down to ``element``.

    The walk stops at the first ancestor (or the element itself) whose id is
    unique in the document; otherwise it runs up to the root element.
    """
    if not document.is_attached(element):
        return []
    segments: list[XPathSegment] = []
    current: HtmlElement | None = element
    while current is not None:
        segment = _segment(document, current)
        segments.append(segment)
        if segment.id is not None:
            break
        current = document.parent(current)
    segments.reverse()
    return segments


def xpath_to_string(segments: Sequence[XPathSegment]) -> str:
    if not segments:
        return ""
    path = "".join(segment.serialize() for segment in segments)
    if segments[0].id is not None:
        # anchored at an id: search the whole document for it
        return "/" + path
    return path


def generate_xpath(document: DocumentTree, element: HtmlElement) -> str:
    return xpath_to_string(build_xpath_segments(document, element))
