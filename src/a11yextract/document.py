from __future__ import annotations

from typing import Iterable, Iterator, Protocol

from cssselect import HTMLTranslator, SelectorError
from lxml import etree
import lxml.html
from lxml.html import HtmlElement

from .errors import RenderingError, SelectorQueryError
from .models import ElementStyle

_DOCUMENT_PREFIX = "descendant-or-self::"
_SCOPED_PREFIX = "descendant::"

_translator = HTMLTranslator()
_EMPTY_DOCUMENT = "<html><head></head><body></body></html>"


class StyleSource(Protocol):
    def style(self, element: HtmlElement) -> ElementStyle: ...


class _DefaultStyles:
    def style(self, element: HtmlElement) -> ElementStyle:
        return ElementStyle()


def parse_markup(markup: str) -> HtmlElement:
    try:
        return lxml.html.document_fromstring(markup)
    except etree.ParserError as exc:
        # Comment-only markup has no elements; a browser still builds an empty page.
        if markup.strip():
            return lxml.html.document_fromstring(_EMPTY_DOCUMENT)
        raise RenderingError(str(exc)) from exc
    except ValueError as exc:
        raise RenderingError(str(exc)) from exc


def compile_selector(selector: str, prefix: str = _DOCUMENT_PREFIX) -> etree.XPath:
    try:
        expression = _translator.css_to_xpath(selector, prefix=prefix)
        return etree.XPath(expression)
    except (SelectorError, etree.XPathError) as exc:
        raise SelectorQueryError(selector, str(exc)) from exc


def is_element(node: object) -> bool:
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


class DocumentTree:
    """A parsed document plus resolved styles for every element in it."""

    def __init__(self, root: HtmlElement, styles: StyleSource | None = None) -> None:
        self.root = root
        self._styles = styles if styles is not None else _DefaultStyles()
        # lxml proxies are only identity-stable while referenced.
        self._elements = [node for node in root.iter() if is_element(node)]
        self._id_index: dict[str, list[HtmlElement]] | None = None
        self._compiled: dict[tuple[str, str], etree.XPath] = {}

    def iter_elements(self) -> Iterator[HtmlElement]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def _compile(self, selector: str, prefix: str) -> etree.XPath:
        key = (selector, prefix)
        compiled = self._compiled.get(key)
        if compiled is None:
            compiled = self._compiled[key] = compile_selector(selector, prefix)
        return compiled

    def query_all(self, selector: str, scope: HtmlElement | None = None) -> list[HtmlElement]:
        if scope is None:
            compiled = self._compile(selector, _DOCUMENT_PREFIX)
            context = self.root
        else:
            compiled = self._compile(selector, _SCOPED_PREFIX)
            context = scope
        try:
            matches = compiled(context)
        except etree.XPathError as exc:
            raise SelectorQueryError(selector, str(exc)) from exc
        return [node for node in matches if is_element(node)]

    def query_first(self, selector: str, scope: HtmlElement | None = None) -> HtmlElement | None:
        matches = self.query_all(selector, scope)
        return matches[0] if matches else None

    def count(self, selector: str) -> int:
        return len(self.query_all(selector))

    def elements_by_id(self, element_id: str) -> list[HtmlElement]:
        if self._id_index is None:
            index: dict[str, list[HtmlElement]] = {}
            for element in self._elements:
                value = element.get("id")
                if value is not None:
                    index.setdefault(value, []).append(element)
            self._id_index = index
        return list(self._id_index.get(element_id, ()))

    def element_by_id(self, element_id: str) -> HtmlElement | None:
        matches = self.elements_by_id(element_id)
        return matches[0] if matches else None

    def parent(self, element: HtmlElement) -> HtmlElement | None:
        parent = element.getparent()
        return parent if is_element(parent) else None

    def children(self, element: HtmlElement) -> list[HtmlElement]:
        return [child for child in element if is_element(child)]

    def child_nodes(self, element: HtmlElement) -> Iterator[HtmlElement | str]:
        """Yield text runs and element children in document order."""
        if element.text:
            yield element.text
        for child in element:
            if is_element(child):
                yield child
            if child.tail:
                yield child.tail

    def child_index(self, element: HtmlElement) -> int:
        parent = element.getparent()
        if parent is None:
            return 1
        position = 0
        for sibling in parent:
            if not is_element(sibling):
                continue
            position += 1
            if sibling is element:
                return position
        return position

    def text_content(self, element: HtmlElement, skip_tags: Iterable[str] = ()) -> str:
        skipped = frozenset(skip_tags)
        pieces: list[str] = []
        self._collect_text(element, skipped, pieces)
        return "".join(pieces)

    def _collect_text(self, element: HtmlElement, skipped: frozenset[str], pieces: list[str]) -> None:
        if element.text and is_element(element):
            pieces.append(element.text)
        for child in element:
            if is_element(child) and child.tag not in skipped:
                self._collect_text(child, skipped, pieces)
            if child.tail:
                pieces.append(child.tail)

    def outer_html(self, element: HtmlElement) -> str:
        return lxml.html.tostring(element, encoding="unicode", with_tail=False)

    def attribute(self, element: HtmlElement, name: str) -> str | None:
        return element.get(name)

    def set_attribute(self, element: HtmlElement, name: str, value: str) -> None:
        element.set(name, value)

    def style(self, element: HtmlElement) -> ElementStyle:
        return self._styles.style(element)

    def is_attached(self, element: HtmlElement) -> bool:
        # Removed elements keep their owning document in lxml, so walk up instead.
        if element is self.root:
            return True
        return any(ancestor is self.root for ancestor in element.iterancestors())
