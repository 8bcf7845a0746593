from __future__ import annotations

import logging
import re

from lxml.html import HtmlElement

from .document import DocumentTree
from .models import PseudoStyle
from .selector_rules import escape_attribute_value, normalize_space

DEFAULT_CHILD_DEPTH = 2

_BUTTON_INPUT_TYPES = frozenset({"submit", "reset", "button", "image"})
_LABEL_EXCLUDED_TAGS = ("input", "select", "textarea")
_EMPTY_CONTENT = frozenset({"", "none", "normal", '""', "''"})

_TAG_HANDLERS = {
    "img": "_native_img",
    "input": "_native_input",
    "button": "_native_button",
    "select": "_native_select",
    "textarea": "_native_textarea",
    "a": "_native_a",
    "fieldset": "_native_fieldset",
    "figure": "_native_figure",
    "table": "_native_table",
    "iframe": "_native_titled",
    "object": "_native_titled",
    "embed": "_native_titled",
    "audio": "_native_titled",
    "video": "_native_titled",
    "canvas": "_native_canvas",
    "svg": "_native_svg",
    "math": "_native_math",
}

_CONTENT_TOKEN = re.compile(
    r'"((?:[^"\\]|\\.)*)"'
    r"|'((?:[^'\\]|\\.)*)'"
    r"|attr\(\s*([^\s)]+)\s*\)"
    r"|\S+",
    re.S,
)
_CSS_ESCAPE = re.compile(r"\\([0-9a-fA-F]{1,6})\s?|\\\n|\\(.)", re.S)

logger = logging.getLogger("a11yextract.names")


def _unescape_css_string(value: str) -> str:
    def replace(match: re.Match[str]) -> str:
        if match.group(1):
            code = int(match.group(1), 16)
            return chr(code) if 0 < code <= 0x10FFFF else "\ufffd"
        if match.group(2) is not None:
            return match.group(2)
        return ""

    return _CSS_ESCAPE.sub(replace, value)


def _content_text(style: PseudoStyle, element: HtmlElement) -> str:
    raw = style.content.strip()
    if raw.lower() in _EMPTY_CONTENT or style.hidden:
        return ""
    pieces: list[str] = []
    for match in _CONTENT_TOKEN.finditer(raw):
        double, single, attr_name = match.group(1), match.group(2), match.group(3)
        if double is not None:
            pieces.append(_unescape_css_string(double))
        elif single is not None:
            pieces.append(_unescape_css_string(single))
        elif attr_name:
            pieces.append(element.get(attr_name) or "")
    return "".join(pieces)


def pseudo_element_content(document: DocumentTree, element: HtmlElement) -> tuple[str, str]:
    """Visible ``::before`` and ``::after`` generated text of ``element``."""
    style = document.style(element)
    return _content_text(style.before, element), _content_text(style.after, element)


def should_ignore(document: DocumentTree, element: HtmlElement) -> bool:
    if element.get("aria-hidden") == "true":
        return True
    role = (element.get("role") or "").strip().lower()
    if role in ("presentation", "none"):
        return True

    style = document.style(element)
    if style.visibility in ("hidden", "collapse"):
        return True
    if style.display == "none":
        return True
    ancestor = document.parent(element)
    while ancestor is not None:
        if document.style(ancestor).display == "none":
            return True
        ancestor = document.parent(ancestor)
    return False


def associated_label(document: DocumentTree, element: HtmlElement) -> str:
    element_id = element.get("id")
    if element_id:
        label = document.query_first(f'label[for="{escape_attribute_value(element_id)}"]')
        if label is not None:
            return document.text_content(label).strip()

    for ancestor in element.iterancestors("label"):
        return document.text_content(ancestor, skip_tags=_LABEL_EXCLUDED_TAGS).strip()
    return ""


def _input_type(element: HtmlElement) -> str:
    return (element.get("type") or "").strip().lower() or "text"


class AccessibleNameResolver:
    """Compute accessible names over one rendered document."""

    def __init__(self, document: DocumentTree, max_child_depth: int = DEFAULT_CHILD_DEPTH) -> None:
        self.document = document
        self.max_child_depth = max_child_depth
        # Elements currently being resolved further up the call stack.
        self._visiting: set[HtmlElement] = set()

    def resolve(self, element: HtmlElement, in_labelledby: bool = False) -> str:
        if element in self._visiting:
            return ""
        self._visiting.add(element)
        try:
            return self._resolve(element, in_labelledby)
        except Exception:
            logger.warning("Accessible name failed for <%s>; using text content", element.tag, exc_info=True)
            return normalize_space(self.document.text_content(element) or element.get("title") or "")
        finally:
            self._visiting.discard(element)

    def _resolve(self, element: HtmlElement, in_labelledby: bool) -> str:
        if should_ignore(self.document, element):
            return ""

        if not in_labelledby and element.get("aria-labelledby"):
            return normalize_space(self._labelledby_text(element))

        aria_label = normalize_space(element.get("aria-label"))
        if aria_label:
            return aria_label

        return normalize_space(self._native_text(element))

    def _labelledby_text(self, element: HtmlElement) -> str:
        tokens: list[str] = []
        for token in (element.get("aria-labelledby") or "").split():
            if token not in tokens:
                tokens.append(token)

        referenced: list[HtmlElement] = []
        for token in tokens:
            referenced.extend(self.document.elements_by_id(token))

        names = [self._referenced_name(element, target).strip() for target in referenced]
        return normalize_space(" ".join(name for name in names if name))

    def _referenced_name(self, element: HtmlElement, target: HtmlElement) -> str:
        # A self-reference names the element by its own content.
        if target is element:
            return self._resolve(element, True)
        return self.resolve(target, True)

    def _role_text(self, element: HtmlElement) -> str:
        role = (element.get("role") or "").strip().lower()
        if not role:
            return ""
        if role in ("button", "heading", "group", "region"):
            return self.child_text(element)
        if role == "link":
            return self.child_text(element) or element.get("title") or ""
        if role in ("textbox", "searchbox"):
            return element.get("aria-placeholder") or element.get("placeholder") or ""
        if role in ("slider", "spinbutton", "progressbar"):
            return element.get("aria-valuetext") or element.get("aria-valuenow") or ""
        if role == "img":
            return element.get("alt") or ""
        return ""

    def _native_text(self, element: HtmlElement) -> str:
        role_text = self._role_text(element)
        if role_text:
            return role_text

        handler_name = _TAG_HANDLERS.get(element.tag)
        if handler_name is not None:
            return getattr(self, handler_name)(element)

        contenteditable = element.get("contenteditable")
        if contenteditable is not None and contenteditable.lower() != "false":
            return element.get("title") or ""
        return self._generic_text(element)

    def _native_img(self, element: HtmlElement) -> str:
        alt = element.get("alt")
        if alt is not None:
            return alt
        return element.get("title") or ""

    def _native_input(self, element: HtmlElement) -> str:
        input_type = _input_type(element)
        if input_type in ("submit", "reset", "button"):
            default = {"submit": "Submit", "reset": "Reset"}.get(input_type, "")
            return element.get("value") or default
        if input_type == "image":
            return element.get("alt") or element.get("value") or "Submit"
        if input_type == "file":
            return element.get("value") or "Choose file"
        if input_type == "range":
            return element.get("aria-valuetext") or element.get("aria-valuenow") or element.get("value") or ""
        return self._labelled_control_text(element)

    def _native_textarea(self, element: HtmlElement) -> str:
        return self._labelled_control_text(element)

    def _labelled_control_text(self, element: HtmlElement) -> str:
        return (
            associated_label(self.document, element)
            or element.get("aria-placeholder")
            or element.get("placeholder")
            or element.get("title")
            or ""
        )

    def _native_button(self, element: HtmlElement) -> str:
        return self.child_text(element) or element.get("title") or ""

    def _native_a(self, element: HtmlElement) -> str:
        return self._native_button(element)

    def _native_select(self, element: HtmlElement) -> str:
        option = self.document.query_first("option[selected]", element)
        if option is None:
            option = self.document.query_first("option", element)
        if option is not None:
            return option.get("label") or self.document.text_content(option)
        return associated_label(self.document, element)

    def _first_descendant_text(self, element: HtmlElement, selector: str) -> str | None:
        found = self.document.query_first(selector, element)
        if found is None:
            return None
        return self.document.text_content(found).strip()

    def _native_fieldset(self, element: HtmlElement) -> str:
        return self._first_descendant_text(element, "legend") or ""

    def _native_figure(self, element: HtmlElement) -> str:
        return self._first_descendant_text(element, "figcaption") or ""

    def _native_table(self, element: HtmlElement) -> str:
        caption = self._first_descendant_text(element, "caption")
        if caption is not None:
            return caption
        return element.get("summary") or ""

    def _native_titled(self, element: HtmlElement) -> str:
        return element.get("title") or ""

    def _native_canvas(self, element: HtmlElement) -> str:
        return element.get("title") or self.document.text_content(element).strip()

    def _native_svg(self, element: HtmlElement) -> str:
        title = self._first_descendant_text(element, "title")
        if title is not None:
            return title
        return element.get("title") or ""

    def _native_math(self, element: HtmlElement) -> str:
        annotation = self._first_descendant_text(element, 'semantics > annotation[encoding="text/plain"]')
        if annotation:
            return annotation
        return element.get("alttext") or element.get("title") or ""

    def _generic_text(self, element: HtmlElement) -> str:
        before, after = pseudo_element_content(self.document, element)
        child = self.child_text(element)
        if child.strip():
            return f"{before}{child}{after}"
        combined = f"{before}{after}"
        if combined.strip():
            return combined
        return element.get("title") or ""

    def child_text(self, element: HtmlElement, depth: int = 0) -> str:
        """Name contributed by the subtree of ``element``, ``depth`` levels below the caller."""
        if depth > self.max_child_depth:
            return ""
        pieces: list[str] = []
        for node in self.document.child_nodes(element):
            if isinstance(node, str):
                pieces.append(node)
                continue
            if should_ignore(self.document, node):
                continue

            tag = node.tag
            if tag in ("img", "svg") or (tag == "input" and _input_type(node) in _BUTTON_INPUT_TYPES):
                name = self.resolve(node, True)
                if name:
                    pieces.append(name + " ")
                continue
            if tag == "input":
                continue

            aria_label = node.get("aria-label")
            if aria_label:
                pieces.append(aria_label + " ")
            elif node.get("aria-labelledby"):
                name = self.resolve(node)
                if name:
                    pieces.append(name + " ")
            elif depth < self.max_child_depth:
                pieces.append(self.child_text(node, depth + 1))
            else:
                pieces.extend(item for item in self.document.child_nodes(node) if isinstance(item, str))
        return normalize_space("".join(pieces))


def accessible_name(
    document: DocumentTree,
    element: HtmlElement,
    max_child_depth: int = DEFAULT_CHILD_DEPTH,
) -> str:
    return AccessibleNameResolver(document, max_child_depth).resolve(element)
