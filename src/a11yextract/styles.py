from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Iterator, Mapping

import cssselect
from cssselect import HTMLTranslator, SelectorError
from lxml import etree
from lxml.html import HtmlElement

from .models import ElementStyle, PseudoStyle

logger = logging.getLogger("a11yextract.styles")

TRACKED_PROPERTIES = ("display", "visibility", "content")

# Elements the user agent never renders.
UA_HIDDEN_TAGS = frozenset(
    {
        "head",
        "script",
        "style",
        "template",
        "title",
        "meta",
        "link",
        "base",
        "datalist",
        "param",
        "noscript",
    }
)

_COMMENT = re.compile(r"/\*.*?\*/", re.S)
_IMPORTANT = re.compile(r"!\s*important\s*$", re.I)
_SKIPPED_MEDIA = ("print", "speech")
_RECURSED_AT_RULES = ("@media", "@supports", "@layer", "@document")

_translator = HTMLTranslator()


@dataclass(frozen=True, slots=True)
class Declaration:
    name: str
    value: str
    important: bool


@dataclass(frozen=True, slots=True)
class _Cascaded:
    key: tuple[bool, bool, tuple[int, int, int], int]
    value: str


def parse_declarations(block: str) -> list[Declaration]:
    declarations: list[Declaration] = []
    for chunk in _split_outside_quotes(block, ";"):
        name, sep, value = chunk.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        value = value.strip()
        if not name or not value:
            continue
        important = bool(_IMPORTANT.search(value))
        if important:
            value = _IMPORTANT.sub("", value).strip()
        declarations.append(Declaration(name, value, important))
    return declarations


def iter_style_rules(css: str) -> Iterator[tuple[str, str]]:
    """Yield ``(selector_text, declaration_block)`` pairs of a stylesheet."""
    text = _COMMENT.sub("", css)
    index = 0
    length = len(text)
    prelude_start = 0
    quote: str | None = None
    while index < length:
        char = text[index]
        if quote:
            if char == "\\":
                index += 2
                continue
            if char == quote:
                quote = None
            index += 1
            continue
        if char in ("'", '"'):
            quote = char
        elif char == ";":
            # statement at-rules such as @import or @charset
            prelude_start = index + 1
        elif char == "{":
            end = _matching_brace(text, index)
            prelude = text[prelude_start:index].strip()
            body = text[index + 1 : end]
            if prelude.startswith("@"):
                if _recurse_into(prelude):
                    yield from iter_style_rules(body)
            elif prelude:
                yield prelude, body
            index = end + 1
            prelude_start = index
            continue
        index += 1


def _recurse_into(prelude: str) -> bool:
    lowered = prelude.lower()
    if not lowered.startswith(_RECURSED_AT_RULES):
        return False
    if lowered.startswith("@media"):
        query = lowered[len("@media") :].strip()
        media_types = re.findall(r"[a-z-]+", query.split("(")[0])
        if media_types and all(item in _SKIPPED_MEDIA or item in ("only", "and") for item in media_types):
            return False
    return True


def _matching_brace(text: str, start: int) -> int:
    depth = 0
    quote: str | None = None
    index = start
    while index < len(text):
        char = text[index]
        if quote:
            if char == "\\":
                index += 2
                continue
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return len(text)


def _split_outside_quotes(text: str, separator: str) -> list[str]:
    pieces: list[str] = []
    current: list[str] = []
    quote: str | None = None
    depth = 0
    escaped = False
    for char in text:
        if escaped:
            current.append(char)
            escaped = False
            continue
        if char == "\\":
            current.append(char)
            escaped = True
            continue
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif char == separator and depth == 0:
            pieces.append("".join(current))
            current = []
            continue
        current.append(char)
    if current:
        pieces.append("".join(current))
    return pieces


class StaticStyleResolver:
    """Resolve display, visibility and generated content from ``<style>`` and inline styles."""

    def __init__(self, root: HtmlElement) -> None:
        self.root = root
        # (element, pseudo) -> property -> winning declaration
        self._cascade: dict[tuple[HtmlElement, str | None], dict[str, _Cascaded]] = {}
        self._computed: dict[HtmlElement, ElementStyle] = {}
        self._order = 0
        self._apply_stylesheets()
        self._apply_inline_styles()

    def style(self, element: HtmlElement) -> ElementStyle:
        cached = self._computed.get(element)
        if cached is not None:
            return cached

        parent = element.getparent()
        parent_visibility = "visible"
        if parent is not None and isinstance(parent.tag, str):
            parent_visibility = self.style(parent).visibility

        display = self._value(element, None, "display")
        if display is None or display == "inherit":
            display = "none" if self._ua_hidden(element) else "inline"
        visibility = self._value(element, None, "visibility")
        if visibility not in ("visible", "hidden", "collapse"):
            visibility = parent_visibility

        resolved = ElementStyle(
            display=display,
            visibility=visibility,
            before=self._pseudo(element, "before", visibility),
            after=self._pseudo(element, "after", visibility),
        )
        self._computed[element] = resolved
        return resolved

    def _pseudo(self, element: HtmlElement, pseudo: str, inherited_visibility: str) -> PseudoStyle:
        content = self._value(element, pseudo, "content", lower=False) or "none"
        display = self._value(element, pseudo, "display") or "inline"
        visibility = self._value(element, pseudo, "visibility")
        if visibility not in ("visible", "hidden", "collapse"):
            visibility = inherited_visibility
        return PseudoStyle(content=content, display=display, visibility=visibility)

    def _value(self, element: HtmlElement, pseudo: str | None, name: str, *, lower: bool = True) -> str | None:
        declared = self._cascade.get((element, pseudo), {}).get(name)
        if declared is None:
            return None
        return declared.value.lower() if lower else declared.value

    @staticmethod
    def _ua_hidden(element: HtmlElement) -> bool:
        return element.tag in UA_HIDDEN_TAGS or element.get("hidden") is not None

    def _apply_stylesheets(self) -> None:
        for style_element in self.root.iter("style"):
            media = (style_element.get("media") or "").strip().lower()
            if media and media not in ("all", "screen"):
                continue
            css = style_element.text or ""
            for selector_text, block in iter_style_rules(css):
                declarations = [item for item in parse_declarations(block) if item.name in TRACKED_PROPERTIES]
                if declarations:
                    self._apply_rule(selector_text, declarations)

    def _apply_rule(self, selector_text: str, declarations: list[Declaration]) -> None:
        try:
            selectors = cssselect.parse(selector_text)
        except SelectorError:
            logger.debug("Skipping unsupported selector %r", selector_text)
            return
        for selector in selectors:
            pseudo = selector.pseudo_element
            if pseudo not in (None, "before", "after"):
                continue
            try:
                expression = etree.XPath(_translator.selector_to_xpath(selector))
                matches = expression(self.root)
            except (SelectorError, etree.XPathError):
                logger.debug("Skipping untranslatable selector %r", selector_text)
                continue
            specificity = tuple(selector.specificity())
            for element in matches:
                if not isinstance(getattr(element, "tag", None), str):
                    continue
                for declaration in declarations:
                    self._order += 1
                    self._record(element, pseudo, declaration, False, specificity)

    def _apply_inline_styles(self) -> None:
        for element in self.root.iter():
            if not isinstance(element.tag, str):
                continue
            inline = element.get("style")
            if not inline:
                continue
            for declaration in parse_declarations(inline):
                if declaration.name in TRACKED_PROPERTIES:
                    self._order += 1
                    self._record(element, None, declaration, True, (0, 0, 0))

    def _record(
        self,
        element: HtmlElement,
        pseudo: str | None,
        declaration: Declaration,
        inline: bool,
        specificity: tuple[int, ...],
    ) -> None:
        key = (declaration.important, inline, specificity, self._order)
        slot = self._cascade.setdefault((element, pseudo), {})
        current = slot.get(declaration.name)
        if current is None or key > current.key:
            slot[declaration.name] = _Cascaded(key=key, value=declaration.value)


class SnapshotStyleResolver:
    """Styles captured from a live browser, keyed by parsed element."""

    def __init__(self, styles: Mapping[HtmlElement, ElementStyle]) -> None:
        self._styles = dict(styles)

    def style(self, element: HtmlElement) -> ElementStyle:
        return self._styles.get(element, ElementStyle())

    def __len__(self) -> int:
        return len(self._styles)
