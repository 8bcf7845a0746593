from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from lxml import etree

from .document import DocumentTree, is_element
from .errors import SelectorQueryError

LocatorKind = Literal["CSS", "XPath"]


@dataclass(frozen=True, slots=True)
class MarkupValidation:
    ok: bool
    message: str


@dataclass(frozen=True, slots=True)
class SelectorValidation:
    unique: bool
    match_count: int
    message: str


def validate_markup(markup: Any, max_size: int) -> MarkupValidation:
    if not isinstance(markup, str):
        return MarkupValidation(False, "Markup must be a string.")
    if not markup.strip():
        return MarkupValidation(False, "Markup is required.")
    if len(markup) > max_size:
        return MarkupValidation(False, f"Markup exceeds the {max_size} character limit.")
    return MarkupValidation(True, "Validation successful.")


def count_selector_matches(document: DocumentTree, locator_type: str, locator: str) -> int:
    text = str(locator or "").strip()
    if not text:
        return 0
    try:
        if locator_type == "CSS":
            return document.count(text)
        if locator_type == "XPath":
            matches = document.root.getroottree().xpath(text)
            if not isinstance(matches, list):
                return 0
            return sum(1 for match in matches if is_element(match))
    except (SelectorQueryError, etree.XPathError):
        return 0
    return 0


def validate_selector(document: DocumentTree, locator_type: LocatorKind, locator: str) -> SelectorValidation:
    match_count = count_selector_matches(document, locator_type, locator)
    if match_count == 0:
        return SelectorValidation(False, 0, "Locator matches nothing in DOM.")
    if match_count > 1:
        return SelectorValidation(False, match_count, "Locator is not unique in DOM.")
    return SelectorValidation(True, 1, "Locator is unique.")
