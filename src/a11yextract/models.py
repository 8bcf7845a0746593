from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

# Python field name -> wire key for the optional record attributes.
_OPTIONAL_FIELDS = (
    ("role", "role"),
    ("aria_label", "ariaLabel"),
    ("aria_labelledby", "ariaLabelledby"),
    ("href", "href"),
    ("alt", "alt"),
    ("placeholder", "placeholder"),
    ("alt_text", "altText"),
    ("annotation", "annotation"),
    ("title", "title"),
    ("pseudo_before", "pseudoBefore"),
    ("pseudo_after", "pseudoAfter"),
)


@dataclass(frozen=True, slots=True)
class ElementRecord:
    element: str
    tag_name: str
    inner_text: str
    accessible_text: str
    xpath: str
    selector: str
    role: str | None = None
    aria_label: str | None = None
    aria_labelledby: str | None = None
    href: str | None = None
    alt: str | None = None
    placeholder: str | None = None
    alt_text: str | None = None
    annotation: str | None = None
    title: str | None = None
    pseudo_before: str | None = None
    pseudo_after: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "element": self.element,
            "tagName": self.tag_name,
            "innerText": self.inner_text,
            "accessibleText": self.accessible_text,
            "xpath": self.xpath,
            "selector": self.selector,
        }
        for name, key in _OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value:
                payload[key] = value
        return payload


@dataclass(frozen=True, slots=True)
class LinkRecord:
    element: str
    tag_name: str
    href: str | None
    title: str | None
    role: str | None
    xpath: str
    selector: str
    accessible_text: str
    inner_text: str

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "element": self.element,
            "tagName": self.tag_name,
            "xpath": self.xpath,
            "selector": self.selector,
            "accessibleText": self.accessible_text,
            "innerText": self.inner_text,
        }
        for key, value in (("href", self.href), ("title", self.title), ("role", self.role)):
            if value:
                payload[key] = value
        return payload


@dataclass(slots=True)
class FrequencyTable:
    tags: Counter[str] = field(default_factory=Counter)
    classes: Counter[str] = field(default_factory=Counter)
    attributes: Counter[str] = field(default_factory=Counter)
    element_count: int = 0

    def tag_count(self, tag: str) -> int:
        return self.tags.get(tag, 0)

    def class_count(self, escaped_class: str) -> int:
        return self.classes.get(escaped_class, 0)

    def attribute_count(self, feature: str) -> int:
        return self.attributes.get(feature, 0)

    def summary(self) -> dict[str, int]:
        return {
            "elements": self.element_count,
            "uniqueTags": len(self.tags),
            "uniqueClasses": len(self.classes),
            "uniqueAttributes": len(self.attributes),
        }


@dataclass(frozen=True, slots=True)
class XPathSegment:
    tag: str
    id: str | None = None
    class_name: str | None = None
    count: int | None = None

    def serialize(self) -> str:
        if self.id is not None:
            return f"/{self.tag}[@id={self.id}]"
        if self.class_name is not None:
            return f"/{self.tag}[@class={self.class_name}]"
        if self.count is not None and self.count > 1:
            return f"/{self.tag}[{self.count}]"
        return f"/{self.tag}"


@dataclass(frozen=True, slots=True)
class PseudoStyle:
    content: str = "none"
    display: str = "inline"
    visibility: str = "visible"

    @property
    def hidden(self) -> bool:
        return self.display == "none" or self.visibility == "hidden"


@dataclass(frozen=True, slots=True)
class ElementStyle:
    display: str = "inline"
    visibility: str = "visible"
    before: PseudoStyle = field(default_factory=PseudoStyle)
    after: PseudoStyle = field(default_factory=PseudoStyle)
