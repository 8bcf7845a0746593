from __future__ import annotations

import re
from typing import Any, Sequence

EXPOSED_ATTRIBUTE = "data-a11y-el-exposed"

IGNORED_ATTRIBUTES = frozenset(
    {
        "class",
        "style",
        "id",
        "selected",
        "checked",
        "disabled",
        "tabindex",
        "aria-checked",
        "aria-selected",
        "aria-invalid",
        "aria-activedescendant",
        "aria-busy",
        "aria-disabled",
        "aria-expanded",
        "aria-grabbed",
        "aria-pressed",
        "aria-valuenow",
        "xmlns",
        EXPOSED_ATTRIBUTE,
    }
)

# Selectors that may be unique in this snapshot but not once the page grows.
_GENERIC_SELECTOR_PATTERNS = (
    re.compile(r"^\.[a-zA-Z_-]+$"),
    re.compile(r"^[a-zA-Z]+\[[^\]]+\]$"),
    re.compile(r"^[a-zA-Z]+$"),
    re.compile(r"^[a-zA-Z]+\.[a-zA-Z_-]+$"),
)

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def normalize_space(value: str | None, limit: int | None = None) -> str:
    if not value:
        return ""
    compact = re.sub(r"\s+", " ", str(value)).strip()
    if limit is not None:
        return compact[:limit]
    return compact


def normalize_classes(raw: Sequence[str] | str | None) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        items = raw.split()
    else:
        items = [item for item in raw if isinstance(item, str)]

    seen: set[str] = set()
    normalized: list[str] = []
    for item in items:
        clean = item.strip()
        if not clean or clean in seen:
            continue
        seen.add(clean)
        normalized.append(clean)
    return normalized


def escape_selector(value: Any) -> str:
    """Escape ``value`` for use as a CSS identifier (CSS.escape semantics)."""
    if value is None:
        return ""
    text = str(value)
    if not text:
        return ""

    first = text[0]
    escaped: list[str] = []
    for index, char in enumerate(text):
        code = ord(char)
        if code == 0:
            escaped.append("\ufffd")
            continue
        if (
            0x01 <= code <= 0x1F
            or code == 0x7F
            or (index == 0 and "0" <= char <= "9")
            or (index == 1 and "0" <= char <= "9" and first == "-")
        ):
            escaped.append(f"\\{code:x} ")
            continue
        if index == 0 and len(text) == 1 and char == "-":
            escaped.append("\\-")
            continue
        if code >= 0x80 or char in "-_" or ("0" <= char <= "9") or ("a" <= char.lower() <= "z"):
            escaped.append(char)
            continue
        escaped.append(f"\\{char}")
    return "".join(escaped)


def escape_attribute_value(value: str | None) -> str:
    if not value:
        return ""
    quoted = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return _LINE_BREAKS.sub("\\\\a ", quoted)


def xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    pieces = value.split("'")
    quoted = [f"'{piece}'" for piece in pieces]
    return "concat(" + ", \"'\", ".join(quoted) + ")"


def is_ignored_attribute(name: str) -> bool:
    lowered = name.strip().lower()
    return not lowered or lowered in IGNORED_ATTRIBUTES or ":" in lowered


def harvest_attributes(element: Any) -> list[tuple[str, str]]:
    harvested: list[tuple[str, str]] = []
    for name, value in element.attrib.items():
        if not isinstance(name, str) or is_ignored_attribute(name):
            continue
        harvested.append((name, "" if value is None else str(value)))
    return harvested


def is_generic_selector(selector: str) -> bool:
    return any(pattern.match(selector) for pattern in _GENERIC_SELECTOR_PATTERNS)
