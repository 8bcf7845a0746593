from __future__ import annotations

import logging

from .document import DocumentTree
from .models import FrequencyTable
from .selector_rules import (
    escape_attribute_value,
    escape_selector,
    harvest_attributes,
    normalize_classes,
)
from .uri_tail import friendly_uri_end

DEFAULT_VALUE_LIMIT = 30

logger = logging.getLogger("a11yextract.statistics")


def attribute_feature(name: str, value: str, value_limit: int = DEFAULT_VALUE_LIMIT) -> str | None:
    """Build the ``name="value"`` (or ``name$="tail"``) key counted for one attribute."""
    if value and len(value) > value_limit:
        return None
    escaped_name = escape_selector(name)
    lowered = name.lower()
    if "href" in lowered or "src" in lowered:
        tail = friendly_uri_end(value)
        if tail:
            return f'{escaped_name}$="{escape_attribute_value(tail)}"'
    return f'{escaped_name}="{escape_attribute_value(value)}"'


def element_features(element, value_limit: int = DEFAULT_VALUE_LIMIT) -> list[str]:
    features: list[str] = []
    for name, value in harvest_attributes(element):
        feature = attribute_feature(name, value, value_limit)
        if feature is not None:
            features.append(feature)
    return features


def collect_frequency_table(document: DocumentTree, value_limit: int = DEFAULT_VALUE_LIMIT) -> FrequencyTable:
    table = FrequencyTable()
    for element in document.iter_elements():
        table.element_count += 1
        table.tags[element.tag] += 1
        for token in normalize_classes(element.get("class")):
            table.classes[escape_selector(token)] += 1
        for feature in element_features(element, value_limit):
            table.attributes[feature] += 1

    logger.debug("DOM statistics: %s", table.summary())
    return table
