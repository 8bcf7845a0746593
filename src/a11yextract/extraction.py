from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Iterator, Sequence

from lxml.html import HtmlElement

from .accessible_name import AccessibleNameResolver, pseudo_element_content
from .browser_manager import Renderer, create_renderer
from .config import ExtractionSettings, load_settings
from .document import DocumentTree
from .dom_statistics import collect_frequency_table
from .errors import InvalidMarkupError, SelectorQueryError
from .locator_generator import generate_selector
from .models import ElementRecord, FrequencyTable, LinkRecord
from .validation import validate_markup, validate_selector
from .xpath_generator import generate_xpath

FUNCTION_NOT_AVAILABLE = "function-not-available"
SELECTOR_ERROR = "error-generating-selector"
XPATH_ERROR = "error-generating-xpath"

ALLOWLIST: tuple[str, ...] = (
    "a[href]",
    '[role="link"]',
    "button",
    "input",
    "select",
    "textarea",
    "fieldset",
    "table",
    "figure",
    "img",
    "object",
    "embed",
    "iframe",
    "audio",
    "video",
    "canvas",
    "svg",
    "math",
    "label",
    'div[id*="pseudo"]',
    "div[role]",
    "span[id]",
    "div[id]",
    "[aria-label]",
    "[aria-labelledby]",
    "[aria-hidden]",
    '[role="form"]',
    '[role="checkbox"]',
    '[role="radio"]',
    '[role="button"]',
    '[role="textbox"]',
    '[role="slider"]',
    '[role="progressbar"]',
    '[role="img"]',
    '[role="heading"]',
    '[role="group"]',
    '[role="region"]',
    '[role="alert"]',
    '[role="status"]',
    '[role="log"]',
    '[role="marquee"]',
    '[role="timer"]',
    '[role="columnheader"]',
    '[role="presentation"]',
    '[role="none"]',
    "[contenteditable]",
    "custom-element",
    "my-autonomous-element",
    "[is]",
    "xml\\:element",
    "xhtml\\:span",
)

LINK_PATTERNS: tuple[str, ...] = ("a[href]", '[role="link"]')

logger = logging.getLogger("a11yextract.extraction")


@dataclass(slots=True)
class ExtractionContext:
    """Per-call state shared by every field computation."""

    document: DocumentTree
    table: FrequencyTable
    settings: ExtractionSettings
    resolver: AccessibleNameResolver
    processed: set[HtmlElement] = field(default_factory=set)

    @classmethod
    def build(cls, document: DocumentTree, settings: ExtractionSettings) -> ExtractionContext:
        table = collect_frequency_table(document, settings.attribute_value_limit)
        return cls(
            document=document,
            table=table,
            settings=settings,
            resolver=AccessibleNameResolver(document, settings.max_child_depth),
        )


TextCapability = Callable[[ExtractionContext, HtmlElement], str]
PseudoCapability = Callable[[ExtractionContext, HtmlElement], tuple[str, str]]


def _selector_capability(context: ExtractionContext, element: HtmlElement) -> str:
    return generate_selector(
        context.document,
        element,
        context.table,
        max_depth=context.settings.max_context_depth,
        value_limit=context.settings.attribute_value_limit,
    )


def _xpath_capability(context: ExtractionContext, element: HtmlElement) -> str:
    return generate_xpath(context.document, element)


def _name_capability(context: ExtractionContext, element: HtmlElement) -> str:
    return context.resolver.resolve(element)


def _pseudo_capability(context: ExtractionContext, element: HtmlElement) -> tuple[str, str]:
    return pseudo_element_content(context.document, element)


@dataclass(frozen=True, slots=True)
class Capabilities:
    selector: TextCapability | None = _selector_capability
    xpath: TextCapability | None = _xpath_capability
    accessible_name: TextCapability | None = _name_capability
    pseudo_content: PseudoCapability | None = _pseudo_capability


DEFAULT_CAPABILITIES = Capabilities()


def _iter_candidates(context: ExtractionContext, patterns: Sequence[str]) -> Iterator[HtmlElement]:
    for pattern in patterns:
        try:
            matches = context.document.query_all(pattern)
        except SelectorQueryError:
            logger.warning("Skipping allowlist pattern %r", pattern, exc_info=True)
            continue
        for element in matches:
            if element in context.processed:
                continue
            context.processed.add(element)
            yield element


def _expose(context: ExtractionContext, element: HtmlElement) -> str:
    markup = context.document.outer_html(element)
    context.document.set_attribute(element, context.settings.exposed_attribute, "true")
    return markup


def _run_text(
    capability: TextCapability | None,
    context: ExtractionContext,
    element: HtmlElement,
    label: str,
    error_value: str,
) -> str:
    if capability is None:
        logger.error("%s function not available", label)
        return FUNCTION_NOT_AVAILABLE
    try:
        return capability(context, element)
    except Exception:
        logger.error("%s failed for <%s>", label, element.tag, exc_info=True)
        return error_value


def _accessible_text(capabilities: Capabilities, context: ExtractionContext, element: HtmlElement) -> str:
    text_content = context.document.text_content(element)
    if capabilities.accessible_name is None:
        logger.error("accessible name function not available")
        return text_content
    try:
        return capabilities.accessible_name(context, element)
    except Exception:
        logger.error("accessible name failed for <%s>", element.tag, exc_info=True)
        return text_content


def _pseudo_text(capabilities: Capabilities, context: ExtractionContext, element: HtmlElement) -> tuple[str, str]:
    if capabilities.pseudo_content is None:
        logger.error("pseudo-element content function not available")
        return "", ""
    try:
        return capabilities.pseudo_content(context, element)
    except Exception:
        logger.error("pseudo-element content failed for <%s>", element.tag, exc_info=True)
        return "", ""


def _annotation(context: ExtractionContext, element: HtmlElement) -> str | None:
    try:
        found = context.document.query_first('semantics > annotation[encoding="text/plain"]', element)
    except SelectorQueryError:
        return None
    if found is None:
        return None
    return context.document.text_content(found) or None


def build_element_record(
    context: ExtractionContext,
    element: HtmlElement,
    capabilities: Capabilities = DEFAULT_CAPABILITIES,
) -> ElementRecord:
    markup = _expose(context, element)
    selector = _run_text(capabilities.selector, context, element, "selector", SELECTOR_ERROR)
    xpath = _run_text(capabilities.xpath, context, element, "xpath", XPATH_ERROR)
    accessible_text = _accessible_text(capabilities, context, element)
    before, after = _pseudo_text(capabilities, context, element)

    if selector not in (FUNCTION_NOT_AVAILABLE, SELECTOR_ERROR) and logger.isEnabledFor(logging.DEBUG):
        check = validate_selector(context.document, "CSS", selector)
        if not check.unique:
            logger.debug("Selector %r for <%s>: %s", selector, element.tag, check.message)

    return ElementRecord(
        element=markup,
        tag_name=element.tag.lower(),
        inner_text=context.document.text_content(element),
        accessible_text=accessible_text,
        xpath=xpath,
        selector=selector,
        role=element.get("role") or None,
        aria_label=element.get("aria-label") or None,
        aria_labelledby=element.get("aria-labelledby") or None,
        href=element.get("href") or None,
        alt=element.get("alt") or None,
        placeholder=element.get("placeholder") or None,
        alt_text=element.get("alttext") or None,
        annotation=_annotation(context, element),
        title=element.get("title") or None,
        pseudo_before=before or None,
        pseudo_after=after or None,
    )


def build_link_record(
    context: ExtractionContext,
    element: HtmlElement,
    capabilities: Capabilities = DEFAULT_CAPABILITIES,
) -> LinkRecord:
    markup = _expose(context, element)
    return LinkRecord(
        element=markup,
        tag_name=element.tag.lower(),
        href=element.get("href") or None,
        title=element.get("title") or None,
        role=element.get("role") or None,
        xpath=_run_text(capabilities.xpath, context, element, "xpath", XPATH_ERROR),
        selector=_run_text(capabilities.selector, context, element, "selector", SELECTOR_ERROR),
        accessible_text=_accessible_text(capabilities, context, element),
        inner_text=context.document.text_content(element),
    )


def extract_from_document(
    document: DocumentTree,
    *,
    settings: ExtractionSettings | None = None,
    capabilities: Capabilities | None = None,
    patterns: Sequence[str] = ALLOWLIST,
) -> list[ElementRecord]:
    resolved_settings = settings or ExtractionSettings()
    context = ExtractionContext.build(document, resolved_settings)
    caps = capabilities or DEFAULT_CAPABILITIES
    records = [build_element_record(context, element, caps) for element in _iter_candidates(context, patterns)]
    logger.info("Extracted %d element records", len(records))
    return records


def links_from_document(
    document: DocumentTree,
    *,
    settings: ExtractionSettings | None = None,
    capabilities: Capabilities | None = None,
) -> list[LinkRecord]:
    resolved_settings = settings or ExtractionSettings()
    context = ExtractionContext.build(document, resolved_settings)
    caps = capabilities or DEFAULT_CAPABILITIES
    records = [build_link_record(context, element, caps) for element in _iter_candidates(context, LINK_PATTERNS)]
    logger.info("Extracted %d link records", len(records))
    return records


def _checked_settings(markup: object, settings: ExtractionSettings | None) -> ExtractionSettings:
    resolved = settings or load_settings()
    validation = validate_markup(markup, resolved.max_markup_size)
    if not validation.ok:
        raise InvalidMarkupError(validation.message)
    return resolved


def extract_accessible_text(
    markup: str,
    *,
    settings: ExtractionSettings | None = None,
    renderer: Renderer | None = None,
    capabilities: Capabilities | None = None,
) -> list[ElementRecord]:
    resolved = _checked_settings(markup, settings)
    active_renderer = renderer or create_renderer(resolved)
    with active_renderer.render(markup) as document:
        return extract_from_document(document, settings=resolved, capabilities=capabilities)


def extract_links(
    markup: str,
    *,
    settings: ExtractionSettings | None = None,
    renderer: Renderer | None = None,
    capabilities: Capabilities | None = None,
) -> list[LinkRecord]:
    resolved = _checked_settings(markup, settings)
    active_renderer = renderer or create_renderer(resolved)
    with active_renderer.render(markup) as document:
        return links_from_document(document, settings=resolved, capabilities=capabilities)
