from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping, Protocol

from lxml.html import HtmlElement

from .config import ExtractionSettings
from .document import DocumentTree, is_element, parse_markup
from .errors import A11yExtractError, ProviderUnavailableError, RenderingError
from .models import ElementStyle, PseudoStyle
from .runtime_checks import INSTALL_HINT, is_closed_target_error, is_missing_browser_error
from .styles import SnapshotStyleResolver, StaticStyleResolver

if TYPE_CHECKING:
    from playwright.sync_api import Browser, Playwright

SNAPSHOT_ATTRIBUTE = "data-a11y-snapshot-index"

# Stamps every element with its document-order index so computed styles can be
# matched back to the re-parsed tree.
_SNAPSHOT_SCRIPT = """
(attribute) => {
  const read = (element, pseudo) => {
    const style = window.getComputedStyle(element, pseudo);
    return { content: style.content, display: style.display, visibility: style.visibility };
  };
  const styles = Array.from(document.querySelectorAll('*')).map((element, index) => {
    element.setAttribute(attribute, String(index));
    const own = read(element, null);
    return {
      display: own.display,
      visibility: own.visibility,
      before: read(element, '::before'),
      after: read(element, '::after'),
    };
  });
  return { html: document.documentElement.outerHTML, styles };
}
"""

PlaywrightFactory = Callable[[], "Playwright"]

logger = logging.getLogger("a11yextract.browser")


class Renderer(Protocol):
    def render(self, markup: str) -> Any: ...


class StaticRenderer:
    """Parse markup with lxml and resolve styles from the document's own CSS."""

    @contextmanager
    def render(self, markup: str) -> Iterator[DocumentTree]:
        root = parse_markup(markup)
        yield DocumentTree(root, StaticStyleResolver(root))


class BrowserRenderer:
    """Render markup in headless Chromium and snapshot the computed styles."""

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        playwright_factory: PlaywrightFactory | None = None,
    ) -> None:
        self.settings = settings or ExtractionSettings()
        self._playwright_factory = playwright_factory or _start_playwright

    @contextmanager
    def render(self, markup: str) -> Iterator[DocumentTree]:
        playwright = self._acquire()
        try:
            browser = self._launch(playwright)
            try:
                snapshot = self._snapshot(browser, markup)
            finally:
                _close_quietly(browser, "browser")
        finally:
            _close_quietly(playwright, "playwright", method="stop")
        yield build_snapshot_document(snapshot)

    def _acquire(self) -> Playwright:
        try:
            return self._playwright_factory()
        except Exception as exc:
            raise ProviderUnavailableError(f"Playwright is not available: {exc}") from exc

    def _launch(self, playwright: Playwright) -> Browser:
        try:
            return playwright.chromium.launch(
                headless=self.settings.headless,
                args=list(self.settings.browser_args),
            )
        except Exception as exc:
            hint = INSTALL_HINT if is_missing_browser_error(exc) else None
            raise ProviderUnavailableError(f"Failed to launch Chromium: {exc}", hint=hint) from exc

    def _snapshot(self, browser: Browser, markup: str) -> Mapping[str, Any]:
        context = None
        try:
            context = browser.new_context()
            page = context.new_page()
            # The snapshot only needs the markup itself.
            page.route("**/*", lambda route: route.abort())
            page.set_content(
                markup,
                wait_until=self.settings.wait_until,
                timeout=self.settings.navigation_timeout_ms,
            )
            snapshot = page.evaluate(_SNAPSHOT_SCRIPT, SNAPSHOT_ATTRIBUTE)
        except A11yExtractError:
            raise
        except Exception as exc:
            if is_closed_target_error(exc):
                raise RenderingError(f"browser closed during snapshot: {exc}") from exc
            raise RenderingError(str(exc)) from exc
        finally:
            if context is not None:
                _close_quietly(context, "context")
        if not isinstance(snapshot, Mapping) or not isinstance(snapshot.get("html"), str):
            raise RenderingError("snapshot returned no document markup")
        return snapshot


def build_snapshot_document(snapshot: Mapping[str, Any]) -> DocumentTree:
    root = parse_markup(snapshot["html"])
    raw_styles = snapshot.get("styles") or []
    styles: dict[HtmlElement, ElementStyle] = {}
    for element in root.iter():
        if not is_element(element):
            continue
        stamp = element.attrib.pop(SNAPSHOT_ATTRIBUTE, None)
        if stamp is None or not stamp.isdigit():
            continue
        index = int(stamp)
        if index < len(raw_styles):
            styles[element] = _element_style(raw_styles[index])
    return DocumentTree(root, SnapshotStyleResolver(styles))


def _element_style(raw: Mapping[str, Any]) -> ElementStyle:
    return ElementStyle(
        display=str(raw.get("display") or "inline"),
        visibility=str(raw.get("visibility") or "visible"),
        before=_pseudo_style(raw.get("before")),
        after=_pseudo_style(raw.get("after")),
    )


def _pseudo_style(raw: Any) -> PseudoStyle:
    if not isinstance(raw, Mapping):
        return PseudoStyle()
    return PseudoStyle(
        content=str(raw.get("content") or "none"),
        display=str(raw.get("display") or "inline"),
        visibility=str(raw.get("visibility") or "visible"),
    )


def create_renderer(settings: ExtractionSettings) -> StaticRenderer | BrowserRenderer:
    if settings.renderer == "static":
        return StaticRenderer()
    return BrowserRenderer(settings)


def _start_playwright() -> Playwright:
    from playwright.sync_api import sync_playwright

    return sync_playwright().start()


def _close_quietly(resource: Any, label: str, method: str = "close") -> None:
    try:
        getattr(resource, method)()
    except Exception as exc:
        logger.debug("Ignoring error while closing %s: %s", label, exc)
