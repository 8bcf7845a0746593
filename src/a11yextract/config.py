from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import os
from typing import Literal, Mapping

from .selector_rules import EXPOSED_ATTRIBUTE

RendererName = Literal["browser", "static"]

ENV_PREFIX = "A11YEXTRACT_"
DEFAULT_BROWSER_ARGS = ("--no-sandbox", "--disable-setuid-sandbox")
_WAIT_UNTIL_VALUES = ("load", "domcontentloaded", "networkidle", "commit")

logger = logging.getLogger("a11yextract.config")


@dataclass(frozen=True, slots=True)
class ExtractionSettings:
    renderer: RendererName = "browser"
    headless: bool = True
    browser_args: tuple[str, ...] = DEFAULT_BROWSER_ARGS
    wait_until: str = "load"
    navigation_timeout_ms: int = 30_000
    max_markup_size: int = 100_000
    max_context_depth: int = 3
    max_child_depth: int = 2
    attribute_value_limit: int = 30
    exposed_attribute: str = EXPOSED_ATTRIBUTE


def load_settings(
    environ: Mapping[str, str] | None = None,
    base: ExtractionSettings | None = None,
) -> ExtractionSettings:
    env = os.environ if environ is None else environ
    settings = base or ExtractionSettings()
    overrides: dict[str, object] = {}

    renderer = env.get(f"{ENV_PREFIX}RENDERER", "").strip().lower()
    if renderer in ("browser", "static"):
        overrides["renderer"] = renderer
    elif renderer:
        logger.warning("Ignoring unknown renderer %r", renderer)

    headless = _parse_bool(env.get(f"{ENV_PREFIX}HEADLESS"))
    if headless is not None:
        overrides["headless"] = headless

    raw_args = env.get(f"{ENV_PREFIX}BROWSER_ARGS")
    if raw_args is not None:
        overrides["browser_args"] = tuple(arg for arg in raw_args.split() if arg)

    wait_until = env.get(f"{ENV_PREFIX}WAIT_UNTIL", "").strip().lower()
    if wait_until in _WAIT_UNTIL_VALUES:
        overrides["wait_until"] = wait_until
    elif wait_until:
        logger.warning("Ignoring unknown wait_until %r", wait_until)

    for env_name, field_name in (
        ("TIMEOUT_MS", "navigation_timeout_ms"),
        ("MAX_MARKUP_SIZE", "max_markup_size"),
        ("MAX_CONTEXT_DEPTH", "max_context_depth"),
        ("MAX_CHILD_DEPTH", "max_child_depth"),
    ):
        value = _parse_positive_int(env.get(f"{ENV_PREFIX}{env_name}"))
        if value is not None:
            overrides[field_name] = value

    if not overrides:
        return settings
    return replace(settings, **overrides)


def _parse_bool(raw: str | None) -> bool | None:
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return None


def _parse_positive_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    value = raw.strip()
    if not value.isdigit() or int(value) <= 0:
        if value:
            logger.warning("Ignoring non-positive integer setting %r", value)
        return None
    return int(value)
