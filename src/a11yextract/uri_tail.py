from __future__ import annotations

from dataclasses import dataclass
import re
from urllib.parse import urlsplit

DEFAULT_MAX_LENGTH = 25

_DIGITS = re.compile(r"[0-9]")
_INDEX_PAGE = re.compile(r"index(\.[a-zA-Z]{2,4})?")


@dataclass(frozen=True, slots=True)
class UriParts:
    protocol: str
    domain: str
    port: str
    path: str
    query: str
    hash: str


def parse_uri(uri: str) -> UriParts:
    """Split ``uri`` into its parts; relative references keep an empty domain."""
    parts = urlsplit(uri)
    domain = parts.hostname or ""
    port = ""
    try:
        port = str(parts.port) if parts.port is not None else ""
    except ValueError:
        port = ""
    hash_part = f"#{parts.fragment}" if parts.fragment else ""
    query = f"?{parts.query}" if parts.query else ""
    return UriParts(
        protocol=parts.scheme.lower(),
        domain=domain,
        port=port,
        path=parts.path,
        query=query,
        hash=hash_part,
    )


def friendly_uri_end(uri: str | None, max_length: int = DEFAULT_MAX_LENGTH) -> str | None:
    """Return a short, stable tail of ``uri`` suitable for ``[attr$="tail"]``."""
    if not uri or len(uri) <= 1:
        return None
    lowered = uri.lower()
    if lowered.startswith("data:") or lowered.startswith("javascript:") or "?" in uri:
        return None

    parts = parse_uri(uri)
    path = parts.path
    path_end = path[path[: max(len(path) - 2, 0)].rfind("/") + 1 :] if path else ""

    if parts.hash:
        if path_end and len(path_end + parts.hash) <= max_length:
            return (path_end + parts.hash).rstrip()
        if len(path_end) < 2 and 2 < len(parts.hash) <= max_length:
            return parts.hash.rstrip()
        return None

    domain = parts.domain
    if domain.startswith("www."):
        domain = domain[4:]
    if domain and len(domain) < max_length and len(path) <= 1:
        return (domain + path).rstrip()

    last_dot = path_end.rfind(".")
    if (
        (last_dot == -1 or last_dot > 1)
        and (last_dot != -1 or len(path_end) > 2)
        and len(path_end) <= max_length
        and not _INDEX_PAGE.search(path_end)
        and not _is_mostly_numbers(path_end)
    ):
        return path_end.rstrip()
    return None


def _is_mostly_numbers(value: str) -> bool:
    if not value:
        return False
    return len(_DIGITS.findall(value)) >= len(value) / 2
