from __future__ import annotations


class A11yExtractError(Exception):
    def __init__(self, message: str | None = None) -> None:
        self.message = message
        super().__init__(message)


class InvalidMarkupError(A11yExtractError, ValueError):
    """Raised before any DOM work when the input markup is unusable."""


class ProviderUnavailableError(A11yExtractError):
    def __init__(self, message: str | None = None, hint: str | None = None) -> None:
        self.hint = hint
        full = message or "Rendering provider is unavailable."
        if hint:
            full = f"{full} {hint}"
        super().__init__(full)


class RenderingError(A11yExtractError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(f"Failed to render markup: {message}")


class SelectorQueryError(A11yExtractError):
    def __init__(self, selector: str, reason: str | None = None) -> None:
        self.selector = selector
        detail = f"Selector {selector!r} could not be evaluated"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)
