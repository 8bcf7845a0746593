from a11yextract.runtime_checks import is_closed_target_error, is_missing_browser_error


def test_missing_browser_error_detection() -> None:
    assert is_missing_browser_error(RuntimeError("Executable doesn't exist at /tmp/chromium/chrome"))
    assert is_missing_browser_error(RuntimeError("Please run the following command to download new browsers"))
    assert not is_missing_browser_error(RuntimeError("net::ERR_CONNECTION_REFUSED"))


def test_closed_target_error_detection() -> None:
    assert is_closed_target_error(RuntimeError("Target page, context or browser has been closed"))
    assert is_closed_target_error(RuntimeError("Target closed"))
    assert not is_closed_target_error(RuntimeError("Timeout 30000ms exceeded"))
