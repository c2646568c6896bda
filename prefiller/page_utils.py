from __future__ import annotations

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError


def _log_fallback(logger) -> None:
    if logger:
        logger.debug("load state timed out, falling back to domcontentloaded")


def safe_goto(
    page,
    url: str,
    *,
    wait_until: str = "load",
    timeout_ms: int = 20000,
    logger=None,
):
    """Navigate, settling for DOM readiness when full load never arrives."""
    try:
        return page.goto(url, wait_until=wait_until, timeout=timeout_ms)
    except PlaywrightTimeoutError:
        if wait_until != "load":
            raise
        _log_fallback(logger)
        return page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)


def wait_for_forms(
    page,
    *,
    timeout_ms: int = 5000,
    logger=None,
) -> bool:
    """Give lazily rendered forms a moment to appear before the first scrape."""
    try:
        page.wait_for_selector("input, textarea, select, [contenteditable]", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        if logger:
            logger.debug("No form controls appeared within %sms", timeout_ms)
        return False
    return True


__all__ = ["safe_goto", "wait_for_forms"]
