"""Provider factory keyed by ``ProviderKind``."""

from __future__ import annotations

import logging
from typing import Optional

import requests
from playwright.sync_api import Page

from .config import ProviderConfig, ProviderKind, ollama_host, validate_api_key_format
from .gateway import FormProvider, FormResponsesMixin, generate_form_responses
from .http_providers import ClaudeProvider, GeminiProvider, GroqProvider
from .local_providers import ChromeAIProvider, LocalAvailability, OllamaProvider


def create_provider(
    kind: ProviderKind | str,
    api_key: Optional[str] = None,
    page: Optional[Page] = None,
    config: Optional[ProviderConfig] = None,
    session: Optional[requests.Session] = None,
    logger: Optional[logging.Logger] = None,
) -> FormProvider:
    """Construct the adapter for ``kind``.

    Credentialed kinds raise ``ValueError`` without a key; Chrome AI raises
    it without a page. A key that does not look like the provider's format is
    only logged, since formats change.
    """
    log = logger or logging.getLogger(__name__)
    try:
        kind = ProviderKind(kind)
    except ValueError:
        raise ValueError(f"Unknown provider: {kind!r}") from None
    config = config or ProviderConfig()

    if kind in (ProviderKind.GEMINI, ProviderKind.CLAUDE, ProviderKind.GROQ):
        if not api_key:
            raise ValueError(f"API key required for {kind.value}")
        if not validate_api_key_format(kind, api_key):
            log.warning("The %s API key does not match the expected format", kind.value)
        adapter = {
            ProviderKind.GEMINI: GeminiProvider,
            ProviderKind.CLAUDE: ClaudeProvider,
            ProviderKind.GROQ: GroqProvider,
        }[kind]
        return adapter(api_key, config=config, session=session, logger=log)
    if kind is ProviderKind.CHROME_AI:
        if page is None:
            raise ValueError("Chrome AI requires a browser page")
        return ChromeAIProvider(page, config=config, logger=log)
    return OllamaProvider(host=ollama_host(), config=config, logger=log)


__all__ = [
    "FormProvider",
    "FormResponsesMixin",
    "LocalAvailability",
    "ProviderKind",
    "create_provider",
    "generate_form_responses",
    "GeminiProvider",
    "ClaudeProvider",
    "GroqProvider",
    "ChromeAIProvider",
    "OllamaProvider",
]
