"""Credential-free backends: the browser's built-in model and a local Ollama server."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

import ollama
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from .config import DEFAULT_OLLAMA_HOST, ProviderConfig, ProviderKind
from .gateway import FormResponsesMixin
from .provider_errors import ProviderError, ProviderErrorCode, classify_status


class LocalAvailability(str, Enum):
    READY = "ready"
    AFTER_DOWNLOAD = "after-download"
    UNAVAILABLE = "unavailable"


CHROME_AVAILABILITY_SCRIPT = """
async () => {
  try {
    if (typeof LanguageModel !== 'undefined' && LanguageModel.availability) {
      return String(await LanguageModel.availability());
    }
    if (window.ai && window.ai.languageModel && window.ai.languageModel.capabilities) {
      const caps = await window.ai.languageModel.capabilities();
      return String(caps.available);
    }
  } catch (err) {
    return 'error:' + (err && err.message ? err.message : String(err));
  }
  return 'unsupported';
}
"""

CHROME_PROMPT_SCRIPT = """
async ({ prompt, temperature, topK }) => {
  const factory = typeof LanguageModel !== 'undefined'
    ? LanguageModel
    : (window.ai && window.ai.languageModel);
  if (!factory) {
    throw new Error('Prompt API not available');
  }
  const session = await factory.create({ temperature, topK });
  try {
    return await session.prompt(prompt);
  } finally {
    if (session.destroy) session.destroy();
  }
}
"""

_CHROME_STATES = {
    "readily": LocalAvailability.READY,
    "available": LocalAvailability.READY,
    "after-download": LocalAvailability.AFTER_DOWNLOAD,
    "downloadable": LocalAvailability.AFTER_DOWNLOAD,
    "downloading": LocalAvailability.AFTER_DOWNLOAD,
}


class ChromeAIProvider(FormResponsesMixin):
    """Gemini Nano through the Prompt API of the page's own browser."""

    kind = ProviderKind.CHROME_AI

    def __init__(
        self,
        page: Page,
        config: Optional[ProviderConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if page is None:
            raise ValueError("Chrome AI needs a live page to run in")
        self.page = page
        self.config = config or ProviderConfig()
        self.logger = logger or logging.getLogger(__name__)

    def get_name(self) -> str:
        return "Chrome AI"

    def requires_api_key(self) -> bool:
        return False

    def check_availability(self) -> LocalAvailability:
        try:
            state = self.page.evaluate(CHROME_AVAILABILITY_SCRIPT)
        except PlaywrightError as exc:
            self.logger.debug("Availability probe failed: %s", exc)
            return LocalAvailability.UNAVAILABLE
        availability = _CHROME_STATES.get(str(state), LocalAvailability.UNAVAILABLE)
        self.logger.debug("Chrome AI reports %r -> %s", state, availability.value)
        return availability

    def generate_content(self, prompt: str) -> str:
        try:
            reply = self.page.evaluate(
                CHROME_PROMPT_SCRIPT,
                {"prompt": prompt, "temperature": self.config.temperature, "topK": self.config.top_k},
            )
        except PlaywrightError as exc:
            message = str(exc)
            if "not available" in message.lower():
                raise ProviderError(
                    ProviderErrorCode.UNAVAILABLE,
                    "the Prompt API is not available in this browser",
                    self.get_name(),
                    cause=exc,
                ) from exc
            raise ProviderError(
                ProviderErrorCode.UNKNOWN, message.splitlines()[0] if message else "prompt failed",
                self.get_name(), cause=exc,
            ) from exc
        return reply if isinstance(reply, str) else ""

    def test_connection(self) -> bool:
        availability = self.check_availability()
        if availability is LocalAvailability.UNAVAILABLE:
            raise ProviderError(
                ProviderErrorCode.UNAVAILABLE,
                "the Prompt API is not enabled; turn it on in chrome://flags",
                self.get_name(),
            )
        if availability is LocalAvailability.AFTER_DOWNLOAD:
            self.logger.info("Chrome AI model downloads on first use; this may take a few minutes")
        return True


class OllamaProvider(FormResponsesMixin):
    """Any model served by a local Ollama instance."""

    kind = ProviderKind.OLLAMA

    def __init__(
        self,
        host: str = DEFAULT_OLLAMA_HOST,
        config: Optional[ProviderConfig] = None,
        client: Optional[Any] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.host = host
        self.config = config or ProviderConfig()
        self.client = client or ollama.Client(host=host, timeout=self.config.timeout_s)
        self.logger = logger or logging.getLogger(__name__)
        self._model_ready = False

    @property
    def model(self) -> str:
        return self.config.model_for(self.kind)

    def get_name(self) -> str:
        return "Ollama"

    def requires_api_key(self) -> bool:
        return False

    def check_availability(self) -> LocalAvailability:
        try:
            self.client.show(self.model)
        except ollama.ResponseError as exc:
            if exc.status_code == 404:
                return LocalAvailability.AFTER_DOWNLOAD
            self.logger.debug("Ollama show failed: %s", exc)
            return LocalAvailability.UNAVAILABLE
        except ConnectionError as exc:
            self.logger.debug("Ollama not reachable at %s: %s", self.host, exc)
            return LocalAvailability.UNAVAILABLE
        self._model_ready = True
        return LocalAvailability.READY

    def _ensure_model(self) -> None:
        if self._model_ready:
            return
        availability = self.check_availability()
        if availability is LocalAvailability.UNAVAILABLE:
            raise ProviderError(
                ProviderErrorCode.UNAVAILABLE,
                f"no Ollama server reachable at {self.host}",
                self.get_name(),
            )
        if availability is LocalAvailability.AFTER_DOWNLOAD:
            self.logger.info("Pulling Ollama model %s", self.model)
            try:
                self.client.pull(self.model)
            except ollama.ResponseError as exc:
                raise self._response_error(exc) from exc
            self._model_ready = True

    def _response_error(self, exc: "ollama.ResponseError") -> ProviderError:
        status = getattr(exc, "status_code", None)
        code = classify_status(status)
        if status == 404:
            code = ProviderErrorCode.UNAVAILABLE
        return ProviderError(code, str(exc.error), self.get_name(), status=status, cause=exc)

    def generate_content(self, prompt: str) -> str:
        self._ensure_model()
        try:
            response = self.client.chat(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                options={
                    "temperature": self.config.temperature,
                    "top_k": self.config.top_k,
                    "top_p": self.config.top_p,
                    "num_predict": self.config.max_tokens,
                },
            )
        except ollama.ResponseError as exc:
            raise self._response_error(exc) from exc
        except ConnectionError as exc:
            raise ProviderError(
                ProviderErrorCode.NETWORK_ERROR,
                f"lost connection to Ollama at {self.host}",
                self.get_name(),
                cause=exc,
            ) from exc
        return response.message.content or ""

    def test_connection(self) -> bool:
        availability = self.check_availability()
        if availability is LocalAvailability.UNAVAILABLE:
            raise ProviderError(
                ProviderErrorCode.UNAVAILABLE,
                f"no Ollama server reachable at {self.host}",
                self.get_name(),
            )
        if availability is LocalAvailability.AFTER_DOWNLOAD:
            self.logger.info("Model %s will be pulled on first use", self.model)
        return True


__all__ = [
    "LocalAvailability",
    "ChromeAIProvider",
    "OllamaProvider",
]
