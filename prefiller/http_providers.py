"""Hosted model backends reached over HTTPS with ``requests``."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from .config import (
    CLAUDE_API_VERSION,
    CLAUDE_ENDPOINT,
    GEMINI_ENDPOINT,
    GROQ_ENDPOINT,
    ProviderConfig,
    ProviderKind,
    provider_info,
)
from .gateway import FormResponsesMixin
from .provider_errors import ProviderError, ProviderErrorCode, classify_status

CONNECTION_TEST_PROMPT = 'Say "OK"'
CONNECTION_TEST_TOKENS = 5

ErrorHandler = Callable[[int, Any], ProviderError]


def _error_details(body: Any) -> tuple[str, str]:
    """Return ``(type, message)`` from a ``{"error": {...}}`` envelope."""
    if not isinstance(body, Mapping):
        return "", ""
    error = body.get("error")
    if isinstance(error, Mapping):
        return str(error.get("type") or error.get("status") or ""), str(error.get("message") or "")
    if isinstance(error, str):
        return "", error
    return "", ""


def _body_text(body: Any) -> str:
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return str(body)


def post_json(
    session: requests.Session,
    url: str,
    payload: Dict[str, Any],
    *,
    provider: str,
    handle_error: ErrorHandler,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 30.0,
    logger: Optional[logging.Logger] = None,
) -> Any:
    """POST ``payload`` and return the decoded JSON reply.

    Transport failures become NETWORK_ERROR; non-2xx replies go through the
    adapter's ``handle_error``. Headers are never logged.
    """
    log = logger or logging.getLogger(__name__)
    try:
        response = session.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.Timeout as exc:
        raise ProviderError(
            ProviderErrorCode.NETWORK_ERROR, "request timeout", provider, cause=exc
        ) from exc
    except requests.ConnectionError as exc:
        raise ProviderError(
            ProviderErrorCode.NETWORK_ERROR, "network connection failed", provider, cause=exc
        ) from exc
    except requests.RequestException as exc:
        raise ProviderError(
            ProviderErrorCode.UNKNOWN, type(exc).__name__, provider, cause=exc
        ) from exc

    status = response.status_code
    if status < 200 or status >= 300:
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        error = handle_error(status, body)
        log.warning("%s answered %s: %s", provider, status, error.code.value)
        raise error

    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError(
            ProviderErrorCode.UNKNOWN, "response was not valid JSON", provider, status=status, cause=exc
        ) from exc


class GeminiProvider(FormResponsesMixin):
    kind = ProviderKind.GEMINI

    def __init__(
        self,
        api_key: str,
        config: Optional[ProviderConfig] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not api_key:
            raise ValueError("Gemini requires an API key")
        self._api_key = api_key
        self.config = config or ProviderConfig()
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    def get_name(self) -> str:
        return "Gemini"

    def requires_api_key(self) -> bool:
        return True

    @property
    def endpoint(self) -> str:
        return GEMINI_ENDPOINT.format(model=self.config.model_for(self.kind))

    def _payload(self, prompt: str, max_tokens: int) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "topK": self.config.top_k,
                "topP": self.config.top_p,
                "maxOutputTokens": max_tokens,
            },
        }

    def _post(self, prompt: str, max_tokens: int) -> Any:
        return post_json(
            self.session,
            self.endpoint,
            self._payload(prompt, max_tokens),
            provider=self.get_name(),
            handle_error=self.handle_error,
            headers={"Content-Type": "application/json", "x-goog-api-key": self._api_key},
            timeout=self.config.timeout_s,
            logger=self.logger,
        )

    def generate_content(self, prompt: str) -> str:
        data = self._post(prompt, self.config.max_tokens)
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(
                ProviderErrorCode.UNKNOWN, "no response from Gemini", self.get_name(), cause=exc
            ) from exc

    def test_connection(self) -> bool:
        data = self._post(CONNECTION_TEST_PROMPT, CONNECTION_TEST_TOKENS)
        return bool(isinstance(data, Mapping) and data.get("candidates"))

    def handle_error(self, status: int, body: Any) -> ProviderError:
        info = provider_info(self.kind)
        _, message = _error_details(body)
        text = _body_text(body)
        name = self.get_name()
        if "API_KEY_INVALID" in text or "API key not valid" in text:
            return ProviderError(
                ProviderErrorCode.INVALID_API_KEY, message or "invalid API key", name,
                status=status, help_url=info.key_url,
            )
        if "PERMISSION_DENIED" in text:
            return ProviderError(
                ProviderErrorCode.AUTH_ERROR, message or "permission denied", name,
                status=status, help_url=info.key_url,
            )
        if "RESOURCE_EXHAUSTED" in text or "quota" in text.lower():
            return ProviderError(
                ProviderErrorCode.QUOTA_EXCEEDED, message or "quota exceeded", name,
                status=status, help_url=info.billing_url,
            )
        return _status_error(name, status, message, info.key_url)


class ClaudeProvider(FormResponsesMixin):
    kind = ProviderKind.CLAUDE

    def __init__(
        self,
        api_key: str,
        config: Optional[ProviderConfig] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not api_key:
            raise ValueError("Claude requires an API key")
        self._api_key = api_key
        self.config = config or ProviderConfig()
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    def get_name(self) -> str:
        return "Claude"

    def requires_api_key(self) -> bool:
        return True

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": CLAUDE_API_VERSION,
        }

    def _post(self, prompt: str, max_tokens: int) -> Any:
        payload = {
            "model": self.config.model_for(self.kind),
            "max_tokens": max_tokens,
            "temperature": self.config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        return post_json(
            self.session,
            CLAUDE_ENDPOINT,
            payload,
            provider=self.get_name(),
            handle_error=self.handle_error,
            headers=self._headers(),
            timeout=self.config.timeout_s,
            logger=self.logger,
        )

    def generate_content(self, prompt: str) -> str:
        data = self._post(prompt, self.config.max_tokens)
        try:
            return data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(
                ProviderErrorCode.UNKNOWN, "no response from Claude", self.get_name(), cause=exc
            ) from exc

    def test_connection(self) -> bool:
        data = self._post(CONNECTION_TEST_PROMPT, CONNECTION_TEST_TOKENS)
        return bool(isinstance(data, Mapping) and data.get("content"))

    def handle_error(self, status: int, body: Any) -> ProviderError:
        info = provider_info(self.kind)
        error_type, message = _error_details(body)
        name = self.get_name()
        if error_type == "invalid_request_error" and "credit balance" in message:
            return ProviderError(
                ProviderErrorCode.QUOTA_EXCEEDED, message, name,
                status=status, help_url=info.billing_url,
            )
        if error_type == "authentication_error":
            return ProviderError(
                ProviderErrorCode.INVALID_API_KEY, message or "invalid API key", name,
                status=status, help_url=info.key_url,
            )
        if error_type == "permission_error":
            return ProviderError(
                ProviderErrorCode.AUTH_ERROR, message or "permission denied", name,
                status=status, help_url=info.key_url,
            )
        if error_type == "rate_limit_error":
            return ProviderError(
                ProviderErrorCode.RATE_LIMITED, message or "rate limit exceeded", name, status=status
            )
        if error_type in ("overloaded_error", "api_error"):
            return ProviderError(
                ProviderErrorCode.UNAVAILABLE, message or "service overloaded", name, status=status
            )
        return _status_error(name, status, message, info.key_url)


class GroqProvider(FormResponsesMixin):
    kind = ProviderKind.GROQ

    def __init__(
        self,
        api_key: str,
        config: Optional[ProviderConfig] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not api_key:
            raise ValueError("Groq requires an API key")
        self._api_key = api_key
        self.config = config or ProviderConfig()
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)

    def get_name(self) -> str:
        return "Groq"

    def requires_api_key(self) -> bool:
        return True

    def _post(self, prompt: str, max_tokens: int) -> Any:
        payload = {
            "model": self.config.model_for(self.kind),
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": max_tokens,
            "top_p": self.config.top_p,
        }
        return post_json(
            self.session,
            GROQ_ENDPOINT,
            payload,
            provider=self.get_name(),
            handle_error=self.handle_error,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            timeout=self.config.timeout_s,
            logger=self.logger,
        )

    def generate_content(self, prompt: str) -> str:
        data = self._post(prompt, self.config.max_tokens)
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(
                ProviderErrorCode.UNKNOWN, "no response from Groq", self.get_name(), cause=exc
            ) from exc

    def test_connection(self) -> bool:
        data = self._post(CONNECTION_TEST_PROMPT, CONNECTION_TEST_TOKENS)
        return bool(isinstance(data, Mapping) and data.get("choices"))

    def handle_error(self, status: int, body: Any) -> ProviderError:
        info = provider_info(self.kind)
        _, message = _error_details(body)
        lowered = message.lower()
        name = self.get_name()
        if "invalid api key" in lowered or "unauthorized" in lowered:
            return ProviderError(
                ProviderErrorCode.INVALID_API_KEY, message, name,
                status=status, help_url=info.key_url,
            )
        if "rate_limit" in lowered or "rate limit" in lowered:
            return ProviderError(ProviderErrorCode.RATE_LIMITED, message, name, status=status)
        if "quota" in lowered or "insufficient" in lowered:
            return ProviderError(
                ProviderErrorCode.QUOTA_EXCEEDED, message, name,
                status=status, help_url=info.billing_url,
            )
        return _status_error(name, status, message, info.key_url)


def _status_error(name: str, status: int, message: str, key_url: str) -> ProviderError:
    code = classify_status(status)
    help_url = key_url if code in (ProviderErrorCode.INVALID_API_KEY, ProviderErrorCode.AUTH_ERROR) else None
    return ProviderError(
        code,
        message or f"request failed with status {status}",
        name,
        status=status,
        help_url=help_url,
    )


__all__ = [
    "post_json",
    "GeminiProvider",
    "ClaudeProvider",
    "GroqProvider",
]
