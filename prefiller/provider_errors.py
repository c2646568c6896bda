"""Shared failure taxonomy for every model backend."""

from __future__ import annotations

from enum import Enum
from typing import Mapping, Optional


class ProviderErrorCode(str, Enum):
    INVALID_API_KEY = "INVALID_API_KEY"
    RATE_LIMITED = "RATE_LIMITED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    AUTH_ERROR = "AUTH_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNAVAILABLE = "UNAVAILABLE"
    UNKNOWN = "UNKNOWN"


RETRYABLE_CODES: Mapping[ProviderErrorCode, bool] = {
    ProviderErrorCode.INVALID_API_KEY: False,
    ProviderErrorCode.AUTH_ERROR: False,
    ProviderErrorCode.QUOTA_EXCEEDED: False,
    ProviderErrorCode.RATE_LIMITED: True,
    ProviderErrorCode.UNAVAILABLE: True,
    ProviderErrorCode.NETWORK_ERROR: True,
    ProviderErrorCode.UNKNOWN: True,
}


class ProviderError(Exception):
    """A classified backend failure.

    One exception type tagged by ``code``; callers branch on the code rather
    than on subclasses.
    """

    def __init__(
        self,
        code: ProviderErrorCode,
        message: str,
        provider: str,
        *,
        status: Optional[int] = None,
        help_url: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.code = ProviderErrorCode(code)
        self.message = message
        self.provider = provider
        self.status = status
        self.help_url = help_url or None
        self.cause = cause

    def is_retryable(self) -> bool:
        return RETRYABLE_CODES[self.code]

    def user_message(self) -> str:
        provider = self.provider
        code = self.code
        if code is ProviderErrorCode.INVALID_API_KEY:
            text = f"Invalid API key for {provider}; check the key in your settings"
        elif code is ProviderErrorCode.AUTH_ERROR:
            text = f"Authentication failed for {provider}; verify the key and its permissions"
        elif code is ProviderErrorCode.QUOTA_EXCEEDED:
            text = f"Quota or credits exhausted for {provider}; check your account or use another provider"
        elif code is ProviderErrorCode.RATE_LIMITED:
            text = f"Rate limit exceeded for {provider}; wait a moment and try again"
        elif code is ProviderErrorCode.NETWORK_ERROR:
            text = f"Network error while contacting {provider}; check your connection"
        elif code is ProviderErrorCode.UNAVAILABLE:
            text = f"{provider} is currently unavailable; try again later"
        else:
            text = f"{provider} request failed: {self.message.rstrip('. ')}"
        if self.help_url:
            text = f"{text} ({self.help_url})"
        return text + "."

    def __repr__(self) -> str:
        return (
            f"ProviderError(code={self.code.value}, provider={self.provider!r}, "
            f"status={self.status!r}, message={self.message!r})"
        )


def classify_status(status: Optional[int]) -> ProviderErrorCode:
    if status == 401:
        return ProviderErrorCode.INVALID_API_KEY
    if status == 403:
        return ProviderErrorCode.AUTH_ERROR
    if status == 429:
        return ProviderErrorCode.RATE_LIMITED
    if status is not None and 500 <= status < 600:
        return ProviderErrorCode.UNAVAILABLE
    return ProviderErrorCode.UNKNOWN


__all__ = [
    "ProviderErrorCode",
    "ProviderError",
    "RETRYABLE_CODES",
    "classify_status",
]
