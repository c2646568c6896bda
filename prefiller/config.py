"""Provider settings, endpoints and credential lookup."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional


class ProviderKind(str, Enum):
    GEMINI = "gemini"
    CLAUDE = "claude"
    GROQ = "groq"
    CHROME_AI = "chromeai"
    OLLAMA = "ollama"


GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
CLAUDE_ENDPOINT = "https://api.anthropic.com/v1/messages"
GROQ_ENDPOINT = "https://api.groq.com/openai/v1/chat/completions"
CLAUDE_API_VERSION = "2023-06-01"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"

DEFAULT_MODELS: Dict[ProviderKind, str] = {
    ProviderKind.GEMINI: "gemini-2.0-flash",
    ProviderKind.CLAUDE: "claude-3-5-sonnet-latest",
    ProviderKind.GROQ: "llama-3.3-70b-versatile",
    ProviderKind.OLLAMA: "llama3",
}


@dataclass(slots=True)
class ProviderConfig:
    temperature: float = 0.4
    max_tokens: int = 1024
    top_k: int = 3
    top_p: float = 1.0
    timeout_s: float = 30.0
    model: Optional[str] = None

    def model_for(self, kind: ProviderKind) -> str:
        return self.model or DEFAULT_MODELS.get(kind, "")


@dataclass(frozen=True, slots=True)
class ProviderInfo:
    display_name: str
    description: str
    key_url: str
    billing_url: str
    key_pattern: Optional[str]
    env_vars: tuple = ()

    @property
    def requires_api_key(self) -> bool:
        return self.key_pattern is not None


PROVIDER_INFO: Mapping[ProviderKind, ProviderInfo] = {
    ProviderKind.GEMINI: ProviderInfo(
        display_name="Google Gemini",
        description="Google's Gemini models through the Generative Language API",
        key_url="https://aistudio.google.com/app/apikey",
        billing_url="https://aistudio.google.com/app/plan_information",
        key_pattern=r"^AIzaSy[A-Za-z0-9_-]{33}$",
        env_vars=("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    ),
    ProviderKind.CLAUDE: ProviderInfo(
        display_name="Anthropic Claude",
        description="Anthropic's Claude models through the Messages API",
        key_url="https://console.anthropic.com/account/keys",
        billing_url="https://console.anthropic.com/settings/billing",
        key_pattern=r"^sk-ant-.{33,}$",
        env_vars=("ANTHROPIC_API_KEY",),
    ),
    ProviderKind.GROQ: ProviderInfo(
        display_name="Groq",
        description="Llama models on Groq's OpenAI-compatible endpoint",
        key_url="https://console.groq.com/keys",
        billing_url="https://console.groq.com/settings/billing",
        key_pattern=r"^gsk_.{36,}$",
        env_vars=("GROQ_API_KEY",),
    ),
    ProviderKind.CHROME_AI: ProviderInfo(
        display_name="Chrome AI",
        description="Gemini Nano running locally in Chrome through the Prompt API",
        key_url="chrome://flags/#prompt-api-for-gemini-nano",
        billing_url="",
        key_pattern=None,
    ),
    ProviderKind.OLLAMA: ProviderInfo(
        display_name="Ollama",
        description="Any model served by a local Ollama instance",
        key_url="https://ollama.com/download",
        billing_url="",
        key_pattern=None,
    ),
}


def provider_info(kind: ProviderKind | str) -> ProviderInfo:
    return PROVIDER_INFO[ProviderKind(kind)]


def load_api_key(
    kind: ProviderKind | str,
    explicit: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Return the credential for ``kind``: explicit value, then environment."""
    if explicit:
        return explicit.strip()
    env = os.environ if environ is None else environ
    info = provider_info(kind)
    if not info.requires_api_key:
        return None
    for name in ("PREFILLER_API_KEY", *info.env_vars):
        value = env.get(name)
        if value:
            return value.strip()
    return None


def validate_api_key_format(kind: ProviderKind | str, api_key: Optional[str]) -> bool:
    info = provider_info(kind)
    if info.key_pattern is None:
        return True
    if not api_key:
        return False
    return re.match(info.key_pattern, api_key) is not None


def load_provider_config(environ: Optional[Mapping[str, str]] = None) -> ProviderConfig:
    env = os.environ if environ is None else environ
    config = ProviderConfig()
    if env.get("PREFILLER_MODEL"):
        config.model = env["PREFILLER_MODEL"]
    if env.get("PREFILLER_TIMEOUT"):
        try:
            config.timeout_s = float(env["PREFILLER_TIMEOUT"])
        except ValueError:
            pass
    return config


def ollama_host(environ: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if environ is None else environ
    return env.get("OLLAMA_HOST") or DEFAULT_OLLAMA_HOST


__all__ = [
    "ProviderKind",
    "ProviderConfig",
    "ProviderInfo",
    "PROVIDER_INFO",
    "DEFAULT_MODELS",
    "provider_info",
    "load_api_key",
    "load_provider_config",
    "validate_api_key_format",
    "ollama_host",
]
