"""Provider adapters against mocked transports."""

from unittest.mock import MagicMock, patch

import ollama
import pytest
import requests

from conftest import make_field
from prefiller.config import ProviderConfig, ProviderKind
from prefiller.http_providers import ClaudeProvider, GeminiProvider, GroqProvider
from prefiller.local_providers import ChromeAIProvider, LocalAvailability, OllamaProvider
from prefiller.provider_errors import ProviderError, ProviderErrorCode
from prefiller.providers import FormProvider, create_provider

GEMINI_KEY = "AIzaSy" + "a" * 33
CLAUDE_KEY = "sk-ant-" + "b" * 40
GROQ_KEY = "gsk_" + "c" * 40


def mock_session(status=200, payload=None, text=""):
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.text = text
    if payload is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    session = MagicMock(spec=requests.Session)
    session.post.return_value = response
    return session


# ── Gemini ───────────────────────────────────────────────────────────


def test_gemini_request_and_response_envelope():
    session = mock_session(payload={"candidates": [{"content": {"parts": [{"text": "1. Jane"}]}}]})
    provider = GeminiProvider(GEMINI_KEY, session=session)

    assert provider.generate_content("prompt") == "1. Jane"

    url = session.post.call_args.args[0]
    kwargs = session.post.call_args.kwargs
    assert "gemini-2.0-flash:generateContent" in url
    assert GEMINI_KEY not in url
    assert kwargs["headers"]["x-goog-api-key"] == GEMINI_KEY
    assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "prompt"
    assert kwargs["json"]["generationConfig"]["temperature"] == 0.4
    assert kwargs["json"]["generationConfig"]["maxOutputTokens"] == 1024


@pytest.mark.parametrize(
    "status, message, code",
    [
        (400, "API key not valid. Please pass a valid API key.", ProviderErrorCode.INVALID_API_KEY),
        (403, "PERMISSION_DENIED: caller lacks access", ProviderErrorCode.AUTH_ERROR),
        (429, "RESOURCE_EXHAUSTED: try later", ProviderErrorCode.QUOTA_EXCEEDED),
        (503, "backend overloaded", ProviderErrorCode.UNAVAILABLE),
    ],
)
def test_gemini_error_mapping(status, message, code):
    session = mock_session(status=status, payload={"error": {"code": status, "message": message}})
    with pytest.raises(ProviderError) as info:
        GeminiProvider(GEMINI_KEY, session=session).generate_content("p")
    assert info.value.code is code
    assert info.value.status == status


def test_empty_candidates_is_unknown_error():
    session = mock_session(payload={"candidates": []})
    with pytest.raises(ProviderError) as info:
        GeminiProvider(GEMINI_KEY, session=session).generate_content("p")
    assert info.value.code is ProviderErrorCode.UNKNOWN


# ── Claude ───────────────────────────────────────────────────────────


def test_claude_headers_and_envelope():
    session = mock_session(payload={"content": [{"type": "text", "text": "1. Yes"}]})
    provider = ClaudeProvider(CLAUDE_KEY, session=session)

    assert provider.generate_content("prompt") == "1. Yes"
    kwargs = session.post.call_args.kwargs
    assert kwargs["headers"]["x-api-key"] == CLAUDE_KEY
    assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
    assert kwargs["json"]["messages"] == [{"role": "user", "content": "prompt"}]


@pytest.mark.parametrize(
    "status, error_type, message, code",
    [
        (401, "authentication_error", "invalid x-api-key", ProviderErrorCode.INVALID_API_KEY),
        (403, "permission_error", "nope", ProviderErrorCode.AUTH_ERROR),
        (429, "rate_limit_error", "slow", ProviderErrorCode.RATE_LIMITED),
        (400, "invalid_request_error", "Your credit balance is too low", ProviderErrorCode.QUOTA_EXCEEDED),
        (529, "overloaded_error", "Overloaded", ProviderErrorCode.UNAVAILABLE),
        (400, "invalid_request_error", "max_tokens too big", ProviderErrorCode.UNKNOWN),
    ],
)
def test_claude_error_mapping(status, error_type, message, code):
    payload = {"type": "error", "error": {"type": error_type, "message": message}}
    session = mock_session(status=status, payload=payload)
    with pytest.raises(ProviderError) as info:
        ClaudeProvider(CLAUDE_KEY, session=session).generate_content("p")
    assert info.value.code is code


def test_claude_quota_error_links_billing_page():
    payload = {"error": {"type": "invalid_request_error", "message": "credit balance is too low"}}
    session = mock_session(status=400, payload=payload)
    with pytest.raises(ProviderError) as info:
        ClaudeProvider(CLAUDE_KEY, session=session).generate_content("p")
    assert "billing" in info.value.user_message()


# ── Groq ─────────────────────────────────────────────────────────────


def test_groq_bearer_auth_and_envelope():
    session = mock_session(payload={"choices": [{"message": {"content": "1. Jane"}}]})
    provider = GroqProvider(GROQ_KEY, session=session)

    assert provider.generate_content("p") == "1. Jane"
    assert session.post.call_args.kwargs["headers"]["Authorization"] == f"Bearer {GROQ_KEY}"


@pytest.mark.parametrize(
    "status, message, code",
    [
        (401, "Invalid API Key", ProviderErrorCode.INVALID_API_KEY),
        (429, "rate_limit_exceeded on tokens", ProviderErrorCode.RATE_LIMITED),
        (402, "insufficient funds", ProviderErrorCode.QUOTA_EXCEEDED),
        (502, "", ProviderErrorCode.UNAVAILABLE),
    ],
)
def test_groq_error_mapping(status, message, code):
    session = mock_session(status=status, payload={"error": {"message": message}})
    with pytest.raises(ProviderError) as info:
        GroqProvider(GROQ_KEY, session=session).generate_content("p")
    assert info.value.code is code


def test_non_json_error_body_falls_back_to_status_table():
    session = mock_session(status=401, text="<html>denied</html>")
    with pytest.raises(ProviderError) as info:
        GroqProvider(GROQ_KEY, session=session).generate_content("p")
    assert info.value.code is ProviderErrorCode.INVALID_API_KEY


# ── Transport failures ───────────────────────────────────────────────


@pytest.mark.parametrize("exc", [requests.ConnectionError("refused"), requests.Timeout("slow")])
def test_transport_failures_are_network_errors(exc):
    session = MagicMock(spec=requests.Session)
    session.post.side_effect = exc
    with pytest.raises(ProviderError) as info:
        ClaudeProvider(CLAUDE_KEY, session=session).generate_content("p")
    assert info.value.code is ProviderErrorCode.NETWORK_ERROR
    assert info.value.is_retryable()


def test_test_connection_uses_tiny_request():
    session = mock_session(payload={"choices": [{"message": {"content": "OK"}}]})
    assert GroqProvider(GROQ_KEY, session=session).test_connection() is True
    assert session.post.call_args.kwargs["json"]["max_tokens"] == 5


# ── generate_form_responses composition ──────────────────────────────


def test_generate_form_responses_builds_calls_and_parses():
    session = mock_session(payload={"content": [{"text": "1. jane@example.com\n2. [SKIP]"}]})
    provider = ClaudeProvider(CLAUDE_KEY, session=session)
    fields = [make_field("email", label="Work Email"), make_field(label="Nickname")]

    response = provider.generate_form_responses("Jane", fields)

    sent = session.post.call_args.kwargs["json"]["messages"][0]["content"]
    assert "1. Work Email (email)" in sent
    assert response.values() == ["jane@example.com", ""]


# ── Local adapters ───────────────────────────────────────────────────


@pytest.mark.parametrize(
    "state, expected",
    [
        ("readily", LocalAvailability.READY),
        ("available", LocalAvailability.READY),
        ("after-download", LocalAvailability.AFTER_DOWNLOAD),
        ("downloadable", LocalAvailability.AFTER_DOWNLOAD),
        ("no", LocalAvailability.UNAVAILABLE),
        ("unsupported", LocalAvailability.UNAVAILABLE),
    ],
)
def test_chrome_ai_availability(state, expected):
    page = MagicMock()
    page.evaluate.return_value = state
    assert ChromeAIProvider(page).check_availability() is expected


def test_chrome_ai_after_download_counts_as_connected():
    page = MagicMock()
    page.evaluate.return_value = "after-download"
    provider = ChromeAIProvider(page)
    assert provider.test_connection() is True
    assert provider.requires_api_key() is False


def test_chrome_ai_unavailable_raises():
    page = MagicMock()
    page.evaluate.return_value = "no"
    with pytest.raises(ProviderError) as info:
        ChromeAIProvider(page).test_connection()
    assert info.value.code is ProviderErrorCode.UNAVAILABLE


def test_chrome_ai_prompt_passes_sampling_config():
    page = MagicMock()
    page.evaluate.return_value = "1. Jane"
    assert ChromeAIProvider(page).generate_content("p") == "1. Jane"
    assert page.evaluate.call_args.args[1] == {"prompt": "p", "temperature": 0.4, "topK": 3}


def test_ollama_pulls_missing_model_then_chats():
    client = MagicMock()
    client.show.side_effect = ollama.ResponseError("model not found", 404)
    client.chat.return_value.message.content = "1. Jane"
    provider = OllamaProvider(client=client, config=ProviderConfig(model="llama3"))

    assert provider.check_availability() is LocalAvailability.AFTER_DOWNLOAD
    assert provider.generate_content("p") == "1. Jane"
    client.pull.assert_called_once_with("llama3")
    assert client.chat.call_args.kwargs["options"]["num_predict"] == 1024


def test_ollama_unreachable_server():
    client = MagicMock()
    client.show.side_effect = ConnectionError("refused")
    provider = OllamaProvider(client=client)
    with pytest.raises(ProviderError) as info:
        provider.test_connection()
    assert info.value.code is ProviderErrorCode.UNAVAILABLE


def test_ollama_client_uses_configured_timeout():
    with patch("prefiller.local_providers.ollama.Client") as client_cls:
        OllamaProvider(host="http://gpu-box:11434", config=ProviderConfig(timeout_s=12.5))
    client_cls.assert_called_once_with(host="http://gpu-box:11434", timeout=12.5)


# ── Factory ──────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "kind, key, cls",
    [
        ("gemini", GEMINI_KEY, GeminiProvider),
        (ProviderKind.CLAUDE, CLAUDE_KEY, ClaudeProvider),
        ("groq", GROQ_KEY, GroqProvider),
    ],
)
def test_factory_builds_credentialed_adapters(kind, key, cls):
    provider = create_provider(kind, api_key=key, session=MagicMock(spec=requests.Session))
    assert isinstance(provider, cls)
    assert isinstance(provider, FormProvider)
    assert provider.requires_api_key()


def test_factory_requires_key_for_hosted_providers():
    with pytest.raises(ValueError):
        create_provider("claude")


def test_factory_requires_page_for_chrome_ai():
    with pytest.raises(ValueError):
        create_provider("chromeai")
    assert isinstance(create_provider("chromeai", page=MagicMock()), ChromeAIProvider)


def test_factory_rejects_unknown_kind():
    with pytest.raises(ValueError, match="Unknown provider"):
        create_provider("openai", api_key="x")
