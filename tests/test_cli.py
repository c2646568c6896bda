"""Argument parsing and command wiring with the browser patched out."""

import json
from unittest.mock import MagicMock, patch

import pytest

from prefiller import cli
from prefiller.io_utils import prepare_run_directories
import logging

from prefiller.logging_utils import LOG_FILENAME, build_logger, redact_secret
from prefiller.provider_errors import ProviderError, ProviderErrorCode


@pytest.fixture
def run_dir(tmp_path, monkeypatch):
    monkeypatch.setattr("prefiller.io_utils.DATA_DIR", tmp_path)
    return tmp_path


@pytest.fixture
def fake_browser():
    with patch("prefiller.cli.BrowserSession") as session_cls:
        browser = session_cls.return_value.__enter__.return_value
        browser.page = MagicMock()
        yield browser


def test_parser_fill_defaults():
    args = cli.build_parser().parse_args(["fill", "--url", "https://x.test", "--provider", "groq"])
    assert args.skip_filled is True
    assert args.structured is False
    assert args.context_files == []
    assert args.max_retries == 3


def test_parser_rejects_unknown_provider():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["test-connection", "--provider", "openai"])


def test_missing_key_is_usage_error(run_dir, fake_browser, monkeypatch):
    for name in ("PREFILLER_API_KEY", "GROQ_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(SystemExit):
        cli.main(["fill", "--url", "https://x.test", "--provider", "groq", "--run-id", "r1"])


def test_test_connection_reports_user_message(run_dir, fake_browser, capsys):
    provider = MagicMock()
    provider.get_name.return_value = "Claude"
    provider.test_connection.side_effect = ProviderError(
        ProviderErrorCode.INVALID_API_KEY, "bad", "Claude", status=401
    )
    with patch("prefiller.cli.create_provider", return_value=provider):
        code = cli.main(
            ["test-connection", "--provider", "claude", "--api-key", "sk-ant-secret", "--run-id", "r2"]
        )

    assert code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["ok"] is False
    assert output["message"].startswith("Invalid API key for Claude")
    assert (run_dir / "r2" / "test-connection.json").exists()
    assert "sk-ant-secret" not in (run_dir / "r2" / LOG_FILENAME).read_text(encoding="utf-8")


def test_fill_failure_is_summarized(run_dir, fake_browser, capsys):
    provider = MagicMock()
    provider.get_name.return_value = "Groq"
    error = ProviderError(ProviderErrorCode.QUOTA_EXCEEDED, "insufficient quota", "Groq")
    with patch("prefiller.cli.create_provider", return_value=provider), patch(
        "prefiller.cli.fill_page", side_effect=error
    ):
        code = cli.main(
            ["fill", "--url", "https://x.test", "--provider", "groq", "--api-key", "gsk_k", "--run-id", "r3"]
        )

    assert code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["retryable"] is False
    assert "Quota" in output["message"]


def test_build_logger_writes_run_log(tmp_path):
    paths = prepare_run_directories("r4", "scan", data_dir=tmp_path)
    logger = build_logger(paths)
    logger.info("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in (tmp_path / "r4" / LOG_FILENAME).read_text(encoding="utf-8")


def _run_log(tmp_path, run_id, logger):
    for handler in logger.handlers:
        handler.flush()
    return (tmp_path / run_id / LOG_FILENAME).read_text(encoding="utf-8")


def test_module_loggers_write_to_the_run_log(tmp_path):
    paths = prepare_run_directories("r5", "fill", data_dir=tmp_path)
    logger = build_logger(paths)
    logging.getLogger("prefiller.gateway").info("from a library module")
    assert "from a library module" in _run_log(tmp_path, "r5", logger)


def test_registered_secret_is_masked(tmp_path):
    paths = prepare_run_directories("r6", "fill", data_dir=tmp_path)
    logger = build_logger(paths)
    redact_secret(logger, "gsk_topsecret")
    logger.warning("request to %s failed", "https://x.test/?key=gsk_topsecret")
    logging.getLogger("prefiller.http_providers").info("key gsk_topsecret rejected")

    text = _run_log(tmp_path, "r6", logger)
    assert "gsk_topsecret" not in text
    assert "https://x.test/?key=***" in text
    assert "key *** rejected" in text
