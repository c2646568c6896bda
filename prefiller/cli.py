"""Command-line interface for prefiller."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict

from .browser import BrowserConfig, BrowserSession
from .config import ProviderKind, load_api_key, load_provider_config, provider_info
from .field_scraper import scrape_fields
from .io_utils import (
    generate_run_id,
    prepare_run_directories,
    read_documents,
    write_json,
)
from .logging_utils import build_logger, redact_secret
from .page_utils import safe_goto, wait_for_forms
from .pipeline import FillOptions, build_personal_context, fill_page, summarize_failure
from .provider_errors import ProviderError
from .providers import create_provider
from .retry import NonRetryableError, RetryExhaustedError, RetryPolicy

PROVIDER_CHOICES = [kind.value for kind in ProviderKind]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fill web forms with answers generated from your own documents"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--run-id", dest="run_id", help="Optional run identifier")
    common.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    common.add_argument("--headed", action="store_true", help="Show the browser window")

    scan_parser = subparsers.add_parser(
        "scan", help="List the fillable fields on a page", parents=[common]
    )
    scan_parser.add_argument("--url", required=True, help="Page containing the form")
    scan_parser.add_argument(
        "--include-filled",
        action="store_true",
        help="Also list fields that already hold a value",
    )

    fill_parser = subparsers.add_parser(
        "fill", help="Generate answers and fill the form", parents=[common]
    )
    fill_parser.add_argument("--url", required=True, help="Page containing the form")
    _add_provider_arguments(fill_parser)
    fill_parser.add_argument("--context", default="", help="Personal information as text")
    fill_parser.add_argument(
        "--context-file",
        dest="context_files",
        action="append",
        type=Path,
        default=[],
        help="Text document to include in the personal information (repeatable)",
    )
    fill_parser.add_argument(
        "--structured",
        action="store_true",
        help="Ask for JSON answers with per-field confidence",
    )
    fill_parser.add_argument(
        "--no-skip-filled",
        dest="skip_filled",
        action="store_false",
        help="Overwrite fields that already hold a value",
    )
    fill_parser.add_argument(
        "--max-retries", type=int, default=3, help="Retries for transient provider errors"
    )

    test_parser = subparsers.add_parser(
        "test-connection", help="Check that a provider is reachable", parents=[common]
    )
    _add_provider_arguments(test_parser)

    return parser


def _add_provider_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--provider", required=True, choices=PROVIDER_CHOICES, help="Model backend"
    )
    subparser.add_argument(
        "--api-key",
        dest="api_key",
        help="API key (defaults to PREFILLER_API_KEY or the provider's variable)",
    )
    subparser.add_argument("--model", help="Override the provider's default model")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    run_id = args.run_id or generate_run_id()
    run_paths = prepare_run_directories(run_id, args.command)
    logger = build_logger(run_paths, verbose=args.verbose)

    browser_config = BrowserConfig(
        headless=not args.headed,
        enable_prompt_api=getattr(args, "provider", None) == ProviderKind.CHROME_AI.value,
    )

    if args.command == "scan":
        with BrowserSession(browser_config) as browser:
            page = browser.page
            safe_goto(page, args.url, logger=logger)
            wait_for_forms(page, logger=logger)
            fields = scrape_fields(page, skip_filled=not args.include_filled, logger=logger)
            browser.screenshot(run_paths.build_path("page.png"))
        result: Dict[str, object] = {
            "url": args.url,
            "field_count": len(fields),
            "fields": [item.to_dict() for item in fields],
        }
    elif args.command in ("fill", "test-connection"):
        try:
            result = _run_with_provider(args, run_paths, browser_config, logger)
        except ValueError as exc:
            parser.error(str(exc))
    else:
        parser.error(f"Unknown command: {args.command}")

    write_json(run_paths.base_dir / f"{args.command}.json", result)
    print(json.dumps(result, indent=2))
    return 0 if result.get("ok", True) else 1


def _run_with_provider(args, run_paths, browser_config, logger) -> Dict[str, object]:
    kind = ProviderKind(args.provider)
    config = load_provider_config()
    if args.model:
        config.model = args.model
    api_key = load_api_key(kind, args.api_key)
    redact_secret(logger, api_key)
    if provider_info(kind).requires_api_key and not api_key:
        raise ValueError(
            f"No API key for {kind.value}; pass --api-key or set "
            f"{' / '.join(('PREFILLER_API_KEY',) + provider_info(kind).env_vars)}"
        )

    with BrowserSession(browser_config) as browser:
        page = browser.page
        if args.command == "fill":
            safe_goto(page, args.url, logger=logger)
            wait_for_forms(page, logger=logger)
        provider = create_provider(kind, api_key=api_key, page=page, config=config, logger=logger)

        if args.command == "test-connection":
            try:
                ok = provider.test_connection()
            except ProviderError as exc:
                logger.error("Connection test failed: %s", exc.code.value)
                return {"provider": provider.get_name(), "ok": False, "message": exc.user_message()}
            return {"provider": provider.get_name(), "ok": bool(ok)}

        documents = read_documents(args.context_files)
        if args.context:
            documents.insert(0, ("Notes", args.context))
        options = FillOptions(
            skip_filled=args.skip_filled,
            structured=args.structured,
            retry_policy=RetryPolicy(max_retries=args.max_retries),
        )
        try:
            report = fill_page(
                page, provider, build_personal_context(documents), options, logger
            )
        except (ProviderError, NonRetryableError, RetryExhaustedError) as exc:
            summary = summarize_failure(exc)
            logger.error("Fill failed: %s", summary.message)
            return {"url": args.url, "ok": False, "message": summary.message, "retryable": summary.retryable}
        browser.screenshot(run_paths.build_path("filled.png"))

    result = report.to_dict()
    result.update({"url": args.url, "provider": provider.get_name(), "ok": True})
    return result


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
