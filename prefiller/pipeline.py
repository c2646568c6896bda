"""One fill request: scrape, ask the model, validate, fill."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from playwright.sync_api import Page

from .field_scraper import FILLED_CLASS, clear_highlights, highlight_fields, scrape_fields
from .form_filling import fill_field, is_blank_answer, mask_value
from .form_models import AIFieldResponse, AIFormResponse, FieldMetadata
from .gateway import FormProvider
from .provider_errors import ProviderError
from .retry import NonRetryableError, RetryExhaustedError, RetryPolicy, with_retry
from .validation import validate


@dataclass(slots=True)
class FillOptions:
    skip_filled: bool = True
    include_frames: bool = True
    structured: bool = False
    auto_correct: bool = True
    highlight: bool = False
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


@dataclass(slots=True)
class FieldReport:
    index: int
    name: str
    type: str
    required: bool
    preview: str
    confidence: int
    filled: bool
    status: str
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(slots=True)
class FillReport:
    filled_count: int = 0
    total_fields: int = 0
    overall_confidence: int = 0
    fields: List[FieldReport] = field(default_factory=list)

    @property
    def fill_ratio(self) -> float:
        if not self.total_fields:
            return 0.0
        return self.filled_count / self.total_fields

    def to_dict(self) -> Dict[str, object]:
        return {
            "filled_count": self.filled_count,
            "total_fields": self.total_fields,
            "overall_confidence": self.overall_confidence,
            "fields": [asdict(item) for item in self.fields],
        }


@dataclass(slots=True)
class FailureSummary:
    message: str
    retryable: bool


def build_personal_context(
    documents: Union[Mapping[str, str], Sequence[Tuple[str, str]]]
) -> str:
    """Join named text documents under a "Personal Information" heading."""
    items = documents.items() if isinstance(documents, Mapping) else documents
    context = "Personal Information:\n"
    for name, content in items:
        context += f"\n{name}:\n{content}\n"
    return context


def fill_page(
    page: Page,
    provider: FormProvider,
    personal_context: str,
    options: Optional[FillOptions] = None,
    logger: Optional[logging.Logger] = None,
    *,
    sleep: Optional[Callable[[float], None]] = None,
) -> FillReport:
    """Run one complete fill against the current state of ``page``.

    Finding no fields returns an empty report. Provider failures surface as
    ``NonRetryableError`` or ``RetryExhaustedError`` once retrying is over;
    per-field problems only lower the fill count.
    """
    options = options or FillOptions()
    log = logger or logging.getLogger(__name__)

    fields = scrape_fields(
        page,
        skip_filled=options.skip_filled,
        include_frames=options.include_frames,
        logger=log,
    )
    report = FillReport(total_fields=len(fields))
    if not fields:
        log.info("No fillable fields on %s", page.url)
        return report
    if options.highlight:
        clear_highlights(page)
        highlight_fields(fields, logger=log)

    log.info("Asking %s for %s answers", provider.get_name(), len(fields))
    retry_kwargs = {"logger": log}
    if sleep is not None:
        retry_kwargs["sleep"] = sleep
    response: AIFormResponse = with_retry(
        lambda: provider.generate_form_responses(
            personal_context, fields, structured=options.structured
        ),
        options.retry_policy,
        **retry_kwargs,
    )
    report.overall_confidence = response.overall_confidence

    filled_fields: List[FieldMetadata] = []
    for index, field_meta in enumerate(fields):
        answer = response.fields[index]
        item = _fill_one(index, field_meta, answer, options, log)
        report.fields.append(item)
        if item.filled:
            filled_fields.append(field_meta)

    report.filled_count = len(filled_fields)
    if options.highlight and filled_fields:
        highlight_fields(filled_fields, css_class=FILLED_CLASS, logger=log)
    log.info("Filled %s out of %s fields", report.filled_count, report.total_fields)
    return report


def _fill_one(
    index: int,
    field_meta: FieldMetadata,
    answer: AIFieldResponse,
    options: FillOptions,
    log: logging.Logger,
) -> FieldReport:
    value = answer.value
    item = FieldReport(
        index=index + 1,
        name=field_meta.display_name(),
        type=field_meta.type,
        required=field_meta.required,
        preview=mask_value(field_meta, value),
        confidence=answer.confidence,
        filled=False,
        status="skipped",
    )
    if is_blank_answer(value):
        item.errors = list(validate("", field_meta, answer).errors)
        if item.errors:
            item.status = "invalid"
            log.info("No answer for %s: %s", item.name, "; ".join(item.errors))
        return item

    result = validate(value, field_meta, answer)
    item.errors = list(result.errors)
    item.warnings = list(result.warnings)
    if not result.is_valid:
        corrected = result.corrected_value
        if (
            options.auto_correct
            and corrected is not None
            and validate(corrected, field_meta, answer).is_valid
        ):
            value = corrected
            item.preview = mask_value(field_meta, value)
            item.status = "corrected"
            log.debug("Truncated answer for %s", item.name)
        else:
            item.status = "invalid"
            log.info("Not filling %s: %s", item.name, "; ".join(result.errors))
            return item

    try:
        item.filled = fill_field(field_meta, value)
    except Exception as exc:  # noqa: BLE001
        log.warning("Failed to fill %s: %s", item.name, exc)
        item.status = "error"
        item.errors.append(str(exc))
        return item
    if item.filled:
        if item.status != "corrected":
            item.status = "filled"
    elif field_meta.type in ("select", "radio"):
        item.status = "no_match"
    else:
        item.status = "rejected"
    return item


def summarize_failure(exc: BaseException) -> FailureSummary:
    """Reduce any terminal fill error to one sentence plus retryability."""
    cause: BaseException = exc
    if isinstance(exc, (NonRetryableError, RetryExhaustedError)) and exc.cause is not None:
        cause = exc.cause
    if isinstance(cause, ProviderError):
        return FailureSummary(cause.user_message(), cause.is_retryable())
    text = str(cause).strip().rstrip(".") or type(cause).__name__
    retryable = not isinstance(exc, NonRetryableError)
    return FailureSummary(f"Form filling failed: {text}.", retryable)


__all__ = [
    "FillOptions",
    "FieldReport",
    "FillReport",
    "FailureSummary",
    "build_personal_context",
    "fill_page",
    "summarize_failure",
]
