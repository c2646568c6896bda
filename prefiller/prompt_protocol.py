"""Prompt building and reply parsing for form-filling requests.

Two wire formats are supported. The numbered-list format is the default: the
model answers ``N. <answer>`` one line per field and ``[SKIP]`` when it lacks
information. The structured format asks for a JSON object carrying a
confidence score and reasoning per field, and falls back to the numbered
parser when the reply is not valid JSON.

Both parsers are total: they never raise and always return exactly
``expected_count`` entries, so callers may index positionally into the field
list they built the prompt from.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .form_models import SKIP_TOKEN, AIFieldResponse, AIFormResponse, FieldMetadata

LOGGER = logging.getLogger(__name__)

NUMBERED_LINE = re.compile(r"^(\d{1,9})\.\s*(.+)$")
JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
MAX_PROMPT_OPTIONS = 10
LEGACY_CONFIDENCE = 50

NUMBERED_FOOTER = f"""
=== INSTRUCTIONS ===
Reply with exactly one line per field, numbered to match the fields above:
1. <answer for field 1>
2. <answer for field 2>
...

Rules:
- Use the personal information to provide accurate responses
- For select fields, answer with one of the listed options
- For date fields, use MM/DD/YYYY format
- For phone numbers, use a standard format such as (555) 123-4567
- For email fields, provide a valid email address
- Respect max length, pattern and range constraints
- Keep responses concise and appropriate for the field type
- If you don't have enough information for a field, answer with "{SKIP_TOKEN}"
- Do not add any text before or after the numbered list

Example format:
1. John Doe
2. john.doe@email.com
3. (555) 123-4567
4. {SKIP_TOKEN}

Your responses:"""

STRUCTURED_FOOTER = """
=== RESPONSE FORMAT (STRICT JSON) ===
{
  "fields": [
    {
      "fieldIndex": 1,
      "value": "actual value to fill",
      "confidence": 95,
      "reasoning": "Found 'John Doe' in the contact section",
      "source": "resume:contact",
      "needsReview": false
    }
  ],
  "overallConfidence": 90,
  "documentsSummary": "Resume with software engineering experience"
}

=== CONFIDENCE SCORING (0-100) ===
- 90-100: exact value found in the personal information
- 70-89: strong inference from clear context
- 50-69: reasonable guess from related information
- 30-49: weak inference, several possibilities
- 0-29: no relevant information

Set needsReview to true when confidence is below 70 or a required field is uncertain.
For select fields choose the best matching listed option. Dates use MM/DD/YYYY.
Numbers must respect the given range. When there is no information use
value "", confidence 0.

Generate ONLY the JSON object, no other text:"""


def build_form_prompt(context: str, fields: Sequence[FieldMetadata]) -> str:
    """Build the numbered-list request for ``fields``."""
    lines = [
        "You are a form-filling assistant. Fill out the form fields based on the "
        "personal information provided.",
        "",
        "=== PERSONAL INFORMATION ===",
        context,
        "",
        "=== FORM FIELDS TO FILL ===",
    ]
    for index, field in enumerate(fields, start=1):
        lines.append(f"{index}. {_field_title(field, index)} ({field.type})")
        lines.extend(f"   - {detail}" for detail in _field_details(field))
    return "\n".join(lines) + "\n" + NUMBERED_FOOTER


def build_structured_prompt(context: str, fields: Sequence[FieldMetadata]) -> str:
    """Build the JSON request asking for per-field confidence and reasoning."""
    lines = [
        "You are an expert form-filling assistant. Analyze the personal "
        "information and produce accurate, contextual values for each form field.",
        "Answer in the strict JSON format described below.",
        "",
        "=== PERSONAL INFORMATION ===",
        context,
        "",
        "=== FORM FIELDS ===",
    ]
    for index, field in enumerate(fields, start=1):
        lines.append(f"Field {index}:")
        lines.append(f"  Label: {field.label or 'Unknown'}")
        lines.append(f"  Type: {field.type}")
        lines.extend(f"  {detail}" for detail in _field_details(field))
    return "\n".join(lines) + "\n" + STRUCTURED_FOOTER


def _field_title(field: FieldMetadata, index: int) -> str:
    return field.label or field.placeholder or f"Field {index}"


def _field_details(field: FieldMetadata) -> List[str]:
    details: List[str] = []
    if field.placeholder:
        details.append(f"Placeholder: {field.placeholder}")
    if field.description:
        details.append(f"Description: {field.description}")
    if field.context:
        details.append(f"Context: {field.context}")
    if field.required:
        details.append("REQUIRED FIELD")
    if field.options:
        details.append(f"Options: {', '.join(field.options[:MAX_PROMPT_OPTIONS])}")
    if field.pattern:
        details.append(f"Pattern: {field.pattern}")
    if field.max_length:
        details.append(f"Max Length: {field.max_length}")
    if field.min is not None or field.max is not None:
        details.append(f"Range: {_format_bound(field.min)} to {_format_bound(field.max)}")
    return details


def _format_bound(value: Optional[float]) -> str:
    if value is None:
        return "any"
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _is_skip(value: str) -> bool:
    return value.strip().upper() == SKIP_TOKEN


def parse_form_response(text: Any, expected_count: int) -> List[str]:
    """Map ``N. answer`` lines onto an ``expected_count``-long list.

    Lines that do not match the numbering, and indexes out of range, are
    ignored. ``[SKIP]`` becomes an empty string.
    """
    count = max(int(expected_count), 0)
    answers = [""] * count
    if not isinstance(text, str):
        return answers
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        match = NUMBERED_LINE.match(line)
        if not match:
            continue
        index = int(match.group(1)) - 1
        if 0 <= index < count:
            value = match.group(2).strip()
            answers[index] = "" if _is_skip(value) else value
    return answers


def parse_numbered_responses(text: Any, expected_count: int) -> AIFormResponse:
    values = parse_form_response(text, expected_count)
    fields = [
        AIFieldResponse(
            field_index=index,
            value=value,
            confidence=LEGACY_CONFIDENCE if value else 0,
            reasoning="Parsed from numbered list" if value else "No response generated",
            source="unknown" if value else "none",
            needs_review=bool(value),
        )
        for index, value in enumerate(values, start=1)
    ]
    overall = LEGACY_CONFIDENCE if any(values) else 0
    return AIFormResponse(fields=fields, overall_confidence=overall)


class StructuredField(BaseModel):
    model_config = ConfigDict(extra="ignore")

    field_index: int = Field(alias="fieldIndex")
    value: str = ""
    confidence: int = 0
    reasoning: str = ""
    source: str = "none"
    needs_review: bool = Field(default=False, alias="needsReview")

    @field_validator("value", "reasoning", "source", mode="before")
    @classmethod
    def stringify_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: Any) -> int:
        try:
            number = int(round(float(value)))
        except (TypeError, ValueError, OverflowError):
            return 0
        return max(0, min(100, number))


class StructuredReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    fields: List[StructuredField]
    overall_confidence: int = Field(default=0, alias="overallConfidence")
    documents_summary: str = Field(default="", alias="documentsSummary")

    @field_validator("overall_confidence", mode="before")
    @classmethod
    def coerce_overall(cls, value: Any) -> int:
        try:
            return max(0, min(100, int(round(float(value)))))
        except (TypeError, ValueError, OverflowError):
            return 0


def parse_structured_response(text: Any, expected_count: int) -> AIFormResponse:
    count = max(int(expected_count), 0)
    if not isinstance(text, str):
        return parse_numbered_responses(text, count)
    match = JSON_OBJECT.search(text)
    if not match:
        LOGGER.debug("No JSON object in structured reply; using numbered parser")
        return parse_numbered_responses(text, count)
    try:
        reply = StructuredReply.model_validate_json(match.group(0))
    except ValidationError as exc:
        LOGGER.debug("Structured reply rejected (%s); using numbered parser", exc.error_count())
        return parse_numbered_responses(text, count)

    by_index = {}
    for item in reply.fields:
        by_index.setdefault(item.field_index, item)
    fields: List[AIFieldResponse] = []
    for index in range(1, count + 1):
        item = by_index.get(index)
        if item is None or not item.value.strip() or _is_skip(item.value):
            fields.append(
                AIFieldResponse(
                    field_index=index,
                    reasoning=item.reasoning if item else "No response generated",
                )
            )
            continue
        fields.append(
            AIFieldResponse(
                field_index=index,
                value=item.value.strip(),
                confidence=item.confidence,
                reasoning=item.reasoning,
                source=item.source or "none",
                needs_review=item.needs_review,
            )
        )
    return AIFormResponse(
        fields=fields,
        overall_confidence=reply.overall_confidence,
        documents_summary=reply.documents_summary,
    )


__all__ = [
    "build_form_prompt",
    "build_structured_prompt",
    "parse_form_response",
    "parse_numbered_responses",
    "parse_structured_response",
]
