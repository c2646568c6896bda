"""Data models shared across scraping, prompting, validation and filling."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

SKIP_TOKEN = "[SKIP]"


@dataclass(slots=True)
class OptionMetadata:
    label: str
    value: str


@dataclass(slots=True)
class FieldMetadata:
    """One visible, enabled input-capable element found on the page.

    ``element_ref`` is borrowed from the live page (a Playwright
    ``ElementHandle``). It goes stale as soon as the page mutates, so holders
    must expect filling to fail or no-op on it.
    """

    element_ref: Any
    type: str
    tag: str = "input"
    label: str = ""
    placeholder: str = ""
    name: str = ""
    dom_id: str = ""
    required: bool = False
    description: str = ""
    context: str = ""
    options: Optional[List[str]] = None
    choices: List[OptionMetadata] = field(default_factory=list)
    pattern: Optional[str] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    order: int = 0

    def display_name(self) -> str:
        for candidate in (self.label, self.placeholder, self.name, self.dom_id):
            if candidate:
                return candidate
        return f"field_{self.order + 1}"

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "tag": self.tag,
            "label": self.label,
            "placeholder": self.placeholder,
            "name": self.name,
            "id": self.dom_id,
            "required": self.required,
            "description": self.description,
            "context": self.context,
            "options": self.options,
            "pattern": self.pattern,
            "max_length": self.max_length,
            "min": self.min,
            "max": self.max,
        }


@dataclass(slots=True)
class AIFieldResponse:
    field_index: int
    value: str = ""
    confidence: int = 0
    reasoning: str = ""
    source: str = "none"
    needs_review: bool = False


@dataclass(slots=True)
class AIFormResponse:
    fields: List[AIFieldResponse]
    overall_confidence: int = 0
    documents_summary: str = ""

    def values(self) -> List[str]:
        return [item.value for item in self.fields]


@dataclass(slots=True)
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    corrected_value: Optional[str] = None


__all__ = [
    "SKIP_TOKEN",
    "OptionMetadata",
    "FieldMetadata",
    "AIFieldResponse",
    "AIFormResponse",
    "ValidationResult",
]
