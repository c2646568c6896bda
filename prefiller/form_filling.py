"""Write generated answers into scraped form controls."""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from .form_models import SKIP_TOKEN, FieldMetadata, OptionMetadata

PREVIEW_LIMIT = 18
US_DATE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")

# Assign, notify, then go through the prototype's native setter and notify
# again so framework-controlled inputs pick the value up. Returns false when
# the browser sanitised the value away (for example text in a number input).
SET_VALUE_SCRIPT = """
(el, value) => {
  el.value = value;
  el.dispatchEvent(new Event('input', { bubbles: true }));
  el.dispatchEvent(new Event('change', { bubbles: true }));
  const proto = el.tagName === 'TEXTAREA'
    ? window.HTMLTextAreaElement.prototype
    : window.HTMLInputElement.prototype;
  const descriptor = Object.getOwnPropertyDescriptor(proto, 'value');
  if (descriptor && descriptor.set) {
    descriptor.set.call(el, value);
    el.dispatchEvent(new Event('input', { bubbles: true }));
  }
  return (el.value || '') !== '';
}
"""

SET_CHECKED_SCRIPT = """
(el, checked) => {
  el.checked = checked;
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return true;
}
"""

CHECK_RADIO_SCRIPT = """
(el, answer) => {
  if ((el.value || '').toLowerCase() !== answer.toLowerCase()) return false;
  el.checked = true;
  el.dispatchEvent(new Event('change', { bubbles: true }));
  return true;
}
"""

SET_TEXT_CONTENT_SCRIPT = """
(el, value) => {
  el.textContent = value;
  el.dispatchEvent(new Event('input', { bubbles: true }));
  return true;
}
"""


def is_blank_answer(value: Optional[str]) -> bool:
    if value is None:
        return True
    text = value.strip()
    return not text or text.upper() == SKIP_TOKEN


def input_value(field: FieldMetadata, value: str) -> str:
    """Adapt an answer to what the control accepts.

    Answers use MM/DD/YYYY, but date inputs only take ISO dates.
    """
    if field.type == "date":
        match = US_DATE.match(value.strip())
        if match:
            month, day, year = match.groups()
            return f"{year}-{int(month):02d}-{int(day):02d}"
    return value


def match_option(choices: Sequence[OptionMetadata], answer: str) -> Optional[OptionMetadata]:
    """Exact value/label match first, then label containment either way."""
    wanted = answer.strip().lower()
    if not wanted:
        return None
    for choice in choices:
        if choice.value.lower() == wanted or choice.label.strip().lower() == wanted:
            return choice
    for choice in choices:
        label = choice.label.strip().lower()
        if label and (wanted in label or label in wanted):
            return choice
    return None


def fill_field(field: FieldMetadata, value: str) -> bool:
    """Apply one answer. Returns whether the element was changed.

    Raises whatever the underlying handle raises (for example on a detached
    node); ``fill_fields`` absorbs those per field.
    """
    if is_blank_answer(value):
        return False
    handle = field.element_ref
    kind = field.type

    if kind == "select":
        choice = match_option(field.choices, value)
        if choice is None:
            return False
        handle.select_option(value=choice.value)
        return True
    if kind == "checkbox":
        checked = value.strip().lower() in ("yes", "true")
        return bool(handle.evaluate(SET_CHECKED_SCRIPT, checked))
    if kind == "radio":
        return bool(handle.evaluate(CHECK_RADIO_SCRIPT, value.strip()))
    if kind == "contenteditable":
        return bool(handle.evaluate(SET_TEXT_CONTENT_SCRIPT, value))
    return bool(handle.evaluate(SET_VALUE_SCRIPT, input_value(field, value)))


def fill_fields(
    fields: Sequence[FieldMetadata],
    answers: Sequence[Optional[str]],
    logger: Optional[logging.Logger] = None,
) -> int:
    """Fill ``fields`` positionally from ``answers`` and return the fill count.

    Missing, empty and ``[SKIP]`` answers leave the field untouched. A
    failure on one element is logged and does not stop the batch.
    """
    log = logger or logging.getLogger(__name__)
    filled = 0
    for index, field in enumerate(fields):
        value = answers[index] if index < len(answers) else None
        name = field.display_name()
        if is_blank_answer(value):
            log.debug("Field %s (%s): no answer", index + 1, name)
            continue
        try:
            if fill_field(field, value):
                filled += 1
                log.debug("Filled %s with %s", name, mask_value(field, value))
            else:
                log.debug("Field %s (%s): answer not applied", index + 1, name)
        except Exception as exc:  # noqa: BLE001
            log.warning("Failed to fill %s: %s", name, exc)
    log.info("Filled %s/%s fields", filled, len(fields))
    return filled


def mask_value(field: FieldMetadata, value: Optional[str]) -> str:
    if value is None:
        return ""
    if field.type == "password":
        return "***"
    text = str(value)
    if len(text) > PREVIEW_LIMIT:
        return f"{text[:8]}…"
    return text


__all__ = [
    "fill_field",
    "fill_fields",
    "input_value",
    "match_option",
    "mask_value",
    "is_blank_answer",
]
