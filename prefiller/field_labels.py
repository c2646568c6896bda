"""Pure heuristics that turn an element probe into human-readable field text.

A probe is the plain dict returned by ``FIELD_PROBE_SCRIPT`` in
``field_scraper``. Nothing here touches the browser, so every strategy can be
exercised with hand-written dicts.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

Probe = Mapping[str, Any]
LabelStrategy = Callable[[Probe], Optional[str]]

IGNORED_INPUT_TYPES = {"hidden", "submit", "reset", "button", "image", "file"}
HELP_CLASS_KEYWORDS = ("help", "hint", "description", "note")
MAX_CONTEXT_PARAGRAPHS = 3
MAX_CONTEXT_PARAGRAPH_CHARS = 200

_WHITESPACE = re.compile(r"\s+")
_DECORATION = re.compile(r"[*:]")
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")


def clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    collapsed = _WHITESPACE.sub(" ", text)
    return _DECORATION.sub("", collapsed).strip()


def humanize_field_name(name: str) -> str:
    """``first_name`` / ``firstName`` -> ``First Name``."""
    spaced = re.sub(r"[_-]", " ", name)
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", spaced)
    words = [word for word in spaced.split(" ") if word]
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def _cleaned(value: Any) -> Optional[str]:
    text = clean_text(value if isinstance(value, str) else None)
    return text or None


def label_from_for_attribute(probe: Probe) -> Optional[str]:
    return _cleaned(probe.get("forLabel"))


def label_from_wrapping_label(probe: Probe) -> Optional[str]:
    return _cleaned(probe.get("wrapperLabel"))


def label_from_previous_sibling(probe: Probe) -> Optional[str]:
    return _cleaned(probe.get("previousLabel"))


def label_from_nearby_label_element(probe: Probe) -> Optional[str]:
    return _cleaned(probe.get("nearbyLabel"))


def label_from_aria_label(probe: Probe) -> Optional[str]:
    return _cleaned(probe.get("ariaLabel"))


def label_from_aria_labelledby(probe: Probe) -> Optional[str]:
    return _cleaned(probe.get("ariaLabelledby"))


def label_from_field_name(probe: Probe) -> Optional[str]:
    name = probe.get("name")
    if not name:
        return None
    return humanize_field_name(str(name)) or None


# Most specific first; the first strategy with a non-empty answer wins.
LABEL_STRATEGIES: Sequence[LabelStrategy] = (
    label_from_for_attribute,
    label_from_wrapping_label,
    label_from_previous_sibling,
    label_from_nearby_label_element,
    label_from_aria_label,
    label_from_aria_labelledby,
    label_from_field_name,
)


def resolve_label(
    probe: Probe, strategies: Iterable[LabelStrategy] = LABEL_STRATEGIES
) -> str:
    for strategy in strategies:
        label = strategy(probe)
        if label:
            return label
    return ""


def is_help_text(node: Optional[Mapping[str, Any]]) -> bool:
    if not node:
        return False
    class_name = str(node.get("className") or "").lower()
    if any(keyword in class_name for keyword in HELP_CLASS_KEYWORDS):
        return True
    return str(node.get("tag") or "").lower() == "small"


def resolve_description(probe: Probe) -> str:
    described = _cleaned(probe.get("describedBy"))
    if described:
        return described
    for key in ("nextSibling", "parentNextSibling"):
        node = probe.get(key)
        if is_help_text(node):
            text = _cleaned(node.get("text"))
            if text:
                return text
    return ""


def resolve_context(probe: Probe) -> str:
    parts: List[str] = []
    heading = _cleaned(probe.get("contextHeading"))
    if heading:
        parts.append(heading)
    paragraphs = probe.get("contextParagraphs") or []
    kept = 0
    for paragraph in paragraphs:
        text = _cleaned(paragraph)
        if not text or len(text) >= MAX_CONTEXT_PARAGRAPH_CHARS:
            continue
        parts.append(text)
        kept += 1
        if kept >= MAX_CONTEXT_PARAGRAPHS:
            break
    return " | ".join(parts)


def parse_numeric(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalized_type(probe: Probe) -> str:
    tag = str(probe.get("tag") or "").lower()
    if tag in {"select", "textarea"}:
        return tag
    if probe.get("contentEditable") and tag not in {"input", "textarea"}:
        return "contenteditable"
    return str(probe.get("type") or "text").lower()


def is_rendered(probe: Probe) -> bool:
    style = probe.get("style") or {}
    if style.get("display") == "none":
        return False
    if style.get("visibility") == "hidden":
        return False
    opacity = parse_numeric(style.get("opacity"))
    if opacity is not None and opacity == 0:
        return False
    return (probe.get("width") or 0) > 0 and (probe.get("height") or 0) > 0


def has_value(probe: Probe) -> bool:
    field_type = normalized_type(probe)
    if field_type in {"checkbox", "radio"}:
        return bool(probe.get("checked"))
    if field_type == "select":
        return (probe.get("selectedIndex") or 0) > 0
    return bool(str(probe.get("value") or "").strip())


def rejection_reason(probe: Probe, skip_filled: bool) -> Optional[str]:
    """Return why a probed element cannot be filled, or None if it can."""
    if normalized_type(probe) in IGNORED_INPUT_TYPES:
        return "unfillable_type"
    if probe.get("readonly"):
        return "readonly"
    if probe.get("disabled"):
        return "disabled"
    if not is_rendered(probe):
        return "hidden"
    if skip_filled and has_value(probe):
        return "already_filled"
    return None


__all__ = [
    "IGNORED_INPUT_TYPES",
    "LABEL_STRATEGIES",
    "clean_text",
    "humanize_field_name",
    "resolve_label",
    "resolve_description",
    "resolve_context",
    "is_help_text",
    "normalized_type",
    "is_rendered",
    "has_value",
    "rejection_reason",
    "parse_numeric",
]
