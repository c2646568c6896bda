"""Field discovery over a live Playwright page."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from playwright.sync_api import ElementHandle, Frame, Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .field_labels import (
    normalized_type,
    parse_numeric,
    rejection_reason,
    resolve_context,
    resolve_description,
    resolve_label,
)
from .form_models import FieldMetadata, OptionMetadata

FIELD_QUERY = ", ".join(
    (
        'input[type="text"]',
        'input[type="email"]',
        'input[type="tel"]',
        'input[type="url"]',
        'input[type="password"]',
        'input[type="search"]',
        'input[type="date"]',
        'input[type="datetime-local"]',
        'input[type="month"]',
        'input[type="week"]',
        'input[type="time"]',
        'input[type="number"]',
        'input[type="range"]',
        'input[type="radio"]',
        'input[type="checkbox"]',
        "input:not([type])",
        "textarea",
        "select",
        '[contenteditable="true"]',
    )
)
MAX_LISTED_OPTIONS = 10
HIGHLIGHT_CLASS = "prefiller-highlight"
FILLED_CLASS = "prefiller-filled"
HIGHLIGHT_STYLE_ID = "prefiller-styles"

FIELD_PROBE_SCRIPT = """
(el) => {
  const text = (node) => node ? (node.innerText || node.textContent || '').trim() : '';
  const nodeInfo = (node) => node ? {
    tag: node.tagName.toLowerCase(),
    className: typeof node.className === 'string' ? node.className : '',
    text: text(node),
  } : null;
  const tag = el.tagName.toLowerCase();
  const root = el.getRootNode ? el.getRootNode() : document;
  const byId = (id) => (root.getElementById ? root.getElementById(id) : null) || document.getElementById(id);

  let forLabel = '';
  if (el.id) {
    const escaped = window.CSS && CSS.escape ? CSS.escape(el.id) : el.id;
    const label = document.querySelector(`label[for="${escaped}"]`);
    forLabel = text(label);
  }
  const ownText = (node) => {
    if (!node) return '';
    const clone = node.cloneNode(true);
    clone.querySelectorAll('input, select, textarea').forEach(child => child.remove());
    return (clone.textContent || '').trim();
  };
  const wrapperLabel = ownText(el.closest('label'));
  const previous = el.previousElementSibling;
  const previousLabel = previous && previous.tagName.toLowerCase() === 'label' ? text(previous) : '';
  let nearbyLabel = '';
  const parent = el.parentElement;
  if (parent) {
    for (const candidate of Array.from(parent.querySelectorAll('.label, .form-label, [class*="label"]'))) {
      if (candidate !== el && text(candidate)) {
        nearbyLabel = text(candidate);
        break;
      }
    }
  }
  const labelledby = (el.getAttribute('aria-labelledby') || '')
    .split(/\\s+/).filter(Boolean).map(id => text(byId(id))).filter(Boolean).join(' ');
  const describedby = (el.getAttribute('aria-describedby') || '')
    .split(/\\s+/).filter(Boolean).map(id => text(byId(id))).filter(Boolean).join(' ');

  let contextHeading = '';
  const contextParagraphs = [];
  const block = el.closest('div, fieldset, section');
  if (block) {
    contextHeading = text(block.querySelector('h1, h2, h3, h4, h5, h6, legend'));
    for (const node of Array.from(block.querySelectorAll('p, .instruction, .info'))) {
      const value = text(node);
      if (value) contextParagraphs.push(value);
    }
  }

  const options = [];
  if (tag === 'select') {
    for (const opt of Array.from(el.options || [])) {
      options.push({ label: (opt.text || '').trim(), value: opt.value });
    }
  }

  const style = window.getComputedStyle(el);
  const rect = el.getBoundingClientRect();
  const maxLength = typeof el.maxLength === 'number' && el.maxLength > 0 ? el.maxLength : null;
  return {
    tag,
    type: (el.type || tag || '').toLowerCase(),
    contentEditable: !!el.isContentEditable,
    name: el.getAttribute('name') || '',
    id: el.id || '',
    placeholder: el.getAttribute('placeholder') || '',
    value: el.isContentEditable && !('value' in el) ? text(el) : (el.value || ''),
    checked: !!el.checked,
    selectedIndex: tag === 'select' ? el.selectedIndex : null,
    disabled: el.hasAttribute('disabled') || !!el.disabled,
    readonly: el.hasAttribute('readonly'),
    required: el.hasAttribute('required') || el.getAttribute('aria-required') === 'true',
    pattern: el.getAttribute('pattern'),
    maxLength,
    min: el.getAttribute('min'),
    max: el.getAttribute('max'),
    style: { display: style.display, visibility: style.visibility, opacity: style.opacity },
    width: el.offsetWidth || rect.width,
    height: el.offsetHeight || rect.height,
    forLabel,
    wrapperLabel,
    previousLabel,
    nearbyLabel,
    ariaLabel: el.getAttribute('aria-label') || '',
    ariaLabelledby: labelledby,
    describedBy: describedby,
    nextSibling: nodeInfo(el.nextElementSibling),
    parentNextSibling: nodeInfo(parent ? parent.nextElementSibling : null),
    contextHeading,
    contextParagraphs,
    options,
  };
}
"""

MUTATION_OBSERVER_SCRIPT = """
() => {
  if (window.__prefillerObserver) return false;
  window.__prefillerDirty = false;
  const watched = new Set(['INPUT', 'TEXTAREA', 'SELECT', 'IFRAME']);
  const observer = new MutationObserver((mutations) => {
    for (const mutation of mutations) {
      for (const node of Array.from(mutation.addedNodes)) {
        if (node.nodeType !== Node.ELEMENT_NODE) continue;
        if (watched.has(node.tagName) || (node.querySelector && node.querySelector('input, textarea, select, iframe'))) {
          window.__prefillerDirty = true;
          return;
        }
      }
    }
  });
  observer.observe(document.body || document.documentElement, { childList: true, subtree: true });
  window.__prefillerObserver = observer;
  return true;
}
"""

HIGHLIGHT_STYLE = f"""
.{HIGHLIGHT_CLASS} {{
  outline: 2px solid #3b82f6 !important;
  outline-offset: 2px !important;
  background-color: rgba(59, 130, 246, 0.1) !important;
}}
.{FILLED_CLASS} {{
  outline: 2px solid #10b981 !important;
  outline-offset: 2px !important;
  background-color: rgba(16, 185, 129, 0.1) !important;
}}
"""


def scrape_fields(
    page: Page,
    *,
    skip_filled: bool = False,
    include_frames: bool = True,
    logger: Optional[logging.Logger] = None,
) -> List[FieldMetadata]:
    """Return every fillable field on the page, main frame first.

    Each call is a fresh snapshot; nothing is merged with earlier scrapes.
    """
    log = logger or logging.getLogger(__name__)
    frames: Sequence[Frame] = page.frames if include_frames else [page.main_frame]
    fields: List[FieldMetadata] = []
    for frame in frames:
        try:
            frame_fields = scrape_frame(
                frame, skip_filled=skip_filled, start_order=len(fields), logger=log
            )
        except Exception as exc:  # noqa: BLE001
            log.debug("Skipping frame %s: %s", frame.url, exc)
            continue
        fields.extend(frame_fields)
    log.info("Discovered %s fillable fields across %s frame(s)", len(fields), len(frames))
    return fields


def scrape_frame(
    frame: Frame,
    *,
    skip_filled: bool = False,
    start_order: int = 0,
    logger: Optional[logging.Logger] = None,
) -> List[FieldMetadata]:
    log = logger or logging.getLogger(__name__)
    controls = frame.query_selector_all(FIELD_QUERY)
    fields: List[FieldMetadata] = []
    skipped = 0
    for control in controls:
        try:
            probe = control.evaluate(FIELD_PROBE_SCRIPT)
        except Exception as exc:  # noqa: BLE001
            log.debug("Probe failed for candidate element: %s", exc)
            skipped += 1
            continue
        if not probe:
            skipped += 1
            continue
        reason = rejection_reason(probe, skip_filled)
        if reason:
            skipped += 1
            log.debug(
                "Skipped <%s name=%s id=%s>: %s",
                probe.get("tag"),
                probe.get("name"),
                probe.get("id"),
                reason,
            )
            continue
        fields.append(build_field_metadata(control, probe, start_order + len(fields)))
    log.debug(
        "Frame %s: %s candidates, %s fields, %s skipped",
        frame.url,
        len(controls),
        len(fields),
        skipped,
    )
    return fields


def build_field_metadata(
    handle: ElementHandle, probe: dict, order: int
) -> FieldMetadata:
    field_type = normalized_type(probe)
    choices = [
        OptionMetadata(label=opt.get("label") or "", value=opt.get("value") or "")
        for opt in probe.get("options") or []
    ]
    options: Optional[List[str]] = None
    if field_type == "select":
        options = [opt.label for opt in choices if opt.label.strip()][:MAX_LISTED_OPTIONS]
    max_length = probe.get("maxLength")
    return FieldMetadata(
        element_ref=handle,
        type=field_type,
        tag=probe.get("tag") or "input",
        label=resolve_label(probe),
        placeholder=probe.get("placeholder") or "",
        name=probe.get("name") or "",
        dom_id=probe.get("id") or "",
        required=bool(probe.get("required")),
        description=resolve_description(probe),
        context=resolve_context(probe),
        options=options,
        choices=choices,
        pattern=probe.get("pattern") or None,
        max_length=int(max_length) if max_length else None,
        min=parse_numeric(probe.get("min")),
        max=parse_numeric(probe.get("max")),
        order=order,
    )


def highlight_fields(
    fields: Iterable[FieldMetadata],
    *,
    css_class: str = HIGHLIGHT_CLASS,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Outline fields on the page. Presentation only."""
    log = logger or logging.getLogger(__name__)
    marked = 0
    injected_frames = set()
    for field in fields:
        handle = field.element_ref
        try:
            frame = handle.owner_frame()
            if frame is not None and id(frame) not in injected_frames:
                _inject_highlight_style(frame)
                injected_frames.add(id(frame))
            handle.evaluate("(el, cls) => el.classList.add(cls)", css_class)
            marked += 1
        except Exception as exc:  # noqa: BLE001
            log.debug("Could not highlight %s: %s", field.display_name(), exc)
    return marked


INJECT_STYLE_SCRIPT = """
([styleId, css]) => {
  if (document.getElementById(styleId)) return;
  const style = document.createElement('style');
  style.id = styleId;
  style.textContent = css;
  (document.head || document.documentElement).appendChild(style);
}
"""


def _inject_highlight_style(frame: Frame) -> None:
    frame.evaluate(INJECT_STYLE_SCRIPT, [HIGHLIGHT_STYLE_ID, HIGHLIGHT_STYLE])


def clear_highlights(page: Page, css_class: str = HIGHLIGHT_CLASS) -> None:
    """Drop marks left by an earlier scrape before highlighting a new one."""
    for frame in page.frames:
        try:
            frame.evaluate(
                "(cls) => document.querySelectorAll('.' + cls).forEach(el => el.classList.remove(cls))",
                css_class,
            )
        except Exception:  # noqa: BLE001
            continue


def observe_field_mutations(page: Page) -> bool:
    """Install the in-page observer that flags newly added form controls."""
    return bool(page.evaluate(MUTATION_OBSERVER_SCRIPT))


def wait_for_field_mutations(page: Page, timeout_ms: int = 5000) -> bool:
    """Block until new controls appear, then reset the flag.

    Returns False on timeout. The caller should scrape again on True.
    """
    observe_field_mutations(page)
    try:
        page.wait_for_function("() => window.__prefillerDirty === true", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        return False
    page.evaluate("() => { window.__prefillerDirty = false; }")
    return True


__all__ = [
    "FIELD_QUERY",
    "FIELD_PROBE_SCRIPT",
    "scrape_fields",
    "scrape_frame",
    "build_field_metadata",
    "highlight_fields",
    "clear_highlights",
    "observe_field_mutations",
    "wait_for_field_mutations",
]
