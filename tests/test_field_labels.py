"""Label, description and fillability heuristics over probe dicts."""

import pytest

from prefiller.field_labels import (
    LABEL_STRATEGIES,
    clean_text,
    has_value,
    humanize_field_name,
    is_help_text,
    is_rendered,
    label_from_aria_label,
    label_from_field_name,
    normalized_type,
    rejection_reason,
    resolve_context,
    resolve_description,
    resolve_label,
)

VISIBLE = {
    "tag": "input",
    "type": "text",
    "style": {"display": "block", "visibility": "visible", "opacity": "1"},
    "width": 200,
    "height": 30,
}


def probe(**overrides):
    data = dict(VISIBLE)
    data.update(overrides)
    return data


# ── Text cleaning ────────────────────────────────────────────────────


def test_clean_text_collapses_whitespace_and_strips_decoration():
    assert clean_text("  First\n   Name *: ") == "First Name"


def test_clean_text_handles_none():
    assert clean_text(None) == ""


@pytest.mark.parametrize(
    "name, expected",
    [
        ("first_name", "First Name"),
        ("firstName", "First Name"),
        ("work-email", "Work Email"),
        ("ZIP", "Zip"),
    ],
)
def test_humanize_field_name(name, expected):
    assert humanize_field_name(name) == expected


# ── Label fallback chain ─────────────────────────────────────────────


def test_for_label_beats_every_other_source():
    data = probe(
        forLabel="Work Email *",
        wrapperLabel="Wrapper",
        ariaLabel="Aria",
        name="email",
    )
    assert resolve_label(data) == "Work Email"


def test_chain_falls_through_empty_sources_in_order():
    data = probe(forLabel="  ", wrapperLabel="", previousLabel="", nearbyLabel="Nearby", ariaLabel="Aria")
    assert resolve_label(data) == "Nearby"


def test_aria_label_wins_over_name_guess():
    data = probe(ariaLabel="Phone number", name="tel_1")
    assert resolve_label(data) == "Phone number"


def test_aria_labelledby_used_before_name():
    data = probe(ariaLabelledby="Date of birth", name="dob")
    assert resolve_label(data) == "Date of birth"


def test_name_is_last_resort():
    assert resolve_label(probe(name="postal_code")) == "Postal Code"


def test_no_signal_gives_empty_label():
    assert resolve_label(probe()) == ""


def test_strategy_order_is_fixed():
    assert LABEL_STRATEGIES[-2].__name__ == "label_from_aria_labelledby"
    assert LABEL_STRATEGIES[-1] is label_from_field_name
    assert label_from_aria_label in LABEL_STRATEGIES


# ── Description and context ──────────────────────────────────────────


def test_described_by_takes_precedence():
    data = probe(
        describedBy="We never share it",
        nextSibling={"tag": "small", "className": "", "text": "Other"},
    )
    assert resolve_description(data) == "We never share it"


def test_help_sibling_detected_by_class_keyword():
    data = probe(nextSibling={"tag": "div", "className": "form-hint", "text": "Use your work address"})
    assert resolve_description(data) == "Use your work address"


def test_parent_sibling_small_tag_is_help_text():
    data = probe(
        nextSibling={"tag": "span", "className": "unit", "text": "kg"},
        parentNextSibling={"tag": "small", "className": "", "text": "Optional"},
    )
    assert resolve_description(data) == "Optional"


def test_plain_sibling_is_not_help_text():
    assert not is_help_text({"tag": "div", "className": "row", "text": "x"})
    assert not is_help_text(None)


def test_context_keeps_heading_and_three_short_paragraphs():
    data = probe(
        contextHeading="Contact details",
        contextParagraphs=["One", "x" * 250, "Two", "Three", "Four"],
    )
    assert resolve_context(data) == "Contact details | One | Two | Three"


# ── Fillability ──────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"type": "hidden"}, "unfillable_type"),
        ({"type": "submit"}, "unfillable_type"),
        ({"readonly": True}, "readonly"),
        ({"disabled": True}, "disabled"),
        ({"style": {"display": "none"}}, "hidden"),
        ({"style": {"visibility": "hidden"}}, "hidden"),
        ({"style": {"opacity": "0"}}, "hidden"),
        ({"width": 0}, "hidden"),
    ],
)
def test_rejection_reasons(overrides, reason):
    assert rejection_reason(probe(**overrides), skip_filled=False) == reason


def test_filled_field_only_rejected_when_skipping_filled():
    data = probe(value="already here")
    assert rejection_reason(data, skip_filled=False) is None
    assert rejection_reason(data, skip_filled=True) == "already_filled"


def test_has_value_by_kind():
    assert has_value(probe(type="checkbox", checked=True))
    assert not has_value(probe(type="radio", checked=False))
    assert not has_value(probe(tag="select", type="select-one", selectedIndex=0))
    assert has_value(probe(tag="select", type="select-one", selectedIndex=2))
    assert not has_value(probe(value="   "))


def test_normalized_type():
    assert normalized_type(probe(tag="select", type="select-one")) == "select"
    assert normalized_type(probe(tag="textarea", type="textarea")) == "textarea"
    assert normalized_type(probe(tag="div", type="", contentEditable=True)) == "contenteditable"
    assert normalized_type(probe(type="EMAIL")) == "email"


def test_is_rendered_for_visible_probe():
    assert is_rendered(probe())
