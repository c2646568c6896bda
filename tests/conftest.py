"""Shared fixtures: fake element handles and an optional real browser."""

from unittest.mock import MagicMock

import pytest

from prefiller.form_models import FieldMetadata, OptionMetadata
from prefiller.gateway import FormResponsesMixin


def make_handle(evaluate_result=True):
    handle = MagicMock(name="ElementHandle")
    handle.evaluate.return_value = evaluate_result
    return handle


def make_field(type_="text", **kwargs):
    kwargs.setdefault("element_ref", make_handle())
    return FieldMetadata(type=type_, **kwargs)


def make_select(labels, **kwargs):
    choices = [OptionMetadata(label=label, value=label.lower()) for label in labels]
    return make_field(
        "select",
        tag="select",
        choices=choices,
        options=[label for label in labels if label],
        **kwargs,
    )


class FakeProvider(FormResponsesMixin):
    """Replays canned replies; exceptions in the list are raised."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def test_connection(self):
        return True

    def get_name(self):
        return "Fake"

    def requires_api_key(self):
        return False


@pytest.fixture
def browser_page():
    """A real Chromium page; skips when the browser cannot be launched."""
    from prefiller.browser import BrowserConfig, BrowserSession

    session = BrowserSession(BrowserConfig(headless=True))
    try:
        session.__enter__()
    except Exception as exc:  # noqa: BLE001
        pytest.skip(f"Chromium not available: {exc}")
    try:
        yield session.page
    finally:
        session.close()
