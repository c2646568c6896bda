"""The interface every model backend exposes to the fill pipeline."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence, runtime_checkable

from .form_models import AIFormResponse, FieldMetadata
from .prompt_protocol import (
    build_form_prompt,
    build_structured_prompt,
    parse_numbered_responses,
    parse_structured_response,
)

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class FormProvider(Protocol):
    def generate_content(self, prompt: str) -> str:
        ...

    def generate_form_responses(
        self,
        context: str,
        fields: Sequence[FieldMetadata],
        structured: bool = False,
    ) -> AIFormResponse:
        ...

    def test_connection(self) -> bool:
        ...

    def get_name(self) -> str:
        ...

    def requires_api_key(self) -> bool:
        ...


def generate_form_responses(
    provider: FormProvider,
    context: str,
    fields: Sequence[FieldMetadata],
    structured: bool = False,
) -> AIFormResponse:
    """Build a prompt for ``fields``, send it, and parse the reply.

    The returned response always holds exactly ``len(fields)`` entries.
    Provider failures propagate unchanged.
    """
    count = len(fields)
    if structured:
        prompt = build_structured_prompt(context, fields)
    else:
        prompt = build_form_prompt(context, fields)
    LOGGER.debug(
        "Requesting %s answers from %s (%s prompt, %s chars)",
        count,
        provider.get_name(),
        "structured" if structured else "numbered",
        len(prompt),
    )
    raw = provider.generate_content(prompt)
    if structured:
        return parse_structured_response(raw, count)
    return parse_numbered_responses(raw, count)


class FormResponsesMixin:
    """Gives an adapter ``generate_form_responses`` on top of its ``generate_content``."""

    def generate_form_responses(
        self,
        context: str,
        fields: Sequence[FieldMetadata],
        structured: bool = False,
    ) -> AIFormResponse:
        return generate_form_responses(self, context, fields, structured)  # type: ignore[arg-type]


__all__ = ["FormProvider", "FormResponsesMixin", "generate_form_responses"]
