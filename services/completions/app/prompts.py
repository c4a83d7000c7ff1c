"""Few-shot conversation assembly for the completions service.

The preamble is configuration, not code: the system instruction and the
three example exchanges come from ``PromptSettings``. This module only
fixes their order. Example replies are sent with the ``system`` role, so
the preamble reads system / user / system / user / system / user / system,
and the caller's prompt is always appended as the final user turn.
"""

from __future__ import annotations

from shared.models import ChatRole, ChatTurn
from shared.settings import PromptSettings

EXAMPLE_EXCHANGES = 3


class PromptTemplateError(ValueError):
    """Raised when the configured preamble is missing example exchanges."""


def build_preamble(prompts: PromptSettings) -> list[ChatTurn]:
    """Return the seven fixed turns that precede every prompt."""
    if (
        len(prompts.users) < EXAMPLE_EXCHANGES
        or len(prompts.assistants) < EXAMPLE_EXCHANGES
    ):
        raise PromptTemplateError(
            f"Prompt settings need {EXAMPLE_EXCHANGES} user and assistant examples, "
            f"got {len(prompts.users)} and {len(prompts.assistants)}"
        )
    turns = [ChatTurn(role=ChatRole.SYSTEM, content=prompts.system)]
    for user, reply in zip(
        prompts.users[:EXAMPLE_EXCHANGES], prompts.assistants[:EXAMPLE_EXCHANGES]
    ):
        turns.append(ChatTurn(role=ChatRole.USER, content=user))
        turns.append(ChatTurn(role=ChatRole.SYSTEM, content=reply))
    return turns


def build_conversation(prompts: PromptSettings, prompt: str) -> list[ChatTurn]:
    """Preamble plus the caller's prompt, unmodified, as the last user turn."""
    return build_preamble(prompts) + [ChatTurn(role=ChatRole.USER, content=prompt)]
