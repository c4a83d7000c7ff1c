"""Pydantic data models shared across the completions service.

These models define the small set of data structures passed between the
HTTP layer, the relay and the remote chat-completion client. The
definitions are intentionally simple and typed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatRole(str, Enum):
    """Role tag of a single conversation turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One role-tagged message in the conversation sent to the model.

    Turns are immutable once created; the order of a conversation is the
    order of the list that holds them.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    role: ChatRole = Field(..., description="Who is speaking in this turn")
    content: str = Field(..., description="The text of the turn")

    def to_message(self) -> dict[str, Any]:
        """Return the wire shape expected by the chat completions API."""
        return {"role": self.role, "content": self.content}


def to_messages(turns: list[ChatTurn]) -> list[dict[str, Any]]:
    return [t.to_message() for t in turns]


class RelayResult(BaseModel):
    """Outcome of one relay invocation.

    Attributes:
        text: Plain-text body returned to the caller.
        status_code: HTTP status code for the response.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    status_code: int
