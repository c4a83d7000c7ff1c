"""Completion relay: one prompt in, one model reply out.

The relay validates the prompt, prepends the configured few-shot preamble,
makes exactly one chat-completion call to Azure OpenAI and maps the result
to a plain-text body plus HTTP status code.

Behavior:
- Empty or whitespace-only prompt: 400 "The prompt is required." without
  contacting the remote service.
- Remote success: 200 with the first choice's message content.
- Any failure while building the client, the conversation or calling the
  remote service: logged with its traceback, 500 "Internal server error."
  Nothing about the failure reaches the caller.

No retries are made; the OpenAI client is built with ``max_retries=0`` so a
single invocation means a single outbound request. The client is opened per
invocation and closed as soon as the call returns.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from openai import AzureOpenAI

from shared.models import RelayResult, to_messages
from shared.settings import OpenAIApiSettings, PromptSettings
from shared.tracing import estimate_tokens, log_event, span

from .prompts import build_conversation

logger = logging.getLogger(__name__)

MAX_TOKENS = 3000
TEMPERATURE = 0.7

PROMPT_REQUIRED = "The prompt is required."
INTERNAL_ERROR = "Internal server error."

ClientFactory = Callable[[OpenAIApiSettings], Any]


def azure_openai_client(settings: OpenAIApiSettings) -> AzureOpenAI:
    """Build an Azure OpenAI client addressed by the configured endpoint."""
    return AzureOpenAI(
        azure_endpoint=settings.endpoint_url(),
        api_key=settings.auth_key,
        api_version=settings.version,
        max_retries=0,
    )


class CompletionRelay:
    """Forwards prompts to the chat-completion deployment.

    Args:
        openai_settings: Where and how to reach the deployment.
        prompt_settings: The few-shot preamble.
        client_factory: Builds the chat client from ``openai_settings``; the
            client is used as a context manager and closed after each call.
            Defaults to :func:`azure_openai_client`.
    """

    def __init__(
        self,
        openai_settings: OpenAIApiSettings,
        prompt_settings: PromptSettings,
        client_factory: ClientFactory | None = None,
    ) -> None:
        if openai_settings is None or prompt_settings is None:
            raise ValueError("Both OpenAI API and prompt settings are required")
        self._openai_settings = openai_settings
        self._prompt_settings = prompt_settings
        self._client_factory = client_factory or azure_openai_client

    def handle(self, prompt: str | None) -> RelayResult:
        logger.info("Completion relay processed a request.")

        if prompt is None or not prompt.strip():
            logger.error("No prompt")
            return RelayResult(text=PROMPT_REQUIRED, status_code=400)

        deployment_id = self._openai_settings.deployment_id
        try:
            turns = build_conversation(self._prompt_settings, prompt)
            with self._client_factory(self._openai_settings) as client, span(
                "completions.remote.call",
                model=deployment_id,
                prompt_tokens=estimate_tokens(prompt),
            ):
                result = client.chat.completions.create(
                    model=deployment_id,
                    messages=to_messages(turns),
                    max_tokens=MAX_TOKENS,
                    temperature=TEMPERATURE,
                )
            message = result.choices[0].message.content
            if message is None:
                raise ValueError("Completion returned no message content")
        except Exception as e:
            logger.exception("Completion request failed: %s", e)
            return RelayResult(text=INTERNAL_ERROR, status_code=500)

        logger.info(message)
        log_event(
            "Completion",
            payload={
                "model": deployment_id,
                "prompt_tokens": estimate_tokens(prompt),
                "output_tokens": estimate_tokens(message),
            },
        )
        return RelayResult(text=message, status_code=200)
