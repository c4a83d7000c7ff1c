"""Completions microservice.

Relays a raw text prompt, prefixed with the configured few-shot preamble,
to an Azure OpenAI chat deployment and returns the reply as plain text.

Endpoints:
- POST `/api/completions`: body is the prompt (``text/plain``); response is
  the completion (``text/plain; charset=utf-8``), 400 for an empty prompt,
  500 if the remote call fails.
- GET `/` and `/health`: liveness probes.

Access key:
- The route declares the ``x-functions-key`` header as an API-key security
  scheme. If ``FUNCTION_KEY`` is configured the key is checked here,
  otherwise enforcement is left to the hosting platform.

Run locally with ``uvicorn services.completions.app.main:app``.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from fastapi.security import APIKeyHeader
from starlette.concurrency import run_in_threadpool

from shared.settings import OpenAIApiSettings, PromptSettings, Settings
from shared.tracing import install_fastapi_tracing

from .relay import INTERNAL_ERROR, ClientFactory, CompletionRelay

logger = logging.getLogger(__name__)

FUNCTION_KEY_HEADER = "x-functions-key"

function_key_scheme = APIKeyHeader(
    name=FUNCTION_KEY_HEADER,
    scheme_name="function_key",
    auto_error=False,
)

_TEXT_BODY = {
    "requestBody": {
        "required": True,
        "description": "The prompt to generate the completion.",
        "content": {"text/plain": {"schema": {"type": "string"}}},
    }
}

_RESPONSES = {
    200: {
        "description": "The completion generated from the OpenAI API.",
        "content": {"text/plain": {"schema": {"type": "string"}}},
    },
    400: {"description": "Invalid request."},
    401: {"description": "Missing or invalid access key."},
    500: {"description": "Internal server error."},
}


def get_relay(request: Request) -> CompletionRelay:
    return request.app.state.relay


def require_function_key(
    request: Request, key: str | None = Depends(function_key_scheme)
) -> None:
    expected = request.app.state.settings.function_key
    if not expected:
        return
    if not key or not secrets.compare_digest(key, expected):
        logger.warning("Rejected request with missing or invalid access key")
        raise HTTPException(status_code=401, detail="Unauthorized")


def create_app(
    settings: Settings | None = None,
    openai_settings: OpenAIApiSettings | None = None,
    prompt_settings: PromptSettings | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    """Build the service with its settings loaded once and injected."""
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Completions Service", version="0.1.0")
    app.state.settings = settings
    app.state.relay = CompletionRelay(
        openai_settings or OpenAIApiSettings(),
        prompt_settings or PromptSettings(),
        client_factory=client_factory,
    )
    app.state.tracer = install_fastapi_tracing(
        app, service_name="completions", settings=settings
    )

    # ---------- Global safety net: never leak error details ----------
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return PlainTextResponse(INTERNAL_ERROR, status_code=500)

    @app.get("/")
    def _root():
        return {"status": "ok", "service": "completions"}

    @app.get("/health")
    def _health():
        return {"status": "ok"}

    @app.post(
        "/api/completions",
        operation_id="getCompletions",
        tags=["completions"],
        summary="Gets the completion from the OpenAI API",
        description="This gets the completion from the OpenAI API.",
        response_class=PlainTextResponse,
        responses=_RESPONSES,
        openapi_extra=_TEXT_BODY,
        dependencies=[Depends(require_function_key)],
    )
    async def get_completions(
        request: Request, relay: CompletionRelay = Depends(get_relay)
    ) -> PlainTextResponse:
        body = await request.body()
        try:
            prompt = body.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Request body is not valid UTF-8")
            prompt = None
        result = await run_in_threadpool(relay.handle, prompt)
        return PlainTextResponse(result.text, status_code=result.status_code)

    return app


app = create_app()
