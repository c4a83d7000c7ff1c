"""Tracing utilities with Langfuse integration.

By default this module provides a lightweight span context manager that
records nothing (no-op). If ``LANGFUSE_ENABLED=true`` and Langfuse keys are
configured via environment variables, spans are forwarded to Langfuse.
Errors in tracing never affect request handling; they are logged at debug
level and the span degrades to a no-op.

This module also exposes helpers for observability events (``log_event``)
and crude token estimation (``estimate_tokens``).
"""

from __future__ import annotations

import contextvars
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from langfuse import Langfuse

from shared.settings import Settings

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class _Span:
    """A no-op span used when tracing is disabled."""

    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name

    def __enter__(self) -> _Span:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


_current_trace = contextvars.ContextVar("completions.current_trace", default=None)


class Tracer:
    """Tracer facade with pluggable backends (no-op or Langfuse)."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()
        self._client = None
        if not self._settings.langfuse_enabled:
            return
        public_key = self._settings.langfuse_public_key
        secret_key = self._settings.langfuse_secret_key
        if public_key and secret_key:
            try:
                self._client = Langfuse(
                    public_key=public_key,
                    secret_key=secret_key,
                    host=self._settings.langfuse_host or None,
                )
            except Exception:
                logger.debug(
                    "Langfuse client unavailable; tracing disabled", exc_info=True
                )
                self._client = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def start_trace(self, name: str, input: dict | None = None):
        if self._client is None:
            return None
        try:
            tr = self._client.trace(name=name, input=input or {})
            _current_trace.set(tr)
            return tr
        except Exception:
            logger.debug("Failed to start trace %s", name, exc_info=True)
            return None

    def end_trace(self, output: dict | None = None) -> None:
        tr = _current_trace.get()
        if tr is not None and hasattr(tr, "update"):
            try:
                tr.update(output=output or {})
            except Exception:
                logger.debug("Failed to end trace", exc_info=True)
        _current_trace.set(None)

    def start_span(self, name: str, **kwargs: Any) -> _Span:
        if self._client is None:
            return _Span(name, **kwargs)
        return _LangfuseSpan(
            self._client,
            name,
            parent_trace=_current_trace.get(),
            trace_name=self._settings.trace_name,
            **kwargs,
        )


tracer = Tracer()


def configure_tracing(settings: Settings) -> Tracer:
    """Rebind the module tracer to ``settings`` and return it."""
    global tracer
    tracer = Tracer(settings)
    return tracer


def install_fastapi_tracing(
    app, service_name: str = "completions", settings: Settings | None = None
) -> Tracer:
    """Install middleware to create one trace per HTTP request.

    When ``settings`` is given the module tracer is rebuilt from it, so spans
    follow the configuration the app was created with. Only method and path
    are recorded; request bodies carry user prompts and are never attached
    to the trace.
    """
    if settings is not None:
        configure_tracing(settings)
    from fastapi import Request

    @app.middleware("http")
    async def _trace_middleware(request: Request, call_next: Callable):
        route_path = request.url.path
        tracer.start_trace(
            name=f"{service_name} {request.method} {route_path}",
            input={"method": request.method, "path": route_path},
        )
        status = None
        try:
            with span("http.request"):
                response = await call_next(request)
            status = response.status_code
            return response
        finally:
            tracer.end_trace(output={"status": status})

    return tracer


@contextmanager
def span(name: str, **kwargs: Any) -> Iterator[_Span]:
    """Context manager wrapper around the tracer's start_span method.

    Usage:
        with span("my_operation"):
            # do work
    """
    s = tracer.start_span(name, **kwargs)
    s.__enter__()
    exc: BaseException | None = None
    try:
        yield s
    except BaseException as e:
        exc = e
        raise
    finally:
        s.__exit__(type(exc) if exc else None, exc, None)


class _LangfuseSpan(_Span):  # pragma: no cover - needs a Langfuse server
    def __init__(
        self,
        client: Any,
        name: str,
        parent_trace: Any = None,
        trace_name: str = "completions-trace",
        **kwargs: Any,
    ) -> None:
        super().__init__(name, **kwargs)
        self._client = client
        self._trace = parent_trace
        self._trace_name = trace_name
        self._span = None
        self._start_ms = _now_ms()
        self._kwargs = kwargs

    def __enter__(self) -> _LangfuseSpan:
        try:
            if self._trace is None:
                self._trace = self._client.trace(name=self._trace_name)
            self._span = self._trace.span(name=self.name, input=self._kwargs)
        except Exception:
            logger.debug("Failed to open span %s", self.name, exc_info=True)
            self._trace = None
            self._span = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._span is None:
            return None
        try:
            self._span.end(
                output={
                    "error": str(exc) if exc else None,
                    "duration_ms": max(1, _now_ms() - self._start_ms),
                }
            )
        except Exception:
            logger.debug("Failed to close span %s", self.name, exc_info=True)
        return None


def log_event(name: str, payload: dict | None = None) -> None:
    """Emit a short-lived structured event span for observability.

    Args:
        name: Logical event name, e.g. "Completion".
        payload: Arbitrary JSON-serializable dict with event data.
    """
    with span(f"event.{name}", **(payload or {})):
        pass


def estimate_tokens(text: str) -> int:
    """Very rough subword token estimate (for logging only)."""
    if not text:
        return 0
    # Approximate: 1 token ~= 4 chars for English-like text
    return max(1, int(len(text) / 4))
