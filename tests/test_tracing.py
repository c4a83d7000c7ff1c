import pytest

from shared.settings import Settings
from shared.tracing import Tracer, estimate_tokens, log_event, span


def test_tracer_disabled_without_keys() -> None:
    t = Tracer(
        Settings(langfuse_enabled=True, langfuse_public_key="", langfuse_secret_key="")
    )
    assert not t.enabled
    assert t.start_trace("unit") is None


def test_span_noop_offline() -> None:
    with span("unit.test", foo=1, bar="x"):
        log_event("inside-span", payload={"k": "v"})


def test_span_propagates_errors() -> None:
    with pytest.raises(RuntimeError):
        with span("unit.fail"):
            raise RuntimeError("boom")


def test_estimate_tokens() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("a" * 40) == 10


def test_configure_tracing_rebinds_module_tracer(monkeypatch) -> None:
    import shared.tracing as tracing

    monkeypatch.setattr(tracing, "tracer", tracing.tracer)
    s = Settings(langfuse_enabled=False)
    t = tracing.configure_tracing(s)
    assert tracing.tracer is t
    assert t.settings is s
