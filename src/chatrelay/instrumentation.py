"""Optional OpenTelemetry instrumentation for chatrelay.

Call ``chatrelay.instrument()`` once at startup to enable tracing.
Requires ``opentelemetry-api`` to be installed; the package
works identically without it.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "chatrelay") -> None:
    """Start emitting one ``chat`` span per exchange.

    Configure a TracerProvider first, or the spans are dropped.

    Raises:
        ImportError: If ``opentelemetry-api`` is not installed.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "opentelemetry-api is required for instrumentation. "
            "Install it with: pip install chatrelay[otel]"
        )
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured; exchange spans "
            "will be discarded"
        )
    else:
        logger.info("chatrelay instrumentation enabled")


def uninstrument() -> None:
    """Stop emitting exchange spans."""
    global _tracer
    _tracer = None


@asynccontextmanager
async def exchange_span(system: str, model: str, streaming: bool):
    """Wrap one chat exchange in a ``chat`` client span.

    The span is not made current: the exchange is driven from an async
    generator, and the consumer's code runs between its chunks.
    """
    if _tracer is None:
        yield None
        return
    from opentelemetry.trace import SpanKind

    span = _tracer.start_span(
        f"chat {model}",
        kind=SpanKind.CLIENT,
        attributes={
            "gen_ai.operation.name": "chat",
            "gen_ai.provider.name": system,
            "gen_ai.request.model": model,
            "chatrelay.streaming": streaming,
        },
    )
    try:
        yield span
    finally:
        span.end()


def record_usage(span, metadata) -> None:
    """Set token-usage and response-model attributes on a span."""
    if span is None or metadata is None:
        return
    usage = metadata.usage
    if usage is not None and usage.prompt_tokens is not None:
        span.set_attribute("gen_ai.usage.input_tokens", usage.prompt_tokens)
    if usage is not None and usage.completion_tokens is not None:
        span.set_attribute("gen_ai.usage.output_tokens", usage.completion_tokens)
    if metadata.model:
        span.set_attribute("gen_ai.response.model", metadata.model)


def record_error(span, exception: BaseException) -> None:
    """Mark an exchange span as failed with the upstream cause."""
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.set_status(StatusCode.ERROR, str(exception))
    span.record_exception(exception)
    span.set_attribute("error.type", type(exception).__qualname__)
