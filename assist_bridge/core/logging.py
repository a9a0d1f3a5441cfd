"""Logging and tracing setup.

Log records carry the id of the active trace and span, so the lines logged
while a ``tickets.*`` span is open can be matched to that span in the
collector.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from assist_bridge import __version__
from assist_bridge.core.config import Settings

_TRACER_INITIALISED = False


class TraceContextFilter(logging.Filter):
    """Stamp ``trace_id`` and ``span_id`` onto every record, ``-`` outside a span."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = trace.get_current_span().get_span_context()
        if context.is_valid:
            record.trace_id = format(context.trace_id, "032x")
            record.span_id = format(context.span_id, "016x")
        else:
            record.trace_id = "-"
            record.span_id = "-"
        return True


def configure_logging(settings: Settings) -> logging.Logger:
    """Route all logging through one trace-aware handler.

    ``settings.log_levels`` overrides individual loggers; by default the
    HTTP client's per-request lines are kept out of the service log.
    """

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"trace_context": {"()": TraceContextFilter}},
            "formatters": {"default": {"format": settings.log_format}},
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["trace_context"],
                    "level": level,
                }
            },
            "loggers": {
                name: {"level": override.upper()} for name, override in settings.log_levels.items()
            },
            "root": {"handlers": ["default"], "level": level},
        }
    )

    logger = logging.getLogger("assist_bridge")
    logger.setLevel(level)
    return logger


def build_resource(settings: Settings) -> Resource:
    return Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
            "deployment.environment": settings.environment,
        }
    )


def build_tracer_provider(settings: Settings, exporter: SpanExporter | None = None) -> TracerProvider:
    """Create a provider exporting the ticket spans over OTLP/HTTP."""

    if exporter is None:
        exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            headers=settings.otel_exporter_otlp_headers or None,
        )
    provider = TracerProvider(resource=build_resource(settings))
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install the global tracer provider once, when tracing is enabled."""

    global _TRACER_INITIALISED

    if _TRACER_INITIALISED or not settings.otel_enabled:
        return None

    provider = build_tracer_provider(settings)
    trace.set_tracer_provider(provider)
    _TRACER_INITIALISED = True
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    """Flush pending ticket spans and stop exporting."""

    global _TRACER_INITIALISED

    if provider is None:
        return
    provider.force_flush()
    provider.shutdown()
    _TRACER_INITIALISED = False
