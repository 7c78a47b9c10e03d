"""OpenTelemetry initialization and span attributes for Maritaca options."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional, Union

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ._version import __version__

if TYPE_CHECKING:
    from .options import Options

_initialized = False


def options_span_attributes(options: Options) -> dict[str, Union[str, bool, int, float]]:
    """Describe built options as span attributes.

    The API token is never recorded, only whether one is set.
    """
    params = options.parameters
    attributes: dict[str, Union[str, bool, int, float]] = {
        "maritaca.model": options.model,
        "maritaca.server.host": options.server_url.host,
        "maritaca.chat_mode": params.chat_mode,
        "maritaca.do_sample": params.do_sample,
        "maritaca.temperature": params.temperature,
        "maritaca.top_p": params.top_p,
        "maritaca.repetition_penalty": params.repetition_penalty,
        "maritaca.stream": params.stream,
        "maritaca.stopping_tokens.count": len(params.stopping_tokens),
        "maritaca.custom_template": bool(options.custom_template),
        "maritaca.system.length": len(options.system),
        "maritaca.token.set": bool(params.token),
    }
    if params.max_tokens is not None:
        attributes["maritaca.max_tokens"] = params.max_tokens
    if params.stream:
        attributes["maritaca.tokens_per_message"] = params.tokens_per_message
    if options.format:
        attributes["maritaca.format"] = options.format
    return attributes


def init_telemetry(
    service_name: Optional[str] = None,
    otlp_endpoint: Optional[str] = None,
    service_version: str = __version__,
) -> None:
    """Initialize OpenTelemetry tracing for option building.

    Spans from ``build_options`` are exported to an OTLP collector. Calling this
    again before ``shutdown_telemetry`` is a no-op.

    Args:
        service_name: Service name for traces (default: from OTEL_SERVICE_NAME env or "maritaca-python")
        otlp_endpoint: OTLP collector endpoint (default: from OTEL_EXPORTER_OTLP_ENDPOINT env or http://localhost:4317)
        service_version: Reported as service.version (default: this package's version)
    """
    global _initialized
    if _initialized:
        return

    service_name = service_name or os.getenv("OTEL_SERVICE_NAME", "maritaca-python")
    otlp_endpoint = otlp_endpoint or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317"
    )

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version,
            "maritaca.sdk.version": __version__,
            "deployment.environment": os.getenv("DEPLOYMENT_ENV", "development"),
        }
    )

    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True),
            schedule_delay_millis=1000,
        )
    )
    trace.set_tracer_provider(provider)

    _initialized = True
    logging.info(
        "[maritaca.tracing] OpenTelemetry initialized: service=%s version=%s endpoint=%s",
        service_name,
        service_version,
        otlp_endpoint,
    )


def shutdown_telemetry() -> None:
    """Shutdown OpenTelemetry gracefully, flushing pending spans."""
    global _initialized
    if not _initialized:
        return

    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        provider.shutdown()

    _initialized = False
    logging.info("[maritaca.tracing] OpenTelemetry shutdown complete")


__all__ = ["init_telemetry", "shutdown_telemetry", "options_span_attributes"]
