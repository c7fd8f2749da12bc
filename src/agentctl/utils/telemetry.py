"""OpenTelemetry tracing for agent runs.

The runtime only talks to the OpenTelemetry *API*; until an SDK provider is
installed every span is a no-op.  Adapters open one span per operation::

    _tracer = get_tracer(__name__)

    span = _tracer.start_span("agent.execute", attributes={ATTR_RUN_ID: run_id})
    ...
    span.end()

Exporting spans needs the ``otel`` extra (``pip install agentctl[otel]``)
and one call to :func:`configure_telemetry` at process start; the CLI does
that through :func:`configure_from_settings`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

if TYPE_CHECKING:
    from agentctl.config import TelemetrySettings

logger = logging.getLogger(__name__)

# Span attribute keys.
ATTR_AGENT_ID = "agentctl.agent.id"
ATTR_AGENT_BINARY = "agentctl.agent.binary"
ATTR_JOB_ID = "agentctl.job.id"
ATTR_RUN_ID = "agentctl.run.id"
ATTR_RUN_STATUS = "agentctl.run.status"
ATTR_EXIT_CODE = "agentctl.run.exit_code"
ATTR_EVENT_COUNT = "agentctl.run.event_count"
ATTR_CONTEXT_FILES = "agentctl.run.context_files"
ATTR_REJECTED_FILES = "agentctl.run.rejected_files"
ATTR_INSTALLED = "agentctl.detect.installed"
ATTR_AUTH_VALID = "agentctl.auth.valid"

_INSTRUMENTATION_NAME = "agentctl"
_SDK_HINT = "Install it with: pip install agentctl[otel]"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Tracer for *name* (defaults to ``agentctl``); a no-op without an SDK."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "agentctl",
    export_to_console: bool = True,
    otlp_endpoint: str | None = None,
) -> None:
    """Install a global tracer provider with the requested exporters.

    Console export writes finished spans as JSON to stdout, one at a time.
    OTLP export batches spans to a gRPC collector at *otlp_endpoint*.

    Raises:
        ImportError: ``opentelemetry-sdk`` (or, for OTLP, the exporter
            package) is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        msg = f"opentelemetry-sdk is required for configure_telemetry(). {_SDK_HINT}"
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    for processor in _span_processors(export_to_console, otlp_endpoint):
        provider.add_span_processor(processor)

    trace.set_tracer_provider(provider)
    logger.info(
        "Telemetry enabled (service=%s, console=%s, otlp=%s)",
        service_name,
        export_to_console,
        otlp_endpoint,
    )


def configure_from_settings(settings: TelemetrySettings) -> bool:
    """Apply the ``telemetry`` section of ``agentctl.yaml``.

    Spans go to the OTLP endpoint when one is configured, otherwise to the
    console.  Returns whether a provider was installed.
    """
    if not settings.enabled:
        return False
    configure_telemetry(
        export_to_console=settings.otlp_endpoint is None,
        otlp_endpoint=settings.otlp_endpoint,
    )
    return True


def _span_processors(export_to_console: bool, otlp_endpoint: str | None) -> list[Any]:
    from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
        BatchSpanProcessor,
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    processors: list[Any] = []
    if export_to_console:
        processors.append(SimpleSpanProcessor(ConsoleSpanExporter()))
    if otlp_endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # pyright: ignore[reportMissingImports]
                OTLPSpanExporter,
            )
        except ImportError as exc:
            msg = f"opentelemetry-exporter-otlp is required for OTLP export. {_SDK_HINT}"
            raise ImportError(msg) from exc
        processors.append(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    return processors
