from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from .src.config import Settings

def _exporter(settings: Settings) -> Optional[SpanExporter]:
    if settings.use_cloud_trace:
        # pip: clinical-anonymizer[gcp]
        from opentelemetry.exporter.cloud_trace import CloudTraceSpanExporter
        return CloudTraceSpanExporter(project_id=settings.project_id)
    if settings.trace_console:
        return ConsoleSpanExporter()
    return None

def init_tracing(app, settings: Settings, service_version: str = "v1"):
    resource = Resource.create({
        "service.name": settings.service_name,
        "service.version": service_version,
        "deployment.environment": settings.environment,
    })
    provider = TracerProvider(resource=resource)
    exporter = _exporter(settings)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    # Health probes would drown the request spans
    FastAPIInstrumentor().instrument_app(app, excluded_urls="health")

    return trace.get_tracer(settings.service_name)
