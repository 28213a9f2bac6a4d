"""
Observability setup:
  - OpenTelemetry distributed tracing (OTLP gRPC export when configured)
  - Prometheus metrics: post creations, post views, access denials, login failures, session pruning

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from prometheus_client import Counter

from blog_api.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
POSTS_CREATED_TOTAL = Counter(
    "blog_posts_created_total",
    "Total number of blog posts created",
    ["status"],  # 'published' or 'draft'
)

POST_VIEWS_TOTAL = Counter(
    "blog_post_views_total",
    "Total number of single-post reads (each one bumps the post's view counter)",
)

ACCESS_DENIED_TOTAL = Counter(
    "blog_access_denied_total",
    "Requests rejected by the access layer",
    ["status"],  # '401' or '403'
)

LOGIN_FAILURES_TOTAL = Counter(
    "blog_login_failures_total",
    "Login attempts rejected for a bad username or password",
)

SESSIONS_PRUNED_TOTAL = Counter(
    "blog_sessions_pruned_total",
    "Expired sessions removed by the periodic prune task",
)


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider, exporting over OTLP if an endpoint is set."""
    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    if settings.otel_exporter_otlp_endpoint:
        try:
            otlp_exporter = OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint,
                insecure=True,
            )
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            logger.info(
                "OTel tracing configured → %s", settings.otel_exporter_otlp_endpoint
            )
        except Exception as exc:
            logger.warning("Could not connect to OTLP exporter: %s — traces disabled", exc)

    trace.set_tracer_provider(provider)

    # Session traffic goes through Redis when that backend is selected
    RedisInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    FastAPIInstrumentor.instrument_app(app)
