"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging
import sys

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server
import structlog

from .config import Settings

SERVICE_NAME = "railway-ledger"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Business metrics
BOOKINGS_TOTAL = Counter(
    'ledger_bookings_total',
    'Booking requests by outcome',
    ['service_id', 'outcome'],
    registry=REGISTRY
)

PAYMENTS_DECLINED = Counter(
    'ledger_payments_declined_total',
    'Payments declined by the gateway',
    ['service_id'],
    registry=REGISTRY
)

CANCELLATIONS_TOTAL = Counter(
    'ledger_cancellations_total',
    'Bookings cancelled by prior status',
    ['prior_status'],
    registry=REGISTRY
)

PROMOTIONS_TOTAL = Counter(
    'ledger_waitlist_promotions_total',
    'Waitlisted bookings promoted to confirmed',
    ['service_id'],
    registry=REGISTRY
)

WAITLIST_DEPTH = Gauge(
    'ledger_waitlist_depth',
    'Entries waiting in a service/date queue',
    ['queue_key'],
    registry=REGISTRY
)

SEATS_AVAILABLE = Gauge(
    'ledger_seats_available',
    'Seats available for a service on a date',
    ['service_id', 'journey_date'],
    registry=REGISTRY
)


def setup_structured_logging(settings: Settings) -> None:
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    # Console output belongs to the interactive session, so logs go to stderr
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Configure traditional logging for compatibility
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def setup_tracing(settings: Settings, app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry tracing."""

    resource = Resource.create({
        "service.name": app_name,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })

    provider = TracerProvider(resource=resource)

    # Setup OTLP exporter (if OTLP endpoint is configured)
    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def instrument_sqlalchemy(engine) -> None:
    """Instrument the snapshot engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine)


def setup_metrics(settings: Settings) -> None:
    """Expose the business metrics registry over HTTP when a port is configured."""
    if settings.metrics_port:
        start_http_server(settings.metrics_port, registry=REGISTRY)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_booking(service_id: str, outcome: str):
        """Record a booking request outcome."""
        BOOKINGS_TOTAL.labels(service_id=service_id, outcome=outcome).inc()

    @staticmethod
    def record_payment_declined(service_id: str):
        """Record a declined payment."""
        PAYMENTS_DECLINED.labels(service_id=service_id).inc()

    @staticmethod
    def record_cancellation(prior_status: str):
        """Record a booking cancellation."""
        CANCELLATIONS_TOTAL.labels(prior_status=prior_status).inc()

    @staticmethod
    def record_promotion(service_id: str, count: int = 1):
        """Record waitlist promotions."""
        PROMOTIONS_TOTAL.labels(service_id=service_id).inc(count)

    @staticmethod
    def set_waitlist_depth(queue_key: str, depth: int):
        """Set the number of entries waiting in a queue."""
        WAITLIST_DEPTH.labels(queue_key=queue_key).set(depth)

    @staticmethod
    def set_seats_available(service_id: str, journey_date: str, seats: int):
        """Set seats available for a service on a date."""
        SEATS_AVAILABLE.labels(service_id=service_id, journey_date=journey_date).set(seats)


# Global metrics collector instance
metrics_collector = MetricsCollector()


class StructuredLogger:
    """Key-value event logger used by the reservation coordinator."""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def info(self, event: str, **fields):
        self.logger.info(event, **fields)

    def warning(self, event: str, **fields):
        self.logger.warning(event, **fields)

    def error(self, event: str, **fields):
        self.logger.error(event, **fields)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
