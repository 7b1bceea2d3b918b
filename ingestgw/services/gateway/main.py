"""HTTP ingestion gateway.

`POST /` takes a JSON body of any shape, re-serializes it and publishes it as
one unkeyed message onto the configured topic. The response reflects the
broker acknowledgment: 201 when published, 500 when the publish failed, 400
for bodies that are not UTF-8 JSON and 404 for every other path or method.
"""

from contextlib import asynccontextmanager
from time import perf_counter
from typing import Callable
from uuid import uuid4

import uvicorn
from aiokafka import AIOKafkaProducer
from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect

from ingestgw.common.config import GatewaySettings, load_settings
from ingestgw.common.logging import configure_logging, logger, request_id_ctx
from ingestgw.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    messages_published_total,
    metrics_response,
    publish_failures_total,
    publish_latency_seconds,
    requests_rejected_total,
)
from ingestgw.common.producer import KafkaBus, build_producer
from ingestgw.common.startup import log_startup_config
from ingestgw.common.tracing import instrument_app, setup_tracing
from ingestgw.services.gateway.payload import PayloadError, canonicalize


def get_bus(request: Request) -> KafkaBus:
    """Shared producer handle created by the app lifespan."""

    return request.app.state.bus


def get_settings(request: Request) -> GatewaySettings:
    return request.app.state.settings


def create_app(
    settings: GatewaySettings | None = None,
    producer_factory: Callable[[GatewaySettings], AIOKafkaProducer] = build_producer,
) -> FastAPI:
    """Build the gateway app around one producer per process."""

    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the producer for the app lifetime and flush it on shutdown."""

        bus = KafkaBus(lambda: producer_factory(settings), transactional=settings.transactional)
        bus.open()
        app.state.bus = bus
        try:
            await bus.producer()
        except Exception as exc:
            # Broker may come up later; requests retry the start.
            logger.warning(
                "producer_start_failed bootstrap=%s error=%s",
                settings.kafka_bootstrap_servers,
                exc,
            )
        yield
        await bus.close()

    app = FastAPI(title="Ingest Gateway", lifespan=lifespan)
    app.state.settings = settings
    instrument_app(app)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Tag the request with an id and record count and latency."""

        request_id = request.headers.get("x-request-id") or str(uuid4())
        token = request_id_ctx.set(request_id)
        start = perf_counter()
        route = "<unmatched>"
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            response.headers["x-request-id"] = request_id
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()
            request_id_ctx.reset(token)

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        """Any unrouted path or method is reported as 404."""

        if exc.status_code in (404, 405):
            requests_rejected_total.labels(service=settings.service_name, reason="not_found").inc()
            return PlainTextResponse("Not Found", status_code=404)
        return await http_exception_handler(request, exc)

    @app.post("/", status_code=201, response_class=PlainTextResponse)
    async def ingest(
        request: Request,
        bus: KafkaBus = Depends(get_bus),
        cfg: GatewaySettings = Depends(get_settings),
    ):
        """Publish the request body onto the ingest topic."""

        try:
            body = await request.body()
        except ClientDisconnect as exc:
            logger.warning("body_read_failed error=%r", exc)
            requests_rejected_total.labels(service=cfg.service_name, reason="unreadable_body").inc()
            return PlainTextResponse("Error reading request body", status_code=400)

        try:
            message = canonicalize(body)
        except PayloadError as exc:
            logger.info("payload_rejected reason=%s error=%s", exc.reason, exc)
            requests_rejected_total.labels(service=cfg.service_name, reason=exc.reason).inc()
            return PlainTextResponse(str(exc), status_code=400)

        started = perf_counter()
        try:
            await bus.publish(cfg.ingest_topic, message)
        except Exception as exc:
            logger.error("publish_failed topic=%s bytes=%s error=%r", cfg.ingest_topic, len(message), exc)
            publish_failures_total.labels(
                service=cfg.service_name,
                topic=cfg.ingest_topic,
                error_type=type(exc).__name__,
            ).inc()
            return PlainTextResponse(f"Error sending message to Kafka: {exc}", status_code=500)

        publish_latency_seconds.labels(service=cfg.service_name, topic=cfg.ingest_topic).observe(
            max(0.0, perf_counter() - started)
        )
        messages_published_total.labels(service=cfg.service_name, topic=cfg.ingest_topic).inc()
        return PlainTextResponse("Message sent to Kafka successfully", status_code=201)

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.get("/health")
    def health():
        """Container health check endpoint."""

        return {"ok": True}

    return app


def main() -> None:
    """Load config, then serve on all interfaces until stopped."""

    try:
        settings = load_settings()
    except ValidationError as exc:
        configure_logging("ingest-gateway")
        logger.critical("invalid_configuration error=%s", exc)
        raise SystemExit(1) from exc

    configure_logging(settings.service_name, settings.log_level)
    setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint)
    log_startup_config(settings.service_name)
    app = create_app(settings)
    logger.info("listening host=0.0.0.0 port=%s topic=%s", settings.port, settings.ingest_topic)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
