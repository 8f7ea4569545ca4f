import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import APIRouter, FastAPI, Request
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

from fe_gateway.dispatcher import Dispatcher
from fe_gateway.forwarder import Forwarder
from fe_gateway.models import BackendEndpoint
from fe_gateway.routing import RouteTable
from fe_gateway.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME, resolve

logger = logging.getLogger("uvicorn.error")

router = APIRouter()


# Every request goes through the dispatcher so the route table alone decides
# between forward, 404 and 405.
@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"],
)
async def dispatch(request: Request):
    dispatcher: Dispatcher = request.app.state.dispatcher
    return await dispatcher.handle(
        request.method, request.url.path, request.url.query
    )


def create_app(
    endpoint: BackendEndpoint,
    client: Optional[httpx.AsyncClient] = None,
    routes: Optional[RouteTable] = None,
) -> FastAPI:
    """Build the gateway application for one backend.

    When ``client`` is not given, the application owns an ``httpx.AsyncClient``
    for its lifetime and closes it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http_client = client if client is not None else httpx.AsyncClient()
        app.state.dispatcher = Dispatcher(endpoint, Forwarder(http_client), routes)
        logger.info(f"Forwarding to backend {endpoint.base_url}")
        try:
            yield
        finally:
            if client is None:
                await http_client.aclose()

    app = FastAPI(
        title=SERVICE_NAME,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(router)
    return app


def configure_tracing(app: FastAPI) -> None:
    trace.set_tracer_provider(
        TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    )
    tracer_provider = trace.get_tracer_provider()
    if OTLP_ENDPOINT:
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=((OTLP_HEADERS).split(",") if OTLP_HEADERS else None),
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    FastAPIInstrumentor.instrument_app(app)


def build_app() -> FastAPI:
    """Application factory used by each uvicorn worker process."""
    config = resolve()
    app = create_app(config.endpoint)
    configure_tracing(app)
    return app
