import logging
from typing import Optional
from urllib.parse import quote

import httpx
from opentelemetry import trace

from fe_gateway import __version__
from fe_gateway.errors import BackendBodyReadError, BackendTransportError
from fe_gateway.models import BackendEndpoint, BoundRequest, ForwardOutcome, RouteSpec
from fe_gateway.utils import safe_decode
from fe_gateway.utils.traced_requests import traced_request

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Identifies the gateway to the backend on every outbound call
USER_AGENT = f"fe-gateway/{__version__}"


def build_backend_url(
    endpoint: BackendEndpoint, route: RouteSpec, bound: Optional[BoundRequest] = None
) -> str:
    """Construct the backend URL for a route.

    The path always comes from the route definition. Bound parameters are
    appended in declaration order as ``name=value`` pairs with percent-encoded
    values; integers are rendered in plain decimal.
    """
    url = endpoint.url_for(route.backend_suffix)
    if not route.params or bound is None:
        return url
    query = "&".join(
        f"{quote(name, safe='')}={quote(str(value), safe='')}"
        for name, value in bound.values
    )
    return f"{url}?{query}"


class Forwarder:
    """Issues the single outbound GET for a request and returns the raw answer."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def forward(
        self,
        endpoint: BackendEndpoint,
        route: RouteSpec,
        bound: Optional[BoundRequest] = None,
    ) -> ForwardOutcome:
        url = build_backend_url(endpoint, route, bound)
        with traced_request(
            tracer,
            operation="forward_request",
            method="GET",
            path=route.path,
            start_message=f"[Forward] Calling endpoint: {url}",
            extra_attrs={"gateway.backend_url": url},
        ) as span:
            request = self.client.build_request(
                "GET", url, headers={"User-Agent": USER_AGENT}
            )
            try:
                response = await self.client.send(request, stream=True)
            except httpx.RequestError as e:
                logger.error(f"[Forward] Failed to connect to backend {url}: {e!r}")
                span.set_attribute("gateway.error", "transport")
                raise BackendTransportError(url, e) from e

            span.set_attribute("http.response.status_code", response.status_code)
            try:
                body = await response.aread()
            except httpx.HTTPError as e:
                logger.error(
                    f"[Forward] Failed to read body from {url} "
                    f"(status {response.status_code}): {e!r}"
                )
                span.set_attribute("gateway.error", "body_read")
                raise BackendBodyReadError(url, response.status_code, e) from e
            finally:
                await response.aclose()

            logger.debug(
                f"[Forward] Received from endpoint {url} "
                f"({response.status_code}): {safe_decode(body)}"
            )
            return ForwardOutcome(status_code=response.status_code, body=body, url=url)
