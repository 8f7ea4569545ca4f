"""Per-request entry point of the gateway.

The dispatcher resolves the route for an inbound request, binds its query
parameters, forwards it to the backend and turns the outcome (or the failure)
into exactly one HTTP response.
"""

import logging
from typing import Optional

from fastapi.responses import JSONResponse, PlainTextResponse, Response

from fe_gateway.binder import bind
from fe_gateway.errors import BindError, ForwardError
from fe_gateway.forwarder import Forwarder
from fe_gateway.models import BackendEndpoint
from fe_gateway.routing import RouteTable

logger = logging.getLogger("uvicorn.error")


def error_response(status_code: int, detail: str, headers=None) -> Response:
    return JSONResponse({"detail": detail}, status_code=status_code, headers=headers)


class Dispatcher:
    def __init__(
        self,
        endpoint: BackendEndpoint,
        forwarder: Forwarder,
        routes: Optional[RouteTable] = None,
    ):
        self.endpoint = endpoint
        self.forwarder = forwarder
        self.routes = routes if routes is not None else RouteTable()

    async def handle(self, method: str, path: str, raw_query: str = "") -> Response:
        route = self.routes.match(method, path)
        if route is None:
            if method.upper() != "GET":
                logger.debug(f"[Dispatch] {method} {path}: method not allowed")
                return error_response(405, "Method Not Allowed", {"Allow": "GET"})
            logger.debug(f"[Dispatch] Response for wrong url: {path}")
            return error_response(404, "Not Found")

        if not route.forwards:
            return PlainTextResponse(route.static_body)

        bound = None
        if route.params:
            try:
                bound = bind(route, raw_query)
            except BindError as e:
                logger.info(f"[Dispatch] {method} {path} rejected: {e.message}")
                return error_response(e.status_code, e.detail)

        try:
            outcome = await self.forwarder.forward(self.endpoint, route, bound)
        except ForwardError as e:
            logger.error(f"[Dispatch] {method} {path} -> {e.url} failed: {e.message}")
            return error_response(e.status_code, e.detail)

        logger.debug(
            f"[Dispatch] {method} {path} -> {outcome.url}: {outcome.status_code}"
        )
        return Response(content=outcome.body, status_code=outcome.status_code)
