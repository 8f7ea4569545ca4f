import logging
import os
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Optional

from pydantic import (
    AfterValidator,
    Field,
    HttpUrl,
    StringConstraints,
    TypeAdapter,
    ValidationError,
)

from fe_gateway.models import BackendEndpoint

logger = logging.getLogger("uvicorn.error")

ENV_PREFIX = "FE_"

SERVICE_NAME = os.getenv("SERVICE_NAME", "fe-gateway")
LOG_LEVEL = os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "info").lower()
if LOG_LEVEL not in ("critical", "error", "warning", "info", "debug", "trace"):
    LOG_LEVEL = "info"
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

# The server only ever binds to loopback
HOST = "127.0.0.1"

DEFAULT_PORT = 9296
DEFAULT_WORKERS = 2
DEFAULT_CLIENT_URL = "http://127.0.0.1:9596"


def _origin_only(url: HttpUrl) -> HttpUrl:
    if url.query or url.fragment or url.path not in (None, "", "/"):
        raise ValueError("must be scheme://host[:port] without path, query or fragment")
    return url


# Unsigned decimal: digits with an optional leading '+'
_DIGITS = TypeAdapter(Annotated[str, StringConstraints(pattern=r"^\+?[0-9]+$")])
_PORT = TypeAdapter(Annotated[int, Field(ge=0, le=65535)])
_WORKERS = TypeAdapter(Annotated[int, Field(ge=1)])
_CLIENT_URL = TypeAdapter(Annotated[HttpUrl, AfterValidator(_origin_only)])


@dataclass(frozen=True)
class GatewayConfig:
    port: int = DEFAULT_PORT
    workers: int = DEFAULT_WORKERS
    client_url: str = DEFAULT_CLIENT_URL

    @property
    def endpoint(self) -> BackendEndpoint:
        return BackendEndpoint(self.client_url)


def _parse_uint(adapter: TypeAdapter) -> Callable[[str], int]:
    def parse(raw: str) -> int:
        return adapter.validate_python(int(_DIGITS.validate_python(raw)))

    return parse


def _parse_client_url(raw: str) -> str:
    _CLIENT_URL.validate_python(raw)
    return raw.strip().rstrip("/")


def _resolve_setting(
    key: str,
    label: str,
    parse: Callable[[str], Any],
    default: Any,
    environ: Optional[dict] = None,
) -> Any:
    """Read one ``FE_`` variable, falling back to ``default`` when unusable."""
    env = os.environ if environ is None else environ
    name = f"{ENV_PREFIX}{key}"
    raw = env.get(name)
    if raw is None:
        logger.error(f"[Config] Error with env var {key}: {name} is not set")
        logger.info(f"[Config] {label} set to {default} - default value")
        return default
    try:
        value = parse(raw)
    except ValidationError as e:
        reason = "; ".join(err["msg"] for err in e.errors())
        logger.error(f"[Config] Error with env var {key} ({raw!r}): {reason}")
        logger.info(f"[Config] {label} set to {default} - default value")
        return default
    logger.info(f"[Config] {label} set to: {value}")
    return value


def resolve(environ: Optional[dict] = None) -> GatewayConfig:
    """Resolve port, workers and backend URL from the environment.

    Never raises: every unusable value is replaced by its default.
    """
    return GatewayConfig(
        port=_resolve_setting(
            "PORT", "Port", _parse_uint(_PORT), DEFAULT_PORT, environ
        ),
        workers=_resolve_setting(
            "WORKERS", "Workers", _parse_uint(_WORKERS), DEFAULT_WORKERS, environ
        ),
        client_url=_resolve_setting(
            "CLIENT_URL", "Client URL", _parse_client_url, DEFAULT_CLIENT_URL, environ
        ),
    )
