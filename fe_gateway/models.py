from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

ParamValue = Union[str, int]


class ParamType(str, Enum):
    STRING = "string"
    UINT = "uint"
    # 0/1 flag, rendered as a number on the wire
    FLAG = "flag"


@dataclass(frozen=True)
class BackendEndpoint:
    """Base URL (scheme, host and port) of the single backend service.

    Built once at startup and handed to the dispatcher; nothing mutates it
    afterwards.
    """

    base_url: str

    def __post_init__(self):
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    def url_for(self, suffix: str) -> str:
        return f"{self.base_url}{suffix}"


@dataclass(frozen=True)
class ParamSpec:
    name: str
    type: ParamType = ParamType.STRING
    required: bool = True
    default: Optional[ParamValue] = None

    def __post_init__(self):
        if self.required and self.default is not None:
            raise ValueError(f"Required parameter '{self.name}' cannot have a default")
        if not self.required and self.default is None:
            raise ValueError(f"Optional parameter '{self.name}' needs a default")


@dataclass(frozen=True)
class RouteSpec:
    """Static description of one inbound route.

    Attributes:
        path: Inbound path, matched exactly.
        backend_suffix: Path appended to the backend base URL. Fixed here so a
            request can never choose which backend path is called.
        params: Query parameters in the order they are sent to the backend.
        method: Inbound HTTP method.
        static_body: Served directly instead of forwarding (index route).
    """

    path: str
    backend_suffix: Optional[str] = None
    params: Tuple[ParamSpec, ...] = ()
    method: str = "GET"
    static_body: Optional[str] = None

    def __post_init__(self):
        if (self.backend_suffix is None) == (self.static_body is None):
            raise ValueError(
                f"Route {self.path} needs exactly one of backend_suffix or static_body"
            )

    @property
    def forwards(self) -> bool:
        return self.backend_suffix is not None


@dataclass
class BoundRequest:
    """Values bound for one request, in the route's parameter order."""

    route: RouteSpec
    values: Tuple[Tuple[str, ParamValue], ...] = field(default_factory=tuple)


@dataclass
class ForwardOutcome:
    """Backend answer relayed verbatim to the caller."""

    status_code: int
    body: bytes
    url: str
