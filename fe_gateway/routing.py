"""Static route table for the gateway.

Every inbound route is declared here together with the backend path it
forwards to and the query parameters it accepts. Lookup is an exact match on
method and path; there are no wildcards or path parameters.
"""

from typing import Dict, Iterable, Optional, Tuple

from fe_gateway.models import ParamSpec, ParamType, RouteSpec

INDEX_BODY = "Hello world!\r\n"

ACCOUNT_ID = ParamSpec("accountId", ParamType.STRING)
SORT = ParamSpec("sort", ParamType.UINT, required=False, default=0)
ASC = ParamSpec("asc", ParamType.UINT, required=False, default=0)
TOTAL_ELEMENTS = ParamSpec("totalElements", ParamType.UINT, required=False, default=0)

ROUTES: Tuple[RouteSpec, ...] = (
    RouteSpec("/", static_body=INDEX_BODY),
    RouteSpec("/hello", "/hello"),
    RouteSpec("/customer/accounts", "/customer/accounts"),
    RouteSpec("/customer/account", "/customer/account", (ACCOUNT_ID,)),
    RouteSpec("/customer/account/detail", "/customer/account/detail", (ACCOUNT_ID,)),
    RouteSpec(
        "/customer/account/movements",
        "/customer/account/movements",
        (ACCOUNT_ID, SORT, ASC),
    ),
    RouteSpec(
        "/customer/account/movements/top",
        "/customer/account/movements/top",
        (ACCOUNT_ID, TOTAL_ELEMENTS, ASC),
    ),
    RouteSpec(
        "/customer/account/movements/balance",
        "/customer/account/movements/balance",
        (ACCOUNT_ID,),
    ),
)


class RouteTable:
    def __init__(self, routes: Iterable[RouteSpec] = ROUTES):
        self._routes: Dict[Tuple[str, str], RouteSpec] = {}
        for route in routes:
            key = (route.method.upper(), route.path)
            if key in self._routes:
                raise ValueError(f"Duplicate route {route.method} {route.path}")
            self._routes[key] = route

    def match(self, method: str, path: str) -> Optional[RouteSpec]:
        return self._routes.get((method.upper(), path))

    def __iter__(self):
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)
