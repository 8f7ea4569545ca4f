import logging
import re
from typing import Dict, List, Tuple
from urllib.parse import parse_qsl

from fe_gateway.errors import (
    DuplicateParameter,
    InvalidParameterType,
    MissingRequiredParameter,
)
from fe_gateway.models import BoundRequest, ParamSpec, ParamType, ParamValue, RouteSpec

logger = logging.getLogger("uvicorn.error")

_DIGITS_RE = re.compile(r"[0-9]+")
# Numeric parameters are unsigned machine words on the backend side
UINT_MAX = 2**64 - 1


def parse_query(raw_query: str) -> Dict[str, List[str]]:
    """Split a raw query string into a mapping of name to all its values."""
    values: Dict[str, List[str]] = {}
    for name, value in parse_qsl(raw_query or "", keep_blank_values=True):
        values.setdefault(name, []).append(value)
    return values


def coerce(spec: ParamSpec, raw: str) -> ParamValue:
    if spec.type is ParamType.STRING:
        return raw
    if not _DIGITS_RE.fullmatch(raw):
        raise InvalidParameterType(spec.name, raw, _expected(spec))
    value = int(raw)
    if value > UINT_MAX or (spec.type is ParamType.FLAG and value not in (0, 1)):
        raise InvalidParameterType(spec.name, raw, _expected(spec))
    return value


def _expected(spec: ParamSpec) -> str:
    if spec.type is ParamType.FLAG:
        return "0 or 1"
    return "a non-negative integer"


def bind(route: RouteSpec, raw_query: str) -> BoundRequest:
    """Bind the query of one request against the route's parameters.

    Declared parameters are processed in order; the first failure is raised.
    Keys the route does not declare are ignored.
    """
    query = parse_query(raw_query)
    values: List[Tuple[str, ParamValue]] = []
    for spec in route.params:
        given = query.get(spec.name)
        if not given:
            if spec.required:
                logger.warning(
                    f"[Bind] {route.path}: missing required parameter '{spec.name}'"
                )
                raise MissingRequiredParameter(spec.name)
            values.append((spec.name, spec.default))
            continue
        if len(given) > 1:
            logger.warning(f"[Bind] {route.path}: parameter '{spec.name}' repeated")
            raise DuplicateParameter(spec.name)
        try:
            values.append((spec.name, coerce(spec, given[0])))
        except InvalidParameterType as e:
            logger.warning(f"[Bind] {route.path}: {e.message}")
            raise
    return BoundRequest(route=route, values=tuple(values))
