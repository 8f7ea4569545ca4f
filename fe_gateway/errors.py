from typing import Optional


class GatewayError(Exception):
    """Base class for failures scoped to a single inbound request."""

    status_code: int = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        # Client-facing text; never carries transport internals.
        self.detail = detail or message


class BindError(GatewayError):
    status_code = 400

    def __init__(self, param: str, message: str):
        super().__init__(message)
        self.param = param


class MissingRequiredParameter(BindError):
    def __init__(self, param: str):
        super().__init__(param, f"Missing required query parameter '{param}'")


class InvalidParameterType(BindError):
    def __init__(self, param: str, value: str, expected: str):
        super().__init__(
            param,
            f"Query parameter '{param}' must be {expected}, got '{value}'",
        )
        self.value = value
        self.expected = expected


class DuplicateParameter(BindError):
    def __init__(self, param: str):
        super().__init__(param, f"Query parameter '{param}' given more than once")


class ForwardError(GatewayError):
    status_code = 502

    def __init__(self, url: str, message: str, detail: str):
        super().__init__(message, detail)
        self.url = url


class BackendTransportError(ForwardError):
    """The backend could not be reached (refused, timeout, DNS, ...)."""

    def __init__(self, url: str, cause: Exception):
        super().__init__(
            url,
            f"Failed to reach backend {url}: {cause!r}",
            "Bad gateway - cannot connect to backend",
        )
        self.cause = cause


class BackendBodyReadError(ForwardError):
    """The backend answered but its response body could not be read."""

    def __init__(self, url: str, status_code: int, cause: Exception):
        super().__init__(
            url,
            f"Failed to read body from backend {url} (status {status_code}): {cause!r}",
            "Bad gateway - unreadable backend response",
        )
        self.cause = cause
