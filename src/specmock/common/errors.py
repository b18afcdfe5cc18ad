"""
Specmock Errors

Exception taxonomy shared by the registry, route resolver, response selector
and transport layer. Every error carries the HTTP status the transport should
answer with, so the server can turn any of them into a response without a
lookup table.
"""

from typing import Any, Dict, Iterable, List, Optional


class SpecmockError(Exception):
    """Base class for all specmock errors."""

    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable error body."""
        return {
            'error': type(self).__name__,
            'detail': self.message
        }


class LoadError(SpecmockError):
    """A contract document could not be read or interpreted."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.source:
            data['source'] = self.source
        return data


class UnknownSpecification(SpecmockError):
    """The requested specification name is not loaded."""

    http_status = 400

    def __init__(self, name: Optional[str], available: Iterable[str] = ()):
        self.name = name
        self.available = sorted(available)
        if name is None:
            message = "No default specification available. Please specify a spec parameter."
        else:
            message = f"Specification '{name}' not found."
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['available'] = self.available
        return data


class RouteError(SpecmockError):
    """Base class for route resolution failures."""


class RouteNotFound(RouteError):
    """No path template matches the request path."""

    http_status = 404

    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(f"No matching path found for: {path}")


class MethodNotAllowed(RouteError):
    """A path template matches, but none declares the requested method."""

    http_status = 405

    def __init__(self, method: str, path: str, allowed: Iterable[str]):
        self.method = method
        self.path = path
        self.allowed: List[str] = sorted(set(allowed))
        super().__init__(f"Method {method} not allowed for path: {path}")

    @property
    def allow_header(self) -> str:
        return ', '.join(self.allowed)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['allowed'] = self.allowed
        return data


class SelectionError(SpecmockError):
    """Base class for response selection failures."""


class NoResponseDefined(SelectionError):
    """The operation declares no usable response."""

    http_status = 500

    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        super().__init__(f"No response defined for operation: {operation_id}")


class NotAcceptable(SelectionError):
    """None of the declared media types satisfy the Accept header."""

    http_status = 406

    def __init__(self, accepted: Iterable[str], available: Iterable[str]):
        self.accepted = list(accepted)
        self.available = list(available)
        super().__init__(
            f"None of the accepted media types ({', '.join(self.accepted)}) are available"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['available'] = self.available
        return data
