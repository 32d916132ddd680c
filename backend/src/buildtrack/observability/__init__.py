"""Observability: structured logging, request correlation and metrics."""

from .logging_config import configure_logging, JSONFormatter
from .request_id import get_request_id, set_request_id, generate_request_id
from .middleware import RequestIDMiddleware

__all__ = [
    "configure_logging",
    "JSONFormatter",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "RequestIDMiddleware",
]
