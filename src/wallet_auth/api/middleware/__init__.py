"""HTTP middleware and exception handlers."""

from .error_handler import api_error_handler, request_validation_handler
from .request_id import REQUEST_ID_HEADER, RequestIDMiddleware

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestIDMiddleware",
    "api_error_handler",
    "request_validation_handler",
]
