"""HTTP middleware."""

from taskflow.middleware.logging import LoggingMiddleware
from taskflow.middleware.request_id import RequestIDMiddleware

__all__ = ["LoggingMiddleware", "RequestIDMiddleware"]
