from catalog.pipeline.caching import ResponseCacheMiddleware
from catalog.pipeline.compression import CompressionMiddleware
from catalog.pipeline.problem_details import ProblemDetailsMiddleware, install_problem_handlers
from catalog.pipeline.request_logging import RequestLoggingMiddleware
from catalog.pipeline.security import StrictTransportSecurityMiddleware

__all__ = [
    "CompressionMiddleware",
    "ProblemDetailsMiddleware",
    "RequestLoggingMiddleware",
    "ResponseCacheMiddleware",
    "StrictTransportSecurityMiddleware",
    "install_problem_handlers",
]
