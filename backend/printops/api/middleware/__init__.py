"""
API Middleware Module

- correlation: per-request correlation ID and access log line
- error_handlers: JSON error payloads for domain, validation and unexpected errors
"""

from .correlation import CorrelationIdMiddleware
from .error_handlers import register_error_handlers

__all__ = ["CorrelationIdMiddleware", "register_error_handlers"]
