"""Middleware package for the telemetry alert service."""

from telemetry.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware", "CORRELATION_ID_HEADER"]
