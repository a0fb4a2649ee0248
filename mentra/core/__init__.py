"""Mentra Core Module.

Error hierarchy and observability shared by the gateway and the session.
"""
from mentra.core.errors import (
    MentraError,
    GatewayError,
    ConfigurationError,
    TransientRateLimit,
    FatalProviderError,
    MalformedResponse,
    AnalysisParseError,
    ProviderExhaustedError,
    SessionError,
    InvalidTransitionError,
    PreconditionError,
    SessionBusyError,
    PaymentValidationError,
)
from mentra.core.observability import Tracer, metrics, get_metrics_summary

__all__ = [
    "MentraError",
    "GatewayError",
    "ConfigurationError",
    "TransientRateLimit",
    "FatalProviderError",
    "MalformedResponse",
    "AnalysisParseError",
    "ProviderExhaustedError",
    "SessionError",
    "InvalidTransitionError",
    "PreconditionError",
    "SessionBusyError",
    "PaymentValidationError",
    "Tracer",
    "metrics",
    "get_metrics_summary",
]
