"""Error types raised by the gateway and the session controller."""
from typing import Dict, Optional


class MentraError(Exception):
    """Base class for every error Mentra raises on purpose."""


# ============================================================================
# GATEWAY ERRORS
# ============================================================================

class GatewayError(MentraError):
    """A provider call could not produce a usable result."""


class ConfigurationError(GatewayError):
    """No credential is available to call the provider."""


class TransientRateLimit(GatewayError):
    """The provider signalled quota or rate-limit exhaustion."""


class FatalProviderError(GatewayError):
    """The provider rejected the request for a reason retrying will not fix."""


class MalformedResponse(GatewayError):
    """The provider answered, but not with data matching the expected schema."""


AnalysisParseError = MalformedResponse


class ProviderExhaustedError(GatewayError):
    """Every retry and credential rotation failed."""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


# ============================================================================
# SESSION ERRORS
# ============================================================================

class SessionError(MentraError):
    """A user action is not allowed in the current session state."""


class InvalidTransitionError(SessionError):
    def __init__(self, source, target):
        super().__init__(f"Cannot move from {source.value} to {target.value}")
        self.source = source
        self.target = target


class PreconditionError(SessionError):
    """A screen was requested without the data it depends on."""


class SessionBusyError(SessionError):
    """Another gateway call or payment is still in flight."""


class PaymentValidationError(SessionError):
    def __init__(self, field_errors: Dict[str, str]):
        fields = ", ".join(sorted(field_errors))
        super().__init__(f"Payment form is incomplete: {fields}")
        self.field_errors = field_errors
