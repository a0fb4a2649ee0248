"""Mentra Services Module.

Services:
    ConversationGateway: Rate-limit tolerant chat and analysis calls.
    CredentialPool: Rotating set of provider API keys.
    RetryPolicy: Rotation pause and exponential backoff settings.
    GeminiProvider: google-generativeai backed provider.
    BookingService: Mocked matching queue and checkout.
"""
from mentra.services.credentials import CredentialPool
from mentra.services.retry import RetryPolicy, is_rate_limit_error
from mentra.services.providers import GenerationProvider, GenerationRequest, GeminiProvider
from mentra.services.gateway import ConversationGateway, create_gateway
from mentra.services.booking import BookingService, Receipt

__all__ = [
    "CredentialPool",
    "RetryPolicy",
    "is_rate_limit_error",
    "GenerationProvider",
    "GenerationRequest",
    "GeminiProvider",
    "ConversationGateway",
    "create_gateway",
    "BookingService",
    "Receipt",
]
