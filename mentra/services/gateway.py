"""Conversation Gateway

Every call to the text-generation provider goes through here. The gateway owns
its credential pool and cursor, so separate instances never share rotation
state.

Retry protocol for a single operation:
    1. Call the provider with the credential at the cursor.
    2. Non rate-limit failure: raise FatalProviderError immediately.
    3. Rate-limit failure with several credentials: advance the cursor.
       Until every credential has been tried once, wait a short fixed pause.
    4. After that (or with a single credential): wait 2^i s + jitter.
    5. Give up with ProviderExhaustedError after `max_attempts` attempts.

Parsing the analysis happens after the retried call returns, so a malformed
answer is never retried.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from mentra.config.prompts import SYSTEM_INSTRUCTION, build_analysis_prompt
from mentra.config.settings import (
    CHAT_MODEL_NAME,
    ANALYSIS_MODEL_NAME,
    CHAT_TEMPERATURE,
    FALLBACK_REPLY,
    load_credentials,
)
from mentra.core.errors import (
    GatewayError,
    FatalProviderError,
    ProviderExhaustedError,
)
from mentra.core.observability import CallTrace, GatewayMetrics, Tracer
from mentra.models.analysis import (
    AnalysisResult,
    AnalysisVariant,
    RESPONSE_SCHEMAS,
    parse_analysis,
)
from mentra.models.messages import HistoryItem, as_history
from mentra.services.credentials import CredentialPool
from mentra.services.providers import (
    GeminiProvider,
    GenerationProvider,
    GenerationRequest,
    to_gemini_contents,
)
from mentra.services.retry import RetryPolicy, is_rate_limit_error

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ConversationGateway:
    """Resilient access to the provider for chat replies and triage analysis."""

    def __init__(
        self,
        pool: CredentialPool,
        provider: Optional[GenerationProvider] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        chat_model: str = CHAT_MODEL_NAME,
        analysis_model: str = ANALYSIS_MODEL_NAME,
        temperature: float = CHAT_TEMPERATURE,
        variant: AnalysisVariant = AnalysisVariant.GROUP_MATCH,
        registry: Optional[GatewayMetrics] = None,
    ):
        self.pool = pool
        self.provider = provider or GeminiProvider()
        self.policy = policy or RetryPolicy()
        self.chat_model = chat_model
        self.analysis_model = analysis_model
        self.temperature = temperature
        self.variant = variant
        self.registry = registry
        self._sleep = sleep

    async def get_reply(self, history: Iterable[HistoryItem]) -> str:
        """
        Ask the persona for its next chat message.

        Args:
            history: Non-empty ordered messages (Message or role/content dicts).

        Returns:
            The reply text, or the fallback reply when the provider sends nothing.
        """
        turns = as_history(history)
        if not turns:
            raise ValueError("Cannot request a reply for an empty history")

        request = GenerationRequest(
            model_name=self.chat_model,
            contents=to_gemini_contents(turns),
            system_instruction=SYSTEM_INSTRUCTION,
            generation_config={"temperature": self.temperature},
        )
        with Tracer("get_reply", turns[-1]["content"], registry=self.registry) as trace:
            text = await self._call_with_retry(request, trace)

        reply = (text or "").strip()
        if not reply:
            logger.info("Empty reply from provider, using fallback")
            return FALLBACK_REPLY
        return reply

    async def analyze(self, transcript: str, variant: Optional[AnalysisVariant] = None) -> AnalysisResult:
        """
        Classify a flattened transcript into a theme and recommended match.

        Raises:
            AnalysisParseError: the answer is not JSON matching the schema (not retried).
            ProviderExhaustedError: still rate-limited after every attempt.
            FatalProviderError: any other provider failure.
        """
        if not transcript or not transcript.strip():
            raise ValueError("Cannot analyze an empty transcript")

        variant = variant or self.variant
        request = GenerationRequest(
            model_name=self.analysis_model,
            contents=build_analysis_prompt(transcript),
            system_instruction=SYSTEM_INSTRUCTION,
            generation_config={
                "response_mime_type": "application/json",
                "response_schema": RESPONSE_SCHEMAS[variant],
            },
        )
        with Tracer("analyze", transcript, registry=self.registry) as trace:
            text = await self._call_with_retry(request, trace)
            result = parse_analysis(text, variant)

        logger.info(f"Analysis complete ({result.variant.value})")
        return result

    async def _call_with_retry(self, request: GenerationRequest, trace: CallTrace) -> str:
        attempts = 0
        rotations = 0
        backoffs = 0

        while True:
            api_key = self.pool.current
            attempts += 1
            trace.attempts = attempts

            try:
                return await self.provider.generate(api_key, request)
            except Exception as e:
                if not is_rate_limit_error(e):
                    if isinstance(e, GatewayError):
                        raise
                    raise FatalProviderError(f"{request.model_name} request failed: {e}") from e

                if attempts >= self.policy.max_attempts:
                    raise ProviderExhaustedError(
                        f"Provider still rate-limited after {attempts} attempts",
                        attempts=attempts,
                        last_error=e,
                    ) from e

                if len(self.pool) > 1:
                    self.pool.rotate()
                    rotations += 1
                    trace.rotations = rotations

                if len(self.pool) > 1 and rotations < len(self.pool):
                    delay = self.policy.rotation_pause
                else:
                    delay = self.policy.backoff_delay(backoffs)
                    backoffs += 1

                logger.warning(
                    f"Rate limited on attempt {attempts}/{self.policy.max_attempts}, "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await self._sleep(delay)


def create_gateway(credentials: Optional[Iterable[str]] = None, **kwargs) -> ConversationGateway:
    """Build a gateway over the configured credential pool."""
    if credentials is None:
        credentials = load_credentials()
    pool = CredentialPool(credentials)
    logger.info(f"Gateway created with {len(pool)} credential(s)")
    return ConversationGateway(pool, **kwargs)
