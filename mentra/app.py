"""Mentra session controller.

Drives the screens of one user session:

    LANDING → CHATTING ⟲ → ANALYZING → TRIAGE → WAITING → PROPOSAL → PAYMENT → CONFIRMED
                  ↑____________|  (analysis failed, transcript kept)

Every transition happens after the awaited gateway / booking call has
settled. A reset bumps the session generation, so calls that settle later
find themselves stale and drop their result.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from mentra.config.settings import ANALYSIS_THRESHOLD, MOODS, TRIAGE_REVEAL_DELAY_SECONDS
from mentra.core.errors import (
    ConfigurationError,
    GatewayError,
    InvalidTransitionError,
    PreconditionError,
    ProviderExhaustedError,
    SessionBusyError,
    TransientRateLimit,
)
from mentra.models.analysis import AnalysisResult
from mentra.models.messages import Message, flatten_transcript
from mentra.models.session import (
    POST_ANALYSIS_STATES,
    TRANSITIONS,
    ErrorBanner,
    ErrorKind,
    SessionState,
    ViewState,
)
from mentra.services.booking import BookingService, Receipt
from mentra.services.gateway import ConversationGateway

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Mentra is a little busy right now. Give it a moment and try again."
GENERIC_MESSAGE = "Something went wrong on our side. Please try again."
ANALYSIS_MESSAGE = "We couldn't finish your reflection. Your conversation is saved, so you can try again."


class MentraSession:
    """
    Orchestrates one conversation from landing to a confirmed booking.

    Attributes:
        gateway: Provider access for chat replies and analysis.
        booking: Mocked matching queue and checkout.
        state: Everything the session owns (messages, analysis, form, view).
        threshold: Messages already exchanged before a send triggers analysis.
        receipt: Mock payment receipt once CONFIRMED.
    """

    def __init__(
        self,
        gateway: ConversationGateway,
        booking: Optional[BookingService] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        threshold: int = ANALYSIS_THRESHOLD,
        triage_delay: float = TRIAGE_REVEAL_DELAY_SECONDS,
    ):
        self.gateway = gateway
        self.booking = booking or BookingService(sleep=sleep)
        self.threshold = threshold
        self.triage_delay = triage_delay
        self.state = SessionState()
        self.receipt: Optional[Receipt] = None
        self._sleep = sleep
        self._generation = 0
        self._analysis_failed = False

    # === Read-only views ===

    @property
    def view(self) -> ViewState:
        return self.state.view

    @property
    def messages(self):
        return list(self.state.messages)

    @property
    def analysis(self) -> Optional[AnalysisResult]:
        return self.state.analysis

    @property
    def is_busy(self) -> bool:
        return self.state.is_typing or self.state.is_paying or self.state.view in (
            ViewState.ANALYZING,
            ViewState.WAITING,
        )

    # === Landing ===

    def start(self):
        """Open an empty chat from the landing screen."""
        if self.state.view != ViewState.LANDING:
            raise InvalidTransitionError(self.state.view, ViewState.CHATTING)
        self._transition(ViewState.CHATTING)

    def select_mood(self, label: str):
        if label not in MOODS:
            raise ValueError(f"Unknown mood '{label}'. Choose one of: {', '.join(MOODS)}")
        self.state.selected_mood = label

    # === Chatting ===

    async def send(self, text: str) -> Optional[Message]:
        """Send a user message.

        Below the threshold the persona replies and the reply is returned.
        Once the threshold is reached the message is kept and analysis runs
        instead; None is returned. Gateway failures set the error banner and
        also return None, leaving the view as it was.

        Raises:
            SessionBusyError: a previous call has not settled yet.
            InvalidTransitionError: the current screen has no chat.
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Cannot send an empty message")
        self._ensure_idle()

        if self.state.view == ViewState.LANDING:
            self._transition(ViewState.CHATTING)
        elif self.state.view != ViewState.CHATTING:
            raise InvalidTransitionError(self.state.view, ViewState.CHATTING)

        should_analyze = self.state.message_count >= self.threshold
        self.state.add_message(Message.user(text))
        self.state.error = None

        if should_analyze:
            await self._run_analysis()
            return None

        return await self._request_reply()

    async def end_session(self) -> Optional[AnalysisResult]:
        """Stop chatting and analyze what has been said so far."""
        self._ensure_idle()
        if self.state.view != ViewState.CHATTING:
            raise InvalidTransitionError(self.state.view, ViewState.ANALYZING)
        if not self.state.messages:
            raise PreconditionError("Nothing to analyze yet; send a message first")
        return await self._run_analysis()

    async def retry_analysis(self) -> Optional[AnalysisResult]:
        """Run the analysis again after it failed, keeping the transcript."""
        if not self._analysis_failed:
            raise PreconditionError("There is no failed analysis to retry")
        self.state.error = None
        return await self.end_session()

    def dismiss_error(self):
        self.state.error = None

    async def _request_reply(self) -> Optional[Message]:
        generation = self._generation
        self.state.is_typing = True
        try:
            text = await self.gateway.get_reply(self.state.messages)
        except GatewayError as e:
            if self._is_stale(generation):
                return None
            self.state.is_typing = False
            if isinstance(e, ConfigurationError):
                raise
            self.state.error = self._banner_for(e)
            logger.warning(f"Chat reply failed ({self.state.error.kind.value}): {e}")
            return None

        if self._is_stale(generation):
            logger.info("Discarding reply for a session that was reset")
            return None

        self.state.is_typing = False
        reply = Message.assistant(text)
        self.state.add_message(reply)
        self._transition(ViewState.CHATTING)
        return reply

    async def _run_analysis(self) -> Optional[AnalysisResult]:
        generation = self._generation
        self._transition(ViewState.ANALYZING)
        transcript = flatten_transcript(self.state.messages)

        try:
            result = await self.gateway.analyze(transcript)
        except GatewayError as e:
            if self._is_stale(generation):
                return None
            self._analysis_failed = True
            self._transition(ViewState.CHATTING)
            if isinstance(e, ConfigurationError):
                raise
            self.state.error = ErrorBanner(
                kind=ErrorKind.ANALYSIS,
                message=BUSY_MESSAGE if self._is_rate_limited(e) else ANALYSIS_MESSAGE,
            )
            logger.error(f"Analysis failed, transcript kept for retry: {e}")
            return None

        if self._is_stale(generation):
            logger.info("Discarding analysis for a session that was reset")
            return None

        self._analysis_failed = False
        self.state.analysis = result

        if self.triage_delay:
            await self._sleep(self.triage_delay)
            if self._is_stale(generation):
                return None

        self._transition(ViewState.TRIAGE)
        return result

    # === Booking ===

    async def reserve(self):
        """Join the matching queue and wait for a proposed session."""
        self._ensure_idle()
        generation = self._generation
        self._transition(ViewState.WAITING)

        details = await self.booking.find_seat(self.state.analysis.theme)
        if self._is_stale(generation):
            logger.info("Discarding booking for a session that was reset")
            return None

        self.state.booking = details
        self._transition(ViewState.PROPOSAL)
        return details

    def cancel_queue(self):
        """Leave the matching queue; this abandons the session."""
        logger.info("Matching queue cancelled")
        self.reset()

    def proceed_to_payment(self):
        if self.state.booking is None:
            raise PreconditionError("No session has been proposed yet")
        self._transition(ViewState.PAYMENT)

    def update_payment(self, field_name: str, value: str) -> str:
        """Store a card form field (masked) and return what is displayed."""
        if self.state.view != ViewState.PAYMENT:
            raise InvalidTransitionError(self.state.view, ViewState.PAYMENT)
        return self.state.payment.update(field_name, value)

    async def confirm_payment(self) -> Receipt:
        """
        Submit the mocked payment.

        Raises:
            PaymentValidationError: the card form is incomplete (state unchanged).
        """
        self._ensure_idle()
        if self.state.view != ViewState.PAYMENT:
            raise InvalidTransitionError(self.state.view, ViewState.CONFIRMED)

        self.state.is_paying = True
        try:
            receipt = await self.booking.submit_payment(self.state.payment, self.state.booking.price)
        finally:
            self.state.is_paying = False

        self.receipt = receipt
        self._transition(ViewState.CONFIRMED)
        return receipt

    # === Reset ===

    def reset(self):
        """Return to LANDING and forget messages, analysis and form fields."""
        if self.state.is_paying:
            raise SessionBusyError("Payment is being confirmed; wait for it to finish")

        self._generation += 1
        self._analysis_failed = False
        self.state = SessionState()
        self.receipt = None
        logger.info("Session reset")

    # === Helpers ===

    def _transition(self, target: ViewState):
        source = self.state.view
        if target in POST_ANALYSIS_STATES and self.state.analysis is None:
            raise PreconditionError(f"{target.value} needs a completed analysis")
        if target not in TRANSITIONS[source]:
            raise InvalidTransitionError(source, target)

        self.state.view = target
        if source != target:
            logger.debug(f"View {source.value} → {target.value}")

    def _ensure_idle(self):
        if self.is_busy:
            raise SessionBusyError("Wait for the current request to finish")

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    @staticmethod
    def _is_rate_limited(error: GatewayError) -> bool:
        return isinstance(error, (ProviderExhaustedError, TransientRateLimit))

    def _banner_for(self, error: GatewayError) -> ErrorBanner:
        if self._is_rate_limited(error):
            return ErrorBanner(kind=ErrorKind.BUSY, message=BUSY_MESSAGE)
        return ErrorBanner(kind=ErrorKind.GENERIC, message=GENERIC_MESSAGE)
