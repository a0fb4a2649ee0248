"""Mocked booking and checkout.

There is no scheduling backend or payment processor behind these calls; they
wait to imitate network latency and hand back canned data.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable

from mentra.config.settings import (
    BOOKING_DELAY_SECONDS,
    BOOKING_PRICE,
    BOOKING_SLOT,
    PAYMENT_DELAY_SECONDS,
)
from mentra.core.errors import PaymentValidationError
from mentra.models.analysis import SessionDetails
from mentra.models.payment import PaymentForm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Receipt:
    reference: str
    amount: str
    card: str


class BookingService:
    def __init__(
        self,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        booking_delay: float = BOOKING_DELAY_SECONDS,
        payment_delay: float = PAYMENT_DELAY_SECONDS,
    ):
        self._sleep = sleep
        self.booking_delay = booking_delay
        self.payment_delay = payment_delay

    async def find_seat(self, theme: str) -> SessionDetails:
        """Pretend to match the user into a circle for `theme`."""
        logger.info(f"Matching queue started for theme '{theme}'")
        await self._sleep(self.booking_delay)
        return SessionDetails(date_time=BOOKING_SLOT, price=BOOKING_PRICE)

    async def submit_payment(self, form: PaymentForm, amount: str) -> Receipt:
        errors = form.validate()
        if errors:
            raise PaymentValidationError(errors)

        await self._sleep(self.payment_delay)
        receipt = Receipt(reference=uuid.uuid4().hex[:8].upper(), amount=amount, card=form.masked_number)
        logger.info(f"Mock payment {receipt.reference} accepted for {amount}")
        return receipt
