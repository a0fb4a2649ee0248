"""Unit Tests for the Mentra session flow (view state machine).

Run with: pytest tests/ -v
"""
import asyncio
import json

import pytest

from conftest import (
    BlockingProvider,
    BlockingSleep,
    FakeProvider,
    GROUP_MATCH_PAYLOAD,
    RateLimited,
    RecordingSleep,
    make_gateway,
)
from mentra.app import BUSY_MESSAGE, MentraSession
from mentra.core.errors import (
    ConfigurationError,
    InvalidTransitionError,
    PaymentValidationError,
    PreconditionError,
    SessionBusyError,
)
from mentra.models.messages import Role
from mentra.models.session import ErrorKind, ViewState
from mentra.services.booking import BookingService
from mentra.services.gateway import create_gateway


def make_session(provider=None, booking_sleep=None, **kwargs):
    sleep = RecordingSleep()
    gateway = make_gateway(provider or FakeProvider(), sleep=sleep)
    booking = BookingService(sleep=booking_sleep or sleep)
    session = MentraSession(gateway, booking=booking, sleep=sleep, **kwargs)
    return session, sleep


async def chat(session, *texts):
    for text in texts:
        await session.send(text)


async def reach_triage(session):
    await chat(session, "m1", "m2", "m3", "m4")
    assert session.view == ViewState.TRIAGE


async def reach_payment(session):
    await reach_triage(session)
    await session.reserve()
    session.proceed_to_payment()


def fill_card(session):
    session.update_payment("name", "Alex Morgan")
    session.update_payment("card_number", "4242 4242 4242 4242")
    session.update_payment("expiry", "1227")
    session.update_payment("cvv", "123")


class TestChatting:
    """Landing and the chat loop before analysis."""

    def test_starts_on_landing(self):
        session, _ = make_session()
        assert session.view == ViewState.LANDING
        assert session.messages == []
        assert session.analysis is None

    def test_first_send_opens_chat(self):
        session, _ = make_session()
        reply = asyncio.run(session.send("hello"))

        assert session.view == ViewState.CHATTING
        assert reply.role == Role.ASSISTANT
        assert reply.content == "echo: hello"

    def test_explicit_start(self):
        session, _ = make_session()
        session.start()
        assert session.view == ViewState.CHATTING
        with pytest.raises(InvalidTransitionError):
            session.start()

    def test_start_mid_chat_rejected(self):
        session, _ = make_session()
        asyncio.run(session.send("hello"))
        with pytest.raises(InvalidTransitionError):
            session.start()
        assert len(session.messages) == 2

    def test_history_is_append_only_and_ordered(self):
        """m1, m2, m3 yield [m1, reply1, m2, reply2, m3, reply3]."""
        session, _ = make_session()
        asyncio.run(chat(session, "m1", "m2", "m3"))

        assert [m.content for m in session.messages] == [
            "m1", "echo: m1", "m2", "echo: m2", "m3", "echo: m3",
        ]
        assert [m.role for m in session.messages] == [Role.USER, Role.ASSISTANT] * 3

    def test_empty_message_rejected(self):
        session, _ = make_session()
        with pytest.raises(ValueError):
            asyncio.run(session.send("   "))
        assert session.view == ViewState.LANDING

    def test_rate_limited_reply_shows_busy_banner(self):
        """Exhausted retries surface a dismissible 'busy' banner; view unchanged."""
        session, _ = make_session(FakeProvider(outcomes=[RateLimited()] * 5))
        reply = asyncio.run(session.send("hello"))

        assert reply is None
        assert session.view == ViewState.CHATTING
        assert session.state.error.kind == ErrorKind.BUSY
        assert [m.content for m in session.messages] == ["hello"]
        assert not session.state.is_typing

        session.dismiss_error()
        assert session.state.error is None

    def test_other_reply_failures_show_generic_banner(self):
        session, _ = make_session(FakeProvider(outcomes=[RuntimeError("500 internal")]))
        asyncio.run(session.send("hello"))

        assert session.view == ViewState.CHATTING
        assert session.state.error.kind == ErrorKind.GENERIC

    def test_send_while_waiting_for_reply_is_rejected(self):
        async def scenario():
            provider = BlockingProvider()
            session, _ = make_session(provider)
            pending = asyncio.create_task(session.send("first"))
            await asyncio.sleep(0)

            with pytest.raises(SessionBusyError):
                await session.send("second")

            provider.release.set()
            await pending
            return session

        session = asyncio.run(scenario())
        assert [m.content for m in session.messages] == ["first", "echo: first"]

    def test_mood_selection(self):
        session, _ = make_session()
        session.select_mood("Calm")
        assert session.state.selected_mood == "Calm"
        with pytest.raises(ValueError):
            session.select_mood("Furious")


class TestAnalysis:
    """Threshold-triggered and explicit analysis."""

    def test_threshold_triggers_analysis(self):
        """After six exchanged messages the next send goes to analysis."""
        provider = FakeProvider()
        session, sleep = make_session(provider)
        asyncio.run(reach_triage(session))

        assert session.analysis.theme == "Burnout"
        assert len(session.messages) == 7
        assert session.messages[-1].content == "m4"
        assert sleep.delays[-1] == 1.8  # triage reveal

        _, request = provider.calls[-1]
        assert "user: m1\nassistant: echo: m1" in request.contents

    def test_below_threshold_stays_chatting(self):
        session, _ = make_session()
        asyncio.run(chat(session, "m1", "m2", "m3"))
        assert session.view == ViewState.CHATTING
        assert session.analysis is None

    def test_end_session_analyzes_early(self):
        session, _ = make_session(triage_delay=0)
        asyncio.run(chat(session, "just one thing"))
        result = asyncio.run(session.end_session())

        assert session.view == ViewState.TRIAGE
        assert session.analysis is result

    def test_end_session_needs_messages(self):
        session, _ = make_session()
        session.start()
        with pytest.raises(PreconditionError):
            asyncio.run(session.end_session())

    def test_failed_analysis_keeps_transcript(self):
        """Analysis failure returns to chat with the transcript intact."""
        provider = FakeProvider(analysis="not json at all")
        session, _ = make_session(provider)
        asyncio.run(chat(session, "m1", "m2", "m3", "m4"))

        assert session.view == ViewState.CHATTING
        assert session.analysis is None
        assert session.state.error.kind == ErrorKind.ANALYSIS
        assert len(session.messages) == 7

    def test_retry_after_failed_analysis(self):
        provider = FakeProvider(analysis="not json at all")
        session, _ = make_session(provider)
        asyncio.run(chat(session, "m1", "m2", "m3", "m4"))

        provider.analysis = json.dumps(GROUP_MATCH_PAYLOAD)
        asyncio.run(session.retry_analysis())

        assert session.view == ViewState.TRIAGE
        assert session.state.error is None
        assert len(session.messages) == 7

    def test_rate_limited_analysis_says_busy(self):
        """A rate-limited analysis keeps the retry banner but reports 'busy'."""
        provider = FakeProvider()
        session, _ = make_session(provider)
        asyncio.run(chat(session, "m1"))

        provider.outcomes = [RateLimited()] * 5
        assert asyncio.run(session.end_session()) is None

        assert session.view == ViewState.CHATTING
        assert session.state.error.kind == ErrorKind.ANALYSIS
        assert session.state.error.message == BUSY_MESSAGE
        assert len(session.messages) == 2

        asyncio.run(session.retry_analysis())
        assert session.view == ViewState.TRIAGE

    def test_retry_without_failure_rejected(self):
        session, _ = make_session()
        asyncio.run(chat(session, "m1"))
        with pytest.raises(PreconditionError):
            asyncio.run(session.retry_analysis())


class TestMissingCredentials:
    """No credentials is a configuration problem, never a banner."""

    def make_unconfigured_session(self):
        gateway = create_gateway(credentials=[], provider=FakeProvider(), sleep=RecordingSleep())
        return MentraSession(gateway, sleep=RecordingSleep())

    def test_send_raises(self):
        session = self.make_unconfigured_session()
        with pytest.raises(ConfigurationError):
            asyncio.run(session.send("hello"))

        assert session.state.error is None
        assert not session.state.is_typing
        assert session.view == ViewState.CHATTING

    def test_end_session_raises(self):
        session = self.make_unconfigured_session()
        with pytest.raises(ConfigurationError):
            asyncio.run(session.send("hello"))
        with pytest.raises(ConfigurationError):
            asyncio.run(session.end_session())

        assert session.view == ViewState.CHATTING
        assert session.state.error is None
        assert session.analysis is None


class TestPostAnalysisGuards:
    """No results, proposal, payment or confirmation without an analysis."""

    def test_reserve_without_analysis(self):
        session, _ = make_session()
        asyncio.run(chat(session, "m1"))
        with pytest.raises(PreconditionError):
            asyncio.run(session.reserve())
        assert session.view == ViewState.CHATTING

    def test_payment_without_proposal(self):
        session, _ = make_session()
        with pytest.raises(PreconditionError):
            session.proceed_to_payment()

    def test_confirm_outside_payment(self):
        session, _ = make_session()
        with pytest.raises(InvalidTransitionError):
            asyncio.run(session.confirm_payment())
        assert session.view == ViewState.LANDING

    @pytest.mark.parametrize("target", [
        ViewState.TRIAGE, ViewState.WAITING, ViewState.PROPOSAL, ViewState.PAYMENT, ViewState.CONFIRMED,
    ])
    def test_transition_guard(self, target):
        session, _ = make_session()
        with pytest.raises(PreconditionError):
            session._transition(target)


class TestBookingFlow:
    """Triage → waiting → proposal → payment → confirmed."""

    def test_reserve_proposes_a_session(self):
        session, sleep = make_session()
        asyncio.run(reach_triage(session))
        details = asyncio.run(session.reserve())

        assert session.view == ViewState.PROPOSAL
        assert details.date_time == "Tomorrow at 7:00 PM"
        assert details.price == "$25.00"
        assert sleep.delays[-1] == 4.5

    def test_full_flow_to_confirmation(self):
        session, _ = make_session()
        asyncio.run(reach_payment(session))
        fill_card(session)
        receipt = asyncio.run(session.confirm_payment())

        assert session.view == ViewState.CONFIRMED
        assert receipt.amount == "$25.00"
        assert receipt.card == "•••• 4242"
        assert session.receipt is receipt

    def test_incomplete_card_blocks_confirmation(self):
        session, _ = make_session()
        asyncio.run(reach_payment(session))
        session.update_payment("name", "Alex Morgan")
        session.update_payment("card_number", "4242 4242")

        with pytest.raises(PaymentValidationError) as exc_info:
            asyncio.run(session.confirm_payment())

        assert set(exc_info.value.field_errors) == {"card_number", "expiry", "cvv"}
        assert session.view == ViewState.PAYMENT
        assert not session.state.is_paying

    def test_payment_fields_only_on_payment_screen(self):
        session, _ = make_session()
        with pytest.raises(InvalidTransitionError):
            session.update_payment("name", "Alex")

    def test_cancel_queue_abandons_session(self):
        """Leaving the queue resets; the late booking result is dropped."""
        async def scenario():
            booking_sleep = BlockingSleep()
            session, _ = make_session(booking_sleep=booking_sleep)
            await reach_triage(session)
            pending = asyncio.create_task(session.reserve())
            await asyncio.sleep(0)
            assert session.view == ViewState.WAITING

            session.cancel_queue()
            booking_sleep.release.set()
            return session, await pending

        session, details = asyncio.run(scenario())
        assert details is None
        assert session.view == ViewState.LANDING
        assert session.state.booking is None


class TestReset:
    """Reset returns to landing and forgets everything."""

    def test_reset_from_confirmed(self):
        session, _ = make_session()
        asyncio.run(reach_payment(session))
        fill_card(session)
        asyncio.run(session.confirm_payment())
        session.select_mood("Rest")

        session.reset()

        assert session.view == ViewState.LANDING
        assert session.messages == []
        assert session.analysis is None
        assert session.state.booking is None
        assert session.state.payment.card_number == ""
        assert session.state.selected_mood is None
        assert session.receipt is None

    def test_reset_mid_chat_clears_banner(self):
        session, _ = make_session(FakeProvider(outcomes=[RateLimited()] * 5))
        asyncio.run(session.send("hello"))
        session.reset()

        assert session.view == ViewState.LANDING
        assert session.state.error is None

    def test_reset_discards_in_flight_reply(self):
        async def scenario():
            provider = BlockingProvider()
            session, _ = make_session(provider)
            pending = asyncio.create_task(session.send("hello"))
            await asyncio.sleep(0)

            session.reset()
            provider.release.set()
            return session, await pending

        session, reply = asyncio.run(scenario())
        assert reply is None
        assert session.view == ViewState.LANDING
        assert session.messages == []

    def test_reset_discards_in_flight_analysis(self):
        """An analysis settling after a reset never reaches the results screen."""
        async def scenario():
            provider = BlockingProvider()
            session, _ = make_session(provider)
            provider.release.set()
            await chat(session, "m1", "m2", "m3")

            provider.release.clear()
            pending = asyncio.create_task(session.send("m4"))
            await asyncio.sleep(0)
            assert session.view == ViewState.ANALYZING

            session.reset()
            provider.release.set()
            return session, await pending

        session, reply = asyncio.run(scenario())
        assert reply is None
        assert session.view == ViewState.LANDING
        assert session.analysis is None
        assert session.messages == []
        assert session.state.error is None

    def test_reset_refused_while_paying(self):
        async def scenario():
            booking_sleep = BlockingSleep()
            session, _ = make_session(booking_sleep=booking_sleep)
            booking_sleep.release.set()
            await reach_payment(session)
            fill_card(session)

            booking_sleep.release.clear()
            pending = asyncio.create_task(session.confirm_payment())
            await asyncio.sleep(0)

            with pytest.raises(SessionBusyError):
                session.reset()

            booking_sleep.release.set()
            await pending
            return session

        session = asyncio.run(scenario())
        assert session.view == ViewState.CONFIRMED
