"""Mentra in the terminal.

A thin front end over MentraSession: it renders the active screen and maps
typed commands to session actions. All state lives in the session.
"""
import asyncio
import logging

from mentra.config.settings import MOODS, load_credentials
from mentra.core.errors import MentraError, PaymentValidationError
from mentra.core.observability import get_metrics_summary
from mentra.models.analysis import AnalysisVariant
from mentra.models.session import ErrorKind, ViewState
from mentra.app import MentraSession
from mentra.services.gateway import create_gateway

logger = logging.getLogger(__name__)

GREETING = """Hey, I'm Mentra. 🌿

Tell me what's on your mind, or pick how you feel right now:
  /mood <Peace|Calm|Grounded|Flow|Rest>

Commands: /start  /end  /retry  /dismiss  /reserve  /cancel  /pay  /reset  /stats  /quit"""

PAYMENT_FIELDS = (
    ("name", "Cardholder name"),
    ("card_number", "Card number"),
    ("expiry", "Expiry (MM/YY)"),
    ("cvv", "CVV"),
)


async def ask(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, input, prompt)


def render(session: MentraSession):
    """Print whatever the current screen shows."""
    state = session.state

    if state.error:
        print(f"\n⚠ {state.error.message}  (/dismiss" + (", /retry)" if state.error.kind == ErrorKind.ANALYSIS else ")"))

    if state.view == ViewState.TRIAGE:
        analysis = state.analysis
        print("\nTHE CORE THEME")
        print(f"  {analysis.theme}")
        if analysis.variant == AnalysisVariant.GROUP_MATCH:
            print(f'  "{analysis.insight}"')
            print(f"\nSupport Circle Recommendation:\n  {analysis.group_match.description}")
        else:
            print(f"  {analysis.summary}")
            for match in analysis.matches:
                print(f"  • {match.name} ({match.specialty}) {match.match_score:.0f}% match")
            print(f"\n  {analysis.suggested_action}")
        print("\nType /reserve to join the matching queue.")

    elif state.view == ViewState.PROPOSAL:
        analysis = state.analysis
        print("\nYOUR CIRCLE")
        if analysis.variant == AnalysisVariant.GROUP_MATCH:
            therapist = analysis.group_match.therapist
            print(f"  {therapist.name}, {therapist.credentials}")
            print(f"  {analysis.group_match.theme} Session")
        else:
            print(f"  {analysis.best_match.name}, {analysis.best_match.specialty}")
        print(f"  {state.booking.date_time}")
        print(f"  Co-payment {state.booking.price}")
        print("\nType /pay to reserve your seat.")

    elif state.view == ViewState.CONFIRMED:
        print("\nConfirmed. Your seat is reserved in the circle. Check your inbox for details.")
        if session.receipt:
            print(f"  Receipt {session.receipt.reference}: {session.receipt.amount} on {session.receipt.card}")
        print("Type /reset to start over.")


async def collect_payment(session: MentraSession):
    for field_name, label in PAYMENT_FIELDS:
        shown = session.update_payment(field_name, await ask(f"  {label}: "))
        print(f"    → {shown}")
    print("Secure checkout via Mentra Pay...")
    try:
        await session.confirm_payment()
    except PaymentValidationError as e:
        for problem in e.field_errors.values():
            print(f"  ✖ {problem}")
        print("Type /pay to try again.")


async def handle(session: MentraSession, line: str) -> bool:
    """Run one command or chat line. Returns False to quit."""
    command, _, argument = line.partition(" ")

    if command in ("/quit", "/exit"):
        return False
    elif command == "/start":
        session.start()
    elif command == "/mood":
        session.select_mood(argument.strip().title())
        print(f"Noted: {session.state.selected_mood}.")
    elif command == "/end":
        print("Mentra is weaving your thoughts into a clearer picture...")
        await session.end_session()
    elif command == "/retry":
        print("Trying the reflection again...")
        await session.retry_analysis()
    elif command == "/dismiss":
        session.dismiss_error()
    elif command == "/reserve":
        print("Curating your circle. We're finding peers and a specialist who resonate with your path...")
        await session.reserve()
    elif command == "/cancel":
        session.cancel_queue()
        print("Back to the start.")
    elif command == "/pay":
        if session.view == ViewState.PROPOSAL:
            session.proceed_to_payment()
        await collect_payment(session)
    elif command == "/reset":
        session.reset()
        print("Back to the start.")
    elif command == "/stats":
        print(get_metrics_summary())
    elif command.startswith("/"):
        print(f"Unknown command {command}. Moods: {', '.join(MOODS)}")
    else:
        analyzing = session.state.message_count >= session.threshold
        if analyzing:
            print("Mentra is weaving your thoughts into a clearer picture...")
        reply = await session.send(line)
        if reply:
            print(f"Mentra: {reply.content}")

    render(session)
    return True


async def run():
    credentials = load_credentials()
    if not credentials:
        print("Error: no Gemini API key found. Set GEMINI_API_KEYS or GEMINI_API_KEY.")
        return

    session = MentraSession(create_gateway(credentials))
    print(GREETING)

    while True:
        line = (await ask("\nYou: ")).strip()
        if not line:
            continue
        try:
            if not await handle(session, line):
                break
        except (MentraError, ValueError, KeyError) as e:
            print(f"  ✖ {e}")

    print("Mentra: Take care.")


def main():
    try:
        asyncio.run(run())
    except (KeyboardInterrupt, EOFError):
        print("\nMentra: Take care.")


if __name__ == "__main__":
    main()
