from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from mentra.models.analysis import AnalysisResult, SessionDetails
from mentra.models.messages import Message
from mentra.models.payment import PaymentForm


class ViewState(Enum):
    LANDING = "landing"
    CHATTING = "chatting"
    ANALYZING = "analyzing"
    TRIAGE = "triage"
    WAITING = "waiting"
    PROPOSAL = "proposal"
    PAYMENT = "payment"
    CONFIRMED = "confirmed"


# Screens that render the analysis and cannot exist without one
POST_ANALYSIS_STATES: FrozenSet[ViewState] = frozenset({
    ViewState.TRIAGE,
    ViewState.WAITING,
    ViewState.PROPOSAL,
    ViewState.PAYMENT,
    ViewState.CONFIRMED,
})

# Forward edges only; reset to LANDING is handled separately
TRANSITIONS: Dict[ViewState, FrozenSet[ViewState]] = {
    ViewState.LANDING: frozenset({ViewState.CHATTING}),
    ViewState.CHATTING: frozenset({ViewState.CHATTING, ViewState.ANALYZING}),
    ViewState.ANALYZING: frozenset({ViewState.TRIAGE, ViewState.CHATTING}),
    ViewState.TRIAGE: frozenset({ViewState.WAITING}),
    ViewState.WAITING: frozenset({ViewState.PROPOSAL}),
    ViewState.PROPOSAL: frozenset({ViewState.PAYMENT}),
    ViewState.PAYMENT: frozenset({ViewState.CONFIRMED}),
    ViewState.CONFIRMED: frozenset(),
}


class ErrorKind(Enum):
    BUSY = "busy"
    GENERIC = "generic"
    ANALYSIS = "analysis"


@dataclass
class ErrorBanner:
    """Inline, dismissible error shown above the chat input."""
    kind: ErrorKind
    message: str


@dataclass
class SessionState:
    """Everything one user session owns. Reset wipes all of it."""
    view: ViewState = ViewState.LANDING
    messages: List[Message] = field(default_factory=list)
    analysis: Optional[AnalysisResult] = None
    payment: PaymentForm = field(default_factory=PaymentForm)
    error: Optional[ErrorBanner] = None
    selected_mood: Optional[str] = None
    booking: Optional[SessionDetails] = None
    is_typing: bool = False
    is_paying: bool = False

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def add_message(self, message: Message):
        self.messages.append(message)
