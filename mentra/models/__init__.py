"""Mentra Data Models.

This module contains the dataclasses for chat, analysis and session state.

Models:
    Message: One immutable chat message.
    AnalysisResult: Tagged union of the triage analysis variants.
    PaymentForm: Masked card form for the mocked checkout.
    SessionState: Full state of the active session.
    ViewState: Enum of the screens a session moves through.
"""
from mentra.models.messages import Message, Role, as_history, flatten_transcript
from mentra.models.analysis import (
    AnalysisVariant,
    AnalysisResult,
    GroupMatchAnalysis,
    TherapistMatchAnalysis,
    GroupMatch,
    Therapist,
    TherapistMatch,
    SessionDetails,
    parse_analysis,
)
from mentra.models.payment import PaymentForm
from mentra.models.session import (
    ViewState,
    ErrorKind,
    ErrorBanner,
    SessionState,
    POST_ANALYSIS_STATES,
)

__all__ = [
    "Message",
    "Role",
    "as_history",
    "flatten_transcript",
    "AnalysisVariant",
    "AnalysisResult",
    "GroupMatchAnalysis",
    "TherapistMatchAnalysis",
    "GroupMatch",
    "Therapist",
    "TherapistMatch",
    "SessionDetails",
    "parse_analysis",
    "PaymentForm",
    "ViewState",
    "ErrorKind",
    "ErrorBanner",
    "SessionState",
    "POST_ANALYSIS_STATES",
]
