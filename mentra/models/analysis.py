"""Triage analysis results.

The analysis call comes in two variants, each with its own response schema:

    GROUP_MATCH        one support circle led by a therapist (current flow)
    THERAPIST_MATCHES  a ranked list of individual therapists

Both parse into frozen dataclasses tagged with `variant`, so callers branch
on the discriminator instead of probing optional fields.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple, Union

from mentra.core.errors import AnalysisParseError


class AnalysisVariant(Enum):
    GROUP_MATCH = "group_match"
    THERAPIST_MATCHES = "therapist_matches"


@dataclass(frozen=True)
class Therapist:
    name: str
    image_url: str
    credentials: str


@dataclass(frozen=True)
class SessionDetails:
    """Booking slot handed out once the matching queue finds a seat."""
    date_time: str
    price: str


@dataclass(frozen=True)
class GroupMatch:
    id: str
    theme: str
    focus: str
    description: str
    therapist: Therapist


@dataclass(frozen=True)
class TherapistMatch:
    name: str
    specialty: str
    match_score: float
    description: str
    image_url: str


@dataclass(frozen=True)
class GroupMatchAnalysis:
    summary: str
    theme: str
    insight: str
    group_match: GroupMatch
    variant: AnalysisVariant = AnalysisVariant.GROUP_MATCH


@dataclass(frozen=True)
class TherapistMatchAnalysis:
    summary: str
    suggested_action: str
    matches: Tuple[TherapistMatch, ...]
    variant: AnalysisVariant = AnalysisVariant.THERAPIST_MATCHES

    @property
    def best_match(self) -> TherapistMatch:
        return max(self.matches, key=lambda m: m.match_score)

    @property
    def theme(self) -> str:
        return self.best_match.specialty


AnalysisResult = Union[GroupMatchAnalysis, TherapistMatchAnalysis]


# ============================================================================
# RESPONSE SCHEMAS (Gemini structured output)
# ============================================================================

_STRING = {"type": "STRING"}

THERAPIST_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "name": _STRING,
        "imageUrl": _STRING,
        "credentials": _STRING,
    },
    "required": ["name", "imageUrl", "credentials"],
}

GROUP_MATCH_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "summary": _STRING,
        "theme": _STRING,
        "insight": _STRING,
        "groupMatch": {
            "type": "OBJECT",
            "properties": {
                "id": _STRING,
                "theme": _STRING,
                "focus": _STRING,
                "description": _STRING,
                "therapist": THERAPIST_SCHEMA,
            },
            "required": ["id", "theme", "focus", "description", "therapist"],
        },
    },
    "required": ["summary", "theme", "insight", "groupMatch"],
}

THERAPIST_MATCHES_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "summary": _STRING,
        "suggestedAction": _STRING,
        "matches": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": _STRING,
                    "specialty": _STRING,
                    "matchScore": {"type": "NUMBER"},
                    "description": _STRING,
                    "imageUrl": _STRING,
                },
                "required": ["name", "specialty", "matchScore", "description", "imageUrl"],
            },
        },
    },
    "required": ["summary", "suggestedAction", "matches"],
}

RESPONSE_SCHEMAS = {
    AnalysisVariant.GROUP_MATCH: GROUP_MATCH_SCHEMA,
    AnalysisVariant.THERAPIST_MATCHES: THERAPIST_MATCHES_SCHEMA,
}


# ============================================================================
# PARSING
# ============================================================================

def _require(payload: Dict[str, Any], key: str, path: str) -> Any:
    if not isinstance(payload, dict):
        raise AnalysisParseError(f"Expected an object at '{path}'")
    if key not in payload:
        raise AnalysisParseError(f"Missing field '{path}.{key}'")
    return payload[key]


def _text(payload: Dict[str, Any], key: str, path: str) -> str:
    value = _require(payload, key, path)
    if not isinstance(value, str):
        raise AnalysisParseError(f"Field '{path}.{key}' must be a string")
    return value


def _number(payload: Dict[str, Any], key: str, path: str) -> float:
    value = _require(payload, key, path)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AnalysisParseError(f"Field '{path}.{key}' must be a number")
    return float(value)


def _score(payload: Dict[str, Any], key: str, path: str) -> float:
    value = _number(payload, key, path)
    if not 0 <= value <= 100:
        raise AnalysisParseError(f"Field '{path}.{key}' must be between 0 and 100, got {value:g}")
    return value


def _parse_group_match(payload: Dict[str, Any]) -> GroupMatchAnalysis:
    group = _require(payload, "groupMatch", "$")
    therapist = _require(group, "therapist", "$.groupMatch")
    return GroupMatchAnalysis(
        summary=_text(payload, "summary", "$"),
        theme=_text(payload, "theme", "$"),
        insight=_text(payload, "insight", "$"),
        group_match=GroupMatch(
            id=_text(group, "id", "$.groupMatch"),
            theme=_text(group, "theme", "$.groupMatch"),
            focus=_text(group, "focus", "$.groupMatch"),
            description=_text(group, "description", "$.groupMatch"),
            therapist=Therapist(
                name=_text(therapist, "name", "$.groupMatch.therapist"),
                image_url=_text(therapist, "imageUrl", "$.groupMatch.therapist"),
                credentials=_text(therapist, "credentials", "$.groupMatch.therapist"),
            ),
        ),
    )


def _parse_therapist_matches(payload: Dict[str, Any]) -> TherapistMatchAnalysis:
    raw_matches = _require(payload, "matches", "$")
    if not isinstance(raw_matches, list) or not raw_matches:
        raise AnalysisParseError("Field '$.matches' must be a non-empty list")

    matches = []
    for i, item in enumerate(raw_matches):
        path = f"$.matches[{i}]"
        matches.append(TherapistMatch(
            name=_text(item, "name", path),
            specialty=_text(item, "specialty", path),
            match_score=_score(item, "matchScore", path),
            description=_text(item, "description", path),
            image_url=_text(item, "imageUrl", path),
        ))

    return TherapistMatchAnalysis(
        summary=_text(payload, "summary", "$"),
        suggested_action=_text(payload, "suggestedAction", "$"),
        matches=tuple(matches),
    )


_PARSERS = {
    AnalysisVariant.GROUP_MATCH: _parse_group_match,
    AnalysisVariant.THERAPIST_MATCHES: _parse_therapist_matches,
}


def parse_analysis(text: str, variant: AnalysisVariant = AnalysisVariant.GROUP_MATCH) -> AnalysisResult:
    """
    Parse the provider's JSON answer into the result type for `variant`.

    Raises:
        AnalysisParseError: the text is not JSON or does not match the schema.
    """
    cleaned = (text or "").replace("```json", "").replace("```", "").strip()
    if not cleaned:
        raise AnalysisParseError("Failed to parse analysis: empty response")

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Failed to parse analysis: {e}") from e

    return _PARSERS[variant](payload)
