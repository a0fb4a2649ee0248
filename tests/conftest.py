"""Shared fakes: a scripted provider and a sleep that only records delays."""
import asyncio
import json

import pytest

from mentra.services.credentials import CredentialPool
from mentra.services.gateway import ConversationGateway
from mentra.services.providers import GenerationProvider
from mentra.services.retry import RetryPolicy

GROUP_MATCH_PAYLOAD = {
    "summary": "Work has been relentless and rest feels out of reach.",
    "theme": "Burnout",
    "insight": "You have been carrying more than anyone could.",
    "groupMatch": {
        "id": "circle-burnout-7",
        "theme": "Burnout",
        "focus": "Recovering energy after long stretches of overwork",
        "description": "A small evening circle for people running on empty.",
        "therapist": {
            "name": "Dr. Amara Okafor",
            "imageUrl": "https://example.org/okafor.jpg",
            "credentials": "PhD, Licensed Clinical Psychologist",
        },
    },
}

THERAPIST_MATCHES_PAYLOAD = {
    "summary": "Persistent worry about the future.",
    "suggestedAction": "Book an intro call with your top match.",
    "matches": [
        {
            "name": "Jonah Reyes",
            "specialty": "Anxiety",
            "matchScore": 92,
            "description": "CBT-focused, calm and practical.",
            "imageUrl": "https://example.org/reyes.jpg",
        },
        {
            "name": "Mei Tanaka",
            "specialty": "Grief",
            "matchScore": 71,
            "description": "Gentle, narrative approach.",
            "imageUrl": "https://example.org/tanaka.jpg",
        },
    ],
}


class RateLimited(Exception):
    """Stands in for the SDK's 429 error."""

    def __init__(self):
        super().__init__("429 Resource has been exhausted (e.g. check quota).")


class FakeProvider(GenerationProvider):
    """
    Scripted provider.

    Queued outcomes are consumed first (strings are returned, exceptions
    raised). After that, chat requests echo the last user turn and analysis
    requests return `analysis`.
    """

    def __init__(self, outcomes=None, analysis=None):
        self.outcomes = list(outcomes or [])
        self.analysis = analysis if analysis is not None else json.dumps(GROUP_MATCH_PAYLOAD)
        self.calls = []

    @property
    def keys_used(self):
        return [api_key for api_key, _ in self.calls]

    async def generate(self, api_key, request):
        self.calls.append((api_key, request))
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        if "response_schema" in request.generation_config:
            return self.analysis
        return f"echo: {request.contents[-1]['parts'][0]}"


class BlockingProvider(FakeProvider):
    """Holds every call until `release` is set."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.release = asyncio.Event()

    async def generate(self, api_key, request):
        await self.release.wait()
        return await super().generate(api_key, request)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class BlockingSleep(RecordingSleep):
    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def __call__(self, delay):
        self.delays.append(delay)
        await self.release.wait()


def make_gateway(provider, keys=("k1",), sleep=None, **policy):
    policy.setdefault("max_jitter", 0.0)
    return ConversationGateway(
        CredentialPool(keys),
        provider=provider,
        policy=RetryPolicy(**policy),
        sleep=sleep or RecordingSleep(),
    )


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sleep():
    return RecordingSleep()
