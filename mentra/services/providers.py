"""Text-generation providers.

The gateway only needs "send this request with this credential and give me
the text back"; providers hide the SDK behind that.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mentra.config.llm import get_gemini_model

logger = logging.getLogger(__name__)


@dataclass
class GenerationRequest:
    model_name: str
    contents: Any  # prompt string or list of {"role", "parts"} turns
    system_instruction: Optional[str] = None
    generation_config: Dict[str, Any] = field(default_factory=dict)


class GenerationProvider(ABC):
    """
    Simple abstraction so we can swap providers (or fake one in tests).
    """

    @abstractmethod
    async def generate(self, api_key: str, request: GenerationRequest) -> str:
        """
        Issue one request with one credential.

        returns: response text, "" when the provider produced none
        raises: whatever the SDK raises; the gateway classifies it
        """
        ...


class GeminiProvider(GenerationProvider):
    """
    Gemini implementation using google-generativeai.
    """

    async def generate(self, api_key: str, request: GenerationRequest) -> str:
        model = get_gemini_model(
            api_key=api_key,
            model_name=request.model_name,
            system_instruction=request.system_instruction,
        )
        response = await model.generate_content_async(
            request.contents,
            generation_config=request.generation_config,
        )
        try:
            return response.text or ""
        except ValueError as e:
            # Blocked or empty candidates: .text refuses to build a string
            logger.warning(f"Gemini returned no text: {e}")
            return ""


def to_gemini_contents(history: List[Dict[str, str]]) -> List[Dict[str, Any]]:
    """Map role/content dicts to Gemini turns (assistant speaks as "model")."""
    return [
        {
            "role": "user" if turn["role"] == "user" else "model",
            "parts": [turn["content"]],
        }
        for turn in history
    ]
