"""LLM Configuration for Mentra.

This module handles Gemini model initialization with appropriate safety settings.
"""
import logging
from typing import Optional

import google.generativeai as genai

from mentra.config.prompts import SYSTEM_INSTRUCTION
from mentra.config.settings import CHAT_MODEL_NAME

logger = logging.getLogger(__name__)

# Standard safety settings for a wellness companion
SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
]


def get_gemini_model(
    api_key: str,
    model_name: str = CHAT_MODEL_NAME,
    system_instruction: Optional[str] = SYSTEM_INSTRUCTION,
):
    """
    Configures the client for one credential and returns a Gemini model instance.

    genai keeps its client configuration process-wide, so the model must be
    used before another credential is configured.

    Args:
        api_key: Credential taken from the pool cursor.
        model_name: Gemini model to use.
        system_instruction: Persona prompt attached to every request.

    Returns:
        GenerativeModel instance.
    """
    genai.configure(api_key=api_key)
    logger.debug(f"Configured Gemini client for model {model_name}")

    return genai.GenerativeModel(
        model_name=model_name,
        safety_settings=SAFETY_SETTINGS,
        system_instruction=system_instruction,
    )
