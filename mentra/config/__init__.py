"""Mentra Configuration Module.

This module handles LLM configuration, prompts and environment settings.

Functions:
    get_gemini_model: Configure a credential and return a Gemini model.
    load_credentials: Read the API credential pool from the environment.
"""
from mentra.config.llm import get_gemini_model
from mentra.config.settings import load_credentials

__all__ = ["get_gemini_model", "load_credentials"]
