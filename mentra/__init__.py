"""Mentra - a conversational wellness companion.

Chat with the Mentra persona, get a triage reflection after a few exchanges,
and book a seat in a matched support circle (mocked booking and checkout).
"""
__version__ = "0.1.0"
