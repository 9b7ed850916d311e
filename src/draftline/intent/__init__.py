"""
Intent Module

Routes free-text requests and turns scheduling requests into structured
intents.
"""

from draftline.intent.interpreter import StructuredIntentInterpreter
from draftline.intent.router import IntentLabel, IntentRouter, RoutedIntent, is_schedule_allowed

__all__ = [
    "IntentLabel",
    "IntentRouter",
    "RoutedIntent",
    "StructuredIntentInterpreter",
    "is_schedule_allowed",
]
