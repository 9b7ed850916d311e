"""
Signal Gating

Decides which signals are worth parsing: focus scoring, the spam lexicon,
and the importance badge attached to surviving drafts.
"""

from draftline.gating.focus import FocusClassifier
from draftline.gating.importance import ImportanceScorer, importance_badge
from draftline.gating.spam import SpamLexicon

__all__ = [
    "FocusClassifier",
    "ImportanceScorer",
    "SpamLexicon",
    "importance_badge",
]
