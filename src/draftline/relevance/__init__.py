"""
Answer Relevance

Checks that an answer addresses each part of the question it was given.
"""

from draftline.relevance.guard import (
    AnswerRelevanceGuard,
    build_answer_map,
    maybe_clarifier,
    split_into_sub_questions,
)
from draftline.relevance.similarity import SimilarityFn, dice_coefficient

__all__ = [
    "AnswerRelevanceGuard",
    "SimilarityFn",
    "build_answer_map",
    "dice_coefficient",
    "maybe_clarifier",
    "split_into_sub_questions",
]
