"""
Answer Relevance Guard

Checks whether a generated answer covers the sub-questions in the user's
message, and proposes a single clarifying question when it does not.
"""

from __future__ import annotations

import re
from typing import Optional

import structlog

from draftline.models import AnswerMap, QAItem
from draftline.relevance.similarity import SimilarityFn, dice_coefficient

logger = structlog.get_logger(__name__)

MAX_SUB_QUESTIONS = 8
DUPLICATE_THRESHOLD = 0.85
CONTENT_WORD_MIN_LENGTH = 5
CONTENT_WORD_FLOOR = 0.65
CLARIFY_THRESHOLD = 0.6
EXCERPT_CHARS = 80

IMPLICIT_ANSWER = "[covered implicitly]"

_SPLIT_RE = re.compile(r"[?•\n\r]|\band\b|\bor\b", re.IGNORECASE)
_BULLET_RE = re.compile(r"^[-*]+\s*")
_WORD_SPLIT_RE = re.compile(r"[^a-z0-9]+")


def split_into_sub_questions(
    message: str,
    similarity: SimilarityFn = dice_coefficient,
) -> list[str]:
    """
    Split a message into distinct sub-questions.

    Splits on question marks, bullets, newlines and the conjunctions
    "and"/"or", drops fragments near-identical to an earlier one, and keeps
    at most eight.
    """
    text = (message or "").strip()
    if not text:
        return []

    unique: list[str] = []
    for part in _SPLIT_RE.split(text):
        part = _BULLET_RE.sub("", part.strip()).strip()
        if not part:
            continue
        if any(similarity(seen.lower(), part.lower()) > DUPLICATE_THRESHOLD for seen in unique):
            continue
        unique.append(part)
    return unique[:MAX_SUB_QUESTIONS]


def build_answer_map(
    message: str,
    answer: str,
    similarity: SimilarityFn = dice_coefficient,
) -> AnswerMap:
    """
    Map each sub-question to its best-matching answer line.

    A sub-question whose content words (five or more characters) appear
    anywhere in the answer scores at least 0.65. Relevance is the mean score.
    """
    questions = split_into_sub_questions(message, similarity)
    if not questions:
        return AnswerMap()

    lines = [line.strip() for line in re.split(r"[\n\r]", answer or "") if line.strip()]
    answer_lower = (answer or "").lower()

    items: list[QAItem] = []
    total = 0.0
    for question in questions:
        q_lower = question.lower()
        best, best_score = "", 0.0
        for line in lines:
            score = similarity(q_lower, line.lower())
            if score > best_score:
                best, best_score = line, score

        content_words = [w for w in _WORD_SPLIT_RE.split(q_lower) if len(w) >= CONTENT_WORD_MIN_LENGTH]
        if best_score < CONTENT_WORD_FLOOR and any(w in answer_lower for w in content_words):
            best_score = CONTENT_WORD_FLOOR
            best = best or IMPLICIT_ANSWER

        total += best_score
        items.append(QAItem(question=question, answer=best))

    coverage = total / len(questions)
    relevance = max(0.0, min(1.0, coverage))
    return AnswerMap(items=items, coverage=coverage, relevance=relevance)


def maybe_clarifier(
    message: str,
    relevance: float,
    threshold: float = CLARIFY_THRESHOLD,
) -> Optional[str]:
    """A single clarifying question when relevance is below threshold, else None."""
    if relevance >= threshold:
        return None
    excerpt = (message or "")[:EXCERPT_CHARS]
    return f'Quick clarifier: What outcome matters most for "{excerpt}"?'


class AnswerRelevanceGuard:
    """Bundles sub-question splitting, answer mapping and the clarifier."""

    def __init__(
        self,
        similarity: SimilarityFn = dice_coefficient,
        threshold: float = CLARIFY_THRESHOLD,
    ):
        self.similarity = similarity
        self.threshold = threshold

    def split(self, message: str) -> list[str]:
        return split_into_sub_questions(message, self.similarity)

    def build_answer_map(self, message: str, answer: str) -> AnswerMap:
        return build_answer_map(message, answer, self.similarity)

    def clarifier(self, message: str, relevance: float) -> Optional[str]:
        return maybe_clarifier(message, relevance, self.threshold)

    def check(self, message: str, answer: str) -> tuple[AnswerMap, Optional[str]]:
        """Score an answer and return the clarifier to ask, if any."""
        answer_map = self.build_answer_map(message, answer)
        question = self.clarifier(message, answer_map.relevance)
        logger.debug(
            "answer_relevance",
            sub_questions=len(answer_map.items),
            relevance=round(answer_map.relevance, 3),
            clarify=question is not None,
        )
        return answer_map, question
