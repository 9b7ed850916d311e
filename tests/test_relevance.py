"""
Tests for similarity and the answer relevance guard.
"""

import pytest

from draftline.relevance import (
    AnswerRelevanceGuard,
    build_answer_map,
    dice_coefficient,
    maybe_clarifier,
    split_into_sub_questions,
)
from draftline.relevance.guard import IMPLICIT_ANSWER


class TestDiceCoefficient:
    """Tests for the default similarity."""

    def test_identical(self):
        assert dice_coefficient("night", "night") == 1.0

    def test_whitespace_ignored(self):
        assert dice_coefficient("join zoom", "joinzoom") == 1.0

    def test_known_value(self):
        # ni ig gh ht vs na ac ch ht: one shared bigram
        assert dice_coefficient("night", "nacht") == pytest.approx(0.25)

    def test_short_strings(self):
        assert dice_coefficient("a", "b") == 0.0
        assert dice_coefficient("", "") == 1.0

    def test_symmetric(self):
        assert dice_coefficient("gary zoom", "zoom with gary") == dice_coefficient("zoom with gary", "gary zoom")


class TestSplitIntoSubQuestions:
    """Tests for sub-question splitting."""

    def test_question_marks_and_conjunctions(self):
        parts = split_into_sub_questions("What skills should I build? How do I grow my portfolio and network?")
        assert parts == ["What skills should I build", "How do I grow my portfolio", "network"]

    def test_bullets_and_newlines(self):
        parts = split_into_sub_questions("- resume tips\n* interview prep\n• salary research")
        assert parts == ["resume tips", "interview prep", "salary research"]

    def test_near_duplicates_dropped(self):
        parts = split_into_sub_questions("What skills should I build? what skills should I build?")
        assert parts == ["What skills should I build"]

    def test_capped_at_eight(self):
        message = "alpha? bravo? charlie? delta? echo? foxtrot? golf? hotel? india? juliet?"
        assert len(split_into_sub_questions(message)) == 8

    def test_empty(self):
        assert split_into_sub_questions("   ") == []


class TestAnswerMap:
    """Tests for answer mapping and the clarifier."""

    def test_covering_answer(self):
        message = "What skills should I build? How do I grow my portfolio?"
        answer = (
            "Skills: build SQL and Python fundamentals.\n"
            "Portfolio: publish two case studies this quarter."
        )
        answer_map = build_answer_map(message, answer)

        assert len(answer_map.items) == 2
        assert answer_map.relevance >= 0.65
        assert answer_map.items[1].answer.startswith("Portfolio")
        assert maybe_clarifier(message, answer_map.relevance) is None

    def test_unrelated_answer(self):
        message = "Plan my career in PM"
        answer_map = build_answer_map(message, "Here are some generic tips about life.")

        assert answer_map.relevance < 0.6
        clarifier = maybe_clarifier(message, answer_map.relevance)
        assert clarifier is not None
        assert "Quick clarifier" in clarifier
        assert "Plan my career in PM" in clarifier

    def test_content_word_floor(self):
        answer_map = build_answer_map("networking", "")
        assert answer_map.relevance == 0.0

        answer_map = build_answer_map("How is my networking going", "x")
        assert answer_map.relevance == 0.0

        answer_map = build_answer_map("How is my networking going", "Mostly networking events lately, all good")
        assert answer_map.relevance >= 0.65

    def test_implicit_answer_marker(self):
        answer_map = build_answer_map("salary?", "salary")
        assert answer_map.items[0].answer in ("salary", IMPLICIT_ANSWER)

    def test_empty_message(self):
        answer_map = build_answer_map("", "anything")
        assert answer_map.items == []
        assert answer_map.relevance == 0.0

    def test_clarifier_excerpt_truncated(self):
        clarifier = maybe_clarifier("x" * 200, 0.1)
        assert f'"{"x" * 80}"' in clarifier


class TestAnswerRelevanceGuard:
    """Tests for the guard with an injected similarity."""

    def test_similarity_is_swappable(self):
        guard = AnswerRelevanceGuard(similarity=lambda a, b: 1.0)
        assert guard.split("a? b? c?") == ["a"]

        answer_map, clarifier = guard.check("anything at all", "unrelated")
        assert answer_map.relevance == 1.0
        assert clarifier is None

    def test_threshold_is_configurable(self):
        guard = AnswerRelevanceGuard(threshold=0.0)
        _, clarifier = guard.check("Plan my career in PM", "Here are some generic tips about life.")
        assert clarifier is None
