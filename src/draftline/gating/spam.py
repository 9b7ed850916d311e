"""
Event spam lexicon.

Drops promotional and vague signals before they can become calendar drafts.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from draftline.config import DEFAULT_SPAM_BRANDS


class SpamLexicon:
    """Lexical gate returning the reason a signal is dropped, or None."""

    MARKETING_PATTERNS = [
        r"\b\d{1,3}\s?%",
        r"% off\b",
        r"\bsave up to\b",
        r"\blimited time\b",
        r"\bsale\b",
        r"\bcoupons?\b",
        r"\bnewsletter\b",
        r"\bdigest\b",
        r"\bgift cards?\b",
        r"\bback[- ]?to[- ]?school\b",
        r"\bcelebrate\b",
    ]

    VAGUE_PATTERN = r"\b(sign[- ]?up|user stud(?:y|ies)|webinar|learn how to|register for)\b"
    CLOCK_PATTERN = r"\b\d{1,2}(:\d{2})?\s?(am|pm)\b"

    def __init__(
        self,
        brands: Optional[Iterable[str]] = None,
        ignore_keywords: Optional[Iterable[str]] = None,
    ):
        brands = DEFAULT_SPAM_BRANDS if brands is None else brands
        brand_alternatives = "|".join(re.escape(b.strip()) for b in brands if b and b.strip())

        patterns = list(self.MARKETING_PATTERNS)
        if brand_alternatives:
            patterns.append(rf"\b({brand_alternatives})\b")
        self._marketing_re = re.compile("|".join(patterns), re.IGNORECASE)
        self._vague_re = re.compile(self.VAGUE_PATTERN, re.IGNORECASE)
        self._clock_re = re.compile(self.CLOCK_PATTERN, re.IGNORECASE)
        self.ignore_keywords = [k.strip().lower() for k in (ignore_keywords or []) if k and k.strip()]

    def check(self, text: str) -> Optional[str]:
        """
        Check text against the lexicon.

        Returns:
            "marketing", "vague", "ignored keyword", or None if the text passes
        """
        if not text:
            return None
        if self._marketing_re.search(text):
            return "marketing"
        if self._vague_re.search(text) and not self._clock_re.search(text):
            return "vague"
        lowered = text.lower()
        if any(k in lowered for k in self.ignore_keywords):
            return "ignored keyword"
        return None
