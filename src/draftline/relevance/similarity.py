"""
String similarity.

Fuzzy matching is injected wherever it is used (dedup, sub-question
splitting, answer mapping), so any callable with this shape can replace the
default Dice coefficient.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Callable

# (a, b) -> similarity in [0, 1]
SimilarityFn = Callable[[str, str], float]

_WHITESPACE_RE = re.compile(r"\s+")


def _bigrams(text: str) -> Counter[str]:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def dice_coefficient(a: str, b: str) -> float:
    """
    Sørensen–Dice coefficient over character bigrams, whitespace removed.

    Identical strings score 1.0; strings shorter than two characters that
    differ score 0.0. Case-sensitive; callers lower-case when they need to.
    """
    a = _WHITESPACE_RE.sub("", a or "")
    b = _WHITESPACE_RE.sub("", b or "")
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    overlap = sum((_bigrams(a) & _bigrams(b)).values())
    return 2.0 * overlap / (len(a) + len(b) - 2)
