"""
Temporal Phrase Parsing

Finds dates, clock times, ranges and durations in free text and resolves
them to aware instants in a target timezone.
"""

from draftline.temporal.parser import (
    ParsedTime,
    TemporalPhraseParser,
    detect_ambiguity,
    get_parser,
    parse_time_phrase,
)

__all__ = [
    "ParsedTime",
    "TemporalPhraseParser",
    "detect_ambiguity",
    "get_parser",
    "parse_time_phrase",
]
