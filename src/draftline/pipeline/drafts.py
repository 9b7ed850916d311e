"""
Draft Generation Pipeline

Turns a batch of signals into vetted, deduplicated, timezone-correct draft
events. Stages run strictly in order:

1. Gate      - spam lexicon, then the focus classifier for email and chat
2. Extract   - temporal phrase parsing on title + body
3. Filter    - drop anything starting before now
4. Dedupe    - merge near-duplicates inside the merge window
5. Space     - push blocks later until they keep the minimum gap
6. Emit      - events plus their daily/weekly/unscheduled projections

A signal that fails any stage becomes a suggestion; a signal that raises is
logged and skipped. Neither stops the batch.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from structlog.contextvars import bound_contextvars

from draftline.config import DEFAULT_ALLOW_DOMAINS, DEFAULT_SPAM_BRANDS
from draftline.gating.focus import FocusClassifier
from draftline.gating.importance import ImportanceScorer, importance_badge
from draftline.gating.spam import SpamLexicon
from draftline.models import DraftEvent, Signal, Slot, Source, Suggestion, event_id
from draftline.pipeline.dedupe import Candidate, dedupe_candidates
from draftline.pipeline.projections import (
    SPILLED_REASON,
    DailyPlan,
    WeeklyRollup,
    build_daily_plan,
    build_weekly_rollup,
    unscheduled_ids,
)
from draftline.relevance.similarity import SimilarityFn, dice_coefficient
from draftline.scheduling.fit import insert_buffers
from draftline.temporal.parser import ParsedTime, TemporalPhraseParser

if TYPE_CHECKING:
    from draftline.config import DraftlineConfig

logger = structlog.get_logger(__name__)


# Sources that pass through the focus classifier; manual notes are user-authored
FOCUS_GATED_SOURCES = (Source.EMAIL, Source.SLACK)

RECENT_WINDOW = timedelta(days=7)


@dataclass
class PipelineConfig:
    """Tunable thresholds for the draft pipeline."""

    user_tz: str = "America/New_York"
    min_gap_minutes: int = 10
    merge_window_minutes: int = 45
    default_duration_minutes: int = 30
    subject_similarity: float = 0.8
    focus_threshold: float = 0.6
    allow_domains: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOW_DOMAINS))
    spam_brands: list[str] = field(default_factory=lambda: list(DEFAULT_SPAM_BRANDS))
    ignore_keywords: list[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: DraftlineConfig) -> "PipelineConfig":
        """Build from the ``pipeline`` section of the application config."""
        return cls(**config.pipeline.model_dump())


@dataclass
class PipelineResult:
    """Everything one pipeline run produces."""

    events: list[DraftEvent]
    daily_plan: list[DailyPlan]
    weekly_rollup: Optional[WeeklyRollup]
    unscheduled_task_ids: list[str]
    suggestions: list[Suggestion]
    timezone: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "dailyPlan": [d.to_dict() for d in self.daily_plan],
            "weeklyRollup": self.weekly_rollup.to_dict() if self.weekly_rollup else None,
            "unscheduledTaskIds": list(self.unscheduled_task_ids),
            "suggestions": [s.to_dict() for s in self.suggestions],
            "timezone": self.timezone,
        }


class DraftGenerationPipeline:
    """
    Composes the gates, the parser, the deduper and the fitter.

    Stateless between calls: generate() is a pure function of its inputs
    and ``now``.
    """

    MEETING_LINK_PATTERN = r"zoom\.us|meet\.google\.com|teams\.microsoft\.com"
    HONORIFIC_PATTERN = r"\b(dr|prof)\b|\b(ceo|cto|founder)\b"

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        focus: Optional[FocusClassifier] = None,
        spam: Optional[SpamLexicon] = None,
        parser: Optional[TemporalPhraseParser] = None,
        importance: Optional[ImportanceScorer] = None,
        similarity: SimilarityFn = dice_coefficient,
    ):
        self.config = config or PipelineConfig()
        self.focus = focus or FocusClassifier(
            allow_domains=self.config.allow_domains,
            threshold=self.config.focus_threshold,
        )
        self.spam = spam or SpamLexicon(
            brands=self.config.spam_brands,
            ignore_keywords=self.config.ignore_keywords,
        )
        self.parser = parser or TemporalPhraseParser(
            default_duration_minutes=self.config.default_duration_minutes,
        )
        self.importance = importance or ImportanceScorer()
        self.similarity = similarity

        self._meeting_link_re = re.compile(self.MEETING_LINK_PATTERN, re.IGNORECASE)
        self._honorific_re = re.compile(self.HONORIFIC_PATTERN, re.IGNORECASE)

    def generate(
        self,
        signals: Iterable[Union[Signal, Mapping[str, Any]]],
        user_tz: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PipelineResult:
        """
        Run the pipeline over a batch.

        Args:
            signals: Signals, or mappings in the camelCase Signal shape
            user_tz: IANA zone for the output (defaults to config)
            now: Reference instant (defaults to the current time)

        Returns:
            PipelineResult with events sorted by start, ties by input order
        """
        tz = self._resolve_zone(user_tz or self.config.user_tz)
        zone = ZoneInfo(tz)
        if now is None:
            now = datetime.now(zone)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=zone)

        suggestions: list[Suggestion] = []
        candidates: list[Candidate] = []
        skipped = 0

        for index, raw in enumerate(signals):
            try:
                with bound_contextvars(signal_index=index):
                    signal = Signal.from_dict(raw) if isinstance(raw, Mapping) else raw
                    outcome = self._process(index, signal, tz, now)
            except Exception as e:
                skipped += 1
                logger.warning("signal_skipped", index=index, error=str(e), exc_info=True)
                continue

            if isinstance(outcome, Suggestion):
                suggestions.append(outcome)
            else:
                candidates.append(outcome)

        spaced = self._dedupe_and_space(candidates, zone)
        events = [self._to_event(c, zone, tz) for c in spaced]

        logger.info(
            "drafts_generated",
            signals=len(candidates) + len(suggestions) + skipped,
            candidates=len(candidates),
            events=len(events),
            suggestions=len(suggestions),
            skipped=skipped,
        )

        return PipelineResult(
            events=events,
            daily_plan=build_daily_plan(events, tz),
            weekly_rollup=build_weekly_rollup(events, tz),
            unscheduled_task_ids=unscheduled_ids(events),
            suggestions=suggestions,
            timezone=tz,
        )

    def _resolve_zone(self, tz: str) -> str:
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("invalid_user_tz", user_tz=tz, fallback="UTC")
            return "UTC"
        return tz

    def _process(
        self, index: int, signal: Signal, tz: str, now: datetime
    ) -> Union[Candidate, Suggestion]:
        """Gate, extract and filter one signal."""
        text = signal.text

        # Stage 1: gate
        reason = self.spam.check(text)
        if reason is None and signal.source in FOCUS_GATED_SOURCES:
            focus = self.focus.evaluate(signal)
            if not focus.force_allow and focus.score < self.focus.threshold:
                reason = "low focus"
        if reason is not None:
            return self._suggest(signal, reason)

        # Stage 2: extract
        parsed = self.parser.parse(text, now, tz)
        if parsed is None:
            return self._suggest(signal, "needs time")

        # Stage 3: temporal filter
        if parsed.start < now:
            return self._suggest(signal, "past")

        return Candidate(
            index=index,
            title=signal.title.strip() or "Untitled",
            start=parsed.start,
            end=parsed.end,
            source=signal.source,
            reasons=self._reasons(signal, parsed, now),
            source_ref=signal.source_ref,
        )

    def _suggest(self, signal: Signal, reason: str) -> Suggestion:
        logger.debug("signal_dropped", title=signal.title[:50], reason=reason)
        return Suggestion(
            title=signal.title,
            reason=reason,
            source=signal.source,
            source_ref=signal.source_ref,
        )

    def _reasons(self, signal: Signal, parsed: ParsedTime, now: datetime) -> list[str]:
        text = signal.text
        reasons = [f"from {signal.source.value}"]

        if self._meeting_link_re.search(text):
            reasons.append("has meeting link")
        if self._honorific_re.search(signal.title):
            reasons.append("named person")
        if parsed.start < now + RECENT_WINDOW:
            reasons.append("within 7 days")
        if self.parser.detect_ambiguity(text):
            reasons.append("ambiguous time")
        if not parsed.has_explicit_time:
            reasons.append("no explicit time")

        if signal.received_at is not None:
            score = self.importance.score(
                signal.received_at,
                now,
                is_known_contact=self.focus.is_allowed_domain(signal.headers.sender_domain),
                category=self._category(signal),
                has_keywords=self.focus.has_action_vocabulary(text),
            )
            reasons.append(f"importance:{importance_badge(score)}")

        return reasons

    @staticmethod
    def _category(signal: Signal) -> str:
        if signal.headers.list_id or signal.headers.list_unsubscribe:
            return "promotions"
        thread = signal.thread_metadata
        if thread is not None and 0 < thread.participants <= FocusClassifier.SMALL_THREAD_MAX:
            return "people"
        return "other"

    def _dedupe(self, candidates: list[Candidate]) -> list[Candidate]:
        return dedupe_candidates(
            candidates,
            similarity=self.similarity,
            window_minutes=self.config.merge_window_minutes,
            threshold=self.config.subject_similarity,
        )

    def _dedupe_and_space(self, candidates: list[Candidate], zone: ZoneInfo) -> list[Candidate]:
        """
        Stages 4 and 5, repeated until stable.

        Spacing only moves blocks later, so it can push a block into the
        merge window of a later duplicate. Each round that folds at least
        one pair shrinks the list, which bounds the loop.
        """
        spaced = self._space(self._dedupe(candidates), zone)
        while True:
            merged = self._dedupe(spaced)
            if len(merged) == len(spaced):
                return spaced
            logger.debug("duplicates_after_spacing", folded=len(spaced) - len(merged))
            spaced = self._space(merged, zone)

    def _space(self, candidates: list[Candidate], zone: ZoneInfo) -> list[Candidate]:
        """Stage 5: enforce the minimum gap, marking blocks pushed past midnight."""
        # Candidates arrive sorted by (start, index); the stable sort in
        # insert_buffers keeps them aligned with the returned slots.
        slots = insert_buffers(
            [Slot(start=c.start, end=c.end) for c in candidates],
            self.config.min_gap_minutes,
        )
        for cand, slot in zip(candidates, slots):
            if slot.start == cand.start:
                continue
            if slot.start.astimezone(zone).date() > cand.start.astimezone(zone).date():
                cand.add_reason(SPILLED_REASON)
            cand.start, cand.end = slot.start, slot.end
        return candidates

    def _to_event(self, cand: Candidate, zone: ZoneInfo, tz: str) -> DraftEvent:
        start = cand.start.astimezone(zone)
        return DraftEvent(
            id=event_id(cand.title, start.isoformat()),
            title=cand.title,
            start=start,
            end=cand.end.astimezone(zone),
            timezone=tz,
            source=cand.source,
            reasons=list(cand.reasons),
            source_ref=cand.source_ref,
            meta=cand.meta,
        )


# Module-level instance for convenience
_pipeline: Optional[DraftGenerationPipeline] = None


def get_pipeline() -> DraftGenerationPipeline:
    """Get or create the default pipeline singleton."""
    global _pipeline
    if _pipeline is None:
        _pipeline = DraftGenerationPipeline()
    return _pipeline


def generate_drafts(
    signals: Iterable[Union[Signal, Mapping[str, Any]]],
    user_tz: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PipelineResult:
    """Convenience function to run the default pipeline."""
    return get_pipeline().generate(signals, user_tz=user_tz, now=now)
