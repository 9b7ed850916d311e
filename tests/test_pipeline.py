"""
Tests for the draft generation pipeline.
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from draftline.models import Signal, SignalHeaders, Source
from draftline.pipeline import DraftGenerationPipeline, PipelineConfig, generate_drafts
from draftline.pipeline.dedupe import MERGED_REASON, PERSON_REASON
from draftline.pipeline.projections import SPILLED_REASON
from draftline.temporal import TemporalPhraseParser

NY = "America/New_York"


def signals(*titles: str, source: Source = Source.EMAIL) -> list[Signal]:
    return [Signal(source=source, title=title) for title in titles]


@pytest.fixture
def pipeline() -> DraftGenerationPipeline:
    return DraftGenerationPipeline()


class TestScenarios:
    """End-to-end behavior on representative inboxes."""

    def test_marketing_and_vague_produce_nothing(self, pipeline, now):
        result = pipeline.generate(
            signals("Save 70% this week only", "McAfee renewal 50% off", "User studies sign up"),
            NY,
            now,
        )
        assert result.events == []
        assert [s.reason for s in result.suggestions] == ["marketing", "marketing", "vague"]
        assert result.weekly_rollup is None

    def test_cross_zone_duplicates_merge(self, pipeline, now):
        result = pipeline.generate(
            signals("Join Dr. X Zoom, Thu 10 AM PT", "Join Dr. X Zoom, Thu 10:30 AM PT"),
            NY,
            now,
        )
        assert len(result.events) == 1
        event = result.events[0]
        assert event.start.astimezone(ZoneInfo(NY)).hour == 13
        assert event.start_iso == "2025-09-11T13:00:00-04:00"
        assert event.timezone == NY
        assert MERGED_REASON in event.reasons

    def test_shared_person_merges(self, pipeline, now):
        result = pipeline.generate(
            signals("Zoom with Gary 10:00 ET", "Zoom with Dr. Gary 10:30 ET"),
            NY,
            now,
        )
        assert len(result.events) == 1
        reasons = result.events[0].reasons
        assert reasons[0] == "from email"
        assert {MERGED_REASON, PERSON_REASON, "within 7 days"} <= set(reasons)

    def test_past_item_dropped(self, pipeline, now):
        result = pipeline.generate(signals("Sep 3 event at 3pm ET", source=Source.MANUAL), NY, now)
        assert result.events == []
        assert result.suggestions[0].reason == "past"


class TestInvariants:
    """Properties that hold for every run."""

    def test_idempotent(self, pipeline, now):
        batch = signals(
            "Coffee with Ana tomorrow at 10am",
            "Dentist Friday 2pm",
            "Board prep tomorrow 10:15am",
            source=Source.MANUAL,
        )
        assert pipeline.generate(batch, NY, now).to_dict() == pipeline.generate(batch, NY, now).to_dict()

    def test_minimum_gap_and_order(self, pipeline, now):
        result = pipeline.generate(
            signals(
                "Gym tomorrow 10:20am",
                "Call prep tomorrow 10am",
                "Dentist tomorrow 10:15am",
                source=Source.MANUAL,
            ),
            NY,
            now,
        )
        events = result.events
        assert [e.title for e in events] == ["Call prep tomorrow 10am", "Dentist tomorrow 10:15am", "Gym tomorrow 10:20am"]
        for prev, nxt in zip(events, events[1:]):
            assert nxt.start - prev.end >= timedelta(minutes=10)
        assert all(e.duration_minutes == 30 for e in events)

    def test_spacing_never_leaves_duplicates_in_merge_window(self, pipeline, now):
        result = pipeline.generate(
            signals(
                "Board prep tomorrow 9:45 am",
                "Sync with Bob tomorrow 10 am",
                "Sync with Bob tomorrow 10:50 am",
                source=Source.MANUAL,
            ),
            NY,
            now,
        )
        prep, sync = result.events
        assert prep.start_iso == "2025-09-10T09:45:00-04:00"
        assert sync.title == "Sync with Bob tomorrow 10 am"
        assert sync.start_iso == "2025-09-10T10:25:00-04:00"
        assert MERGED_REASON in sync.reasons
        assert PERSON_REASON in sync.reasons

    def test_gap_is_configurable(self, now):
        pipeline = DraftGenerationPipeline(PipelineConfig(min_gap_minutes=0))
        result = pipeline.generate(
            signals("Call prep tomorrow 10am", "Dentist tomorrow 10:30am", source=Source.MANUAL),
            NY,
            now,
        )
        assert result.events[1].start == result.events[0].end

    def test_spilled_past_midnight(self, pipeline, now):
        result = pipeline.generate(
            signals("Late review tomorrow 11:30pm", "Deploy check tomorrow 11:45pm", source=Source.MANUAL),
            NY,
            now,
        )
        late, deploy = result.events
        assert deploy.start_iso == "2025-09-11T00:10:00-04:00"
        assert SPILLED_REASON in deploy.reasons
        assert SPILLED_REASON not in late.reasons
        assert result.unscheduled_task_ids == [deploy.id]
        assert [d.date_key for d in result.daily_plan] == ["2025-09-10", "2025-09-11"]

    def test_nothing_in_the_past(self, pipeline, now):
        result = pipeline.generate(
            signals("standup 8:30am", "retro Sep 8 at 4pm", "review Sep 12 at 4pm", source=Source.MANUAL),
            NY,
            now,
        )
        assert all(e.start >= now for e in result.events)
        assert [s.reason for s in result.suggestions] == ["past"]

    def test_output_zone(self, pipeline, now):
        result = pipeline.generate(signals("Join Dr. X Zoom, Thu 10 AM PT"), "Europe/London", now)
        assert result.timezone == "Europe/London"
        assert result.events[0].start_iso == "2025-09-11T18:00:00+01:00"
        assert result.events[0].timezone == "Europe/London"


class TestGating:
    """Signals that become suggestions instead of events."""

    def test_low_focus_email(self, pipeline, now):
        batch = [Signal(
            source=Source.EMAIL,
            title="Quarterly numbers tomorrow at 3pm",
            headers=SignalHeaders(list_id="<numbers.example.com>", precedence="bulk"),
        )]
        result = pipeline.generate(batch, NY, now)
        assert result.events == []
        assert result.suggestions[0].reason == "low focus"

    def test_low_focus_slack(self, pipeline, now):
        result = pipeline.generate(signals("lol tomorrow at 3pm", source=Source.SLACK), NY, now)
        assert result.suggestions[0].reason == "low focus"

    def test_manual_skips_focus(self, pipeline, now):
        result = pipeline.generate(signals("lol tomorrow at 3pm", source=Source.MANUAL), NY, now)
        assert len(result.events) == 1

    def test_needs_time(self, pipeline, now):
        result = pipeline.generate(signals("Think about hobbies", source=Source.MANUAL), NY, now)
        assert result.suggestions[0].reason == "needs time"

    def test_ignore_keywords(self, now):
        pipeline = DraftGenerationPipeline(PipelineConfig(ignore_keywords=["fantasy"]))
        result = pipeline.generate(signals("Fantasy draft tomorrow at 8pm", source=Source.MANUAL), NY, now)
        assert result.suggestions[0].reason == "ignored keyword"

    def test_suggestion_keeps_provenance(self, pipeline, now):
        batch = [Signal(source=Source.EMAIL, title="50% off", source_ref="msg-9")]
        suggestion = pipeline.generate(batch, NY, now).suggestions[0]
        assert suggestion.to_dict() == {"title": "50% off", "reason": "marketing", "source": "email", "sourceRef": "msg-9"}


class TestReasons:
    """Reasons attached to surviving events."""

    def test_meeting_link_and_ambiguity(self, pipeline, now):
        batch = [Signal(source=Source.MANUAL, title="Catch up at 3pm", body="https://zoom.us/j/123")]
        reasons = pipeline.generate(batch, NY, now).events[0].reasons
        assert reasons[:2] == ["from manual", "has meeting link"]
        assert "ambiguous time" in reasons

    def test_no_explicit_time(self, pipeline, now):
        reasons = pipeline.generate(signals("Pay rent tomorrow", source=Source.MANUAL), NY, now).events[0].reasons
        assert "no explicit time" in reasons

    def test_far_future_not_within_week(self, pipeline, now):
        reasons = pipeline.generate(signals("Conference Oct 20 at 9am", source=Source.MANUAL), NY, now).events[0].reasons
        assert "within 7 days" not in reasons

    def test_importance_badge(self, pipeline, now):
        batch = [Signal(
            source=Source.EMAIL,
            title="Interview with Pat tomorrow at 2pm",
            headers=SignalHeaders(from_address="pat@bcg.com"),
            received_at=now - timedelta(days=5),
            source_ref="msg-1",
        )]
        event = pipeline.generate(batch, NY, now).events[0]
        assert "importance:Medium" in event.reasons
        assert event.source_ref == "msg-1"


class TestFailureIsolation:
    """A failing signal never stops the batch."""

    def test_malformed_mapping_skipped(self, pipeline, now):
        result = pipeline.generate(
            [
                {"source": "fax", "title": "Call tomorrow at 3pm"},
                {"source": "manual", "title": "Call tomorrow at 3pm"},
            ],
            NY,
            now,
        )
        assert len(result.events) == 1
        assert result.suggestions == []

    def test_parser_error_skipped(self, now):
        class ExplodingParser(TemporalPhraseParser):
            def parse(self, text, now=None, target_tz="UTC"):
                if "boom" in text:
                    raise RuntimeError("parser bug")
                return super().parse(text, now, target_tz)

        pipeline = DraftGenerationPipeline(parser=ExplodingParser())
        result = pipeline.generate(
            signals("boom tomorrow at 3pm", "Lunch tomorrow at noon", source=Source.MANUAL),
            NY,
            now,
        )
        assert [e.title for e in result.events] == ["Lunch tomorrow at noon"]

    def test_invalid_user_tz_falls_back_to_utc(self, pipeline, now):
        result = pipeline.generate(signals("Lunch tomorrow at noon", source=Source.MANUAL), "Not/AZone", now)
        assert result.timezone == "UTC"
        assert result.events[0].timezone == "UTC"


class TestResult:
    """Tests for the result shape."""

    def test_to_dict(self, pipeline, now):
        data = pipeline.generate(signals("Lunch tomorrow at noon", "Sale today", source=Source.MANUAL), NY, now).to_dict()
        assert set(data) == {"events", "dailyPlan", "weeklyRollup", "unscheduledTaskIds", "suggestions", "timezone"}
        assert data["events"][0]["startISO"] == "2025-09-10T12:00:00-04:00"
        assert data["dailyPlan"][0]["dateKey"] == "2025-09-10"
        assert data["weeklyRollup"]["totalMinutes"] == 30
        assert data["suggestions"] == [{"title": "Sale today", "reason": "marketing", "source": "manual"}]

    def test_naive_now_read_in_user_zone(self, pipeline):
        naive = datetime(2025, 9, 9, 9, 0)
        result = pipeline.generate(signals("Lunch tomorrow at noon", source=Source.MANUAL), NY, naive)
        assert result.events[0].start_iso == "2025-09-10T12:00:00-04:00"

    def test_convenience_function(self, now):
        result = generate_drafts(signals("Join Dr. X Zoom, Thu 10 AM PT"), NY, now)
        assert len(result.events) == 1
