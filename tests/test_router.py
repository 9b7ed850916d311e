"""
Tests for intent routing.
"""

import pytest

from draftline.intent import IntentLabel, IntentRouter, is_schedule_allowed


@pytest.fixture
def router() -> IntentRouter:
    return IntentRouter()


class TestIntentRouter:
    """Tests for routing decisions."""

    @pytest.mark.parametrize("text", [
        "schedule a sync with Pat tomorrow at 3pm",
        "book 30 minutes on Friday",
        "put it on my calendar",
        "block time for deep work this afternoon",
    ])
    def test_schedule_requests(self, router, text):
        assert router.route(text).intent == IntentLabel.SCHEDULE_REQUEST

    @pytest.mark.parametrize("text", [
        "help me think about my career",
        "what's a good strategy for the job search",
        "draft a roadmap for learning Rust",
    ])
    def test_plan_requests(self, router, text):
        assert router.route(text).intent == IntentLabel.PLAN_REQUEST

    def test_plan_and_schedule_is_mixed(self, router):
        routed = router.route("plan my week and schedule study blocks on Monday")
        assert routed.intent == IntentLabel.MIXED
        assert "plan" in routed.reasons
        assert "schedule verb" in routed.reasons

    def test_qa_only_cancels_schedule_cues(self, router):
        routed = router.route("just tell me what tomorrow looks like")
        assert routed.intent == IntentLabel.MIXED
        assert routed.intent != IntentLabel.SCHEDULE_REQUEST

    def test_reasons_name_the_cues(self, router):
        routed = router.route("reschedule tomorrow's call")
        assert routed.reasons[0] == "scheduling cues"
        assert "relative day" in routed.reasons


class TestConversationalDefault:
    """The flag only decides cue-free, non-empty input."""

    @pytest.mark.parametrize("flag", [True, False])
    def test_empty_is_mixed_regardless(self, flag):
        assert IntentRouter(conversational_default=flag).route("   ").intent == IntentLabel.MIXED

    @pytest.mark.parametrize("flag", [True, False])
    def test_both_cue_sets_is_mixed_regardless(self, flag):
        routed = IntentRouter(conversational_default=flag).route("plan and schedule my goals for Friday")
        assert routed.intent == IntentLabel.MIXED

    def test_cue_free_follows_flag(self):
        assert IntentRouter(conversational_default=True).route("hello there").intent == IntentLabel.MIXED
        assert IntentRouter(conversational_default=False).route("hello there").intent == IntentLabel.PLAN_REQUEST

    @pytest.mark.parametrize("flag", [True, False])
    def test_single_cue_set_ignores_flag(self, flag):
        router = IntentRouter(conversational_default=flag)
        assert router.route("schedule a call").intent == IntentLabel.SCHEDULE_REQUEST
        assert router.route("career goals").intent == IntentLabel.PLAN_REQUEST


class TestScheduleAllowed:
    """Tests for the schedule permission check."""

    def test_allowed(self):
        assert is_schedule_allowed(IntentLabel.SCHEDULE_REQUEST)
        assert is_schedule_allowed("mixed")
        assert not is_schedule_allowed(IntentLabel.PLAN_REQUEST)

    def test_unknown_label_raises(self):
        with pytest.raises(ValueError):
            is_schedule_allowed("chit_chat")
