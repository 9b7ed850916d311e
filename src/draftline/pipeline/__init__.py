"""
Draft Pipeline

Signals in, deduplicated and spaced draft events out, with daily and weekly
projections.
"""

from draftline.pipeline.dedupe import Candidate, dedupe_candidates, normalize_subject, person_tokens
from draftline.pipeline.drafts import (
    DraftGenerationPipeline,
    PipelineConfig,
    PipelineResult,
    generate_drafts,
    get_pipeline,
)
from draftline.pipeline.projections import (
    DailyPlan,
    WeeklyRollup,
    build_daily_plan,
    build_weekly_rollup,
    unscheduled_ids,
)

__all__ = [
    # Orchestration
    "DraftGenerationPipeline",
    "PipelineConfig",
    "PipelineResult",
    "generate_drafts",
    "get_pipeline",
    # Dedupe
    "Candidate",
    "dedupe_candidates",
    "normalize_subject",
    "person_tokens",
    # Projections
    "DailyPlan",
    "WeeklyRollup",
    "build_daily_plan",
    "build_weekly_rollup",
    "unscheduled_ids",
]
