"""
Task Drafts

Extraction of to-do items from text and normalization of their fields.
"""

from draftline.tasks.extractor import TaskDraftExtractor
from draftline.tasks.normalizer import (
    clamp_priority,
    infer_effort_minutes,
    normalize_date_like,
    normalize_task_draft,
    post_process_task_drafts,
)

__all__ = [
    "TaskDraftExtractor",
    "clamp_priority",
    "infer_effort_minutes",
    "normalize_date_like",
    "normalize_task_draft",
    "post_process_task_drafts",
]
