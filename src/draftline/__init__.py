"""
Draftline

Signal-to-schedule pipeline: turns emails, chat messages and free-text notes
into vetted, deduplicated, timezone-correct calendar drafts and task drafts.
"""

__version__ = "0.1.0"
