"""
Scheduling fit helpers.

Snap block lengths to canonical sizes and keep a minimum gap between blocks.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Literal

from draftline.models import Slot

BlockKind = Literal["focus", "outreach"]

# Canonical block lengths in minutes, smallest first
DURATION_MENUS: dict[str, tuple[int, ...]] = {
    "focus": (25, 50, 90),
    "outreach": (15, 30),
}


def snap_minutes(minutes: float, kind: BlockKind = "focus") -> int:
    """Nearest menu value; ties go to the earlier (smaller) option."""
    menu = DURATION_MENUS[kind]
    return min(menu, key=lambda option: abs(option - minutes))


def fit_duration(start: datetime, minutes: float, kind: BlockKind = "focus") -> Slot:
    """
    Build a slot at start whose length is snapped to the kind's menu.

    Args:
        start: Block start (aware)
        minutes: Requested length
        kind: "focus" (25/50/90) or "outreach" (15/30)
    """
    return Slot(start=start, end=start + timedelta(minutes=snap_minutes(minutes, kind)))


def insert_buffers(blocks: Iterable[Slot], min_gap_minutes: int = 10) -> list[Slot]:
    """
    Enforce a minimum gap between consecutive blocks.

    Blocks are sorted by start (stable) and walked once; a block that starts
    less than the gap after the previous end is moved to previous end + gap
    with its duration preserved. Blocks only ever move later.
    """
    gap = timedelta(minutes=min_gap_minutes)
    ordered = sorted(blocks, key=lambda b: b.start)
    placed: list[Slot] = []

    for block in ordered:
        if placed and block.start - placed[-1].end < gap:
            start = placed[-1].end + gap
            block = Slot(start=start, end=start + block.duration)
        placed.append(block)

    return placed
