"""
Scheduling

Duration fitting, buffer insertion and cadence slotting for structured
intents.
"""

from draftline.scheduling.fit import fit_duration, insert_buffers, snap_minutes
from draftline.scheduling.slotter import IntentSlotter

__all__ = ["IntentSlotter", "fit_duration", "insert_buffers", "snap_minutes"]
