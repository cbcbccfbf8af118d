"""Core event processing: pipeline, visual state, recording and timing."""

from .pipeline import EventPipeline
from .recorder import Recorder
from .scheduler import ScheduledCall, Scheduler, ThreadingScheduler, TimerHandle, VirtualScheduler
from .visual_state import VisualElementState, VisualStateEngine

__all__ = [
    "EventPipeline",
    "Recorder",
    "ScheduledCall",
    "Scheduler",
    "ThreadingScheduler",
    "TimerHandle",
    "VirtualScheduler",
    "VisualElementState",
    "VisualStateEngine",
]
