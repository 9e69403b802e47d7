"""Framework agnostic ``Server-Timing`` header builder."""

from .schemas.timing_label import LabelSpec, TimingLabel
from .timing import HEADER_KEY, ServerTiming, TimingEntry
from .utils.errors import NestingError, NotStartedError, ServerTimingError, ValidationError

__all__ = [
    "HEADER_KEY",
    "LabelSpec",
    "NestingError",
    "NotStartedError",
    "ServerTiming",
    "ServerTimingError",
    "TimingEntry",
    "TimingLabel",
    "ValidationError",
]
