"""
flightlog - a streaming reader for PX4 ULog flight logs.

The reader decodes a log one frame at a time with memory bounded by a
single frame:
- Header and flag-bits validation
- Self-describing format definitions with nested and array types
- Subscriptions binding message ids to formats
- Typed decoding of data records
- Forward-compatible handling of unknown frames
"""

__version__ = "0.1.0"

from flightlog.core.io import ByteSource
from flightlog.core.log import (
    CollectedLog,
    DataEvent,
    ErrorEvent,
    Event,
    LogIterator,
    UnknownEvent,
    collect,
    open_log,
)
from flightlog.errors import FlightLogError, ScopedError, StructuralError
from flightlog.utils.config import ReaderConfig

__all__ = [
    "ByteSource",
    "CollectedLog",
    "DataEvent",
    "ErrorEvent",
    "Event",
    "FlightLogError",
    "LogIterator",
    "ReaderConfig",
    "ScopedError",
    "StructuralError",
    "UnknownEvent",
    "collect",
    "open_log",
]
