"""
Flight log reading.

This package provides the sequential log reader with:
- Length-prefixed frame parsing with one frame of lookahead
- Header and flag-bits validation
- One typed event per frame
- Whole-log aggregation into columns
"""

from flightlog.core.log.collector import CollectedLog, Dataset, ParameterChange, collect
from flightlog.core.log.events import (
    DataEvent,
    DropoutEvent,
    ErrorEvent,
    Event,
    FormatEvent,
    InfoEvent,
    LoggedStringEvent,
    MultiInfoEvent,
    ParameterEvent,
    SubscribeEvent,
    SyncEvent,
    UnknownEvent,
    UnsubscribeEvent,
)
from flightlog.core.log.format import FlagBits, Frame, Header, MessageType, PrimitiveKind
from flightlog.core.log.frames import FrameReader
from flightlog.core.log.iterator import LogIterator, ReaderState, open_log

__all__ = [
    "CollectedLog",
    "DataEvent",
    "Dataset",
    "DropoutEvent",
    "ErrorEvent",
    "Event",
    "FlagBits",
    "FormatEvent",
    "Frame",
    "FrameReader",
    "Header",
    "InfoEvent",
    "LogIterator",
    "LoggedStringEvent",
    "MessageType",
    "MultiInfoEvent",
    "ParameterChange",
    "ParameterEvent",
    "PrimitiveKind",
    "ReaderState",
    "SubscribeEvent",
    "SyncEvent",
    "UnknownEvent",
    "UnsubscribeEvent",
    "collect",
    "open_log",
]
