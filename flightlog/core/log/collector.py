"""
Whole-log aggregation into per-topic columns.

collect() drives a LogIterator over an entire file and gathers data
records into columns keyed by (format name, instance), together with
info, parameters, logged strings and dropouts. Unlike the iterator, the
result grows with the file.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from flightlog.core.log.events import (
    DataEvent,
    DropoutEvent,
    ErrorEvent,
    InfoEvent,
    LoggedStringEvent,
    MultiInfoEvent,
    ParameterEvent,
)
from flightlog.core.log.format import FlagBits, Header
from flightlog.core.log.iterator import LogInput, open_log
from flightlog.core.types.grammar import FormatDefinition
from flightlog.errors import ScopedError
from flightlog.utils.config import ReaderConfig
from flightlog.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Dataset:
    """
    All records of one format instance, column by column.
    
    Attributes:
        name: Format name
        multi_id: Instance index
        columns: Flattened field name -> values in record order
    """
    
    name: str
    multi_id: int
    columns: Dict[str, List[Any]] = field(default_factory=dict)
    count: int = 0
    
    def append(self, event: DataEvent) -> None:
        for name, value in event.flatten():
            self.columns.setdefault(name, []).append(value)
        self.count += 1
    
    def __len__(self) -> int:
        return self.count


@dataclass
class ParameterChange:
    """A parameter set after data logging began."""
    
    timestamp: Optional[int]
    name: str
    value: Any


@dataclass
class CollectedLog:
    """Everything collect() gathered from one log."""
    
    header: Header
    flags: FlagBits
    formats: Dict[str, FormatDefinition] = field(default_factory=dict)
    info: Dict[str, bytes] = field(default_factory=dict)
    info_multiple: Dict[str, List[List[bytes]]] = field(default_factory=dict)
    initial_parameters: Dict[str, Any] = field(default_factory=dict)
    changed_parameters: List[ParameterChange] = field(default_factory=list)
    default_parameters: Dict[int, Dict[str, Any]] = field(default_factory=lambda: defaultdict(dict))
    logged_messages: List[LoggedStringEvent] = field(default_factory=list)
    dropouts: List[DropoutEvent] = field(default_factory=list)
    datasets: Dict[Tuple[str, int], Dataset] = field(default_factory=dict)
    errors: List[ScopedError] = field(default_factory=list)
    last_timestamp: Optional[int] = None
    
    def get_dataset(self, name: str, multi_id: int = 0) -> Dataset:
        """
        Look up the records of one format instance.
        
        Raises:
            KeyError: If the log has no records for it
        """
        return self.datasets[(name, multi_id)]


def collect(log: LogInput, config: Optional[ReaderConfig] = None) -> CollectedLog:
    """
    Read an entire log into memory.
    
    Scoped errors are recorded in CollectedLog.errors and reading goes on.
    
    Args:
        log: A ByteSource, binary stream, bytes, or file path
        config: Reader options; raise_scoped_errors is honoured
    
    Raises:
        StructuralError: If the log is unreadable
    """
    with open_log(log, config=config) as reader:
        result = CollectedLog(header=reader.header, flags=reader.flags)
        seen_data = False
        
        for event in reader:
            if isinstance(event, DataEvent):
                seen_data = True
                if event.timestamp is not None:
                    result.last_timestamp = event.timestamp
                key = (event.format_name, event.multi_id)
                dataset = result.datasets.get(key)
                if dataset is None:
                    dataset = result.datasets[key] = Dataset(event.format_name, event.multi_id)
                dataset.append(event)
            elif isinstance(event, ParameterEvent):
                _collect_parameter(result, event, seen_data)
            elif isinstance(event, MultiInfoEvent):
                values = result.info_multiple.setdefault(event.key, [])
                if event.is_continued and values:
                    values[-1].append(event.value)
                else:
                    values.append([event.value])
            elif isinstance(event, InfoEvent):
                result.info[event.key] = event.value
            elif isinstance(event, LoggedStringEvent):
                result.logged_messages.append(event)
            elif isinstance(event, DropoutEvent):
                result.dropouts.append(event)
            elif isinstance(event, ErrorEvent):
                result.errors.append(event.error)
        
        result.formats = dict(reader.formats)
    
    logger.info(
        "Collected flight log",
        datasets=len(result.datasets),
        records=sum(len(d) for d in result.datasets.values()),
        errors=len(result.errors),
    )
    return result


def _collect_parameter(result: CollectedLog, event: ParameterEvent, seen_data: bool) -> None:
    if event.is_default:
        for bit in (ParameterEvent.SYSTEM_DEFAULT, ParameterEvent.CURRENT_SETUP_DEFAULT):
            if event.default_types & bit:
                result.default_parameters[bit][event.name] = event.value
    elif seen_data:
        result.changed_parameters.append(
            ParameterChange(timestamp=result.last_timestamp, name=event.name, value=event.value)
        )
    else:
        result.initial_parameters[event.name] = event.value
