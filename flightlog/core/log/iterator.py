"""
Pull-based log reader.

A LogIterator owns its byte source, frame reader, type registry and
subscription table. Each call to next_event() reads exactly one frame
and turns it into one event, moving through the states:

    START -> HEADER -> FLAG_BITS -> BODY -> EOF

A structural error moves the reader to FAILED, after which it only
returns None. Scoped errors leave it in BODY.
"""

import io
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Mapping, Optional, Union

from flightlog.core.io.source import ByteSource
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
from flightlog.core.log.format import FlagBits, Frame, Header, MessageType
from flightlog.core.log.frames import FrameReader
from flightlog.core.log.header import read_flag_bits, read_header
from flightlog.core.types.decoder import DecodedFields, RecordDecoder, ScalarValue
from flightlog.core.types.grammar import FormatDefinition, parse_format
from flightlog.core.types.registry import ResolvedLayout, TypeRegistry
from flightlog.core.types.subscriptions import Subscription, SubscriptionTable
from flightlog.errors import (
    IncompatibleFlagsError,
    MalformedFrameError,
    ScopedError,
    StructuralError,
)
from flightlog.utils.config import ReaderConfig
from flightlog.utils.logging import get_logger

logger = get_logger(__name__)

DATA_MSG_ID_SIZE = 2

LogInput = Union[ByteSource, BinaryIO, bytes, str, Path]


class ReaderState(str, Enum):
    """Position of a LogIterator in the file."""
    START = "start"
    HEADER = "header"
    FLAG_BITS = "flag_bits"
    BODY = "body"
    EOF = "eof"
    FAILED = "failed"


class LogIterator:
    """
    Reads a log one event at a time.
    
    Iterating with ``for`` yields events and turns scoped errors into
    ErrorEvent (or raises them, with ``raise_scoped_errors``). Structural
    errors are raised once and end iteration.
    
    The reader is not restartable; open the source again to re-read.
    """
    
    def __init__(self, source: ByteSource, config: Optional[ReaderConfig] = None):
        """
        Initialize a reader. Nothing is read until start() or next_event().
        
        Args:
            source: Byte source positioned at the start of the file
            config: Reader options
        """
        self.config = config or ReaderConfig()
        self.state = ReaderState.START
        self.header: Optional[Header] = None
        self.flags = FlagBits()
        self.error: Optional[StructuralError] = None
        
        self._source = source
        self._frames = FrameReader(source)
        self._registry = TypeRegistry(max_depth=self.config.max_type_depth)
        self._subscriptions = SubscriptionTable(self._registry)
        self._decoder = RecordDecoder(
            accept_omitted_trailing_padding=self.config.accept_omitted_trailing_padding,
        )
        self._handlers: Dict[MessageType, Callable[[Frame], Event]] = {
            MessageType.FORMAT: self._on_format,
            MessageType.INFO: lambda f: InfoEvent.deserialize(f.payload),
            MessageType.INFO_MULTIPLE: lambda f: MultiInfoEvent.deserialize(f.payload),
            MessageType.PARAMETER: lambda f: ParameterEvent.deserialize(f.payload),
            MessageType.PARAMETER_DEFAULT: lambda f: ParameterEvent.deserialize(
                f.payload, is_default=True
            ),
            MessageType.ADD_LOGGED_MSG: self._on_subscribe,
            MessageType.REMOVE_LOGGED_MSG: self._on_unsubscribe,
            MessageType.DATA: self._on_data,
            MessageType.LOGGING: lambda f: LoggedStringEvent.deserialize(f.payload),
            MessageType.LOGGING_TAGGED: lambda f: LoggedStringEvent.deserialize_tagged(f.payload),
            MessageType.SYNC: lambda f: SyncEvent.deserialize(f.payload),
            MessageType.DROPOUT: lambda f: DropoutEvent.deserialize(f.payload),
            MessageType.FLAG_BITS: self._on_misplaced_flag_bits,
        }
    
    @property
    def formats(self) -> Mapping[str, FormatDefinition]:
        """Read-only view of the registered format definitions."""
        return self._registry.formats
    
    @property
    def subscriptions(self) -> Mapping[int, Subscription]:
        """Read-only view of the active subscriptions."""
        return self._subscriptions.subscriptions
    
    @property
    def layouts(self) -> Mapping[str, ResolvedLayout]:
        """Read-only view of the layouts resolved so far."""
        return self._registry.resolved
    
    @property
    def finished(self) -> bool:
        return self.state in (ReaderState.EOF, ReaderState.FAILED)
    
    def start(self) -> None:
        """
        Read the header and the optional flag-bits frame.
        
        Raises:
            StructuralError: If the prologue is invalid
        """
        if self.state is not ReaderState.START:
            return
        
        try:
            self.state = ReaderState.HEADER
            self.header = read_header(self._source, strict_version=self.config.strict_version)
            
            self.state = ReaderState.FLAG_BITS
            self.flags = read_flag_bits(self._frames)
        except StructuralError as e:
            self._fail(e)
            raise
        
        self.state = ReaderState.BODY
        logger.info(
            "Opened flight log",
            source=self._source.name,
            version=self.header.version,
            start_timestamp=self.header.timestamp,
            data_appended=self.flags.has_data_appended,
        )
    
    def next_event(self) -> Optional[Event]:
        """
        Read one frame and return its event.
        
        Returns:
            The next Event, or None once the stream has ended or failed
        
        Raises:
            ScopedError: The current frame could not be handled; the
                reader is still usable
            StructuralError: The stream is corrupt; later calls return None
        """
        if self.finished:
            return None
        if self.state is ReaderState.START:
            self.start()
        
        try:
            frame = self._frames.next_frame()
        except StructuralError as e:
            self._fail(e)
            raise
        
        if frame is None:
            self.state = ReaderState.EOF
            logger.debug("Reached end of log", source=self._source.name)
            return None
        
        handler = self._handlers.get(frame.message_type)
        if handler is None:
            return UnknownEvent(tag=frame.tag, payload=frame.payload)
        
        try:
            return handler(frame)
        except StructuralError as e:
            self._fail(e)
            raise
        except ScopedError as e:
            e.tag = frame.tag
            logger.warning(
                "Skipping frame",
                tag=frame.tag,
                position=frame.position,
                error=str(e),
            )
            raise
    
    def _fail(self, error: StructuralError) -> None:
        self.state = ReaderState.FAILED
        self.error = error
        logger.error("Log stream is unreadable", source=self._source.name, error=str(error))
    
    def _on_format(self, frame: Frame) -> FormatEvent:
        definition = parse_format(frame.payload)
        self._registry.register(definition)
        return FormatEvent(definition=definition)
    
    def _on_subscribe(self, frame: Frame) -> SubscribeEvent:
        multi_id, msg_id, format_name = SubscribeEvent.parse(frame.payload)
        subscription = self._subscriptions.subscribe(msg_id, format_name, multi_id)
        return SubscribeEvent(subscription=subscription)
    
    def _on_unsubscribe(self, frame: Frame) -> UnsubscribeEvent:
        msg_id = UnsubscribeEvent.parse(frame.payload)
        removed = self._subscriptions.unsubscribe(msg_id)
        return UnsubscribeEvent(msg_id=msg_id, subscription=removed)
    
    def _on_data(self, frame: Frame) -> DataEvent:
        if len(frame.payload) < DATA_MSG_ID_SIZE:
            raise MalformedFrameError(frame.tag, "data frame too short for message id")
        if self.flags.has_unknown_incompat_flags:
            raise IncompatibleFlagsError(self.flags.incompat_flags)
        
        msg_id = int.from_bytes(frame.payload[:DATA_MSG_ID_SIZE], byteorder="little")
        subscription = self._subscriptions.lookup(msg_id)
        layout = self._registry.resolve(subscription.format_name)
        fields = self._decoder.decode(layout, frame.payload[DATA_MSG_ID_SIZE:])
        
        return DataEvent(
            format_name=subscription.format_name,
            msg_id=msg_id,
            multi_id=subscription.multi_id,
            fields=fields,
            timestamp=_find_timestamp(fields),
        )
    
    def _on_misplaced_flag_bits(self, frame: Frame) -> Event:
        raise MalformedFrameError(frame.tag, "flag bits must directly follow the header")
    
    def close(self) -> None:
        """Release the byte source."""
        self._source.close()
    
    def __iter__(self) -> "LogIterator":
        return self
    
    def __next__(self) -> Event:
        try:
            event = self.next_event()
        except ScopedError as e:
            if self.config.raise_scoped_errors:
                raise
            return ErrorEvent(error=e, tag=e.tag or "")
        
        if event is None:
            raise StopIteration
        return event
    
    def __enter__(self) -> "LogIterator":
        """Context manager entry."""
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


def _find_timestamp(fields: DecodedFields) -> Optional[int]:
    for name, value in fields:
        if name == "timestamp":
            if isinstance(value, ScalarValue) and value.kind.is_unsigned:
                return value.value
            return None
    return None


def _as_source(log: LogInput) -> ByteSource:
    if isinstance(log, ByteSource):
        return log
    if isinstance(log, (bytes, bytearray)):
        return ByteSource.from_bytes(bytes(log))
    if isinstance(log, (str, Path)):
        return ByteSource.from_path(log)
    if isinstance(log, io.IOBase) or hasattr(log, "read"):
        return ByteSource(log, name=getattr(log, "name", "<stream>"))
    raise TypeError(f"Cannot read a log from {type(log).__name__}")


def open_log(log: LogInput, config: Optional[ReaderConfig] = None) -> LogIterator:
    """
    Open a log and read its prologue.
    
    Args:
        log: A ByteSource, binary stream, bytes, or file path
        config: Reader options
    
    Returns:
        LogIterator positioned at the first body frame
    
    Raises:
        FileNotFoundError: If a path does not exist
        StructuralError: If the header or flag bits are invalid
    """
    source = _as_source(log)
    iterator = LogIterator(source, config=config)
    try:
        iterator.start()
    except StructuralError:
        iterator.close()
        raise
    return iterator
