"""
Events produced by a log reader.

One event per body frame. Non-data payloads are parsed here; each
deserialize() raises MalformedFrameError when the payload is too short
for its fixed fields.
"""

import struct
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from flightlog.core.log.format import (
    PADDING_PREFIX,
    SYNC_MAGIC,
    MessageType,
    PrimitiveKind,
    primitive_from_keyword,
)
from flightlog.core.types.decoder import DecodedFields, DecodedValue, flatten_fields
from flightlog.core.types.grammar import FormatDefinition
from flightlog.core.types.subscriptions import Subscription
from flightlog.errors import MalformedFrameError, ScopedError

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_ADD_LOGGED = struct.Struct("<BH")
_LOGGING = struct.Struct("<BQ")
_LOGGING_TAGGED = struct.Struct("<BHQ")

LOG_LEVEL_NAMES = {
    "0": "EMERGENCY",
    "1": "ALERT",
    "2": "CRITICAL",
    "3": "ERROR",
    "4": "WARNING",
    "5": "NOTICE",
    "6": "INFO",
    "7": "DEBUG",
}


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _require(tag: MessageType, payload: bytes, size: int) -> None:
    if len(payload) < size:
        raise MalformedFrameError(
            tag.value, f"payload has {len(payload)} bytes, need at least {size}"
        )


def _split_key_value(tag: MessageType, payload: bytes, offset: int) -> Tuple[str, bytes]:
    """Split a u8 length-prefixed key from the value bytes that follow it."""
    _require(tag, payload, offset + 1)
    (key_len,) = _U8.unpack_from(payload, offset)
    start = offset + 1
    _require(tag, payload, start + key_len)
    return _text(payload[start:start + key_len]), payload[start + key_len:]


def _split_key(key: str) -> Tuple[str, str]:
    type_token, sep, name = key.partition(" ")
    if not sep:
        return "", key
    return type_token, name


class Event:
    """
    Base class for everything a reader yields.
    
    Subclasses expose the wire tag of their frame as `tag`, either as a
    class attribute or as a field.
    """


@dataclass(frozen=True)
class FormatEvent(Event):
    """A format definition was registered."""
    
    definition: FormatDefinition
    tag = MessageType.FORMAT.value


@dataclass(frozen=True)
class InfoEvent(Event):
    """
    Key/value information, passed through uninterpreted.
    
    Attributes:
        key: Full key, "<type> <name>"
        value: Raw value bytes
    """
    
    key: str
    value: bytes
    tag = MessageType.INFO.value
    
    @property
    def type_token(self) -> str:
        return _split_key(self.key)[0]
    
    @property
    def name(self) -> str:
        return _split_key(self.key)[1]
    
    @classmethod
    def deserialize(cls, payload: bytes) -> "InfoEvent":
        key, value = _split_key_value(MessageType.INFO, payload, 0)
        return cls(key=key, value=value)


@dataclass(frozen=True)
class MultiInfoEvent(Event):
    """Multi-part information; continued parts repeat the key."""
    
    key: str
    value: bytes
    is_continued: bool = False
    tag = MessageType.INFO_MULTIPLE.value
    
    @property
    def type_token(self) -> str:
        return _split_key(self.key)[0]
    
    @property
    def name(self) -> str:
        return _split_key(self.key)[1]
    
    @classmethod
    def deserialize(cls, payload: bytes) -> "MultiInfoEvent":
        _require(MessageType.INFO_MULTIPLE, payload, 1)
        key, value = _split_key_value(MessageType.INFO_MULTIPLE, payload, 1)
        return cls(key=key, value=value, is_continued=bool(payload[0]))


@dataclass(frozen=True)
class ParameterEvent(Event):
    """
    A parameter value or parameter default.
    
    Attributes:
        name: Parameter name
        kind: Primitive type of the value
        value: Decoded scalar
        is_default: Whether this came from a parameter-default frame
        default_types: Default-type bitfield (bit 0 system, bit 1 current setup)
    """
    
    name: str
    kind: PrimitiveKind
    value: Any
    is_default: bool = False
    default_types: int = 0
    
    SYSTEM_DEFAULT = 0x01
    CURRENT_SETUP_DEFAULT = 0x02
    
    @property
    def tag(self) -> str:
        if self.is_default:
            return MessageType.PARAMETER_DEFAULT.value
        return MessageType.PARAMETER.value
    
    @classmethod
    def deserialize(cls, payload: bytes, is_default: bool = False) -> "ParameterEvent":
        message_type = MessageType.PARAMETER_DEFAULT if is_default else MessageType.PARAMETER
        default_types = 0
        offset = 0
        if is_default:
            _require(message_type, payload, 1)
            default_types = payload[0]
            offset = 1
        
        key, raw = _split_key_value(message_type, payload, offset)
        type_token, name = _split_key(key)
        kind = primitive_from_keyword(type_token)
        if kind is None:
            raise MalformedFrameError(message_type.value, f"unsupported parameter type {type_token!r}")
        if len(raw) != kind.size:
            raise MalformedFrameError(
                message_type.value,
                f"parameter {name!r} has {len(raw)} value bytes, expected {kind.size}",
            )
        
        (value,) = kind.codec.unpack(raw)
        if kind is PrimitiveKind.CHAR:
            value = _text(value)
        
        return cls(
            name=name,
            kind=kind,
            value=value,
            is_default=is_default,
            default_types=default_types,
        )


@dataclass(frozen=True)
class SubscribeEvent(Event):
    """A message id was bound to a format."""
    
    subscription: Subscription
    tag = MessageType.ADD_LOGGED_MSG.value
    
    @staticmethod
    def parse(payload: bytes) -> Tuple[int, int, str]:
        """Return (multi_id, msg_id, format_name) from a subscribe payload."""
        _require(MessageType.ADD_LOGGED_MSG, payload, _ADD_LOGGED.size)
        multi_id, msg_id = _ADD_LOGGED.unpack_from(payload)
        return multi_id, msg_id, _text(payload[_ADD_LOGGED.size:])


@dataclass(frozen=True)
class UnsubscribeEvent(Event):
    """
    A message id binding was removed.
    
    Attributes:
        msg_id: The id named by the frame
        subscription: The removed binding, or None if the id was not bound
    """
    
    msg_id: int
    subscription: Optional[Subscription] = None
    tag = MessageType.REMOVE_LOGGED_MSG.value
    
    @staticmethod
    def parse(payload: bytes) -> int:
        _require(MessageType.REMOVE_LOGGED_MSG, payload, _U16.size)
        (msg_id,) = _U16.unpack_from(payload)
        return msg_id


@dataclass(frozen=True)
class DataEvent(Event):
    """
    A decoded data record.
    
    Attributes:
        format_name: Name of the record's format
        msg_id: Message id the record was logged under
        multi_id: Instance index of the subscription
        fields: Ordered (field_name, value) pairs, padding included
        timestamp: Value of a top-level unsigned "timestamp" field, if any
    """
    
    format_name: str
    msg_id: int
    multi_id: int
    fields: DecodedFields
    timestamp: Optional[int] = None
    tag = MessageType.DATA.value
    
    def __getitem__(self, name: str) -> DecodedValue:
        for field_name, value in self.fields:
            if field_name == name:
                return value
        raise KeyError(name)
    
    def as_dict(self) -> Dict[str, Any]:
        """Field values as plain Python objects, padding omitted."""
        return {
            name: value.to_python()
            for name, value in self.fields
            if not name.startswith(PADDING_PREFIX)
        }
    
    def flatten(self) -> Iterator[Tuple[str, Any]]:
        """Qualified (name, value) pairs, see flatten_fields."""
        return flatten_fields(self.fields)


@dataclass(frozen=True)
class LoggedStringEvent(Event):
    """
    A text message logged by the firmware.
    
    Attributes:
        level: Raw level byte, ASCII '0' (EMERGENCY) to '7' (DEBUG)
        timestamp: Microseconds
        text: Message text, invalid UTF-8 replaced
        log_tag: Tag of a tagged logged string, otherwise None
    """
    
    level: int
    timestamp: int
    text: str
    log_tag: Optional[int] = None
    
    @property
    def tag(self) -> str:
        if self.log_tag is None:
            return MessageType.LOGGING.value
        return MessageType.LOGGING_TAGGED.value
    
    @property
    def level_name(self) -> str:
        return LOG_LEVEL_NAMES.get(chr(self.level), "UNKNOWN")
    
    @classmethod
    def deserialize(cls, payload: bytes) -> "LoggedStringEvent":
        _require(MessageType.LOGGING, payload, _LOGGING.size)
        level, timestamp = _LOGGING.unpack_from(payload)
        return cls(level=level, timestamp=timestamp, text=_text(payload[_LOGGING.size:]))
    
    @classmethod
    def deserialize_tagged(cls, payload: bytes) -> "LoggedStringEvent":
        _require(MessageType.LOGGING_TAGGED, payload, _LOGGING_TAGGED.size)
        level, log_tag, timestamp = _LOGGING_TAGGED.unpack_from(payload)
        return cls(
            level=level,
            timestamp=timestamp,
            text=_text(payload[_LOGGING_TAGGED.size:]),
            log_tag=log_tag,
        )


@dataclass(frozen=True)
class SyncEvent(Event):
    """A synchronization marker; valid is False if the pattern did not match."""
    
    payload: bytes
    valid: bool
    tag = MessageType.SYNC.value
    
    @classmethod
    def deserialize(cls, payload: bytes) -> "SyncEvent":
        return cls(payload=payload, valid=payload == SYNC_MAGIC)


@dataclass(frozen=True)
class DropoutEvent(Event):
    """Data was lost for duration_ms milliseconds."""
    
    duration_ms: int
    tag = MessageType.DROPOUT.value
    
    @classmethod
    def deserialize(cls, payload: bytes) -> "DropoutEvent":
        _require(MessageType.DROPOUT, payload, _U16.size)
        (duration,) = _U16.unpack_from(payload)
        return cls(duration_ms=duration)


@dataclass(frozen=True)
class UnknownEvent(Event):
    """A frame with a tag this reader does not know."""
    
    tag: str
    payload: bytes


@dataclass(frozen=True)
class ErrorEvent(Event):
    """A scoped error for one frame. Reading continues after it."""
    
    error: ScopedError
    tag: str = ""
