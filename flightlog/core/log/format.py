"""
Wire format structures for flight log files.

This module defines the fixed parts of the binary format: the file
header, the flag-bits frame, frame type tags and the primitive field
types used by format definitions. Everything is little-endian.

File layout:
    Magic (7 bytes) - "ULog" 0x01 0x12 0x35
    Version (1 byte)
    Start timestamp (8 bytes) - microseconds
    Frames, each:
        Payload length (2 bytes)
        Type tag (1 byte) - ASCII letter
        Payload (length bytes)
"""

import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from flightlog.errors import InvalidMagicError

MAGIC = b"ULog\x01\x12\x35"
SUPPORTED_VERSIONS = (0, 1)
HEADER_SIZE = 16

FRAME_HEADER_SIZE = 3
FRAME_HEADER = struct.Struct("<HB")
MAX_PAYLOAD_SIZE = 0xFFFF
# A data payload spends two bytes on the message id.
MAX_RECORD_SIZE = MAX_PAYLOAD_SIZE - 2

SYNC_MAGIC = bytes([0x2F, 0x73, 0x13, 0x20, 0x25, 0x0C, 0xBB, 0x12])
PADDING_PREFIX = "_padding"


class MessageType(str, Enum):
    """Frame type tags."""
    FLAG_BITS = "B"
    FORMAT = "F"
    INFO = "I"
    INFO_MULTIPLE = "M"
    PARAMETER = "P"
    PARAMETER_DEFAULT = "Q"
    ADD_LOGGED_MSG = "A"
    REMOVE_LOGGED_MSG = "R"
    DATA = "D"
    LOGGING = "L"
    LOGGING_TAGGED = "C"
    SYNC = "S"
    DROPOUT = "O"
    
    @classmethod
    def from_tag(cls, tag: str):
        """Return the MessageType for a tag, or None if it is not known."""
        try:
            return cls(tag)
        except ValueError:
            return None


class PrimitiveKind(str, Enum):
    """Fixed-width field types, keyed by their format-string keyword."""
    INT8 = "int8_t"
    UINT8 = "uint8_t"
    INT16 = "int16_t"
    UINT16 = "uint16_t"
    INT32 = "int32_t"
    UINT32 = "uint32_t"
    INT64 = "int64_t"
    UINT64 = "uint64_t"
    FLOAT = "float"
    DOUBLE = "double"
    BOOL = "bool"
    CHAR = "char"
    
    @property
    def size(self) -> int:
        return _PRIMITIVE_CODECS[self].size
    
    @property
    def codec(self) -> struct.Struct:
        return _PRIMITIVE_CODECS[self]
    
    @property
    def is_unsigned(self) -> bool:
        return self in (
            PrimitiveKind.UINT8,
            PrimitiveKind.UINT16,
            PrimitiveKind.UINT32,
            PrimitiveKind.UINT64,
        )


_PRIMITIVE_CODECS = {
    PrimitiveKind.INT8: struct.Struct("<b"),
    PrimitiveKind.UINT8: struct.Struct("<B"),
    PrimitiveKind.INT16: struct.Struct("<h"),
    PrimitiveKind.UINT16: struct.Struct("<H"),
    PrimitiveKind.INT32: struct.Struct("<i"),
    PrimitiveKind.UINT32: struct.Struct("<I"),
    PrimitiveKind.INT64: struct.Struct("<q"),
    PrimitiveKind.UINT64: struct.Struct("<Q"),
    PrimitiveKind.FLOAT: struct.Struct("<f"),
    PrimitiveKind.DOUBLE: struct.Struct("<d"),
    PrimitiveKind.BOOL: struct.Struct("<?"),
    PrimitiveKind.CHAR: struct.Struct("<c"),
}


@dataclass(frozen=True)
class Header:
    """
    The fixed file prologue.
    
    Attributes:
        version: Format version byte
        timestamp: Logging start time in microseconds
    """
    
    version: int
    timestamp: int
    
    _LAYOUT = struct.Struct("<7sBQ")
    
    @classmethod
    def deserialize(cls, data: bytes) -> "Header":
        """
        Deserialize the file header.
        
        Args:
            data: Exactly HEADER_SIZE bytes
        
        Returns:
            Parsed Header
        
        Raises:
            ValueError: If data is not HEADER_SIZE bytes long
            InvalidMagicError: If the magic bytes do not match
        """
        if len(data) != HEADER_SIZE:
            raise ValueError(f"Header must be {HEADER_SIZE} bytes, got {len(data)}")
        
        magic, version, timestamp = cls._LAYOUT.unpack(data)
        if magic != MAGIC:
            raise InvalidMagicError(magic)
        
        return cls(version=version, timestamp=timestamp)


@dataclass(frozen=True)
class FlagBits:
    """
    Feature flags declared by the optional flag-bits frame.
    
    Wire format:
        Compat flags (8 bytes)
        Incompat flags (8 bytes)
        Appended data offsets (3 x 8 bytes)
    
    Only incompat bit 0 of byte 0 (data appended) is understood; any other
    incompat bit means data records cannot be trusted.
    """
    
    compat_flags: bytes = bytes(8)
    incompat_flags: bytes = bytes(8)
    appended_offsets: Tuple[int, int, int] = (0, 0, 0)
    present: bool = field(default=False, compare=False)
    
    SIZE = 40
    DATA_APPENDED_MASK = 0x01
    _LAYOUT = struct.Struct("<8s8s3Q")
    
    @classmethod
    def deserialize(cls, payload: bytes) -> "FlagBits":
        """
        Deserialize a flag-bits payload.
        
        Trailing bytes beyond the fixed layout are ignored.
        
        Raises:
            ValueError: If payload is shorter than SIZE
        """
        if len(payload) < cls.SIZE:
            raise ValueError(f"Flag bits too short: {len(payload)} bytes")
        
        compat, incompat, *offsets = cls._LAYOUT.unpack(payload[: cls.SIZE])
        return cls(
            compat_flags=compat,
            incompat_flags=incompat,
            appended_offsets=tuple(offsets),
            present=True,
        )
    
    @property
    def has_data_appended(self) -> bool:
        return bool(self.incompat_flags[0] & self.DATA_APPENDED_MASK)
    
    @property
    def has_unknown_incompat_flags(self) -> bool:
        if self.incompat_flags[0] & ~self.DATA_APPENDED_MASK:
            return True
        return any(self.incompat_flags[1:])


@dataclass(frozen=True)
class Frame:
    """One length-prefixed, type-tagged unit on the wire."""
    
    tag: str
    payload: bytes
    position: int = 0
    
    @property
    def message_type(self):
        return MessageType.from_tag(self.tag)


def primitive_from_keyword(keyword: str):
    """
    Look up a primitive kind by format-string keyword.
    
    Both the C spelling ("uint8_t") and the short spelling ("uint8") are
    accepted. Returns None for anything else.
    """
    kind = _PRIMITIVE_KEYWORDS.get(keyword)
    if kind is None and not keyword.endswith("_t"):
        kind = _PRIMITIVE_KEYWORDS.get(keyword + "_t")
    return kind


_PRIMITIVE_KEYWORDS = {kind.value: kind for kind in PrimitiveKind}
