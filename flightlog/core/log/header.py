"""
Parser for the file prologue and the optional flag-bits frame.
"""

from dataclasses import dataclass

from flightlog.core.io.source import ByteSource
from flightlog.core.log.format import (
    HEADER_SIZE,
    SUPPORTED_VERSIONS,
    FlagBits,
    Header,
    MessageType,
)
from flightlog.core.log.frames import FrameReader
from flightlog.errors import EndOfInput, TruncatedFrameError, UnsupportedVersionError
from flightlog.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Prologue:
    """Everything read before the first body frame."""
    
    header: Header
    flags: FlagBits


def read_header(source: ByteSource, strict_version: bool = True) -> Header:
    """
    Read and validate the fixed file header.
    
    Args:
        source: Byte source positioned at the start of the file
        strict_version: Reject unsupported versions instead of warning
    
    Returns:
        Parsed Header
    
    Raises:
        TruncatedFrameError: If the input is shorter than the header
        InvalidMagicError: If the magic bytes do not match
        UnsupportedVersionError: If the version is unknown and strict_version is set
    """
    position = source.position
    try:
        data = source.read_exact(HEADER_SIZE)
    except EndOfInput as e:
        raise TruncatedFrameError(
            position=position,
            expected=HEADER_SIZE,
            received=e.received,
            what="header",
        ) from e
    
    header = Header.deserialize(data)
    
    if header.version not in SUPPORTED_VERSIONS:
        if strict_version:
            raise UnsupportedVersionError(header.version, SUPPORTED_VERSIONS)
        logger.warning(
            "Reading unsupported log version",
            version=header.version,
            supported=list(SUPPORTED_VERSIONS),
        )
    
    return header


def read_flag_bits(frames: FrameReader) -> FlagBits:
    """
    Consume the flag-bits frame if it is the next frame.
    
    Any other frame is left in place for the body.
    
    Raises:
        TruncatedFrameError: If the flag-bits payload is too short
    """
    frame = frames.peek()
    if frame is None or frame.message_type is not MessageType.FLAG_BITS:
        return FlagBits()
    
    frames.next_frame()
    
    try:
        flags = FlagBits.deserialize(frame.payload)
    except ValueError as e:
        raise TruncatedFrameError(
            position=frame.position,
            expected=FlagBits.SIZE,
            received=len(frame.payload),
            what="flag bits",
        ) from e
    
    if flags.has_unknown_incompat_flags:
        logger.warning(
            "Log declares unknown incompatible flags, data records will be rejected",
            incompat_flags=flags.incompat_flags.hex(),
        )
    
    return flags


def read_prologue(
    source: ByteSource,
    frames: FrameReader,
    strict_version: bool = True,
) -> Prologue:
    """Read the header followed by the optional flag-bits frame."""
    header = read_header(source, strict_version=strict_version)
    flags = read_flag_bits(frames)
    
    logger.debug(
        "Read log prologue",
        version=header.version,
        start_timestamp=header.timestamp,
        flag_bits=flags.present,
    )
    
    return Prologue(header=header, flags=flags)
