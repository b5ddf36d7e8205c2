"""
Exception hierarchy for flight log decoding.

Errors come in two tiers:
- StructuralError: the stream cannot be trusted any further and the
  reader stops producing events.
- ScopedError: only the current frame is affected; the reader remains
  usable and the caller decides whether to continue.
"""

from typing import Optional, Sequence


class FlightLogError(Exception):
    """Base class for every error raised by flightlog."""
    pass


class EndOfInput(FlightLogError):
    """Raised when a byte source cannot supply the requested bytes."""
    
    def __init__(self, requested: int, received: int):
        self.requested = requested
        self.received = received
        super().__init__(
            f"End of input: requested {requested} bytes, received {received}"
        )


class StructuralError(FlightLogError):
    """Stream-fatal condition. Iteration stops after it is reported."""
    pass


class InvalidMagicError(StructuralError):
    """Raised when the file does not start with the log magic."""
    
    def __init__(self, found: bytes):
        self.found = found
        super().__init__(f"Invalid magic: {found.hex()}")


class UnsupportedVersionError(StructuralError):
    """Raised when the header carries a version this reader does not know."""
    
    def __init__(self, version: int, supported: Sequence[int]):
        self.version = version
        self.supported = tuple(supported)
        super().__init__(
            f"Unsupported version {version}, supported: {list(self.supported)}"
        )


class TruncatedFrameError(StructuralError):
    """Raised when input ends in the middle of a frame or the header."""
    
    def __init__(self, position: int, expected: int, received: int, what: str = "frame"):
        self.position = position
        self.expected = expected
        self.received = received
        self.what = what
        super().__init__(
            f"Truncated {what} at byte {position}: expected {expected} bytes, "
            f"got {received}"
        )


class MalformedFormatError(StructuralError):
    """Raised when a format definition does not match the format grammar."""
    
    def __init__(self, fragment: str, reason: str):
        self.fragment = fragment
        self.reason = reason
        super().__init__(f"Malformed format ({reason}): {fragment!r}")


class CyclicTypeError(StructuralError):
    """Raised when a format references itself directly or transitively."""
    
    def __init__(self, chain: Sequence[str]):
        self.chain = tuple(chain)
        super().__init__(f"Cyclic format reference: {' -> '.join(self.chain)}")


class TypeDepthExceededError(StructuralError):
    """Raised when nested format references go deeper than allowed."""
    
    def __init__(self, name: str, max_depth: int):
        self.name = name
        self.max_depth = max_depth
        super().__init__(
            f"Resolving {name!r} exceeded maximum nesting depth {max_depth}"
        )


class LayoutTooLargeError(StructuralError):
    """Raised when a format decodes to more than one data frame can carry."""
    
    def __init__(self, name: str, measure: str, amount: int, limit: int):
        self.name = name
        self.measure = measure
        self.amount = amount
        self.limit = limit
        super().__init__(
            f"Format {name!r} spans {amount} {measure}, a data record holds at most {limit}"
        )


class ScopedError(FlightLogError):
    """Condition limited to a single frame. The reader stays usable."""
    
    tag: Optional[str] = None


class DuplicateFormatError(ScopedError):
    """Raised when a format name is registered twice."""
    
    tag = "F"
    
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate format definition: {name}")


class UnknownFormatError(ScopedError):
    """Raised when a format name is referenced but was never registered."""
    
    tag = "A"
    
    def __init__(self, name: str, referenced_by: Optional[str] = None):
        self.name = name
        self.referenced_by = referenced_by
        if referenced_by:
            message = f"Unknown format {name!r} referenced by {referenced_by!r}"
        else:
            message = f"Unknown format: {name!r}"
        super().__init__(message)


class UnknownSubscriptionError(ScopedError):
    """Raised when a data frame uses a message id with no subscription."""
    
    tag = "D"
    
    def __init__(self, msg_id: int):
        self.msg_id = msg_id
        super().__init__(f"Data for unsubscribed message id {msg_id}")


class PayloadSizeMismatchError(ScopedError):
    """Raised when a record's length differs from its format's layout size."""
    
    tag = "D"
    
    def __init__(self, format_name: str, expected: int, actual: int):
        self.format_name = format_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Size mismatch for {format_name!r}: expected {expected} bytes, "
            f"got {actual}"
        )


class MalformedFrameError(ScopedError):
    """Raised when a non-data frame payload cannot be parsed."""
    
    def __init__(self, tag: str, reason: str):
        self.tag = tag
        self.reason = reason
        super().__init__(f"Malformed {tag!r} frame: {reason}")


class IncompatibleFlagsError(ScopedError):
    """Raised for data frames of a log that sets unknown incompat flags."""
    
    tag = "D"
    
    def __init__(self, incompat_flags: bytes):
        self.incompat_flags = incompat_flags
        super().__init__(
            f"Log uses unsupported incompatible features: {incompat_flags.hex()}"
        )
