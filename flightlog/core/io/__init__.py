"""Sequential byte input for log readers."""

from flightlog.core.io.source import ByteSource

__all__ = ["ByteSource"]
