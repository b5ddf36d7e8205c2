"""
Sequential, bounded-size reads over a binary stream.

A ByteSource hands out exactly the number of bytes asked for, or raises
EndOfInput. It never reads ahead, so memory stays bounded by the largest
single request.
"""

import io
from pathlib import Path
from typing import BinaryIO, Union

from flightlog.errors import EndOfInput
from flightlog.utils.logging import get_logger

logger = get_logger(__name__)


class ByteSource:
    """
    Exact-length reader over a binary stream.
    
    Attributes:
        position: Number of bytes consumed so far
        name: Human readable origin of the stream, for diagnostics
    """
    
    def __init__(self, stream: BinaryIO, name: str = "<stream>", owns_stream: bool = False):
        """
        Initialize a byte source.
        
        Args:
            stream: Binary stream supporting read(n)
            name: Origin used in log output
            owns_stream: Close the stream when this source is closed
        """
        self._stream = stream
        self._owns_stream = owns_stream
        self._closed = False
        self.name = name
        self.position = 0
    
    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ByteSource":
        """
        Open a file for sequential reading.
        
        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Log file not found: {path}")
        
        stream = open(path, "rb")
        logger.debug("Opened log file", path=str(path))
        return cls(stream, name=str(path), owns_stream=True)
    
    @classmethod
    def from_bytes(cls, data: bytes) -> "ByteSource":
        """Wrap an in-memory buffer."""
        return cls(io.BytesIO(data), name="<bytes>", owns_stream=True)
    
    def read_exact(self, n: int) -> bytes:
        """
        Read exactly n bytes.
        
        Args:
            n: Number of bytes to read
        
        Returns:
            Exactly n bytes
        
        Raises:
            ValueError: If n is negative or the source is closed
            EndOfInput: If the stream ends first; the partial bytes are consumed
        """
        if n < 0:
            raise ValueError(f"Read size must be non-negative, got {n}")
        if self._closed:
            raise ValueError(f"Read from closed source {self.name}")
        
        chunks = []
        remaining = n
        while remaining > 0:
            chunk = self._stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        
        data = b"".join(chunks)
        self.position += len(data)
        
        if len(data) < n:
            raise EndOfInput(requested=n, received=len(data))
        
        return data
    
    @property
    def closed(self) -> bool:
        return self._closed
    
    def close(self) -> None:
        """Release the underlying stream if this source owns it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_stream:
            self._stream.close()
            logger.debug("Closed byte source", name=self.name, position=self.position)
    
    def __enter__(self) -> "ByteSource":
        """Context manager entry."""
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
