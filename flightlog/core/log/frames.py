"""
Frame reader for the body of a log file.

Turns a ByteSource into a lazy, forward-only sequence of frames, with a
single frame of lookahead so optional frames can be detected without
rewinding the stream.
"""

from typing import Iterator, Optional

from flightlog.core.io.source import ByteSource
from flightlog.core.log.format import FRAME_HEADER, FRAME_HEADER_SIZE, Frame
from flightlog.errors import EndOfInput, TruncatedFrameError
from flightlog.utils.logging import get_logger

logger = get_logger(__name__)


class FrameReader:
    """
    Sequential reader for length-prefixed frames.
    
    End of input exactly on a frame boundary ends the sequence cleanly;
    end of input inside a frame raises TruncatedFrameError.
    """
    
    def __init__(self, source: ByteSource):
        """
        Initialize a frame reader.
        
        Args:
            source: Byte source positioned at the first frame
        """
        self.source = source
        self._lookahead: Optional[Frame] = None
        self._exhausted = False
    
    def peek(self) -> Optional[Frame]:
        """
        Return the next frame without consuming it.
        
        Returns:
            The next Frame, or None at end of input
        
        Raises:
            TruncatedFrameError: If input ends inside a frame
        """
        if self._lookahead is None and not self._exhausted:
            self._lookahead = self._read_frame()
        return self._lookahead
    
    def next_frame(self) -> Optional[Frame]:
        """
        Consume and return the next frame.
        
        Returns:
            The next Frame, or None at end of input
        
        Raises:
            TruncatedFrameError: If input ends inside a frame
        """
        frame = self.peek()
        self._lookahead = None
        return frame
    
    def _read_frame(self) -> Optional[Frame]:
        """Read one frame from the source."""
        position = self.source.position
        
        try:
            header = self.source.read_exact(FRAME_HEADER_SIZE)
        except EndOfInput as e:
            self._exhausted = True
            if e.received == 0:
                logger.debug("Reached end of frames", position=position)
                return None
            raise TruncatedFrameError(
                position=position,
                expected=FRAME_HEADER_SIZE,
                received=e.received,
                what="frame header",
            ) from e
        
        length, tag = FRAME_HEADER.unpack(header)
        
        try:
            payload = self.source.read_exact(length)
        except EndOfInput as e:
            self._exhausted = True
            raise TruncatedFrameError(
                position=position,
                expected=FRAME_HEADER_SIZE + length,
                received=FRAME_HEADER_SIZE + e.received,
            ) from e
        
        return Frame(tag=chr(tag), payload=payload, position=position)
    
    def __iter__(self) -> Iterator[Frame]:
        """Yield frames until end of input."""
        while True:
            frame = self.next_frame()
            if frame is None:
                return
            yield frame
