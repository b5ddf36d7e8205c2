"""Tests for the frame reader."""

import struct

import pytest

from flightlog.core.io import ByteSource
from flightlog.core.log.frames import FrameReader
from flightlog.errors import TruncatedFrameError


def frame(tag: str, payload: bytes) -> bytes:
    return struct.pack("<HB", len(payload), ord(tag)) + payload


class TestFrameReader:
    """Test FrameReader."""
    
    def test_reads_frames_in_order(self):
        """Test reading several frames."""
        data = frame("I", b"abc") + frame("D", b"\x01\x00\x07") + frame("S", b"")
        reader = FrameReader(ByteSource.from_bytes(data))
        
        frames = list(reader)
        
        assert [(f.tag, f.payload) for f in frames] == [
            ("I", b"abc"),
            ("D", b"\x01\x00\x07"),
            ("S", b""),
        ]
        assert [f.position for f in frames] == [0, 6, 12]
    
    def test_empty_input_ends_cleanly(self):
        """Test that no input yields no frames."""
        reader = FrameReader(ByteSource.from_bytes(b""))
        
        assert reader.next_frame() is None
        assert reader.next_frame() is None
    
    def test_peek_does_not_consume(self):
        """Test that peek leaves the frame for next_frame."""
        reader = FrameReader(ByteSource.from_bytes(frame("B", b"x") + frame("F", b"y")))
        
        assert reader.peek().tag == "B"
        assert reader.peek().tag == "B"
        assert reader.next_frame().tag == "B"
        assert reader.next_frame().tag == "F"
        assert reader.peek() is None
    
    def test_truncated_frame_header(self):
        """Test that a partial length/tag prefix is a truncation."""
        reader = FrameReader(ByteSource.from_bytes(frame("I", b"ok") + b"\x05"))
        
        assert reader.next_frame().tag == "I"
        with pytest.raises(TruncatedFrameError) as exc_info:
            reader.next_frame()
        
        assert exc_info.value.what == "frame header"
        assert exc_info.value.received == 1
    
    def test_truncated_payload(self):
        """Test that a partial payload is a truncation."""
        data = struct.pack("<HB", 10, ord("D")) + b"\x00" * 4
        reader = FrameReader(ByteSource.from_bytes(data))
        
        with pytest.raises(TruncatedFrameError) as exc_info:
            reader.next_frame()
        
        assert exc_info.value.expected == 13
        assert exc_info.value.received == 7
    
    def test_non_ascii_tag(self):
        """Test that any tag byte is carried through."""
        reader = FrameReader(ByteSource.from_bytes(frame("\xff", b"")))
        
        assert reader.next_frame().tag == "\xff"
