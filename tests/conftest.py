"""Shared fixtures that assemble flight logs in memory."""

import struct

import pytest

from flightlog.core.log.format import MAGIC, SYNC_MAGIC


class LogBuilder:
    """Builds the bytes of a log frame by frame."""
    
    def __init__(self, version: int = 1, timestamp: int = 1_000_000):
        self.parts = [MAGIC + bytes([version]) + struct.pack("<Q", timestamp)]
    
    def frame(self, tag: str, payload: bytes) -> "LogBuilder":
        self.parts.append(struct.pack("<HB", len(payload), ord(tag)) + payload)
        return self
    
    def flag_bits(self, compat=bytes(8), incompat=bytes(8), offsets=(0, 0, 0)) -> "LogBuilder":
        return self.frame("B", compat + incompat + struct.pack("<3Q", *offsets))
    
    def format(self, text: str) -> "LogBuilder":
        return self.frame("F", text.encode("ascii"))
    
    def info(self, key: str, value: bytes) -> "LogBuilder":
        key_bytes = key.encode()
        return self.frame("I", bytes([len(key_bytes)]) + key_bytes + value)
    
    def multi_info(self, key: str, value: bytes, continued: bool = False) -> "LogBuilder":
        key_bytes = key.encode()
        return self.frame("M", bytes([int(continued), len(key_bytes)]) + key_bytes + value)
    
    def parameter(self, key: str, value: bytes) -> "LogBuilder":
        key_bytes = key.encode()
        return self.frame("P", bytes([len(key_bytes)]) + key_bytes + value)
    
    def parameter_default(self, default_types: int, key: str, value: bytes) -> "LogBuilder":
        key_bytes = key.encode()
        return self.frame("Q", bytes([default_types, len(key_bytes)]) + key_bytes + value)
    
    def subscribe(self, msg_id: int, name: str, multi_id: int = 0) -> "LogBuilder":
        return self.frame("A", struct.pack("<BH", multi_id, msg_id) + name.encode())
    
    def unsubscribe(self, msg_id: int) -> "LogBuilder":
        return self.frame("R", struct.pack("<H", msg_id))
    
    def data(self, msg_id: int, record: bytes) -> "LogBuilder":
        return self.frame("D", struct.pack("<H", msg_id) + record)
    
    def logging(self, level: str, timestamp: int, text: str) -> "LogBuilder":
        return self.frame("L", struct.pack("<BQ", ord(level), timestamp) + text.encode())
    
    def logging_tagged(self, level: str, tag: int, timestamp: int, text: str) -> "LogBuilder":
        return self.frame("C", struct.pack("<BHQ", ord(level), tag, timestamp) + text.encode())
    
    def sync(self, payload: bytes = SYNC_MAGIC) -> "LogBuilder":
        return self.frame("S", payload)
    
    def dropout(self, duration_ms: int) -> "LogBuilder":
        return self.frame("O", struct.pack("<H", duration_ms))
    
    def raw(self, data: bytes) -> "LogBuilder":
        self.parts.append(data)
        return self
    
    def build(self) -> bytes:
        return b"".join(self.parts)


@pytest.fixture
def log_builder():
    """Factory for LogBuilder instances."""
    return LogBuilder


@pytest.fixture
def simple_log(log_builder):
    """Header, one two-byte format, one subscription and one record."""
    return (
        log_builder()
        .format("S:uint8 a;uint8 b;")
        .subscribe(3, "S", multi_id=0)
        .data(3, bytes([7, 9]))
        .build()
    )
