"""Tests for whole-log aggregation."""

import struct

import pytest

from flightlog.core.log.collector import collect
from flightlog.errors import PayloadSizeMismatchError, TruncatedFrameError


@pytest.fixture
def flight(log_builder):
    builder = (
        log_builder(timestamp=500)
        .info("char[3] sys_name", b"PX4")
        .multi_info("char[2] perf", b"ab")
        .multi_info("char[2] perf", b"cd", continued=True)
        .multi_info("char[2] perf", b"ef")
        .parameter("int32_t SYS_AUTOSTART", struct.pack("<i", 4001))
        .parameter_default(0x01, "float MPC_XY_P", struct.pack("<f", 0.5))
        .parameter_default(0x03, "int32_t COM_ARM", struct.pack("<i", 1))
        .format("imu:uint64_t timestamp;float[3] accel;uint8_t[4] _padding0;")
        .subscribe(0, "imu", multi_id=0)
        .subscribe(1, "imu", multi_id=1)
    )
    for i in range(3):
        builder.data(0, struct.pack("<Q3f", 1000 + i, 0.0, 1.0, float(i)) + bytes(4))
    builder.data(1, struct.pack("<Q3f", 2000, 0.5, 0.5, 0.5) + bytes(4))
    builder.parameter("int32_t SYS_AUTOSTART", struct.pack("<i", 4002))
    builder.logging("4", 1500, "low battery")
    builder.dropout(40)
    builder.data(1, b"\x00")
    return builder.build()


class TestCollect:
    """Test collect."""
    
    def test_header_and_formats(self, flight):
        """Test that prologue and formats are recorded."""
        result = collect(flight)
        
        assert result.header.timestamp == 500
        assert list(result.formats) == ["imu"]
    
    def test_datasets(self, flight):
        """Test per-instance columns."""
        result = collect(flight)
        
        imu0 = result.get_dataset("imu", 0)
        assert len(imu0) == 3
        assert imu0.columns["timestamp"] == [1000, 1001, 1002]
        assert imu0.columns["accel[2]"] == [0.0, 1.0, 2.0]
        assert "_padding0" not in imu0.columns
        assert len(result.get_dataset("imu", 1)) == 1
        
        with pytest.raises(KeyError):
            result.get_dataset("imu", 2)
    
    def test_info(self, flight):
        """Test info and multi-info aggregation."""
        result = collect(flight)
        
        assert result.info == {"char[3] sys_name": b"PX4"}
        assert result.info_multiple["char[2] perf"] == [[b"ab", b"cd"], [b"ef"]]
    
    def test_parameters(self, flight):
        """Test initial, changed and default parameters."""
        result = collect(flight)
        
        assert result.initial_parameters == {"SYS_AUTOSTART": 4001}
        assert len(result.changed_parameters) == 1
        change = result.changed_parameters[0]
        assert (change.timestamp, change.name, change.value) == (2000, "SYS_AUTOSTART", 4002)
        assert result.default_parameters[0x01] == {"MPC_XY_P": 0.5, "COM_ARM": 1}
        assert result.default_parameters[0x02] == {"COM_ARM": 1}
    
    def test_messages_and_errors(self, flight):
        """Test logged strings, dropouts and scoped errors."""
        result = collect(flight)
        
        assert [m.text for m in result.logged_messages] == ["low battery"]
        assert [d.duration_ms for d in result.dropouts] == [40]
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], PayloadSizeMismatchError)
        assert result.last_timestamp == 2000
    
    def test_structural_error_propagates(self, log_builder):
        """Test that an unreadable log raises."""
        data = log_builder().build() + b"\x05"
        
        with pytest.raises(TruncatedFrameError):
            collect(data)
