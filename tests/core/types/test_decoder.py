"""Tests for the record decoder."""

import struct

import pytest

from flightlog.core.log.format import PrimitiveKind
from flightlog.core.types.decoder import (
    ArrayValue,
    CharArrayValue,
    RecordDecoder,
    ScalarValue,
    StructValue,
    flatten_fields,
)
from flightlog.core.types.grammar import parse_format
from flightlog.core.types.registry import TypeRegistry
from flightlog.errors import PayloadSizeMismatchError


def layout_for(name, *texts):
    registry = TypeRegistry()
    for text in texts:
        registry.register(parse_format(text))
    return registry.resolve(name)


class TestRecordDecoder:
    """Test RecordDecoder.decode."""
    
    def test_decode_scalars(self):
        """Test decoding every primitive kind."""
        layout = layout_for(
            "S",
            "S:int8_t a;uint8_t b;int16_t c;uint16_t d;int32_t e;uint32_t f;"
            "int64_t g;uint64_t h;float i;double j;bool k;char l;",
        )
        payload = struct.pack("<bBhHiIqQfd?c", -1, 255, -2, 65535, -3, 4000000000,
                              -4, 2 ** 63, 1.5, -2.25, True, b"Z")
        
        fields = RecordDecoder().decode(layout, payload)
        
        assert [(name, value.value) for name, value in fields] == [
            ("a", -1),
            ("b", 255),
            ("c", -2),
            ("d", 65535),
            ("e", -3),
            ("f", 4000000000),
            ("g", -4),
            ("h", 2 ** 63),
            ("i", 1.5),
            ("j", -2.25),
            ("k", True),
            ("l", "Z"),
        ]
        assert fields[0][1].kind is PrimitiveKind.INT8
    
    def test_decode_simple_record(self):
        """Test the two-byte record from a minimal log."""
        layout = layout_for("S", "S:uint8 a;uint8 b;")
        
        fields = RecordDecoder().decode(layout, bytes([7, 9]))
        
        assert fields == [
            ("a", ScalarValue(PrimitiveKind.UINT8, 7)),
            ("b", ScalarValue(PrimitiveKind.UINT8, 9)),
        ]
    
    def test_decode_primitive_array(self):
        """Test decoding a numeric array."""
        layout = layout_for("S", "S:float[3] v;")
        
        fields = RecordDecoder().decode(layout, struct.pack("<3f", 1.0, 2.0, 3.0))
        
        value = fields[0][1]
        assert isinstance(value, ArrayValue)
        assert len(value) == 3
        assert value.to_python() == [1.0, 2.0, 3.0]
    
    def test_decode_char_array(self):
        """Test that char arrays expose raw bytes and text."""
        layout = layout_for("S", "S:char[8] name;")
        
        (name, value), = RecordDecoder().decode(layout, b"px4\x00junk")
        
        assert isinstance(value, CharArrayValue)
        assert value.raw == b"px4\x00junk"
        assert value.text == "px4"
    
    def test_char_array_invalid_utf8(self):
        """Test that invalid text degrades instead of failing."""
        layout = layout_for("S", "S:char[3] name;")
        
        (name, value), = RecordDecoder().decode(layout, b"a\xffb")
        
        assert value.raw == b"a\xffb"
        assert value.text == "a\ufffdb"
    
    def test_decode_nested(self):
        """Test decoding nested formats and arrays of them."""
        layout = layout_for(
            "outer",
            "outer:uint8_t id;inner[2] items;inner last;",
            "inner:uint16_t a;int8_t b;",
        )
        payload = bytes([5]) + struct.pack("<Hb", 1, -1) + struct.pack("<Hb", 2, -2) + struct.pack("<Hb", 3, -3)
        
        fields = RecordDecoder().decode(layout, payload)
        
        items = fields[1][1]
        assert isinstance(items, ArrayValue)
        assert isinstance(items[0], StructValue)
        assert items[0].type_name == "inner"
        assert items[1]["b"].value == -2
        assert fields[2][1].to_python() == {"a": 3, "b": -3}
    
    def test_padding_is_decoded(self):
        """Test that padding is decoded but omitted from python views."""
        layout = layout_for("S", "S:uint8_t a;uint8_t[3] _padding0;")
        
        fields = RecordDecoder().decode(layout, bytes([1, 0, 0, 0]))
        
        assert [name for name, _ in fields] == ["a", "_padding0"]
        assert dict(flatten_fields(fields)) == {"a": 1}
    
    @pytest.mark.parametrize("length", [0, 1, 3, 100])
    def test_size_mismatch(self, length):
        """Test that any wrong length is rejected without reading."""
        layout = layout_for("S", "S:uint8 a;uint8 b;")
        
        with pytest.raises(PayloadSizeMismatchError) as exc_info:
            RecordDecoder().decode(layout, bytes(length))
        
        assert exc_info.value.format_name == "S"
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == length
    
    def test_omitted_trailing_padding_rejected_by_default(self):
        """Test strict size checking with trailing padding."""
        layout = layout_for("S", "S:uint8_t a;uint8_t[7] _padding0;")
        
        with pytest.raises(PayloadSizeMismatchError):
            RecordDecoder().decode(layout, bytes([1]))
    
    def test_omitted_trailing_padding_accepted(self):
        """Test the option for records without their final padding."""
        layout = layout_for("S", "S:uint8_t a;uint8_t[7] _padding0;")
        decoder = RecordDecoder(accept_omitted_trailing_padding=True)
        
        fields = decoder.decode(layout, bytes([1]))
        
        assert [(name, value.value) for name, value in fields] == [("a", 1)]
        assert len(decoder.decode(layout, bytes(8))) == 2
    
    def test_empty_format(self):
        """Test decoding a zero-size record."""
        layout = layout_for("E", "E:")
        
        assert RecordDecoder().decode(layout, b"") == []


class TestFlattenFields:
    """Test flatten_fields."""
    
    def test_qualified_names(self):
        """Test naming of nested and array fields."""
        layout = layout_for(
            "outer",
            "outer:uint64_t timestamp;float[2] v;inner[2] items;char[4] id;",
            "inner:uint8_t x;uint8_t _padding0;",
        )
        payload = struct.pack("<Q2f", 10, 0.5, 0.25) + bytes([1, 0, 2, 0]) + b"ab\x00\x00"
        
        flat = list(flatten_fields(RecordDecoder().decode(layout, payload)))
        
        assert flat == [
            ("timestamp", 10),
            ("v[0]", 0.5),
            ("v[1]", 0.25),
            ("items[0].x", 1),
            ("items[1].x", 2),
            ("id", "ab"),
        ]
