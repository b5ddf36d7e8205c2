"""Tests for the format-string grammar."""

import pytest

from flightlog.core.log.format import PrimitiveKind
from flightlog.core.types.grammar import (
    ArrayType,
    FieldDefinition,
    NestedType,
    PrimitiveType,
    parse_format,
    parse_type_token,
)
from flightlog.errors import MalformedFormatError


class TestParseTypeToken:
    """Test parse_type_token."""
    
    def test_primitive(self):
        """Test a plain primitive keyword."""
        assert parse_type_token("float") == PrimitiveType(PrimitiveKind.FLOAT)
    
    def test_primitive_array(self):
        """Test a primitive array."""
        assert parse_type_token("uint8_t[4]") == ArrayType(PrimitiveType(PrimitiveKind.UINT8), 4)
    
    def test_nested(self):
        """Test a nested type name."""
        assert parse_type_token("esc_report") == NestedType("esc_report")
    
    def test_nested_array(self):
        """Test an array of nested types."""
        assert parse_type_token("esc_report[8]") == ArrayType(NestedType("esc_report"), 8)
    
    @pytest.mark.parametrize("token", ["uint8_t[0]", "uint8_t[]", "uint8_t[-1]", "int[2", "9abc", ""])
    def test_invalid(self, token):
        """Test rejection of malformed type tokens."""
        with pytest.raises(MalformedFormatError):
            parse_type_token(token)


class TestParseFormat:
    """Test parse_format."""
    
    def test_simple_format(self):
        """Test parsing a format with two fields."""
        definition = parse_format(b"S:uint8 a;uint8 b;")
        
        assert definition.name == "S"
        assert definition.fields == (
            FieldDefinition("a", PrimitiveType(PrimitiveKind.UINT8)),
            FieldDefinition("b", PrimitiveType(PrimitiveKind.UINT8)),
        )
    
    def test_trailing_semicolon_optional(self):
        """Test that the final ';' may be omitted."""
        assert parse_format("S:uint8_t a;uint8_t b") == parse_format("S:uint8_t a;uint8_t b;")
    
    def test_empty_field_list(self):
        """Test that a format may have no fields."""
        definition = parse_format("empty:")
        
        assert definition.name == "empty"
        assert definition.fields == ()
    
    def test_nested_and_padding(self):
        """Test nested references and padding detection."""
        definition = parse_format(
            "esc_status:uint64_t timestamp;esc_report[8] esc;uint8_t[3] _padding0;"
        )
        
        assert definition.dependencies() == ("esc_report",)
        assert definition.fields[1].nested_name == "esc_report"
        assert definition.fields[2].is_padding
        assert not definition.fields[0].is_padding
    
    def test_str_round_trips_text(self):
        """Test that str() reproduces the canonical text."""
        text = "gps:uint64_t timestamp;float[3] pos;char[4] id;"
        
        assert str(parse_format(text)) == text
    
    @pytest.mark.parametrize(
        "text,fragment",
        [
            ("no_colon", "no_colon"),
            (":uint8_t a;", ""),
            ("S:uint8_t a;;uint8_t b;", "uint8_t a;;uint8_t b;"),
            ("S:;", ";"),
            ("S:uint8_t", "uint8_t"),
            ("S:uint8_t  a;", "uint8_t  a"),
            ("S:uint8_t a b;", "uint8_t a b"),
            ("S:uint8_t[0] a;", "uint8_t[0]"),
            ("S:uint8_t 1a;", "uint8_t 1a"),
        ],
    )
    def test_malformed_carries_fragment(self, text, fragment):
        """Test that grammar errors carry the offending substring."""
        with pytest.raises(MalformedFormatError) as exc_info:
            parse_format(text)
        
        assert exc_info.value.fragment == fragment
    
    def test_duplicate_field_name(self):
        """Test that repeated field names are rejected."""
        with pytest.raises(MalformedFormatError, match="duplicate field name"):
            parse_format("S:uint8_t a;int16_t a;")
    
    def test_non_ascii(self):
        """Test that non-ASCII payloads are rejected."""
        with pytest.raises(MalformedFormatError, match="not ASCII"):
            parse_format("S:uint8_t ä;".encode("utf-8"))
