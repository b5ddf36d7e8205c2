"""
Record decoder: raw data-record bytes to typed values.

All conversions go through bounds-checked slices of the record and
fixed-width little-endian struct codecs.
"""

import struct
from dataclasses import dataclass
from typing import Any, Iterator, List, Sequence, Tuple, Union

from flightlog.core.log.format import PADDING_PREFIX, PrimitiveKind
from flightlog.core.types.grammar import ArrayType, PrimitiveType
from flightlog.core.types.registry import ResolvedField, ResolvedLayout
from flightlog.errors import PayloadSizeMismatchError


@dataclass(frozen=True)
class ScalarValue:
    """A single primitive value."""
    
    kind: PrimitiveKind
    value: Union[int, float, bool, str]
    
    def to_python(self) -> Any:
        return self.value


@dataclass(frozen=True)
class CharArrayValue:
    """
    A char array, exposed as raw bytes and as best-effort text.
    
    The text view stops at the first NUL and replaces invalid UTF-8.
    """
    
    raw: bytes
    
    @property
    def text(self) -> str:
        return self.raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")
    
    def to_python(self) -> str:
        return self.text


@dataclass(frozen=True)
class ArrayValue:
    """A fixed-count array of decoded values."""
    
    items: Tuple["DecodedValue", ...]
    
    def __len__(self) -> int:
        return len(self.items)
    
    def __getitem__(self, index: int) -> "DecodedValue":
        return self.items[index]
    
    def to_python(self) -> list:
        return [item.to_python() for item in self.items]


@dataclass(frozen=True)
class StructValue:
    """A nested record: ordered (field_name, value) pairs."""
    
    type_name: str
    fields: Tuple[Tuple[str, "DecodedValue"], ...]
    
    def __getitem__(self, name: str) -> "DecodedValue":
        for field_name, value in self.fields:
            if field_name == name:
                return value
        raise KeyError(name)
    
    def to_python(self) -> dict:
        return {
            name: value.to_python()
            for name, value in self.fields
            if not _is_padding_name(name)
        }


DecodedValue = Union[ScalarValue, CharArrayValue, ArrayValue, StructValue]
DecodedFields = List[Tuple[str, DecodedValue]]


def _is_padding_name(name: str) -> bool:
    return name.startswith(PADDING_PREFIX)


def _decode_scalar(kind: PrimitiveKind, raw: Any) -> ScalarValue:
    if kind is PrimitiveKind.CHAR:
        raw = raw.decode("utf-8", errors="replace")
    return ScalarValue(kind=kind, value=raw)


class RecordDecoder:
    """
    Decodes data records against resolved layouts.
    
    Array codecs are cached per (kind, count) so repeated records of the
    same format do not rebuild them.
    """
    
    def __init__(self, accept_omitted_trailing_padding: bool = False):
        """
        Initialize a decoder.
        
        Args:
            accept_omitted_trailing_padding: Also accept records that are
                exactly one trailing padding field short
        """
        self.accept_omitted_trailing_padding = accept_omitted_trailing_padding
        self._array_codecs = {}
    
    def decode(self, layout: ResolvedLayout, payload: bytes) -> DecodedFields:
        """
        Decode one record.
        
        Args:
            layout: Resolved layout of the record's format
            payload: Record bytes, excluding the message id
        
        Returns:
            Ordered (field_name, value) pairs, padding included
        
        Raises:
            PayloadSizeMismatchError: If the payload length does not match
                the layout size
        """
        fields = layout.fields
        actual = len(payload)
        
        if actual != layout.total_size:
            trailing = layout.trailing_padding_size
            if (
                self.accept_omitted_trailing_padding
                and trailing
                and actual == layout.total_size - trailing
            ):
                fields = fields[:-1]
            else:
                raise PayloadSizeMismatchError(layout.name, layout.total_size, actual)
        
        view = memoryview(payload)
        return [(field.name, self._decode_field(field, view)) for field in fields]
    
    def _decode_field(self, field: ResolvedField, view: memoryview) -> DecodedValue:
        chunk = view[field.offset:field.offset + field.size]
        
        field_type = field.field_type
        
        if isinstance(field_type, PrimitiveType):
            (raw,) = field_type.kind.codec.unpack(chunk)
            return _decode_scalar(field_type.kind, raw)
        
        if isinstance(field_type, ArrayType):
            element = field_type.element
            if isinstance(element, PrimitiveType):
                if element.kind is PrimitiveKind.CHAR:
                    return CharArrayValue(raw=bytes(chunk))
                codec = self._array_codec(element.kind, field_type.count)
                return ArrayValue(
                    items=tuple(_decode_scalar(element.kind, raw) for raw in codec.unpack(chunk))
                )
            step = field.nested.total_size
            return ArrayValue(
                items=tuple(
                    self._decode_struct(field.nested, chunk[i * step:(i + 1) * step])
                    for i in range(field_type.count)
                )
            )
        
        return self._decode_struct(field.nested, chunk)
    
    def _decode_struct(self, layout: ResolvedLayout, chunk: memoryview) -> StructValue:
        return StructValue(
            type_name=layout.name,
            fields=tuple((f.name, self._decode_field(f, chunk)) for f in layout.fields),
        )
    
    def _array_codec(self, kind: PrimitiveKind, count: int) -> struct.Struct:
        key = (kind, count)
        codec = self._array_codecs.get(key)
        if codec is None:
            codec = struct.Struct(f"<{count}{kind.codec.format[-1]}")
            self._array_codecs[key] = codec
        return codec


def flatten_fields(
    fields: Sequence[Tuple[str, DecodedValue]],
    prefix: str = "",
) -> Iterator[Tuple[str, Any]]:
    """
    Yield (qualified_name, python_value) pairs for a decoded record.
    
    Nested fields are named "outer.inner", array elements "name[i]".
    Padding is skipped and char arrays are kept whole as text.
    """
    for name, value in fields:
        if _is_padding_name(name):
            continue
        qualified = prefix + name
        yield from _flatten_value(qualified, value)


def _flatten_value(qualified: str, value: DecodedValue) -> Iterator[Tuple[str, Any]]:
    if isinstance(value, StructValue):
        yield from flatten_fields(value.fields, prefix=qualified + ".")
    elif isinstance(value, ArrayValue):
        for index, item in enumerate(value.items):
            yield from _flatten_value(f"{qualified}[{index}]", item)
    else:
        yield qualified, value.to_python()
