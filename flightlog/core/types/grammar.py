"""
Format definitions and the format-string grammar.

A format-definition frame carries ASCII text of the form:

    name ':' field (';' field)* ';'?

where each field is ``type_token ' ' field_name``. A type token is a
primitive keyword or a nested format name, optionally followed by a
fixed array count ``[N]`` with N >= 1. An empty field list declares a
zero-size format.

Examples:
    "vehicle_status:uint64_t timestamp;uint8_t arming_state;"
    "esc_status:uint64_t timestamp;esc_report[8] esc;"
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from flightlog.core.log.format import PADDING_PREFIX, PrimitiveKind, primitive_from_keyword
from flightlog.errors import MalformedFormatError

_NAME = r"[A-Za-z_][A-Za-z0-9_]*"
_NAME_RE = re.compile(rf"^{_NAME}$")
_TYPE_TOKEN_RE = re.compile(rf"^({_NAME})(?:\[([0-9]+)\])?$")


@dataclass(frozen=True)
class PrimitiveType:
    """A fixed-width scalar."""
    
    kind: PrimitiveKind
    
    def __str__(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class NestedType:
    """A reference to another format by name."""
    
    name: str
    
    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType:
    """A fixed-count array of primitives or nested formats."""
    
    element: Union[PrimitiveType, NestedType]
    count: int
    
    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError(f"Array count must be at least 1, got {self.count}")
    
    def __str__(self) -> str:
        return f"{self.element}[{self.count}]"


FieldType = Union[PrimitiveType, ArrayType, NestedType]


@dataclass(frozen=True)
class FieldDefinition:
    """A named field of a format."""
    
    name: str
    field_type: FieldType
    
    @property
    def is_padding(self) -> bool:
        return self.name.startswith(PADDING_PREFIX)
    
    @property
    def nested_name(self) -> Optional[str]:
        """Name of the referenced format, if this field nests one."""
        field_type = self.field_type
        if isinstance(field_type, ArrayType):
            field_type = field_type.element
        if isinstance(field_type, NestedType):
            return field_type.name
        return None


@dataclass(frozen=True)
class FormatDefinition:
    """A named, ordered record schema. Field order defines byte layout."""
    
    name: str
    fields: Tuple[FieldDefinition, ...] = ()
    
    def dependencies(self) -> Tuple[str, ...]:
        """Names of nested formats, in field order, without repeats."""
        seen = []
        for field in self.fields:
            nested = field.nested_name
            if nested is not None and nested not in seen:
                seen.append(nested)
        return tuple(seen)
    
    def __str__(self) -> str:
        body = "".join(f"{f.field_type} {f.name};" for f in self.fields)
        return f"{self.name}:{body}"


def parse_type_token(token: str) -> FieldType:
    """
    Parse a type token such as "float", "uint8_t[4]" or "esc_report[8]".
    
    Raises:
        MalformedFormatError: If the token is not valid
    """
    match = _TYPE_TOKEN_RE.match(token)
    if match is None:
        raise MalformedFormatError(token, "invalid type")
    
    base_name, count = match.groups()
    kind = primitive_from_keyword(base_name)
    base = PrimitiveType(kind) if kind is not None else NestedType(base_name)
    
    if count is None:
        return base
    if int(count) < 1:
        raise MalformedFormatError(token, "array count must be positive")
    return ArrayType(base, int(count))


def parse_field(text: str) -> FieldDefinition:
    """
    Parse a single ``type_token field_name`` pair.
    
    Raises:
        MalformedFormatError: If the field is not valid
    """
    parts = text.split(" ")
    if len(parts) != 2 or not all(parts):
        raise MalformedFormatError(text, "field must be 'type name'")
    
    type_token, name = parts
    if not _NAME_RE.match(name):
        raise MalformedFormatError(text, "invalid field name")
    
    return FieldDefinition(name=name, field_type=parse_type_token(type_token))


def parse_format(data: Union[bytes, str]) -> FormatDefinition:
    """
    Parse the payload of a format-definition frame.
    
    Args:
        data: Raw payload bytes or already decoded text
    
    Returns:
        Parsed FormatDefinition
    
    Raises:
        MalformedFormatError: If the text does not match the grammar
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("ascii")
        except UnicodeDecodeError as e:
            raise MalformedFormatError(
                data.decode("ascii", errors="replace"), "not ASCII text"
            ) from e
    else:
        text = data
    
    name, sep, body = text.partition(":")
    if not sep:
        raise MalformedFormatError(text, "missing ':'")
    if not _NAME_RE.match(name):
        raise MalformedFormatError(name, "invalid format name")
    
    pieces = body.split(";")
    if pieces[-1] == "":
        pieces.pop()
    
    fields = []
    names = set()
    for piece in pieces:
        if piece == "":
            raise MalformedFormatError(body, "empty field")
        field = parse_field(piece)
        if field.name in names:
            raise MalformedFormatError(piece, "duplicate field name")
        names.add(field.name)
        fields.append(field)
    
    return FormatDefinition(name=name, fields=tuple(fields))
