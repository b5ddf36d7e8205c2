"""
Self-describing type system.

Format definitions arrive in the log as text, are registered by name,
resolved into byte layouts and bound to numeric message ids by
subscriptions. The decoder turns data records into typed values.
"""

from flightlog.core.types.decoder import (
    ArrayValue,
    CharArrayValue,
    RecordDecoder,
    ScalarValue,
    StructValue,
    flatten_fields,
)
from flightlog.core.types.grammar import (
    ArrayType,
    FieldDefinition,
    FormatDefinition,
    NestedType,
    PrimitiveType,
    parse_format,
)
from flightlog.core.types.registry import ResolvedField, ResolvedLayout, TypeRegistry
from flightlog.core.types.subscriptions import Subscription, SubscriptionTable

__all__ = [
    "ArrayType",
    "ArrayValue",
    "CharArrayValue",
    "FieldDefinition",
    "FormatDefinition",
    "NestedType",
    "PrimitiveType",
    "RecordDecoder",
    "ResolvedField",
    "ResolvedLayout",
    "ScalarValue",
    "StructValue",
    "Subscription",
    "SubscriptionTable",
    "TypeRegistry",
    "flatten_fields",
    "parse_format",
]
