"""
Registry of format definitions and their resolved byte layouts.

Layouts are resolved with an explicit worklist instead of recursion, so
deep or cyclic definitions fail with a typed error rather than exhausting
the interpreter stack. Resolved layouts are memoized for the lifetime of
the registry; registration never replaces an existing name, so a cached
layout can never go stale.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from flightlog.core.log.format import MAX_RECORD_SIZE
from flightlog.core.types.grammar import (
    ArrayType,
    FieldDefinition,
    FieldType,
    FormatDefinition,
    NestedType,
    PrimitiveType,
)
from flightlog.errors import (
    CyclicTypeError,
    DuplicateFormatError,
    LayoutTooLargeError,
    TypeDepthExceededError,
    UnknownFormatError,
)
from flightlog.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedField:
    """
    A field placed at a fixed offset.
    
    Attributes:
        name: Field name
        field_type: Declared type
        offset: Byte offset from the start of the record
        size: Total byte size, including every array element
        is_padding: Whether the field only pads the layout
        nested: Layout of the referenced format, for nested fields and
            arrays of nested formats
    """
    
    name: str
    field_type: FieldType
    offset: int
    size: int
    is_padding: bool = False
    nested: Optional["ResolvedLayout"] = None


@dataclass(frozen=True)
class ResolvedLayout:
    """
    Total size and per-field offsets of a format.
    
    value_count is the number of decoded values one record produces,
    nested records included.
    """
    
    name: str
    total_size: int
    fields: Tuple[ResolvedField, ...] = ()
    value_count: int = 0
    
    @property
    def trailing_padding_size(self) -> int:
        """Size of a final padding field, which loggers may omit on the wire."""
        if self.fields and self.fields[-1].is_padding:
            return self.fields[-1].size
        return 0
    
    def field(self, name: str) -> ResolvedField:
        """
        Look up a field by name.
        
        Raises:
            KeyError: If the layout has no such field
        """
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)


class TypeRegistry:
    """
    Name-indexed store of format definitions.
    
    Owned by a single reader; nothing else mutates it.
    """
    
    def __init__(self, max_depth: int = 64):
        """
        Initialize an empty registry.
        
        Args:
            max_depth: Longest chain of nested references resolve() follows
        """
        if max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        
        self.max_depth = max_depth
        self._formats: Dict[str, FormatDefinition] = {}
        self._layouts: Dict[str, ResolvedLayout] = {}
    
    def register(self, definition: FormatDefinition) -> None:
        """
        Add a format definition.
        
        Raises:
            DuplicateFormatError: If the name is already registered; the
                original definition is kept
        """
        if definition.name in self._formats:
            raise DuplicateFormatError(definition.name)
        
        self._formats[definition.name] = definition
        logger.debug(
            "Registered format",
            name=definition.name,
            fields=len(definition.fields),
        )
    
    def get(self, name: str) -> Optional[FormatDefinition]:
        return self._formats.get(name)
    
    def __contains__(self, name: object) -> bool:
        return name in self._formats
    
    def __len__(self) -> int:
        return len(self._formats)
    
    @property
    def formats(self) -> Mapping[str, FormatDefinition]:
        """Read-only view of the registered definitions."""
        return MappingProxyType(self._formats)
    
    @property
    def resolved(self) -> Mapping[str, ResolvedLayout]:
        """Read-only view of the layouts resolved so far."""
        return MappingProxyType(self._layouts)
    
    def resolve(self, name: str) -> ResolvedLayout:
        """
        Compute the byte layout of a format.
        
        Nested formats are resolved first, deepest first, using an explicit
        stack. Every layout computed along the way is cached.
        
        Args:
            name: Format name
        
        Returns:
            Memoized ResolvedLayout
        
        Raises:
            UnknownFormatError: If the format or a nested format is not registered
            CyclicTypeError: If the format references itself, directly or not
            TypeDepthExceededError: If nesting is deeper than max_depth
            LayoutTooLargeError: If a record of the format could not fit in
                any data frame
        """
        cached = self._layouts.get(name)
        if cached is not None:
            return cached
        
        if name not in self._formats:
            raise UnknownFormatError(name)
        
        stack: List[str] = [name]
        in_progress = {name}
        
        while stack:
            current = stack[-1]
            definition = self._formats[current]
            
            pending = None
            for dependency in definition.dependencies():
                if dependency in self._layouts:
                    continue
                if dependency in in_progress:
                    chain = stack[stack.index(dependency):] + [dependency]
                    raise CyclicTypeError(chain)
                if dependency not in self._formats:
                    raise UnknownFormatError(dependency, referenced_by=current)
                pending = dependency
                break
            
            if pending is None:
                self._layouts[current] = self._build_layout(definition)
                stack.pop()
                in_progress.discard(current)
                continue
            
            if len(stack) >= self.max_depth:
                raise TypeDepthExceededError(name, self.max_depth)
            
            stack.append(pending)
            in_progress.add(pending)
        
        layout = self._layouts[name]
        logger.debug("Resolved format layout", name=name, size=layout.total_size)
        return layout
    
    def _build_layout(self, definition: FormatDefinition) -> ResolvedLayout:
        """Place fields back to back. All nested layouts must already be cached."""
        offset = 0
        value_count = 0
        fields = []
        for field in definition.fields:
            resolved = self._place_field(field, offset)
            fields.append(resolved)
            offset += resolved.size
            value_count += _value_count(resolved)
        
        # Empty nested formats take no bytes, so bound the values as well.
        if offset > MAX_RECORD_SIZE:
            raise LayoutTooLargeError(definition.name, "bytes", offset, MAX_RECORD_SIZE)
        if value_count > MAX_RECORD_SIZE:
            raise LayoutTooLargeError(definition.name, "values", value_count, MAX_RECORD_SIZE)
        
        return ResolvedLayout(
            name=definition.name,
            total_size=offset,
            fields=tuple(fields),
            value_count=value_count,
        )
    
    def _place_field(self, field: FieldDefinition, offset: int) -> ResolvedField:
        field_type = field.field_type
        count = 1
        if isinstance(field_type, ArrayType):
            count = field_type.count
            field_type = field_type.element
        
        nested = None
        if isinstance(field_type, PrimitiveType):
            element_size = field_type.kind.size
        elif isinstance(field_type, NestedType):
            nested = self._layouts[field_type.name]
            element_size = nested.total_size
        else:
            raise TypeError(f"Unsupported field type: {field_type!r}")
        
        return ResolvedField(
            name=field.name,
            field_type=field.field_type,
            offset=offset,
            size=element_size * count,
            is_padding=field.is_padding,
            nested=nested,
        )


def _value_count(field: ResolvedField) -> int:
    count = 1
    if isinstance(field.field_type, ArrayType):
        count = field.field_type.count
    if field.nested is None:
        return count
    return count * (1 + field.nested.value_count)
