"""Type constraint descriptors.

The ``__client__`` schema describes request and response payloads with the
internal definition tree of the server's validation library: every node is a
mapping with a ``def`` entry whose ``type`` names the kind of constraint. This
module turns that duck-typed structure into a closed set of descriptor
variants so that type conversion can dispatch on them exhaustively.

Unrecognised kinds, and nodes that are not shaped like descriptors at all,
become :class:`UnknownDescriptor` instead of raising.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from typing import Any

__all__ = [
    'PRIMITIVE_KINDS',
    'Descriptor',
    'PrimitiveDescriptor',
    'EnumDescriptor',
    'LiteralDescriptor',
    'OptionalDescriptor',
    'NonOptionalDescriptor',
    'DefaultDescriptor',
    'NullableDescriptor',
    'LazyDescriptor',
    'ArrayDescriptor',
    'ObjectDescriptor',
    'UnionDescriptor',
    'PipeDescriptor',
    'TransformDescriptor',
    'UnknownDescriptor',
    'descriptor_kind',
    'is_optional_field',
    'parse_descriptor',
]

PRIMITIVE_KINDS = frozenset(
    {'string', 'number', 'boolean', 'date', 'null', 'void', 'never', 'any'}
)


@dataclasses.dataclass(frozen=True)
class PrimitiveDescriptor:
    kind: str


@dataclasses.dataclass(frozen=True)
class EnumDescriptor:
    # None when the node carried neither an enum list nor an entries map
    values: tuple[str, ...] | None


@dataclasses.dataclass(frozen=True)
class LiteralDescriptor:
    values: tuple[Any, ...] | None


@dataclasses.dataclass(frozen=True)
class OptionalDescriptor:
    inner: Descriptor | None


@dataclasses.dataclass(frozen=True)
class NonOptionalDescriptor:
    inner: Descriptor | None


@dataclasses.dataclass(frozen=True)
class DefaultDescriptor:
    inner: Descriptor | None
    default: Any = None
    has_default: bool = False


@dataclasses.dataclass(frozen=True)
class NullableDescriptor:
    inner: Descriptor | None


@dataclasses.dataclass(frozen=True)
class LazyDescriptor:
    """A deferred descriptor, resolved only when a converter asks for it.

    ``key`` identifies the lazy node itself, so a converter can notice when it
    re-enters a descriptor it is still resolving.
    """

    resolver: Callable[[], Descriptor] | None = dataclasses.field(compare=False)
    key: int = 0


@dataclasses.dataclass(frozen=True)
class ArrayDescriptor:
    element: Descriptor | None


@dataclasses.dataclass(frozen=True)
class ObjectDescriptor:
    # Field order is significant and follows the payload
    shape: dict[str, Descriptor] | None = dataclasses.field(hash=False)


@dataclasses.dataclass(frozen=True)
class UnionDescriptor:
    options: tuple[Descriptor, ...] | None


@dataclasses.dataclass(frozen=True)
class PipeDescriptor:
    input: Descriptor | None
    output: Descriptor | None


@dataclasses.dataclass(frozen=True)
class TransformDescriptor:
    pass


@dataclasses.dataclass(frozen=True)
class UnknownDescriptor:
    kind: str | None
    raw: Any = dataclasses.field(default=None, compare=False, hash=False)


Descriptor = (
    PrimitiveDescriptor
    | EnumDescriptor
    | LiteralDescriptor
    | OptionalDescriptor
    | NonOptionalDescriptor
    | DefaultDescriptor
    | NullableDescriptor
    | LazyDescriptor
    | ArrayDescriptor
    | ObjectDescriptor
    | UnionDescriptor
    | PipeDescriptor
    | TransformDescriptor
    | UnknownDescriptor
)


def descriptor_kind(descriptor: Descriptor | None) -> str | None:
    """Return the wire name of a descriptor's kind, mostly for log messages."""
    if descriptor is None:
        return None
    if isinstance(descriptor, PrimitiveDescriptor | UnknownDescriptor):
        return descriptor.kind
    return type(descriptor).__name__.removesuffix('Descriptor').lower()


def is_optional_field(descriptor: Descriptor | None) -> bool:
    """Whether an object field built from ``descriptor`` may be omitted."""
    return isinstance(descriptor, OptionalDescriptor | DefaultDescriptor)


def _optional_child(definition: Mapping, key: str) -> Descriptor | None:
    if definition.get(key) is None:
        return None
    return parse_descriptor(definition[key])


def _parse_lazy(definition: Mapping) -> LazyDescriptor:
    getter = definition.get('getter')
    if not callable(getter) and not isinstance(getter, Mapping):
        return LazyDescriptor(resolver=None, key=id(definition))

    def resolver() -> Descriptor:
        return parse_descriptor(getter() if callable(getter) else getter)

    return LazyDescriptor(resolver=resolver, key=id(definition))


def _parse_enum(definition: Mapping) -> EnumDescriptor:
    values = definition.get('enum')
    if isinstance(values, list | tuple):
        return EnumDescriptor(tuple(str(value) for value in values))
    entries = definition.get('entries')
    if isinstance(entries, Mapping):
        return EnumDescriptor(tuple(str(key) for key in entries))
    return EnumDescriptor(None)


def _parse_literal(definition: Mapping) -> LiteralDescriptor:
    values = definition.get('values')
    if isinstance(values, list | tuple):
        return LiteralDescriptor(tuple(values))
    if 'value' in definition:
        return LiteralDescriptor((definition['value'],))
    return LiteralDescriptor(None)


def _parse_object(definition: Mapping) -> ObjectDescriptor:
    shape = definition.get('shape')
    if not isinstance(shape, Mapping):
        return ObjectDescriptor(None)
    return ObjectDescriptor(
        {str(name): parse_descriptor(field) for name, field in shape.items()}
    )


def _parse_union(definition: Mapping) -> UnionDescriptor:
    options = definition.get('options')
    if not isinstance(options, list | tuple):
        return UnionDescriptor(None)
    return UnionDescriptor(tuple(parse_descriptor(option) for option in options))


def parse_descriptor(raw: Any) -> Descriptor:
    """Parse one node of the wire format into a descriptor variant.

    Args:
        raw: A mapping of the form ``{'def': {'type': <kind>, ...}}``.

    Returns:
        The matching descriptor. Lazy getters are not called here, so
        self-referential payloads parse in bounded time.

    Example:
        >>> parse_descriptor({'def': {'type': 'string'}})
        PrimitiveDescriptor(kind='string')
        >>> parse_descriptor({'def': {'type': 'array'}})
        ArrayDescriptor(element=None)
    """
    if not isinstance(raw, Mapping):
        return UnknownDescriptor(None, raw)
    definition = raw.get('def')
    if not isinstance(definition, Mapping):
        return UnknownDescriptor(None, raw)

    kind = definition.get('type')

    if kind in PRIMITIVE_KINDS:
        return PrimitiveDescriptor(kind)
    if kind == 'enum':
        return _parse_enum(definition)
    if kind == 'literal':
        return _parse_literal(definition)
    if kind == 'optional':
        return OptionalDescriptor(_optional_child(definition, 'innerType'))
    if kind == 'nonoptional':
        return NonOptionalDescriptor(_optional_child(definition, 'innerType'))
    if kind == 'default':
        return DefaultDescriptor(
            _optional_child(definition, 'innerType'),
            default=definition.get('defaultValue'),
            has_default='defaultValue' in definition,
        )
    if kind == 'nullable':
        return NullableDescriptor(_optional_child(definition, 'innerType'))
    if kind == 'lazy':
        return _parse_lazy(definition)
    if kind == 'array':
        return ArrayDescriptor(_optional_child(definition, 'element'))
    if kind == 'object':
        return _parse_object(definition)
    if kind == 'union':
        return _parse_union(definition)
    if kind == 'pipe':
        return PipeDescriptor(
            _optional_child(definition, 'in'), _optional_child(definition, 'out')
        )
    if kind == 'transform':
        return TransformDescriptor()

    return UnknownDescriptor(kind if isinstance(kind, str) else None, raw)
