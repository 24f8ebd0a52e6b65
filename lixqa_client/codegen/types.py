"""Conversion of type constraint descriptors into Python annotations.

This module provides:
- TypeDefinition for a named type hoisted to module level
- TypeContext, the accumulator of definitions and imports for one module
- TypeConverter, which maps descriptors to annotation ASTs
- has_required_fields, used to decide whether a payload argument is required

Conversion never fails: missing or unrecognised parts of a descriptor degrade
to ``Any`` and are reported at debug level.
"""

import ast
import dataclasses
import keyword
import logging
from typing import Any, assert_never

from lixqa_client.codegen.ast_utils import (
    ImportCollector,
    _assign,
    _call,
    _class,
    _constant,
    _dict,
    _name,
    _subscript,
    _tuple,
    _type_alias,
    _union_expr,
)
from lixqa_client.codegen.descriptors import (
    ArrayDescriptor,
    DefaultDescriptor,
    Descriptor,
    EnumDescriptor,
    LazyDescriptor,
    LiteralDescriptor,
    NonOptionalDescriptor,
    NullableDescriptor,
    ObjectDescriptor,
    OptionalDescriptor,
    PipeDescriptor,
    PrimitiveDescriptor,
    TransformDescriptor,
    UnionDescriptor,
    UnknownDescriptor,
    descriptor_kind,
    is_optional_field,
)
from lixqa_client.codegen.names import to_pascal_case
from lixqa_client.codegen.utils import sanitize_identifier, unique_identifier

__all__ = [
    'TypeContext',
    'TypeConverter',
    'TypeDefinition',
    'has_required_fields',
    'is_any',
]

logger = logging.getLogger(__name__)

_PRIMITIVE_TYPE_MAP: dict[str, tuple[str | None, str | None]] = {
    # kind: (module, name); a None name stands for the None constant
    'string': ('builtins', 'str'),
    'number': ('builtins', 'float'),
    'boolean': ('builtins', 'bool'),
    'date': ('datetime', 'datetime'),
    'null': (None, None),
    'void': (None, None),
    'never': ('typing', 'Never'),
    'any': ('typing', 'Any'),
}


@dataclasses.dataclass
class TypeDefinition:
    name: str
    implementation_ast: ast.stmt
    # Structural key used to reuse an identical TypedDict for the same name hint
    signature: tuple | None = None


class TypeContext:
    """Accumulates the module-level type definitions and imports of one module.

    A context is created per generation run and threaded through every
    converter that contributes to the module, so definitions are emitted once
    and names stay unique.
    """

    def __init__(self):
        self.definitions: dict[str, TypeDefinition] = {}
        self.imports = ImportCollector()
        self._reserved: set[str] = set()

    def unique_name(self, hint: str) -> str:
        taken = self.definitions.keys() | self._reserved
        return unique_identifier(sanitize_identifier(hint), taken)

    def reserve(self, hint: str) -> str:
        """Reserve a unique name for a definition that is not built yet."""
        name = self.unique_name(hint)
        self._reserved.add(name)
        return name

    def release(self, name: str) -> None:
        self._reserved.discard(name)

    def define(
        self, name: str, node: ast.stmt, signature: tuple | None = None
    ) -> TypeDefinition:
        self._reserved.discard(name)
        definition = TypeDefinition(name=name, implementation_ast=node, signature=signature)
        self.definitions[name] = definition
        return definition

    def find(self, hint: str, signature: tuple) -> str | None:
        """Find an existing definition built from the same hint and structure."""
        base = sanitize_identifier(hint)
        for name, definition in self.definitions.items():
            if definition.signature != signature:
                continue
            if name == base or (
                name.startswith(base) and name[len(base) :].isdigit()
            ):
                return name
        return None

    def add_import(self, module: str, name: str) -> None:
        self.imports.add_import(module, name)

    def statements(self) -> list[ast.stmt]:
        return [definition.implementation_ast for definition in self.definitions.values()]


def is_any(annotation: ast.expr) -> bool:
    return isinstance(annotation, ast.Name) and annotation.id == 'Any'


def has_required_fields(descriptor: Descriptor | None) -> bool:
    """Whether a payload described by ``descriptor`` must be passed.

    Objects need an argument only if at least one field is neither optional
    nor defaulted. Anything that is not an object with a shape is treated as
    required content.
    """
    if descriptor is None:
        return False
    if isinstance(descriptor, UnknownDescriptor) and descriptor.kind is None:
        # Not shaped like a descriptor at all
        return False
    if isinstance(descriptor, ObjectDescriptor) and descriptor.shape is not None:
        return any(not is_optional_field(field) for field in descriptor.shape.values())
    return True


class TypeConverter:
    """Converts descriptors into annotation ASTs.

    Object shapes are hoisted into ``TypedDict`` definitions named after the
    ``name_hint`` passed to :meth:`convert`, extended with the field path for
    nested objects. Self-referential lazy descriptors become named recursive
    types.

    In schema mode the produced expressions are meant for
    ``pydantic.TypeAdapter`` and ``pipe`` descriptors are followed; otherwise
    a pipe is left open.

    Example:
        >>> context = TypeContext()
        >>> converter = TypeConverter(context)
        >>> ast.unparse(converter.convert(parse_descriptor(
        ...     {'def': {'type': 'array', 'element': {'def': {'type': 'string'}}}})))
        'list[str]'
    """

    def __init__(self, context: TypeContext | None = None, schema_mode: bool = False):
        self.context = context if context is not None else TypeContext()
        self.schema_mode = schema_mode
        self._resolving: dict[int, str] = {}
        self._recursive: set[int] = set()
        self._claimable: str | None = None

    def convert(self, descriptor: Descriptor | None, name_hint: str = 'Anonymous') -> ast.expr:
        """Convert a descriptor into an annotation expression.

        Args:
            descriptor: The descriptor to convert, or None when the payload
                was not declared.
            name_hint: Base name for any definition hoisted while converting.

        Returns:
            The annotation AST. Imports it needs are added to the context.
        """
        if descriptor is None:
            return self._open('missing descriptor')

        if isinstance(descriptor, PrimitiveDescriptor):
            return self._primitive(descriptor.kind)
        elif isinstance(descriptor, EnumDescriptor):
            return self._enum(descriptor)
        elif isinstance(descriptor, LiteralDescriptor):
            return self._literal(descriptor)
        elif isinstance(
            descriptor, OptionalDescriptor | NonOptionalDescriptor | DefaultDescriptor
        ):
            # Optionality is decided by the field that holds the value
            return self._inner(descriptor, name_hint)
        elif isinstance(descriptor, NullableDescriptor):
            inner = self._inner(descriptor, name_hint)
            if isinstance(inner, ast.Constant) and inner.value is None:
                return inner
            return _union_expr([inner, _constant(None)])
        elif isinstance(descriptor, LazyDescriptor):
            return self._lazy(descriptor, name_hint)
        elif isinstance(descriptor, ArrayDescriptor):
            if descriptor.element is None:
                element = self._open('array without element')
            else:
                element = self.convert(descriptor.element, f'{name_hint}Item')
            return _subscript('list', element)
        elif isinstance(descriptor, ObjectDescriptor):
            return self._object(descriptor, name_hint)
        elif isinstance(descriptor, UnionDescriptor):
            return self._union(descriptor, name_hint)
        elif isinstance(descriptor, PipeDescriptor):
            return self._pipe(descriptor, name_hint)
        elif isinstance(descriptor, TransformDescriptor):
            return self._open('transform')
        elif isinstance(descriptor, UnknownDescriptor):
            return self._open(f'unknown kind {descriptor.kind!r}')
        else:
            assert_never(descriptor)

    def _open(self, reason: str) -> ast.Name:
        logger.debug(f'Using Any for {reason}')
        self.context.add_import('typing', 'Any')
        return _name('Any')

    def _primitive(self, kind: str) -> ast.expr:
        module, name = _PRIMITIVE_TYPE_MAP[kind]
        if name is None:
            return _constant(None)
        self.context.add_import(module, name)
        return _name(name)

    def _literal_expr(self, values: list[Any]) -> ast.expr:
        self.context.add_import('typing', 'Literal')
        elts = [_constant(value) for value in values]
        return _subscript('Literal', elts[0] if len(elts) == 1 else _tuple(elts))

    def _enum(self, descriptor: EnumDescriptor) -> ast.expr:
        if not descriptor.values:
            return _name('str')
        return self._literal_expr(list(descriptor.values))

    def _literal(self, descriptor: LiteralDescriptor) -> ast.expr:
        if not descriptor.values:
            return self._open('literal without a value')

        literals: list[Any] = []
        members: list[ast.expr] = []
        for value in descriptor.values:
            if value is None:
                continue
            if isinstance(value, bool | int | str):
                literals.append(value)
            elif isinstance(value, float):
                # Literal[] cannot hold floats
                members.append(_name('float'))
            else:
                return self._open(f'literal of {type(value).__name__}')

        if literals:
            members.insert(0, self._literal_expr(literals))
        if None in descriptor.values:
            members.append(_constant(None))
        return _union_expr(self._dedupe(members))

    def _inner(self, descriptor, name_hint: str) -> ast.expr:
        if descriptor.inner is None:
            return self._open(f'{descriptor_kind(descriptor)} without inner type')
        return self.convert(descriptor.inner, name_hint)

    def _union(self, descriptor: UnionDescriptor, name_hint: str) -> ast.expr:
        if not descriptor.options:
            return self._open('union without options')
        members = [
            self.convert(option, f'{name_hint}Variant{index}')
            for index, option in enumerate(descriptor.options, start=1)
        ]
        return _union_expr(self._dedupe(members))

    def _pipe(self, descriptor: PipeDescriptor, name_hint: str) -> ast.expr:
        if not self.schema_mode:
            return self._open('pipe outside schema mode')
        if descriptor.output is not None and not isinstance(
            descriptor.output, TransformDescriptor
        ):
            return self.convert(descriptor.output, name_hint)
        if descriptor.input is not None:
            return self.convert(descriptor.input, name_hint)
        return self._open('pipe without input or output')

    def _lazy(self, descriptor: LazyDescriptor, name_hint: str) -> ast.expr:
        key = descriptor.key
        if key in self._resolving:
            # Re-entered while resolving: refer to the type by name
            self._recursive.add(key)
            return _name(self._resolving[key])

        if descriptor.resolver is None:
            return self._open('lazy descriptor without a resolver')
        try:
            resolved = descriptor.resolver()
        except Exception as e:
            logger.debug(f'Lazy resolver for {name_hint} failed: {e}')
            return self._open('lazy descriptor whose resolver failed')

        name = self.context.reserve(name_hint)
        self._resolving[key] = name
        if isinstance(resolved, ObjectDescriptor):
            # The resolved object becomes the named type itself
            self._claimable = name
        try:
            annotation = self.convert(resolved, name)
        finally:
            del self._resolving[key]
            self._claimable = None

        if key not in self._recursive:
            self.context.release(name)
            return annotation

        self._recursive.discard(key)
        if isinstance(annotation, ast.Name) and annotation.id == name:
            return annotation
        self.context.define(name, _type_alias(name, annotation))
        return _name(name)

    def _object(self, descriptor: ObjectDescriptor, name_hint: str) -> ast.expr:
        if descriptor.shape is None:
            self.context.add_import('typing', 'Any')
            return _subscript('dict', _tuple([_name('str'), _name('Any')]))

        claimed = self._claimable == name_hint
        self._claimable = None

        fields: list[tuple[str, ast.expr, bool]] = []
        for field_name, field in descriptor.shape.items():
            annotation = self.convert(
                field, name_hint + to_pascal_case(sanitize_identifier(field_name))
            )
            fields.append((field_name, annotation, not is_optional_field(field)))

        signature = tuple(
            (field_name, ast.dump(annotation), required)
            for field_name, annotation, required in fields
        )

        if claimed:
            name = name_hint
        else:
            existing = self.context.find(name_hint, signature)
            if existing is not None:
                return _name(existing)
            name = self.context.unique_name(name_hint)

        self.context.add_import('typing', 'TypedDict')
        self.context.define(name, self._typed_dict(name, fields), signature)
        return _name(name)

    def _typed_dict(
        self, name: str, fields: list[tuple[str, ast.expr, bool]]
    ) -> ast.stmt:
        def annotation_for(annotation: ast.expr, required: bool) -> ast.expr:
            if required:
                return annotation
            self.context.add_import('typing', 'NotRequired')
            return _subscript('NotRequired', annotation)

        if all(
            field_name.isidentifier() and not keyword.iskeyword(field_name)
            for field_name, _, _ in fields
        ):
            body: list[ast.stmt] = [
                ast.AnnAssign(
                    target=ast.Name(id=field_name, ctx=ast.Store()),
                    annotation=annotation_for(annotation, required),
                    value=None,
                    simple=1,
                )
                for field_name, annotation, required in fields
            ]
            return _class(name, [_name('TypedDict')], body)

        # Keys that are not identifiers need the functional syntax, whose
        # values are evaluated eagerly, so they are written as forward references
        return _assign(
            _name(name),
            _call(
                _name('TypedDict'),
                [
                    _constant(name),
                    _dict(
                        {
                            field_name: _constant(
                                ast.unparse(annotation_for(annotation, required))
                            )
                            for field_name, annotation, required in fields
                        }
                    ),
                ],
            ),
        )

    @staticmethod
    def _dedupe(members: list[ast.expr]) -> list[ast.expr]:
        seen: set[str] = set()
        unique: list[ast.expr] = []
        for member in members:
            dumped = ast.dump(member)
            if dumped not in seen:
                seen.add(dumped)
                unique.append(member)
        return unique
