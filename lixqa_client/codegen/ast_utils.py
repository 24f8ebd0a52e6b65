"""Small AST builders and the import collector used by the emitter.

Generated modules are assembled as ``ast`` trees and unparsed at the end, so
every construct the emitter writes (annotations, lambdas, f-string paths,
Protocol stubs, ``type`` aliases) has a builder here.
"""

import ast
import sys
from collections import defaultdict
from collections.abc import Iterable

__all__ = [
    # AST helpers
    '_name',
    '_attr',
    '_subscript',
    '_union_expr',
    '_constant',
    '_tuple',
    '_dict',
    '_argument',
    '_keyword',
    '_assign',
    '_type_alias',
    '_call',
    '_lambda',
    '_fstring',
    '_func',
    '_async_func',
    '_class',
    '_all',
    # Import collection
    'ImportCollector',
]


def _name(name: str) -> ast.Name:
    return ast.Name(id=name, ctx=ast.Load())


def _attr(value: str | ast.expr, attr: str) -> ast.Attribute:
    return ast.Attribute(
        value=_name(value) if isinstance(value, str) else value,
        attr=attr,
        ctx=ast.Load(),
    )


def _subscript(generic: str, inner: ast.expr) -> ast.Subscript:
    return ast.Subscript(value=_name(generic), slice=inner, ctx=ast.Load())


def _union_expr(types: list[ast.expr]) -> ast.expr:
    # A | B | C (using pipe operator instead of Union[A, B, C])
    if not types:
        raise ValueError('_union_expr requires at least one type')
    if len(types) == 1:
        return types[0]
    result = types[0]
    for t in types[1:]:
        result = ast.BinOp(left=result, op=ast.BitOr(), right=t)
    return result


def _constant(value) -> ast.Constant:
    return ast.Constant(value=value)


def _tuple(elts: list[ast.expr]) -> ast.Tuple:
    return ast.Tuple(elts=elts, ctx=ast.Load())


def _dict(items: dict[str, ast.expr]) -> ast.Dict:
    return ast.Dict(
        keys=[_constant(key) for key in items],
        values=list(items.values()),
    )


def _argument(name: str, value: ast.expr | None = None) -> ast.arg:
    return ast.arg(
        arg=name,
        annotation=value,
    )


def _keyword(name: str, value: ast.expr) -> ast.keyword:
    return ast.keyword(arg=name, value=value)


def _assign(target: ast.expr, value: ast.expr) -> ast.Assign:
    if isinstance(target, ast.Name):
        target = ast.Name(id=target.id, ctx=ast.Store())
    elif isinstance(target, ast.Attribute):
        # For attributes, only the outermost needs Store context
        target.ctx = ast.Store()
    return ast.Assign(
        targets=[target],
        value=value,
    )


def _type_alias(name: str, value: ast.expr) -> ast.TypeAlias:
    # type Name = value (evaluated lazily, so it may refer to itself)
    return ast.TypeAlias(
        name=ast.Name(id=name, ctx=ast.Store()),
        type_params=[],
        value=value,
    )


def _call(
    func: ast.expr,
    args: list[ast.expr] | None = None,
    keywords: list[ast.keyword] | None = None,
) -> ast.Call:
    return ast.Call(
        func=func,
        args=args or [],
        keywords=keywords or [],
    )


def _lambda(
    body: ast.expr,
    args: list[str] | None = None,
    kwonlyargs: list[str] | None = None,
    kw_defaults: list[ast.expr | None] | None = None,
) -> ast.Lambda:
    kwonlyargs = kwonlyargs or []
    return ast.Lambda(
        args=ast.arguments(
            posonlyargs=[],
            args=[_argument(arg) for arg in args or []],
            kwonlyargs=[_argument(arg) for arg in kwonlyargs],
            kw_defaults=kw_defaults or [None] * len(kwonlyargs),
            defaults=[],
        ),
        body=body,
    )


def _fstring(parts: list[str | ast.expr]) -> ast.expr:
    # Plain strings stay constants, anything else becomes an f-string
    if all(isinstance(part, str) for part in parts):
        return _constant(''.join(parts))
    values: list[ast.expr] = []
    pending = ''
    for part in parts:
        if isinstance(part, str):
            pending += part
            continue
        if pending:
            values.append(_constant(pending))
            pending = ''
        values.append(ast.FormattedValue(value=part, conversion=-1))
    if pending:
        values.append(_constant(pending))
    return ast.JoinedStr(values=values)


def _func(
    name: str,
    args: list[ast.arg],
    body: list[ast.stmt],
    returns: ast.expr | None = None,
    kwargs: ast.arg = None,
    kwonlyargs: list[ast.arg] = None,
    kw_defaults: list[ast.expr] = None,
    defaults: list[ast.expr] = None,
) -> ast.FunctionDef:
    return ast.FunctionDef(
        name=name,
        args=ast.arguments(
            posonlyargs=[],
            args=args,
            kwarg=kwargs,
            kwonlyargs=kwonlyargs or [],
            kw_defaults=kw_defaults or [],
            defaults=defaults or [],
        ),
        body=body,
        decorator_list=[],
        returns=returns,
        type_params=[],
    )


def _async_func(
    name: str,
    args: list[ast.arg],
    body: list[ast.stmt],
    returns: ast.expr | None = None,
    kwargs: ast.arg = None,
    kwonlyargs: list[ast.arg] = None,
    kw_defaults: list[ast.expr] = None,
) -> ast.AsyncFunctionDef:
    return ast.AsyncFunctionDef(
        name=name,
        args=ast.arguments(
            posonlyargs=[],
            args=args,
            kwarg=kwargs,
            kwonlyargs=kwonlyargs or [],
            kw_defaults=kw_defaults or [],
            defaults=[],
        ),
        body=body,
        decorator_list=[],
        returns=returns,
        type_params=[],
    )


def _class(
    name: str,
    bases: list[ast.expr],
    body: list[ast.stmt],
    docstring: str | None = None,
) -> ast.ClassDef:
    if docstring:
        body = [ast.Expr(value=_constant(docstring))] + body
    return ast.ClassDef(
        name=name,
        bases=bases,
        keywords=[],
        body=body or [ast.Pass()],
        decorator_list=[],
        type_params=[],
    )


def _all(names: Iterable[str]) -> ast.Assign:
    return _assign(
        target=_name('__all__'),
        value=_tuple([_constant(name) for name in names]),
    )


# =============================================================================
# Import Collection
# =============================================================================


class ImportCollector:
    """Collects the ``from module import name`` lines of a generated module.

    Names are grouped per module. The block is emitted as ``__future__``,
    standard library, third-party and relative modules, each sorted, so two
    runs over the same routes yield the same imports.

    Example:
        >>> collector = ImportCollector()
        >>> collector.add_import('typing', 'Protocol')
        >>> collector.add_import('lixqa_client.runtime', 'ApiNode')
        >>> [ast.unparse(stmt) for stmt in collector.to_ast()]
        ['from typing import Protocol', 'from lixqa_client.runtime import ApiNode']
    """

    def __init__(self):
        self._imports: dict[str, set[str]] = defaultdict(set)

    def add_import(self, module: str, name: str) -> None:
        # builtins never need an import
        if module != 'builtins':
            self._imports[module].add(name)

    @staticmethod
    def _group(module: str) -> int:
        if module == '__future__':
            return 0
        if module.startswith('.'):
            return 3
        return 1 if module.partition('.')[0] in sys.stdlib_module_names else 2

    def to_ast(self) -> list[ast.ImportFrom]:
        statements = []
        for module in sorted(self._imports, key=lambda m: (self._group(m), m)):
            absolute = module.lstrip('.')
            statements.append(
                ast.ImportFrom(
                    module=absolute or None,
                    names=[ast.alias(name=name) for name in sorted(self._imports[module])],
                    level=len(module) - len(absolute),
                )
            )
        return statements
