"""Building blocks the generated ``generate_api_object`` is made of."""

from collections.abc import Callable, Mapping
from typing import Any, Literal

__all__ = [
    'ApiNode',
    'RouteTypePart',
    'SchemaPart',
    'lookup_route_entry',
]

RouteTypePart = Literal['RequestBody', 'ResponseBody', 'RequestQuery', 'Params']
SchemaPart = Literal['RequestBody', 'ResponseBody', 'RequestQuery']


class ApiNode:
    """One segment of the API object.

    Members (HTTP method callables and literal child segments) become
    attributes. A node with a parameter child is callable: calling it with
    the parameter value returns the child node.

    Example:
        >>> users = ApiNode(lambda id: ApiNode(get=...), get=...)
        >>> users(42).get
    """

    def __init__(self, param: Callable[[Any], 'ApiNode'] | None = None, /, **members: Any):
        self.__param = param
        for name, member in members.items():
            setattr(self, name, member)

    def __call__(self, value: str | int) -> 'ApiNode':
        if self.__param is None:
            raise TypeError('This API node does not take a path parameter')
        return self.__param(value)

    def __repr__(self) -> str:
        members = ', '.join(name for name in vars(self) if not name.startswith('_'))
        return f'ApiNode({members})'


def lookup_route_entry(
    table: Mapping[str, Mapping[str, Mapping[str, Any]]],
    path: str,
    method: str,
    part: str,
) -> Any:
    """Read ``table[path][METHOD][part]``, or None if any level is missing."""
    return table.get(path, {}).get(method.upper(), {}).get(part)
