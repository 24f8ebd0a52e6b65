"""Route tree structure for organizing routes into a hierarchy.

This module provides the TreeNode dataclass and RouteTreeBuilder class that
insert normalized routes into a trie keyed by path segment. Literal segments
live under ``static`` and ``:name`` segments under ``params``; every map keeps
insertion order, which is the order of the fetched route list.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from lixqa_client.codegen.names import is_param_segment, split_path
from lixqa_client.codegen.routes import Route

__all__ = ['RouteTreeBuilder', 'TreeNode', 'build_route_tree']

logger = logging.getLogger(__name__)


@dataclass
class TreeNode:
    """One node of the route trie.

    Attributes:
        static: Children reached through a literal segment.
        params: Children reached through a path parameter, keyed by the
            parameter name without its leading colon.
        methods: Routes ending at this node, keyed by HTTP method.
    """

    static: dict[str, TreeNode] = field(default_factory=dict)
    params: dict[str, TreeNode] = field(default_factory=dict)
    methods: dict[str, Route] = field(default_factory=dict)

    def walk(self) -> Iterator[tuple[list[str], TreeNode]]:
        """Iterate over all nodes depth-first in insertion order.

        Yields:
            Tuples of (segments, node), where parameter segments keep their
            leading colon.
        """
        yield from self._walk_recursive([])

    def _walk_recursive(
        self, current_path: list[str]
    ) -> Iterator[tuple[list[str], TreeNode]]:
        yield current_path, self

        for segment, child in self.static.items():
            yield from child._walk_recursive(current_path + [segment])
        for name, child in self.params.items():
            yield from child._walk_recursive(current_path + [f':{name}'])

    def leaves(self) -> Iterator[tuple[str, str, Route]]:
        """Iterate over every registered (path, method, route) triple."""
        for _, node in self.walk():
            for method, route in node.methods.items():
                yield route.path, method, route

    def count_methods(self) -> int:
        """Count the methods registered in this subtree."""
        return sum(len(node.methods) for _, node in self.walk())

    def is_empty(self) -> bool:
        return not (self.static or self.params or self.methods)


class RouteTreeBuilder:
    """Builds a TreeNode trie from normalized routes.

    Conflicts the route list cannot express unambiguously are resolved here
    and reported through the logger:

    - A second parameter name under the same node is merged into the existing
      parameter child, because a node can only bind one positional value.
    - Literal siblings that differ only by case stay distinct children.
    - A method registered twice for the same node keeps the later route.

    Example:
        >>> builder = RouteTreeBuilder()
        >>> root = builder.build(routes)
        >>> [(p, m) for p, m, _ in root.leaves()]
    """

    def __init__(self):
        self.root = TreeNode()

    def build(self, routes: Iterable[Route]) -> TreeNode:
        for route in routes:
            self.add_route(route)
        return self.root

    def add_route(self, route: Route) -> None:
        node = self.root
        for segment in split_path(route.path):
            if is_param_segment(segment):
                node = self._param_child(node, segment[1:], route)
            else:
                node = self._static_child(node, segment, route)

        for method in route.methods:
            if route.is_disabled(method):
                logger.debug(f'Skipping disabled method: {method} {route.path}')
                continue
            if method in node.methods and node.methods[method] is not route:
                logger.warning(
                    f'{method} {route.path} replaces {method} {node.methods[method].path}'
                )
            node.methods[method] = route

    def _static_child(self, node: TreeNode, segment: str, route: Route) -> TreeNode:
        if segment not in node.static:
            for sibling in node.static:
                if sibling.lower() == segment.lower():
                    logger.warning(
                        f"Segment '{segment}' of {route.path} differs from sibling "
                        f"'{sibling}' only by case"
                    )
            node.static[segment] = TreeNode()
        return node.static[segment]

    def _param_child(self, node: TreeNode, name: str, route: Route) -> TreeNode:
        if name in node.params:
            return node.params[name]
        if node.params:
            existing = next(iter(node.params))
            logger.warning(
                f"Parameter ':{name}' of {route.path} is merged into ':{existing}'"
            )
            return node.params[existing]
        node.params[name] = TreeNode()
        return node.params[name]


def build_route_tree(routes: Iterable[Route]) -> TreeNode:
    """Build the route trie for ``routes``."""
    return RouteTreeBuilder().build(routes)
