"""Code generation module for lixqa-client.

This module provides the generator that turns a server's route schema into a
typed Python client module.

Main Components:
    - Codegen: The orchestrator of one generation run
    - SchemaLoader: Fetches the ``__client__`` route schema or reads it from a file
    - normalize_routes: Filters and completes the fetched routes
    - RouteTreeBuilder: Arranges routes into a segment trie
    - TypeConverter: Maps type descriptors to Python annotations
    - ClientEmitter: Emits the interface, implementation and lookup tables

Example:
    >>> from lixqa_client.codegen import Codegen
    >>> from lixqa_client.config import GeneratorConfig
    >>>
    >>> config = GeneratorConfig(
    ...     url="http://localhost:3000",
    ...     output="./generated/api_client.py"
    ... )
    >>> codegen = Codegen(config)
    >>> codegen.generate()
"""

from lixqa_client.codegen.ast_utils import ImportCollector
from lixqa_client.codegen.codegen import Codegen, GenerationResult, make_renderer
from lixqa_client.codegen.descriptors import Descriptor, parse_descriptor
from lixqa_client.codegen.emitter import (
    ClientEmitter,
    RouteTypeMapRenderer,
    SeparateTypeRenderer,
    TypeRenderer,
)
from lixqa_client.codegen.names import normalize_route_path, params_type_name, type_name
from lixqa_client.codegen.routes import FileUploadInfo, MethodSpec, Route, normalize_routes
from lixqa_client.codegen.schema_loader import SchemaLoader
from lixqa_client.codegen.tree import RouteTreeBuilder, TreeNode, build_route_tree
from lixqa_client.codegen.types import TypeContext, TypeConverter, has_required_fields
from lixqa_client.codegen.writer import ModuleWriter, format_source, render_module

__all__ = [
    # Main codegen class
    'Codegen',
    'GenerationResult',
    'make_renderer',
    # Schema handling
    'SchemaLoader',
    'Route',
    'MethodSpec',
    'FileUploadInfo',
    'normalize_routes',
    # Route tree
    'TreeNode',
    'RouteTreeBuilder',
    'build_route_tree',
    # Names
    'type_name',
    'params_type_name',
    'normalize_route_path',
    # Type conversion
    'Descriptor',
    'parse_descriptor',
    'TypeContext',
    'TypeConverter',
    'has_required_fields',
    # Code emission
    'ClientEmitter',
    'TypeRenderer',
    'SeparateTypeRenderer',
    'RouteTypeMapRenderer',
    'ImportCollector',
    'ModuleWriter',
    'format_source',
    'render_module',
]
