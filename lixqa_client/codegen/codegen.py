"""Code generation orchestration for lixqa-client.

This module provides the Codegen class that drives one generation run: load
the route schema, normalize it, build the route tree, emit the client module
and write it out.
"""

import ast
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any

from lixqa_client.codegen.ast_utils import _all, _constant
from lixqa_client.codegen.emitter import (
    ClientEmitter,
    RouteTypeMapRenderer,
    SeparateTypeRenderer,
    TypeRenderer,
)
from lixqa_client.codegen.routes import Route, count_methods, normalize_routes
from lixqa_client.codegen.schema_loader import SchemaLoader
from lixqa_client.codegen.tree import build_route_tree
from lixqa_client.codegen.types import TypeContext
from lixqa_client.codegen.writer import ModuleWriter
from lixqa_client.config import GeneratorConfig

__all__ = ['Codegen', 'GenerationResult', 'make_renderer']

logger = logging.getLogger(__name__)

MODULE_TITLE = 'Auto-generated API client'


@dataclasses.dataclass
class GenerationResult:
    routes: int
    methods: int
    output: str


def make_renderer(config: GeneratorConfig, context: TypeContext) -> TypeRenderer:
    """Pick the type rendering strategy for the configured mode."""
    if config.use_types_v2:
        return RouteTypeMapRenderer(context)
    if config.separate_types:
        return SeparateTypeRenderer(context)
    return TypeRenderer(context)


def module_docstring(base_url: str, generated_at: datetime) -> str:
    return (
        f'{MODULE_TITLE}.\n\n'
        f'Generated at: {generated_at.isoformat()}\n'
        f'Base URL: {base_url}\n\n'
        'DO NOT EDIT THIS FILE MANUALLY\n'
    )


class Codegen:
    """Generates a typed client module from a server's route schema.

    Example:
        >>> config = GeneratorConfig(url='http://localhost:3000', output='./client.py')
        >>> result = Codegen(config).generate()
        >>> print(f'{result.routes} routes written to {result.output}')
    """

    def __init__(self, config: GeneratorConfig, schema_loader: SchemaLoader | None = None):
        self.config = config
        self.schema_loader = schema_loader or SchemaLoader()
        self.writer = ModuleWriter(format_code=config.format)

    def build_module(
        self, routes: list[Route], generated_at: datetime | None = None
    ) -> list[ast.stmt]:
        """Assemble the statements of the generated module.

        Args:
            routes: Normalized routes, in server order.
            generated_at: Timestamp written to the module header. Defaults
                to the current time.

        Returns:
            The module body, ready to be rendered.
        """
        generated_at = generated_at or datetime.now(timezone.utc)

        tree = build_route_tree(routes)
        context = TypeContext()
        renderer = make_renderer(self.config, context)
        emitter = ClientEmitter(renderer)

        emitter.collect_types(tree)
        interface = emitter.emit_interface(tree)
        type_map = emitter.emit_flat_type_map(tree) if renderer.emits_type_map else []
        request_defaults = emitter.emit_request_defaults(self.config.url)
        implementation = emitter.emit_implementation(tree)
        client_factory = emitter.emit_client_factory()
        schema_map = emitter.emit_flat_schema_map(tree) if self.config.with_schemas else []

        exported = [*context.definitions, *emitter.interface_names]
        if type_map:
            exported += ['RouteTypeMap', 'RoutePath', 'route_type']
        exported += ['create_client', 'generate_api_object', 'api']
        if schema_map:
            exported += ['RouteSchemaMap', 'get_schema']

        # Interface annotations reference protocols defined further down
        context.add_import('__future__', 'annotations')

        return [
            ast.Expr(value=_constant(module_docstring(self.config.url, generated_at))),
            *context.imports.to_ast(),
            _all(exported),
            *context.statements(),
            *type_map,
            *interface,
            *request_defaults,
            implementation,
            *client_factory,
            *schema_map,
        ]

    def build_source(
        self, raw_routes: list[Any], generated_at: datetime | None = None
    ) -> str:
        """Normalize ``raw_routes`` and render the client module source."""
        routes = normalize_routes(raw_routes)
        return self.writer.render(self.build_module(routes, generated_at))

    def generate(self) -> GenerationResult:
        """Run a full generation and write the module to the configured output.

        Returns:
            Counts of the emitted routes and methods, and the written path.

        Raises:
            SchemaLoadError: If the route schema cannot be loaded.
            RouteDefinitionError: If a route in the payload is malformed.
            CodeGenerationError: If the emitted module is not valid Python.
            OutputError: If the module cannot be written.
        """
        raw_routes = self.schema_loader.load(self.config.url)
        routes = normalize_routes(raw_routes)

        source = self.writer.render(self.build_module(routes))
        output = self.writer.write(source, self.config.output)

        result = GenerationResult(
            routes=len(routes), methods=count_methods(routes), output=output
        )
        logger.info(f'Generated API client: {output}')
        logger.info(f'  Routes: {result.routes}')
        logger.info(f'  Methods: {result.methods}')
        return result
