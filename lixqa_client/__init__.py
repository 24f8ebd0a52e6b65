"""lixqa-client - Generate typed Python clients for Lixqa APIs.

lixqa-client fetches the route schema a running API publishes at
``/__client__`` and generates a Python module exposing every route as a
typed, chainable async object: ``await api.users(42).posts.get()``.

Quick Start:
    >>> from lixqa_client import Codegen, GeneratorConfig
    >>>
    >>> config = GeneratorConfig(
    ...     url="http://localhost:3000",
    ...     output="./generated/api_client.py"
    ... )
    >>> Codegen(config).generate()

CLI Usage:
    $ lixqa-client generate --url http://localhost:3000
    $ lixqa-client generate -o ./client.py --separate-types --use-types-v2
    $ lixqa-client generate --with-schemas  # Also emit pydantic TypeAdapters
"""

import importlib

from lixqa_client.exceptions import (
    CodeGenerationError,
    ConfigurationError,
    LixqaError,
    OutputError,
    RouteDefinitionError,
    SchemaError,
    SchemaLoadError,
)

__all__ = [
    # Main classes
    'Codegen',
    'GenerationResult',
    'SchemaLoader',
    # Configuration
    'GeneratorConfig',
    'get_config',
    # Exceptions
    'LixqaError',
    'SchemaError',
    'SchemaLoadError',
    'RouteDefinitionError',
    'CodeGenerationError',
    'ConfigurationError',
    'OutputError',
]

# Generated modules import lixqa_client.runtime, which must not load the
# generator stack (pydantic-settings, PyYAML, universal-pathlib, black)
_LAZY_ATTRIBUTES = {
    'Codegen': 'lixqa_client.codegen.codegen',
    'GenerationResult': 'lixqa_client.codegen.codegen',
    'SchemaLoader': 'lixqa_client.codegen.schema_loader',
    'GeneratorConfig': 'lixqa_client.config',
    'get_config': 'lixqa_client.config',
}


def __getattr__(name: str):
    module = _LAZY_ATTRIBUTES.get(name)
    if module is None:
        raise AttributeError(f'module {__name__!r} has no attribute {name!r}')
    return getattr(importlib.import_module(module), name)


try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version('lixqa-client')
except PackageNotFoundError:
    __version__ = 'unknown'
