import os
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lixqa_client.exceptions import ConfigurationError

DEFAULT_FILENAMES = ['lixqa.yaml', 'lixqa.yml']
DEFAULT_URL = 'http://localhost:3000'
DEFAULT_OUTPUT = './generated/api_client.py'
PYPROJECT_TABLE = 'lixqa-client'


class GeneratorConfig(BaseSettings):
    """Settings for a single client generation run.

    Values can come from a YAML file, the ``[tool.lixqa-client]`` table of
    ``pyproject.toml``, ``LIXQA_*`` environment variables or CLI flags.
    """

    model_config = SettingsConfigDict(env_prefix='LIXQA_', extra='ignore')

    url: str = Field(
        DEFAULT_URL,
        description='Base URL of the API exposing the __client__ route schema, or a local schema file.',
    )

    output: str = Field(
        DEFAULT_OUTPUT, description='Path of the generated client module.'
    )

    format: bool = Field(
        True, description='Whether to run a formatter over the generated module.'
    )

    debug: bool = Field(False, description='Enable debug logging.')

    separate_types: bool = Field(
        False,
        description='Emit one named type alias per route, method and role instead of inlining types.',
    )

    use_types_v2: bool = Field(
        False,
        description='Emit a flat RouteTypeMap lookup table. Requires separate_types.',
    )

    with_schemas: bool = Field(
        False,
        description='Emit a RouteSchemaMap of pydantic TypeAdapters for runtime validation.',
    )

    @model_validator(mode='after')
    def _check_type_modes(self) -> 'GeneratorConfig':
        if self.use_types_v2 and not self.separate_types:
            raise ConfigurationError(
                'use_types_v2 requires separate_types to be enabled',
                field='use_types_v2',
            )
        return self


def load_yaml(path: str | Path) -> dict:
    import yaml

    return yaml.safe_load(Path(path).read_text()) or {}


def _validate(data: Any, config_path: str) -> GeneratorConfig:
    if not isinstance(data, dict):
        raise ConfigurationError('configuration must be a mapping', config_path)
    return GeneratorConfig.model_validate(data)


def get_config(path: str | None = None) -> GeneratorConfig:
    """Load configuration from a file, falling back to defaults."""
    if path:
        if not Path(path).exists():
            raise ConfigurationError('configuration file not found', path)
        return _validate(load_yaml(path), path)

    cwd = os.getcwd()

    for filename in DEFAULT_FILENAMES:
        path = Path(cwd) / filename
        if path.exists():
            return _validate(load_yaml(path), str(path))

    path = Path(cwd) / 'pyproject.toml'

    if path.exists():
        import tomllib

        pyproject = tomllib.loads(path.read_text())
        tools = pyproject.get('tool', {})

        if PYPROJECT_TABLE in tools:
            return _validate(tools[PYPROJECT_TABLE], str(path))

    return GeneratorConfig()
