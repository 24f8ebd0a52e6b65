"""Route models and the route normalizer.

The ``__client__`` endpoint returns one object per server route. Normalizing
drops disabled routes, settles the list of methods each route exposes and
rejects routes that cannot be placed in the client at all.
"""

import dataclasses
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lixqa_client.codegen.descriptors import Descriptor, parse_descriptor
from lixqa_client.exceptions import RouteDefinitionError

__all__ = [
    'DEFAULT_METHOD',
    'FileUploadInfo',
    'MethodSpec',
    'Route',
    'count_methods',
    'has_file_uploads',
    'normalize_routes',
    'parse_file_options',
]

logger = logging.getLogger(__name__)

DEFAULT_METHOD = 'GET'
PARAMS_KEY = 'params'
FILE_OPTIONS_KEY = '__fileOptions'


class FileUploadInfo(BaseModel):
    """Upload constraints attached to a method's ``files`` descriptor."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)

    multiple: bool = False
    required: bool = False
    max_files: int = Field(1, alias='maxFiles')
    allowed_extensions: list[str] = Field(
        default_factory=list, alias='allowedExtensions'
    )
    max_size: int = Field(5 * 1024 * 1024, alias='maxSize')


def has_file_uploads(files: Any) -> bool:
    """Whether a raw ``files`` descriptor declares a file upload."""
    if not isinstance(files, Mapping):
        return False
    definition = files.get('def')
    return (
        isinstance(definition, Mapping)
        and definition.get('type') == 'any'
        and FILE_OPTIONS_KEY in files
    )


def parse_file_options(options: Any) -> FileUploadInfo:
    """Read upload options, falling back to the default of each unusable field."""
    if not isinstance(options, Mapping):
        return FileUploadInfo()

    fields = {key: value for key, value in options.items() if value is not None}
    try:
        return FileUploadInfo.model_validate(fields)
    except ValidationError as e:
        logger.debug(f'Ignoring invalid file upload options: {e}')

    valid = {}
    for key, value in fields.items():
        try:
            FileUploadInfo.model_validate({key: value})
        except ValidationError:
            continue
        valid[key] = value
    return FileUploadInfo.model_validate(valid)


@dataclasses.dataclass(frozen=True)
class MethodSpec:
    """Payload descriptors of one route method; ``None`` means not declared."""

    body: Descriptor | None = None
    query: Descriptor | None = None
    response: Descriptor | None = None
    files: FileUploadInfo | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> 'MethodSpec':
        if not isinstance(raw, Mapping):
            return cls()

        def descriptor(key: str) -> Descriptor | None:
            value = raw.get(key)
            return None if value is None else parse_descriptor(value)

        files = None
        if has_file_uploads(raw.get('files')):
            files = parse_file_options(raw['files'].get(FILE_OPTIONS_KEY))

        return cls(
            body=descriptor('body'),
            query=descriptor('query'),
            response=descriptor('response'),
            files=files,
        )


class Route(BaseModel):
    """One server route as declared by the ``__client__`` schema."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)

    path: str
    methods: list[str] = Field(default_factory=list)
    schema_: dict[str, Any] = Field(default_factory=dict, alias='schema')
    settings: dict[str, Any] = Field(default_factory=dict)

    def method_spec(self, method: str) -> MethodSpec:
        return MethodSpec.from_raw(self.schema_.get(method))

    def is_disabled(self, method: str | None = None) -> bool:
        """Whether the whole route, or one of its methods, is disabled."""
        if method is None:
            return bool(self.settings.get('disabled'))
        method_settings = self.settings.get(method)
        return isinstance(method_settings, Mapping) and bool(
            method_settings.get('disabled')
        )

    def available_methods(self) -> list[str]:
        """Methods declared explicitly, or inferred from populated schema slots."""
        if self.methods:
            return list(self.methods)
        return [
            key
            for key, value in self.schema_.items()
            if key != PARAMS_KEY and isinstance(value, Mapping)
        ]


def _parse_route(index: int, raw: Any) -> Route:
    if not isinstance(raw, Mapping):
        raise RouteDefinitionError(index, f'expected an object, got {type(raw).__name__}')
    if not isinstance(raw.get('path'), str):
        raise RouteDefinitionError(index, "missing 'path'")

    data = {key: value for key, value in raw.items() if value is not None}
    try:
        return Route.model_validate(data)
    except ValidationError as e:
        raise RouteDefinitionError(index, str(e)) from e


def normalize_routes(raw_routes: Iterable[Any]) -> list[Route]:
    """Turn the fetched route payload into the routes the client will expose.

    Args:
        raw_routes: Route objects as returned by the ``__client__`` endpoint.

    Returns:
        Routes in input order, each with its effective method list.

    Raises:
        RouteDefinitionError: If a route is not an object or has no ``path``.
    """
    routes: list[Route] = []

    for index, raw in enumerate(raw_routes):
        route = _parse_route(index, raw)

        if route.is_disabled():
            logger.debug(f'Skipping disabled route: {route.path}')
            continue

        methods = route.available_methods()
        if not methods:
            if isinstance(route.schema_.get(PARAMS_KEY), Mapping):
                methods = [DEFAULT_METHOD]
            else:
                logger.debug(f'Skipping route without methods: {route.path}')
                continue

        route = route.model_copy(update={'methods': methods})
        routes.append(route)
        logger.debug(f'Route: {route.path} → [{", ".join(methods)}]')

    logger.info(
        f'Processed {len(routes)} routes with {count_methods(routes)} methods'
    )
    return routes


def count_methods(routes: Iterable[Route]) -> int:
    return sum(len(route.methods) for route in routes)
