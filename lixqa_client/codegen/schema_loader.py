"""Loading of the route schema served by a running API.

The server exposes its routes at ``GET {base_url}/__client__``. The payload is
either a bare list of route objects or an object whose ``data`` key holds that
list. For offline use a JSON or YAML file with the same payload can be loaded
instead of a URL.
"""

import json
import logging
from pathlib import Path
from typing import Any

import httpx
import yaml

from lixqa_client.codegen.utils import is_url
from lixqa_client.exceptions import SchemaLoadError

__all__ = ['CLIENT_SCHEMA_PATH', 'SchemaLoader', 'extract_routes']

logger = logging.getLogger(__name__)

CLIENT_SCHEMA_PATH = '__client__'


def extract_routes(payload: Any) -> list[Any]:
    """Pull the route list out of a schema payload.

    Anything that is neither a list nor an object with a ``data`` list yields
    no routes.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get('data'), list):
        return payload['data']
    return []


class SchemaLoader:
    """Loads route schemas from a server's ``__client__`` route or a file.

    Example:
        >>> loader = SchemaLoader()
        >>> routes = loader.load('http://localhost:3000')
        >>> # or
        >>> routes = loader.load('./routes.json')
    """

    def __init__(self, http_client: httpx.Client | None = None, timeout: float = 30.0):
        """Initialize the schema loader.

        Args:
            http_client: Optional HTTP client to use for URL requests.
                        If not provided, ``httpx.get`` is used.
            timeout: Request timeout in seconds when no client is given.
        """
        self._http_client = http_client
        self._timeout = timeout

    @staticmethod
    def schema_url(base_url: str) -> str:
        return f'{base_url.rstrip("/")}/{CLIENT_SCHEMA_PATH}'

    def load(self, source: str) -> list[Any]:
        """Load the raw route list from a base URL or a file path.

        Args:
            source: Base URL of the API, or path to a JSON/YAML schema file.

        Returns:
            The raw route objects, in server order.

        Raises:
            SchemaLoadError: If the schema cannot be fetched, read or parsed.
        """
        try:
            if is_url(source):
                payload = self._load_from_url(self.schema_url(source))
            else:
                payload = self._load_from_file(source)
        except SchemaLoadError:
            raise
        except Exception as e:
            raise SchemaLoadError(source, cause=e) from e

        routes = extract_routes(payload)
        logger.info(f'Found {len(routes)} routes')
        return routes

    def _load_from_url(self, url: str) -> Any:
        logger.info(f'Fetching API schema from {url}')
        try:
            if self._http_client:
                response = self._http_client.get(url)
            else:
                response = httpx.get(url, follow_redirects=True, timeout=self._timeout)

            response.raise_for_status()
            return response.json()

        except httpx.HTTPError as e:
            raise SchemaLoadError(url, cause=e) from e
        except ValueError as e:
            raise SchemaLoadError(url, cause=e) from e

    def _load_from_file(self, file_path: str) -> Any:
        path = Path(file_path)
        logger.info(f'Reading API schema from {path}')

        if not path.exists():
            raise SchemaLoadError(
                str(file_path), cause=FileNotFoundError(f'File not found: {path}')
            )

        try:
            content = path.read_text(encoding='utf-8')
            if path.suffix.lower() in ('.yaml', '.yml'):
                return yaml.safe_load(content)
            return json.loads(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise SchemaLoadError(str(file_path), cause=e) from e
        except OSError as e:
            raise SchemaLoadError(str(file_path), cause=e) from e
