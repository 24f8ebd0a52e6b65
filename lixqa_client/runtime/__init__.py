"""Runtime support imported by generated client modules.

Example:
    >>> from generated.api_client import create_client
    >>> from lixqa_client.runtime import ClientOptions, ValidationError
    >>>
    >>> api = create_client(ClientOptions(auth_token='secret', retry_on_ratelimit=3))
    >>> user = await api.users(42).get()
"""

from lixqa_client.runtime.client import (
    DEFAULT_BASE_URL,
    ClientOptions,
    FileInput,
    ProxyFn,
    ProxyRequest,
    ProxyResponse,
    RequestFn,
    RequestOptions,
    build_url,
    compute_retry_delay,
    create_client,
    create_request,
    normalize_proxy_response,
)
from lixqa_client.runtime.errors import FieldError, RequestError, ValidationError
from lixqa_client.runtime.nodes import (
    ApiNode,
    RouteTypePart,
    SchemaPart,
    lookup_route_entry,
)

__all__ = [
    # Client
    'ClientOptions',
    'DEFAULT_BASE_URL',
    'create_client',
    'create_request',
    'build_url',
    'compute_retry_delay',
    # Proxying
    'ProxyFn',
    'ProxyRequest',
    'ProxyResponse',
    'normalize_proxy_response',
    # Types used by generated code
    'ApiNode',
    'FileInput',
    'RequestFn',
    'RequestOptions',
    'RouteTypePart',
    'SchemaPart',
    'lookup_route_entry',
    # Errors
    'FieldError',
    'RequestError',
    'ValidationError',
]
