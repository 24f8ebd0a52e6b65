"""HTTP request function used by generated clients.

``create_request(options)`` returns the async ``request(path, method, options)``
callable that every generated method forwards to. It builds the URL, encodes
the body as JSON or multipart, sends the request through httpx (or a user
supplied proxy function), retries rate-limited requests and turns error
responses into RequestError or ValidationError.
"""

import asyncio
import dataclasses
import inspect
import json
import logging
import re
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import IO, Any, TypedDict, TypeVar
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

import httpx
from pydantic import BaseModel, ConfigDict, Field

from lixqa_client.runtime.errors import RequestError, ValidationError

__all__ = [
    'ClientOptions',
    'DEFAULT_BASE_URL',
    'FileInput',
    'ProxyFn',
    'ProxyRequest',
    'ProxyResponse',
    'RequestFn',
    'RequestOptions',
    'build_url',
    'compute_retry_delay',
    'create_client',
    'create_request',
    'normalize_proxy_response',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_BASE_URL = 'http://localhost:3000'
DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_DELAY_MS = 1000
MAX_RETRY_DELAY_MS = 300_000

RESET_AFTER_HEADER = 'x-ratelimit-reset-after'
RESET_HEADER = 'x-ratelimit-reset'
BAD_REQUEST_TYPE_HEADER = 'x-bad-request-type'

# Anything httpx accepts as a single multipart file
FileInput = bytes | IO[bytes] | tuple[str, Any] | tuple[str, Any, str]


class RequestOptions(TypedDict, total=False):
    body: Any
    query: Mapping[str, Any] | None
    files: Mapping[str, Any] | None


RequestFn = Callable[[str, str, RequestOptions], Awaitable[Any]]


@dataclasses.dataclass
class ProxyRequest:
    """What a proxy function receives instead of the request being sent."""

    url: str
    method: str
    body: bytes | None
    headers: dict[str, str]


@dataclasses.dataclass
class ProxyResponse:
    """A response produced by a proxy function."""

    status: int
    status_text: str = ''
    headers: dict[str, str] = dataclasses.field(default_factory=dict)
    body: Any = None
    ok: bool | None = None


ProxyFn = Callable[[ProxyRequest], Any]


class ClientOptions(BaseModel):
    """Options of one generated client instance.

    Attributes:
        base_url: Base URL requests are resolved against. Its path, query and
            fragment are kept.
        auth_token: Sent verbatim as the ``Authorization`` header.
        headers: Extra headers sent with every request.
        retry_on_ratelimit: Number of retries for 429 responses. ``False``
            (or any bool) disables retrying.
        proxy_fn: Called with a ProxyRequest instead of sending the request.
            May return an ``httpx.Response``, a ProxyResponse or a mapping with
            the same fields, directly or as an awaitable.
        timeout: Timeout in seconds for the internally created httpx client.
        http_client: Client to send requests with instead of a fresh one.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    base_url: str = DEFAULT_BASE_URL
    auth_token: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    retry_on_ratelimit: int | bool = False
    proxy_fn: ProxyFn | None = None
    timeout: float = DEFAULT_TIMEOUT
    http_client: httpx.AsyncClient | None = None

    @property
    def max_retries(self) -> int:
        if isinstance(self.retry_on_ratelimit, bool):
            return 0
        return max(self.retry_on_ratelimit, 0)

    def default_headers(self) -> dict[str, str]:
        headers = {'Content-Type': 'application/json', **self.headers}
        if self.auth_token:
            headers['Authorization'] = self.auth_token
        return headers


def _stringify(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, list | tuple):
        return ','.join(_stringify(item) for item in value)
    return str(value)


def build_url(base_url: str, path: str, query: Mapping[str, Any] | None = None) -> str:
    """Resolve ``path`` below ``base_url`` and append ``query``.

    The base URL's own path, query items and fragment are kept. Query values
    that are None are skipped.

    Example:
        >>> build_url('https://api.test/v1?key=k', '/users', {'page': 2})
        'https://api.test/v1/users?key=k&page=2'
    """
    base = urlsplit(base_url)
    relative = path[1:] if path.startswith('/') else path
    base_path = base.path if base.path.endswith('/') else base.path + '/'

    items = parse_qsl(base.query, keep_blank_values=True)
    for key, value in (query or {}).items():
        if value is not None:
            items.append((key, _stringify(value)))

    return urlunsplit(
        (
            base.scheme,
            base.netloc,
            base_path + quote(relative, safe="/%:@!$&'()*+,;=~"),
            urlencode(items),
            base.fragment,
        )
    )


_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')


def _parse_int(value: str | None) -> int | None:
    # Leading integer of a header value, e.g. '1500ms' -> 1500
    if not value:
        return None
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def compute_retry_delay(headers: Mapping[str, str], now: float | None = None) -> int:
    """Milliseconds to wait before retrying a 429 response.

    ``x-ratelimit-reset-after`` holds a delay in milliseconds and wins over
    ``x-ratelimit-reset``, an absolute epoch timestamp in milliseconds. Without
    a usable header the delay is one second. The result is clamped to
    ``[0, 300000]``.

    Args:
        headers: Response headers (case-insensitive for ``httpx.Headers``).
        now: Current time in epoch milliseconds, defaults to the wall clock.
    """
    reset_after = _parse_int(headers.get(RESET_AFTER_HEADER))
    reset = _parse_int(headers.get(RESET_HEADER))

    if reset_after is not None:
        delay = reset_after
    elif reset is not None:
        if now is None:
            now = time.time() * 1000
        delay = max(0, int(reset - now))
    else:
        delay = DEFAULT_RETRY_DELAY_MS

    return min(max(delay, 0), MAX_RETRY_DELAY_MS)


def normalize_proxy_response(
    result: Any, request: httpx.Request | None = None
) -> httpx.Response:
    """Turn whatever a proxy function returned into an ``httpx.Response``."""
    if isinstance(result, httpx.Response):
        return result

    if isinstance(result, ProxyResponse):
        status, status_text = result.status, result.status_text
        headers, body = result.headers, result.body
    elif isinstance(result, Mapping):
        status = result.get('status', 200)
        status_text = result.get('status_text', result.get('statusText', ''))
        headers, body = result.get('headers') or {}, result.get('body')
    else:
        raise TypeError(
            f'Proxy function returned {type(result).__name__}, expected '
            'httpx.Response, ProxyResponse or a mapping'
        )

    if isinstance(body, bytes):
        content = body
    elif isinstance(body, str):
        content = body.encode('utf-8')
    elif body is None:
        content = b''
    else:
        content = json.dumps(body).encode('utf-8')

    # Header values may be numbers, httpx only accepts text
    headers = {str(key): str(value) for key, value in headers.items()}
    extensions = {'reason_phrase': status_text.encode()} if status_text else {}
    return httpx.Response(
        status,
        headers=headers,
        content=content,
        request=request,
        extensions=extensions,
    )


def _multipart_files(files: Mapping[str, Any]) -> list[tuple[str, Any]]:
    entries: list[tuple[str, Any]] = []
    if files.get('file') is not None:
        entries.append(('file', files['file']))
    many = files.get('files')
    if isinstance(many, list | tuple):
        entries.extend(('files', item) for item in many)
    return entries


def _build_request(
    options: ClientOptions, url: str, method: str, request_options: RequestOptions
) -> tuple[httpx.Request, dict[str, str]]:
    headers = options.default_headers()
    body = request_options.get('body')
    files = request_options.get('files')

    if files:
        data = {}
        if isinstance(body, Mapping):
            data = {key: _stringify(value) for key, value in body.items() if value is not None}
        # httpx sets the multipart Content-Type with its boundary
        headers.pop('Content-Type', None)
        request = httpx.Request(
            method, url, headers=headers, files=_multipart_files(files), data=data
        )
        headers['Content-Type'] = request.headers['content-type']
    elif body is not None:
        request = httpx.Request(method, url, headers=headers, json=body)
    else:
        request = httpx.Request(method, url, headers=headers)

    return request, headers


async def _send(
    options: ClientOptions, request: httpx.Request, headers: dict[str, str]
) -> httpx.Response:
    if options.proxy_fn is not None:
        proxy_request = ProxyRequest(
            url=str(request.url),
            method=request.method,
            body=request.read() or None,
            headers=headers,
        )
        result = options.proxy_fn(proxy_request)
        if inspect.isawaitable(result):
            result = await result
        return normalize_proxy_response(result, request)

    if options.http_client is not None:
        return await options.http_client.send(request)

    async with httpx.AsyncClient(timeout=options.timeout) as client:
        return await client.send(request)


def _read_error_body(response: httpx.Response) -> Any:
    try:
        if 'application/json' in response.headers.get('content-type', ''):
            return response.json()
        return response.text
    except (ValueError, UnicodeDecodeError):
        return {}


def _error_from_response(response: httpx.Response, url: str, method: str) -> RequestError:
    body = _read_error_body(response)
    info = dict(
        status=response.status_code,
        status_text=response.reason_phrase,
        url=url,
        method=method,
        headers=dict(response.headers),
        body=body,
    )
    bad_request_type = response.headers.get(BAD_REQUEST_TYPE_HEADER, '').lower()
    if (
        response.status_code == 400
        and bad_request_type == 'zod'
        and isinstance(body, dict)
        and body.get('data')
    ):
        return ValidationError(**info, validation_data=body['data'])
    return RequestError(**info)


def create_request(options: ClientOptions | None = None) -> RequestFn:
    """Create the request function generated clients call.

    Args:
        options: Client options, defaults to ``ClientOptions()``.

    Returns:
        ``async request(path, method, request_options)`` resolving to the
        ``data`` field of the JSON response, or None for 204 responses.
    """
    options = options or ClientOptions()
    max_retries = options.max_retries

    async def request(
        path: str, method: str, request_options: RequestOptions | None = None
    ) -> Any:
        request_options = request_options or {}
        method = method.upper()
        url = build_url(options.base_url, path, request_options.get('query'))

        for attempt in range(max_retries + 1):
            http_request, headers = _build_request(options, url, method, request_options)
            logger.debug(f'{method} {url}')
            response = await _send(options, http_request, headers)

            if response.is_success:
                if response.status_code == 204:
                    return None
                payload = response.json()
                return payload.get('data') if isinstance(payload, dict) else None

            if response.status_code == 429 and attempt < max_retries:
                delay = compute_retry_delay(response.headers)
                logger.debug(
                    f'Rate limited on {method} {url}, retrying in {delay}ms '
                    f'({attempt + 1}/{max_retries})'
                )
                await asyncio.sleep(delay / 1000)
                continue

            raise _error_from_response(response, url, method)

        raise RuntimeError('Request loop completed without a result')

    return request


def create_client(
    generate_api_object: Callable[[RequestFn], T],
) -> Callable[[ClientOptions | None], T]:
    """Wrap a generated ``generate_api_object`` into a client factory.

    Example:
        >>> factory = create_client(generate_api_object)
        >>> api = factory(ClientOptions(base_url='https://api.example.com'))
    """

    def factory(options: ClientOptions | None = None) -> T:
        return generate_api_object(create_request(options))

    return factory
