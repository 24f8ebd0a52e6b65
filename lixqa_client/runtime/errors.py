"""Errors raised by generated clients at request time.

Every non-2xx response that is not retried surfaces as a RequestError. A 400
answer whose ``x-bad-request-type`` header is ``zod`` and whose body carries
``data`` surfaces as a ValidationError, which exposes the server's nested
error tree through path-based helpers.
"""

from collections.abc import Iterator
from typing import Any, NamedTuple

__all__ = ['FieldError', 'RequestError', 'ValidationError']

ERRORS_KEY = '_errors'
ROOT_PATH = 'root'


class RequestError(Exception):
    """A request that did not complete with a 2xx status.

    Attributes:
        status: HTTP status code of the final response.
        status_text: Reason phrase of the final response.
        url: Fully built request URL.
        method: Upper-case HTTP method.
        headers: Response headers.
        body: Parsed response body: JSON, text, or ``{}`` if unreadable.
    """

    def __init__(
        self,
        status: int,
        status_text: str,
        url: str,
        method: str,
        headers: dict[str, str] | None = None,
        body: Any = None,
    ):
        self.status = status
        self.status_text = status_text
        self.url = url
        self.method = method
        self.headers = headers or {}
        self.body = body
        super().__init__(f'Request failed with status {status}: {status_text}')


class FieldError(NamedTuple):
    path: str
    message: str


def _children(value: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(value, dict):
        for key, child in value.items():
            if key != ERRORS_KEY:
                yield str(key), child
    elif isinstance(value, list):
        for index, child in enumerate(value):
            yield str(index), child


def _join(prefix: str, key: str) -> str:
    return f'{prefix}.{key}' if prefix else key


class ValidationError(RequestError):
    """A 400 response carrying schema validation errors.

    ``validation_data`` is the ``data`` field of the response body, usually a
    tree with ``body``, ``query`` and ``params`` branches whose nodes list
    their messages under ``_errors``::

        {'body': {'email': {'_errors': ['Invalid email']}}}

    Example:
        >>> try:
        ...     await api.users.post(body={'email': 'nope'})
        ... except ValidationError as e:
        ...     e.get_error_messages_by_path()
        {'body.email': ['Invalid email']}
    """

    def __init__(self, *args, validation_data: dict[str, Any] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.validation_data = validation_data

    def flatten(self) -> dict[str, Any]:
        """Flatten the validation data to dot-separated paths.

        Nested mappings are walked; lists and scalars are leaves.
        """
        result: dict[str, Any] = {}

        def visit(value: dict[str, Any], prefix: str) -> None:
            for key, child in value.items():
                path = _join(prefix, str(key))
                if isinstance(child, dict) and child:
                    visit(child, path)
                elif not isinstance(child, dict):
                    result[path] = child

        if self.validation_data:
            visit(self.validation_data, '')
        return result

    def get_paths(self) -> list[str]:
        return list(self.flatten())

    def get_error_at_path(self, path: str) -> Any:
        return self.flatten().get(path)

    def has_error_at_path(self, path: str) -> bool:
        return self.get_error_at_path(path) is not None

    def _walk_errors(self) -> Iterator[tuple[str, list[Any]]]:
        # (path, _errors list) for every node carrying an _errors list
        def visit(value: Any, path: str) -> Iterator[tuple[str, list[Any]]]:
            if isinstance(value, dict) and isinstance(value.get(ERRORS_KEY), list):
                yield path, value[ERRORS_KEY]
            for key, child in _children(value):
                yield from visit(child, _join(path, key))

        if self.validation_data:
            yield from visit(self.validation_data, '')

    def get_error_messages(self) -> list[str]:
        """All messages found under ``_errors`` lists, in document order."""
        return [
            message
            for _, errors in self._walk_errors()
            for message in errors
            if isinstance(message, str)
        ]

    def get_error_messages_with_paths(self) -> list[FieldError]:
        return [
            FieldError(path or ROOT_PATH, message)
            for path, errors in self._walk_errors()
            for message in errors
            if isinstance(message, str)
        ]

    def get_error_messages_by_path(self) -> dict[str, list[str]]:
        """Messages grouped by path; paths without string messages are omitted."""
        grouped: dict[str, list[str]] = {}
        for path, errors in self._walk_errors():
            messages = [message for message in errors if isinstance(message, str)]
            if messages:
                grouped[path or ROOT_PATH] = messages
        return grouped

    def get_error_messages_formatted(self, separator: str = ': ') -> list[str]:
        return [
            f'{error.path}{separator}{error.message}'
            for error in self.get_error_messages_with_paths()
        ]
