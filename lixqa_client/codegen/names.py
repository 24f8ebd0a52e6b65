"""Deterministic type names derived from route paths.

Names are built from the HTTP method, the literal segments of the path and a
role suffix. Parameter segments never contribute text, but wherever a
parameter separates two literal runs (or trails the last one) a separator is
inserted, so ``/a/:id/b`` and ``/a/b`` yield different names.
"""

from lixqa_client.codegen.utils import sanitize_identifier

__all__ = [
    'PARAM_SEPARATOR',
    'is_param_segment',
    'normalize_route_path',
    'params_type_name',
    'split_path',
    'to_pascal_case',
    'type_name',
]

PARAM_SEPARATOR = '_'


def split_path(path: str) -> list[str]:
    """Split a route path into its non-empty segments."""
    return [segment for segment in path.split('/') if segment]


def is_param_segment(segment: str) -> bool:
    return segment.startswith(':') and len(segment) > 1


def to_pascal_case(segment: str) -> str:
    """Convert a dash-separated path segment to PascalCase.

    Example:
        >>> to_pascal_case('user-profiles')
        'UserProfiles'
        >>> to_pascal_case('API')
        'Api'
    """
    return ''.join(word[:1].upper() + word[1:].lower() for word in segment.split('-'))


def _method_name(method: str) -> str:
    return method[:1].upper() + method[1:].lower()


def type_name(path: str, method: str, suffix: str) -> str:
    """Build the name of the type playing ``suffix``'s role for a route method.

    Args:
        path: Route path, e.g. ``/users/:id/avatar``.
        method: HTTP method in any case.
        suffix: Role suffix such as ``ResponseBody`` or ``RequestQuery``.

    Returns:
        A valid Python identifier.

    Example:
        >>> type_name('/users/:id/avatar', 'GET', 'ResponseBody')
        'GetUsers_AvatarResponseBody'
        >>> type_name('/users/:id', 'delete', 'ResponseBody')
        'DeleteUsers_ResponseBody'
    """
    segments = split_path(path)
    parts: list[str] = []
    last_literal = -1

    for index, segment in enumerate(segments):
        if is_param_segment(segment):
            continue
        if parts and index > 0 and is_param_segment(segments[index - 1]):
            parts.append(PARAM_SEPARATOR)
        parts.append(to_pascal_case(segment))
        last_literal = index

    if (
        last_literal != -1
        and last_literal + 1 < len(segments)
        and is_param_segment(segments[last_literal + 1])
    ):
        parts.append(PARAM_SEPARATOR)

    return sanitize_identifier(_method_name(method) + ''.join(parts) + suffix)


def params_type_name(path: str, method: str) -> str:
    """Build the name of the path-parameter tuple type for a route method.

    Literal runs are always joined with the separator.

    Example:
        >>> params_type_name('/orgs/:org/repos/:repo', 'GET')
        'GetOrgs_Repos_Params'
    """
    literals = [
        to_pascal_case(segment)
        for segment in split_path(path)
        if not is_param_segment(segment)
    ]
    return sanitize_identifier(
        _method_name(method)
        + PARAM_SEPARATOR.join(literals)
        + PARAM_SEPARATOR
        + 'Params'
    )


def normalize_route_path(path: str) -> str:
    """Key used by the flat route maps: no leading slash, parameters as ``$``.

    Example:
        >>> normalize_route_path('/users/:id/avatar')
        'users/$/avatar'
    """
    return '/'.join(
        '$' if is_param_segment(segment) else segment for segment in split_path(path)
    )
