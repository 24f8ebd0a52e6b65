"""Test fixtures for lixqa-client tests.

This module provides sample ``__client__`` payloads and small builders for
type descriptors in their wire format.
"""


def desc(kind: str, **fields) -> dict:
    """Build a raw descriptor: ``{'def': {'type': kind, ...}}``."""
    return {'def': {'type': kind, **fields}}


def string() -> dict:
    return desc('string')


def number() -> dict:
    return desc('number')


def optional(inner: dict) -> dict:
    return desc('optional', innerType=inner)


def array(element: dict) -> dict:
    return desc('array', element=element)


def obj(**shape) -> dict:
    return desc('object', shape=shape)


def union(*options: dict) -> dict:
    return desc('union', options=list(options))


def file_upload(**options) -> dict:
    return {'def': {'type': 'any'}, '__fileOptions': options}


def recursive_node() -> dict:
    """A lazy descriptor for ``{name: string, children: Node[]}``."""
    node = obj(name=string())
    lazy = desc('lazy', getter=lambda: node)
    node['def']['shape']['children'] = array(lazy)
    return lazy


USER = obj(id=string(), name=string(), email=optional(string()))

# The users API used across emitter and codegen tests
USERS_ROUTES = [
    {
        'path': '/users',
        'methods': ['GET', 'POST'],
        'schema': {
            'GET': {
                'query': obj(page=optional(number())),
                'response': array(USER),
            },
            'POST': {
                'body': obj(name=string(), email=string()),
                'response': USER,
            },
        },
    },
    {
        'path': '/users/:id',
        'methods': ['GET', 'DELETE'],
        'schema': {'GET': {'response': USER}, 'DELETE': {}},
    },
    {
        'path': '/users/:id/avatar',
        'methods': ['PUT'],
        'schema': {
            'PUT': {
                'files': file_upload(required=True),
                'response': obj(url=string()),
            }
        },
    },
]

# Routes exercising normalization rules
MIXED_ROUTES = [
    {'path': '/health', 'schema': {'params': {}}},
    {'path': '/admin', 'methods': ['GET'], 'settings': {'disabled': True}},
    {'path': '/empty'},
    {'path': '/inferred', 'schema': {'POST': {'body': obj(name=string())}}},
    {
        'path': '/partial',
        'methods': ['GET', 'POST'],
        'settings': {'POST': {'disabled': True}},
    },
]

USERS_PAYLOAD = {'data': USERS_ROUTES}
