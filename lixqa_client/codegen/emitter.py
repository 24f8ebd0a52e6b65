"""Client emission from the route tree.

The ClientEmitter walks a TreeNode trie and produces the parts of the
generated module:

- an interface: one ``Protocol`` class per tree node
- an implementation: ``generate_api_object(request_fn)``, a nested ``ApiNode``
  expression whose leaves call the runtime request function
- optional flat lookup tables keyed by normalized path, method and role,
  holding either types or ``pydantic.TypeAdapter`` objects

How payload types show up in signatures is delegated to a TypeRenderer
strategy, so every emission mode shares the same walk.
"""

import ast
import dataclasses
import logging
from collections.abc import Iterator

from lixqa_client.codegen.ast_utils import (
    _argument,
    _assign,
    _async_func,
    _attr,
    _call,
    _class,
    _constant,
    _dict,
    _fstring,
    _func,
    _keyword,
    _lambda,
    _name,
    _subscript,
    _tuple,
    _type_alias,
    _union_expr,
)
from lixqa_client.codegen.descriptors import Descriptor
from lixqa_client.codegen.names import (
    is_param_segment,
    normalize_route_path,
    params_type_name,
    to_pascal_case,
    type_name,
)
from lixqa_client.codegen.routes import MethodSpec, Route
from lixqa_client.codegen.tree import TreeNode
from lixqa_client.codegen.types import (
    TypeContext,
    TypeConverter,
    has_required_fields,
    is_any,
)
from lixqa_client.codegen.utils import sanitize_attribute_name, unique_identifier

__all__ = [
    'ClientEmitter',
    'Endpoint',
    'RouteTypeMapRenderer',
    'SeparateTypeRenderer',
    'Signature',
    'TypeRenderer',
    'ROLE_PARAMS',
    'ROLE_REQUEST_BODY',
    'ROLE_REQUEST_QUERY',
    'ROLE_RESPONSE_BODY',
]

logger = logging.getLogger(__name__)

ROLE_REQUEST_BODY = 'RequestBody'
ROLE_RESPONSE_BODY = 'ResponseBody'
ROLE_REQUEST_QUERY = 'RequestQuery'
ROLE_PARAMS = 'Params'
PAYLOAD_ROLES = (ROLE_REQUEST_BODY, ROLE_RESPONSE_BODY, ROLE_REQUEST_QUERY)

RUNTIME_MODULE = 'lixqa_client.runtime'
ROOT_INTERFACE = 'Api'

# Names a path parameter variable must not shadow inside the generated lambdas
RESERVED_VARIABLES = frozenset(
    {'request_fn', 'body', 'query', 'file', 'files', 'ApiNode', 'cast'}
)


@dataclasses.dataclass
class Endpoint:
    """A (route, method) pair reached while walking the tree.

    Attributes:
        route: The route registered for the method.
        method: HTTP method as declared by the route.
        spec: Parsed payload descriptors of the method.
        params: Names of the path parameters bound on the way from the root.
    """

    route: Route
    method: str
    spec: MethodSpec
    params: tuple[str, ...] = ()

    @property
    def path(self) -> str:
        return self.route.path

    def descriptor(self, role: str) -> Descriptor | None:
        return {
            ROLE_REQUEST_BODY: self.spec.body,
            ROLE_RESPONSE_BODY: self.spec.response,
            ROLE_REQUEST_QUERY: self.spec.query,
        }.get(role)


@dataclasses.dataclass
class Signature:
    """Keyword arguments and return type of one generated method."""

    response: ast.expr
    body: ast.expr | None = None
    body_required: bool = False
    query: ast.expr | None = None
    query_required: bool = False
    file_argument: str | None = None
    file_type: ast.expr | None = None
    file_required: bool = False

    def arguments(self) -> list[tuple[str, ast.expr, bool]]:
        """Return (name, annotation, required) for every keyword argument."""
        arguments = []
        if self.body is not None:
            arguments.append(('body', self.body, self.body_required))
        if self.query is not None:
            arguments.append(('query', self.query, self.query_required))
        if self.file_argument is not None:
            arguments.append((self.file_argument, self.file_type, self.file_required))
        return arguments


def _params_tuple(count: int) -> ast.expr:
    # tuple[str | int, str | int]
    value = _union_expr([_name('str'), _name('int')])
    return _subscript('tuple', _tuple([value] * count) if count > 1 else value)


class TypeRenderer:
    """Inline rendering: converted annotations are used directly in signatures."""

    emits_type_map = False

    def __init__(self, context: TypeContext):
        self.context = context
        self.converter = TypeConverter(context)
        self._annotations: dict[tuple[str, str, str], ast.expr] = {}
        self._rendered: dict[tuple[str, str, str], ast.expr] = {}

    def _convert(self, endpoint: Endpoint, role: str) -> ast.expr | None:
        descriptor = endpoint.descriptor(role)
        if descriptor is None:
            return None
        key = (endpoint.path, endpoint.method, role)
        if key not in self._annotations:
            self._annotations[key] = self.converter.convert(
                descriptor, type_name(endpoint.path, endpoint.method, role)
            )
        return self._annotations[key]

    def payload_type(self, endpoint: Endpoint, role: str) -> ast.expr | None:
        """Annotation used for ``role`` of ``endpoint``, or None if undeclared."""
        annotation = self._convert(endpoint, role)
        if annotation is None:
            return None
        key = (endpoint.path, endpoint.method, role)
        if key not in self._rendered:
            self._rendered[key] = self._render(endpoint, role, annotation)
        return self._rendered[key]

    def is_open(self, endpoint: Endpoint, role: str) -> bool:
        """Whether the payload converted to ``Any``."""
        annotation = self._convert(endpoint, role)
        return annotation is None or is_any(annotation)

    def _render(self, endpoint: Endpoint, role: str, annotation: ast.expr) -> ast.expr:
        return annotation

    def params_type(self, endpoint: Endpoint) -> ast.expr | None:
        if not endpoint.params:
            return None
        return _params_tuple(len(endpoint.params))


class SeparateTypeRenderer(TypeRenderer):
    """One named type per (route, method, role), referenced by name."""

    def __init__(self, context: TypeContext):
        super().__init__(context)
        self._params: dict[tuple[str, str], ast.expr] = {}

    def _render(self, endpoint: Endpoint, role: str, annotation: ast.expr) -> ast.expr:
        name = type_name(endpoint.path, endpoint.method, role)
        if (
            isinstance(annotation, ast.Name)
            and annotation.id in self.context.definitions
            and annotation.id.startswith(name)
        ):
            # The payload was hoisted under the role's name already
            return annotation
        alias = self.context.unique_name(name)
        self.context.define(alias, _type_alias(alias, annotation))
        return _name(alias)

    def params_type(self, endpoint: Endpoint) -> ast.expr | None:
        if not endpoint.params:
            return None
        key = (endpoint.path, endpoint.method)
        if key not in self._params:
            alias = self.context.unique_name(
                params_type_name(endpoint.path, endpoint.method)
            )
            self.context.define(
                alias, _type_alias(alias, _params_tuple(len(endpoint.params)))
            )
            self._params[key] = _name(alias)
        return self._params[key]


class RouteTypeMapRenderer(TypeRenderer):
    """Inline signatures plus a flat ``RouteTypeMap`` lookup table."""

    emits_type_map = True


class ClientEmitter:
    """Walks a route tree and emits the generated client's AST.

    Example:
        >>> context = TypeContext()
        >>> emitter = ClientEmitter(TypeRenderer(context))
        >>> emitter.collect_types(tree)
        >>> interface = emitter.emit_interface(tree)
        >>> implementation = emitter.emit_implementation(tree)
    """

    def __init__(self, renderer: TypeRenderer, runtime_module: str = RUNTIME_MODULE):
        self.renderer = renderer
        self.context = renderer.context
        self.runtime_module = runtime_module
        self.root_interface: str | None = None
        self.interface_names: list[str] = []

    # -------------------------------------------------------------------------
    # Tree walking
    # -------------------------------------------------------------------------

    def endpoints(self, node: TreeNode, params: tuple[str, ...] = ()) -> Iterator[Endpoint]:
        """Iterate over every endpoint below ``node`` in emission order."""
        for method, route in node.methods.items():
            yield Endpoint(route, method, route.method_spec(method), params)
        for child in node.static.values():
            yield from self.endpoints(child, params)
        for name, child in node.params.items():
            yield from self.endpoints(child, params + (name,))

    @staticmethod
    def member_names(node: TreeNode) -> tuple[dict[str, str], dict[str, str]]:
        """Attribute names for a node's methods and literal children."""
        taken: set[str] = set()

        def claim(raw: str) -> str:
            name = sanitize_attribute_name(raw)
            while name in taken:
                name += '_'
            taken.add(name)
            return name

        methods = {method: claim(method.lower()) for method in node.methods}
        static = {segment: claim(segment) for segment in node.static}
        return methods, static

    def collect_types(self, tree: TreeNode) -> None:
        """Convert every payload of every endpoint, in walk order.

        Running this before any other emission fixes the order of the hoisted
        definitions to the order of the route list.
        """
        for endpoint in self.endpoints(tree):
            for role in PAYLOAD_ROLES:
                self.renderer.payload_type(endpoint, role)
            self.renderer.params_type(endpoint)

    def signature(self, endpoint: Endpoint) -> Signature:
        spec = endpoint.spec
        response = self.renderer.payload_type(endpoint, ROLE_RESPONSE_BODY)
        if response is None:
            self.context.add_import('typing', 'Any')
            response = _name('Any')

        signature = Signature(response=response)

        if spec.body is not None:
            signature.body = self.renderer.payload_type(endpoint, ROLE_REQUEST_BODY)
            signature.body_required = not self.renderer.is_open(
                endpoint, ROLE_REQUEST_BODY
            ) and has_required_fields(spec.body)

        if spec.query is not None:
            signature.query = self.renderer.payload_type(endpoint, ROLE_REQUEST_QUERY)
            signature.query_required = not self.renderer.is_open(
                endpoint, ROLE_REQUEST_QUERY
            ) and has_required_fields(spec.query)

        if spec.files is not None:
            self.context.add_import(self.runtime_module, 'FileInput')
            if spec.files.multiple:
                signature.file_argument = 'files'
                signature.file_type = _subscript('list', _name('FileInput'))
            else:
                signature.file_argument = 'file'
                signature.file_type = _name('FileInput')
            signature.file_required = spec.files.required

        return signature

    # -------------------------------------------------------------------------
    # Interface
    # -------------------------------------------------------------------------

    def emit_interface(self, tree: TreeNode) -> list[ast.stmt]:
        """Emit one Protocol class per tree node, parents before children."""
        self.context.add_import('typing', 'Protocol')
        classes: list[ast.stmt] = []
        self.root_interface = self._interface_class(tree, [], (), classes)
        return classes

    def _interface_name(self, parts: list[str]) -> str:
        name = self.context.reserve(ROOT_INTERFACE + ''.join(parts))
        self.interface_names.append(name)
        return name

    def _interface_class(
        self,
        node: TreeNode,
        parts: list[str],
        params: tuple[str, ...],
        classes: list[ast.stmt],
    ) -> str:
        name = self._interface_name(parts)
        index = len(classes)
        classes.append(ast.Pass())  # placeholder, replaced once children are named

        method_names, static_names = self.member_names(node)
        body: list[ast.stmt] = []

        for method, route in node.methods.items():
            endpoint = Endpoint(route, method, route.method_spec(method), params)
            body.append(self._method_stub(method_names[method], endpoint))

        for segment, child in node.static.items():
            child_name = self._interface_class(
                child, parts + [to_pascal_case(segment)], params, classes
            )
            # users: ApiUsers
            body.append(
                ast.AnnAssign(
                    target=ast.Name(id=static_names[segment], ctx=ast.Store()),
                    annotation=_name(child_name),
                    value=None,
                    simple=1,
                )
            )

        for param, child in node.params.items():
            child_name = self._interface_class(
                child, parts + ['By' + to_pascal_case(param)], params + (param,), classes
            )
            variable = sanitize_attribute_name(param)
            if variable == 'self':
                variable = 'self_'
            # def __call__(self, id: str | int) -> ApiUsersById: ...
            body.append(
                _func(
                    '__call__',
                    [
                        _argument('self'),
                        _argument(variable, _union_expr([_name('str'), _name('int')])),
                    ],
                    [ast.Expr(value=_constant(...))],
                    returns=_name(child_name),
                )
            )

        classes[index] = _class(name, [_name('Protocol')], body)
        return name

    def _method_stub(self, attr_name: str, endpoint: Endpoint) -> ast.AsyncFunctionDef:
        signature = self.signature(endpoint)
        kwonlyargs: list[ast.arg] = []
        kw_defaults: list[ast.expr | None] = []

        for name, annotation, required in signature.arguments():
            if not required and not is_any(annotation):
                annotation = _union_expr([annotation, _constant(None)])
            kwonlyargs.append(_argument(name, annotation))
            kw_defaults.append(None if required else _constant(None))

        # async def get(self, *, body: T) -> R:
        #     """GET /users/:id"""
        return _async_func(
            attr_name,
            [_argument('self')],
            [ast.Expr(value=_constant(f'{endpoint.method.upper()} {endpoint.path}'))],
            returns=signature.response,
            kwonlyargs=kwonlyargs,
            kw_defaults=kw_defaults,
        )

    # -------------------------------------------------------------------------
    # Implementation
    # -------------------------------------------------------------------------

    def emit_implementation(self, tree: TreeNode) -> ast.FunctionDef:
        """Emit ``generate_api_object(request_fn)``.

        Each node becomes ``ApiNode(<param callable>, <method>=..., <segment>=...)``
        and every method a lambda forwarding to ``request_fn``.
        """
        self.context.add_import('typing', 'cast')
        self.context.add_import(self.runtime_module, 'ApiNode')
        self.context.add_import(self.runtime_module, 'RequestFn')
        root = self.root_interface or ROOT_INTERFACE

        # return cast(Api, ApiNode(...))
        return _func(
            'generate_api_object',
            [_argument('request_fn', _name('RequestFn'))],
            [
                ast.Return(
                    value=_call(
                        _name('cast'),
                        [_name(root), self._node_expr(tree, (), ())],
                    )
                )
            ],
            returns=_name(root),
        )

    def _node_expr(
        self, node: TreeNode, params: tuple[str, ...], variables: tuple[str, ...]
    ) -> ast.Call:
        method_names, static_names = self.member_names(node)
        args: list[ast.expr] = []
        keywords: list[ast.keyword] = []

        for method, route in node.methods.items():
            endpoint = Endpoint(route, method, route.method_spec(method), params)
            keywords.append(
                _keyword(method_names[method], self._method_lambda(endpoint, variables))
            )

        for segment, child in node.static.items():
            keywords.append(
                _keyword(static_names[segment], self._node_expr(child, params, variables))
            )

        if node.params:
            param, child = next(iter(node.params.items()))
            variable = unique_identifier(
                sanitize_attribute_name(param), set(variables) | RESERVED_VARIABLES
            )
            # lambda id: ApiNode(...)
            args.append(
                _lambda(
                    self._node_expr(child, params + (param,), variables + (variable,)),
                    args=[variable],
                )
            )

        return _call(_name('ApiNode'), args, keywords)

    @staticmethod
    def path_template(path: str, variables: tuple[str, ...]) -> ast.expr:
        """Build the request path, interpolating bound variables positionally."""
        remaining = iter(variables)
        parts: list[str | ast.expr] = []
        for index, segment in enumerate(path.split('/')):
            if index:
                parts.append('/')
            variable = next(remaining, None) if is_param_segment(segment) else None
            parts.append(_name(variable) if variable else segment)
        return _fstring(parts)

    def _method_lambda(self, endpoint: Endpoint, variables: tuple[str, ...]) -> ast.Lambda:
        signature = self.signature(endpoint)
        options: dict[str, ast.expr] = {}
        kwonlyargs: list[str] = []
        kw_defaults: list[ast.expr | None] = []

        for name, _, required in signature.arguments():
            kwonlyargs.append(name)
            kw_defaults.append(None if required else _constant(None))
            if name in ('file', 'files'):
                files = _dict({name: _name(name)})
                if not required:
                    # {'file': file} if file is not None else None
                    files = ast.IfExp(
                        test=ast.Compare(
                            left=_name(name),
                            ops=[ast.IsNot()],
                            comparators=[_constant(None)],
                        ),
                        body=files,
                        orelse=_constant(None),
                    )
                options['files'] = files
            else:
                options[name] = _name(name)

        # lambda *, body=None: request_fn(f'/users/{id}', 'POST', {'body': body})
        call = _call(
            _name('request_fn'),
            [
                self.path_template(endpoint.path, variables),
                _constant(endpoint.method.upper()),
                _dict(options),
            ],
        )
        return _lambda(call, kwonlyargs=kwonlyargs, kw_defaults=kw_defaults)

    # -------------------------------------------------------------------------
    # Flat lookup tables
    # -------------------------------------------------------------------------

    def _flat_table(
        self, tree: TreeNode, value_for
    ) -> dict[str, dict[str, dict[str, ast.expr]]]:
        table: dict[str, dict[str, dict[str, ast.expr]]] = {}
        for endpoint in self.endpoints(tree):
            table.setdefault(normalize_route_path(endpoint.path), {})[
                endpoint.method.upper()
            ] = value_for(endpoint)
        return table

    @staticmethod
    def _table_expr(table: dict[str, dict[str, dict[str, ast.expr]]]) -> ast.Dict:
        return _dict(
            {
                path: _dict({method: _dict(roles) for method, roles in methods.items()})
                for path, methods in table.items()
            }
        )

    @staticmethod
    def _table_annotation(value: ast.expr) -> ast.expr:
        # dict[str, dict[str, dict[str, <value>]]]
        annotation = value
        for _ in range(3):
            annotation = _subscript('dict', _tuple([_name('str'), annotation]))
        return annotation

    def _lookup_function(
        self, name: str, table: str, path_type: ast.expr, part_type: str, returns: ast.expr
    ) -> ast.FunctionDef:
        self.context.add_import(self.runtime_module, 'lookup_route_entry')
        self.context.add_import(self.runtime_module, part_type)
        # return lookup_route_entry(Table, path, method, part)
        return _func(
            name,
            [
                _argument('path', path_type),
                _argument('method', _name('str')),
                _argument('part', _name(part_type)),
            ],
            [
                ast.Return(
                    value=_call(
                        _name('lookup_route_entry'),
                        [_name(table), _name('path'), _name('method'), _name('part')],
                    )
                )
            ],
            returns=returns,
        )

    def emit_flat_type_map(self, tree: TreeNode) -> list[ast.stmt]:
        """Emit ``RouteTypeMap``, the ``RoutePath`` alias and ``route_type()``."""
        self.context.add_import('typing', 'Any')

        def roles_for(endpoint: Endpoint) -> dict[str, ast.expr]:
            roles = {}
            for role in PAYLOAD_ROLES:
                annotation = self.renderer.payload_type(endpoint, role)
                if annotation is not None:
                    roles[role] = annotation
            params = self.renderer.params_type(endpoint)
            if params is not None:
                roles[ROLE_PARAMS] = params
            return roles

        table = self._flat_table(tree, roles_for)

        if table:
            self.context.add_import('typing', 'Literal')
            paths = [_constant(path) for path in table]
            path_type = _subscript('Literal', paths[0] if len(paths) == 1 else _tuple(paths))
        else:
            path_type = _name('str')

        return [
            ast.AnnAssign(
                target=ast.Name(id='RouteTypeMap', ctx=ast.Store()),
                annotation=self._table_annotation(_name('Any')),
                value=self._table_expr(table),
                simple=1,
            ),
            _type_alias('RoutePath', path_type),
            self._lookup_function(
                'route_type', 'RouteTypeMap', _name('RoutePath'), 'RouteTypePart', _name('Any')
            ),
        ]

    def emit_flat_schema_map(self, tree: TreeNode) -> list[ast.stmt]:
        """Emit ``RouteSchemaMap`` of ``TypeAdapter`` objects and ``get_schema()``."""
        self.context.add_import('pydantic', 'TypeAdapter')
        self.context.add_import('typing', 'Any')
        converter = TypeConverter(self.context, schema_mode=True)

        def schemas_for(endpoint: Endpoint) -> dict[str, ast.expr]:
            schemas = {}
            for role in PAYLOAD_ROLES:
                descriptor = endpoint.descriptor(role)
                if descriptor is None:
                    continue
                annotation = converter.convert(
                    descriptor, type_name(endpoint.path, endpoint.method, role)
                )
                schemas[role] = _call(_name('TypeAdapter'), [annotation])
            return schemas

        table = self._flat_table(tree, schemas_for)
        adapter = _subscript('TypeAdapter', _name('Any'))

        return [
            ast.AnnAssign(
                target=ast.Name(id='RouteSchemaMap', ctx=ast.Store()),
                annotation=self._table_annotation(adapter),
                value=self._table_expr(table),
                simple=1,
            ),
            self._lookup_function(
                'get_schema',
                'RouteSchemaMap',
                _name('str'),
                'SchemaPart',
                _union_expr([adapter, _constant(None)]),
            ),
        ]

    # -------------------------------------------------------------------------
    # Client factory
    # -------------------------------------------------------------------------

    @staticmethod
    def _default_options() -> ast.Call:
        # ClientOptions(base_url=BASE_URL)
        return _call(
            _name('ClientOptions'), keywords=[_keyword('base_url', _name('BASE_URL'))]
        )

    def emit_request_defaults(self, base_url: str) -> list[ast.stmt]:
        """Emit ``BASE_URL`` and the module-level ``request`` function."""
        self.context.add_import(self.runtime_module, 'ClientOptions')
        self.context.add_import(self.runtime_module, 'create_request')
        return [
            _assign(_name('BASE_URL'), _constant(base_url)),
            _assign(
                _name('request'),
                _call(_name('create_request'), [self._default_options()]),
            ),
        ]

    def emit_client_factory(self) -> list[ast.stmt]:
        """Emit ``create_client`` and the default ``api`` object."""
        self.context.add_import(self.runtime_module, 'ClientOptions')
        self.context.add_import('lixqa_client', 'runtime')
        root = self.root_interface or ROOT_INTERFACE
        default_options = self._default_options

        create_client = _func(
            'create_client',
            [
                _argument(
                    'options', _union_expr([_name('ClientOptions'), _constant(None)])
                )
            ],
            [
                ast.Expr(
                    value=_constant(
                        'Create a client with its own options; base_url defaults to BASE_URL.'
                    )
                ),
                # if options is None: ... elif 'base_url' not in options.model_fields_set: ...
                ast.If(
                    test=ast.Compare(
                        left=_name('options'), ops=[ast.Is()], comparators=[_constant(None)]
                    ),
                    body=[_assign(_name('options'), default_options())],
                    orelse=[
                        ast.If(
                            test=ast.Compare(
                                left=_constant('base_url'),
                                ops=[ast.NotIn()],
                                comparators=[_attr('options', 'model_fields_set')],
                            ),
                            body=[
                                _assign(
                                    _name('options'),
                                    _call(
                                        _attr('options', 'model_copy'),
                                        keywords=[
                                            _keyword(
                                                'update',
                                                _dict({'base_url': _name('BASE_URL')}),
                                            )
                                        ],
                                    ),
                                )
                            ],
                            orelse=[],
                        )
                    ],
                ),
                # return runtime.create_client(generate_api_object)(options)
                ast.Return(
                    value=_call(
                        _call(
                            _attr('runtime', 'create_client'),
                            [_name('generate_api_object')],
                        ),
                        [_name('options')],
                    )
                ),
            ],
            returns=_name(root),
            defaults=[_constant(None)],
        )

        return [
            create_client,
            ast.AnnAssign(
                target=ast.Name(id='api', ctx=ast.Store()),
                annotation=_name(root),
                value=_call(_name('generate_api_object'), [_name('request')]),
                simple=1,
            ),
        ]
