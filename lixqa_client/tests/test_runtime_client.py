"""Tests for the runtime request function used by generated clients."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from lixqa_client.runtime import (
    ApiNode,
    ClientOptions,
    ProxyResponse,
    RequestError,
    ValidationError,
    build_url,
    compute_retry_delay,
    create_client,
    create_request,
    normalize_proxy_response,
)


def make_request(handler, **options):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return create_request(
        ClientOptions(base_url='http://api.test', http_client=client, **options)
    )


def respond_with(*responses: httpx.Response):
    """Handler returning ``responses`` in order and recording the requests."""
    queue = list(responses)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        # the last response repeats; hand out copies so each one is fresh
        template = queue.pop(0) if len(queue) > 1 else queue[0]
        return httpx.Response(
            template.status_code, headers=template.headers, content=template.content
        )

    handler.requests = seen
    return handler


class TestBuildUrl:
    @pytest.mark.parametrize(
        'base_url,path,query,expected',
        [
            ('http://api.test', '/users', None, 'http://api.test/users'),
            ('http://api.test/', 'users', None, 'http://api.test/users'),
            ('https://api.test/v1', '/users/42', None, 'https://api.test/v1/users/42'),
            (
                'https://api.test/v1?key=k',
                '/users',
                {'page': 2},
                'https://api.test/v1/users?key=k&page=2',
            ),
            ('http://api.test#top', '/a', None, 'http://api.test/a#top'),
            ('http://api.test', '/files/a b', None, 'http://api.test/files/a%20b'),
        ],
    )
    def test_resolution(self, base_url, path, query, expected):
        assert build_url(base_url, path, query) == expected

    def test_query_values(self):
        url = build_url(
            'http://api.test', '/items', {'active': True, 'ids': [1, 2], 'skip': None}
        )
        assert url == 'http://api.test/items?active=true&ids=1%2C2'

    def test_blank_base_query_items_are_kept(self):
        assert build_url('http://api.test?flag=', '/x') == 'http://api.test/x?flag='


class TestComputeRetryDelay:
    @pytest.mark.parametrize(
        'headers,expected',
        [
            ({'x-ratelimit-reset-after': '1500'}, 1500),
            ({'x-ratelimit-reset-after': '1500ms'}, 1500),
            ({'x-ratelimit-reset-after': '200', 'x-ratelimit-reset': '99999'}, 200),
            ({'x-ratelimit-reset': '10000'}, 6000),
            ({'x-ratelimit-reset': '1000'}, 0),
            ({}, 1000),
            ({'x-ratelimit-reset-after': 'soon'}, 1000),
            ({'x-ratelimit-reset-after': '-5'}, 0),
            ({'x-ratelimit-reset-after': '999999999'}, 300_000),
        ],
    )
    def test_delay(self, headers, expected):
        assert compute_retry_delay(headers, now=4000) == expected

    def test_header_names_are_case_insensitive(self):
        headers = httpx.Headers({'X-RateLimit-Reset-After': '250'})
        assert compute_retry_delay(headers) == 250


class TestClientOptions:
    @pytest.mark.parametrize('value,expected', [(3, 3), (0, 0), (-1, 0), (True, 0), (False, 0)])
    def test_max_retries(self, value, expected):
        assert ClientOptions(retry_on_ratelimit=value).max_retries == expected

    def test_default_headers(self):
        options = ClientOptions(auth_token='Bearer abc', headers={'X-Trace': '1'})

        assert options.default_headers() == {
            'Content-Type': 'application/json',
            'X-Trace': '1',
            'Authorization': 'Bearer abc',
        }

    def test_no_authorization_without_token(self):
        assert 'Authorization' not in ClientOptions().default_headers()


class TestRequest:
    def test_returns_data_field(self):
        handler = respond_with(httpx.Response(200, json={'data': {'id': 1}, 'meta': {}}))
        request = make_request(handler, auth_token='t0k', headers={'X-Trace': 'abc'})

        result = asyncio.run(request('/users/1', 'get'))

        assert result == {'id': 1}
        sent = handler.requests[0]
        assert sent.method == 'GET'
        assert str(sent.url) == 'http://api.test/users/1'
        assert sent.headers['authorization'] == 't0k'
        assert sent.headers['x-trace'] == 'abc'
        assert sent.headers['content-type'] == 'application/json'
        assert sent.content == b''

    def test_missing_data_field(self):
        request = make_request(respond_with(httpx.Response(200, json={'ok': True})))
        assert asyncio.run(request('/x', 'GET')) is None

    def test_no_content(self):
        request = make_request(respond_with(httpx.Response(204)))
        assert asyncio.run(request('/x', 'DELETE')) is None

    def test_json_body_and_query(self):
        handler = respond_with(httpx.Response(201, json={'data': 'created'}))
        request = make_request(handler)

        result = asyncio.run(
            request('/posts', 'POST', {'body': {'title': 'Hi'}, 'query': {'draft': False}})
        )

        assert result == 'created'
        sent = handler.requests[0]
        assert str(sent.url) == 'http://api.test/posts?draft=false'
        assert json.loads(sent.content) == {'title': 'Hi'}

    def test_multipart_upload(self):
        handler = respond_with(httpx.Response(200, json={'data': None}))
        request = make_request(handler)

        asyncio.run(
            request(
                '/upload',
                'POST',
                {
                    'body': {'name': 'avatar', 'public': True, 'skip': None},
                    'files': {'file': ('a.png', b'PNGDATA', 'image/png')},
                },
            )
        )

        sent = handler.requests[0]
        assert sent.headers['content-type'].startswith('multipart/form-data; boundary=')
        content = sent.read()
        assert b'name="file"; filename="a.png"' in content
        assert b'PNGDATA' in content
        assert b'name="public"' in content and b'true' in content
        assert b'name="skip"' not in content

    def test_multiple_files(self):
        handler = respond_with(httpx.Response(200, json={'data': None}))
        request = make_request(handler)

        asyncio.run(
            request(
                '/upload',
                'POST',
                {'files': {'files': [('a.txt', b'first'), ('b.txt', b'second')]}},
            )
        )

        content = handler.requests[0].read()
        assert content.count(b'name="files"') == 2
        assert b'first' in content and b'second' in content


class TestRateLimiting:
    def test_retries_after_header_delay(self):
        handler = respond_with(
            httpx.Response(429, headers={'x-ratelimit-reset-after': '50'}),
            httpx.Response(200, json={'data': 'ok'}),
        )
        request = make_request(handler, retry_on_ratelimit=2)

        with patch('lixqa_client.runtime.client.asyncio.sleep', new=AsyncMock()) as sleep:
            result = asyncio.run(request('/x', 'GET'))

        assert result == 'ok'
        assert len(handler.requests) == 2
        sleep.assert_awaited_once_with(0.05)

    def test_gives_up_after_max_retries(self):
        handler = respond_with(httpx.Response(429))
        request = make_request(handler, retry_on_ratelimit=2)

        with patch('lixqa_client.runtime.client.asyncio.sleep', new=AsyncMock()) as sleep:
            with pytest.raises(RequestError) as exc_info:
                asyncio.run(request('/x', 'GET'))

        assert exc_info.value.status == 429
        assert len(handler.requests) == 3
        assert sleep.await_count == 2
        sleep.assert_awaited_with(1.0)

    def test_boolean_disables_retries(self):
        handler = respond_with(httpx.Response(429))
        request = make_request(handler, retry_on_ratelimit=True)

        with pytest.raises(RequestError):
            asyncio.run(request('/x', 'GET'))

        assert len(handler.requests) == 1


class TestErrors:
    def test_validation_error(self):
        handler = respond_with(
            httpx.Response(
                400,
                headers={'X-Bad-Request-Type': 'ZOD'},
                json={'data': {'body': {'email': {'_errors': ['invalid']}}}},
            )
        )
        request = make_request(handler)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(request('/users', 'POST', {'body': {'email': 'x'}}))

        error = exc_info.value
        assert error.status == 400
        assert error.method == 'POST'
        assert error.url == 'http://api.test/users'
        assert error.get_error_messages_by_path() == {'body.email': ['invalid']}

    def test_zod_without_data_is_plain_error(self):
        handler = respond_with(
            httpx.Response(400, headers={'x-bad-request-type': 'zod'}, json={'data': {}})
        )

        with pytest.raises(RequestError) as exc_info:
            asyncio.run(make_request(handler)('/x', 'POST'))

        assert type(exc_info.value) is RequestError

    def test_json_error_body(self):
        handler = respond_with(httpx.Response(404, json={'error': 'not found'}))

        with pytest.raises(RequestError) as exc_info:
            asyncio.run(make_request(handler)('/x', 'GET'))

        error = exc_info.value
        assert error.status == 404
        assert error.status_text == 'Not Found'
        assert error.body == {'error': 'not found'}
        assert str(error) == 'Request failed with status 404: Not Found'

    def test_text_error_body(self):
        handler = respond_with(httpx.Response(500, text='boom'))

        with pytest.raises(RequestError) as exc_info:
            asyncio.run(make_request(handler)('/x', 'GET'))

        assert exc_info.value.body == 'boom'
        assert exc_info.value.headers['content-type'].startswith('text/plain')

    def test_unreadable_json_body(self):
        handler = respond_with(
            httpx.Response(502, headers={'content-type': 'application/json'}, content=b'{nope')
        )

        with pytest.raises(RequestError) as exc_info:
            asyncio.run(make_request(handler)('/x', 'GET'))

        assert exc_info.value.body == {}


class TestProxy:
    def test_sync_proxy_receives_request(self):
        seen = []

        def proxy(proxy_request):
            seen.append(proxy_request)
            return {'status': 200, 'body': {'data': 'proxied'}}

        request = create_request(
            ClientOptions(base_url='http://api.test', proxy_fn=proxy, auth_token='t')
        )

        result = asyncio.run(request('/items', 'put', {'body': {'a': 1}, 'query': {'q': 'x'}}))

        assert result == 'proxied'
        proxied = seen[0]
        assert proxied.url == 'http://api.test/items?q=x'
        assert proxied.method == 'PUT'
        assert json.loads(proxied.body) == {'a': 1}
        assert proxied.headers['Authorization'] == 't'
        assert proxied.headers['Content-Type'] == 'application/json'

    def test_proxy_without_body(self):
        seen = []

        def proxy(proxy_request):
            seen.append(proxy_request)
            return ProxyResponse(status=204)

        request = create_request(ClientOptions(proxy_fn=proxy))

        assert asyncio.run(request('/x', 'DELETE')) is None
        assert seen[0].body is None
        assert seen[0].url == 'http://localhost:3000/x'

    def test_async_proxy_error(self):
        async def proxy(proxy_request):
            return ProxyResponse(status=404, status_text='Nope', body='missing')

        request = create_request(ClientOptions(proxy_fn=proxy))

        with pytest.raises(RequestError) as exc_info:
            asyncio.run(request('/x', 'GET'))

        assert exc_info.value.status_text == 'Nope'
        assert exc_info.value.body == 'missing'

    def test_proxy_returning_httpx_response(self):
        request = create_request(
            ClientOptions(proxy_fn=lambda _: httpx.Response(200, json={'data': [1, 2]}))
        )
        assert asyncio.run(request('/x', 'GET')) == [1, 2]

    def test_proxy_rate_limit_with_numeric_header(self):
        responses = [
            {'status': 429, 'headers': {'x-ratelimit-reset-after': 50}},
            {'status': 200, 'body': {'data': 'ok'}},
        ]
        request = create_request(
            ClientOptions(proxy_fn=lambda _: responses.pop(0), retry_on_ratelimit=1)
        )

        with patch('lixqa_client.runtime.client.asyncio.sleep', new=AsyncMock()) as sleep:
            assert asyncio.run(request('/x', 'GET')) == 'ok'

        sleep.assert_awaited_once_with(0.05)

    def test_proxy_sees_multipart_content_type(self):
        seen = []

        def proxy(proxy_request):
            seen.append(proxy_request)
            return {'status': 200, 'body': '{"data": 1}'}

        request = create_request(ClientOptions(proxy_fn=proxy))
        asyncio.run(request('/upload', 'POST', {'files': {'file': b'raw'}}))

        assert seen[0].headers['Content-Type'].startswith('multipart/form-data')
        assert b'raw' in seen[0].body


class TestNormalizeProxyResponse:
    def test_mapping_with_status_text_alias(self):
        response = normalize_proxy_response(
            {'status': 418, 'statusText': 'Teapot', 'headers': {'x-a': '1'}, 'body': b'tea'}
        )

        assert response.status_code == 418
        assert response.reason_phrase == 'Teapot'
        assert response.headers['x-a'] == '1'
        assert response.content == b'tea'

    def test_mapping_defaults(self):
        response = normalize_proxy_response({})

        assert response.status_code == 200
        assert response.content == b''

    def test_header_values_are_coerced_to_text(self):
        response = normalize_proxy_response(
            ProxyResponse(status=429, headers={'x-ratelimit-reset-after': 50})
        )

        assert response.headers['x-ratelimit-reset-after'] == '50'

    def test_unsupported_result(self):
        with pytest.raises(TypeError):
            normalize_proxy_response('200 OK')


class TestCreateClient:
    def test_factory_binds_options(self):
        handler = respond_with(httpx.Response(200, json={'data': 'pong'}))

        def generate_api_object(request_fn):
            return ApiNode(ping=ApiNode(get=lambda: request_fn('/ping', 'GET', {})))

        factory = create_client(generate_api_object)
        api = factory(
            ClientOptions(
                base_url='https://api.test/v2',
                http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            )
        )

        assert asyncio.run(api.ping.get()) == 'pong'
        assert str(handler.requests[0].url) == 'https://api.test/v2/ping'
