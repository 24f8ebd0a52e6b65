"""Tests for loading route schemas from a server or a file."""

import json
import logging

import httpx
import pytest

from lixqa_client.codegen.schema_loader import SchemaLoader, extract_routes
from lixqa_client.exceptions import SchemaLoadError

from .fixtures import USERS_PAYLOAD, USERS_ROUTES


def loader_for(handler) -> SchemaLoader:
    return SchemaLoader(http_client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestExtractRoutes:
    def test_bare_list(self):
        assert extract_routes([{'path': '/a'}]) == [{'path': '/a'}]

    def test_data_envelope(self):
        assert extract_routes({'data': [{'path': '/a'}]}) == [{'path': '/a'}]

    @pytest.mark.parametrize('payload', [None, 'routes', {'data': {'path': '/a'}}, {}])
    def test_anything_else_is_empty(self, payload):
        assert extract_routes(payload) == []


class TestSchemaUrl:
    @pytest.mark.parametrize(
        'base_url', ['http://api.test', 'http://api.test/']
    )
    def test_appends_client_route(self, base_url):
        assert SchemaLoader.schema_url(base_url) == 'http://api.test/__client__'

    def test_keeps_base_path(self):
        assert SchemaLoader.schema_url('https://api.test/v1/') == 'https://api.test/v1/__client__'


class TestLoadFromUrl:
    def test_fetches_client_route(self, caplog):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=USERS_PAYLOAD)

        with caplog.at_level(logging.INFO, logger='lixqa_client.codegen.schema_loader'):
            routes = loader_for(handler).load('http://api.test')

        assert len(routes) == len(USERS_ROUTES)
        assert routes[0]['path'] == '/users'
        assert str(seen[0].url) == 'http://api.test/__client__'
        assert seen[0].method == 'GET'
        assert 'Found 3 routes' in caplog.text

    def test_bare_list_payload(self):
        routes = loader_for(lambda _: httpx.Response(200, json=[{'path': '/x'}])).load(
            'http://api.test'
        )
        assert routes == [{'path': '/x'}]

    def test_unexpected_payload_yields_no_routes(self):
        routes = loader_for(lambda _: httpx.Response(200, json={'ok': True})).load(
            'http://api.test'
        )
        assert routes == []

    def test_http_error(self):
        loader = loader_for(lambda _: httpx.Response(500, text='oops'))

        with pytest.raises(SchemaLoadError) as exc_info:
            loader.load('http://api.test')

        assert exc_info.value.source == 'http://api.test/__client__'
        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)

    def test_invalid_json(self):
        loader = loader_for(lambda _: httpx.Response(200, text='<html>'))

        with pytest.raises(SchemaLoadError):
            loader.load('http://api.test')

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError('refused', request=request)

        with pytest.raises(SchemaLoadError) as exc_info:
            loader_for(handler).load('http://api.test')

        assert 'refused' in str(exc_info.value)


class TestLoadFromFile:
    def test_json_file(self, tmp_path):
        path = tmp_path / 'routes.json'
        path.write_text(json.dumps(USERS_PAYLOAD))

        assert SchemaLoader().load(str(path))[0]['path'] == '/users'

    def test_yaml_file(self, tmp_path):
        path = tmp_path / 'routes.yaml'
        path.write_text('- path: /health\n  methods: [GET]\n')

        assert SchemaLoader().load(str(path)) == [{'path': '/health', 'methods': ['GET']}]

    def test_missing_file(self, tmp_path):
        missing = str(tmp_path / 'missing.json')

        with pytest.raises(SchemaLoadError) as exc_info:
            SchemaLoader().load(missing)

        assert exc_info.value.source == missing
        assert isinstance(exc_info.value.cause, FileNotFoundError)

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / 'routes.json'
        path.write_text('{not json')

        with pytest.raises(SchemaLoadError) as exc_info:
            SchemaLoader().load(str(path))

        assert isinstance(exc_info.value.cause, json.JSONDecodeError)
