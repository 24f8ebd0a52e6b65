"""Tests for the runtime API node and route table lookups."""

import pytest

from lixqa_client.runtime import ApiNode, lookup_route_entry


class TestApiNode:
    def test_members_become_attributes(self):
        get = object()
        node = ApiNode(get=get, posts=ApiNode())

        assert node.get is get
        assert isinstance(node.posts, ApiNode)

    def test_param_child(self):
        node = ApiNode(lambda id: ApiNode(value=id))

        assert node(42).value == 42
        assert node('abc').value == 'abc'

    def test_not_callable_without_param(self):
        with pytest.raises(TypeError):
            ApiNode(get=None)(1)

    def test_param_named_member(self):
        node = ApiNode(param='a member')
        assert node.param == 'a member'

    def test_repr(self):
        assert repr(ApiNode(lambda id: ApiNode(), get=None, users=None)) == 'ApiNode(get, users)'


class TestLookupRouteEntry:
    TABLE = {'users/$': {'GET': {'ResponseBody': dict, 'Params': tuple}}}

    def test_found(self):
        assert lookup_route_entry(self.TABLE, 'users/$', 'get', 'ResponseBody') is dict

    @pytest.mark.parametrize(
        'path,method,part',
        [
            ('users', 'GET', 'ResponseBody'),
            ('users/$', 'POST', 'ResponseBody'),
            ('users/$', 'GET', 'RequestBody'),
        ],
    )
    def test_missing(self, path, method, part):
        assert lookup_route_entry(self.TABLE, path, method, part) is None
