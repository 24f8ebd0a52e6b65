"""Tests for identifier utilities."""

import pytest

from lixqa_client.codegen.utils import (
    is_url,
    sanitize_attribute_name,
    sanitize_identifier,
    unique_identifier,
)


class TestSanitizeAttributeName:
    @pytest.mark.parametrize(
        'raw,expected',
        [
            ('users', 'users'),
            ('my-items', 'my_items'),
            ('v1.0', 'v1_0'),
            ('class', 'class_'),
            ('match', 'match_'),
            ('123abc', '_123abc'),
            ('café', 'cafe'),
            ('$$', '_'),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_attribute_name(raw) == expected

    def test_empty_name_raises(self):
        with pytest.raises(ValueError):
            sanitize_attribute_name('')


class TestSanitizeIdentifier:
    def test_strips_invalid_characters(self):
        assert sanitize_identifier('Get$Users') == 'GetUsers'

    def test_empty_falls_back(self):
        assert sanitize_identifier('$') == 'UnnamedType'


class TestUniqueIdentifier:
    def test_free_name_is_kept(self):
        assert unique_identifier('id', set()) == 'id'

    def test_counter_suffix(self):
        assert unique_identifier('id', {'id'}) == 'id2'
        assert unique_identifier('id', {'id', 'id2'}) == 'id3'


class TestIsUrl:
    def test_is_url(self):
        assert is_url('http://localhost:3000')
        assert is_url('https://api.example.com/v1')
        assert not is_url('./routes.json')
        assert not is_url('http://')
