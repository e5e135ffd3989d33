"""Tests for small helpers: ids, timestamps, metadata encoding and parameter coercion."""

import json
import re

import pytest

from ai_memory.api.params import as_bool, as_float, as_int, as_optional_str
from ai_memory.models.core import MemoryRecord, SyncResult, namespace_label, vector_namespace
from ai_memory.utils.json_utils import dump_metadata, parse_metadata, to_graph_properties
from ai_memory.utils.timestamp_utils import generate_memory_id, iso_now, to_base36


class TestIdentifiers:

    def test_to_base36(self):
        assert to_base36(0) == '0'
        assert to_base36(35) == 'z'
        assert to_base36(36) == '10'

    def test_memory_id_starts_with_timestamp(self):
        memory_id = generate_memory_id(timestamp=1.0)

        assert memory_id.startswith(to_base36(1000))
        assert re.fullmatch(r'[0-9a-z]+', memory_id)
        assert len(memory_id) == len(to_base36(1000)) + 11

    def test_memory_ids_differ(self):
        assert generate_memory_id() != generate_memory_id()

    def test_iso_now(self):
        assert re.fullmatch(r'\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z', iso_now())


class TestMetadata:

    def test_parse_metadata(self):
        assert parse_metadata(json.dumps({'a': 1})) == {'a': 1}
        assert parse_metadata({'a': 1}) == {'a': 1}
        assert parse_metadata(None) == {}
        assert parse_metadata('not json') == {}
        assert parse_metadata('[1, 2]') == {}

    def test_dump_metadata(self):
        assert json.loads(dump_metadata({'tags': ['a']})) == {'tags': ['a']}
        assert dump_metadata(None) == '{}'

    def test_to_graph_properties(self):
        properties = to_graph_properties({
            'confidence': 0.9,
            'skip': None,
            'tags': ['a', 'b'],
            'mixed': ['a', 1],
            'nested': {'k': 'v'},
        })

        assert properties == {
            'confidence': 0.9,
            'tags': ['a', 'b'],
            'mixed': '["a", 1]',
            'nested': '{"k": "v"}',
        }


class TestParams:

    @pytest.mark.parametrize('value, expected', [(None, 50), ('', 50), ('10', 10), (7, 7), ('2.9', 2), ('x', 50)])
    def test_as_int(self, value, expected):
        assert as_int(value, 50) == expected

    @pytest.mark.parametrize('value, expected', [(None, 0.75), ('0', 0.0), ('0.5', 0.5), (0.9, 0.9), ('x', 0.75)])
    def test_as_float(self, value, expected):
        assert as_float(value, 0.75) == expected

    @pytest.mark.parametrize('value, expected', [(None, False), ('true', True), ('TRUE', True), ('false', False),
                                                 (True, True), ('1', True), ('no', False)])
    def test_as_bool(self, value, expected):
        assert as_bool(value) is expected

    def test_as_optional_str(self):
        assert as_optional_str('') is None
        assert as_optional_str(None) is None
        assert as_optional_str('notes') == 'notes'


class TestModels:

    def test_namespace_label(self):
        assert namespace_label('') == 'default'
        assert namespace_label('notes') == 'notes'
        assert vector_namespace('default') == ''
        assert vector_namespace('notes') == 'notes'

    def test_memory_record_from_match(self):
        record = MemoryRecord.from_match({'id': 'm1', 'score': 0.4, 'metadata': {'content': 'hi'}}, '')

        assert record.content == 'hi'
        assert record.category == 'default'
        assert record.created_at == ''

    def test_sync_result_payload(self):
        result = SyncResult(nodes_created=2, relationships_created=3, namespaces_processed=['default'])

        assert result.to_dict() == {'nodesCreated': 2, 'relationshipsCreated': 3, 'namespacesProcessed': ['default']}
