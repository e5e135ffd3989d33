"""Tests for the Neo4j client against a mocked driver."""

import json
from unittest.mock import MagicMock

import pytest
from neo4j.exceptions import ServiceUnavailable

from ai_memory.utils.config import Neo4jConfig
from ai_memory.utils.errors import (GraphStoreError, InvalidRelationshipTypeError, NodesNotFoundError, NotFoundError,
                                    ValidationError)
from ai_memory.utils.neo4j_client import Neo4jClient, serialize_node, truncate


def _result(rows):
    result = MagicMock()
    result.data.return_value = rows
    return result


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    driver = MagicMock()
    driver.session.return_value.__enter__.return_value = session
    config = Neo4jConfig(uri='bolt://localhost:7687', user='neo4j', password='password', database='neo4j')
    return Neo4jClient(config, driver=driver)


def _queries(session):
    return [call.args[0] for call in session.run.call_args_list]


class TestHelpers:

    def test_truncate(self):
        assert truncate('short', 10) == 'short'
        assert truncate('a' * 60, 50) == 'a' * 50 + '...'

    def test_serialize_node_decodes_metadata(self):
        node = serialize_node({'id': 'm1', 'content': 'hi', 'metadata': json.dumps({'user_id': 'u1'})})

        assert node['metadata'] == {'user_id': 'u1'}
        assert node['label'] == 'm1'
        assert node['namespace'] == 'default'
        assert node['status'] == 'active'


class TestUpsert:

    def test_upsert_memory_node_keeps_status(self, client, session):
        session.run.return_value = _result([{'m': {'id': 'm1', 'content': 'hello', 'status': 'outdated'}}])

        node = client.upsert_memory_node('m1', 'hello', 'notes', 'notes', '2024-01-01T00:00:00.000Z', {'a': 1})

        query, params = session.run.call_args.args
        assert 'MERGE (m:Memory {id: $id})' in query
        assert "coalesce(m.status, 'active')" in query
        assert params['metadata'] == json.dumps({'a': 1})
        assert params['label'] == 'hello'
        assert node['status'] == 'outdated'

    def test_label_and_title_truncated(self, client, session):
        session.run.return_value = _result([])
        content = 'x' * 120

        client.upsert_memory_node('m1', content, 'notes', 'notes')

        params = session.run.call_args.args[1]
        assert params['label'] == 'x' * 100 + '...'
        assert params['title'] == 'x' * 50 + '...'

    def test_driver_error_becomes_graph_store_error(self, client, session):
        session.run.side_effect = ServiceUnavailable('connection refused')

        with pytest.raises(GraphStoreError):
            client.upsert_memory_node('m1', 'hello', 'notes', 'notes')


class TestHeuristicEdges:

    def test_empty_batch_skips_query(self, client, session):
        assert client.merge_heuristic_edges('same_category', []) == 0
        session.run.assert_not_called()

    def test_merge_keyed_on_kind(self, client, session):
        session.run.return_value = _result([{'count': 2}])
        edges = [{'source': 'a', 'target': 'b', 'properties': {'similarity': 0.8}},
                 {'source': 'a', 'target': 'c', 'properties': {'similarity': 0.8}}]

        count = client.merge_heuristic_edges('cross_namespace', edges)

        query, params = session.run.call_args.args
        assert count == 2
        assert 'MERGE (m1)-[r:RELATED_TO {relationshipType: $kind}]->(m2)' in query
        assert params['kind'] == 'cross_namespace'
        assert params['edges'][0] == {'source': 'a', 'target': 'b', 'properties': {'similarity': 0.8}}

    def test_unknown_kind(self, client):
        with pytest.raises(ValidationError):
            client.merge_heuristic_edges('guesswork', [{'source': 'a', 'target': 'b'}])


class TestGraphData:

    def test_bounded_by_max_nodes(self, client, session):
        nodes = [{'m': {'id': f'm{i}', 'namespace': 'notes'}} for i in range(5)]
        edges = [
            {'source': 'm0', 'target': 'm1', 'type': 'SIMILAR_TO', 'props': {'similarity': 0.8,
                                                                               'method': 'same_category'}},
            {'source': 'm0', 'target': 'm4', 'type': 'SIMILAR_TO', 'props': {'similarity': 0.9}},
        ]
        session.run.side_effect = [_result(nodes), _result(edges)]

        data = client.get_graph_data('notes', max_nodes=3)

        node_ids = {node['id'] for node in data['nodes']}
        assert node_ids == {'m0', 'm1', 'm2'}
        assert [(e['source'], e['target']) for e in data['edges']] == [('m0', 'm1')]
        assert data['edges'][0]['id'] == 'm0_m1_SIMILAR_TO_same_category'
        assert data['edges'][0]['crossNamespace'] is False

    def test_outdated_nodes_are_returned(self, client, session):
        session.run.side_effect = [_result([{'m': {'id': 'm1', 'status': 'outdated'}}]), _result([])]

        data = client.get_graph_data()

        assert data['nodes'][0]['status'] == 'outdated'
        assert 'status' not in _queries(session)[0]

    def test_empty_graph_skips_edge_query(self, client, session):
        session.run.return_value = _result([])

        assert client.get_graph_data() == {'nodes': [], 'edges': []}
        assert session.run.call_count == 1

    def test_cross_namespace_flag(self, client, session):
        nodes = [{'m': {'id': 'a', 'namespace': 'one'}}, {'m': {'id': 'b', 'namespace': 'two'}}]
        edges = [{'source': 'a', 'target': 'b', 'type': 'RELATED_TO', 'props': {'relationshipType': 'cross_namespace'}}]
        session.run.side_effect = [_result(nodes), _result(edges)]

        data = client.get_graph_data(max_nodes=10)

        assert data['edges'][0]['crossNamespace'] is True
        assert data['edges'][0]['similarity'] is None


class TestLineage:

    def test_invalid_relationship_type(self, client, session):
        with pytest.raises(InvalidRelationshipTypeError):
            client.create_memory_relationship('a', 'b', 'FOO')
        session.run.assert_not_called()

    def test_missing_target(self, client, session):
        session.run.return_value = _result([{'sourceExists': True, 'targetExists': False}])

        with pytest.raises(NodesNotFoundError) as excinfo:
            client.create_memory_relationship('a', 'missing', 'UPDATES')

        assert 'missing' in str(excinfo.value)
        assert isinstance(excinfo.value, NotFoundError)
        assert session.run.call_count == 1

    def test_create_relationship_merges(self, client, session):
        session.run.side_effect = [
            _result([{'sourceExists': True, 'targetExists': True}]),
            _result([{'r': {'createdAt': '2024-01-01T00:00:00.000Z', 'confidence': 0.9}}]),
        ]

        result = client.create_memory_relationship('a', 'b', 'EXTENDS', {'confidence': 0.9, 'tags': {'x': 1}})

        query, params = session.run.call_args.args
        assert 'MERGE (source)-[r:EXTENDS]->(target)' in query
        assert params['properties'] == {'confidence': 0.9, 'tags': '{"x": 1}'}
        assert result == {'relationshipType': 'EXTENDS', 'sourceId': 'a', 'targetId': 'b',
                          'createdAt': '2024-01-01T00:00:00.000Z'}

    def test_mark_memory_outdated(self, client, session):
        session.run.return_value = _result([{'id': 'a'}])
        assert client.mark_memory_outdated('a', 'b') is True

        params = session.run.call_args.args[1]
        assert params['supersededBy'] == 'b'

        session.run.return_value = _result([])
        assert client.mark_memory_outdated('missing', 'b') is False

    def test_version_chain(self, client, session):
        session.run.side_effect = [
            _result([{'status': 'outdated'}]),
            _result([{'id': 'newer', 'label': 'n', 'relationshipType': 'UPDATES', 'createdAt': 't'}]),
            _result([]),
        ]

        chain = client.get_memory_version_chain('m1')

        assert chain['isOutdated'] is True
        assert chain['ancestors'][0]['id'] == 'newer'
        assert chain['descendants'] == []

    def test_version_chain_unknown_memory(self, client, session):
        session.run.return_value = _result([])

        with pytest.raises(NotFoundError):
            client.get_memory_version_chain('missing')


class TestConnectedSubgraph:

    @pytest.mark.parametrize('depth', [0, 6, 'deep'])
    def test_depth_validated(self, client, depth):
        with pytest.raises(ValidationError):
            client.get_connected_subgraph(['a'], depth=depth)

    def test_unknown_relationship_type(self, client):
        with pytest.raises(ValidationError):
            client.get_connected_subgraph(['a'], relationship_types=['KNOWS'])

    def test_seeds_included_and_edges_deduplicated(self, client, session):
        a, b = {'id': 'a', 'content': 'seed'}, {'id': 'b', 'content': 'neighbour'}
        session.run.side_effect = [
            _result([{'m': a}, {'m': {'id': 'lonely'}}]),
            _result([
                {'source': a, 'target': b, 'type': 'SIMILAR_TO', 'props': {'similarity': 0.8}},
                {'source': a, 'target': b, 'type': 'SIMILAR_TO', 'props': {'similarity': 0.8}},
                {'source': b, 'target': a, 'type': 'UPDATES', 'props': {'confidence': 0.5}},
            ]),
        ]

        subgraph = client.get_connected_subgraph(['a', 'lonely'], depth=2)

        assert [node['id'] for node in subgraph['nodes']] == ['a', 'lonely', 'b']
        assert [(e['source'], e['target'], e['type']) for e in subgraph['edges']] == [('a', 'b', 'SIMILAR_TO'),
                                                                                       ('b', 'a', 'UPDATES')]
        path_query = _queries(session)[1]
        assert '[*1..2]' in path_query

    def test_no_seeds(self, client, session):
        assert client.get_connected_subgraph([]) == {'nodes': [], 'edges': [], 'seedIds': []}
        session.run.assert_not_called()


def test_namespaces_default_label(client, session):
    session.run.return_value = _result([{'namespace': None}, {'namespace': 'notes'}])
    assert client.get_namespaces() == ['default', 'notes']


def test_health_check_failure(client, session):
    session.run.side_effect = ServiceUnavailable('down')
    assert client.health_check() is False
