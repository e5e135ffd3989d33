"""Shared fixtures: in-memory stand-ins for the embedding gateway and both stores."""

from copy import deepcopy
from typing import Any, Dict, List, Optional

import pytest

from ai_memory.services.memory_management import MemoryManagementService
from ai_memory.utils.config import DEFAULT_NAMESPACES, GraphSyncConfig, load_config
from ai_memory.utils.errors import GraphStoreError, InvalidRelationshipTypeError, NodesNotFoundError, VectorStoreError
from ai_memory.utils.neo4j_client import HEURISTIC_EDGE_KINDS, LINEAGE_TYPES, edge_id, serialize_node

EMBEDDING_DIMENSION = 3072


class FakeGateway:
    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        self.dimension = dimension
        self.embedded: List[str] = []
        self.completions: List[tuple] = []

    def embed(self, text: str) -> List[float]:
        self.embedded.append(text)
        return [0.1] * self.dimension

    def complete(self, prompt: str, context: str = '') -> str:
        self.completions.append((prompt, context))
        return f'answer to {prompt}'

    def health_check(self) -> bool:
        return True


class FakeVectorStore:
    """Namespaced records; every stored record matches a query with score 0.9."""

    def __init__(self, namespaces: Optional[List[str]] = None):
        self.namespaces = list(namespaces if namespaces is not None else DEFAULT_NAMESPACES)
        self.records: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.failing_namespaces = set()

    def add(self, namespace: str, memory_id: str, **metadata):
        self.records.setdefault(namespace, {})[memory_id] = {'id': memory_id, 'metadata': metadata}

    def _check(self, namespace: str):
        if namespace in self.failing_namespaces:
            raise VectorStoreError(f'namespace {namespace} unavailable')

    def upsert(self, index_name, namespace, memory_id, vector, metadata):
        self._check(namespace)
        self.records.setdefault(namespace, {})[memory_id] = {'id': memory_id, 'metadata': dict(metadata)}
        return {'upsertedCount': 1}

    def query(self, index_name, namespace, vector, filters=None, top_k=50):
        self._check(namespace)
        matches = []
        for record in self.records.get(namespace, {}).values():
            if all(record['metadata'].get(key) == value for key, value in (filters or {}).items()):
                matches.append({'id': record['id'], 'score': 0.9, 'metadata': dict(record['metadata'])})
        return matches[:top_k]

    def fetch_all(self, index_name, namespace, limit=1000):
        self._check(namespace)
        return [{'id': r['id'], 'score': 0.0, 'metadata': dict(r['metadata'])}
                for r in list(self.records.get(namespace, {}).values())[:limit]]

    def list_namespaces(self, index_name=None):
        return list(self.namespaces)

    def health_check(self) -> bool:
        return True


class FakeGraphStore:
    """Dictionary backed graph with the same merge-by-id and merge-by-pattern behaviour."""

    def __init__(self):
        self.nodes: Dict[str, Dict[str, Any]] = {}
        # (type, kind, source, target) -> properties
        self.edges: Dict[tuple, Dict[str, Any]] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise GraphStoreError('graph unavailable')

    def upsert_memory_node(self, memory_id, content, category, namespace, created_at=None, metadata=None):
        self._check()
        node = self.nodes.setdefault(memory_id, {'id': memory_id, 'status': 'active', 'version': 1})
        node.update({
            'content': content,
            'category': category,
            'namespace': namespace or 'default',
            'createdAt': created_at or '',
            'label': content[:100],
            'title': content[:50],
            'metadata': deepcopy(metadata or {}),
        })
        return serialize_node(node)

    def ensure_memory_node(self, memory_id, memory_data):
        return self.upsert_memory_node(memory_id, memory_data.get('content', ''), memory_data.get('category'),
                                       memory_data.get('namespace'), memory_data.get('createdAt'),
                                       memory_data.get('metadata'))

    def list_memory_nodes(self, namespace=None):
        self._check()
        return [{
            'id': node['id'],
            'namespace': node['namespace'],
            'category': node['category'],
            'content': node['content'],
            'metadata': node['metadata'],
        } for node in self.nodes.values() if namespace is None or node['namespace'] == namespace]

    def merge_heuristic_edges(self, kind, edges):
        self._check()
        rel_type = HEURISTIC_EDGE_KINDS[kind][0]
        for edge in edges:
            self.edges.setdefault((rel_type, kind, edge['source'], edge['target']), {}).update(edge['properties'])
        return len(edges)

    def get_relationships_among(self, node_ids, similarity_threshold=None, relationship_types=None):
        self._check()
        allowed = set(node_ids)
        records = []
        for (rel_type, kind, source, target), props in self.edges.items():
            if source not in allowed or target not in allowed:
                continue
            if relationship_types and rel_type not in relationship_types:
                continue
            similarity = props.get('similarity')
            if similarity_threshold is not None and similarity is not None and similarity < similarity_threshold:
                continue
            records.append({'source': source, 'target': target, 'type': rel_type, 'props': props})
        return records

    def get_graph_data(self, namespace=None, max_nodes=50, similarity_threshold=0.75):
        self._check()
        nodes = [serialize_node(n) for n in self.nodes.values() if not namespace or n['namespace'] == namespace]
        nodes = nodes[:max_nodes]
        namespaces = {node['id']: node['namespace'] for node in nodes}
        edges = []
        for record in self.get_relationships_among(list(namespaces), similarity_threshold):
            edges.append({
                'id': edge_id(record['source'], record['target'], record['type']),
                'source': record['source'],
                'target': record['target'],
                'similarity': record['props'].get('similarity'),
                'relationshipType': record['type'],
                'crossNamespace': namespaces[record['source']] != namespaces[record['target']],
                'createdAt': '',
            })
        return {'nodes': nodes, 'edges': edges}

    def get_namespaces(self):
        self._check()
        return sorted({node['namespace'] for node in self.nodes.values()})

    def get_memory_by_id(self, memory_id):
        self._check()
        node = self.nodes.get(memory_id)
        return serialize_node(node) if node else None

    def get_memory_relationships(self, memory_id):
        self._check()
        outgoing = [{'type': t, 'target': tgt, 'props': p} for (t, _, src, tgt), p in self.edges.items()
                    if src == memory_id]
        incoming = [{'type': t, 'source': src, 'props': p} for (t, _, src, tgt), p in self.edges.items()
                    if tgt == memory_id]
        return {'outgoing': outgoing, 'incoming': incoming}

    def create_memory_relationship(self, source_id, target_id, relationship_type, metadata=None):
        self._check()
        if relationship_type not in LINEAGE_TYPES:
            raise InvalidRelationshipTypeError('Invalid relationship type')
        if source_id not in self.nodes or target_id not in self.nodes:
            raise NodesNotFoundError('Failed to create relationship - one or both memories not found')
        props = self.edges.setdefault((relationship_type, None, source_id, target_id), {'createdAt': 'now'})
        props.update(metadata or {})
        return {'relationshipType': relationship_type, 'sourceId': source_id, 'targetId': target_id,
                'createdAt': props['createdAt']}

    def mark_memory_outdated(self, memory_id, superseded_by):
        self._check()
        if memory_id not in self.nodes:
            return False
        self.nodes[memory_id].update({'status': 'outdated', 'supersededBy': superseded_by})
        return True

    def get_memory_version_chain(self, memory_id):
        self._check()
        ancestors = [{'id': src, 'relationshipType': t} for (t, _, src, tgt) in self.edges
                     if tgt == memory_id and t in LINEAGE_TYPES]
        descendants = [{'id': tgt, 'relationshipType': t} for (t, _, src, tgt) in self.edges
                       if src == memory_id and t in LINEAGE_TYPES]
        return {'memoryId': memory_id, 'ancestors': ancestors, 'descendants': descendants,
                'isOutdated': self.nodes.get(memory_id, {}).get('status') == 'outdated'}

    def get_connected_subgraph(self, memory_ids, depth=2, relationship_types=None):
        self._check()
        nodes = [serialize_node(self.nodes[i]) for i in memory_ids if i in self.nodes]
        return {'nodes': nodes, 'edges': [], 'seedIds': list(memory_ids)}

    def health_check(self):
        return not self.fail


@pytest.fixture
def app_config():
    return load_config()


@pytest.fixture
def sync_config():
    return GraphSyncConfig()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def vector_store():
    return FakeVectorStore()


@pytest.fixture
def graph_store():
    return FakeGraphStore()


@pytest.fixture
def service(gateway, vector_store, graph_store, app_config):
    return MemoryManagementService(gateway=gateway,
                                   vector_store=vector_store,
                                   graph_store=graph_store,
                                   app_config=app_config)
