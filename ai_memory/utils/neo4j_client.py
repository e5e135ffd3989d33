"""
Neo4j graph database client for Memory nodes and their relationships.
"""

from functools import wraps
from typing import Any, Dict, Iterable, List, Optional

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from .config import Neo4jConfig
from .errors import (GraphStoreError, InvalidRelationshipTypeError, MemoryServiceError, NodesNotFoundError,
                     NotFoundError, ValidationError)
from .json_utils import dump_metadata, parse_metadata, to_graph_properties
from .logging_config import get_logger
from .timestamp_utils import iso_now

logger = get_logger(__name__)

LINEAGE_TYPES = ('UPDATES', 'EXTENDS', 'DERIVES')
HEURISTIC_TYPES = ('SIMILAR_TO', 'RELATED_TO')
RELATIONSHIP_TYPES = LINEAGE_TYPES + HEURISTIC_TYPES

# kind -> (relationship type, property that distinguishes the kind)
HEURISTIC_EDGE_KINDS = {
    'same_category': ('SIMILAR_TO', 'method'),
    'content_overlap': ('SIMILAR_TO', 'method'),
    'cross_namespace': ('RELATED_TO', 'relationshipType'),
}

MAX_SUBGRAPH_DEPTH = 5


def wrap_graph_errors(func):
    """Decorator converting driver failures into GraphStoreError."""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except MemoryServiceError:
            raise
        except (Neo4jError, DriverError) as e:
            logger.error(f'Neo4j error in {func.__name__}: {e}')
            raise GraphStoreError(f'Failed to {func.__name__}: {e}')
        except Exception as e:
            logger.error(f'Error in {func.__name__}: {e}')
            raise GraphStoreError(f'Failed to {func.__name__}: {e}')

    return wrapper


def truncate(text: str, length: int) -> str:
    """First `length` characters, with an ellipsis when something was cut."""
    text = text or ''
    return text[:length] + ('...' if len(text) > length else '')


def serialize_node(props: Dict[str, Any]) -> Dict[str, Any]:
    """Presentation shape of a Memory node."""
    node_id = props.get('id')
    node = {
        'id': node_id,
        'label': props.get('label') or props.get('title') or node_id,
        'title': props.get('title') or props.get('label') or node_id,
        'content': props.get('content') or '',
        'category': props.get('category') or 'default',
        'namespace': props.get('namespace') or 'default',
        'status': props.get('status') or 'active',
        'version': props.get('version') or 1,
        'createdAt': props.get('createdAt') or '',
        'metadata': parse_metadata(props.get('metadata')),
    }
    if props.get('supersededBy'):
        node['supersededBy'] = props['supersededBy']
    return node


def _float_or_none(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def edge_id(source: str, target: str, rel_type: str, kind: Optional[str] = None) -> str:
    parts = [source, target, rel_type]
    if kind:
        parts.append(kind)
    return '_'.join(parts)


class Neo4jClient:
    """Neo4j client built on the official Python driver."""

    def __init__(self, config: Neo4jConfig, driver=None):
        """
        Initialize Neo4j client. The driver connects lazily on first use.

        Args:
            config: Neo4jConfig instance with connection parameters
            driver: Optional pre-built driver
        """
        self.config = config
        self.driver = driver if driver is not None else GraphDatabase.driver(config.uri,
                                                                             auth=(config.user, config.password))

        logger.info(f'Initialized Neo4j client for {config.uri}')

    def close(self):
        """Close the Neo4j driver."""
        if self.driver is not None:
            self.driver.close()

    def _session(self):
        return self.driver.session(database=self.config.database)

    def _run(self, query: str, **params) -> List[Dict[str, Any]]:
        """Run one query in its own session and return the records as dictionaries."""
        with self._session() as session:
            return session.run(query, params).data()

    def health_check(self) -> bool:
        """
        Perform a health check on the Neo4j service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            self._run('RETURN 1 AS test')
            return True

        except Exception as e:
            logger.error(f'Neo4j health check failed: {e}')
            return False

    @wrap_graph_errors
    def upsert_memory_node(self,
                           memory_id: str,
                           content: str,
                           category: str,
                           namespace: str,
                           created_at: Optional[str] = None,
                           metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Create or update a Memory node keyed by id.

        Status and version are only initialised, never overwritten, so a node marked
        outdated stays outdated across syncs.

        Returns:
            Serialized node
        """
        query = """
            MERGE (m:Memory {id: $id})
            SET m.content = $content,
                m.category = $category,
                m.namespace = $namespace,
                m.createdAt = $createdAt,
                m.label = $label,
                m.title = $title,
                m.metadata = $metadata,
                m.status = coalesce(m.status, 'active'),
                m.version = coalesce(m.version, 1)
            RETURN properties(m) AS m
        """
        records = self._run(query,
                            id=memory_id,
                            content=content or '',
                            category=category or namespace or 'default',
                            namespace=namespace or 'default',
                            createdAt=created_at or iso_now(),
                            label=truncate(content, 100) if content else memory_id,
                            title=truncate(content, 50) if content else memory_id,
                            metadata=dump_metadata(metadata))

        logger.debug(f'Upserted memory node: {memory_id}')
        return serialize_node(records[0]['m']) if records else {'id': memory_id}

    def ensure_memory_node(self, memory_id: str, memory_data: Dict[str, Any]) -> Dict[str, Any]:
        """Mirror a freshly created memory into the graph."""
        return self.upsert_memory_node(memory_id,
                                       content=memory_data.get('content', ''),
                                       category=memory_data.get('category') or memory_data.get('namespace'),
                                       namespace=memory_data.get('namespace') or 'default',
                                       created_at=memory_data.get('createdAt'),
                                       metadata=memory_data.get('metadata') or {})

    @wrap_graph_errors
    def list_memory_nodes(self, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Lightweight listing of Memory nodes used by the sync heuristics.

        Args:
            namespace: Restrict to one namespace (None for all)

        Returns:
            List of dicts with id, namespace, category, content and parsed metadata
        """
        where = 'WHERE m.namespace = $namespace' if namespace is not None else ''
        query = f"""
            MATCH (m:Memory)
            {where}
            RETURN m.id AS id, m.namespace AS namespace, m.category AS category,
                   m.content AS content, m.metadata AS metadata
        """
        records = self._run(query, namespace=namespace)
        return [{
            'id': record['id'],
            'namespace': record.get('namespace') or 'default',
            'category': record.get('category'),
            'content': record.get('content') or '',
            'metadata': parse_metadata(record.get('metadata')),
        } for record in records if record.get('id')]

    @wrap_graph_errors
    def merge_heuristic_edges(self, kind: str, edges: List[Dict[str, Any]]) -> int:
        """
        Merge heuristic similarity edges of one kind.

        Each edge is ``{source, target, properties}``. The pattern merged is
        ``(source)-[:TYPE {marker: kind}]->(target)`` so repeated syncs update the
        existing edge instead of adding another.

        Returns:
            Number of relationships merged
        """
        if kind not in HEURISTIC_EDGE_KINDS:
            raise ValidationError(f'Unknown heuristic edge kind: {kind}')
        if not edges:
            return 0

        rel_type, marker = HEURISTIC_EDGE_KINDS[kind]
        query = f"""
            UNWIND $edges AS edge
            MATCH (m1:Memory {{id: edge.source}})
            MATCH (m2:Memory {{id: edge.target}})
            MERGE (m1)-[r:{rel_type} {{{marker}: $kind}}]->(m2)
            ON CREATE SET r.createdAt = $createdAt
            SET r += edge.properties
            RETURN count(r) AS count
        """
        payload = [{
            'source': edge['source'],
            'target': edge['target'],
            'properties': to_graph_properties(edge.get('properties') or {}),
        } for edge in edges]

        records = self._run(query, edges=payload, kind=kind, createdAt=iso_now())
        count = int(records[0]['count']) if records else 0
        logger.debug(f'Merged {count} {rel_type} ({kind}) relationships')
        return count

    @wrap_graph_errors
    def get_relationships_among(self,
                                node_ids: List[str],
                                similarity_threshold: Optional[float] = None,
                                relationship_types: Iterable[str] = RELATIONSHIP_TYPES) -> List[Dict[str, Any]]:
        """
        Relationships whose two endpoints are both in `node_ids`.

        Edges carrying a similarity below the threshold are dropped, edges without
        one always pass.

        Returns:
            List of dicts with source, target, type and properties
        """
        if not node_ids:
            return []

        query = """
            MATCH (m1:Memory)-[r]->(m2:Memory)
            WHERE m1.id IN $nodeIds
              AND m2.id IN $nodeIds
              AND type(r) IN $types
              AND ($threshold IS NULL OR r.similarity IS NULL OR r.similarity >= $threshold)
            RETURN m1.id AS source, m2.id AS target, type(r) AS type, properties(r) AS props
        """
        records = self._run(query,
                            nodeIds=list(node_ids),
                            types=list(relationship_types),
                            threshold=similarity_threshold)
        allowed = set(node_ids)
        return [record for record in records if record['source'] in allowed and record['target'] in allowed]

    @wrap_graph_errors
    def get_graph_data(self,
                       namespace: Optional[str] = None,
                       max_nodes: int = 50,
                       similarity_threshold: float = 0.75) -> Dict[str, List[Dict[str, Any]]]:
        """
        Get a bounded slice of the graph.

        Nodes are fetched first (up to `max_nodes`), then only the edges among those
        nodes, so the result size is bounded by `max_nodes`.

        Args:
            namespace: Filter by namespace (None for all)
            max_nodes: Maximum number of nodes to return
            similarity_threshold: Minimum similarity for edges that carry one

        Returns:
            Graph data with nodes and edges
        """
        max_nodes = max(0, int(max_nodes))
        if namespace:
            query = 'MATCH (m:Memory {namespace: $namespace}) RETURN properties(m) AS m LIMIT $maxNodes'
        else:
            query = 'MATCH (m:Memory) RETURN properties(m) AS m LIMIT $maxNodes'

        records = self._run(query, namespace=namespace, maxNodes=max_nodes)
        logger.debug(f'Neo4j node query returned {len(records)} records')

        nodes = []
        node_map = {}
        for record in records:
            props = record.get('m') or {}
            node_id = props.get('id')
            if not node_id:
                logger.warning(f'Memory node missing id property: {props}')
                continue
            if node_id not in node_map and len(nodes) < max_nodes:
                node = serialize_node(props)
                nodes.append(node)
                node_map[node_id] = node

        edges = []
        seen = set()
        for record in self.get_relationships_among(list(node_map), similarity_threshold):
            props = record.get('props') or {}
            kind = props.get('method') or props.get('relationshipType')
            identifier = edge_id(record['source'], record['target'], record['type'], kind)
            if identifier in seen:
                continue
            seen.add(identifier)
            edges.append({
                'id': identifier,
                'source': record['source'],
                'target': record['target'],
                'similarity': _float_or_none(props.get('similarity')),
                'relationshipType': record['type'],
                'method': kind,
                'crossNamespace': node_map[record['source']]['namespace'] != node_map[record['target']]['namespace'],
                'createdAt': props.get('createdAt') or '',
            })

        logger.debug(f'get_graph_data returning {len(nodes)} nodes and {len(edges)} edges')
        return {'nodes': nodes, 'edges': edges}

    @wrap_graph_errors
    def get_namespaces(self) -> List[str]:
        """
        Get all distinct namespaces present in the graph.

        Returns:
            Sorted namespace names
        """
        records = self._run('MATCH (m:Memory) RETURN DISTINCT m.namespace AS namespace ORDER BY namespace')
        return [record.get('namespace') or 'default' for record in records]

    @wrap_graph_errors
    def get_memory_by_id(self, memory_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a memory node by id.

        Returns:
            Serialized node or None
        """
        records = self._run('MATCH (m:Memory {id: $id}) RETURN properties(m) AS m', id=memory_id)
        if not records:
            return None
        return serialize_node(records[0]['m'])

    @wrap_graph_errors
    def get_memory_relationships(self, memory_id: str) -> Dict[str, List[Dict[str, Any]]]:
        """
        Get incoming and outgoing relationships of a memory.

        Returns:
            Dict with `outgoing` ({type, target, props}) and `incoming` ({type, source, props}) lists
        """
        query = """
            MATCH (m:Memory {id: $id})
            OPTIONAL MATCH (m)-[r1]->(target:Memory)
            WITH m, collect(DISTINCT {type: type(r1), target: target.id, props: properties(r1)}) AS outgoing
            OPTIONAL MATCH (source:Memory)-[r2]->(m)
            RETURN outgoing,
                   collect(DISTINCT {type: type(r2), source: source.id, props: properties(r2)}) AS incoming
        """
        records = self._run(query, id=memory_id)
        if not records:
            return {'outgoing': [], 'incoming': []}

        record = records[0]
        return {
            'outgoing': [rel for rel in record.get('outgoing') or [] if rel.get('target')],
            'incoming': [rel for rel in record.get('incoming') or [] if rel.get('source')],
        }

    @wrap_graph_errors
    def create_memory_relationship(self,
                                   source_id: str,
                                   target_id: str,
                                   relationship_type: str,
                                   metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Create a lineage relationship between two memories.

        Args:
            source_id: Newer/dependent memory id
            target_id: Memory being updated, extended or derived from
            relationship_type: 'UPDATES', 'EXTENDS' or 'DERIVES'
            metadata: Additional relationship properties (confidence, context, ...)

        Returns:
            Summary of the relationship

        Raises:
            InvalidRelationshipTypeError: If the type is not a lineage type
            NodesNotFoundError: If either memory is missing
        """
        if relationship_type not in LINEAGE_TYPES:
            raise InvalidRelationshipTypeError(
                f'Invalid relationship type. Must be one of: {", ".join(LINEAGE_TYPES)}')

        metadata = dict(metadata or {})
        exists_query = """
            OPTIONAL MATCH (source:Memory {id: $sourceId})
            OPTIONAL MATCH (target:Memory {id: $targetId})
            RETURN source IS NOT NULL AS sourceExists, target IS NOT NULL AS targetExists
        """
        with self._session() as session:
            found = session.run(exists_query, {'sourceId': source_id, 'targetId': target_id}).data()
            if not found or not found[0]['sourceExists'] or not found[0]['targetExists']:
                missing = []
                if not found or not found[0]['sourceExists']:
                    missing.append(source_id)
                if not found or not found[0]['targetExists']:
                    missing.append(target_id)
                raise NodesNotFoundError(
                    f'Failed to create relationship - memories not found: {", ".join(missing)}')

            query = f"""
                MATCH (source:Memory {{id: $sourceId}})
                MATCH (target:Memory {{id: $targetId}})
                MERGE (source)-[r:{relationship_type}]->(target)
                ON CREATE SET r.createdAt = $createdAt
                SET r += $properties
                RETURN properties(r) AS r
            """
            properties = to_graph_properties({
                **metadata,
                'confidence': metadata.get('confidence'),
                'context': metadata.get('context'),
            })
            records = session.run(query, {
                'sourceId': source_id,
                'targetId': target_id,
                'createdAt': iso_now(),
                'properties': properties,
            }).data()

        if not records:
            raise NodesNotFoundError('Failed to create relationship - one or both memories not found')

        logger.debug(f'Merged {relationship_type} relationship {source_id} -> {target_id}')
        return {
            'relationshipType': relationship_type,
            'sourceId': source_id,
            'targetId': target_id,
            'createdAt': records[0]['r'].get('createdAt'),
        }

    @wrap_graph_errors
    def mark_memory_outdated(self, memory_id: str, superseded_by: Optional[str]) -> bool:
        """
        Flag a memory as superseded. The node and its edges stay in place.

        Returns:
            True if the memory exists
        """
        query = """
            MATCH (m:Memory {id: $memoryId})
            SET m.status = 'outdated',
                m.supersededBy = $supersededBy,
                m.updatedAt = $updatedAt
            RETURN m.id AS id
        """
        records = self._run(query, memoryId=memory_id, supersededBy=superseded_by, updatedAt=iso_now())
        return len(records) > 0

    @wrap_graph_errors
    def get_memory_version_chain(self, memory_id: str) -> Dict[str, Any]:
        """
        Direct lineage neighbours of a memory (one hop, not a transitive chain).

        Ancestors point into the memory, descendants are what it points to; both are
        ordered by relationship creation time, newest first.

        Raises:
            NotFoundError: If the memory does not exist
        """
        ancestors_query = """
            MATCH (m:Memory {id: $memoryId})<-[r:DERIVES|EXTENDS|UPDATES]-(ancestor:Memory)
            RETURN ancestor.id AS id, ancestor.label AS label, type(r) AS relationshipType, r.createdAt AS createdAt
            ORDER BY r.createdAt DESC
        """
        descendants_query = """
            MATCH (m:Memory {id: $memoryId})-[r:UPDATES|EXTENDS|DERIVES]->(descendant:Memory)
            RETURN descendant.id AS id, descendant.label AS label, type(r) AS relationshipType,
                   r.createdAt AS createdAt
            ORDER BY r.createdAt DESC
        """
        with self._session() as session:
            status = session.run('MATCH (m:Memory {id: $memoryId}) RETURN m.status AS status',
                                 {'memoryId': memory_id}).data()
            if not status:
                raise NotFoundError(f'Memory not found: {memory_id}')
            ancestors = session.run(ancestors_query, {'memoryId': memory_id}).data()
            descendants = session.run(descendants_query, {'memoryId': memory_id}).data()

        return {
            'memoryId': memory_id,
            'ancestors': ancestors,
            'descendants': descendants,
            'isOutdated': status[0].get('status') == 'outdated',
        }

    @wrap_graph_errors
    def get_connected_subgraph(self,
                               memory_ids: List[str],
                               depth: int = 2,
                               relationship_types: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Bounded-depth neighbourhood of a set of seed memories.

        Every edge on a qualifying path must have an allowed type. Seeds are always part
        of the result when they exist, even without edges.

        Args:
            memory_ids: Seed memory ids
            depth: Maximum path length (1..5)
            relationship_types: Relationship types to follow (default: all)

        Returns:
            Dict with nodes, edges (unique per source/target/type) and seedIds
        """
        relationship_types = list(relationship_types or RELATIONSHIP_TYPES)
        unknown = [t for t in relationship_types if t not in RELATIONSHIP_TYPES]
        if unknown:
            raise ValidationError(f'Unknown relationship types: {", ".join(unknown)}')
        try:
            depth = int(depth)
        except (TypeError, ValueError):
            raise ValidationError('depth must be an integer')
        if not 1 <= depth <= MAX_SUBGRAPH_DEPTH:
            raise ValidationError(f'depth must be between 1 and {MAX_SUBGRAPH_DEPTH}')

        memory_ids = [memory_id for memory_id in memory_ids or [] if memory_id]
        if not memory_ids:
            return {'nodes': [], 'edges': [], 'seedIds': []}

        path_query = f"""
            MATCH path = (seed:Memory)-[*1..{depth}]-(connected:Memory)
            WHERE seed.id IN $memoryIds
              AND ALL(rel IN relationships(path) WHERE type(rel) IN $relationshipTypes)
            UNWIND relationships(path) AS rel
            WITH DISTINCT rel
            RETURN properties(startNode(rel)) AS source,
                   properties(endNode(rel)) AS target,
                   type(rel) AS type,
                   properties(rel) AS props
        """
        with self._session() as session:
            seeds = session.run('MATCH (m:Memory) WHERE m.id IN $memoryIds RETURN properties(m) AS m',
                                {'memoryIds': memory_ids}).data()
            records = session.run(path_query, {
                'memoryIds': memory_ids,
                'relationshipTypes': relationship_types
            }).data()

        nodes = {}
        seed_props = {record['m']['id']: record['m'] for record in seeds if record.get('m')}
        for memory_id in memory_ids:
            if memory_id in seed_props:
                nodes[memory_id] = serialize_node(seed_props[memory_id])

        edges = []
        seen = set()
        for record in records:
            source, target = record['source'], record['target']
            for props in (source, target):
                if props.get('id') and props['id'] not in nodes:
                    nodes[props['id']] = serialize_node(props)

            key = (source.get('id'), target.get('id'), record['type'])
            if key in seen:
                continue
            seen.add(key)
            rel_props = record.get('props') or {}
            edges.append({
                'id': edge_id(*key),
                'source': key[0],
                'target': key[1],
                'type': record['type'],
                'similarity': _float_or_none(rel_props.get('similarity')),
                'confidence': _float_or_none(rel_props.get('confidence')),
                'createdAt': rel_props.get('createdAt') or '',
            })

        return {'nodes': list(nodes.values()), 'edges': edges, 'seedIds': memory_ids}
