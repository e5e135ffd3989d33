"""
Memory Management Service for unified memory operations.
"""

from typing import Any, Dict, List, Optional

from ..models.core import (DEFAULT_GRAPH_FILTER, GRAPH_FILTERS, LINEAGE_VIEW_KEYS, MemoryRecord, namespace_label,
                           vector_namespace)
from ..utils.config import AppConfig
from ..utils.embedding_gateway import create_gateway
from ..utils.errors import NotFoundError, UpstreamServiceError, ValidationError
from ..utils.logging_config import get_logger
from ..utils.neo4j_client import LINEAGE_TYPES, MAX_SUBGRAPH_DEPTH, Neo4jClient
from ..utils.pinecone_client import PineconeClient
from ..utils.timestamp_utils import generate_memory_id, iso_now
from .graph_sync import GraphSyncService

logger = get_logger(__name__)


def _require_string(value: Any, message: str) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(message)
    return value


def normalize_graph_filter(graph_filter: Any) -> str:
    """Lowercased filter when recognised, otherwise the default."""
    if isinstance(graph_filter, str) and graph_filter.lower() in GRAPH_FILTERS:
        return graph_filter.lower()
    return DEFAULT_GRAPH_FILTER


def to_frontend_node(node: Dict[str, Any]) -> Dict[str, Any]:
    """Graph node in the shape the visualization client renders."""
    return {
        'id': node['id'],
        'type': 'memory',
        'data': {
            'label': node.get('label'),
            'title': node.get('title') or node.get('label'),
            'content': node.get('content') or '',
            'category': node.get('category') or node.get('namespace') or 'default',
            'namespace': node.get('namespace') or 'default',
            'createdAt': node.get('createdAt') or '',
            **(node.get('metadata') or {}),
            'status': node.get('status') or 'active',
        },
    }


def to_frontend_edge(edge: Dict[str, Any]) -> Dict[str, Any]:
    similarity = edge.get('similarity')
    relationship_type = edge.get('relationshipType') or 'SIMILAR_TO'
    return {
        'id': edge['id'],
        'source': edge['source'],
        'target': edge['target'],
        'type': 'smoothstep',
        'label': f'{similarity:.2f}' if similarity else '',
        'relationshipType': relationship_type,
        'data': {
            'similarity': similarity or 0,
            'relationshipType': relationship_type,
            'crossNamespace': bool(edge.get('crossNamespace')),
        },
    }


class MemoryManagementService:
    """Operations behind the HTTP routes and MCP tools.

    The vector store is the system of record. Graph mirroring after a write is best
    effort, graph reads propagate their failures unless stated otherwise.
    """

    def __init__(self, gateway=None, vector_store=None, graph_store=None, app_config: Optional[AppConfig] = None):
        """Initialize the memory management service."""
        if app_config is None:
            from ..utils.config import config as default_config
            app_config = default_config

        self.config = app_config
        self.index_name = app_config.pinecone.index_name
        self.gateway = gateway if gateway is not None else create_gateway(app_config)
        self.vector_store = vector_store if vector_store is not None else PineconeClient(app_config.pinecone)
        self.graph_store = graph_store if graph_store is not None else Neo4jClient(app_config.neo4j)
        self.graph_sync = GraphSyncService(self.vector_store, self.graph_store, app_config.graph_sync,
                                           index_name=self.index_name)

        logger.info('Initialized MemoryManagementService')

    def add_memory(self,
                   content: Any,
                   category: Any,
                   metadata: Any,
                   graph_filter: Any = None) -> Dict[str, Any]:
        """Embed and store a new memory, then mirror it into the graph.

        Args:
            content: Natural-language text of the memory
            category: Category, also used as the vector namespace ('default' is the empty namespace)
            metadata: Caller metadata (must be a JSON object)
            graph_filter: 'update', 'extend' or 'derive' (default 'extend')

        Returns:
            Created memory with its enriched metadata and the embedding length

        Raises:
            ValidationError: If a required field is missing or malformed
            UpstreamServiceError: If embedding or the vector write fails
        """
        _require_string(content, 'Content is required and must be a string')
        _require_string(category, 'Category is required and must be a string')
        if not isinstance(metadata, dict):
            raise ValidationError('Metadata is required and must be a JSON object')

        filter_type = normalize_graph_filter(graph_filter)
        memory_id = generate_memory_id()
        created_at = iso_now()
        namespace = vector_namespace(category)

        logger.debug('Generating embedding for content...')
        embedding = self.gateway.embed(content)

        enriched_metadata = {
            **metadata,
            'content': content,
            'category': category,
            'createdAt': created_at,
            'graphFilter': filter_type,
            'version': 1,
            'isLatest': True,
            'status': 'active',
        }

        logger.info(f'Upserting memory {memory_id} to index {self.index_name}, namespace {namespace_label(namespace)}')
        pinecone_result = self.vector_store.upsert(self.index_name, namespace, memory_id, embedding, enriched_metadata)

        try:
            self.graph_store.ensure_memory_node(memory_id, {
                'id': memory_id,
                'content': content,
                'category': category,
                'namespace': namespace_label(namespace),
                'createdAt': created_at,
                'metadata': enriched_metadata,
            })
        except UpstreamServiceError as e:
            logger.error(f'Error ensuring memory node in graph: {e}')

        return {
            'id': memory_id,
            'content': content,
            'category': category,
            'graphFilter': filter_type,
            'metadata': enriched_metadata,
            'embeddingLength': len(embedding),
            'pineconeResult': pinecone_result,
        }

    def _search_namespaces(self,
                           vector: List[float],
                           namespaces: List[str],
                           filters: Optional[Dict[str, Any]] = None,
                           top_k: int = 50) -> List[MemoryRecord]:
        """Query each namespace, skipping those that fail."""
        records = []
        for namespace in namespaces:
            try:
                matches = self.vector_store.query(self.index_name, namespace, vector, filters, top_k)
            except UpstreamServiceError as e:
                logger.debug(f'No results in namespace {namespace_label(namespace)}: {e}')
                continue
            records.extend(MemoryRecord.from_match(match, namespace) for match in matches)
        return records

    def get_response(self, user_id: Any, conversation_id: Any, user_input: Any) -> Dict[str, Any]:
        """Answer an input using the memories of one user conversation as context.

        Raises:
            ValidationError: If a required field is missing
            UpstreamServiceError: If embedding or completion fails
        """
        _require_string(user_id, 'user_id is required and must be a string')
        _require_string(conversation_id, 'conversation_id is required and must be a string')
        _require_string(user_input, 'input is required and must be a string')

        query_vector = self.gateway.embed(user_input)
        memories = self._search_namespaces(query_vector,
                                           self.vector_store.list_namespaces(self.index_name),
                                           filters={'user_id': user_id, 'conversation_id': conversation_id})

        context = '\n'.join(f'{i}. [{memory.metadata.get("category") or ""}] {memory.content}'
                            for i, memory in enumerate(memories, start=1))
        if memories:
            logger.info(f'Retrieved {len(memories)} memories for context')
        else:
            logger.info('No memories found for the given user_id and conversation_id')

        response = self.gateway.complete(user_input, context)

        return {
            'user_id': user_id,
            'conversation_id': conversation_id,
            'input': user_input,
            'memoriesFound': len(memories),
            'response': response,
            'contextUsed': context or 'No previous memories found',
        }

    def visualize(self, namespace: Optional[str] = None, limit: int = 1000,
                  include_relationships: bool = False) -> Dict[str, Any]:
        """List memories per namespace, optionally with their lineage relationships attached."""
        namespaces = [vector_namespace(namespace)] if namespace else self.vector_store.list_namespaces(self.index_name)

        memories = []
        for ns in namespaces:
            try:
                records = self.vector_store.fetch_all(self.index_name, ns, limit)
            except UpstreamServiceError as e:
                logger.debug(f'No records in namespace {namespace_label(ns)}: {e}')
                continue
            memories.extend({**record, 'namespace': namespace_label(ns)} for record in records)

        logger.info(f'Fetched {len(memories)} memories for visualization')
        data = {'memories': memories, 'total': len(memories), 'namespaces': namespaces}

        if include_relationships:
            data['relationships'] = self._attach_lineage(memories)
        return data

    def _attach_lineage(self, memories: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Give each memory its updates/updatedBy style lineage lists and return the flat edge list."""
        for memory in memories:
            memory['relationships'] = {key: [] for pair in LINEAGE_VIEW_KEYS.values() for key in pair}
        if not memories:
            return []

        try:
            records = self.graph_store.get_relationships_among([m['id'] for m in memories],
                                                               relationship_types=LINEAGE_TYPES)
        except UpstreamServiceError as e:
            logger.warning(f'Could not load lineage relationships: {e}')
            return []

        by_id = {memory['id']: memory for memory in memories}
        relationships = []
        for record in records:
            props = record.get('props') or {}
            source_key, target_key = LINEAGE_VIEW_KEYS[record['type']]
            entry = {
                'type': record['type'],
                'confidence': props.get('confidence'),
                'context': props.get('context'),
                'createdAt': props.get('createdAt'),
            }
            by_id[record['source']]['relationships'][source_key].append({**entry, 'id': record['target']})
            by_id[record['target']]['relationships'][target_key].append({**entry, 'id': record['source']})
            relationships.append({**entry, 'source': record['source'], 'target': record['target']})
        return relationships

    def get_graph(self, namespace: Optional[str] = None, max_nodes: int = 50, similarity_threshold: float = 0.75,
                  sync: bool = False) -> Dict[str, Any]:
        """Graph slice in the visualization shape, optionally after a best-effort sync."""
        if sync:
            try:
                result = self.graph_sync.sync(namespace, similarity_threshold)
                logger.info(f'Sync completed: {result.nodes_created} nodes, '
                            f'{result.relationships_created} relationships')
            except (UpstreamServiceError, ValidationError) as e:
                logger.error(f'Error syncing before graph fetch: {e}')

        logger.info(f'Fetching graph data - namespace: {namespace or "all"}, maxNodes: {max_nodes}, '
                    f'threshold: {similarity_threshold}')
        graph_data = self.graph_store.get_graph_data(namespace, max_nodes, similarity_threshold)

        nodes = [to_frontend_node(node) for node in graph_data['nodes']]
        edges = [to_frontend_edge(edge) for edge in graph_data['edges']]

        return {
            'nodes': nodes,
            'edges': edges,
            'totalMemories': len(nodes),
            'nodesDisplayed': len(nodes),
            'edgesDisplayed': len(edges),
            'namespace': namespace or 'all',
        }

    def list_graph_namespaces(self) -> List[str]:
        try:
            return self.graph_store.get_namespaces()
        except UpstreamServiceError as e:
            logger.error(f'Error getting graph namespaces: {e}')
            return []

    def sync_graph(self, namespace: Optional[str] = None, similarity_threshold: float = 0.7) -> Dict[str, Any]:
        logger.info(f'Manual sync requested - namespace: {namespace or "all"}')
        result = self.graph_sync.sync(namespace, similarity_threshold)
        return {'message': 'Sync completed successfully', **result.to_dict()}

    def semantic_search(self,
                        query: Any,
                        top_k: int = 10,
                        depth: int = 2,
                        include_subgraph: bool = True,
                        namespace: Optional[str] = None) -> Dict[str, Any]:
        """Vector search for seed memories, expanded through the graph.

        Args:
            query: Search text
            top_k: Number of seed memories
            depth: Subgraph path length (1..5)
            include_subgraph: Whether to expand the seeds through the graph
            namespace: Restrict the vector search to one namespace

        Returns:
            Dict with query, seedMemories, totalFound and, when available, subgraph
        """
        _require_string(query, 'query is required and must be a string')
        top_k = max(1, int(top_k))
        if include_subgraph and not 1 <= depth <= MAX_SUBGRAPH_DEPTH:
            raise ValidationError(f'depth must be between 1 and {MAX_SUBGRAPH_DEPTH}')

        vector = self.gateway.embed(query)
        namespaces = [vector_namespace(namespace)] if namespace else self.vector_store.list_namespaces(self.index_name)
        records = self._search_namespaces(vector, namespaces, top_k=top_k)
        records.sort(key=lambda record: record.score, reverse=True)

        seeds = [{
            'id': record.id,
            'score': record.score,
            'content': record.content,
            'category': record.category,
            'namespace': namespace_label(record.namespace),
            'metadata': record.metadata,
        } for record in records[:top_k]]

        result = {'query': query, 'seedMemories': seeds, 'totalFound': len(seeds)}
        if include_subgraph:
            try:
                result['subgraph'] = self.graph_store.get_connected_subgraph([seed['id'] for seed in seeds], depth)
            except UpstreamServiceError as e:
                logger.error(f'Subgraph expansion failed, returning seeds only: {e}')
        return result

    def get_memory(self, memory_id: str) -> Dict[str, Any]:
        memory = self.graph_store.get_memory_by_id(memory_id)
        if memory is None:
            raise NotFoundError(f'Memory not found: {memory_id}')
        return memory

    def get_memory_relationships(self, memory_id: str) -> Dict[str, Any]:
        return self.graph_store.get_memory_relationships(memory_id)

    def create_relationship(self,
                            source_id: str,
                            target_id: Any,
                            relationship_type: Any,
                            metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Record that `source_id` updates, extends or derives from `target_id`."""
        _require_string(target_id, 'targetId is required and must be a string')
        _require_string(relationship_type, 'relationshipType is required and must be a string')
        if metadata is not None and not isinstance(metadata, dict):
            raise ValidationError('metadata must be a JSON object')
        return self.graph_store.create_memory_relationship(source_id, target_id, relationship_type.upper(), metadata)

    def mark_outdated(self, memory_id: str, superseded_by: Optional[str] = None) -> Dict[str, Any]:
        if superseded_by is not None and not isinstance(superseded_by, str):
            raise ValidationError('supersededBy must be a string')
        if not self.graph_store.mark_memory_outdated(memory_id, superseded_by):
            raise NotFoundError(f'Memory not found: {memory_id}')
        return {'memoryId': memory_id, 'status': 'outdated', 'supersededBy': superseded_by}

    def get_version_chain(self, memory_id: str) -> Dict[str, Any]:
        return self.graph_store.get_memory_version_chain(memory_id)
