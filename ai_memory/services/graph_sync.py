"""
Graph sync: mirror vector-store memories into the graph and compute heuristic edges.
"""

from itertools import combinations, islice
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..models.core import HeuristicEdge, MemoryRecord, SyncResult, namespace_label, vector_namespace
from ..utils.config import GraphSyncConfig
from ..utils.errors import UpstreamServiceError, ValidationError
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

CROSS_NAMESPACE_MODES = ('all', 'shared_user')


def _ordered(id1: str, id2: str):
    return (id1, id2) if id1 < id2 else (id2, id1)


def content_overlap_similarity(content1: str, content2: str) -> float:
    """Word overlap score of two texts.

    Words are the lowercased whitespace tokens. The score is the number of distinct
    shared words divided by ``len(words1) + len(words2) - shared``.
    """
    words1 = (content1 or '').lower().split()
    words2 = (content2 or '').lower().split()
    common = len(set(words1) & set(words2))
    denominator = len(words1) + len(words2) - common
    if common == 0 or denominator <= 0:
        return 0.0
    return common / denominator


def same_category_pairs(nodes: List[Dict[str, Any]], similarity: float, namespace: str) -> List[HeuristicEdge]:
    """One edge per unordered pair of distinct memories sharing a category."""
    by_category = {}
    for node in nodes:
        if node.get('category'):
            by_category.setdefault(node['category'], set()).add(node['id'])

    edges = []
    for ids in by_category.values():
        for id1, id2 in combinations(sorted(ids), 2):
            edges.append(HeuristicEdge(id1, id2, {'similarity': similarity, 'namespace': namespace}))
    return edges


def cross_namespace_pairs(nodes: List[Dict[str, Any]], mode: str = 'all') -> Iterator[HeuristicEdge]:
    """Lazily yield one edge per unordered pair of memories living in different namespaces.

    In ``shared_user`` mode the pair must also carry the same non-empty ``user_id``.
    """
    if mode not in CROSS_NAMESPACE_MODES:
        raise ValidationError(f'Unknown cross-namespace mode: {mode}')

    return _cross_namespace_pairs(nodes, mode)


def _cross_namespace_pairs(nodes, mode):
    for node1, node2 in combinations(nodes, 2):
        if node1['id'] == node2['id'] or node1['namespace'] == node2['namespace']:
            continue
        if mode == 'shared_user':
            user1 = (node1.get('metadata') or {}).get('user_id')
            user2 = (node2.get('metadata') or {}).get('user_id')
            if not user1 or user1 != user2:
                continue
        yield HeuristicEdge(*_ordered(node1['id'], node2['id']))


def content_similarity_pairs(nodes: List[Dict[str, Any]],
                             threshold: float,
                             min_length: int = 10) -> List[HeuristicEdge]:
    """Pairs whose word overlap reaches the threshold (inclusive). Quadratic in len(nodes)."""
    candidates = [node for node in nodes if len(node.get('content') or '') > min_length]

    edges = []
    seen = set()
    for node1, node2 in combinations(candidates, 2):
        if node1['id'] == node2['id']:
            continue
        score = content_overlap_similarity(node1['content'], node2['content'])
        if score <= 0 or score < threshold:
            continue
        key = _ordered(node1['id'], node2['id'])
        if key in seen:
            continue
        seen.add(key)
        edges.append(HeuristicEdge(*key, {'similarity': score}))
    return edges


class GraphSyncService:
    """Reconciles the graph store with the vector store."""

    def __init__(self, vector_store, graph_store, sync_config: Optional[GraphSyncConfig] = None,
                 index_name: Optional[str] = None):
        if sync_config is None:
            from ..utils.config import config
            sync_config = config.graph_sync
        self.vector_store = vector_store
        self.graph_store = graph_store
        self.config = sync_config
        self.index_name = index_name

    def _merge(self, kind: str, edges: Iterable[HeuristicEdge]) -> int:
        """Merge edges in batches of ``edge_batch_size``, one transaction per batch."""
        edges = iter(edges)
        merged = 0
        while True:
            batch = [edge.to_dict() for edge in islice(edges, self.config.edge_batch_size)]
            if not batch:
                return merged
            merged += self.graph_store.merge_heuristic_edges(kind, batch)

    def _sync_namespace(self, namespace: str, result: SyncResult) -> bool:
        label = namespace_label(namespace)
        records = self.vector_store.fetch_all(self.index_name, namespace, limit=self.config.fetch_limit)
        if not records:
            logger.debug(f'No records in namespace {label}, skipping')
            return False

        for match in records:
            record = MemoryRecord.from_match(match, namespace)
            self.graph_store.upsert_memory_node(record.id,
                                                content=record.content,
                                                category=record.category,
                                                namespace=label,
                                                created_at=record.created_at or None,
                                                metadata=record.metadata)
            result.nodes_created += 1

        nodes = self.graph_store.list_memory_nodes(label)
        edges = same_category_pairs(nodes, self.config.same_category_similarity, label)
        result.relationships_created += self._merge('same_category', edges)

        logger.info(f'Synced {len(records)} memories and {len(edges)} category pairs in namespace {label}')
        return True

    def sync(self, namespace: Optional[str] = None, similarity_threshold: Optional[float] = None) -> SyncResult:
        """
        Mirror memories into the graph and merge heuristic edges.

        Args:
            namespace: Only sync this namespace ('default' is the empty namespace); all known if None
            similarity_threshold: Minimum content overlap score, defaults to config

        Returns:
            SyncResult with the totals; every attempted namespace is listed, failing ones are logged and skipped
        """
        if similarity_threshold is None:
            similarity_threshold = self.config.similarity_threshold
        if not 0 <= similarity_threshold <= 1:
            raise ValidationError('similarityThreshold must be between 0 and 1')

        if namespace is not None:
            namespaces = [vector_namespace(namespace)]
        else:
            namespaces = self.vector_store.list_namespaces(self.index_name)

        result = SyncResult()
        any_records = False
        for ns in namespaces:
            result.namespaces_processed.append(namespace_label(ns))
            try:
                any_records = self._sync_namespace(ns, result) or any_records
            except UpstreamServiceError as e:
                logger.error(f'Sync of namespace {namespace_label(ns)} failed: {e}')

        try:
            all_nodes = self.graph_store.list_memory_nodes()
        except UpstreamServiceError as e:
            logger.error(f'Could not list graph nodes for similarity passes: {e}')
            return result

        if any_records:
            try:
                edges = cross_namespace_pairs(all_nodes, self.config.cross_namespace_mode)
                result.relationships_created += self._merge('cross_namespace', edges)
            except UpstreamServiceError as e:
                logger.error(f'Cross-namespace pass failed: {e}')

        if len(all_nodes) > self.config.large_graph_warning:
            logger.warning(f'Content similarity pass over {len(all_nodes)} memories compares every pair')
        try:
            edges = content_similarity_pairs(all_nodes, similarity_threshold, self.config.min_content_length)
            result.relationships_created += self._merge('content_overlap', edges)
        except UpstreamServiceError as e:
            logger.error(f'Content similarity pass failed: {e}')

        logger.info(f'Graph sync complete: {result.nodes_created} nodes, '
                    f'{result.relationships_created} relationships, namespaces {result.namespaces_processed}')
        return result
