"""
Pinecone client wrapper for namespaced vector storage and similarity search.
"""

from typing import Any, Dict, List, Optional

from pinecone import Pinecone
from pinecone.exceptions import PineconeException

from .config import PineconeConfig
from .errors import InvalidInputError, VectorStoreError
from .logging_config import get_logger

logger = get_logger(__name__)

MAX_TOP_K = 10000


def build_filter(filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Turn ``{field: value}`` into Pinecone's conjunctive ``$eq`` filter syntax."""
    return {key: {'$eq': value} for key, value in (filters or {}).items()}


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _to_match(match: Any) -> Dict[str, Any]:
    return {
        'id': _field(match, 'id'),
        'score': _field(match, 'score'),
        'metadata': dict(_field(match, 'metadata') or {}),
    }


class PineconeClient:
    """Pinecone client with namespace-scoped upsert, query and bulk fetch."""

    def __init__(self, config: PineconeConfig, client: Optional[Pinecone] = None):
        """
        Initialize Pinecone client.

        Args:
            config: PineconeConfig instance with API key, index name and namespaces
            client: Optional pre-built ``Pinecone`` instance
        """
        self.config = config
        self.client = client if client is not None else Pinecone(api_key=config.api_key)
        self._indexes = {}

        logger.info(f'Initialized Pinecone client for index: {config.index_name}')

    def _index(self, index_name: Optional[str] = None):
        index_name = index_name or self.config.index_name
        if index_name not in self._indexes:
            self._indexes[index_name] = self.client.Index(index_name)
        return self._indexes[index_name]

    def upsert(self,
               index_name: Optional[str],
               namespace: str,
               memory_id: str,
               vector: List[float],
               metadata: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert or replace a vector by id within a namespace.

        Args:
            index_name: Name of the index (uses config default if None)
            namespace: Namespace (category) to write to
            memory_id: Vector id
            vector: Embedding values
            metadata: Metadata stored next to the vector

        Returns:
            Dictionary with the upserted count

        Raises:
            VectorStoreError: If the upsert fails
        """
        vectors = [{'id': memory_id, 'values': list(vector), 'metadata': metadata}]

        try:
            response = self._index(index_name).upsert(vectors=vectors, namespace=namespace or '')

            upserted = _field(response, 'upserted_count', 0) or 0
            logger.debug(f'Upserted {upserted} vector(s) into namespace {namespace or "default"}')
            return {'upsertedCount': upserted}

        except PineconeException as e:
            logger.error(f'Error upserting vector to Pinecone: {e}')
            raise VectorStoreError(f'Failed to upsert vector: {e}')
        except Exception as e:
            logger.error(f'Unexpected error upserting vector: {e}')
            raise VectorStoreError(f'Failed to upsert vector: {e}')

    def query(self,
              index_name: Optional[str],
              namespace: str,
              vector: List[float],
              filters: Optional[Dict[str, Any]] = None,
              top_k: int = 50) -> List[Dict[str, Any]]:
        """
        Nearest-neighbour search inside one namespace.

        Args:
            index_name: Name of the index (uses config default if None)
            namespace: Namespace to search ('' for the default namespace)
            vector: Query vector
            filters: Exact-match metadata predicates, all of which must hold
            top_k: Number of results to return (default 50)

        Returns:
            List of matches with id, score and metadata

        Raises:
            InvalidInputError: If the vector is empty
            VectorStoreError: If the query fails
        """
        if not isinstance(vector, (list, tuple)) or len(vector) == 0:
            raise InvalidInputError('Vector must be a non-empty array of numbers')

        params = {
            'vector': list(vector),
            'top_k': top_k,
            'namespace': namespace or '',
            'include_values': False,
            'include_metadata': True,
        }
        if filters:
            params['filter'] = build_filter(filters)

        try:
            response = self._index(index_name).query(**params)
        except PineconeException as e:
            logger.error(f'Error searching records in Pinecone: {e}')
            raise VectorStoreError(f'Failed to search records: {e}')
        except Exception as e:
            logger.error(f'Unexpected error searching records: {e}')
            raise VectorStoreError(f'Failed to search records: {e}')

        matches = [_to_match(match) for match in (_field(response, 'matches') or [])]
        logger.debug(f'Query returned {len(matches)} matches in namespace {namespace or "default"}')
        return matches

    def fetch_all(self, index_name: Optional[str], namespace: str, limit: int = 1000) -> List[Dict[str, Any]]:
        """
        Approximate a namespace listing with a zero-vector query.

        Pinecone has no "list everything with metadata" call, so this returns the
        ``min(limit, 10000)`` records nearest to the zero vector. It is not guaranteed
        to be the complete namespace content.

        Args:
            index_name: Name of the index (uses config default if None)
            namespace: Namespace to read
            limit: Maximum number of records to return

        Returns:
            List of records with id, metadata and score
        """
        zero_vector = [0.0] * self.config.dimension
        return self.query(index_name, namespace, zero_vector, top_k=max(1, min(int(limit), MAX_TOP_K)))

    def list_namespaces(self, index_name: Optional[str] = None) -> List[str]:
        """
        Namespaces known to the application.

        The configured set always comes first (it includes '' for the default namespace).
        With namespace discovery enabled, namespaces reported by the index stats are appended.

        Returns:
            List of namespace names
        """
        namespaces = list(self.config.namespaces)
        if not self.config.discover_namespaces:
            return namespaces

        try:
            stats = self._index(index_name).describe_index_stats()
            discovered = _field(stats, 'namespaces') or {}
        except Exception as e:
            logger.warning(f'Namespace discovery failed, using configured namespaces: {e}')
            return namespaces

        for name in discovered:
            if name not in namespaces:
                namespaces.append(name)
        return namespaces

    def health_check(self) -> bool:
        """
        Perform a health check on the Pinecone index.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            self._index().describe_index_stats()
            return True

        except Exception as e:
            logger.error(f'Pinecone health check failed: {e}')
            return False
