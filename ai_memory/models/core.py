"""
Core data models for the memory service.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

GRAPH_FILTERS = ('update', 'extend', 'derive')
DEFAULT_GRAPH_FILTER = 'extend'

# Lineage relationship type -> (key on the source memory, key on the target memory)
LINEAGE_VIEW_KEYS = {
    'UPDATES': ('updates', 'updatedBy'),
    'EXTENDS': ('extends', 'extendedBy'),
    'DERIVES': ('derives', 'derivedFrom'),
}


def namespace_label(namespace: str) -> str:
    """The empty namespace is presented as 'default'."""
    return namespace or 'default'


def vector_namespace(label: str) -> str:
    """Inverse of namespace_label: 'default' addresses the empty namespace."""
    return '' if label == 'default' else label


@dataclass
class MemoryRecord:
    """A memory as read back from the vector store."""
    id: str
    namespace: str  # Vector partition ('' is the default namespace)
    metadata: Dict[str, Any] = field(default_factory=dict)
    score: float = 0.0

    @property
    def content(self) -> str:
        return self.metadata.get('content') or ''

    @property
    def category(self) -> str:
        return self.metadata.get('category') or namespace_label(self.namespace)

    @property
    def created_at(self) -> str:
        return self.metadata.get('createdAt') or ''

    @classmethod
    def from_match(cls, match: Dict[str, Any], namespace: str) -> 'MemoryRecord':
        return cls(id=match['id'],
                   namespace=namespace,
                   metadata=dict(match.get('metadata') or {}),
                   score=match.get('score') or 0.0)


@dataclass
class HeuristicEdge:
    """A computed similarity edge, always oriented from the smaller id to the larger."""
    source: str
    target: str
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'source': self.source, 'target': self.target, 'properties': dict(self.properties)}


@dataclass
class SyncResult:
    """Totals reported by one graph sync run."""
    nodes_created: int = 0
    relationships_created: int = 0
    namespaces_processed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodesCreated': self.nodes_created,
            'relationshipsCreated': self.relationships_created,
            'namespacesProcessed': list(self.namespaces_processed),
        }
