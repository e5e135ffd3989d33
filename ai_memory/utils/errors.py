"""
Error taxonomy shared by the clients, services and HTTP layer.
"""


class MemoryServiceError(Exception):
    """Base exception for the memory service. `status` is the HTTP status it maps to."""
    status = 500


class ValidationError(MemoryServiceError):
    """Missing or malformed input."""
    status = 400


class NotFoundError(MemoryServiceError):
    """A referenced memory or relationship endpoint does not exist."""
    status = 404


class UpstreamServiceError(MemoryServiceError):
    """Embedding, vector or graph provider failure."""
    status = 500


class InvalidInputError(ValidationError):
    """Text handed to the embedding gateway is empty or not a string."""
    pass


class InvalidRelationshipTypeError(ValidationError):
    """Relationship type outside the allowed set."""
    pass


class NodesNotFoundError(NotFoundError):
    """One or both relationship endpoints are missing from the graph."""
    pass


class EmbeddingUnavailableError(UpstreamServiceError):
    """Embedding call failed or returned an unusable shape."""
    pass


class CompletionUnavailableError(UpstreamServiceError):
    """Text completion call failed."""
    pass


class VectorStoreError(UpstreamServiceError):
    """Custom exception for Pinecone errors."""
    pass


class GraphStoreError(UpstreamServiceError):
    """Custom exception for Neo4j errors."""
    pass
