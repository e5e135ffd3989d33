"""
MCP Interface Layer using fastmcp for agent orchestration.
"""
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from .api.dependencies import get_memory_service
from .utils.config import config
from .utils.errors import MemoryServiceError
from .utils.logging_config import get_logger

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('AI Memory')


@mcp.tool()
def search_memories(query: str, top_k: int = 10) -> List[Dict[str, Any]]:
    """Search stored memories by meaning.

    Args:
        query: Natural language query
        top_k: Maximum number of results to return (default: 10)

    Returns:
        List of memories with id, score, content, category and namespace
    """
    if not query or not query.strip():
        return []

    try:
        result = get_memory_service().semantic_search(query, top_k=top_k, include_subgraph=False)
    except MemoryServiceError as e:
        logger.error(f'Memory service error in MCP search: {e}')
        raise ToolError(f'Memory search failed: {e}')

    memories = [{key: seed[key] for key in ('id', 'score', 'content', 'category', 'namespace')}
                for seed in result['seedMemories']]
    logger.debug(f'MCP search returned {len(memories)} memories')
    return memories


@mcp.tool()
def add_memory(content: str, category: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Store a new memory.

    Args:
        content: Memory text
        category: Category (also the vector namespace)
        metadata: Extra metadata such as user_id and conversation_id

    Returns:
        The created memory id, category and metadata
    """
    try:
        data = get_memory_service().add_memory(content, category, metadata or {})
    except MemoryServiceError as e:
        logger.error(f'Memory service error in MCP add: {e}')
        raise ToolError(f'Memory add failed: {e}')

    return {'id': data['id'], 'category': data['category'], 'metadata': data['metadata']}


@mcp.tool()
def sync_graph(namespace: Optional[str] = None, similarity_threshold: float = 0.7) -> Dict[str, Any]:
    """Mirror memories into the graph and recompute similarity relationships.

    Args:
        namespace: Only sync this namespace (default: all)
        similarity_threshold: Minimum word-overlap score for content relationships

    Returns:
        Sync totals
    """
    try:
        return get_memory_service().sync_graph(namespace or None, similarity_threshold)
    except MemoryServiceError as e:
        logger.error(f'Memory service error in MCP sync: {e}')
        raise ToolError(f'Graph sync failed: {e}')


def main():
    transport = config.mcp.transport
    if transport == 'stdio':
        mcp.run()
    else:
        mcp.run(transport=transport, host=config.mcp.host, port=config.mcp.port)


if __name__ == '__main__':
    main()
