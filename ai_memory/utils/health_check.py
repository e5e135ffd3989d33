"""
Health check utilities for the application.
"""

from typing import Any, Dict, Optional

from .config import AppConfig
from .logging_config import get_logger

logger = get_logger(__name__)


def _probe(component, service: str, **details) -> Dict[str, Any]:
    try:
        return {'healthy': bool(component.health_check()), 'service': service, **details}
    except Exception as e:
        logger.warning(f'{service} health probe failed: {e}')
        return {'healthy': False, 'service': service, 'error': str(e)}


def get_health_status(gateway, vector_store, graph_store, app_config: Optional[AppConfig] = None) -> Dict[str, Any]:
    """Get detailed health status of all components.

    Returns:
        Dictionary with health status of each component
    """
    if app_config is None:
        from .config import config as default_config
        app_config = default_config

    provider = app_config.embedding.provider
    model = app_config.gemini.embedding_model if provider == 'gemini' else app_config.bedrock.embed_model_id

    return {
        'embedding': _probe(gateway, f'Embedding gateway ({provider})', model=model),
        'pinecone': _probe(vector_store, 'Pinecone', index=app_config.pinecone.index_name),
        'neo4j': _probe(graph_store, 'Neo4j', uri=app_config.neo4j.uri),
    }


def get_system_info(gateway, vector_store, graph_store, app_config: Optional[AppConfig] = None) -> Dict[str, Any]:
    """Get system information and configuration.

    Returns:
        Dictionary with system information
    """
    if app_config is None:
        from .config import config as default_config
        app_config = default_config

    return {
        'service_name': 'AI Memory',
        'version': '1.0.0',
        'configuration': {
            'environment': app_config.environment,
            'embedding_provider': app_config.embedding.provider,
            'embedding_dimension': app_config.embedding.dimension,
            'pinecone_index': app_config.pinecone.index_name,
            'neo4j_uri': app_config.neo4j.uri,
        },
        'health_status': get_health_status(gateway, vector_store, graph_store, app_config)
    }
