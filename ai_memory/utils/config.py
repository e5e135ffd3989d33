"""
Configuration management for hosted services and application settings.
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_NAMESPACES = [
    '', 'user-research', 'team-insights', 'community-moments', 'creative-discoveries', 'urban-notes',
    'customer-reflections'
]


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name: str, default: List[str]) -> List[str]:
    """Comma separated list. A blank entry stands for the default (empty) namespace."""
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(',')]


@dataclass
class ServerConfig:
    """Configuration for the HTTP API."""
    host: str
    port: int


@dataclass
class EmbeddingConfig:
    """Selects the generative-AI provider behind the embedding gateway."""
    provider: str
    dimension: int


@dataclass
class GeminiConfig:
    """Configuration for the Gemini API."""
    api_key: str
    embedding_model: str
    generation_model: str
    dimension: int


@dataclass
class BedrockConfig:
    """Configuration for Amazon Bedrock embeddings and completions."""
    region: str
    embed_model_id: str
    llm_model_id: str
    dimension: int
    max_tokens: int
    temperature: float


@dataclass
class PineconeConfig:
    """Configuration for the Pinecone vector index."""
    api_key: str
    index_name: str
    dimension: int
    namespaces: List[str] = field(default_factory=lambda: list(DEFAULT_NAMESPACES))
    discover_namespaces: bool = False


@dataclass
class Neo4jConfig:
    """Configuration for the Neo4j graph database."""
    uri: str
    user: str
    password: str
    database: str


@dataclass
class GraphSyncConfig:
    """Configuration for Pinecone to Neo4j reconciliation."""
    similarity_threshold: float = 0.7
    same_category_similarity: float = 0.8
    min_content_length: int = 10
    fetch_limit: int = 10000
    cross_namespace_mode: str = 'all'
    large_graph_warning: int = 5000
    edge_batch_size: int = 1000


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    server: ServerConfig
    embedding: EmbeddingConfig
    gemini: GeminiConfig
    bedrock: BedrockConfig
    pinecone: PineconeConfig
    neo4j: Neo4jConfig
    graph_sync: GraphSyncConfig
    mcp: MCPConfig


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')
    provider = os.getenv('EMBEDDING_PROVIDER', 'gemini').lower()
    gemini_dimension = int(os.getenv('EMBEDDING_DIMENSION', '3072'))
    # Titan v2 accepts 256, 512 or 1024
    bedrock_dimension = int(os.getenv('BEDROCK_EMBED_DIMENSION', '1024'))
    dimension = bedrock_dimension if provider == 'bedrock' else gemini_dimension

    server_config = ServerConfig(host=os.getenv('HOST', '0.0.0.0'), port=int(os.getenv('PORT', '3003')))

    embedding_config = EmbeddingConfig(provider=provider, dimension=dimension)

    gemini_config = GeminiConfig(api_key=os.getenv('GEMINI_API_KEY', ''),
                                 embedding_model=os.getenv('GEMINI_EMBEDDING_MODEL', 'gemini-embedding-001'),
                                 generation_model=os.getenv('GEMINI_GENERATION_MODEL', 'gemini-2.5-flash'),
                                 dimension=gemini_dimension)

    bedrock_config = BedrockConfig(region=os.getenv('BEDROCK_AWS_REGION', 'us-east-1'),
                                   embed_model_id=os.getenv('BEDROCK_EMBED_MODEL_ID', 'amazon.titan-embed-text-v2:0'),
                                   llm_model_id=os.getenv('BEDROCK_LLM_MODEL_ID',
                                                          'anthropic.claude-3-sonnet-20240229-v1:0'),
                                   dimension=bedrock_dimension,
                                   max_tokens=int(os.getenv('BEDROCK_LLM_MAX_TOKENS', '4096')),
                                   temperature=float(os.getenv('BEDROCK_LLM_TEMPERATURE', '0.0')))

    pinecone_config = PineconeConfig(api_key=os.getenv('PINECONE_API_KEY', ''),
                                     index_name=os.getenv('PINECONE_INDEX_NAME', 'ai-memory'),
                                     dimension=dimension,
                                     namespaces=_env_list('PINECONE_NAMESPACES', DEFAULT_NAMESPACES),
                                     discover_namespaces=_env_bool('PINECONE_DISCOVER_NAMESPACES'))

    neo4j_config = Neo4jConfig(uri=os.getenv('NEO4J_URI', 'bolt://localhost:7687'),
                               user=os.getenv('NEO4J_USER', 'neo4j'),
                               password=os.getenv('NEO4J_PASSWORD', 'password'),
                               database=os.getenv('NEO4J_DATABASE', 'neo4j'))

    graph_sync_config = GraphSyncConfig(
        similarity_threshold=float(os.getenv('GRAPH_SYNC_SIMILARITY_THRESHOLD', '0.7')),
        cross_namespace_mode=os.getenv('GRAPH_SYNC_CROSS_NAMESPACE', 'all').lower(),
        edge_batch_size=int(os.getenv('GRAPH_SYNC_EDGE_BATCH_SIZE', '1000')))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     server=server_config,
                     embedding=embedding_config,
                     gemini=gemini_config,
                     bedrock=bedrock_config,
                     pinecone=pinecone_config,
                     neo4j=neo4j_config,
                     graph_sync=graph_sync_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
