"""
Embedding gateway: provider selection, response normalization and prompt building.

Providers expose the same two calls, ``embed(text)`` and ``complete(prompt, context)``.
"""

from numbers import Real
from typing import Any, List, Optional

from .config import AppConfig
from .errors import EmbeddingUnavailableError, InvalidInputError
from .logging_config import get_logger

logger = get_logger(__name__)

PROVIDERS = ('gemini', 'bedrock')


def require_text(text: Any, message: str = 'Text input must be a non-empty string') -> str:
    """Reject empty or non-string input before it reaches a provider."""
    if not isinstance(text, str) or not text.strip():
        raise InvalidInputError(message)
    return text


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def normalize_embedding(result: Any) -> List[float]:
    """Reduce an embedding response to a flat list of floats.

    Accepted shapes: ``{embeddings: [{values: [...]}]}``, ``{embedding: {values: [...]}}``,
    ``{embedding: [...]}``, ``{values: [...]}``, a direct numeric array and a list of
    objects carrying ``values``. Dicts and SDK objects with the same attribute names are
    treated alike.

    Raises:
        EmbeddingUnavailableError: If no numeric array can be found
    """
    candidate = result

    embeddings = _field(result, 'embeddings')
    if isinstance(embeddings, (list, tuple)) and embeddings:
        candidate = embeddings[0]
    else:
        embedding = _field(result, 'embedding')
        if embedding is not None:
            candidate = embedding

    if isinstance(candidate, (list, tuple)) and candidate and not _is_number(candidate[0]):
        candidate = candidate[0]

    values = _field(candidate, 'values')
    if values is not None:
        candidate = values

    if not isinstance(candidate, (list, tuple)) or not candidate or not all(_is_number(v) for v in candidate):
        logger.error(f'Unexpected embedding response structure: {type(result).__name__}')
        raise EmbeddingUnavailableError('Invalid embedding response format')

    return [float(v) for v in candidate]


def build_prompt(user_input: str, context: str = '') -> str:
    """Prefix retrieved context, when there is any, before the user question."""
    if context:
        return (f'Based on the following context from previous conversations:\n\n{context}\n\n'
                f'User question: {user_input}\n\n'
                'Please provide a helpful response based on the context above.')
    return f'User question: {user_input}\n\nPlease provide a helpful response.'


def create_gateway(app_config: Optional[AppConfig] = None):
    """Instantiate the configured embedding/completion provider.

    Args:
        app_config: AppConfig instance, uses default if None

    Returns:
        GeminiClient or BedrockClient
    """
    if app_config is None:
        from .config import config as default_config
        app_config = default_config

    provider = app_config.embedding.provider
    if provider == 'gemini':
        from .gemini_client import GeminiClient
        return GeminiClient(app_config.gemini)
    if provider == 'bedrock':
        from .bedrock_client import BedrockClient
        return BedrockClient(app_config.bedrock)

    raise ValueError(f"Unsupported embedding provider '{provider}', expected one of {', '.join(PROVIDERS)}")
