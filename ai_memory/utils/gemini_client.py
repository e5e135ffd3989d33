"""
Gemini client wrapper for embeddings and text completion.
"""

from typing import List

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import GeminiConfig
from .embedding_gateway import build_prompt, normalize_embedding, require_text
from .errors import CompletionUnavailableError, EmbeddingUnavailableError
from .logging_config import get_logger

logger = get_logger(__name__)


class GeminiClient:
    """Gemini client for embeddings and responses. Calls are made once, failures surface immediately."""

    def __init__(self, config: GeminiConfig, client=None):
        """
        Initialize Gemini client.

        Args:
            config: GeminiConfig instance with API key and model names
            client: Optional pre-built ``genai.Client``
        """
        self.config = config
        self.embedding_model = config.embedding_model
        self.generation_model = config.generation_model
        self.output_embedding_length = config.dimension
        self.client = client if client is not None else genai.Client(api_key=config.api_key)

        logger.info(f'Initialized Gemini client with models: {self.embedding_model}, {self.generation_model}')

    def embed(self, text: str) -> List[float]:
        """
        Generate an embedding for text.

        Args:
            text: Text to embed

        Returns:
            List of embedding values

        Raises:
            InvalidInputError: If text is empty or not a string
            EmbeddingUnavailableError: If the call fails or the response has no usable vector
        """
        require_text(text)

        try:
            result = self.client.models.embed_content(
                model=self.embedding_model,
                contents=text,
                config=types.EmbedContentConfig(output_dimensionality=self.output_embedding_length))
        except genai_errors.APIError as e:
            logger.error(f'Gemini embedding request failed: {e}')
            raise EmbeddingUnavailableError(f'Failed to generate embedding: {e}')
        except Exception as e:
            logger.error(f'Unexpected error generating embedding: {e}')
            raise EmbeddingUnavailableError(f'Failed to generate embedding: {e}')

        embedding = normalize_embedding(result)
        logger.debug(f'Generated embedding (dim={len(embedding)})')
        return embedding

    def complete(self, prompt: str, context: str = '') -> str:
        """
        Generate a response from the user input and retrieved context.

        Args:
            prompt: The user's input/question
            context: Context string built from retrieved memories

        Returns:
            Generated response text

        Raises:
            InvalidInputError: If prompt is empty or not a string
            CompletionUnavailableError: If the call fails
        """
        require_text(prompt, 'Input must be a non-empty string')

        try:
            response = self.client.models.generate_content(model=self.generation_model,
                                                           contents=build_prompt(prompt, context))
        except genai_errors.APIError as e:
            logger.error(f'Gemini generation request failed: {e}')
            raise CompletionUnavailableError(f'Failed to generate response: {e}')
        except Exception as e:
            logger.error(f'Unexpected error generating response: {e}')
            raise CompletionUnavailableError(f'Failed to generate response: {e}')

        return response.text or ''

    def health_check(self) -> bool:
        """
        Perform a health check on the Gemini embedding endpoint.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            return len(self.embed('test')) > 0

        except Exception as e:
            logger.error(f'Gemini health check failed: {e}')
            return False
