"""
Amazon Bedrock client wrapper for embeddings and text completion.
"""

import json
from typing import Any, Dict, List

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockConfig
from .embedding_gateway import build_prompt, normalize_embedding, require_text
from .errors import CompletionUnavailableError, EmbeddingUnavailableError
from .logging_config import get_logger

logger = get_logger(__name__)

TITAN_V2_DIMENSIONS = (256, 512, 1024)

SYSTEM_PROMPT = 'You are a helpful assistant that answers using the memories provided as context.'


class BedrockClient:
    """Amazon Bedrock client exposing the same embed/complete calls as the Gemini client."""

    def __init__(self, config: BedrockConfig, client=None):
        """
        Initialize Bedrock runtime client.

        Args:
            config: BedrockConfig instance with region and model ids
            client: Optional pre-built ``bedrock-runtime`` client
        """
        self.config = config
        self.embed_model_id = config.embed_model_id
        self.llm_model_id = config.llm_model_id
        self.output_embedding_length = config.dimension

        if client is None:
            client = boto3.client('bedrock-runtime',
                                  region_name=config.region,
                                  config=BotoConfig(connect_timeout=600,
                                                    read_timeout=600,
                                                    retries={'max_attempts': 0}))
        self.bedrock_runtime = client

        logger.info(f'Initialized Bedrock client with models: {self.embed_model_id}, {self.llm_model_id}')

    def _embedding_request(self, text: str) -> Dict[str, Any]:
        model = self.embed_model_id.lower()
        if 'titan-embed-text-v2' in model and self.output_embedding_length not in TITAN_V2_DIMENSIONS:
            raise EmbeddingUnavailableError(f'{self.embed_model_id} supports dimensions {TITAN_V2_DIMENSIONS}, '
                                            f'got {self.output_embedding_length}')
        if 'titan' in model:
            return {'inputText': text, 'dimensions': self.output_embedding_length}
        if 'cohere' in model:
            return {'input_type': 'search_document', 'texts': [text]}
        raise EmbeddingUnavailableError(f'Unsupported model for embedding: {self.embed_model_id}')

    def embed(self, text: str) -> List[float]:
        """
        Generate an embedding for text.

        Args:
            text: Text to embed

        Returns:
            List of embedding values

        Raises:
            InvalidInputError: If text is empty or not a string
            EmbeddingUnavailableError: If embedding generation fails
        """
        require_text(text)
        body = json.dumps(self._embedding_request(text))

        try:
            response = self.bedrock_runtime.invoke_model(body=body,
                                                         modelId=self.embed_model_id,
                                                         accept='application/json',
                                                         contentType='application/json')
            result = json.loads(response.get('body').read())
        except (ClientError, BotoCoreError, json.JSONDecodeError) as e:
            logger.error(f'Bedrock embedding request failed: {e}')
            raise EmbeddingUnavailableError(f'Failed to generate embedding: {e}')
        except Exception as e:
            logger.error(f'Unexpected error in Bedrock embedding: {e}')
            raise EmbeddingUnavailableError(f'Failed to generate embedding: {e}')

        return normalize_embedding(result)

    def complete(self, prompt: str, context: str = '') -> str:
        """
        Generate a response with the Converse streaming API.

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
        messages = [{'role': 'user', 'content': [{'text': build_prompt(prompt, context)}]}]
        inf_params = {'maxTokens': self.config.max_tokens, 'temperature': self.config.temperature}

        try:
            stream = self.bedrock_runtime.converse_stream(modelId=self.llm_model_id,
                                                          messages=messages,
                                                          system=[{'text': SYSTEM_PROMPT}],
                                                          inferenceConfig=inf_params).get('stream')

            msg = ''
            if stream:
                for event in stream:
                    if 'contentBlockDelta' in event:
                        msg += event['contentBlockDelta']['delta']['text']

            logger.debug(f'Bedrock response generated (length: {len(msg)})')
            return msg

        except (ClientError, BotoCoreError) as e:
            logger.error(f'Bedrock completion request failed: {e}')
            raise CompletionUnavailableError(f'Failed to generate response: {e}')
        except Exception as e:
            logger.error(f'Unexpected error in Bedrock completion: {e}')
            raise CompletionUnavailableError(f'Failed to generate response: {e}')

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock embedding model.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            return len(self.embed('test')) == self.output_embedding_length

        except Exception as e:
            logger.error(f'Bedrock health check failed: {e}')
            return False
