"""LLM integration: OpenAI and Ollama structured-output clients with retry logic."""

from .factory import create_llm_client
from .ollama_client import OllamaClient
from .openai_client import OpenAIClient, extract_response_text
from .retry import is_retryable, llm_retry
from .types import StructuredLLMClient

__all__ = [
    "OllamaClient",
    "OpenAIClient",
    "StructuredLLMClient",
    "create_llm_client",
    "extract_response_text",
    "is_retryable",
    "llm_retry",
]
