# formiq/llm/factory.py
"""Factory for creating the configured LLM client."""

from formiq.config.schema import FormIQConfig

from .ollama_client import OllamaClient
from .openai_client import OpenAIClient


def create_llm_client(config: FormIQConfig) -> OpenAIClient | OllamaClient:
    """
    Create the appropriate LLM client based on config.provider.

    Args:
        config: Root FormIQConfig

    Returns:
        OpenAIClient for provider="openai", OllamaClient for provider="ollama"
    """
    if config.provider == "ollama":
        return OllamaClient(
            base_url=config.ollama.base_url,
            model=config.ollama.model,
            timeout=config.ollama.timeout,
        )
    return OpenAIClient(
        model=config.openai.model,
        api_key=config.openai.api_key,
        base_url=config.openai.base_url,
        timeout=config.openai.timeout,
    )
