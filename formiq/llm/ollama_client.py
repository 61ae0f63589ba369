# formiq/llm/ollama_client.py
"""Ollama client using format= for schema-constrained JSON output."""

import logging

import httpx
from ollama import AsyncClient

from formiq.errors import GenerationError

from .retry import llm_retry

logger = logging.getLogger(__name__)


class OllamaClient:
    """
    Async Ollama client producing schema-constrained JSON.

    Ollama enforces the schema through its structured outputs support;
    strictness is best effort, so callers still validate the result.
    """

    def __init__(self, base_url: str, model: str, timeout: int = 300):
        """
        Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (e.g., "http://localhost:11434")
            model: Model name (e.g., "qwen2.5:14b-instruct")
            timeout: Request timeout in seconds (generous for model loading)
        """
        self.base_url = base_url
        self.model = model
        self.client = AsyncClient(host=base_url, timeout=httpx.Timeout(timeout))

    async def health_check(self) -> bool:
        """
        Check Ollama server health and model availability.

        Returns:
            True if server is reachable (the model can be pulled on demand).
            False if server is down or unreachable.
        """
        try:
            models_response = await self.client.list()
            available = [m.model for m in models_response.models]
            tagged = f"{self.model}:"
            if not any(name == self.model or name.startswith(tagged) for name in available):
                logger.warning(
                    f"Model {self.model} not found in available models. "
                    f"It can be pulled on demand during generation."
                )
            return True
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    @llm_retry
    async def generate_structured(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict,
        description: str,
    ) -> str:
        """
        Ask the model for JSON matching a schema.

        Returns:
            Raw JSON text of the answer

        Raises:
            GenerationError: If the model answered with nothing
            ResponseError: On API errors (retry decorator handles transient errors)
        """
        logger.info(f"Generating {schema_name} with model={self.model}")
        response = await self.client.chat(
            model=self.model,
            messages=[
                {"role": "system", "content": f"{system_prompt}\n\n{description}"},
                {"role": "user", "content": user_prompt},
            ],
            format=schema,
            stream=False,
            options={"temperature": 0},
        )
        text = (response.message.content or "").strip()
        if not text:
            raise GenerationError("Ollama returned an empty response body")
        logger.info(f"Generated {len(text)} chars for {schema_name}")
        return text
