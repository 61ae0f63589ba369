# formiq/llm/openai_client.py
"""OpenAI client using the Responses API with strict JSON-schema output."""

import logging
from typing import Any

import httpx
from openai import AsyncOpenAI

from formiq.errors import GenerationError

from .retry import llm_retry

logger = logging.getLogger(__name__)


def extract_response_text(response: Any) -> str:
    """
    Pull the answer text out of a Responses API result.

    Prefers the aggregated output_text; falls back to the first output_text
    part of the first message item.

    Raises:
        GenerationError: If the response carries no text at all
    """
    text = (getattr(response, "output_text", None) or "").strip()
    if text:
        return text

    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) == "output_text" and (part.text or "").strip():
                return part.text.strip()

    raise GenerationError("OpenAI returned an empty response body")


class OpenAIClient:
    """
    Async OpenAI client producing schema-constrained JSON.

    Responses are not stored server-side (store=False); every call is
    independent.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: int = 120,
    ):
        """
        Initialize OpenAI client.

        Args:
            model: Model name (e.g., "gpt-5-mini")
            api_key: API key (None = OPENAI_API_KEY from the environment)
            base_url: Optional API base URL override
            timeout: Request timeout in seconds
        """
        self.model = model
        self.base_url = base_url
        self._client = AsyncOpenAI(
            api_key=api_key, base_url=base_url, timeout=httpx.Timeout(timeout)
        )

    async def health_check(self) -> bool:
        """
        Check that the API is reachable and the model exists.

        Returns:
            True if the model can be retrieved, False otherwise.
        """
        try:
            await self._client.models.retrieve(self.model)
            return True
        except Exception as e:
            logger.error(f"OpenAI health check failed: {e}")
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
        Ask the model for JSON matching a strict schema.

        Args:
            system_prompt: Instructions for the model
            user_prompt: Context payload
            schema_name: Name of the JSON schema
            schema: Strict JSON schema the output must follow
            description: Schema description

        Returns:
            Raw JSON text of the answer

        Raises:
            GenerationError: If the response body is empty
            openai.APIError: On API errors (retry decorator handles transient errors)
        """
        logger.info(f"Generating {schema_name} with model={self.model}")
        response = await self._client.responses.create(
            model=self.model,
            instructions=system_prompt,
            input=[{"role": "user", "content": user_prompt}],
            store=False,
            text={
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "description": description,
                    "schema": schema,
                    "strict": True,
                }
            },
        )
        text = extract_response_text(response)
        logger.info(f"Generated {len(text)} chars for {schema_name}")
        return text
