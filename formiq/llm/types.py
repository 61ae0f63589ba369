# formiq/llm/types.py
"""Interface shared by all structured-output client implementations."""

from typing import Protocol


class StructuredLLMClient(Protocol):
    """A model provider that can answer with JSON conforming to a schema."""

    model: str

    async def generate_structured(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict,
        description: str,
    ) -> str:
        """Return the raw JSON text of one schema-constrained answer."""
        ...

    async def health_check(self) -> bool: ...
