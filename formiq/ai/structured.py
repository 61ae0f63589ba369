# formiq/ai/structured.py
"""Schema-constrained generation with a single repair attempt."""

import logging
from typing import TypeVar

from pydantic import BaseModel

from formiq.errors import GenerationError, PayloadValidationError
from formiq.llm.types import StructuredLLMClient
from formiq.schemas.validation import parse_json_payload

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def build_repair_prompt(user_prompt: str, issues: str, schema_name: str) -> str:
    """Original prompt followed by the validation failure and a reminder."""
    return "\n".join(
        [
            user_prompt,
            "",
            f"The last response failed schema validation: {issues}.",
            f"Return only JSON that matches the {schema_name} schema.",
        ]
    )


async def request_structured_json(
    client: StructuredLLMClient,
    *,
    system_prompt: str,
    user_prompt: str,
    schema_name: str,
    schema: dict,
    description: str,
    output_model: type[ModelT],
) -> ModelT:
    """
    Generate JSON and validate it, repairing once if it doesn't validate.

    Exactly one repair call is made; there is no configurable retry count.

    Args:
        client: Structured-output LLM client
        system_prompt: Instructions for the model
        user_prompt: Schemas and serialized context
        schema_name: Name of the output schema
        schema: Strict JSON schema sent to the provider
        description: Schema description
        output_model: Pydantic model the answer is validated against

    Returns:
        Validated output model

    Raises:
        GenerationError: If the repaired answer still fails validation,
            or the provider returned an empty body
    """
    raw = await client.generate_structured(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        schema_name=schema_name,
        schema=schema,
        description=description,
    )
    try:
        return parse_json_payload(output_model, raw)
    except PayloadValidationError as e:
        first_error = e.message

    logger.warning(f"{schema_name} failed validation, requesting repair: {first_error}")
    raw = await client.generate_structured(
        system_prompt=system_prompt,
        user_prompt=build_repair_prompt(user_prompt, first_error, schema_name),
        schema_name=schema_name,
        schema=schema,
        description=description,
    )
    try:
        return parse_json_payload(output_model, raw)
    except PayloadValidationError as e:
        raise GenerationError(f"Structured output invalid after retry: {e.message}") from e
