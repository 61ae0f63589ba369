# formiq/schemas/base.py
"""Base model for every payload that crosses the wire in camelCase."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Pydantic model with snake_case attributes and camelCase JSON keys.

    Accepts either spelling on input; dump with by_alias=True for the wire.
    """

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Dump as JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
