"""Base classes shared by request schemas."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelInput(BaseModel):
    """
    Request body that accepts both snake_case and camelCase keys.

    Browser clients post camelCase (`categoryId`, `isTemplate`); scripts tend to
    use the snake_case field names. Responses are always snake_case.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
