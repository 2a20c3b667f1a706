from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class EngineSchema(BaseModel):
    """Immutable value object accepting both snake_case and stored camelCase keys"""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
        "frozen": True,
    }
