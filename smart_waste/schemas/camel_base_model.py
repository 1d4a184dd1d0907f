from datetime import datetime, date
from enum import Enum
from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class CamelCaseBaseModel(BaseModel):
    """
    Base model for every request and response body.

    Clients speak camelCase (`pickupDate`, `wasteType`), Python code uses
    snake_case. Requests are accepted under either name; responses are dumped
    with `model_dump(by_alias=True)`. ORM rows validate directly through
    `from_attributes`.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_serializer("*")
    def serialize_any(self, value):
        if value is None:
            return None

        # Nested models keep their camelCase keys
        if isinstance(value, BaseModel):
            return value.model_dump(by_alias=True)

        if isinstance(value, Enum):
            return value.value

        # datetime is a subclass of date
        if isinstance(value, (datetime, date)):
            return value.isoformat()

        if isinstance(value, (list, tuple)):
            return [self.serialize_any(item) for item in value]

        if isinstance(value, dict):
            return {key: self.serialize_any(val) for key, val in value.items()}

        return value
