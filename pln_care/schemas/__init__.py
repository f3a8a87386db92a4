from __future__ import annotations

from pydantic import BaseModel, ConfigDict, constr
from pydantic.alias_generators import to_camel


# The dashboard speaks camelCase JSON; Python code uses snake_case.
class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


NonEmptyStr = constr(strip_whitespace=True, min_length=1)
