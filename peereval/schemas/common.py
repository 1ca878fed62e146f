from pydantic import BaseModel
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Request body whose JSON keys are camelCase (projectId) while fields stay snake_case."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
