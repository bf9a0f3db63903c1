from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Modelo base: snake_case en Python, camelCase en el JSON de la API"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
