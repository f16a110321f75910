from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """Immutable record; accepts camelCase keys from exported JSON"""

    class Config:
        frozen = True
        populate_by_name = True
        alias_generator = to_camel
