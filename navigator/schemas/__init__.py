# This project was developed with assistance from AI tools.
"""Shared schema components."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for wire models the website frontend reads in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
