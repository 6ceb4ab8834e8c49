"""Normalized agent configuration schema shared by every AI vendor adapter.

Wire format is camelCase (matches the frontend); Python attributes are snake_case.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

VariableType = Literal["text", "textarea", "select", "radio"]

CHOICE_TYPES = ("select", "radio")


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AgentVariable(CamelModel):
    """One user-fillable field of an agent template."""

    name: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    type: VariableType
    description: str
    default_value: str | None = None
    options: list[str] | None = None

    @model_validator(mode="after")
    def _choices_need_options(self) -> "AgentVariable":
        if self.type in CHOICE_TYPES and not self.options:
            raise ValueError(f"variable '{self.name}' of type '{self.type}' requires options")
        return self


class AgentConfig(CamelModel):
    """Vendor-independent agent configuration: {name, description, variables[]}."""

    name: str = Field(..., min_length=1)
    description: str
    variables: list[AgentVariable]
