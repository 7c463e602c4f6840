"""Data models for treeweave configuration files."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TypeRule(BaseModel):
    """One entry of a type map: pages whose path matches get ``type``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pattern: str
    type_name: str = Field(alias="type")

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {value!r}: {exc}") from exc
        return value

    def matches(self, path: str) -> bool:
        """Return True when the rule's pattern is found in ``path``."""
        return re.search(self.pattern, path) is not None


class TypeDeclaration(BaseModel):
    """A page type name and where the site's author declared it."""

    model_config = ConfigDict(frozen=True)

    name: str
    source: str = "a hard-coded default"
