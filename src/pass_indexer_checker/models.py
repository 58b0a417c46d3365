"""Pydantic models for PASS repository records and index responses."""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from pass_indexer_checker.exceptions import CheckFailedError


class UserRole(str, Enum):
    """User role values."""

    SUBMITTER = "submitter"
    ADMIN = "admin"


class User(BaseModel):
    """User record as stored in the PASS repository."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    # Repository type name and the container new records are created in
    type_name: ClassVar[str] = "User"
    container: ClassVar[str] = "users"

    id: str | None = Field(default=None, alias="@id")
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    locator_ids: list[str] = Field(default_factory=list, alias="locatorIds")
    roles: list[UserRole] = Field(default_factory=list)

    def to_jsonld(self, context: str) -> dict[str, Any]:
        """Serialize the record as a JSON-LD body for creation."""
        body = self.model_dump(by_alias=True, exclude_none=True)
        body.pop("@id", None)
        body["@type"] = self.type_name
        body["@context"] = context
        return body


class IndexMapping(BaseModel):
    """Field mapping of a search index, from the index introspection response."""

    index: str
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def field_count(self) -> int:
        """Number of top-level fields defined in the mapping."""
        return len(self.properties)

    @classmethod
    def from_response(cls, index: str, data: Any) -> IndexMapping:
        """Descend ``{index: {mappings: {_doc: {properties: ...}}}}``.

        Raises:
            CheckFailedError: A nested key is missing or is not an object
        """
        node = data
        for key in (index, "mappings", "_doc", "properties"):
            if not isinstance(node, dict) or key not in node:
                raise CheckFailedError(
                    f"index mapping response has no '{key}' object",
                    step="config",
                )
            node = node[key]

        if not isinstance(node, dict):
            raise CheckFailedError("index mapping properties is not an object", step="config")

        return cls(index=index, properties=node)
