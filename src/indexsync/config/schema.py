"""Configuration schema definitions for search indices."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class IndexConfig(BaseModel):
    """Static definition of one logical search index."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Logical index name, used as the engine name by default")
    class_name: str = Field(..., alias="class", description="Record class exported to this index")
    crawl_based: bool = Field(default=False, alias="crawlBased")
    searchable_attributes: List[str] = Field(default_factory=list, alias="searchableAttributes")
    attributes_for_faceting: List[str] = Field(default_factory=list, alias="attributesForFaceting")

    @field_validator('name', 'class_name')
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v

    @property
    def document_type_name(self) -> str:
        """Document type name used on the remote service."""
        return self.class_name.lower()

    def with_engine_name(self, engine_name: Optional[str]) -> "IndexConfig":
        """Return a copy whose name is replaced by a deployment override."""
        if not engine_name:
            return self
        return self.model_copy(update={"name": engine_name})


class IndicesConfig(BaseModel):
    """Root configuration listing every exportable index."""

    indices: List[IndexConfig] = Field(default_factory=list)
    batch_length: Optional[int] = Field(default=None, description="Overrides the export batch length")

    @field_validator('batch_length')
    @classmethod
    def validate_batch_length(cls, v):
        if v is not None and v < 1:
            raise ValueError("batch_length must be at least 1")
        return v

    def get_index(self, name: str) -> Optional[IndexConfig]:
        """Find an index definition by its logical name."""
        for index in self.indices:
            if index.name == name:
                return index
        return None

    def get_indices_for_class(self, class_name: str) -> List[IndexConfig]:
        """Get all indices exporting the given record class."""
        return [index for index in self.indices if index.class_name == class_name]
