"""Record store interface consumed by the exporter and paginator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RelationKind(str, Enum):
    """Relation cardinalities flattened into document fields."""
    SINGLE = "has_one"
    MANY = "has_many"
    MANY_MANY = "many_many"


@dataclass(frozen=True)
class RelationSpec:
    """One relation of an exportable class."""

    kind: RelationKind
    target: str


@dataclass
class ExportSchema:
    """Static description of one exportable record class.

    Built once by the record store at startup and never re-derived per record.
    """

    class_name: str
    fields: Dict[str, str] = field(default_factory=dict)
    relations: Dict[str, RelationSpec] = field(default_factory=dict)
    versioned: bool = False
    searchable_attributes: Tuple[str, ...] = ()

    VISIBILITY_COLUMN = "ShowInSearch"

    @property
    def has_visibility_flag(self) -> bool:
        return self.VISIBILITY_COLUMN in self.fields

    def relations_of(self, kind: RelationKind) -> List[str]:
        return [name for name, spec in self.relations.items() if spec.kind == kind]


class RecordQuery(ABC):
    """A filtered record collection supporting limit/offset windows."""

    @abstractmethod
    def limit(self, length: int, offset: int) -> List[Any]:
        """Return at most ``length`` records starting at ``offset``."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Total number of records in the collection."""
        pass


class BaseRecordStore(ABC):
    """Abstract record store supplying records and their export schema."""

    @abstractmethod
    def schema_for(self, class_name: str) -> ExportSchema:
        """Get the export schema of a registered class.

        Raises:
            KeyError: If the class is not registered
        """
        pass

    @abstractmethod
    def class_name_of(self, record: Any) -> str:
        pass

    @abstractmethod
    def to_map(self, record: Any) -> Dict[str, Any]:
        """Column name to raw value for one record; must include ``ID``."""
        pass

    @abstractmethod
    def by_id(self, class_name: str, record_id: Any) -> Optional[Any]:
        pass

    @abstractmethod
    def get_live(self, class_name: str, record_id: Any) -> Optional[Any]:
        """Get the published version of a versioned record, if any."""
        pass

    @abstractmethod
    def related(self, record: Any, relation: str) -> Any:
        """Follow a relation: an object for single references, an iterable otherwise."""
        pass

    @abstractmethod
    def query(self, class_name: str, only_visible: bool = False) -> RecordQuery:
        pass

    def release(self, record: Any) -> None:
        """Free per-record resources once a record has been exported."""
        pass

    def close(self) -> None:
        """Release store-wide resources such as sessions."""
        pass

    def title_of(self, item: Any) -> Optional[str]:
        """Display title of a related object."""
        for attr in ("title", "Title", "name", "Name"):
            value = getattr(item, attr, None)
            if value:
                return str(value)
        return None

    def content_of(self, item: Any) -> Optional[str]:
        """Textual content of a related object, preferring Content over HTML."""
        for attr in ("content", "Content", "html", "HTML"):
            value = getattr(item, attr, None)
            if value:
                return value
        return None

    def file_url_of(self, item: Any) -> Optional[str]:
        """Absolute URL when the related object is a file attachment."""
        if not getattr(item, "is_file", False):
            return None
        return getattr(item, "absolute_url", None)
