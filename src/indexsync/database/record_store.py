"""SQLAlchemy-backed record store."""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from sqlalchemy import func, inspect, select
from sqlalchemy import types as sa_types
from sqlalchemy.orm import RelationshipDirection, Session

from .database import DatabaseManager
from ..export.records import BaseRecordStore, ExportSchema, RecordQuery, RelationKind, RelationSpec
from ..utils.logging import get_logger


logger = get_logger("database.record_store")


def declared_type(column) -> str:
    """Map a column to the declared field type name used for schema inference."""
    if column.primary_key:
        return "PrimaryKey"
    if column.foreign_keys:
        return "ForeignKey"

    column_type = column.type
    if isinstance(column_type, sa_types.Enum):
        return "Enum"
    if isinstance(column_type, sa_types.Text):
        return "Text"
    if isinstance(column_type, sa_types.String):
        return "Varchar"
    if isinstance(column_type, sa_types.Boolean):
        return "Boolean"
    if isinstance(column_type, sa_types.Integer):
        return "Int"
    if isinstance(column_type, sa_types.Numeric):
        return "Decimal"
    if isinstance(column_type, sa_types.DateTime):
        return "Datetime"
    if isinstance(column_type, sa_types.Date):
        return "Date"
    return type(column_type).__name__


@dataclass
class _Registration:
    model: Type[Any]
    live_model: Optional[Type[Any]]
    schema: ExportSchema
    primary_key: str


class SqlAlchemyQuery(RecordQuery):
    """Primary-key ordered record collection."""

    def __init__(self, session: Session, model: Type[Any], primary_key: str, only_visible: bool = False):
        self.session = session
        self.model = model
        self.statement = select(model)
        if only_visible:
            self.statement = self.statement.where(getattr(model, ExportSchema.VISIBILITY_COLUMN).is_(True))
        self.order_by = getattr(model, primary_key)

    def limit(self, length: int, offset: int) -> List[Any]:
        statement = self.statement.order_by(self.order_by).limit(length).offset(offset)
        return list(self.session.scalars(statement).all())

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(self.statement.subquery())) or 0


class SqlAlchemyRecordStore(BaseRecordStore):
    """Record store over mapped SQLAlchemy models.

    Each model's export schema is derived from its mapper once, when the model
    is registered.
    """

    def __init__(self, session: Session, database: Optional[DatabaseManager] = None):
        """Initialize record store.

        Args:
            session: Session all queries run on
            database: Manager owning the session's engine; disposed on close
        """
        self.session = session
        self.database = database
        self._registrations: Dict[str, _Registration] = {}
        self._class_names: Dict[Type[Any], str] = {}

    def register(
        self,
        model: Type[Any],
        class_name: Optional[str] = None,
        live_model: Optional[Type[Any]] = None,
        field_types: Optional[Mapping[str, str]] = None,
        searchable_attributes: Iterable[str] = ()
    ) -> ExportSchema:
        """Register an exportable model.

        Args:
            model: Mapped class
            class_name: Name used in index configuration, defaults to the class name
            live_model: Mapped class holding published versions, makes the model versioned
            field_types: Declared type overrides by column name
            searchable_attributes: Columns always indexed as strings
        """
        class_name = class_name or model.__name__
        mapper = inspect(model)

        if len(mapper.primary_key) != 1:
            raise ValueError(f"{class_name} must have a single-column primary key")
        primary_key = mapper.get_property_by_column(mapper.primary_key[0]).key

        fields: Dict[str, str] = {}
        for attr in mapper.column_attrs:
            key = "ID" if attr.key == primary_key else attr.key
            fields[key] = declared_type(attr.columns[0])
        fields.update(field_types or {})

        relations: Dict[str, RelationSpec] = {}
        for rel in mapper.relationships:
            target = rel.mapper.class_.__name__
            if rel.direction is RelationshipDirection.MANYTOONE or not rel.uselist:
                kind = RelationKind.SINGLE
            elif rel.secondary is not None:
                kind = RelationKind.MANY_MANY
            else:
                kind = RelationKind.MANY
            relations[rel.key] = RelationSpec(kind=kind, target=target)

        schema = ExportSchema(
            class_name=class_name,
            fields=fields,
            relations=relations,
            versioned=live_model is not None,
            searchable_attributes=tuple(searchable_attributes)
        )

        self._registrations[class_name] = _Registration(model, live_model, schema, primary_key)
        self._class_names[model] = class_name
        if live_model is not None:
            self._class_names[live_model] = class_name

        logger.info(
            "Registered exportable model",
            class_name=class_name,
            fields=len(fields),
            relations=len(relations),
            versioned=schema.versioned
        )
        return schema

    def _registration(self, class_name: str) -> _Registration:
        try:
            return self._registrations[class_name]
        except KeyError:
            raise KeyError(f"Class not registered for export: {class_name}")

    def schema_for(self, class_name: str) -> ExportSchema:
        return self._registration(class_name).schema

    def class_name_of(self, record: Any) -> str:
        try:
            return self._class_names[type(record)]
        except KeyError:
            raise KeyError(f"Class not registered for export: {type(record).__name__}")

    def to_map(self, record: Any) -> Dict[str, Any]:
        mapper = inspect(type(record))
        primary_key = mapper.get_property_by_column(mapper.primary_key[0]).key

        values: Dict[str, Any] = {}
        for attr in mapper.column_attrs:
            key = "ID" if attr.key == primary_key else attr.key
            value = getattr(record, attr.key)
            values[key] = value.value if isinstance(value, enum.Enum) else value
        return values

    def by_id(self, class_name: str, record_id: Any) -> Optional[Any]:
        return self.session.get(self._registration(class_name).model, record_id)

    def get_live(self, class_name: str, record_id: Any) -> Optional[Any]:
        registration = self._registration(class_name)
        if registration.live_model is None:
            return self.by_id(class_name, record_id)
        return self.session.get(registration.live_model, record_id)

    def related(self, record: Any, relation: str) -> Any:
        return getattr(record, relation)

    def query(self, class_name: str, only_visible: bool = False) -> RecordQuery:
        registration = self._registration(class_name)
        return SqlAlchemyQuery(self.session, registration.model, registration.primary_key, only_visible)

    def release(self, record: Any) -> None:
        if record in self.session:
            self.session.expunge(record)

    def close(self) -> None:
        self.session.close()
        if self.database is not None:
            self.database.close()
