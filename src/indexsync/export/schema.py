"""Search document schema and field type inference."""

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import SchemaError
from ..utils.logging import get_logger


logger = get_logger("export.schema")


class FieldType(str, Enum):
    """Field types understood by the remote search service."""
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    DATE = "date"
    ENUM = "enum"


# Column names always indexed as full-text strings
STRING_COLUMNS = ("Name", "Title")

# Declared types whose form widget is an upload/file picker; the stored
# value is the id of the referenced file.
UPLOAD_FIELD_TYPES = frozenset({"File", "Image", "UploadField", "FileField", "ImageField"})

_NUMERIC_PREFIX = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


@dataclass
class FieldSchema:
    """One typed field of a search document."""

    type: FieldType
    name: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "name": self.name, "value": self.value}


@dataclass
class Document:
    """One exported record: the source id plus its typed fields."""

    external_id: int
    fields: List[FieldSchema] = field(default_factory=list)

    def add_field(self, field_type: FieldType, name: str, value: Any) -> FieldSchema:
        schema = FieldSchema(type=field_type, name=name, value=value)
        self.fields.append(schema)
        return schema

    def get_field(self, name: str) -> Optional[FieldSchema]:
        for schema in self.fields:
            if schema.name == name:
                return schema
        return None

    def with_string_fields(self) -> "Document":
        """Copy of this document with enum and text fields sent as strings.

        The remote service does not partial-match enum fields and filters
        poorly on text fields.
        """
        fields = [
            replace(f, type=FieldType.STRING) if f.type in (FieldType.ENUM, FieldType.TEXT) else replace(f)
            for f in self.fields
        ]
        return Document(external_id=self.external_id, fields=fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "external_id": self.external_id,
            "fields": [f.to_dict() for f in self.fields]
        }


def _numeric_prefix(value: Any) -> Optional[str]:
    if value is None:
        return None
    match = _NUMERIC_PREFIX.match(str(value))
    return match.group(0).strip() if match else None


def coerce_int(value: Any, column: str = "") -> int:
    """Convert a raw value to int; non-numeric input becomes zero."""
    if isinstance(value, bool):
        return int(value)

    try:
        if isinstance(value, (int, float, Decimal)):
            return int(value)

        prefix = _numeric_prefix(value)
        if prefix is None:
            if value not in (None, ""):
                logger.warning("Non-numeric value coerced to zero", column=column, value=str(value))
            return 0
        if prefix.lstrip("+-").isdigit():
            return int(prefix)
        return int(float(prefix))
    except (OverflowError, ValueError):
        # Infinity and NaN have no integer form
        logger.warning("Non-numeric value coerced to zero", column=column, value=str(value))
        return 0


def coerce_float(value: Any, column: str = "") -> float:
    """Convert a raw value to float; non-numeric input becomes zero."""
    if isinstance(value, (int, float, Decimal)):
        return float(value)

    prefix = _numeric_prefix(value)
    if prefix is None:
        if value not in (None, ""):
            logger.warning("Non-numeric value coerced to zero", column=column, value=str(value))
        return 0.0
    return float(prefix)


def format_date(value: Any, column: str = "") -> Optional[str]:
    """Format a raw date value as ISO-8601 with a UTC offset.

    Naive values are taken to be UTC. An empty value (NULL column or blank
    string) has no date and yields None.

    Raises:
        SchemaError: If the value is not a recognisable date
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise SchemaError(column, value, str(e))
    else:
        raise SchemaError(column, value, "not a date")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.replace(microsecond=0).isoformat()


def translate_schema(
    column: str,
    value: Any,
    field_type: str,
    searchable_attributes: Iterable[str] = ()
) -> FieldSchema:
    """Infer the search field type of one column and coerce its value.

    Rules are evaluated in order and the first match wins.
    """
    field_type = field_type or ""

    if column in STRING_COLUMNS or column in searchable_attributes:
        return FieldSchema(FieldType.STRING, column, value)

    # A column literally named ID stays an integer whatever its declared type
    if "Varchar" in field_type and column != "ID":
        return FieldSchema(FieldType.STRING, column, value)

    if column == "ID" or field_type in ("PrimaryKey", "ForeignKey"):
        return FieldSchema(FieldType.INTEGER, column, coerce_int(value, column))

    if "HTML" in field_type or column == "Content":
        return FieldSchema(FieldType.TEXT, column, value)

    if field_type.startswith("Int"):
        return FieldSchema(FieldType.INTEGER, column, coerce_int(value, column))

    if "Decimal" in field_type or "Currency" in field_type:
        return FieldSchema(FieldType.FLOAT, column, coerce_float(value, column))

    if "Date" in field_type:
        return FieldSchema(FieldType.DATE, column, format_date(value, column))

    if "Enum" in field_type:
        return FieldSchema(FieldType.ENUM, column, value)

    if field_type in UPLOAD_FIELD_TYPES:
        return FieldSchema(FieldType.INTEGER, column, coerce_int(value, column))

    return FieldSchema(FieldType.ENUM, column, value)
