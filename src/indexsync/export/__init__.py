"""Record to search document export package."""

from .schema import (
    FieldType,
    FieldSchema,
    Document,
    translate_schema,
    format_date,
    coerce_int,
    coerce_float
)

from .records import (
    RelationKind,
    RelationSpec,
    ExportSchema,
    RecordQuery,
    BaseRecordStore
)

from .exporter import (
    DocumentExporter,
    DocumentEnricher,
    LinkEnricher,
    strip_tags
)

from .paginator import (
    BulkExportPaginator,
    PageWindow,
    DEFAULT_PAGE_LENGTH
)

__all__ = [
    # Schema
    "FieldType",
    "FieldSchema",
    "Document",
    "translate_schema",
    "format_date",
    "coerce_int",
    "coerce_float",

    # Record store interface
    "RelationKind",
    "RelationSpec",
    "ExportSchema",
    "RecordQuery",
    "BaseRecordStore",

    # Exporters
    "DocumentExporter",
    "DocumentEnricher",
    "LinkEnricher",
    "strip_tags",
    "BulkExportPaginator",
    "PageWindow",
    "DEFAULT_PAGE_LENGTH"
]
