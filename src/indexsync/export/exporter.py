"""Build search documents from source records."""

from abc import ABC, abstractmethod
from html.parser import HTMLParser
from typing import Any, Iterable, List, Optional, Sequence

from .records import BaseRecordStore, ExportSchema, RelationKind
from .schema import Document, FieldType, coerce_int, translate_schema
from ..utils.logging import get_logger


class _TagStripper(HTMLParser):

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: List[str] = []

    def handle_data(self, data):
        self.parts.append(data)


def strip_tags(value: Any) -> str:
    """Remove markup from a value, keeping its text content."""
    if value is None:
        return ""
    stripper = _TagStripper()
    stripper.feed(str(value))
    stripper.close()
    return "".join(stripper.parts)


class DocumentEnricher(ABC):
    """Hook that can append or rewrite fields before a document is finalised."""

    @abstractmethod
    def enrich(self, document: Document, client_name: Optional[str] = None) -> None:
        pass


class LinkEnricher(DocumentEnricher):
    """Appends a deep link to the record's public page."""

    def __init__(self, base_link: str, client_name: Optional[str] = None, field_name: str = "Link"):
        self.base_link = base_link.rstrip("/")
        self.client_name = client_name
        self.field_name = field_name

    def enrich(self, document: Document, client_name: Optional[str] = None) -> None:
        if self.client_name and client_name != self.client_name:
            return
        document.add_field(FieldType.TEXT, self.field_name, f"{self.base_link}/{document.external_id}")


class DocumentExporter:
    """Converts records into documents using the record store's export schema."""

    def __init__(
        self,
        record_store: BaseRecordStore,
        enrichers: Sequence[DocumentEnricher] = (),
        html_field: str = "Answer"
    ):
        """Initialize exporter.

        Args:
            record_store: Record access collaborator
            enrichers: Hooks run on every document after core fields are built
            html_field: Long-text column whose markup is stripped before indexing
        """
        self.record_store = record_store
        self.enrichers = list(enrichers)
        self.html_field = html_field
        self.logger = get_logger(self.__class__.__name__)

    def add_enricher(self, enricher: DocumentEnricher) -> None:
        self.enrichers.append(enricher)

    def export(
        self,
        record: Any,
        client_name: Optional[str] = None,
        searchable_attributes: Iterable[str] = ()
    ) -> Optional[Document]:
        """Export one record.

        Args:
            record: Record to export
            client_name: Name of the calling client, passed to enrichers
            searchable_attributes: Columns always indexed as strings, on top
                of those of the class's export schema

        Returns:
            The built Document, or None when a versioned record has no
            published version

        Raises:
            SchemaError: If a field value cannot be coerced to its type
        """
        store = self.record_store
        class_name = store.class_name_of(record)
        schema = store.schema_for(class_name)
        searchable = set(schema.searchable_attributes) | set(searchable_attributes)

        if schema.versioned:
            record_id = store.to_map(record).get("ID")
            live = store.get_live(class_name, record_id)
            if live is not record:
                store.release(record)
            if live is None:
                self.logger.debug(
                    "Skipping record without published version",
                    class_name=class_name,
                    record_id=record_id
                )
                return None
            record = live

        try:
            values = store.to_map(record)
            if self.html_field in values:
                values[self.html_field] = strip_tags(values[self.html_field])

            document = Document(external_id=coerce_int(values.get("ID"), "ID"))

            for column, value in values.items():
                if column not in schema.fields:
                    continue

                field = translate_schema(column, value, schema.fields[column], searchable)
                # NULL dates are left out of the document
                if field.type is FieldType.DATE and field.value is None:
                    continue
                document.fields.append(field)

            self._export_single_relations(record, schema, document)
            self._export_many_relations(record, schema, document)
            self._export_many_many_relations(record, schema, document)

            for enricher in self.enrichers:
                enricher.enrich(document, client_name)

            return document
        finally:
            store.release(record)

    def _follow(self, record: Any, relation: str, schema: ExportSchema) -> Any:
        try:
            return self.record_store.related(record, relation)
        except (LookupError, AttributeError) as e:
            self.logger.debug(
                "Skipping unavailable relation",
                class_name=schema.class_name,
                relation=relation,
                error=str(e)
            )
            return None

    def _export_single_relations(self, record: Any, schema: ExportSchema, document: Document) -> None:
        store = self.record_store
        for relation in schema.relations_of(RelationKind.SINGLE):
            item = self._follow(record, relation, schema)
            if item is None:
                continue

            title = store.title_of(item)
            url = store.file_url_of(item)
            if url is not None:
                document.add_field(FieldType.ENUM, f"{relation}_URL", url)
                document.add_field(FieldType.ENUM, f"{relation}_Title", title)
            elif title is not None:
                document.add_field(FieldType.ENUM, relation, title)

    def _export_many_relations(self, record: Any, schema: ExportSchema, document: Document) -> None:
        for relation in schema.relations_of(RelationKind.MANY):
            titles = self._titles(self._follow(record, relation, schema))
            if titles:
                document.add_field(FieldType.ENUM, relation, titles)

    def _export_many_many_relations(self, record: Any, schema: ExportSchema, document: Document) -> None:
        store = self.record_store
        for relation in schema.relations_of(RelationKind.MANY_MANY):
            items = list(self._follow(record, relation, schema) or ())

            titles = self._titles(items)
            contents = [content for content in (store.content_of(item) for item in items) if content]

            if titles:
                document.add_field(FieldType.ENUM, relation, titles)
            if contents:
                document.add_field(FieldType.ENUM, f"{relation}_Content", contents)

    def _titles(self, items: Optional[Iterable[Any]]) -> List[str]:
        if items is None:
            return []
        titles = (self.record_store.title_of(item) for item in items)
        return [title for title in titles if title is not None]
