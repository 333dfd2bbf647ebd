"""Windowed bulk export over a record collection."""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .exporter import DocumentExporter
from .schema import Document
from ..exceptions import SchemaError
from ..utils.logging import get_logger


DEFAULT_PAGE_LENGTH = 20


@dataclass
class PageWindow:
    """Limit/offset cursor for one page query."""

    start: int
    length: int

    def advance(self) -> "PageWindow":
        return PageWindow(start=self.start + self.length, length=self.length)


class BulkExportPaginator:
    """Exports a record class page by page into a bounded list of documents."""

    def __init__(self, exporter: DocumentExporter, page_length: int = DEFAULT_PAGE_LENGTH):
        if page_length < 1:
            raise ValueError("page_length must be at least 1")

        self.exporter = exporter
        self.page_length = page_length
        self.logger = get_logger(self.__class__.__name__)

        # Windows queried during the most recent run and the rows each returned
        self.windows: List[PageWindow] = []
        self.page_sizes: List[int] = []

    def bulk_export(
        self,
        class_name: str,
        start_at: int = 0,
        max_documents: Optional[int] = 0,
        client_name: Optional[str] = None,
        searchable_attributes: Iterable[str] = ()
    ) -> List[Document]:
        """Export records of a class starting at an offset.

        Args:
            class_name: Registered record class
            start_at: Offset of the first record
            max_documents: Stop once this many documents are built; falsy or
                non-positive means no limit
            client_name: Passed through to document enrichers
            searchable_attributes: Extra columns indexed as strings

        Returns:
            Documents in record order; records without a document are skipped
        """
        store = self.exporter.record_store
        schema = store.schema_for(class_name)
        query = store.query(class_name, only_visible=schema.has_visibility_flag)
        limit = max_documents if max_documents and max_documents > 0 else None

        self.windows = []
        self.page_sizes = []

        bulk: List[Document] = []
        window = PageWindow(start=max(start_at, 0), length=self.page_length)
        pages = self._fetch(query, window)

        while pages:
            for position, record in enumerate(pages):
                document = self._export_one(
                    record,
                    class_name,
                    window.start + position,
                    client_name,
                    searchable_attributes
                )
                if document is not None:
                    bulk.append(document)

                if limit is not None and len(bulk) >= limit:
                    self._log_done(class_name, start_at, bulk, reason="max_documents")
                    return bulk

            if len(pages) > self.page_length - 1:
                window = window.advance()
                pages = self._fetch(query, window)
            else:
                break

        self._log_done(class_name, start_at, bulk, reason="end_of_collection")
        return bulk

    def _fetch(self, query, window: PageWindow) -> list:
        pages = list(query.limit(window.length, window.start))
        self.windows.append(window)
        self.page_sizes.append(len(pages))
        self.logger.debug("Fetched page", start=window.start, length=window.length, rows=len(pages))
        return pages

    def _export_one(
        self,
        record,
        class_name: str,
        offset: int,
        client_name: Optional[str],
        searchable_attributes: Iterable[str]
    ) -> Optional[Document]:
        try:
            return self.exporter.export(record, client_name, searchable_attributes)
        except SchemaError as e:
            self.logger.warning(
                "Skipping record with invalid field",
                class_name=class_name,
                offset=offset,
                column=e.column,
                error=str(e)
            )
            return None

    def _log_done(self, class_name: str, start_at: int, bulk: List[Document], reason: str) -> None:
        self.logger.info(
            "Bulk export finished",
            class_name=class_name,
            start_at=start_at,
            documents=len(bulk),
            pages=len(self.windows),
            reason=reason
        )
