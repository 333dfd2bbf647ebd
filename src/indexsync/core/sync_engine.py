"""Core sync engine running export, delete and provisioning units of work."""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence

from .resolver import IndexResolver
from .sync_client import SyncClient
from ..api_clients import SwiftypeAPI
from ..config.loader import resolve_index_config
from ..config.schema import IndexConfig, IndicesConfig
from ..config.settings import AppSettings, get_settings
from ..exceptions import IndexSyncError
from ..export import BulkExportPaginator, BaseRecordStore, DocumentEnricher, DocumentExporter
from ..utils.logging import get_logger, log_async_execution_time, log_execution_time, unit_of_work


@dataclass(frozen=True)
class ExportJob:
    """One schedulable bulk export unit: a batch of a class starting at an offset."""

    index_name: str
    class_name: str
    offset: int

    @property
    def job_id(self) -> str:
        return f"export:{self.index_name}:{self.class_name}:{self.offset}"


@dataclass
class SyncResult:
    """Result of a sync operation."""

    operation: str
    index_name: str
    success: bool
    class_name: Optional[str] = None
    offset: Optional[int] = None
    record_id: Optional[Any] = None
    documents_exported: int = 0
    skipped: bool = False
    error_message: Optional[str] = None
    sync_duration: Optional[float] = None


class SyncEngine:
    """Runs sync operations for configured indices against the remote service."""

    def __init__(
        self,
        api: SwiftypeAPI,
        record_store: BaseRecordStore,
        indices: IndicesConfig,
        settings: Optional[AppSettings] = None,
        enrichers: Sequence[DocumentEnricher] = ()
    ):
        """Initialize sync engine.

        Args:
            api: Remote API wrapper
            record_store: Source of records and export schemas
            indices: Static index definitions
            settings: Application settings, defaults to the global settings
            enrichers: Document enrichers applied to every export
        """
        self.api = api
        self.record_store = record_store
        self.indices = indices
        self.settings = settings or get_settings()
        self.logger = get_logger(self.__class__.__name__)

        self.resolver = IndexResolver(
            api,
            poll_interval=self.settings.export.delete_poll_interval,
            poll_timeout=self.settings.export.delete_poll_timeout
        )
        self.exporter = DocumentExporter(record_store, enrichers=enrichers)
        self.paginator = BulkExportPaginator(self.exporter, page_length=self.settings.export.page_length)

        self.logger.info("Sync engine initialized", indices=[index.name for index in indices.indices])

    @property
    def batch_length(self) -> int:
        return self.indices.batch_length or self.settings.export.batch_length

    def index_config(self, index_name: str) -> IndexConfig:
        """Effective configuration of an index, with the engine-name override applied."""
        return resolve_index_config(self.indices, index_name, self.settings.swiftype.engine_name or "")

    def client_for(self, index_name: str) -> SyncClient:
        return SyncClient(self.api, self.resolver, self.index_config(index_name))

    @log_execution_time
    def plan_bulk_export(self, index_name: str, class_name: Optional[str] = None) -> List[ExportJob]:
        """Split a full export of a class into batch-sized units of work."""
        class_name = class_name or self._static_index(index_name).class_name
        schema = self.record_store.schema_for(class_name)
        total = self.record_store.query(class_name, only_visible=schema.has_visibility_flag).count()
        batches = math.ceil(total / self.batch_length)

        jobs = [
            ExportJob(index_name=index_name, class_name=class_name, offset=page * self.batch_length)
            for page in range(batches)
        ]

        self.logger.info(
            "Planned bulk export",
            index=index_name,
            class_name=class_name,
            total_records=total,
            batch_length=self.batch_length,
            jobs=len(jobs)
        )
        return jobs

    @log_async_execution_time
    async def create_index(self, index_name: str) -> SyncResult:
        """Provision the engine and a fresh document type for an index."""
        result = SyncResult(operation="create_index", index_name=index_name, success=False)

        async def run():
            engine, document_type = await self.client_for(index_name).create_index()
            self.logger.info(
                "Index ready",
                index=index_name,
                engine_id=engine.id,
                document_type_id=document_type.id
            )
            result.success = True

        return await self._run(result, run)

    @log_async_execution_time
    async def run_bulk_export(self, job: ExportJob) -> SyncResult:
        """Export one batch of records and send it in a single bulk request."""
        result = SyncResult(
            operation="bulk_export",
            index_name=job.index_name,
            class_name=job.class_name,
            offset=job.offset,
            success=False
        )

        async def run():
            index_config = self._static_index(job.index_name)
            if index_config.crawl_based:
                result.success = True
                result.skipped = True
                result.error_message = "Crawl-based export is not supported"
                self.logger.warning("Skipping crawl-based index", index=job.index_name)
                return

            documents = self.paginator.bulk_export(
                job.class_name,
                start_at=job.offset,
                max_documents=self.batch_length,
                client_name=SyncClient.__name__,
                searchable_attributes=index_config.searchable_attributes
            )
            result.documents_exported = len(documents)
            result.success = await self.client_for(job.index_name).bulk_create(documents)
            if not result.success:
                result.error_message = "Bulk create was rejected"

        return await self._run(result, run)

    @log_async_execution_time
    async def export_record(self, index_name: str, class_name: str, record_id: Any) -> SyncResult:
        """Create or update the document of a single record."""
        result = SyncResult(
            operation="export",
            index_name=index_name,
            class_name=class_name,
            record_id=record_id,
            success=False
        )

        async def run():
            searchable = self._static_index(index_name).searchable_attributes
            record = self.record_store.by_id(class_name, record_id)
            document = None
            if record is not None:
                document = self.exporter.export(record, SyncClient.__name__, searchable)
            if document is None:
                result.success = True
                result.skipped = True
                self.logger.info(
                    "Record not exportable, skipping",
                    index=index_name,
                    class_name=class_name,
                    record_id=record_id
                )
                return

            result.documents_exported = 1
            result.success = await self.client_for(index_name).create(document)
            if not result.success:
                result.error_message = "Document create was rejected"

        return await self._run(result, run)

    @log_async_execution_time
    async def delete_record(self, index_name: str, class_name: str, record_id: Any) -> SyncResult:
        """Remove the document of a record from the index."""
        result = SyncResult(
            operation="delete",
            index_name=index_name,
            class_name=class_name,
            record_id=record_id,
            success=False
        )

        async def run():
            result.success = await self.client_for(index_name).delete(record_id)
            if not result.success:
                result.error_message = "Document delete was rejected"

        return await self._run(result, run)

    def _static_index(self, index_name: str) -> IndexConfig:
        return resolve_index_config(self.indices, index_name, engine_override="")

    async def _run(self, result: SyncResult, operation) -> SyncResult:
        start_time = datetime.now()

        with unit_of_work(
            result.operation,
            index=result.index_name,
            class_name=result.class_name,
            offset=result.offset,
            record_id=result.record_id
        ):
            try:
                await operation()
            except IndexSyncError as e:
                result.success = False
                result.error_message = str(e)
                self.logger.error("Sync operation failed", error=str(e))
            finally:
                result.sync_duration = (datetime.now() - start_time).total_seconds()

            self.logger.info(
                "Sync operation completed",
                success=result.success,
                skipped=result.skipped,
                documents=result.documents_exported,
                duration=f"{result.sync_duration:.2f}s"
            )
        return result
