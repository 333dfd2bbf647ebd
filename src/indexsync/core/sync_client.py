"""Create, update and delete documents on a resolved remote index."""

from typing import Any, List, Sequence, Tuple

from .resolver import IndexResolver
from ..api_clients import DocumentType, Engine, SwiftypeAPI
from ..config.schema import IndexConfig
from ..export.schema import Document
from ..utils.logging import get_logger, log_async_execution_time


WRITE_SUCCESS_STATUSES = (200, 201)
DELETE_SUCCESS_STATUSES = (200, 204, 404)


class SyncClient:
    """Writes documents of one index to the remote search service."""

    def __init__(self, api: SwiftypeAPI, resolver: IndexResolver, index_config: IndexConfig):
        """Initialize sync client.

        Args:
            api: Remote API wrapper
            resolver: Engine/document type resolver
            index_config: Effective index configuration for this session
        """
        self.api = api
        self.resolver = resolver
        self.index_config = index_config
        self.logger = get_logger(
            self.__class__.__name__,
            index=index_config.name,
            class_name=index_config.class_name
        )

    async def create_index(self) -> Tuple[Engine, DocumentType]:
        """Provision the index, replacing any existing document type."""
        return await self.resolver.resolve(self.index_config)

    @log_async_execution_time
    async def create(self, document: Document) -> bool:
        """Create or update one document."""
        engine, document_type = await self.resolver.resolve_for_sync(self.index_config)

        response = await self.api.create_or_update_document(
            engine.id,
            document_type.id,
            document.with_string_fields().to_dict()
        )
        success = response.status in WRITE_SUCCESS_STATUSES

        self._log_result("Document create", success, response.status, record_id=document.external_id)
        return success

    update = create

    @log_async_execution_time
    async def bulk_create(self, documents: Sequence[Document]) -> bool:
        """Create or update a batch of documents in one request."""
        if not documents:
            return True

        engine, document_type = await self.resolver.resolve_for_sync(self.index_config)

        payload: List[dict] = [document.with_string_fields().to_dict() for document in documents]
        response = await self.api.bulk_create_or_update(engine.id, document_type.id, payload)
        success = response.status in WRITE_SUCCESS_STATUSES

        self._log_result("Bulk create", success, response.status, documents=len(payload))
        return success

    bulk_update = bulk_create

    @log_async_execution_time
    async def delete(self, record_id: Any) -> bool:
        """Delete one document; deleting an absent document succeeds."""
        engine, document_type = await self.resolver.resolve_for_sync(self.index_config)

        response = await self.api.delete_document(engine.id, document_type.id, record_id)
        success = response.status in DELETE_SUCCESS_STATUSES

        self._log_result("Document delete", success, response.status, record_id=record_id)
        return success

    def _log_result(self, operation: str, success: bool, status: int, **context) -> None:
        log = self.logger.info if success else self.logger.error
        log(
            f"{operation} {'succeeded' if success else 'failed'}",
            status=status,
            **context
        )
