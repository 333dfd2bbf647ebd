"""Resolution and provisioning of remote engines and document types."""

import asyncio
from typing import Optional, Tuple

from ..api_clients import ApiResponse, DocumentType, Engine, SwiftypeAPI
from ..config.schema import IndexConfig
from ..exceptions import ConfigurationError, ProvisioningError
from ..utils.logging import get_logger


CREATE_SUCCESS_STATUSES = (200, 201)
DELETE_SUCCESS_STATUSES = (200, 204)


class IndexResolver:
    """Finds, and when asked provisions, the engine and document type of an index.

    ``resolve`` replaces an existing document type so an export run starts from
    a clean schema. ``resolve_for_sync`` only looks things up and never
    modifies the remote index.
    """

    def __init__(
        self,
        api: SwiftypeAPI,
        poll_interval: float = 1.0,
        poll_timeout: float = 30.0
    ):
        """Initialize resolver.

        Args:
            api: Remote API wrapper
            poll_interval: First wait before checking that a deleted document
                type is gone; doubles on each further check
            poll_timeout: Total wait after which a lingering document type is
                treated as a provisioning failure
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

        self.api = api
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.logger = get_logger(self.__class__.__name__)

    async def resolve(self, index_config: IndexConfig) -> Tuple[Engine, DocumentType]:
        """Get or create the engine, then recreate the document type.

        Raises:
            ProvisioningError: If the remote service rejects a change
            TransportError: If a request fails
        """
        engine = await self.api.find_engine(index_config.name)
        if engine is None:
            engine = await self._create_engine(index_config)

        type_name = index_config.document_type_name
        existing = await self.api.find_document_type(engine.id, type_name)
        if existing is not None:
            self.logger.info(
                "Replacing existing document type",
                index=index_config.name,
                engine_id=engine.id,
                document_type=type_name,
                document_type_id=existing.id
            )
            await self._delete_document_type(index_config, engine, existing)
            await self._wait_until_deleted(index_config, engine, type_name)

        document_type = await self._create_document_type(index_config, engine)
        return engine, document_type

    async def resolve_for_sync(self, index_config: IndexConfig) -> Tuple[Engine, DocumentType]:
        """Look up the engine and document type without provisioning anything.

        Raises:
            ConfigurationError: If either does not exist
        """
        engine = await self.api.find_engine(index_config.name)
        if engine is None:
            raise ConfigurationError(
                "Engine not found",
                index=index_config.name,
                class_name=index_config.class_name
            )

        document_type = await self.api.find_document_type(engine.id, index_config.document_type_name)
        if document_type is None:
            raise ConfigurationError(
                "Document type not found",
                index=index_config.name,
                class_name=index_config.class_name
            )

        return engine, document_type

    async def _create_engine(self, index_config: IndexConfig) -> Engine:
        self.logger.info("Creating engine", index=index_config.name)

        response = await self.api.create_engine(index_config.name)
        if response.status not in CREATE_SUCCESS_STATUSES:
            raise ProvisioningError("Engine creation failed", status=response.status, index=index_config.name)

        engine = self._engine_from_response(response)
        if engine is None:
            engine = await self.api.find_engine(index_config.name)
        if engine is None:
            raise ProvisioningError("Created engine could not be found", index=index_config.name)

        return engine

    def _engine_from_response(self, response: ApiResponse) -> Optional[Engine]:
        data = response.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict) or not (data.get("id") or data.get("slug")):
            return None
        return Engine.from_api(data)

    async def _delete_document_type(
        self,
        index_config: IndexConfig,
        engine: Engine,
        document_type: DocumentType
    ) -> None:
        response = await self.api.delete_document_type(engine.id, document_type.id)
        if response.status not in DELETE_SUCCESS_STATUSES:
            raise ProvisioningError(
                "Document type deletion failed",
                status=response.status,
                index=index_config.name,
                class_name=index_config.class_name
            )

    async def _wait_until_deleted(self, index_config: IndexConfig, engine: Engine, type_name: str) -> None:
        """Poll with backoff until the deleted document type is no longer listed.

        Deletion completes asynchronously on the remote side, and creating a
        document type of the same name before then is rejected.
        """
        delay = self.poll_interval
        waited = 0.0

        while waited < self.poll_timeout:
            delay = min(delay, self.poll_timeout - waited)
            await asyncio.sleep(delay)
            waited += delay

            if await self.api.find_document_type(engine.id, type_name) is None:
                self.logger.info(
                    "Document type deletion confirmed",
                    index=index_config.name,
                    document_type=type_name,
                    waited=f"{waited:.1f}s"
                )
                return

            delay *= 2

        raise ProvisioningError(
            f"Document type still present after {self.poll_timeout}s",
            index=index_config.name,
            class_name=index_config.class_name
        )

    async def _create_document_type(self, index_config: IndexConfig, engine: Engine) -> DocumentType:
        type_name = index_config.document_type_name
        self.logger.info("Creating document type", index=index_config.name, document_type=type_name)

        response = await self.api.create_document_type(engine.id, type_name)
        if response.status not in CREATE_SUCCESS_STATUSES:
            raise ProvisioningError(
                "Document type creation failed",
                status=response.status,
                index=index_config.name,
                class_name=index_config.class_name
            )

        data = response.data
        if isinstance(data, dict) and (data.get("id") or data.get("slug")):
            return DocumentType.from_api(data)

        document_type = await self.api.find_document_type(engine.id, type_name)
        if document_type is None:
            raise ProvisioningError(
                "Created document type could not be found",
                index=index_config.name,
                class_name=index_config.class_name
            )
        return document_type
