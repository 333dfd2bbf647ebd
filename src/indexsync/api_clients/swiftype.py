"""Swiftype search indexing API wrapper."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from .base import ApiRequest, ApiResponse, BaseTransport
from ..config.settings import get_settings
from ..exceptions import TransportError
from ..utils.logging import get_logger, log_async_execution_time


DEFAULT_BASE_URL = "https://api.swiftype.com/api/v1/"


@dataclass(frozen=True)
class Engine:
    """Top-level container of document types."""

    id: str
    name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Engine":
        return cls(id=str(data.get("id") or data.get("slug")), name=data.get("name", ""))


@dataclass(frozen=True)
class DocumentType:
    """Schema-bound document collection within an engine."""

    id: str
    name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DocumentType":
        return cls(id=str(data.get("id") or data.get("slug")), name=data.get("name", ""))


def _settings_api_key() -> Optional[str]:
    return get_settings().swiftype.api_key


class SwiftypeAPI:
    """Issues the remote calls of the search indexing service.

    Lookups raise TransportError on a non-success status; writes return the
    response so callers decide what counts as success.
    """

    def __init__(
        self,
        transport: BaseTransport,
        api_key_provider: Callable[[], Optional[str]] = _settings_api_key,
        base_url: str = DEFAULT_BASE_URL
    ):
        """Initialize API wrapper.

        Args:
            transport: Request/response primitive
            api_key_provider: Called before every request to read the current key
            base_url: Base URL of the versioned API
        """
        self.transport = transport
        self.api_key_provider = api_key_provider
        self.base_url = base_url.rstrip('/') + '/'
        self.logger = get_logger(self.__class__.__name__)

        self.last_request: Optional[ApiRequest] = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def _send(self, method: str, path: str, **payload) -> ApiResponse:
        body = {"auth_token": self.api_key_provider()}
        body.update(payload)

        request = ApiRequest(method=method, url=self._url(path), body=body)
        self.last_request = request

        self.logger.debug("Sending request", method=method, path=path, body=request.redacted_body())
        return await self.transport.send(request)

    async def _get_list(self, path: str) -> List[Dict[str, Any]]:
        response = await self._send("GET", path)
        if not response.ok:
            raise TransportError(f"Lookup failed: GET {path}", status=response.status)
        if not isinstance(response.data, list):
            return []
        return response.data

    @log_async_execution_time
    async def list_engines(self) -> List[Engine]:
        return [Engine.from_api(item) for item in await self._get_list("engines.json")]

    async def find_engine(self, name: str) -> Optional[Engine]:
        for engine in await self.list_engines():
            if engine.name == name:
                return engine
        return None

    @log_async_execution_time
    async def create_engine(self, name: str) -> ApiResponse:
        return await self._send("POST", "engines.json", engine={"name": name})

    @log_async_execution_time
    async def list_document_types(self, engine_id: str) -> List[DocumentType]:
        path = f"engines/{quote(str(engine_id))}/document_types.json"
        return [DocumentType.from_api(item) for item in await self._get_list(path)]

    async def find_document_type(self, engine_id: str, name: str) -> Optional[DocumentType]:
        for document_type in await self.list_document_types(engine_id):
            if document_type.name == name:
                return document_type
        return None

    @log_async_execution_time
    async def create_document_type(self, engine_id: str, name: str) -> ApiResponse:
        return await self._send(
            "POST",
            f"engines/{quote(str(engine_id))}/document_types.json",
            document_type={"name": name.lower()}
        )

    @log_async_execution_time
    async def delete_document_type(self, engine_id: str, document_type_id: str) -> ApiResponse:
        return await self._send(
            "DELETE",
            f"engines/{quote(str(engine_id))}/document_types/{quote(str(document_type_id))}.json"
        )

    def _documents_path(self, engine_id: str, document_type_id: str) -> str:
        return f"engines/{quote(str(engine_id))}/document_types/{quote(str(document_type_id))}/documents"

    @log_async_execution_time
    async def create_or_update_document(
        self,
        engine_id: str,
        document_type_id: str,
        document: Dict[str, Any]
    ) -> ApiResponse:
        return await self._send(
            "POST",
            f"{self._documents_path(engine_id, document_type_id)}/create_or_update.json",
            document=document
        )

    @log_async_execution_time
    async def bulk_create_or_update(
        self,
        engine_id: str,
        document_type_id: str,
        documents: List[Dict[str, Any]]
    ) -> ApiResponse:
        return await self._send(
            "POST",
            f"{self._documents_path(engine_id, document_type_id)}/bulk_create_or_update_verbose",
            documents=documents
        )

    @log_async_execution_time
    async def delete_document(self, engine_id: str, document_type_id: str, record_id: Any) -> ApiResponse:
        return await self._send(
            "DELETE",
            f"{self._documents_path(engine_id, document_type_id)}/{quote(str(record_id))}.json"
        )
