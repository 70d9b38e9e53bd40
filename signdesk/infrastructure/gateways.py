"""HTTP gateways for the document and analyzer endpoints."""
from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from signdesk.core.errors import RequestError
from signdesk.domain import AnalysisRecord, AnalysisStatus, Company, Document, DocumentId

DEFAULT_API_BASE = "http://localhost:8000/api"


class AnalysisGateway(Protocol):
    """Remote operations on a document's analysis."""

    async def start(self, document_id: DocumentId, force_reanalysis: bool = False) -> AnalysisRecord: ...

    async def fetch(self, document_id: DocumentId) -> AnalysisRecord | None:
        """Return the analysis, or ``None`` when the document has none."""

    async def delete(self, analysis_id: int) -> None: ...


class DocumentGateway(Protocol):
    """CRUD operations on documents and the companies that own them."""

    async def list(self, company_id: int | None = None) -> list[Document]: ...

    async def get(self, document_id: DocumentId) -> Document: ...

    async def create(self, payload: dict[str, Any]) -> Document: ...

    async def update(self, document_id: DocumentId, payload: dict[str, Any]) -> Document: ...

    async def delete(self, document_id: DocumentId) -> None: ...

    async def list_companies(self) -> list[Company]: ...


class AnalysisPayload(BaseModel):
    """Analyzer response body."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    document: int | None = None
    analysis_status: AnalysisStatus
    summary: str | None = None
    insights: list[str] = Field(default_factory=list)
    missing_topics: list[str] = Field(default_factory=list)

    def to_record(self, document_id: DocumentId) -> AnalysisRecord:
        return AnalysisRecord.build(
            document_id,
            self.analysis_status,
            analysis_id=self.id,
            summary=self.summary,
            insights=self.insights,
            missing_topics=self.missing_topics,
        )


class _HttpGateway:
    """Shared plumbing: URL building, error translation, client ownership."""

    def __init__(
        self,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._api_base = api_base.rstrip("/") + "/"
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    def _url(self, path: str) -> str:
        return f"{self._api_base}{path.lstrip('/')}"

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("error", "message", "detail"):
                value = body.get(key)
                if value:
                    return str(value)
        return f"HTTP {response.status_code}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as exc:
            raise RequestError(f"{method} {path} failed: {exc}") from exc
        if response.is_error:
            raise RequestError(self._error_message(response), status_code=response.status_code)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RequestError("Response body is not valid JSON", status_code=response.status_code) from exc

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class HttpAnalysisGateway(_HttpGateway):
    """Client for the ``analyzer/`` endpoints."""

    def _parse(self, document_id: DocumentId, data: Any) -> AnalysisRecord:
        try:
            payload = AnalysisPayload.model_validate(data)
        except ValidationError as exc:
            raise RequestError(f"Malformed analysis payload for document {document_id}") from exc
        return payload.to_record(document_id)

    async def start(self, document_id: DocumentId, force_reanalysis: bool = False) -> AnalysisRecord:
        response = await self._request(
            "POST",
            "analyzer/create/",
            json={"document_id": document_id, "force_reanalysis": force_reanalysis},
        )
        record = self._parse(document_id, self._json(response))
        if record.status is AnalysisStatus.NONE:
            raise RequestError(f"Analyzer did not start an analysis for document {document_id}")
        return record

    async def fetch(self, document_id: DocumentId) -> AnalysisRecord | None:
        try:
            response = await self._request("GET", f"analyzer/document/{document_id}/")
        except RequestError as exc:
            if exc.status_code == 404:
                return None
            raise
        record = self._parse(document_id, self._json(response))
        # "none" is never stored; it means the same as a 404
        return None if record.status is AnalysisStatus.NONE else record

    async def delete(self, analysis_id: int) -> None:
        await self._request("DELETE", f"analyzer/delete/{analysis_id}/")


class HttpDocumentGateway(_HttpGateway):
    """Client for the ``documents/`` and ``companies/`` endpoints."""

    @staticmethod
    def _extract_documents(data: Any) -> list[Any]:
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("results"), list):
            return data["results"]
        return []

    @staticmethod
    def _document(data: Any) -> Document:
        try:
            return Document.model_validate(data)
        except ValidationError as exc:
            raise RequestError("Malformed document payload") from exc

    async def list(self, company_id: int | None = None) -> list[Document]:
        params = {"company_id": str(company_id)} if company_id else None
        response = await self._request("GET", "documents/", params=params)
        return [self._document(item) for item in self._extract_documents(self._json(response))]

    async def get(self, document_id: DocumentId) -> Document:
        response = await self._request("GET", f"documents/{document_id}/")
        return self._document(self._json(response))

    async def create(self, payload: dict[str, Any]) -> Document:
        response = await self._request("POST", "documents/", json=payload)
        return self._document(self._json(response))

    async def update(self, document_id: DocumentId, payload: dict[str, Any]) -> Document:
        response = await self._request("PUT", f"documents/{document_id}/", json=payload)
        return self._document(self._json(response))

    async def delete(self, document_id: DocumentId) -> None:
        await self._request("DELETE", f"documents/{document_id}/")

    async def list_companies(self) -> list[Company]:
        response = await self._request("GET", "companies/")
        data = self._json(response)
        try:
            return [Company.model_validate(item) for item in self._extract_documents(data)]
        except ValidationError as exc:
            raise RequestError("Malformed company payload") from exc


__all__ = [
    "AnalysisGateway",
    "AnalysisPayload",
    "DEFAULT_API_BASE",
    "DocumentGateway",
    "HttpAnalysisGateway",
    "HttpDocumentGateway",
]
