"""HTTP routes over the document collection view."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from signdesk.application import DocumentCollectionView, get_document_view, get_notification_feed
from signdesk.core.errors import RequestError, SignDeskError, UnknownDocumentError, ViewDisposedError
from signdesk.core.notifications import NotificationFeed
from signdesk.domain import AnalysisRecord, AnalysisStatus, DocumentCreate, DocumentUpdate

router = APIRouter(tags=["documents"])


def _http_error(exc: SignDeskError) -> HTTPException:
    if isinstance(exc, UnknownDocumentError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ViewDisposedError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, RequestError):
        status = exc.status_code if exc.status_code and 400 <= exc.status_code < 500 else 502
        return HTTPException(status_code=status, detail=exc.message)
    return HTTPException(status_code=500, detail=str(exc))  # pragma: no cover - defensive


def _serialise_analysis(record: AnalysisRecord | None) -> dict[str, Any] | None:
    if record is None:
        return None
    return {
        "id": record.analysis_id,
        "analysis_status": record.status.value,
        "summary": record.summary,
        "insights": list(record.insights),
        "missing_topics": list(record.missing_topics),
    }


def _serialise_view(view: DocumentCollectionView) -> dict[str, Any]:
    snapshot = view.snapshot()
    items = []
    for document in snapshot.documents:
        item = document.model_dump()
        record = snapshot.analyses.get(document.id) if document.id is not None else None
        item["analysis_status"] = record.status.value if record else AnalysisStatus.NONE.value
        item["analysis"] = _serialise_analysis(record)
        item["polling"] = document.id is not None and view.supervisor.is_polling(document.id)
        items.append(item)
    return {"items": items, "loading": snapshot.loading}


@router.get("/documents")
async def list_documents(view: DocumentCollectionView = Depends(get_document_view)) -> dict:
    return _serialise_view(view)


@router.post("/documents/reload")
async def reload_documents(
    company_id: int | None = Query(default=None),
    view: DocumentCollectionView = Depends(get_document_view),
) -> dict:
    try:
        await view.load(company_id)
    except SignDeskError as exc:
        raise _http_error(exc) from exc
    return _serialise_view(view)


@router.post("/documents")
async def create_document(payload: DocumentCreate, view: DocumentCollectionView = Depends(get_document_view)) -> dict:
    try:
        document = await view.create_document(payload)
    except SignDeskError as exc:
        raise _http_error(exc) from exc
    return document.model_dump()


@router.get("/documents/{document_id}")
async def get_document(document_id: int, view: DocumentCollectionView = Depends(get_document_view)) -> dict:
    try:
        document = await view.get_document(document_id)
    except SignDeskError as exc:
        raise _http_error(exc) from exc
    return document.model_dump()


@router.put("/documents/{document_id}")
async def update_document(
    document_id: int,
    payload: DocumentUpdate,
    view: DocumentCollectionView = Depends(get_document_view),
) -> dict:
    try:
        document = await view.update_document(document_id, payload)
    except SignDeskError as exc:
        raise _http_error(exc) from exc
    return document.model_dump()


@router.delete("/documents/{document_id}")
async def delete_document(document_id: int, view: DocumentCollectionView = Depends(get_document_view)) -> dict:
    try:
        deleted = await view.delete_document(document_id)
    except SignDeskError as exc:
        raise _http_error(exc) from exc
    return {"deleted": deleted}


@router.get("/documents/{document_id}/analysis")
async def get_analysis(document_id: int, view: DocumentCollectionView = Depends(get_document_view)) -> dict:
    summary = view.describe_analysis(document_id)
    if summary is None:
        return {"document_id": document_id, "status": AnalysisStatus.NONE.value}
    return {
        "document_id": summary.document_id,
        "status": summary.status.value,
        "summary": summary.summary,
        "insights_count": summary.insights_count,
        "missing_topics_count": summary.missing_topics_count,
        "polling": view.supervisor.is_polling(document_id),
    }


@router.post("/documents/{document_id}/analysis")
async def request_analysis(
    document_id: int,
    payload: dict | None = None,
    view: DocumentCollectionView = Depends(get_document_view),
) -> dict:
    force = bool((payload or {}).get("force_reanalysis", False))
    try:
        record = await view.request_analysis(document_id, force_reanalysis=force)
    except SignDeskError as exc:
        raise _http_error(exc) from exc
    return {"document_id": document_id, "analysis": _serialise_analysis(record)}


@router.delete("/documents/{document_id}/analysis")
async def remove_analysis(document_id: int, view: DocumentCollectionView = Depends(get_document_view)) -> dict:
    try:
        removed = await view.remove_analysis(document_id)
    except SignDeskError as exc:
        raise _http_error(exc) from exc
    return {"document_id": document_id, "removed": removed}


@router.get("/companies")
async def list_companies(view: DocumentCollectionView = Depends(get_document_view)) -> dict:
    try:
        companies = await view.list_companies()
    except SignDeskError as exc:
        raise _http_error(exc) from exc
    return {"items": [company.model_dump() for company in companies]}


@router.get("/notifications")
async def list_notifications(feed: NotificationFeed = Depends(get_notification_feed)) -> dict:
    return {"items": [item.as_dict() for item in feed.items()]}
