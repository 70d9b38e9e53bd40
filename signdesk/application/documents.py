"""Application service joining the document list with analysis state."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from signdesk.application.ports import AlwaysConfirm, Confirmation
from signdesk.core.errors import RequestError, UnknownDocumentError, ViewDisposedError
from signdesk.core.notifications import Notification, NotificationKind, Notifier
from signdesk.core.polling import DEFAULT_MAX_DURATION, DEFAULT_POLL_INTERVAL, PollSupervisor
from signdesk.core.scheduler import Scheduler
from signdesk.core.store import AnalysisStore
from signdesk.domain import (
    AnalysisRecord,
    AnalysisStatus,
    AnalysisSummary,
    Company,
    Document,
    DocumentCreate,
    DocumentId,
    DocumentUpdate,
)
from signdesk.infrastructure import AnalysisGateway, DocumentGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ViewSnapshot:
    """Read-only state handed to the presentation layer."""

    documents: tuple[Document, ...] = ()
    analyses: Mapping[DocumentId, AnalysisRecord] = field(default_factory=lambda: MappingProxyType({}))
    loading: bool = False

    def status_of(self, document_id: DocumentId) -> AnalysisStatus:
        record = self.analyses.get(document_id)
        return record.status if record else AnalysisStatus.NONE


class DocumentCollectionView:
    """Documents plus the analysis attached to each of them.

    The view owns the analysis store and the poll supervisor; callers only
    read through :meth:`snapshot`. :meth:`dispose` must be called before the
    underlying gateways are closed so no polling loop outlives the view.
    """

    def __init__(
        self,
        documents: DocumentGateway,
        analyses: AnalysisGateway,
        scheduler: Scheduler,
        *,
        notifier: Notifier | None = None,
        confirmation: Confirmation | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll_max_duration: float = DEFAULT_MAX_DURATION,
        rollback_on_failure: bool = False,
    ) -> None:
        self._document_gateway = documents
        self._analysis_gateway = analyses
        self._notifier = notifier
        self._confirmation = confirmation or AlwaysConfirm()
        self._rollback_on_failure = rollback_on_failure
        self._store = AnalysisStore()
        self._supervisor = PollSupervisor(
            analyses,
            self._store,
            scheduler,
            interval=poll_interval,
            max_duration=poll_max_duration,
            notifier=notifier,
        )
        self._documents: tuple[Document, ...] = ()
        # loads and analysis starts still waiting on the server
        self._busy = 0
        self._disposed = False
        self._load_generation = 0

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------
    @property
    def supervisor(self) -> PollSupervisor:
        return self._supervisor

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def documents(self) -> tuple[Document, ...]:
        return self._documents

    def snapshot(self) -> ViewSnapshot:
        return ViewSnapshot(documents=self._documents, analyses=self._store.snapshot(), loading=self._busy > 0)

    def get_analysis(self, document_id: DocumentId) -> AnalysisRecord | None:
        return self._store.get(document_id)

    def analysis_status(self, document_id: DocumentId) -> AnalysisStatus:
        record = self._store.get(document_id)
        return record.status if record else AnalysisStatus.NONE

    def describe_analysis(self, document_id: DocumentId) -> AnalysisSummary | None:
        record = self._store.get(document_id)
        return AnalysisSummary.from_record(record) if record else None

    def document_ids(self) -> set[DocumentId]:
        return {document.id for document in self._documents if document.id is not None}

    async def settle(self) -> None:
        await self._supervisor.settle()

    # ------------------------------------------------------------------
    # loading & reconciliation
    # ------------------------------------------------------------------
    async def load(self, company_id: int | None = None) -> ViewSnapshot:
        """Reload documents, reconcile analysis state and seed fresh analyses."""

        self._ensure_active()
        self._load_generation += 1
        generation = self._load_generation
        self._busy += 1
        try:
            documents = await self._document_gateway.list(company_id)
        except RequestError as exc:
            self._notify(NotificationKind.DOCUMENTS_ERROR, f"Failed to load documents: {exc.message}")
            raise
        finally:
            self._busy -= 1

        if self._is_stale(generation):
            return self.snapshot()

        self._documents = tuple(documents)
        self._reconcile()
        logger.info("Loaded %d documents", len(self._documents))
        await self._seed_analyses(generation)
        return self.snapshot()

    def _reconcile(self) -> None:
        current = self.document_ids()
        for document_id in self._supervisor.active_documents():
            if document_id not in current:
                self._supervisor.cancel(document_id)
        dropped = self._store.retain(current)
        if dropped:
            logger.info("Dropped analysis state for documents no longer listed: %s", sorted(dropped))

    async def _seed_analyses(self, generation: int) -> None:
        targets = [document.id for document in self._documents if document.id is not None]
        before = {document_id: self._store.get(document_id) for document_id in targets}
        results = await asyncio.gather(*(self._fetch_quietly(document_id) for document_id in targets))
        if self._is_stale(generation):
            return

        current = self.document_ids()
        for document_id, (found, record) in zip(targets, results):
            if not found or document_id not in current:
                continue
            # someone else touched this entry while the fetch was in flight
            if self._supervisor.is_polling(document_id) or self._store.get(document_id) is not before[document_id]:
                continue
            if record is None:
                self._store.delete(document_id)
                continue
            self._store.set(document_id, record)
            if record.status.is_active:
                self._supervisor.start_polling(document_id)

    async def _fetch_quietly(self, document_id: DocumentId) -> tuple[bool, AnalysisRecord | None]:
        try:
            return True, await self._analysis_gateway.fetch(document_id)
        except RequestError as exc:
            logger.debug("No analysis loaded for document %s: %s", document_id, exc)
            return False, None

    def _is_stale(self, generation: int) -> bool:
        return self._disposed or generation != self._load_generation

    # ------------------------------------------------------------------
    # analysis commands
    # ------------------------------------------------------------------
    async def request_analysis(self, document_id: DocumentId, *, force_reanalysis: bool = False) -> AnalysisRecord:
        self._ensure_active()
        self._ensure_listed(document_id)
        self._busy += 1
        try:
            record = await self._analysis_gateway.start(document_id, force_reanalysis)
        except RequestError as exc:
            self._notify(NotificationKind.ANALYSIS_ERROR, f"Failed to start analysis: {exc.message}", document_id)
            raise
        finally:
            self._busy -= 1

        if self._disposed or document_id not in self.document_ids():
            return record

        self._store.set(document_id, record)
        self._notify(NotificationKind.ANALYSIS_STARTED, "Analysis started", document_id)
        if record.status.is_active:
            self._supervisor.start_polling(document_id)
        return record

    async def remove_analysis(self, document_id: DocumentId) -> bool:
        """Delete ``document_id``'s analysis locally, then on the server.

        Returns ``False`` when there was nothing to delete or the user declined.
        A server failure is re-raised but the local deletion stays in place
        unless the view was built with ``rollback_on_failure``.
        """

        self._ensure_active()
        if self._store.get(document_id) is None:
            self._supervisor.cancel(document_id)
            return False
        if not await self._confirmation.confirm("Delete this analysis?"):
            return False

        self._supervisor.cancel(document_id)
        record = self._store.delete(document_id)
        if record is None:
            return False
        if record.analysis_id is None:
            self._notify(NotificationKind.ANALYSIS_REMOVED, "Analysis deleted", document_id)
            return True

        try:
            await self._analysis_gateway.delete(record.analysis_id)
        except RequestError as exc:
            if self._rollback_on_failure and self._can_restore(document_id):
                self._store.set(document_id, record)
                if record.status.is_active:
                    self._supervisor.start_polling(document_id)
            self._notify(NotificationKind.ANALYSIS_ERROR, f"Failed to delete analysis: {exc.message}", document_id)
            raise

        self._notify(NotificationKind.ANALYSIS_REMOVED, "Analysis deleted", document_id)
        return True

    def _can_restore(self, document_id: DocumentId) -> bool:
        return not self._disposed and document_id in self.document_ids() and document_id not in self._store

    # ------------------------------------------------------------------
    # document commands
    # ------------------------------------------------------------------
    async def get_document(self, document_id: DocumentId) -> Document:
        return await self._document_gateway.get(document_id)

    async def list_companies(self) -> list[Company]:
        return await self._document_gateway.list_companies()

    async def create_document(self, payload: DocumentCreate | dict[str, Any]) -> Document:
        self._ensure_active()
        body = payload.to_payload() if isinstance(payload, DocumentCreate) else dict(payload)
        try:
            document = await self._document_gateway.create(body)
        except RequestError as exc:
            self._notify(NotificationKind.DOCUMENT_ERROR, exc.message or "Failed to save document")
            raise
        self._notify(NotificationKind.DOCUMENT_SAVED, "Document created", document.id)
        await self.load()
        return document

    async def update_document(self, document_id: DocumentId, payload: DocumentUpdate | dict[str, Any]) -> Document:
        self._ensure_active()
        body = payload.to_payload() if isinstance(payload, DocumentUpdate) else dict(payload)
        try:
            document = await self._document_gateway.update(document_id, body)
        except RequestError as exc:
            self._notify(NotificationKind.DOCUMENT_ERROR, exc.message or "Failed to save document", document_id)
            raise
        self._notify(NotificationKind.DOCUMENT_SAVED, "Document updated", document_id)
        await self.load()
        return document

    async def delete_document(self, document_id: DocumentId) -> bool:
        self._ensure_active()
        if not await self._confirmation.confirm("Delete this document?"):
            return False
        try:
            await self._document_gateway.delete(document_id)
        except RequestError as exc:
            self._notify(NotificationKind.DOCUMENT_ERROR, f"Failed to delete document: {exc.message}", document_id)
            raise
        self._notify(NotificationKind.DOCUMENT_DELETED, "Document deleted", document_id)
        await self.load()
        return True

    # ------------------------------------------------------------------
    # teardown
    # ------------------------------------------------------------------
    def dispose(self) -> None:
        """Cancel every polling loop and drop local state. Idempotent."""

        if self._disposed:
            return
        self._disposed = True
        self._supervisor.cancel_all()
        self._store.clear()
        logger.debug("Document view disposed")

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _ensure_active(self) -> None:
        if self._disposed:
            raise ViewDisposedError("document view has been disposed")

    def _ensure_listed(self, document_id: DocumentId) -> None:
        if document_id not in self.document_ids():
            raise UnknownDocumentError(document_id)

    def _notify(self, kind: NotificationKind, message: str, document_id: DocumentId | None = None) -> None:
        if self._notifier is not None:
            self._notifier.notify(Notification(kind=kind, message=message, document_id=document_id))


__all__ = ["DocumentCollectionView", "ViewSnapshot"]
