"""Bounded, cancellable polling of in-flight analyses.

One :class:`PollHandle` per document id at most. A handle arms a deadline
timer when it starts and a poll timer after every applied result, so
fetches for a document never overlap. A fetch result is applied only if
the handle that issued it is still live.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable

from signdesk.core.errors import RequestError
from signdesk.core.lifecycle import next_action
from signdesk.core.notifications import Notification, NotificationKind, Notifier
from signdesk.core.scheduler import Scheduler, TimerToken
from signdesk.core.store import AnalysisStore
from signdesk.domain import AnalysisOutcome, DocumentId

if TYPE_CHECKING:
    from signdesk.infrastructure.gateways import AnalysisGateway

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_MAX_DURATION = 300.0


class PollHandle:
    """A single polling loop for one document."""

    __slots__ = ("document_id", "started_at", "fetches", "_live", "_on_cancel", "_timer", "_deadline")

    def __init__(self, document_id: DocumentId, started_at: float, on_cancel: Callable[["PollHandle"], None]) -> None:
        self.document_id = document_id
        self.started_at = started_at
        self.fetches = 0
        self._live = True
        self._on_cancel = on_cancel
        self._timer: TimerToken | None = None
        self._deadline: TimerToken | None = None

    @property
    def live(self) -> bool:
        return self._live

    def cancel(self) -> None:
        self._on_cancel(self)

    def __repr__(self) -> str:
        return f"PollHandle(document_id={self.document_id!r}, started_at={self.started_at!r}, live={self._live})"


class PollSupervisor:
    """Owns every polling loop for a document view."""

    def __init__(
        self,
        gateway: AnalysisGateway,
        store: AnalysisStore,
        scheduler: Scheduler,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_duration: float = DEFAULT_MAX_DURATION,
        notifier: Notifier | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if max_duration <= 0:
            raise ValueError("max_duration must be positive")
        self._gateway = gateway
        self._store = store
        self._scheduler = scheduler
        self._interval = interval
        self._max_duration = max_duration
        self._notifier = notifier
        self._handles: dict[DocumentId, PollHandle] = {}
        self._inflight: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    @property
    def interval(self) -> float:
        return self._interval

    @property
    def max_duration(self) -> float:
        return self._max_duration

    def start_polling(self, document_id: DocumentId) -> PollHandle:
        """Start polling ``document_id``; returns the existing handle if one is live."""

        existing = self._handles.get(document_id)
        if existing is not None and existing.live:
            return existing

        handle = PollHandle(document_id, self._scheduler.now(), self._retire)
        self._handles[document_id] = handle
        handle._deadline = self._scheduler.after(self._max_duration, lambda: self._expire(handle))
        self._schedule(handle)
        logger.debug("Started polling analysis for document %s", document_id)
        return handle

    def cancel(self, document_id: DocumentId) -> None:
        handle = self._handles.get(document_id)
        if handle is not None:
            self._retire(handle)

    def cancel_all(self) -> None:
        for handle in list(self._handles.values()):
            self._retire(handle)
        for task in list(self._inflight):
            task.cancel()

    def handle_for(self, document_id: DocumentId) -> PollHandle | None:
        handle = self._handles.get(document_id)
        return handle if handle is not None and handle.live else None

    def is_polling(self, document_id: DocumentId) -> bool:
        return self.handle_for(document_id) is not None

    def active_documents(self) -> list[DocumentId]:
        return [document_id for document_id, handle in self._handles.items() if handle.live]

    async def settle(self) -> None:
        """Wait until no fetch issued by this supervisor is still in flight."""

        while True:
            pending = [task for task in self._inflight if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # timers
    # ------------------------------------------------------------------
    def _schedule(self, handle: PollHandle) -> None:
        handle._timer = self._scheduler.after(self._interval, lambda: self._fire(handle))

    def _fire(self, handle: PollHandle) -> None:
        handle._timer = None
        if not handle.live:
            return
        task = asyncio.get_running_loop().create_task(self._poll(handle))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _expire(self, handle: PollHandle) -> None:
        handle._deadline = None
        if not handle.live:
            return
        elapsed = self._scheduler.now() - handle.started_at
        self._retire(handle)
        logger.warning(
            "Polling for document %s stopped after %.0fs without a terminal status",
            handle.document_id,
            elapsed,
        )
        self._notify(
            NotificationKind.ANALYSIS_TIMEOUT,
            "Analysis is still running; automatic refresh stopped",
            handle.document_id,
        )

    def _retire(self, handle: PollHandle) -> None:
        if not handle._live:
            return
        handle._live = False
        for token in (handle._timer, handle._deadline):
            if token is not None:
                token.cancel()
        handle._timer = None
        handle._deadline = None
        if self._handles.get(handle.document_id) is handle:
            del self._handles[handle.document_id]

    # ------------------------------------------------------------------
    # fetch-and-decide
    # ------------------------------------------------------------------
    async def _poll(self, handle: PollHandle) -> None:
        document_id = handle.document_id
        handle.fetches += 1
        logger.debug("Polling analysis for document %s (fetch #%d)", document_id, handle.fetches)
        try:
            observed = await self._gateway.fetch(document_id)
        except RequestError as exc:
            if not handle.live:
                return
            self._retire(handle)
            logger.warning("Polling for document %s failed: %s", document_id, exc)
            self._notify(NotificationKind.ANALYSIS_POLL_ERROR, f"Failed to refresh analysis: {exc.message}", document_id)
            return
        except Exception:
            self._retire(handle)
            logger.exception("Unexpected error while polling document %s", document_id)
            raise

        if not handle.live:
            logger.debug("Discarding analysis result for document %s; polling was cancelled", document_id)
            return

        previous = self._store.get(document_id)
        decision = next_action(previous.status if previous else None, observed)
        if decision.store and observed is not None:
            self._store.set(document_id, observed)
        elif decision.clear:
            self._store.delete(document_id)

        if decision.schedule_next_poll:
            self._schedule(handle)
        else:
            self._retire(handle)

        if decision.outcome is AnalysisOutcome.SUCCEEDED:
            logger.info("Analysis for document %s completed", document_id)
            self._notify(NotificationKind.ANALYSIS_COMPLETED, "Analysis completed", document_id)
        elif decision.outcome is AnalysisOutcome.FAILED:
            logger.info("Analysis for document %s failed", document_id)
            self._notify(NotificationKind.ANALYSIS_FAILED, "Analysis failed", document_id)

    def _notify(self, kind: NotificationKind, message: str, document_id: DocumentId | None) -> None:
        if self._notifier is not None:
            self._notifier.notify(Notification(kind=kind, message=message, document_id=document_id))


__all__ = ["DEFAULT_MAX_DURATION", "DEFAULT_POLL_INTERVAL", "PollHandle", "PollSupervisor"]
