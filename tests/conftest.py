from __future__ import annotations

import asyncio
import sys
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from signdesk.application import DocumentCollectionView
from signdesk.core.errors import RequestError
from signdesk.core.notifications import NotificationFeed
from signdesk.domain import AnalysisRecord, AnalysisStatus, Company, Document


# ----------------------------------------------------------------------
# simulated clock
# ----------------------------------------------------------------------
@dataclass
class ManualTimer:
    when: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test advances it."""

    def __init__(self) -> None:
        self._now = 0.0
        self._seq = 0
        self._timers: list[ManualTimer] = []

    def now(self) -> float:
        return self._now

    def after(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        self._seq += 1
        timer = ManualTimer(self._now + max(delay, 0.0), self._seq, callback)
        self._timers.append(timer)
        return timer

    def pending(self) -> list[ManualTimer]:
        return [timer for timer in self._timers if not timer.cancelled]

    def _next_due(self, target: float) -> ManualTimer | None:
        due = [timer for timer in self.pending() if timer.when <= target]
        return min(due, key=lambda timer: (timer.when, timer.seq)) if due else None

    def advance(self, seconds: float) -> None:
        """Fire every timer due within ``seconds`` without yielding to the loop."""

        target = self._now + seconds
        while (timer := self._next_due(target)) is not None:
            self._timers.remove(timer)
            self._now = timer.when
            timer.callback()
        self._now = target

    async def run(self, seconds: float, settle: Callable[[], Awaitable[None]]) -> None:
        """Advance ``seconds``, letting in-flight work finish after each firing."""

        target = self._now + seconds
        while (timer := self._next_due(target)) is not None:
            self.advance(timer.when - self._now)
            await settle()
        self._now = target


# ----------------------------------------------------------------------
# fake gateways
# ----------------------------------------------------------------------
Outcome = AnalysisRecord | None | Exception


class FakeAnalysisGateway:
    def __init__(self) -> None:
        self.scripts: dict[int, deque[Outcome]] = {}
        self.start_results: dict[int, AnalysisRecord | Exception] = {}
        self.delete_errors: dict[int, Exception] = {}
        self.gates: dict[int, asyncio.Event] = {}
        self.fetch_calls: list[int] = []
        self.start_calls: list[tuple[int, bool]] = []
        self.delete_calls: list[int] = []

    def script(self, document_id: int, *outcomes: Outcome) -> None:
        """Queue fetch outcomes; the last one repeats once the queue drains."""

        self.scripts[document_id] = deque(outcomes)

    def fetch_count(self, document_id: int) -> int:
        return self.fetch_calls.count(document_id)

    async def start(self, document_id: int, force_reanalysis: bool = False) -> AnalysisRecord:
        self.start_calls.append((document_id, force_reanalysis))
        result = self.start_results.get(document_id)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return AnalysisRecord.build(document_id, AnalysisStatus.PENDING, analysis_id=document_id * 100)
        return result

    async def fetch(self, document_id: int) -> AnalysisRecord | None:
        self.fetch_calls.append(document_id)
        gate = self.gates.get(document_id)
        if gate is not None:
            await gate.wait()
        queue = self.scripts.get(document_id)
        if not queue:
            return None
        outcome = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def delete(self, analysis_id: int) -> None:
        self.delete_calls.append(analysis_id)
        error = self.delete_errors.get(analysis_id)
        if error is not None:
            raise error


class FakeDocumentGateway:
    def __init__(self, documents: list[Document] | None = None) -> None:
        self.documents: list[Document] = list(documents or [])
        self.list_error: Exception | None = None
        self.delete_errors: dict[int, Exception] = {}
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[int, dict[str, Any]]] = []
        self.list_calls: list[int | None] = []
        self.list_gate: asyncio.Event | None = None

    async def list(self, company_id: int | None = None) -> list[Document]:
        self.list_calls.append(company_id)
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_error is not None:
            raise self.list_error
        if company_id:
            return [document for document in self.documents if document.company == company_id]
        return list(self.documents)

    async def get(self, document_id: int) -> Document:
        for document in self.documents:
            if document.id == document_id:
                return document
        raise RequestError("Not found", status_code=404)

    async def create(self, payload: dict[str, Any]) -> Document:
        self.created.append(payload)
        next_id = max((document.id or 0 for document in self.documents), default=0) + 1
        document = Document.model_validate({**payload, "id": next_id})
        self.documents.append(document)
        return document

    async def update(self, document_id: int, payload: dict[str, Any]) -> Document:
        self.updated.append((document_id, payload))
        current = await self.get(document_id)
        updated = current.model_copy(update=payload)
        self.documents = [updated if document.id == document_id else document for document in self.documents]
        return updated

    async def delete(self, document_id: int) -> None:
        error = self.delete_errors.get(document_id)
        if error is not None:
            raise error
        self.documents = [document for document in self.documents if document.id != document_id]

    async def list_companies(self) -> list[Company]:
        return [Company(id=1, name="Acme", api_token="token")]


@dataclass
class ScriptedConfirmation:
    answer: bool = True
    prompts: list[str] = field(default_factory=list)

    async def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


# ----------------------------------------------------------------------
# helpers & fixtures
# ----------------------------------------------------------------------
def make_document(document_id: int, *, company: int = 1, name: str | None = None) -> Document:
    return Document(
        id=document_id,
        company=company,
        name=name or f"Contract {document_id}",
        pdf_url=f"https://files.example.com/{document_id}.pdf",
    )


def record(document_id: int, status: str, **kwargs: Any) -> AnalysisRecord:
    kwargs.setdefault("analysis_id", document_id * 100)
    return AnalysisRecord.build(document_id, status, **kwargs)


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def analysis_gateway() -> FakeAnalysisGateway:
    return FakeAnalysisGateway()


@pytest.fixture()
def document_gateway() -> FakeDocumentGateway:
    return FakeDocumentGateway([make_document(3), make_document(7), make_document(9)])


@pytest.fixture()
def feed() -> NotificationFeed:
    return NotificationFeed()


@pytest.fixture()
def confirmation() -> ScriptedConfirmation:
    return ScriptedConfirmation()


@pytest.fixture()
def view(document_gateway, analysis_gateway, scheduler, feed, confirmation) -> DocumentCollectionView:
    return DocumentCollectionView(
        document_gateway,
        analysis_gateway,
        scheduler,
        notifier=feed,
        confirmation=confirmation,
    )
