"""Domain entities for document analysis orchestration."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

DocumentId = int


class AnalysisStatus(str, Enum):
    """Status of a document analysis.

    ``NONE`` is a local sentinel meaning no analysis record exists; the
    remaining members are values the analyzer API returns.
    """

    NONE = "none"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)

    @property
    def is_active(self) -> bool:
        return self in (AnalysisStatus.PENDING, AnalysisStatus.PROCESSING)

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK: dict[AnalysisStatus, int] = {
    AnalysisStatus.NONE: 0,
    AnalysisStatus.PENDING: 1,
    AnalysisStatus.PROCESSING: 2,
    AnalysisStatus.COMPLETED: 3,
    AnalysisStatus.FAILED: 3,
}


class AnalysisOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class AnalysisRecord:
    """Most recently observed state of one document's analysis."""

    document_id: DocumentId
    status: AnalysisStatus
    analysis_id: int | None = None
    summary: str | None = None
    insights: tuple[str, ...] = field(default_factory=tuple)
    missing_topics: tuple[str, ...] = field(default_factory=tuple)

    @property
    def identity(self) -> Any:
        """``analysis_id`` once assigned, the owning document id before that."""

        return self.analysis_id if self.analysis_id is not None else self.document_id

    @classmethod
    def build(
        cls,
        document_id: DocumentId,
        status: AnalysisStatus | str,
        *,
        analysis_id: int | None = None,
        summary: str | None = None,
        insights: Iterable[str] = (),
        missing_topics: Iterable[str] = (),
    ) -> "AnalysisRecord":
        return cls(
            document_id=document_id,
            status=AnalysisStatus(status),
            analysis_id=analysis_id,
            summary=summary,
            insights=tuple(insights),
            missing_topics=tuple(missing_topics),
        )


@dataclass(frozen=True, slots=True)
class AnalysisSummary:
    """Read model describing an analysis for display."""

    document_id: DocumentId
    status: AnalysisStatus
    summary: str
    insights_count: int
    missing_topics_count: int

    @classmethod
    def from_record(cls, record: AnalysisRecord) -> "AnalysisSummary":
        return cls(
            document_id=record.document_id,
            status=record.status,
            summary=record.summary or "Not available",
            insights_count=len(record.insights),
            missing_topics_count=len(record.missing_topics),
        )
