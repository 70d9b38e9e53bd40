"""In-memory mapping from document id to the latest analysis record."""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from signdesk.domain import AnalysisRecord, DocumentId


class AnalysisStore:
    """Copy-on-write store of analysis records.

    Every mutation publishes a brand-new read-only mapping, so a snapshot
    handed to a reader never changes underneath it.
    """

    def __init__(self) -> None:
        self._records: Mapping[DocumentId, AnalysisRecord] = MappingProxyType({})

    def _publish(self, records: dict[DocumentId, AnalysisRecord]) -> None:
        self._records = MappingProxyType(records)

    def get(self, document_id: DocumentId) -> AnalysisRecord | None:
        return self._records.get(document_id)

    def set(self, document_id: DocumentId, record: AnalysisRecord) -> None:
        records = dict(self._records)
        records[document_id] = record
        self._publish(records)

    def delete(self, document_id: DocumentId) -> AnalysisRecord | None:
        if document_id not in self._records:
            return None
        records = dict(self._records)
        removed = records.pop(document_id)
        self._publish(records)
        return removed

    def retain(self, document_ids: Iterable[DocumentId]) -> list[DocumentId]:
        """Drop every entry whose key is not in ``document_ids``; return the dropped keys."""

        keep = set(document_ids)
        dropped = [key for key in self._records if key not in keep]
        if dropped:
            self._publish({key: value for key, value in self._records.items() if key in keep})
        return dropped

    def clear(self) -> None:
        self._publish({})

    def snapshot(self) -> Mapping[DocumentId, AnalysisRecord]:
        return self._records

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._records

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["AnalysisStore"]
