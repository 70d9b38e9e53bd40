"""Domain layer definitions."""

from .analysis import AnalysisOutcome, AnalysisRecord, AnalysisStatus, AnalysisSummary, DocumentId
from .documents import Company, Document, DocumentCreate, DocumentUpdate, ExtraDoc, Signer

__all__ = [
    "AnalysisOutcome",
    "AnalysisRecord",
    "AnalysisStatus",
    "AnalysisSummary",
    "Company",
    "Document",
    "DocumentCreate",
    "DocumentId",
    "DocumentUpdate",
    "ExtraDoc",
    "Signer",
]
