"""Infrastructure layer exports."""

from .gateways import (
    DEFAULT_API_BASE,
    AnalysisGateway,
    AnalysisPayload,
    DocumentGateway,
    HttpAnalysisGateway,
    HttpDocumentGateway,
)

__all__ = [
    "AnalysisGateway",
    "AnalysisPayload",
    "DEFAULT_API_BASE",
    "DocumentGateway",
    "HttpAnalysisGateway",
    "HttpDocumentGateway",
]
