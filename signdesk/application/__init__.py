"""Application services."""

from fastapi import Request

from signdesk.core.notifications import NotificationFeed

from .documents import DocumentCollectionView, ViewSnapshot
from .ports import AlwaysConfirm, Confirmation


def get_document_view(request: Request) -> DocumentCollectionView:
    """Return the document view installed by :func:`signdesk.app.create_app`."""

    return request.app.state.document_view


def get_notification_feed(request: Request) -> NotificationFeed:
    return request.app.state.notifications


__all__ = [
    "AlwaysConfirm",
    "Confirmation",
    "DocumentCollectionView",
    "ViewSnapshot",
    "get_document_view",
    "get_notification_feed",
]
