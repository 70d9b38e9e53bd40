"""Ports the application layer expects the presentation layer to provide."""
from __future__ import annotations

from typing import Protocol


class Confirmation(Protocol):
    """Asks the user to confirm a destructive action."""

    async def confirm(self, prompt: str) -> bool: ...


class AlwaysConfirm:
    """Confirmation used by the HTTP API, where the client has already asked."""

    async def confirm(self, prompt: str) -> bool:  # pragma: no cover - trivial
        return True


__all__ = ["AlwaysConfirm", "Confirmation"]
