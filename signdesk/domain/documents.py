"""Wire models for the document / e-signature API."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Signer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    document: int | None = None
    token: str | None = None
    status: str | None = None
    name: str
    email: str
    external_id: str | None = None


class ExtraDoc(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str
    name: str


class Document(BaseModel):
    """A signable document as returned by the documents endpoint."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int | None = None
    company: int
    open_id: int | None = None
    token: str | None = None
    name: str
    status: str | None = None
    created_at: str | None = None
    last_updated_at: str | None = None
    created_by: str | None = None
    external_id: str | None = None
    pdf_url: str
    signers: list[Signer] = Field(default_factory=list)
    signer_name: str | None = None
    signer_email: str | None = None
    date_limit_to_sign: str | None = None
    folder_path: str | None = None
    folder_token: str | None = None
    extra_docs: list[ExtraDoc] = Field(default_factory=list)


class Company(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    api_token: str
    created_at: str | None = None
    last_updated_at: str | None = None


class DocumentCreate(BaseModel):
    """Payload accepted when creating a document."""

    company: int
    name: str
    pdf_url: str
    signer_name: str
    signer_email: str
    created_by: str | None = None
    external_id: str | None = None
    date_limit_to_sign: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump()
        payload["date_limit_to_sign"] = self.date_limit_to_sign or None
        return payload


class DocumentUpdate(BaseModel):
    """Only the name and signing deadline are editable once a document exists."""

    name: str
    date_limit_to_sign: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "date_limit_to_sign": self.date_limit_to_sign or None}
