from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..orchestration.chat import AnalysisItem, ConversationMessage, DocumentContext


class AnalyzeRequest(BaseModel):
    file_ids: list[str] | None = Field(None, description="Files to analyze; every uploaded file when omitted.")


class AnalysisItemModel(BaseModel):
    file_id: str
    filename: str
    status: Literal["succeeded", "failed"]
    character_count: int = Field(0, ge=0)
    error: str | None = None

    @classmethod
    def from_item(cls, item: AnalysisItem) -> "AnalysisItemModel":
        return cls(
            file_id=item.file_id,
            filename=item.filename,
            status=item.status,
            character_count=item.character_count,
            error=item.error,
        )


class DocumentContextModel(BaseModel):
    source_file_name: str
    character_count: int = Field(..., ge=0, description="Characters extracted from the document.")
    metadata: dict[str, Any] = Field(default_factory=dict)
    added_at: datetime

    @classmethod
    def from_context(cls, document: DocumentContext) -> "DocumentContextModel":
        return cls(
            source_file_name=document.source_file_name,
            character_count=len(document.extracted_text),
            metadata=dict(document.metadata),
            added_at=document.added_at,
        )


class MessageModel(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str = Field(..., description="Raw text; assistant replies may contain Markdown.")
    created_at: datetime

    @classmethod
    def from_message(cls, message: ConversationMessage) -> "MessageModel":
        return cls(id=message.id, role=message.role, content=message.content, created_at=message.created_at)


class AskRequest(BaseModel):
    question: str


class ChatStateResponse(BaseModel):
    documents: list[DocumentContextModel] = Field(default_factory=list)
    transcript: list[MessageModel] = Field(default_factory=list)


__all__ = [
    "AnalysisItemModel",
    "AnalyzeRequest",
    "AskRequest",
    "ChatStateResponse",
    "DocumentContextModel",
    "MessageModel",
]
