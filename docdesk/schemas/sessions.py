from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ..orchestration.session import WorkspaceSession
from ..services.notifications import Notification


class SessionSummary(BaseModel):
    session_id: str
    created_at: datetime
    file_count: int = Field(..., ge=0)
    download_count: int = Field(..., ge=0)
    document_count: int = Field(..., ge=0)
    message_count: int = Field(..., ge=0)

    @classmethod
    def from_session(cls, session: WorkspaceSession) -> "SessionSummary":
        return cls(
            session_id=session.session_id,
            created_at=session.created_at,
            file_count=len(session.files),
            download_count=len(session.downloads),
            document_count=len(session.chat.documents),
            message_count=len(session.chat.transcript),
        )


class NotificationModel(BaseModel):
    key: str
    level: str
    message: str
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationModel":
        return cls(**notification.to_payload())


__all__ = ["NotificationModel", "SessionSummary"]
