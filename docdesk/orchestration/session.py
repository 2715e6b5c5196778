from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..core.config import Settings
from ..core.errors import SessionNotFoundError
from ..core.logging import get_logger
from ..services.downloads import DownloadStore
from ..services.notifications import NotificationFeed, log_notification
from ..services.toolkit import PDFToolkit
from .batch import BatchOrchestrator
from .chat import DocumentChat
from .creator import PdfCreator
from .uploads import FileStore

logger = get_logger(name=__name__)


@dataclass
class WorkspaceSession:
    session_id: str
    files: FileStore
    chat: DocumentChat
    downloads: DownloadStore
    notifications: NotificationFeed
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, settings: Settings, *, session_id: str | None = None) -> "WorkspaceSession":
        notifications = NotificationFeed()
        notifications.subscribe(log_notification)
        return cls(
            session_id=session_id or uuid.uuid4().hex,
            files=FileStore(settings.uploads),
            chat=DocumentChat(
                settings=settings.chat,
                notifications=notifications,
                max_file_bytes=settings.uploads.max_file_bytes,
            ),
            downloads=DownloadStore(),
            notifications=notifications,
        )

    def batch_orchestrator(self, toolkit: PDFToolkit) -> BatchOrchestrator:
        return BatchOrchestrator(toolkit=toolkit, sink=self.downloads, notifications=self.notifications)

    def pdf_creator(self, toolkit: PDFToolkit) -> PdfCreator:
        return PdfCreator(toolkit=toolkit, sink=self.downloads, notifications=self.notifications)


class SessionRegistry:
    """Holds live workspace sessions; nothing outlives the process."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._sessions: dict[str, WorkspaceSession] = {}

    def create(self) -> WorkspaceSession:
        session = WorkspaceSession.create(self._settings)
        self._sessions = {**self._sessions, session.session_id: session}
        logger.info("session_created", session_id=session.session_id, active=len(self._sessions))
        return session

    def get(self, session_id: str) -> WorkspaceSession:
        try:
            return self._sessions[session_id]
        except KeyError as exc:
            raise SessionNotFoundError(f"Session {session_id!r} does not exist.") from exc

    def drop(self, session_id: str) -> None:
        self.get(session_id)
        self._sessions = {key: value for key, value in self._sessions.items() if key != session_id}
        logger.info("session_dropped", session_id=session_id, active=len(self._sessions))

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["SessionRegistry", "WorkspaceSession"]
