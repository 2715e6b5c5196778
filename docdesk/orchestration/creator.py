from __future__ import annotations

import asyncio
import re

from ..core.errors import OperationFailedError, PdfCreationRejectedError
from ..core.logging import get_logger
from ..services.downloads import PDF_MEDIA_TYPE, OutputArtifact, OutputSink
from ..services.notifications import NotificationFeed
from ..services.toolkit import PDFToolkit
from .uploads import timestamp_ms

logger = get_logger(name=__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9]")


def created_pdf_name(title: str | None) -> str:
    if title and title.strip():
        return f"{_UNSAFE_FILENAME_CHARS.sub('_', title.strip())}.pdf"
    return f"document_{timestamp_ms()}.pdf"


class PdfCreator:
    def __init__(self, *, toolkit: PDFToolkit, sink: OutputSink, notifications: NotificationFeed) -> None:
        self._toolkit = toolkit
        self._sink = sink
        self._notifications = notifications

    async def create(self, text: str, *, title: str | None = None) -> OutputArtifact:
        """Lay out free text as a PDF and save it; the title heads the first page."""
        if not text.strip():
            await self._notifications.error("Type some text to create the PDF.", key="create")
            raise PdfCreationRejectedError("Cannot create a PDF from empty text.")

        clean_title = title.strip() if title and title.strip() else None
        await self._notifications.loading("Creating PDF...", key="create")
        try:
            content = await asyncio.to_thread(self._toolkit.layout_text, text, title=clean_title)
        except Exception as exc:
            logger.warning("pdf_creation_failed", error=str(exc), characters=len(text))
            await self._notifications.error("Could not create the PDF.", key="create")
            raise OperationFailedError("PDF creation failed.") from exc

        artifact = OutputArtifact(created_pdf_name(clean_title), PDF_MEDIA_TYPE, content)
        self._sink.save(artifact)
        await self._notifications.success(f"PDF created: {artifact.filename}.", key="create")
        return artifact


__all__ = ["PdfCreator", "created_pdf_name"]
