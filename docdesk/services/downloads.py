from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from ..core import metrics
from ..core.errors import DownloadNotFoundError
from ..core.logging import get_logger

logger = get_logger(name=__name__)

PDF_MEDIA_TYPE = "application/pdf"
PNG_MEDIA_TYPE = "image/png"


@dataclass(frozen=True, slots=True)
class OutputArtifact:
    filename: str
    media_type: str
    content: bytes
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class OutputSink(Protocol):
    def save(self, artifact: OutputArtifact) -> None: ...


class DownloadStore:
    """In-memory stand-in for the browser's download folder.

    A save with an existing filename replaces the earlier artifact.
    """

    def __init__(self) -> None:
        self._artifacts: dict[str, OutputArtifact] = {}

    def save(self, artifact: OutputArtifact) -> None:
        self._artifacts = {**self._artifacts, artifact.filename: artifact}
        metrics.record_output_saved(media_type=artifact.media_type)
        logger.info(
            "download_saved",
            filename=artifact.filename,
            media_type=artifact.media_type,
            size_bytes=artifact.size_bytes,
        )

    def get(self, filename: str) -> OutputArtifact:
        try:
            return self._artifacts[filename]
        except KeyError as exc:
            raise DownloadNotFoundError(f"No download named {filename!r}.") from exc

    def list(self) -> list[OutputArtifact]:
        return list(self._artifacts.values())

    def clear(self) -> None:
        self._artifacts = {}

    def __len__(self) -> int:
        return len(self._artifacts)


__all__ = ["DownloadStore", "OutputArtifact", "OutputSink", "PDF_MEDIA_TYPE", "PNG_MEDIA_TYPE"]
