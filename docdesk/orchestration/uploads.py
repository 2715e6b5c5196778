from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Sequence

from ..core.config import UploadSettings
from ..core.errors import UnknownFileError, UploadRejectedError
from ..core.logging import get_logger

logger = get_logger(name=__name__)


def timestamp_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True, slots=True)
class UploadedFile:
    id: str
    name: str
    size_bytes: int
    content_type: str
    data: bytes = field(repr=False)
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()

    def matches(self, extensions: Iterable[str]) -> bool:
        return self.extension in {ext.lower() for ext in extensions}


class FileStore:
    """Ordered, in-memory list of the files a session has uploaded."""

    def __init__(self, settings: UploadSettings, *, clock: Callable[[], int] = timestamp_ms) -> None:
        self._settings = settings
        self._clock = clock
        self._files: tuple[UploadedFile, ...] = ()

    def accepted_extensions(self, workspace: str | None) -> frozenset[str] | None:
        if workspace is None:
            return None
        try:
            return frozenset(ext.lower() for ext in self._settings.workspace_extensions[workspace])
        except KeyError as exc:
            known = ", ".join(sorted(self._settings.workspace_extensions))
            raise UploadRejectedError(f"Unknown workspace {workspace!r}. Expected one of: {known}.") from exc

    def add(
        self,
        name: str,
        data: bytes,
        *,
        content_type: str | None = None,
        workspace: str | None = None,
    ) -> UploadedFile:
        accepted = self.accepted_extensions(workspace)
        extension = Path(name).suffix.lower()
        if accepted is not None and extension not in accepted:
            raise UploadRejectedError(
                f"{name} is not accepted here. Allowed types: {', '.join(sorted(accepted))}."
            )
        if not data:
            raise UploadRejectedError(f"{name} is empty.")
        if len(data) > self._settings.max_file_bytes:
            limit_mb = self._settings.max_file_bytes // 1_000_000
            raise UploadRejectedError(f"{name} exceeds the {limit_mb} MB upload limit.")

        uploaded = UploadedFile(
            id=self._next_id(name),
            name=name,
            size_bytes=len(data),
            content_type=content_type or "application/octet-stream",
            data=data,
        )
        self._files = (*self._files, uploaded)
        logger.info("file_uploaded", file_id=uploaded.id, filename=name, size_bytes=uploaded.size_bytes)
        return uploaded

    def _next_id(self, name: str) -> str:
        base = f"{name}-{self._clock()}"
        taken = {item.id for item in self._files}
        candidate = base
        suffix = 1
        while candidate in taken:
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def get(self, file_id: str) -> UploadedFile:
        for item in self._files:
            if item.id == file_id:
                return item
        raise UnknownFileError(f"No uploaded file with id {file_id!r}.")

    def select(self, file_ids: Sequence[str] | None = None) -> list[UploadedFile]:
        """Return the requested files in request order, or every file when no ids are given."""
        if file_ids is None:
            return list(self._files)
        return [self.get(file_id) for file_id in file_ids]

    def remove(self, file_id: str) -> UploadedFile:
        removed = self.get(file_id)
        self._files = tuple(item for item in self._files if item.id != file_id)
        logger.info("file_removed", file_id=file_id)
        return removed

    def clear(self) -> int:
        count = len(self._files)
        self._files = ()
        return count

    def list(self) -> list[UploadedFile]:
        return list(self._files)

    def __len__(self) -> int:
        return len(self._files)


__all__ = ["FileStore", "UploadedFile", "timestamp_ms"]
