from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from time import perf_counter
from typing import Literal, Mapping, Sequence

from ..core import metrics
from ..core.errors import BatchRejectedError
from ..core.logging import get_logger
from ..services.downloads import OutputArtifact, OutputSink
from ..services.notifications import NotificationFeed
from ..services.toolkit import PDFToolkit
from .operations import OPERATION_HANDLERS, BatchHandler, BatchOperation, FileHandler, OperationSpec
from .uploads import UploadedFile

logger = get_logger(name=__name__)

ItemStatus = Literal["succeeded", "failed"]
BatchStatus = Literal["completed", "partial", "failed", "empty"]


@dataclass(slots=True)
class BatchItemResult:
    file_ids: list[str]
    sources: list[str]
    status: ItemStatus
    outputs: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(slots=True)
class BatchReport:
    operation: BatchOperation
    status: BatchStatus
    items: list[BatchItemResult] = field(default_factory=list)
    skipped_file_ids: list[str] = field(default_factory=list)

    @property
    def outputs(self) -> list[str]:
        return [name for item in self.items for name in item.outputs]

    @property
    def failed(self) -> list[BatchItemResult]:
        return [item for item in self.items if item.status == "failed"]


class OutputNames:
    """Tracks filenames produced in one run and disambiguates repeats."""

    def __init__(self) -> None:
        self._taken: set[str] = set()

    def reserve(self, filename: str) -> str:
        candidate = filename
        path = PurePosixPath(filename)
        counter = 2
        while candidate in self._taken:
            candidate = f"{path.stem}_{counter}{path.suffix}"
            counter += 1
        self._taken.add(candidate)
        return candidate


class BatchOrchestrator:
    """Runs one operation over a file selection, strictly one item at a time.

    A failing item is reported and the loop moves on to the next one.
    """

    def __init__(
        self,
        *,
        toolkit: PDFToolkit,
        sink: OutputSink,
        notifications: NotificationFeed,
        handlers: Mapping[BatchOperation, OperationSpec] = OPERATION_HANDLERS,
    ) -> None:
        self._toolkit = toolkit
        self._sink = sink
        self._notifications = notifications
        self._handlers = handlers

    async def run(self, operation: BatchOperation | str, files: Sequence[UploadedFile]) -> BatchReport:
        spec = await self._resolve(operation)
        if not files:
            await self._notifications.error("Select at least one file.", key=f"{spec.operation.value}:rejected")
            raise BatchRejectedError("Select at least one file.")

        qualifying = [item for item in files if spec.accepts(item)]
        skipped = [item.id for item in files if not spec.accepts(item)]

        if spec.whole_batch is not None and len(qualifying) < spec.min_files:
            message = f"Select at least {spec.min_files} {_describe(spec)} files for {spec.title.lower()}."
            await self._notifications.error(message, key=f"{spec.operation.value}:rejected")
            raise BatchRejectedError(message)

        report = BatchReport(operation=spec.operation, status="empty", skipped_file_ids=skipped)
        if not qualifying:
            logger.info("batch_nothing_to_do", operation=spec.operation.value, skipped=len(skipped))
            return report

        names = OutputNames()
        started = perf_counter()
        if spec.whole_batch is not None:
            report.items.append(await self._run_whole_batch(spec, spec.whole_batch, qualifying, names))
        elif spec.per_file is not None:
            for uploaded in qualifying:
                report.items.append(await self._run_item(spec, spec.per_file, uploaded, names))
        metrics.observe_batch_latency(operation=spec.operation.value, latency=perf_counter() - started)

        report.status = _aggregate(report.items)
        await self._summarize(spec, report)
        return report

    async def _resolve(self, operation: BatchOperation | str) -> OperationSpec:
        try:
            return self._handlers[BatchOperation(operation)]
        except (ValueError, KeyError) as exc:
            await self._notifications.error(f"Operation {operation!s} is not supported.")
            raise BatchRejectedError(f"Unsupported operation: {operation!s}") from exc

    async def _run_item(
        self,
        spec: OperationSpec,
        handler: FileHandler,
        uploaded: UploadedFile,
        names: OutputNames,
    ) -> BatchItemResult:
        key = f"{spec.operation.value}:{uploaded.id}"
        await self._notifications.loading(f"{spec.progress} {uploaded.name}...", key=key)
        try:
            artifacts = await asyncio.to_thread(handler, self._toolkit, uploaded)
        except Exception as exc:
            return await self._fail(spec, [uploaded], key=key, error=exc)

        saved = self._save(artifacts, names)
        metrics.record_batch_item(operation=spec.operation.value, outcome="succeeded")
        await self._notifications.success(_success_message(uploaded.name, saved), key=key)
        return BatchItemResult(file_ids=[uploaded.id], sources=[uploaded.name], status="succeeded", outputs=saved)

    async def _run_whole_batch(
        self,
        spec: OperationSpec,
        handler: BatchHandler,
        files: Sequence[UploadedFile],
        names: OutputNames,
    ) -> BatchItemResult:
        key = f"{spec.operation.value}:batch"
        await self._notifications.loading(f"{spec.progress} {len(files)} files...", key=key)
        try:
            artifacts = await asyncio.to_thread(handler, self._toolkit, files)
        except Exception as exc:
            return await self._fail(spec, files, key=key, error=exc)

        saved = self._save(artifacts, names)
        metrics.record_batch_item(operation=spec.operation.value, outcome="succeeded")
        await self._notifications.success(f"{spec.title}: {len(files)} files combined into {saved[0]}.", key=key)
        return BatchItemResult(
            file_ids=[item.id for item in files],
            sources=[item.name for item in files],
            status="succeeded",
            outputs=saved,
        )

    async def _fail(
        self,
        spec: OperationSpec,
        files: Sequence[UploadedFile],
        *,
        key: str,
        error: Exception,
    ) -> BatchItemResult:
        sources = [item.name for item in files]
        logger.warning(
            "batch_item_failed",
            operation=spec.operation.value,
            sources=sources,
            error=str(error),
            error_type=type(error).__name__,
        )
        metrics.record_batch_item(operation=spec.operation.value, outcome="failed")
        await self._notifications.error(f"{spec.title} failed for {', '.join(sources)}.", key=key)
        return BatchItemResult(
            file_ids=[item.id for item in files],
            sources=sources,
            status="failed",
            error=str(error) or type(error).__name__,
        )

    def _save(self, artifacts: Sequence[OutputArtifact], names: OutputNames) -> list[str]:
        saved: list[str] = []
        for artifact in artifacts:
            filename = names.reserve(artifact.filename)
            self._sink.save(replace(artifact, filename=filename))
            saved.append(filename)
        return saved

    async def _summarize(self, spec: OperationSpec, report: BatchReport) -> None:
        key = f"{spec.operation.value}:summary"
        total = len(report.items)
        failed = len(report.failed)
        if report.status == "completed":
            await self._notifications.success(f"{spec.title}: finished, {len(report.outputs)} file(s) saved.", key=key)
        else:
            await self._notifications.error(
                f"{spec.title}: {failed} of {total} item(s) failed. Retry the batch to try again.",
                key=key,
            )
        logger.info(
            "batch_completed",
            operation=spec.operation.value,
            status=report.status,
            items=total,
            failed=failed,
            skipped=len(report.skipped_file_ids),
            outputs=len(report.outputs),
        )


def _aggregate(items: Sequence[BatchItemResult]) -> BatchStatus:
    if not items:
        return "empty"
    failed = sum(1 for item in items if item.status == "failed")
    if failed == 0:
        return "completed"
    if failed == len(items):
        return "failed"
    return "partial"


def _describe(spec: OperationSpec) -> str:
    return "/".join(sorted(ext.lstrip(".").upper() for ext in spec.extensions))


def _success_message(source: str, saved: Sequence[str]) -> str:
    if len(saved) == 1:
        return f"{source}: saved {saved[0]}."
    return f"{source}: saved {len(saved)} files."


__all__ = ["BatchItemResult", "BatchOrchestrator", "BatchReport", "OutputNames"]
