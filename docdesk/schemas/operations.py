from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from ..orchestration.batch import BatchItemResult, BatchReport


class BatchRequest(BaseModel):
    file_ids: list[str] | None = Field(
        None,
        description="Files to process in order. Every uploaded file is used when omitted.",
    )


class BatchItemModel(BaseModel):
    file_ids: list[str]
    sources: list[str]
    status: Literal["succeeded", "failed"]
    outputs: list[str] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_result(cls, item: BatchItemResult) -> "BatchItemModel":
        return cls(
            file_ids=list(item.file_ids),
            sources=list(item.sources),
            status=item.status,
            outputs=list(item.outputs),
            error=item.error,
        )


class BatchReportModel(BaseModel):
    operation: str
    status: Literal["completed", "partial", "failed", "empty"]
    items: list[BatchItemModel] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list, description="Download names produced by the run.")
    skipped_file_ids: list[str] = Field(
        default_factory=list,
        description="Selected files whose type the operation does not accept.",
    )

    @classmethod
    def from_report(cls, report: BatchReport) -> "BatchReportModel":
        return cls(
            operation=report.operation.value,
            status=report.status,
            items=[BatchItemModel.from_result(item) for item in report.items],
            outputs=report.outputs,
            skipped_file_ids=list(report.skipped_file_ids),
        )


class CreatePdfRequest(BaseModel):
    text: str = Field(..., description="Body text laid out on A4 pages.")
    title: str | None = Field(None, description="Optional heading; also names the file.")


class CreatePdfResponse(BaseModel):
    filename: str
    size_bytes: int = Field(..., ge=0)


__all__ = [
    "BatchItemModel",
    "BatchReportModel",
    "BatchRequest",
    "CreatePdfRequest",
    "CreatePdfResponse",
]
