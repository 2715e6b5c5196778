from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence

from ..services.downloads import PDF_MEDIA_TYPE, PNG_MEDIA_TYPE, OutputArtifact
from ..services.toolkit import PDFToolkit
from .uploads import UploadedFile, timestamp_ms

PDF_EXTENSIONS = frozenset({".pdf"})
WORD_EXTENSIONS = frozenset({".doc", ".docx"})
EXCEL_EXTENSIONS = frozenset({".xls", ".xlsx"})
CSV_EXTENSIONS = frozenset({".csv"})


class BatchOperation(str, Enum):
    COMPRESS = "compress"
    MERGE = "merge"
    SPLIT = "split"
    CONVERT_WORD = "convert-word"
    CONVERT_EXCEL = "convert-excel"
    CONVERT_CSV = "convert-csv"
    PDF_TO_IMAGES = "pdf-to-images"


FileHandler = Callable[[PDFToolkit, UploadedFile], list[OutputArtifact]]
BatchHandler = Callable[[PDFToolkit, Sequence[UploadedFile]], list[OutputArtifact]]


@dataclass(frozen=True, slots=True)
class OperationSpec:
    """How one batch operation filters, processes and names its inputs.

    Exactly one of ``per_file`` and ``whole_batch`` is set. Per-file handlers
    run once for each qualifying input; a whole-batch handler receives every
    qualifying input at once and needs at least ``min_files`` of them.
    """

    operation: BatchOperation
    title: str
    progress: str
    extensions: frozenset[str]
    per_file: FileHandler | None = None
    whole_batch: BatchHandler | None = None
    min_files: int = 1

    def __post_init__(self) -> None:
        if (self.per_file is None) == (self.whole_batch is None):
            raise ValueError(f"{self.operation.value} needs exactly one of per_file or whole_batch")

    def accepts(self, uploaded: UploadedFile) -> bool:
        return uploaded.matches(self.extensions)


def output_stem(filename: str, extensions: Iterable[str]) -> str:
    """Drop the filename's extension when it is one the operation consumes."""
    suffix = Path(filename).suffix
    if suffix and suffix.lower() in {ext.lower() for ext in extensions}:
        return filename[: -len(suffix)]
    return filename


def page_output_name(filename: str, page_number: int, extension: str) -> str:
    return f"{output_stem(filename, PDF_EXTENSIONS)}_page_{page_number}{extension}"


def converted_name(filename: str, extensions: Iterable[str]) -> str:
    return f"{output_stem(filename, extensions)}.pdf"


def _compress(toolkit: PDFToolkit, uploaded: UploadedFile) -> list[OutputArtifact]:
    return [OutputArtifact(f"compressed_{uploaded.name}", PDF_MEDIA_TYPE, toolkit.compress_pdf(uploaded.data))]


def _merge(toolkit: PDFToolkit, files: Sequence[UploadedFile]) -> list[OutputArtifact]:
    merged = toolkit.merge_pdfs([item.data for item in files])
    return [OutputArtifact(f"merged_{timestamp_ms()}.pdf", PDF_MEDIA_TYPE, merged)]


def _split(toolkit: PDFToolkit, uploaded: UploadedFile) -> list[OutputArtifact]:
    return [
        OutputArtifact(page_output_name(uploaded.name, number, ".pdf"), PDF_MEDIA_TYPE, page)
        for number, page in enumerate(toolkit.split_pdf(uploaded.data), start=1)
    ]


def _to_images(toolkit: PDFToolkit, uploaded: UploadedFile) -> list[OutputArtifact]:
    return [
        OutputArtifact(page_output_name(uploaded.name, number, ".png"), PNG_MEDIA_TYPE, image)
        for number, image in enumerate(toolkit.render_pages(uploaded.data), start=1)
    ]


def _convert_word(toolkit: PDFToolkit, uploaded: UploadedFile) -> list[OutputArtifact]:
    name = converted_name(uploaded.name, WORD_EXTENSIONS)
    return [OutputArtifact(name, PDF_MEDIA_TYPE, toolkit.word_to_pdf(uploaded.data))]


def _convert_excel(toolkit: PDFToolkit, uploaded: UploadedFile) -> list[OutputArtifact]:
    name = converted_name(uploaded.name, EXCEL_EXTENSIONS)
    return [OutputArtifact(name, PDF_MEDIA_TYPE, toolkit.excel_to_pdf(uploaded.data))]


def _convert_csv(toolkit: PDFToolkit, uploaded: UploadedFile) -> list[OutputArtifact]:
    name = converted_name(uploaded.name, CSV_EXTENSIONS)
    return [OutputArtifact(name, PDF_MEDIA_TYPE, toolkit.csv_to_pdf(uploaded.data))]


OPERATION_HANDLERS: Mapping[BatchOperation, OperationSpec] = {
    spec.operation: spec
    for spec in (
        OperationSpec(BatchOperation.COMPRESS, "Compress PDF", "Compressing", PDF_EXTENSIONS, per_file=_compress),
        OperationSpec(
            BatchOperation.MERGE,
            "Merge PDFs",
            "Merging",
            PDF_EXTENSIONS,
            whole_batch=_merge,
            min_files=2,
        ),
        OperationSpec(BatchOperation.SPLIT, "Split PDF", "Splitting", PDF_EXTENSIONS, per_file=_split),
        OperationSpec(
            BatchOperation.CONVERT_WORD, "Word to PDF", "Converting", WORD_EXTENSIONS, per_file=_convert_word
        ),
        OperationSpec(
            BatchOperation.CONVERT_EXCEL, "Excel to PDF", "Converting", EXCEL_EXTENSIONS, per_file=_convert_excel
        ),
        OperationSpec(BatchOperation.CONVERT_CSV, "CSV to PDF", "Converting", CSV_EXTENSIONS, per_file=_convert_csv),
        OperationSpec(
            BatchOperation.PDF_TO_IMAGES, "PDF to images", "Rendering", PDF_EXTENSIONS, per_file=_to_images
        ),
    )
}


__all__ = [
    "BatchOperation",
    "OPERATION_HANDLERS",
    "OperationSpec",
    "converted_name",
    "output_stem",
    "page_output_name",
]
