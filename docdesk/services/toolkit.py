from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

import pandas as pd
import pymupdf

from ..core.config import ToolkitSettings
from ..core.logging import get_logger
from .document_parser import extract_docx_text

logger = get_logger(name=__name__)

MM_TO_PT = 72.0 / 25.4
CELL_SEPARATOR = " | "


@dataclass(slots=True)
class PageLayout:
    """Page geometry in PDF points, derived from millimetre settings."""

    width: float
    height: float
    left: float
    top: float
    title_gap: float
    line_height: float
    bottom_limit: float
    wrap_width: float

    @classmethod
    def from_settings(cls, settings: ToolkitSettings) -> "PageLayout":
        return cls(
            width=settings.page_width_mm * MM_TO_PT,
            height=settings.page_height_mm * MM_TO_PT,
            left=settings.margin_left_mm * MM_TO_PT,
            top=settings.margin_top_mm * MM_TO_PT,
            title_gap=settings.title_gap_mm * MM_TO_PT,
            line_height=settings.line_height_mm * MM_TO_PT,
            bottom_limit=settings.bottom_limit_mm * MM_TO_PT,
            wrap_width=settings.wrap_width_mm * MM_TO_PT,
        )


class PDFToolkit:
    """Single-call document transformations backed by PyMuPDF and pandas.

    Every method is synchronous and CPU bound; async callers are expected to
    push calls onto a worker thread.
    """

    def __init__(self, settings: ToolkitSettings) -> None:
        self._settings = settings
        self._layout = PageLayout.from_settings(settings)

    @classmethod
    def from_settings(cls, settings: ToolkitSettings) -> "PDFToolkit":
        return cls(settings)

    def page_count(self, payload: bytes) -> int:
        with pymupdf.open(stream=payload, filetype="pdf") as document:
            return document.page_count

    def compress_pdf(self, payload: bytes) -> bytes:
        with pymupdf.open(stream=payload, filetype="pdf") as document:
            return document.tobytes(
                garbage=self._settings.garbage_level,
                deflate=self._settings.deflate,
                clean=True,
            )

    def merge_pdfs(self, payloads: Sequence[bytes]) -> bytes:
        with pymupdf.open() as merged:
            for payload in payloads:
                with pymupdf.open(stream=payload, filetype="pdf") as source:
                    merged.insert_pdf(source)
            return merged.tobytes(garbage=1, deflate=self._settings.deflate)

    def split_pdf(self, payload: bytes) -> list[bytes]:
        pages: list[bytes] = []
        with pymupdf.open(stream=payload, filetype="pdf") as source:
            for index in range(source.page_count):
                with pymupdf.open() as single:
                    single.insert_pdf(source, from_page=index, to_page=index)
                    pages.append(single.tobytes(garbage=1, deflate=self._settings.deflate))
        return pages

    def render_pages(self, payload: bytes) -> list[bytes]:
        scale = self._settings.image_scale
        matrix = pymupdf.Matrix(scale, scale)
        images: list[bytes] = []
        with pymupdf.open(stream=payload, filetype="pdf") as source:
            for page in source:
                pixmap = page.get_pixmap(matrix=matrix)
                images.append(pixmap.tobytes("png"))
        return images

    def word_to_pdf(self, payload: bytes) -> bytes:
        return self.layout_text(extract_docx_text(payload))

    def excel_to_pdf(self, payload: bytes) -> bytes:
        frame = pd.read_excel(
            io.BytesIO(payload),
            sheet_name=0,
            header=None,
            dtype=str,
            keep_default_na=False,
        )
        return self.layout_rows(frame.values.tolist())

    def csv_to_pdf(self, payload: bytes) -> bytes:
        decoded = payload.decode("utf-8-sig", errors="replace")
        return self.layout_rows(csv.reader(io.StringIO(decoded)))

    def layout_rows(self, rows: Iterable[Sequence[object]]) -> bytes:
        lines: list[str] = []
        for row in rows:
            cells = ["" if cell is None else str(cell) for cell in row]
            if not any(cell.strip() for cell in cells):
                continue
            lines.append(CELL_SEPARATOR.join(cells))
        return self.layout_text("\n".join(lines))

    def layout_text(self, text: str, *, title: str | None = None) -> bytes:
        """Lay out plain text on A4 pages, wrapping and paginating as needed."""
        layout = self._layout
        settings = self._settings
        with pymupdf.open() as document:
            page = document.new_page(width=layout.width, height=layout.height)
            y = layout.top
            if title:
                page.insert_text(
                    (layout.left, y),
                    title,
                    fontname=settings.font_name,
                    fontsize=settings.title_font_size,
                )
                y += layout.title_gap

            for line in wrap_text(
                text,
                max_width=layout.wrap_width,
                fontname=settings.font_name,
                fontsize=settings.body_font_size,
            ):
                if y > layout.bottom_limit:
                    page = document.new_page(width=layout.width, height=layout.height)
                    y = layout.top
                if line:
                    page.insert_text(
                        (layout.left, y),
                        line,
                        fontname=settings.font_name,
                        fontsize=settings.body_font_size,
                    )
                y += layout.line_height

            logger.debug("pdf_layout_complete", pages=document.page_count, characters=len(text))
            return document.tobytes(garbage=1, deflate=settings.deflate)


def wrap_text(text: str, *, max_width: float, fontname: str, fontsize: float) -> list[str]:
    """Greedy word wrap measured in points; explicit line breaks are preserved."""

    def width(value: str) -> float:
        return pymupdf.get_text_length(value, fontname=fontname, fontsize=fontsize)

    lines: list[str] = []
    for paragraph in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if not paragraph.strip():
            lines.append("")
            continue
        current = ""
        for word in paragraph.split():
            candidate = f"{current} {word}" if current else word
            if width(candidate) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
            while width(word) > max_width and len(word) > 1:
                cut = _fit_prefix(word, max_width=max_width, width=width)
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines


def _fit_prefix(word: str, *, max_width: float, width: Callable[[str], float]) -> int:
    cut = 1
    while cut < len(word) and width(word[: cut + 1]) <= max_width:
        cut += 1
    return cut


__all__ = ["PDFToolkit", "PageLayout", "wrap_text"]
