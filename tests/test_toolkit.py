from __future__ import annotations

import io

import docx
import pandas as pd
import pymupdf
import pytest

from docdesk.core.config import ToolkitSettings
from docdesk.services.toolkit import PDFToolkit, PageLayout, wrap_text

from tests.helpers.stubs import make_pdf, page_texts


@pytest.fixture()
def toolkit() -> PDFToolkit:
    return PDFToolkit.from_settings(ToolkitSettings())


def test_layout_converts_millimetres_to_points() -> None:
    layout = PageLayout.from_settings(ToolkitSettings())

    assert layout.width == pytest.approx(595.28, abs=0.01)
    assert layout.height == pytest.approx(841.89, abs=0.01)
    assert layout.left == pytest.approx(28.35, abs=0.01)


def test_split_produces_one_document_per_page(toolkit: PDFToolkit) -> None:
    pages = toolkit.split_pdf(make_pdf("one", "two", "three"))

    assert len(pages) == 3
    assert [page_texts(page) for page in pages] == [["one"], ["two"], ["three"]]


def test_merge_preserves_input_order(toolkit: PDFToolkit) -> None:
    merged = toolkit.merge_pdfs([make_pdf("a1", "a2"), make_pdf("b1")])

    assert page_texts(merged) == ["a1", "a2", "b1"]


def test_compress_keeps_pages(toolkit: PDFToolkit) -> None:
    compressed = toolkit.compress_pdf(make_pdf("x", "y"))

    assert toolkit.page_count(compressed) == 2


def test_render_pages_scales_output() -> None:
    toolkit = PDFToolkit(ToolkitSettings(image_scale=2.0))
    source = make_pdf("only")

    (image,) = toolkit.render_pages(source)

    pixmap = pymupdf.Pixmap(image)
    with pymupdf.open(stream=source, filetype="pdf") as document:
        width = document[0].rect.width
    assert pixmap.width == pytest.approx(width * 2, abs=1)


def test_layout_text_paginates_long_text(toolkit: PDFToolkit) -> None:
    text = "\n".join(f"line {index}" for index in range(60))

    output = toolkit.layout_text(text, title="Report")

    texts = page_texts(output)
    assert len(texts) > 1
    assert texts[0].startswith("Report")
    assert "line 59" in texts[-1]


def test_wrap_text_respects_width_and_blank_lines() -> None:
    lines = wrap_text("word " * 80 + "\n\nend", max_width=200, fontname="helv", fontsize=12)

    assert len(lines) > 3
    assert "" in lines
    assert lines[-1] == "end"
    assert all(pymupdf.get_text_length(line, fontname="helv", fontsize=12) <= 200 for line in lines)


def test_wrap_text_breaks_overlong_words() -> None:
    lines = wrap_text("x" * 400, max_width=100, fontname="helv", fontsize=12)

    assert "".join(lines) == "x" * 400
    assert len(lines) > 1


def test_csv_to_pdf_joins_cells(toolkit: PDFToolkit) -> None:
    output = toolkit.csv_to_pdf("name,qty\n,\nbolt,4\n".encode("utf-8-sig"))

    assert page_texts(output) == ["name | qty\nbolt | 4"]


def test_excel_to_pdf_reads_first_sheet(toolkit: PDFToolkit) -> None:
    buffer = io.BytesIO()
    pd.DataFrame([["item", "price"], ["pen", "2"]]).to_excel(buffer, header=False, index=False)

    output = toolkit.excel_to_pdf(buffer.getvalue())

    assert page_texts(output) == ["item | price\npen | 2"]


def test_word_to_pdf_uses_paragraphs(toolkit: PDFToolkit) -> None:
    document = docx.Document()
    document.add_paragraph("Hello from Word")
    buffer = io.BytesIO()
    document.save(buffer)

    output = toolkit.word_to_pdf(buffer.getvalue())

    assert page_texts(output) == ["Hello from Word"]
