from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import docx
import pdfplumber

from ..core.errors import DocdeskError

MAX_DOCUMENT_BYTES = 10_000_000

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
LEGACY_WORD_MEDIA_TYPE = "application/msword"


class DocumentParseError(DocdeskError):
    """Raised when a document yields no usable text."""


@dataclass(slots=True)
class DocumentParseResult:
    text: str
    metadata: dict[str, Any]


def extract_pdf_text(payload: bytes) -> str:
    """Per-page text via pdfplumber; pages without text are skipped."""
    with pdfplumber.open(io.BytesIO(payload)) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    return "\n".join(text for text in pages if text)


def extract_docx_text(payload: bytes) -> str:
    document = docx.Document(io.BytesIO(payload))
    return "\n".join(paragraph.text for paragraph in document.paragraphs if paragraph.text)


def _decode(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


def _csv_text(payload: bytes) -> str:
    rows = (", ".join(row).strip() for row in csv.reader(io.StringIO(_decode(payload))))
    return "\n".join(row for row in rows if row)


def _json_text(payload: bytes) -> str:
    try:
        parsed = json.loads(_decode(payload))
    except json.JSONDecodeError as exc:
        raise DocumentParseError("JSON document is malformed.") from exc
    return json.dumps(parsed, indent=2, ensure_ascii=False)


def _legacy_word(payload: bytes) -> str:  # noqa: ARG001
    raise DocumentParseError("Legacy .doc files are not supported. Save the document as .docx and retry.")


Extractor = Callable[[bytes], str]

_BY_EXTENSION: dict[str, Extractor] = {
    ".pdf": extract_pdf_text,
    ".docx": extract_docx_text,
    ".doc": _legacy_word,
    ".csv": _csv_text,
    ".json": _json_text,
    ".md": _decode,
    ".markdown": _decode,
    ".txt": _decode,
}

_BY_MEDIA_TYPE: dict[str, Extractor] = {
    "application/pdf": extract_pdf_text,
    DOCX_MEDIA_TYPE: extract_docx_text,
    LEGACY_WORD_MEDIA_TYPE: _legacy_word,
    "text/csv": _csv_text,
    "application/json": _json_text,
}


def _pick_extractor(extension: str, media_type: str) -> Extractor:
    if extension in _BY_EXTENSION:
        return _BY_EXTENSION[extension]
    if media_type in _BY_MEDIA_TYPE:
        return _BY_MEDIA_TYPE[media_type]
    if media_type.startswith("text/"):
        return _decode
    raise DocumentParseError("Unsupported document type. Accepts PDF, DOCX, TXT, CSV, JSON, or Markdown.")


def parse_document(
    payload: bytes,
    *,
    filename: str,
    content_type: str | None = None,
    max_bytes: int = MAX_DOCUMENT_BYTES,
) -> DocumentParseResult:
    """Extract normalized text from raw document bytes.

    The extension decides the format; the content type is only consulted
    for names without a known extension.
    """
    if not payload:
        raise DocumentParseError(f"{filename} is empty.")
    if len(payload) > max_bytes:
        raise DocumentParseError(f"{filename} exceeds the {max_bytes // 1_000_000} MB limit.")

    extension = Path(filename).suffix.lower()
    extractor = _pick_extractor(extension, (content_type or "").split(";")[0].strip().lower())
    text = _normalize_text(extractor(payload))
    if not text:
        raise DocumentParseError(f"{filename} does not contain any extractable text.")

    return DocumentParseResult(
        text=text,
        metadata={
            "filename": filename,
            "content_type": content_type or "application/octet-stream",
            "extension": extension or None,
            "size_bytes": len(payload),
            "line_count": text.count("\n") + 1,
            "character_count": len(text),
        },
    )


def _normalize_text(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "").strip()


__all__ = [
    "DocumentParseError",
    "DocumentParseResult",
    "MAX_DOCUMENT_BYTES",
    "extract_docx_text",
    "extract_pdf_text",
    "parse_document",
]
