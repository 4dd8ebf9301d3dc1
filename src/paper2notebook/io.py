"""Paper text loading from plain text, Markdown and PDF sources."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import fitz  # PyMuPDF

__all__ = ["LoadedPaper", "PDFText", "extract_pdf_text", "load_paper_text"]

TEXT_SUFFIXES = {".txt", ".md", ".markdown"}
PDF_SUFFIXES = {".pdf"}


@dataclass(slots=True)
class PDFText:
    """Page-wise text extracted from a PDF document."""

    page_texts: list[str]
    title: str

    @property
    def page_count(self) -> int:
        return len(self.page_texts)

    @property
    def combined_text(self) -> str:
        return "\n\n".join(text for text in self.page_texts if text)


@dataclass(slots=True)
class LoadedPaper:
    """Container for paper text and metadata."""

    content: str
    source: Path
    metadata: dict[str, Any]


def extract_pdf_text(data: bytes) -> PDFText:
    """Extract text from in-memory PDF bytes, one entry per page."""

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise ValueError(f"Unable to open PDF: {exc}") from exc

    with doc:
        page_texts = [page.get_text("text").strip() for page in doc]
        title = (doc.metadata or {}).get("title") or ""

    if not title:
        title = next((line.strip() for text in page_texts for line in text.splitlines() if line.strip()), "")
    return PDFText(page_texts=page_texts, title=title)


def load_paper_text(source: Path | str, *, encoding: str = "utf-8") -> LoadedPaper:
    """Load paper text from a ``.txt``/``.md`` file or a PDF."""

    source_path = Path(source).expanduser()
    if not source_path.exists():
        raise FileNotFoundError(f"Input file not found: {source_path}")

    suffix = source_path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        text = source_path.read_text(encoding=encoding)
        metadata = {"kind": "text", "length": len(text), "path": str(source_path)}
        return LoadedPaper(content=text, source=source_path, metadata=metadata)

    if suffix in PDF_SUFFIXES:
        result = extract_pdf_text(source_path.read_bytes())
        text = result.combined_text
        metadata = {
            "kind": "pdf",
            "pages": result.page_count,
            "title": result.title,
            "length": len(text),
            "path": str(source_path),
        }
        return LoadedPaper(content=text, source=source_path, metadata=metadata)

    raise ValueError(f"Unsupported input format for {source_path}")
