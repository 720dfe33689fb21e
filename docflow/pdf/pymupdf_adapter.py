from pathlib import Path

import pymupdf

from docflow.logging.logger import Log
from docflow.pdf.base import BasePdfPaginator
from docflow.pdf.exceptions import PdfProcessingError


class PyMuPdfPaginator(BasePdfPaginator):
    """Normalizes and splits PDFs using PyMuPDF."""

    def normalize(self, source: Path, destination: Path) -> None:
        try:
            with pymupdf.open(str(source), filetype="pdf") as doc:
                if doc.needs_pass:
                    raise PdfProcessingError("document is password protected")
                if doc.page_count == 0:
                    raise PdfProcessingError("document has no pages")
                if doc.is_repaired:
                    Log.warning("Source PDF was damaged and has been repaired", source=source.name)
                doc.save(str(destination), garbage=3, deflate=True, clean=True)
        except PdfProcessingError:
            raise
        except Exception as exc:
            raise PdfProcessingError(f"pymupdf normalization failed: {exc}") from exc

    def page_count(self, path: Path) -> int:
        try:
            with pymupdf.open(str(path), filetype="pdf") as doc:
                return doc.page_count
        except Exception as exc:
            raise PdfProcessingError(f"pymupdf page count failed: {exc}") from exc

    def split(self, path: Path, output_dir: Path) -> list[Path]:
        pages: list[Path] = []
        try:
            with pymupdf.open(str(path), filetype="pdf") as doc:
                for index in range(doc.page_count):
                    target = output_dir / f"page_{index + 1:05d}.pdf"
                    with pymupdf.open() as page_doc:
                        page_doc.insert_pdf(doc, from_page=index, to_page=index)
                        page_doc.save(str(target), garbage=3, deflate=True)
                    pages.append(target)
        except Exception as exc:
            raise PdfProcessingError(f"pymupdf split failed: {exc}") from exc
        return pages
