"""Text extraction for the supported document formats.

Plain text and markdown are read as-is, Word documents through python-docx,
PDFs through pypdf with an optional OCR fallback for scanned files.
"""

import asyncio
import os
import zipfile
from dataclasses import dataclass

import docx
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from services.ingest.OcrPipeline import OcrPipeline
from shared.errors import ResourceError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.text import normalize_text

SUPPORTED_EXTENSIONS = (".txt", ".md", ".docx", ".pdf")


@dataclass
class ParsedDocument:
    text: str
    file_type: str
    page_count: int | None = None
    ocr_applied: bool = False


def _read_plain_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def _read_docx(path: str) -> str:
    document = docx.Document(path)
    parts = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                parts.append(cell.text)
    return "\n".join(parts)


def _read_pdf(path: str) -> tuple[str, int]:
    reader = PdfReader(path)
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(pages), len(pages)


class DocumentParser:
    """Turns a file on disk into normalised text."""

    def __init__(self, helper_config: HelperConfig, ocr_pipeline: OcrPipeline | None = None) -> None:
        self.logging = helper_config.get_logger()
        self.ocr_enabled = helper_config.get_bool_val("OCR_ENABLED", default=False)
        self.ocr_min_chars_per_page = int(helper_config.get_number_val("OCR_MIN_CHARS_PER_PAGE", default=50))
        self._ocr_pipeline = ocr_pipeline or OcrPipeline(helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    @staticmethod
    def get_extension(path: str) -> str:
        return os.path.splitext(path)[1].lower()

    def _get_ocr_threshold(self, page_count: int | None) -> int:
        if page_count and page_count > 0:
            return self.ocr_min_chars_per_page * page_count
        return self.ocr_min_chars_per_page

    ##########################################
    ################# CORE ###################
    ##########################################

    async def parse(self, path: str) -> ParsedDocument:
        """Extract and normalise the text of a document.

        Args:
            path (str): Path of the file. The format is chosen by its extension.

        Returns:
            ParsedDocument: Normalised text, type tag and page count where known.

        Raises:
            ValidationError: If the extension is not supported.
            ResourceError: If the file cannot be read or is corrupt.
            DependencyError: If OCR is needed and fails.
        """
        ext = self.get_extension(path)

        if ext in (".txt", ".md"):
            raw = await self._run_reader(_read_plain_text, path)
            return ParsedDocument(text=normalize_text(raw), file_type=ext[1:])

        if ext == ".docx":
            raw = await self._run_reader(_read_docx, path)
            return ParsedDocument(text=normalize_text(raw), file_type="docx")

        if ext == ".pdf":
            raw, page_count = await self._run_reader(_read_pdf, path)
            text = normalize_text(raw)
            threshold = self._get_ocr_threshold(page_count)
            if self.ocr_enabled and len(text) < threshold:
                self.logging.info(
                    "PDF '%s' has %d characters of text (threshold %d), running OCR.",
                    path,
                    len(text),
                    threshold,
                )
                ocr_text = await self._ocr_pipeline.do_ocr(path)
                return ParsedDocument(
                    text=normalize_text(ocr_text),
                    file_type="pdf",
                    page_count=page_count,
                    ocr_applied=True,
                )
            return ParsedDocument(text=text, file_type="pdf", page_count=page_count)

        raise ValidationError(f"Unsupported file type: {ext}", details={"supported": list(SUPPORTED_EXTENSIONS)})

    async def _run_reader(self, reader, path: str):
        """Run a blocking reader in a worker thread and map its failures to ResourceError."""
        try:
            return await asyncio.to_thread(reader, path)
        except (OSError, PyPdfError, PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
            self.logging.error("Failed to read '%s': %s", path, e)
            raise ResourceError(f"Could not read document '{os.path.basename(path)}': {e}") from e
