from __future__ import annotations

import logging
from io import BytesIO
from typing import Any
from zipfile import BadZipFile, ZipFile

import defusedxml.ElementTree as ET

from gradmatch.core.config import settings
from gradmatch.core.config.scoring import get_scoring_float, get_scoring_int
from gradmatch.core.errors import DocumentParseError
from gradmatch.parsing.models import DocumentMetadata, ParsedDocument, ParseMethod
from gradmatch.parsing.text import add_structure_markers, clean_extracted_text, extract_sections

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

MIME_PARSE_METHODS: dict[str, ParseMethod] = {
    "application/pdf": "pdf",
    DOCX_MIME: "docx",
    "application/msword": "doc",
    "text/plain": "txt",
}

EXTENSION_PARSE_METHODS: dict[str, ParseMethod] = {
    "pdf": "pdf",
    "docx": "docx",
    "doc": "doc",
    "txt": "txt",
}

_W_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"

HINT_CONVERT = "Upload a PDF with selectable text, save as .docx, or paste the content into a .txt file."
HINT_PASSWORD = "This PDF is password-protected. Upload an unprotected version."
HINT_IMAGE_PDF = "This PDF appears to be image-based. Convert it to a text-based PDF or retype the content."
HINT_CORRUPT_PDF = "The file may be corrupted or is not a valid PDF. Try re-exporting it."
HINT_CORRUPT_DOCX = "The Word document may be corrupted. Re-save it as .docx and try again."


def detect_parse_method(file_name: str, mime_hint: str | None) -> ParseMethod:
    mime = (mime_hint or "").split(";")[0].strip().lower()
    if mime in MIME_PARSE_METHODS:
        return MIME_PARSE_METHODS[mime]
    name = (file_name or "").lower()
    ext = name.rsplit(".", 1)[-1] if "." in name else ""
    return EXTENSION_PARSE_METHODS.get(ext, "unknown")


def _group_pdf_lines(items: list[tuple[float, float, str]], tolerance: float) -> list[str]:
    ordered = sorted(items, key=lambda item: -item[1])
    lines: list[list[tuple[float, float, str]]] = []
    line_y: float | None = None
    for item in ordered:
        if line_y is None or abs(item[1] - line_y) > tolerance:
            lines.append([item])
            line_y = item[1]
        else:
            lines[-1].append(item)
    rendered: list[str] = []
    for line in lines:
        words = [text for _x, _y, text in sorted(line, key=lambda item: item[0])]
        joined = " ".join(words).strip()
        if joined:
            rendered.append(joined)
    return rendered


def _extract_pdf_page(page: Any, tolerance: float) -> str:
    items: list[tuple[float, float, str]] = []

    def visitor(text: str, cm: list[float], tm: list[float], _font_dict: Any, _font_size: Any) -> None:
        value = (text or "").strip()
        if not value:
            return
        x = tm[4] * cm[0] + tm[5] * cm[2] + cm[4]
        y = tm[4] * cm[1] + tm[5] * cm[3] + cm[5]
        items.append((x, y, value))

    plain = page.extract_text(visitor_text=visitor) or ""
    if items:
        return "\n".join(_group_pdf_lines(items, tolerance))
    return plain


def _parse_pdf(content: bytes) -> tuple[str, int, list[str]]:
    warnings: list[str] = []
    try:
        from pypdf import PdfReader

        reader = PdfReader(BytesIO(content))
    except Exception as exc:
        raise DocumentParseError(
            "Failed to parse PDF file. The file may be corrupted or password-protected.",
            code="PDF_PARSE_FAILED",
            hint=HINT_CORRUPT_PDF,
        ) from exc

    if reader.is_encrypted:
        try:
            decrypted = reader.decrypt("")
        except Exception:
            decrypted = 0
        if not decrypted:
            raise DocumentParseError(
                "Failed to parse PDF file. The document is password-protected.",
                code="PDF_PARSE_FAILED",
                hint=HINT_PASSWORD,
            )

    tolerance = get_scoring_float("parsing.pdf_line_tolerance", 5.0)
    try:
        pages = list(reader.pages)
    except Exception as exc:
        raise DocumentParseError(
            "Failed to read pages from the PDF file.",
            code="PDF_PARSE_FAILED",
            hint=HINT_CORRUPT_PDF,
        ) from exc

    chunks: list[str] = []
    extracted_pages = 0
    for page_number, page in enumerate(pages, start=1):
        try:
            page_text = clean_extracted_text(_extract_pdf_page(page, tolerance))
        except Exception as exc:  # noqa: BLE001 - a single bad page must not abort the document
            logger.warning("pdf_page_extract_failed page=%s: %s", page_number, exc)
            warnings.append(f"Text extraction failed for page {page_number}.")
            chunks.extend([f"=== PAGE {page_number} (ERROR) ===", "[Text extraction failed for this page]", ""])
            continue
        if page_text:
            extracted_pages += 1
            chunks.extend([f"=== PAGE {page_number} ===", page_text, ""])

    if extracted_pages == 0:
        raise DocumentParseError(
            "This PDF appears to be image-based or contains no extractable text.",
            code="PDF_PARSE_FAILED",
            hint=HINT_IMAGE_PDF,
        )
    return "\n".join(chunks), len(pages), warnings


def _docx_run_text(run: Any) -> str:
    parts: list[str] = []
    for node in run:
        tag = str(node.tag)
        if tag == f"{_W_NS}t" and node.text:
            parts.append(node.text)
        elif tag == f"{_W_NS}br":
            parts.append("\n")
        elif tag == f"{_W_NS}tab":
            parts.append("\t")
    return "".join(parts)


def _docx_flag(properties: Any, name: str) -> bool:
    if properties is None:
        return False
    flag = properties.find(f"{_W_NS}{name}")
    if flag is None:
        return False
    value = (flag.get(f"{_W_NS}val") or "").lower()
    return value not in {"0", "false", "off"}


def docx_markup_to_text(content: bytes) -> str:
    """Re-derive DOCX text from document markup, keeping list, emphasis and paragraph cues."""
    with ZipFile(BytesIO(content)) as archive:
        raw = archive.read("word/document.xml")
    root = ET.fromstring(raw)
    paragraphs: list[str] = []
    for paragraph in root.iter(f"{_W_NS}p"):
        paragraph_props = paragraph.find(f"{_W_NS}pPr")
        is_list_item = paragraph_props is not None and paragraph_props.find(f"{_W_NS}numPr") is not None
        pieces: list[str] = []
        for run in paragraph.iter(f"{_W_NS}r"):
            text = _docx_run_text(run)
            if not text.strip():
                pieces.append(text)
                continue
            run_props = run.find(f"{_W_NS}rPr")
            if _docx_flag(run_props, "b"):
                text = f"**{text.strip()}**"
            elif _docx_flag(run_props, "i"):
                text = f"*{text.strip()}*"
            pieces.append(text)
        line = "".join(pieces).strip()
        if not line:
            continue
        paragraphs.append(f"• {line}" if is_list_item else line)
    return "\n\n".join(paragraphs)


def _parse_docx(content: bytes) -> tuple[str, list[str]]:
    warnings: list[str] = []
    try:
        from docx import Document

        document = Document(BytesIO(content))
        parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(dict.fromkeys(cells)))
        raw_text = "\n".join(parts)
    except (BadZipFile, KeyError, ValueError) as exc:
        raise DocumentParseError(
            "Failed to parse DOCX file. The file may be corrupted.",
            code="DOCX_PARSE_FAILED",
            hint=HINT_CORRUPT_DOCX,
        ) from exc
    except Exception as exc:
        raise DocumentParseError(
            "Failed to parse DOCX file.",
            code="DOCX_PARSE_FAILED",
            hint=HINT_CORRUPT_DOCX,
        ) from exc

    fallback_chars = get_scoring_int("parsing.docx_markup_fallback_chars", 100)
    if len(raw_text.strip()) < fallback_chars:
        try:
            markup_text = docx_markup_to_text(content)
        except Exception as exc:  # noqa: BLE001 - raw text is still usable
            logger.warning("docx_markup_fallback_failed: %s", exc)
            markup_text = ""
        if len(markup_text) > len(raw_text):
            warnings.append("Used document markup for richer DOCX text extraction.")
            raw_text = markup_text
    return raw_text, warnings


def _parse_text(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig", errors="replace")
    except Exception as exc:
        raise DocumentParseError(
            "Failed to read file as text.",
            code="TEXT_PARSE_FAILED",
            hint=HINT_CONVERT,
        ) from exc


def parse_document(content: bytes, file_name: str, mime_hint: str | None = None) -> ParsedDocument:
    """Turn uploaded bytes into a normalized ParsedDocument or raise DocumentParseError."""
    size = len(content or b"")
    if size > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise DocumentParseError(
            f"File size exceeds {limit_mb}MB limit.",
            code="FILE_TOO_LARGE",
            hint=f"Compress the document or upload a version under {limit_mb}MB.",
            status_code=413,
        )

    method = detect_parse_method(file_name, mime_hint)
    page_count: int | None = None
    warnings: list[str] = []

    if method == "pdf":
        raw_text, page_count, warnings = _parse_pdf(content)
    elif method == "docx":
        raw_text, warnings = _parse_docx(content)
    elif method in {"doc", "txt"}:
        raw_text = _parse_text(content)
    else:
        raise DocumentParseError(
            "File format not supported. Please upload PDF, DOCX, DOC, or TXT files.",
            code="UNSUPPORTED_FORMAT",
            hint=HINT_CONVERT,
            status_code=415,
        )

    cleaned = clean_extracted_text(raw_text)
    min_chars = get_scoring_int("parsing.min_content_chars", 50)
    if len(cleaned) < min_chars:
        raise DocumentParseError(
            "Document appears to be empty or contains insufficient text content.",
            code="INSUFFICIENT_CONTENT",
            hint=HINT_IMAGE_PDF if method == "pdf" else HINT_CONVERT,
        )

    structured = add_structure_markers(cleaned)
    sections = extract_sections(structured)
    metadata = DocumentMetadata(
        page_count=page_count,
        word_count=len(cleaned.split()),
        character_count=len(cleaned),
        file_size_bytes=size,
        file_name=file_name or "",
        declared_mime_type=mime_hint or "",
        parse_method=method,
    )
    logger.info(
        "document_parsed file=%s method=%s chars=%s sections=%s",
        file_name,
        method,
        metadata.character_count,
        sections.present(),
    )
    return ParsedDocument(
        text=structured,
        metadata=metadata,
        sections=sections,
        parsing_warnings=tuple(warnings),
    )
