from __future__ import annotations

import re
import unicodedata

from gradmatch.core.config.scoring import get_scoring_int
from gradmatch.parsing.models import DocumentSections

_KEEP_CONTROL = {"\n", "\t"}
_SPACE_RUN_RE = re.compile(r"[ \t\u00a0]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"[ \t]+([.,;:!?])")
_MISSING_SPACE_AFTER_PUNCT_RE = re.compile(r"([,;:!?])(?=[A-Za-z])")
_MARKER_RE = re.compile(r"^===\s*(.*?)\s*===$")
_PAGE_MARKER_RE = re.compile(r"^===\s*PAGE\s+\d+(?:\s*\(ERROR\))?\s*===$")

_SECTION_PATTERNS: dict[str, re.Pattern[str]] = {
    "personal_info": re.compile(
        r"^(?:personal|contact)\s+(?:information|details|info)\b|^contact\b",
        re.IGNORECASE,
    ),
    "education": re.compile(
        r"^(?:education(?:al background)?|academic\s+(?:background|qualifications|history)|qualifications)\b",
        re.IGNORECASE,
    ),
    "experience": re.compile(
        r"^(?:(?:work|professional|research|relevant|industry|teaching)\s+)?experience\b"
        r"|^(?:employment|work\s+history|career\s+history)\b",
        re.IGNORECASE,
    ),
    "skills": re.compile(
        r"^(?:(?:technical|core|key|computer)\s+)?(?:skills|competencies|abilities)\b",
        re.IGNORECASE,
    ),
    "certifications": re.compile(
        r"^(?:certifications?|certificates|licenses|awards|achievements|honou?rs)\b",
        re.IGNORECASE,
    ),
    "projects": re.compile(
        r"^(?:(?:selected|academic|personal|research)\s+)?projects\b|^(?:research|publications)\b",
        re.IGNORECASE,
    ),
}
_SECTION_HEADING_MAX_CHARS = 40


def _is_printable(char: str) -> bool:
    if char in _KEEP_CONTROL:
        return True
    return not unicodedata.category(char).startswith("C")


def clean_extracted_text(text: str) -> str:
    """Normalize raw extractor output into stable plain text."""
    if not text:
        return ""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    normalized = "".join(char if _is_printable(char) else " " for char in normalized)
    lines = [_SPACE_RUN_RE.sub(" ", line).strip() for line in normalized.split("\n")]
    normalized = "\n".join(lines)
    normalized = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", normalized)
    normalized = _MISSING_SPACE_AFTER_PUNCT_RE.sub(r"\1 ", normalized)
    normalized = _BLANK_RUN_RE.sub("\n\n", normalized)
    return normalized.strip()


def is_marker_line(line: str) -> bool:
    return bool(_MARKER_RE.match(line.strip()))


def is_page_marker(line: str) -> bool:
    return bool(_PAGE_MARKER_RE.match(line.strip()))


def _looks_like_header(line: str, next_line_blank: bool) -> bool:
    max_chars = get_scoring_int("parsing.header_max_chars", 50)
    if "@" in line or "(" in line or line.startswith("["):
        return False
    is_short = len(line) < max_chars
    has_letters = any(char.isalpha() for char in line)
    is_all_caps = has_letters and len(line) > 3 and line == line.upper()
    return (is_short and next_line_blank) or is_all_caps


def add_structure_markers(text: str) -> str:
    """Wrap lines that look like section headers as ``=== Header ===``, keeping their casing."""
    lines = text.split("\n")
    structured: list[str] = []
    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if not line:
            structured.append("")
            continue
        if is_marker_line(line):
            structured.append(line)
            continue
        next_line_blank = index + 1 < len(lines) and not lines[index + 1].strip()
        if _looks_like_header(line, next_line_blank):
            if structured and structured[-1] != "":
                structured.append("")
            structured.append(f"=== {line} ===")
        else:
            structured.append(line)
    return _BLANK_RUN_RE.sub("\n\n", "\n".join(structured)).strip()


def _heading_text(line: str) -> str | None:
    stripped = line.strip()
    marker = _MARKER_RE.match(stripped)
    if marker:
        return marker.group(1).strip()
    candidate = stripped.rstrip(":").strip()
    if candidate and len(candidate) <= _SECTION_HEADING_MAX_CHARS and len(candidate.split()) <= 5:
        return candidate
    return None


def classify_section_heading(line: str) -> str | None:
    heading = _heading_text(line)
    if not heading:
        return None
    is_marker = is_marker_line(line)
    heading = heading.rstrip(":").strip()
    if len(heading) > _SECTION_HEADING_MAX_CHARS:
        return None
    for key, pattern in _SECTION_PATTERNS.items():
        match = pattern.search(heading)
        if not match:
            continue
        rest = heading[match.end():].strip().lower()
        if not rest or rest.startswith(("and ", "& ", "/ ")) or (is_marker and len(heading.split()) <= 3):
            return key
    return None


def extract_sections(text: str) -> DocumentSections:
    """Split text into the fixed section vocabulary, best effort."""
    collected: dict[str, list[str]] = {}
    current: str | None = None
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line or is_page_marker(line):
            continue
        section = classify_section_heading(line)
        if section:
            current = section
            collected.setdefault(current, [])
            continue
        if current is None:
            continue
        marker = _MARKER_RE.match(line)
        collected[current].append(marker.group(1) if marker else line)

    values = {key: "\n".join(lines).strip() for key, lines in collected.items() if lines}
    return DocumentSections(**{key: value for key, value in values.items() if value})
