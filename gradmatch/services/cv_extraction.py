from __future__ import annotations

import logging
import re
from typing import Any

from gradmatch.parsing.models import ParsedDocument
from gradmatch.parsing.text import is_marker_line
from gradmatch.schemas.profile import CVExtraction, unique_terms
from gradmatch.services.llm_json import json_completion

logger = logging.getLogger(__name__)

MAX_CV_PROMPT_CHARS = 12000

CV_EXTRACTION_SYSTEM_PROMPT = (
    "You are a graduate admissions assistant. Extract facts from the CV exactly as written. "
    "Return one JSON object and nothing else. Use null or empty arrays for anything not stated."
)

CV_EXTRACTION_SCHEMA_HINT = """{
  "gpa": 3.7,
  "degree": "BSc",
  "field_of_study": "Computer Science",
  "institution": "University name",
  "test_scores": {"gre": 320, "toefl": 105},
  "research_areas": ["machine learning"],
  "technical_skills": ["Python"],
  "publications": ["Title, venue, year"],
  "projects": ["Short project description"],
  "experience": ["Role at organization: short description"],
  "awards": ["Award name"]
}"""

RESEARCH_KEYWORDS: tuple[str, ...] = (
    "machine learning",
    "deep learning",
    "artificial intelligence",
    "natural language processing",
    "computer vision",
    "reinforcement learning",
    "robotics",
    "data science",
    "data mining",
    "bioinformatics",
    "computational biology",
    "human-computer interaction",
    "cybersecurity",
    "distributed systems",
    "cloud computing",
    "quantum computing",
    "signal processing",
    "control systems",
    "renewable energy",
    "materials science",
    "neuroscience",
    "economics",
    "statistics",
    "software engineering",
)

_GPA_RE = re.compile(
    r"\b(?:c?gpa|grade point average)\b\s*(?:of|:|-)?\s*(\d{1,2}(?:\.\d{1,2})?)(?:\s*(?:/|out of)\s*(\d{1,2}(?:\.\d{1,2})?))?",
    re.IGNORECASE,
)
_TEST_SCORE_RES: dict[str, re.Pattern[str]] = {
    "gre": re.compile(r"\bGRE\b[^\d\n]{0,20}(\d{3})\b", re.IGNORECASE),
    "gmat": re.compile(r"\bGMAT\b[^\d\n]{0,20}(\d{3})\b", re.IGNORECASE),
    "toefl": re.compile(r"\bTOEFL\b[^\d\n]{0,20}(\d{2,3})\b", re.IGNORECASE),
    "ielts": re.compile(r"\bIELTS\b[^\d\n]{0,20}(\d(?:\.\d)?)\b", re.IGNORECASE),
}
_DEGREE_RE = re.compile(
    r"\b(Bachelor(?:'s)?(?: of [A-Z][a-z]+)?|Master(?:'s)?(?: of [A-Z][a-z]+)?|B\.?Sc?\.?|M\.?Sc?\.?|B\.?Eng\.?|M\.?Eng\.?|B\.?Tech|M\.?Tech|Ph\.?D\.?|MBA)"
    r"(?:\s+(?:in|of)\s+([A-Z][A-Za-z&,\- ]{2,60}))?",
)
_BULLET_RE = re.compile(r"^\s*(?:[•◦▪●■◆▶►\-–—*·]|\d+[.)])\s+")
_SKILL_SPLIT_RE = re.compile(r"[,;|•·\n]+")
_PUBLICATION_RE = re.compile(r"\b(proceedings|journal|conference|arxiv|published|workshop|doi)\b", re.IGNORECASE)
_AWARD_RE = re.compile(r"\b(award|scholarship|prize|honou?r|dean'?s list|fellowship|medal)\b", re.IGNORECASE)
_INSTITUTION_RE = re.compile(r"\b((?:University|Institute|College)\b[A-Za-z ,&.-]{0,60}|[A-Z][A-Za-z&.-]*(?: [A-Z][A-Za-z&.-]*)* (?:University|Institute of Technology|College))")


def _content_lines(block: str | None) -> list[str]:
    lines: list[str] = []
    for raw in (block or "").splitlines():
        line = raw.strip()
        if not line or is_marker_line(line):
            continue
        lines.append(_BULLET_RE.sub("", line).strip())
    return [line for line in lines if line]


def _extract_gpa(text: str) -> float | None:
    match = _GPA_RE.search(text)
    if not match:
        return None
    value = float(match.group(1))
    scale = float(match.group(2)) if match.group(2) else None
    if scale and scale > 0 and scale != 4.0:
        value = value / scale * 4.0
    if value <= 0 or value > 4.0:
        return None
    return round(value, 2)


def _extract_test_scores(text: str) -> dict[str, float]:
    scores: dict[str, float] = {}
    for name, pattern in _TEST_SCORE_RES.items():
        match = pattern.search(text)
        if match:
            scores[name] = float(match.group(1))
    return scores


def _extract_skills(block: str | None) -> list[str]:
    skills: list[str] = []
    for line in _content_lines(block):
        if ":" in line:
            line = line.split(":", 1)[1]
        for piece in _SKILL_SPLIT_RE.split(line):
            skill = piece.strip(" .")
            if skill and len(skill) <= 40:
                skills.append(skill)
    return unique_terms(skills)


def _research_areas(text: str) -> list[str]:
    lowered = text.lower()
    return [keyword for keyword in RESEARCH_KEYWORDS if keyword in lowered]


def heuristic_extraction(document: ParsedDocument) -> CVExtraction:
    """Deterministic extraction used when the model is disabled or fails."""
    text = document.text
    sections = document.sections
    education = sections.education if sections else None
    degree_source = education or text
    degree_match = _DEGREE_RE.search(degree_source)
    institution_match = _INSTITUTION_RE.search(degree_source)
    all_lines = _content_lines(text)

    return CVExtraction(
        gpa=_extract_gpa(text),
        degree=degree_match.group(1).strip() if degree_match else None,
        field_of_study=(degree_match.group(2) or "").strip(" ,-") or None if degree_match else None,
        institution=institution_match.group(1).strip(" ,") if institution_match else None,
        test_scores=_extract_test_scores(text),
        research_areas=_research_areas(text),
        technical_skills=_extract_skills(sections.skills if sections else None),
        publications=unique_terms([line for line in all_lines if _PUBLICATION_RE.search(line)]),
        projects=_content_lines(sections.projects if sections else None),
        experience=_content_lines(sections.experience if sections else None),
        awards=unique_terms([line for line in all_lines if _AWARD_RE.search(line)]),
        source="heuristic",
    )


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        return []
    items: list[str] = []
    for item in value:
        if isinstance(item, str):
            items.append(item)
        elif isinstance(item, dict):
            # Models sometimes return objects; keep the most descriptive string field.
            for key in ("title", "name", "description", "role"):
                if isinstance(item.get(key), str):
                    items.append(item[key])
                    break
    return unique_terms(items)


def _as_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def extraction_from_payload(payload: dict[str, Any]) -> CVExtraction:
    gpa = _as_float(payload.get("gpa"))
    if gpa is not None and not 0 < gpa <= 10:
        gpa = None
    raw_scores = payload.get("test_scores") if isinstance(payload.get("test_scores"), dict) else {}
    test_scores = {
        str(name).lower(): score
        for name, score in ((name, _as_float(value)) for name, value in raw_scores.items())
        if score is not None
    }
    return CVExtraction(
        gpa=gpa,
        degree=payload.get("degree") if isinstance(payload.get("degree"), str) else None,
        field_of_study=payload.get("field_of_study") if isinstance(payload.get("field_of_study"), str) else None,
        institution=payload.get("institution") if isinstance(payload.get("institution"), str) else None,
        test_scores=test_scores,
        research_areas=_as_list(payload.get("research_areas")),
        technical_skills=_as_list(payload.get("technical_skills")),
        publications=_as_list(payload.get("publications")),
        projects=_as_list(payload.get("projects")),
        experience=_as_list(payload.get("experience")),
        awards=_as_list(payload.get("awards")),
        source="llm",
    )


def extract_cv_profile(document: ParsedDocument, *, use_llm: bool = True) -> CVExtraction:
    """Structured CV facts, from the model when available, heuristics otherwise."""
    if use_llm:
        payload = json_completion(
            system_prompt=CV_EXTRACTION_SYSTEM_PROMPT,
            user_prompt=(
                "Extract the candidate's academic profile from this CV.\n"
                f"Return JSON shaped like:\n{CV_EXTRACTION_SCHEMA_HINT}\n\n"
                f"CV:\n{document.text[:MAX_CV_PROMPT_CHARS]}"
            ),
            purpose="cv_extraction",
        )
        if payload:
            try:
                return extraction_from_payload(payload)
            except ValueError as exc:
                logger.warning("cv_extraction_payload_invalid: %s", exc)

    extraction = heuristic_extraction(document)
    logger.info(
        "cv_extraction_heuristic gpa=%s skills=%s projects=%s",
        extraction.gpa,
        len(extraction.technical_skills),
        len(extraction.projects),
    )
    return extraction
