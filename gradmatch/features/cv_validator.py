from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from gradmatch.core.config.scoring import get_scoring_int, get_scoring_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternRule:
    name: str
    pattern: re.Pattern[str]
    weight: int


def _rule(name: str, pattern: str, weight: int, flags: int = re.IGNORECASE) -> PatternRule:
    return PatternRule(name=name, pattern=re.compile(pattern, flags), weight=weight)


# Each keyword category awards min(weight, distinct_matches * 2).
KEYWORD_RULES: tuple[PatternRule, ...] = (
    _rule("CV header", r"\b(resume|curriculum\s+vitae|cv|portfolio)\b", 15),
    _rule(
        "Education",
        r"\b(education|educational|academic|degree|university|college|school|bachelor|master|phd"
        r"|diploma|gpa|grade|studying|student)\b",
        20,
    ),
    _rule(
        "Experience",
        r"\b(experience|work|employment|job|position|role|company|organization|employer|worked"
        r"|intern|internship|volunteer)\b",
        20,
    ),
    _rule(
        "Skills",
        r"\b(skills|skill|abilities|competencies|technical|programming|languages|proficient"
        r"|experienced|familiar|knowledge)\b",
        20,
    ),
    _rule(
        "Contact info",
        r"\b(email|phone|telephone|mobile|address|contact|linkedin|github|website|location|city|state)\b",
        15,
    ),
    _rule(
        "Achievements",
        r"\b(project|research|publication|paper|article|certification|certificate|award|achievement"
        r"|honor|scholarship)\b",
        15,
    ),
    _rule(
        "Job titles",
        r"\b(manager|engineer|developer|analyst|consultant|director|coordinator|assistant|specialist"
        r"|technician|architect|designer)\b",
        10,
    ),
    _rule(
        "Technical terms",
        r"\b(software|programming|coding|development|database|web|mobile|cloud|machine\s+learning|ai"
        r"|artificial|data\s+science)\b",
        10,
    ),
    _rule(
        "Action verbs",
        r"\b(led|managed|developed|created|implemented|designed|analyzed|collaborated|achieved"
        r"|improved|increased|decreased)\b",
        10,
    ),
)

# Each date rule awards min(weight, matches).
DATE_RULES: tuple[PatternRule, ...] = (
    _rule("Years", r"\b(?:19|20)\d{2}\b", 5),
    _rule("Month-Year dates", r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*[\s,.-]+(?:19|20)\d{2}\b", 8),
    _rule("Date formats", r"\b\d{1,2}[/.-]\d{1,2}[/.-](?:19|20)?\d{2}\b", 6),
    _rule("Current positions", r"\b(?:present|current|ongoing|now|today)\b", 5),
    _rule("Date ranges", r"\b(?:from|to|since|until|during|between)\s+(?:19|20)\d{2}\b", 7),
)

# Each structure rule awards min(weight, ceil(matches / 2)).
STRUCTURE_RULES: tuple[PatternRule, ...] = (
    _rule("Bullet points", r"\n\s*[-•·*]\s*", 5, flags=0),
    _rule("Section headers", r"[A-Z][A-Z\s]{2,}:", 8, flags=0),
    _rule("Proper names", r"\b[A-Z][a-z]+\s[A-Z][a-z]+\b", 5, flags=0),
    _rule("Metrics/numbers", r"\b\d+(?:[+%-]|\s)", 3, flags=0),
)


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    confidence: int = Field(ge=0, le=100)
    reasons: tuple[str, ...] = ()


def _keyword_band(text: str, reasons: list[str]) -> int:
    score = 0
    for rule in KEYWORD_RULES:
        distinct = {re.sub(r"\s+", " ", match.group(0).lower()) for match in rule.pattern.finditer(text)}
        if not distinct:
            continue
        score += min(rule.weight, len(distinct) * 2)
        reasons.append(f"Contains {rule.name} keywords ({len(distinct)} distinct)")
    return score


def _date_band(text: str, reasons: list[str]) -> int:
    score = 0
    for rule in DATE_RULES:
        count = sum(1 for _ in rule.pattern.finditer(text))
        if not count:
            continue
        score += min(rule.weight, count)
        reasons.append(f"Contains {rule.name} ({count} found)")
    return score


def _structure_band(text: str, reasons: list[str]) -> int:
    score = 0
    for rule in STRUCTURE_RULES:
        count = sum(1 for _ in rule.pattern.finditer(text))
        if not count:
            continue
        score += min(rule.weight, math.ceil(count / 2))
        reasons.append(f"Contains {rule.name} formatting")
    return score


def _length_bonus(text: str, reasons: list[str]) -> int:
    min_length = get_scoring_int("validation.length_bonus.min_length", 100)
    chars_per_point = max(1, get_scoring_int("validation.length_bonus.chars_per_point", 50))
    max_points = get_scoring_int("validation.length_bonus.max_points", 20)
    if len(text) <= min_length:
        return 0
    reasons.append(f"Adequate content length ({len(text)} chars)")
    return min(max_points, len(text) // chars_per_point)


def score_cv_content(text: str) -> tuple[int, list[str]]:
    reasons: list[str] = []
    score = _keyword_band(text, reasons)
    score += _length_bonus(text, reasons)
    score += _date_band(text, reasons)
    score += _structure_band(text, reasons)
    return score, reasons


def validate_cv_content(text: str) -> ValidationResult:
    """Score how CV-like a text is. Pure; never raises on string input."""
    text = text or ""
    score, reasons = score_cv_content(text)

    min_score = get_scoring_int("validation.min_score", 15)
    min_length = get_scoring_int("validation.min_length", 150)
    floor = get_scoring_int("validation.confidence_floor", 20)
    is_valid = score >= min_score or len(text) >= min_length
    confidence = min(max(score, floor), 100)

    failsafe_enabled = bool(get_scoring_value("validation.failsafe_enabled", True))
    failsafe_length = get_scoring_int("validation.failsafe_length", 200)
    if not is_valid and failsafe_enabled and len(text) > failsafe_length:
        logger.info("cv_validation_forced_pass score=%s length=%s", score, len(text))
        return ValidationResult(
            is_valid=True,
            confidence=min(max(get_scoring_int("validation.failsafe_confidence", 60), floor), 100),
            reasons=tuple([*reasons, "Adequate content for analysis"]),
        )

    if not is_valid:
        logger.info("cv_validation_failed score=%s/%s length=%s/%s", score, min_score, len(text), min_length)
    return ValidationResult(is_valid=is_valid, confidence=confidence, reasons=tuple(reasons))
