from .cv_validator import (
    DATE_RULES,
    KEYWORD_RULES,
    STRUCTURE_RULES,
    PatternRule,
    ValidationResult,
    score_cv_content,
    validate_cv_content,
)

__all__ = [
    "PatternRule",
    "KEYWORD_RULES",
    "DATE_RULES",
    "STRUCTURE_RULES",
    "ValidationResult",
    "score_cv_content",
    "validate_cv_content",
]
