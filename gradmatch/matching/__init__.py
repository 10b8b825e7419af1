from .faculty import faculty_for_matches, match_faculty
from .resolution import resolve_program, resolve_university
from .scoring import (
    determine_category,
    is_program_relevant,
    score_all,
    score_program,
    score_university_only,
)

__all__ = [
    "determine_category",
    "faculty_for_matches",
    "is_program_relevant",
    "match_faculty",
    "resolve_program",
    "resolve_university",
    "score_all",
    "score_program",
    "score_university_only",
]
