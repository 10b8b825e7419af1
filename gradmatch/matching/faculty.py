from __future__ import annotations

import logging

from gradmatch.core.config.scoring import get_scoring_int
from gradmatch.schemas.catalog import Catalog, FacultyMember
from gradmatch.schemas.match import FacultyMatch, MatchResult
from gradmatch.schemas.profile import CandidateProfile, unique_terms

from .reasoning import faculty_match_reason
from .text import matched_terms

logger = logging.getLogger(__name__)


def match_faculty(
    faculty: list[FacultyMember],
    candidate_interests: list[str],
    program_areas: list[str],
    *,
    university_id: str,
    program_id: str | None = None,
    include_not_accepting: bool = False,
    limit: int | None = None,
) -> list[FacultyMatch]:
    """Rank faculty by research-area overlap with the candidate and program.

    Members without any overlap are dropped. Ties keep input order.
    """
    if limit is None:
        limit = get_scoring_int("faculty.per_program_limit", 2)
    terms = unique_terms([*candidate_interests, *program_areas])
    if not terms or limit <= 0:
        return []

    scored: list[tuple[int, FacultyMember]] = []
    for member in faculty:
        if not member.accepting_students and not include_not_accepting:
            continue
        overlap = len(matched_terms(member.research_areas, terms))
        if overlap:
            scored.append((overlap, member))
    scored.sort(key=lambda item: -item[0])

    return [
        FacultyMatch(
            faculty_id=member.faculty_id,
            university_id=university_id,
            program_id=program_id,
            name=member.name,
            match_reason=faculty_match_reason(member.research_areas, candidate_interests),
            accepting_students=member.accepting_students,
            overlap_count=overlap,
        )
        for overlap, member in scored[:limit]
    ]


def faculty_for_matches(
    matches: list[MatchResult],
    catalog: Catalog,
    profile: CandidateProfile,
) -> list[FacultyMatch]:
    """Faculty suggestions for the ranked matches, capped per program and overall."""
    per_program = get_scoring_int("faculty.per_program_limit", 2)
    total_limit = get_scoring_int("faculty.total_limit", 6)
    seen: set[str] = set()
    collected: list[FacultyMatch] = []
    for match in matches:
        if len(collected) >= total_limit:
            break
        university = catalog.university(match.university_id)
        if university is None or not university.faculty:
            continue
        program = catalog.program(match.university_id, match.program_id) if match.program_id else None
        program_areas = program.research_areas if program is not None else university.research_areas
        candidates = [member for member in university.faculty if member.faculty_id not in seen]
        for suggestion in match_faculty(
            candidates,
            profile.research_interests,
            program_areas,
            university_id=match.university_id,
            program_id=match.program_id,
            limit=per_program,
        ):
            if len(collected) >= total_limit:
                break
            seen.add(suggestion.faculty_id)
            collected.append(suggestion)
    logger.debug("faculty_matched count=%s", len(collected))
    return collected
