from __future__ import annotations

import logging
from typing import TypeVar

from gradmatch.schemas.profile import (
    CandidateProfile,
    CVExtraction,
    Preferences,
    StoredAcademicProfile,
    unique_terms,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _first_present(*values: T | None) -> T | None:
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _union(*groups: list[str] | None) -> list[str]:
    merged: list[str] = []
    for group in groups:
        merged.extend(group or [])
    return unique_terms(merged)


def _merge_scores(*sources: dict[str, float] | None) -> dict[str, float]:
    # Earlier sources win per key; later ones only fill gaps.
    merged: dict[str, float] = {}
    for source in sources:
        for key, value in (source or {}).items():
            name = str(key).strip().lower()
            if name and name not in merged and value is not None:
                merged[name] = value
    return merged


def _merge_preferences(stored: Preferences | None, declared: Preferences) -> Preferences:
    stored = stored or Preferences()
    return Preferences(
        countries=_union(stored.countries, declared.countries),
        locations=_union(stored.locations, declared.locations),
        university_types=_union(stored.university_types, declared.university_types),
        max_tuition=_first_present(stored.max_tuition, declared.max_tuition),
        min_admission_rate=_first_present(stored.min_admission_rate, declared.min_admission_rate),
    )


def enhance_profile(
    base: CandidateProfile,
    cv_extraction: CVExtraction | None = None,
    stored_profile: StoredAcademicProfile | None = None,
) -> CandidateProfile:
    """Merge CV facts, the stored academic record and declared data into one profile.

    Precedence is CV extraction, then stored profile, then ``base``. List fields are
    unioned in that order and de-duplicated case-insensitively, so applying the same
    sources twice yields the same profile. Inputs are never modified.
    """
    cv = cv_extraction or CVExtraction()
    stored = stored_profile or StoredAcademicProfile()

    target_degree = _first_present(
        stored.target_degree,
        base.target_degree,
        cv.field_of_study,
        stored.current_field,
    )

    enhanced = CandidateProfile(
        gpa=_first_present(cv.gpa, stored.gpa, base.gpa),
        test_scores=_merge_scores(cv.test_scores, stored.test_scores, base.test_scores),
        research_interests=_union(cv.research_areas, stored.research_interests, base.research_interests),
        target_degree=target_degree or "",
        preferences=_merge_preferences(stored.preferences, base.preferences),
        publications=_union(cv.publications, base.publications),
        projects=_union(cv.projects, base.projects),
        experience=_union(cv.experience, base.experience),
        technical_skills=_union(cv.technical_skills, stored.technical_skills, base.technical_skills),
        awards=_union(cv.awards, base.awards),
    )
    logger.debug(
        "profile_enhanced gpa=%s interests=%s skills=%s publications=%s",
        enhanced.gpa,
        len(enhanced.research_interests),
        len(enhanced.technical_skills),
        len(enhanced.publications),
    )
    return enhanced
