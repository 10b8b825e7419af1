from __future__ import annotations

import re

from gradmatch.core.session_cache import MatchingSessionCache
from gradmatch.schemas.catalog import ProgramCatalogEntry, UniversityRecord

from .scoring import is_generic_graduate_program
from .text import contains_either

# Abbreviation -> alternatives; an alternative matches when all of its fragments occur in the name.
KNOWN_ABBREVIATIONS: dict[str, tuple[tuple[str, ...], ...]] = {
    "ucsd": (("university of california", "san diego"), ("uc san diego",)),
    "ucla": (("university of california", "los angeles"), ("uc los angeles",)),
    "berkeley": (("university of california", "berkeley"), ("uc berkeley",)),
    "uc berkeley": (("university of california", "berkeley"),),
    "stanford": (("stanford",),),
    "mit": (("massachusetts institute",), ("m.i.t",)),
    "caltech": (("california institute of technology",),),
    "cmu": (("carnegie mellon",),),
    "eth": (("eth zurich",), ("swiss federal institute of technology", "zurich")),
    "eth zurich": (("swiss federal institute of technology", "zurich"),),
    "epfl": (("lausanne",), ("epfl",)),
    "nus": (("national university of singapore",),),
    "ntu": (("nanyang technological",),),
    "uiuc": (("university of illinois", "urbana"),),
    "gatech": (("georgia institute of technology",),),
    "georgia tech": (("georgia institute of technology",),),
}

_SPACE_RE = re.compile(r"\s+")


def _normalize(value: str | None) -> str:
    return _SPACE_RE.sub(" ", (value or "").strip().lower())


def _contains_phrase(haystack: str, needle: str) -> bool:
    return bool(re.search(rf"(?<!\w){re.escape(needle)}(?!\w)", haystack))


def _matches_abbreviation(term: str, name: str) -> bool:
    for fragments in KNOWN_ABBREVIATIONS.get(term, ()):
        if all(fragment in name for fragment in fragments):
            return True
    return False


def _matches_words(term: str, name: str) -> bool:
    search_words = [word for word in term.split(" ") if len(word) > 1]
    name_words = [word for word in name.split(" ") if len(word) > 1]
    if not search_words or not name_words:
        return False
    return all(any(contains_either(word, candidate) for candidate in name_words) for word in search_words)


def _find_university(term: str, universities: list[UniversityRecord]) -> UniversityRecord | None:
    names = [(_normalize(university.name), university) for university in universities]
    for name, university in names:
        if name == term:
            return university
    for name, university in names:
        if _contains_phrase(name, term) or _contains_phrase(term, name):
            return university
    for name, university in names:
        if _matches_abbreviation(term, name):
            return university
    for name, university in names:
        if _matches_words(term, name):
            return university
    return None


def resolve_university(
    name: str | None,
    universities: list[UniversityRecord],
    *,
    cache: MatchingSessionCache | None = None,
) -> UniversityRecord | None:
    """Find the catalog university an externally supplied name refers to."""
    term = _normalize(name)
    if not term:
        return None
    if cache is None:
        return _find_university(term, universities)
    return cache.get_or_compute("university_name", term, lambda: _find_university(term, universities))


def resolve_program(
    name: str | None,
    programs: list[ProgramCatalogEntry],
    *,
    target_degree: str = "",
) -> ProgramCatalogEntry | None:
    """Catalog program a recommendation names, or a best guess when no name was given.

    A name that matches nothing returns None so the caller keeps the match provisional.
    """
    if not programs:
        return None
    term = _normalize(name)
    if term:
        return next((program for program in programs if contains_either(program.program_name, term)), None)
    if target_degree:
        for program in programs:
            if contains_either(program.department, target_degree) or contains_either(
                program.field_of_study, target_degree
            ):
                return program
    for program in programs:
        if is_generic_graduate_program(program):
            return program
    return programs[0]
