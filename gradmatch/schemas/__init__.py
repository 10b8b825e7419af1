from .catalog import Catalog, FacultyMember, ProgramCatalogEntry, UniversityRecord
from .match import FacultyMatch, FactorScores, MatchingRun, MatchResult, OrchestratorState
from .profile import CandidateProfile, CVExtraction, Preferences, StoredAcademicProfile

__all__ = [
    "Catalog",
    "FacultyMember",
    "ProgramCatalogEntry",
    "UniversityRecord",
    "FacultyMatch",
    "FactorScores",
    "MatchingRun",
    "MatchResult",
    "OrchestratorState",
    "CandidateProfile",
    "CVExtraction",
    "Preferences",
    "StoredAcademicProfile",
]
