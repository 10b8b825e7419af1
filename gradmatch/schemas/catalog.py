from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FacultyMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    faculty_id: str
    name: str
    title: str | None = None
    email: str | None = None
    research_areas: list[str] = Field(default_factory=list)
    accepting_students: bool = True
    profile_url: str | None = None


class UniversityRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    university_id: str
    name: str
    country: str | None = None
    city: str | None = None
    state_province: str | None = None
    university_type: str | None = None
    acceptance_rate: float | None = Field(default=None, ge=0.0, le=1.0)
    ranking_scores: dict[str, int] = Field(default_factory=dict)
    research_areas: list[str] = Field(default_factory=list)
    departments: list[str] = Field(default_factory=list)
    faculty: list[FacultyMember] = Field(default_factory=list)


class ProgramCatalogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    university_id: str
    program_id: str
    program_name: str = ""
    degree_type: str = "masters"
    field_of_study: str = ""
    department: str | None = None
    research_areas: list[str] = Field(default_factory=list)
    min_gpa: float | None = Field(default=None, ge=0.0, le=10.0)
    tuition_annual: float | None = Field(default=None, ge=0.0)
    admission_rate: float | None = Field(default=None, ge=0.0, le=1.0)
    ranking_scores: dict[str, int] = Field(default_factory=dict)


class Catalog(BaseModel):
    """Read-only snapshot of universities and their programs."""

    model_config = ConfigDict(frozen=True)

    universities: list[UniversityRecord] = Field(default_factory=list)
    programs: list[ProgramCatalogEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _inherit_rankings(self) -> "Catalog":
        by_id = {university.university_id: university for university in self.universities}
        programs: list[ProgramCatalogEntry] = []
        changed = False
        for program in self.programs:
            parent = by_id.get(program.university_id)
            if parent is not None and not program.ranking_scores and parent.ranking_scores:
                program = program.model_copy(update={"ranking_scores": dict(parent.ranking_scores)})
                changed = True
            programs.append(program)
        if changed:
            object.__setattr__(self, "programs", programs)
        return self

    def is_empty(self) -> bool:
        return not self.universities and not self.programs

    def university(self, university_id: str) -> UniversityRecord | None:
        for record in self.universities:
            if record.university_id == university_id:
                return record
        return None

    def programs_for(self, university_id: str) -> list[ProgramCatalogEntry]:
        return [program for program in self.programs if program.university_id == university_id]

    def program(self, university_id: str, program_id: str) -> ProgramCatalogEntry | None:
        for entry in self.programs:
            if entry.university_id == university_id and entry.program_id == program_id:
                return entry
        return None
