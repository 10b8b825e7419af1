from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ParseMethod = Literal["pdf", "docx", "doc", "txt", "unknown"]

SECTION_KEYS = ("personal_info", "education", "experience", "skills", "projects", "certifications")


class DocumentMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_count: int | None = None
    word_count: int = Field(ge=0)
    character_count: int = Field(ge=0)
    file_size_bytes: int = Field(ge=0)
    file_name: str
    declared_mime_type: str = ""
    parse_method: ParseMethod = "unknown"


class DocumentSections(BaseModel):
    model_config = ConfigDict(frozen=True)

    personal_info: str | None = None
    education: str | None = None
    experience: str | None = None
    skills: str | None = None
    projects: str | None = None
    certifications: str | None = None

    def present(self) -> list[str]:
        return [key for key in SECTION_KEYS if getattr(self, key)]


class ParsedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    metadata: DocumentMetadata
    sections: DocumentSections | None = None
    parsing_warnings: tuple[str, ...] = ()
