"""Data models for the remote content pipeline and navigation tree"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- declared document tree (external input) ---

class DocumentTreeNode(BaseModel):
    """One declared entry; structural when it has children but no path."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    title:    str
    path:     Optional[str] = None
    children: list["DocumentTreeNode"] = Field(default_factory=list, alias="sub_documents")

    @field_validator("children", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value


class ProjectDetails(BaseModel):
    model_config = ConfigDict(frozen=True)
    name:        str
    description: str = ""


class ProjectConfig(BaseModel):
    """Structurally valid project config; ``documents`` keeps declared key order."""
    model_config = ConfigDict(frozen=True)
    project:   ProjectDetails
    documents: dict[str, DocumentTreeNode] = Field(default_factory=dict)


# --- remote repository ---

class EntryKind(str, Enum):
    file = "file"
    dir = "dir"
    other = "other"     # symlinks, submodules


class RepositoryEntry(BaseModel):
    """A single-level directory listing entry."""
    model_config = ConfigDict(frozen=True)
    path: str
    name: str
    kind: EntryKind
    size: Optional[int] = None

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.file

    @property
    def is_dir(self) -> bool:
        return self.kind == EntryKind.dir


class Quota(BaseModel):
    model_config = ConfigDict(frozen=True)
    remaining: int
    reset_at:  datetime
    limit:     Optional[int] = None


# --- pipeline stages ---

class DiscoveredFile(BaseModel):
    """A candidate path and the config key or pattern that produced it."""
    model_config = ConfigDict(frozen=True)
    path:           str
    origin:         str
    estimated_size: Optional[int] = None


@dataclass(frozen=True)
class ValidationResult:
    """Accumulated findings for one file; errors drop the file, warnings travel with it."""
    errors:   list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class ValidatedFile:
    """Fetched content split into front matter and body; internal, not persisted."""
    discovered:  DiscoveredFile
    raw_content: str                # full remote content (includes front matter)
    frontmatter: dict[str, str]
    body:        str                # front matter stripped
    warnings:    list[str] = field(default_factory=list)


class Heading(BaseModel):
    model_config = ConfigDict(frozen=True)
    level:  int = Field(..., ge=1, le=6)
    text:   str
    anchor: str


class Link(BaseModel):
    model_config = ConfigDict(frozen=True)
    text:        str
    url:         str
    is_internal: bool
    is_valid:    Optional[bool] = None     # not checked by this pipeline


class Image(BaseModel):
    model_config = ConfigDict(frozen=True)
    alt_text:    str
    url:         str
    is_internal: bool


class CodeBlock(BaseModel):
    model_config = ConfigDict(frozen=True)
    language:   Optional[str] = None
    content:    str
    line_count: int


class ProcessedDocument(BaseModel):
    """Terminal record of the pipeline, one per source file."""
    model_config = ConfigDict(frozen=True)
    file_path:              str
    title:                  str
    body:                   str
    frontmatter:            dict[str, str] = Field(default_factory=dict)
    word_count:             int
    headings:               list[Heading] = Field(default_factory=list)
    links:                  list[Link] = Field(default_factory=list)
    images:                 list[Image] = Field(default_factory=list)
    code_blocks:            list[CodeBlock] = Field(default_factory=list)
    processed_at:           datetime
    processing_duration_ms: float = Field(..., ge=0)
    warnings:               list[str] = Field(default_factory=list)
    quality_score:          float = Field(..., ge=0.0, le=1.0)


class PipelineResult(BaseModel):
    """Documents from one run plus run-level timing."""
    repository:         str
    documents:          list[ProcessedDocument]
    discovered_count:   int
    validated_count:    int
    started_at:         datetime
    finished_at:        datetime
    duration_ms:        float
    stage_durations_ms: dict[str, float] = Field(default_factory=dict)


# --- navigation ---

class NavNode(BaseModel):
    """A navigation entry; ``url`` is None for purely structural sections."""
    title:    str
    url:      Optional[str] = None
    children: list["NavNode"] = Field(default_factory=list)


class NavigationArtifact(BaseModel):
    tree: NavNode
    html: str
