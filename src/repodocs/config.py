"""Application configuration: settings schema, config.yaml loader, and project config readers"""

import os
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from repodocs.core.models import ProjectConfig


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "REPODOCS_"

DEFAULT_PATTERNS = [
    "README.md",
    "CONTRIBUTING.md",
    "CHANGELOG.md",
    "docs/**/*.md",
    "*.md",
    r"regex:^[A-Z]+\.md$",
]


class Settings(BaseModel):
    app_name:            str   = "repodocs"
    github_token:        str   = Field(default="", repr=False, description="Token bound into the remote access layer")
    github_organization: str   = Field(default="",   description="Organization (owner) of the processed repositories")
    api_url:             str   = Field(default="https://api.github.com", description="REST base URL; GraphQL lives at <api_url>/graphql")
    request_timeout:     float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    batch_size:          int   = Field(default=50,   ge=1, description="Paths per batched content query")
    max_retries:         int   = Field(default=3,    ge=0, description="Retries after the first attempt of a remote call")
    quota_buffer:        int   = Field(default=100,  ge=0, description="Sleep until reset when remaining quota is at or below this")
    quota_reset_window:  int   = Field(default=3600, ge=0, description="Only sleep when the quota resets within this many seconds")
    max_workers:         int   = Field(default=1,    ge=1, description="Concurrent batch chunk fetches; 1 is sequential")
    discovery_patterns:  list[str] = Field(default_factory=lambda: list(DEFAULT_PATTERNS))
    config_file:         str   = Field(default="documents.toml", description="Document tree file inside each repository")
    url_prefix:          str   = Field(default="",   description="Prefix prepended to navigation URLs")
    nav_heading_level:   int   = Field(default=0,    ge=0, le=6, description="Max heading level listed under nav entries; 0 disables")
    output_dir:          str   = Field(default="dist", description="Directory for exported JSON and navigation files")

    @field_validator("discovery_patterns", mode="before")
    @classmethod
    def _split_patterns(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [p.strip() for p in value.split(",") if p.strip()]
        return value


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then REPODOCS_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)


def parse_project_config(text: str, fmt: str = "toml") -> ProjectConfig:
    """Parse a document tree from TOML or YAML text; declared document order is preserved."""
    try:
        if fmt == "toml":
            data = tomllib.loads(text)
        elif fmt in ("yaml", "yml"):
            data = yaml.safe_load(text) or {}
        else:
            raise ValueError(f"Unsupported project config format: {fmt}")
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid project config: {e}") from e
    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid project config: {e}") from e


def load_project_config(path: Path) -> ProjectConfig:
    """Read a local documents.toml (or .yaml/.yml) file."""
    return parse_project_config(path.read_text(encoding="utf-8"), path.suffix.lstrip(".").lower())
