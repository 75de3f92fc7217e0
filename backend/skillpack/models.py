"""
Pydantic models for skill bundles.

A bundle root holds one directory per skill. Each skill directory has a
SKILL.md with YAML front matter and an optional references/ folder of
Markdown files that are loaded on demand.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


KEBAB_CASE_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
SKILL_MD_FILENAME = "SKILL.md"
REFERENCES_DIRNAME = "references"
BUNDLE_DOC_FILENAMES = ("README.md", "OVERVIEW.md", "QUICKSTART.md")
DEFAULT_SKILL_VERSION = "1.0.0"


class SkillFrontmatter(BaseModel):
    """Front matter block at the top of a SKILL.md file."""

    name: str = Field(..., min_length=1, max_length=64)
    description: str = Field(..., min_length=1)
    extra: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not KEBAB_CASE_PATTERN.match(v):
            raise ValueError(f"name must be kebab-case (lowercase, digits, hyphens): {v!r}")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("description must not be blank")
        return v

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "SkillFrontmatter":
        """Build from a parsed YAML mapping, keeping unknown keys in extra."""
        name = raw.get("name")
        description = raw.get("description")
        extra = {k: v for k, v in raw.items() if k not in ("name", "description")}
        return cls(
            name="" if name is None else str(name),
            description="" if description is None else str(description),
            extra=extra,
        )

    @property
    def version(self) -> Optional[str]:
        """Version from `version` or `metadata.version`, if declared."""
        version = self.extra.get("version")
        if version is None:
            metadata = self.extra.get("metadata")
            if isinstance(metadata, dict):
                version = metadata.get("version")
        return str(version) if version is not None else None


class ReferenceFile(BaseModel):
    """A reference document under a skill's references/ folder."""

    name: str
    path: str
    title: str
    size: int = 0

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith(f"{REFERENCES_DIRNAME}/"):
            raise ValueError(f"reference path must live under {REFERENCES_DIRNAME}/: {v!r}")
        return v


class Skill(BaseModel):
    """A loaded skill: parsed front matter, body and reference listing."""

    frontmatter: SkillFrontmatter
    directory: Path
    body: str = ""
    references: List[ReferenceFile] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.frontmatter.name

    @property
    def description(self) -> str:
        return self.frontmatter.description

    @property
    def version(self) -> str:
        return self.frontmatter.version or DEFAULT_SKILL_VERSION

    @property
    def skill_md_path(self) -> Path:
        return self.directory / SKILL_MD_FILENAME

    def get_reference(self, name_or_path: str) -> Optional[ReferenceFile]:
        """Find a reference by stem, file name or relative path."""
        wanted = name_or_path.strip()
        if wanted.startswith("./"):
            wanted = wanted[2:]
        for ref in self.references:
            if wanted in (ref.name, ref.path, ref.path[len(REFERENCES_DIRNAME) + 1:]):
                return ref
        return None


class BundleDoc(BaseModel):
    """Top-level document shipped alongside the skills (README.md etc.)."""

    name: str
    path: Path


class LoadError(BaseModel):
    """A skill directory that could not be loaded."""

    path: Path
    reason: str


class SkillBundle(BaseModel):
    """All skills found under a bundle root."""

    root: Path
    skills: List[Skill] = Field(default_factory=list)
    docs: List[BundleDoc] = Field(default_factory=list)
    load_errors: List[LoadError] = Field(default_factory=list)

    def skill_names(self) -> List[str]:
        return [s.name for s in self.skills]


class MarketplaceOwner(BaseModel):
    name: str
    email: Optional[str] = None


class MarketplaceEntry(BaseModel):
    """One plugin in marketplace.json; each skill is published as a plugin."""

    model_config = ConfigDict(extra="allow")

    name: str
    description: str = ""
    source: str
    version: Optional[str] = None
    skills: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not KEBAB_CASE_PATTERN.match(v):
            raise ValueError(f"plugin name must be kebab-case: {v!r}")
        return v


class MarketplaceMetadata(BaseModel):
    description: str = ""
    version: str = DEFAULT_SKILL_VERSION


class MarketplaceManifest(BaseModel):
    """The marketplace.json catalogue used to distribute a bundle."""

    model_config = ConfigDict(extra="allow")

    name: str
    owner: MarketplaceOwner
    metadata: MarketplaceMetadata = Field(default_factory=MarketplaceMetadata)
    plugins: List[MarketplaceEntry] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not KEBAB_CASE_PATTERN.match(v):
            raise ValueError(f"marketplace name must be kebab-case: {v!r}")
        return v

    @field_validator("plugins")
    @classmethod
    def validate_unique_plugins(cls, v: List[MarketplaceEntry]) -> List[MarketplaceEntry]:
        seen = set()
        for entry in v:
            if entry.name in seen:
                raise ValueError(f"duplicate plugin name: {entry.name}")
            seen.add(entry.name)
        return v
