"""
skillpack: loader, linter and packager for Markdown skill bundles.

A skill bundle is a tree of SKILL.md files with YAML front matter and
on-demand references/ documents, consumed by an AI coding assistant.
This package indexes such bundles, checks their integrity and builds
distribution archives and marketplace catalogues for them.
"""

__version__ = "1.0.0"

from .errors import (
    SkillpackError,
    FrontmatterError,
    SkillParseError,
    SkillNotFoundError,
    ReferenceNotFoundError,
    DuplicateSkillError,
    ManifestError,
    ConfigError,
)
from .models import (
    SkillFrontmatter,
    ReferenceFile,
    Skill,
    SkillBundle,
    BundleDoc,
    LoadError,
    MarketplaceEntry,
    MarketplaceManifest,
)
from .loader import SkillLoader, SkillIndex, SkillMatch

__all__ = [
    "__version__",
    "SkillpackError",
    "FrontmatterError",
    "SkillParseError",
    "SkillNotFoundError",
    "ReferenceNotFoundError",
    "DuplicateSkillError",
    "ManifestError",
    "ConfigError",
    "SkillFrontmatter",
    "ReferenceFile",
    "Skill",
    "SkillBundle",
    "BundleDoc",
    "LoadError",
    "MarketplaceEntry",
    "MarketplaceManifest",
    "SkillLoader",
    "SkillIndex",
    "SkillMatch",
]
