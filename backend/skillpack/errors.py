"""
Exception types raised by skillpack.

Validators report content problems as issues on their result objects;
these exceptions are reserved for callers that asked for a specific
skill, reference or file and could not get it.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional


class SkillpackError(Exception):
    """Base class for all skillpack errors."""


class FrontmatterError(SkillpackError):
    """Front matter block exists but is not valid YAML mapping."""


class SkillParseError(SkillpackError):
    """A skill file (SKILL.md or a reference) could not be read or parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class SkillNotFoundError(SkillpackError):
    """No skill with the requested name exists in the index."""

    def __init__(self, name: str, suggestions: Optional[List[str]] = None):
        self.name = name
        self.suggestions = suggestions or []
        message = f"Skill not found: {name}"
        if self.suggestions:
            message += f" (did you mean: {', '.join(self.suggestions)}?)"
        super().__init__(message)


class ReferenceNotFoundError(SkillpackError):
    """A reference file could not be resolved inside a skill."""

    def __init__(self, skill_name: str, reference: str):
        self.skill_name = skill_name
        self.reference = reference
        super().__init__(f"Reference '{reference}' not found in skill '{skill_name}'")


class DuplicateSkillError(SkillpackError):
    """Two skill directories declare the same name."""

    def __init__(self, name: str, paths: List[Path]):
        self.name = name
        self.paths = paths
        joined = ", ".join(str(p) for p in paths)
        super().__init__(f"Duplicate skill name '{name}': {joined}")


class ManifestError(SkillpackError):
    """marketplace.json is missing, unreadable or malformed."""


class ConfigError(SkillpackError):
    """.skillpack.yaml exists but cannot be used."""
