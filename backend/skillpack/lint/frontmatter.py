"""
Front Matter Validation (Layer 1).

Every SKILL.md must open with a --- delimited YAML block carrying a
non-empty `name` and `description`. The host assistant decides whether to
load a skill from these two fields alone, so they are checked strictly:

- name present, kebab-case, and matching its directory (warning)
- description present and within configured length bounds (warning)
- no keys outside the allowed set (warning)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..config import Settings
from ..errors import FrontmatterError
from ..markdown import FrontmatterParser
from ..models import KEBAB_CASE_PATTERN, SKILL_MD_FILENAME
from .context import LintContext
from .result import ERROR, WARNING, LayerResult


@dataclass
class FrontmatterValidationResult(LayerResult):
    """Result of front matter validation; `names` maps SKILL.md paths to names."""

    names: Dict[str, str] = field(default_factory=dict)


class FrontmatterValidator:
    """Validates SKILL.md front matter (Layer 1)."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def validate(self, context: LintContext) -> FrontmatterValidationResult:
        """Validate every SKILL.md under the bundle root."""
        result = FrontmatterValidationResult(layer="frontmatter")

        for skill_dir in context.skill_dirs:
            skill_md = skill_dir / SKILL_MD_FILENAME
            display = context.display(skill_md)
            content = context.read(skill_md)
            result.files_checked += 1

            if content is None:
                result.add_issue("UNREADABLE_FILE", display, "File is not valid UTF-8 text")
                continue

            self.validate_content(content, display, skill_dir.name, result)

        return result

    def validate_content(
        self,
        content: str,
        display: str = SKILL_MD_FILENAME,
        directory_name: Optional[str] = None,
        result: Optional[FrontmatterValidationResult] = None,
    ) -> FrontmatterValidationResult:
        """
        Validate the front matter of one SKILL.md.

        Args:
            content: Full file content.
            display: Path used in issue reports.
            directory_name: Name of the containing directory, if known.
            result: Result to append to; a new one is created if omitted.
        """
        if result is None:
            result = FrontmatterValidationResult(layer="frontmatter")

        try:
            data, _ = FrontmatterParser.parse(content)
        except FrontmatterError as e:
            result.add_issue("INVALID_FRONTMATTER", display, str(e), line=1)
            return result

        if not data.present:
            result.add_issue(
                "MISSING_FRONTMATTER",
                display,
                "Missing front matter block (--- ... ---) at top of file",
                line=1,
            )
            return result

        name = data.name
        description = data.description

        if not name:
            result.add_issue("MISSING_NAME", display, "Front matter field 'name' is missing or empty", line=1)
        else:
            result.names[display] = name
            if not KEBAB_CASE_PATTERN.match(name) or len(name) > 64:
                result.add_issue(
                    "INVALID_NAME_FORMAT",
                    display,
                    f"Name '{name}' must be kebab-case and at most 64 characters",
                    line=1,
                )
            elif directory_name and directory_name != name:
                result.add_issue(
                    "NAME_DIRECTORY_MISMATCH",
                    display,
                    f"Name '{name}' does not match directory '{directory_name}'",
                    severity=WARNING,
                    line=1,
                )

        if not description:
            result.add_issue(
                "MISSING_DESCRIPTION",
                display,
                "Front matter field 'description' is missing or empty",
                line=1,
            )
        elif len(description) < self.settings.min_description_length:
            result.add_issue(
                "DESCRIPTION_TOO_SHORT",
                display,
                f"Description is very short (< {self.settings.min_description_length} chars)",
                severity=WARNING,
                line=1,
                suggestion="Say what the skill covers and when it should be loaded",
            )
        elif len(description) > self.settings.max_description_length:
            result.add_issue(
                "DESCRIPTION_TOO_LONG",
                display,
                f"Description is very long (> {self.settings.max_description_length} chars)",
                severity=WARNING,
                line=1,
                suggestion="Move detail into the SKILL.md body or a reference file",
            )

        allowed = set(self.settings.allowed_frontmatter_keys)
        for key in data.raw:
            if str(key) not in allowed:
                result.add_issue(
                    "UNKNOWN_FRONTMATTER_KEY",
                    display,
                    f"Unknown front matter key '{key}'",
                    severity=WARNING,
                    line=1,
                    suggestion=f"Allowed keys: {', '.join(sorted(allowed))}",
                )

        return result


def validate_skill_md(path: Path, settings: Optional[Settings] = None) -> FrontmatterValidationResult:
    """
    Convenience function to check the front matter of a single SKILL.md.

    Args:
        path: Path to the SKILL.md file.
        settings: Optional settings for length bounds and allowed keys.
    """
    validator = FrontmatterValidator(settings)
    result = FrontmatterValidationResult(layer="frontmatter", files_checked=1)
    if not path.is_file():
        result.add_issue("FILE_NOT_FOUND", str(path), f"File not found: {path}")
        return result
    content = path.read_text(encoding="utf-8")
    return validator.validate_content(content, str(path), path.parent.name, result)
