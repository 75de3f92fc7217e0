"""
Structure Validation (Layer 4).

Checks the bundle layout rather than individual documents:
- the bundle contains at least one skill
- top-level README.md is present (multi-skill bundles)
- SKILL.md bodies are not empty
- references/ is a directory of Markdown files
- references/ folders are not left without a SKILL.md
- skill names are unique across the bundle
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from ..config import Settings
from ..errors import FrontmatterError
from ..loader import SKIPPED_DIRS
from ..markdown import FrontmatterParser
from ..models import REFERENCES_DIRNAME, SKILL_MD_FILENAME
from .context import LintContext
from .result import WARNING, LayerResult


@dataclass
class StructureValidationResult(LayerResult):
    """Result of structure validation."""

    skills_found: int = 0


class StructureValidator:
    """Validates bundle layout (Layer 4)."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def validate(self, context: LintContext) -> StructureValidationResult:
        result = StructureValidationResult(layer="structure")
        result.skills_found = len(context.skill_dirs)

        if not context.skill_dirs:
            result.add_issue(
                "NO_SKILLS_FOUND",
                context.display(context.root),
                f"No {SKILL_MD_FILENAME} found under bundle root",
            )
            return result

        if (
            self.settings.require_readme
            and not context.root_is_skill
            and not (context.root / "README.md").is_file()
        ):
            result.add_issue(
                "MISSING_README",
                "README.md",
                "Bundle has no top-level README.md",
                severity=WARNING,
            )

        names: Dict[str, List[str]] = {}
        for skill_dir in context.skill_dirs:
            skill_md = skill_dir / SKILL_MD_FILENAME
            display = context.display(skill_md)
            result.files_checked += 1

            content = context.read(skill_md)
            if content is not None:
                try:
                    data, body = FrontmatterParser.parse(content)
                except FrontmatterError:
                    # Layer 1 reports malformed front matter
                    data, body = None, content
                if not body.strip():
                    result.add_issue("EMPTY_BODY", display, "SKILL.md has no content after front matter")
                if data is not None and data.name:
                    names.setdefault(data.name, []).append(display)

            self._check_references_dir(skill_dir, context, result)

        for name, paths in sorted(names.items()):
            if len(paths) > 1:
                for path in paths[1:]:
                    result.add_issue(
                        "DUPLICATE_SKILL_NAME",
                        path,
                        f"Skill name '{name}' is already used by {paths[0]}",
                    )

        self._check_stray_references_dirs(context, result)
        return result

    def _check_references_dir(
        self,
        skill_dir: Path,
        context: LintContext,
        result: StructureValidationResult,
    ) -> None:
        refs = skill_dir / REFERENCES_DIRNAME
        if not refs.exists():
            return

        if not refs.is_dir():
            result.add_issue(
                "REFERENCES_NOT_DIRECTORY",
                context.display(refs),
                f"'{REFERENCES_DIRNAME}' must be a directory",
            )
            return

        has_markdown = False
        for path in sorted(refs.rglob("*")):
            if not path.is_file():
                continue
            if path.suffix.lower() == ".md":
                has_markdown = True
            else:
                result.add_issue(
                    "NON_MARKDOWN_REFERENCE",
                    context.display(path),
                    "Reference folder contains a non-Markdown file",
                    severity=WARNING,
                )

        if not has_markdown:
            result.add_issue(
                "EMPTY_REFERENCES_DIR",
                context.display(refs),
                "Reference folder contains no Markdown files",
                severity=WARNING,
            )

    def _check_stray_references_dirs(
        self,
        context: LintContext,
        result: StructureValidationResult,
    ) -> None:
        skill_dirs = set(context.skill_dirs)
        for dirpath, dirnames, _ in os.walk(context.root):
            dirnames[:] = sorted(
                d for d in dirnames
                if not d.startswith(".") and d not in SKIPPED_DIRS
            )
            if REFERENCES_DIRNAME not in dirnames:
                continue
            parent = Path(dirpath)
            if parent in skill_dirs:
                continue
            # Anything nested inside a skill belongs to that skill
            if any(s in parent.parents for s in skill_dirs):
                continue
            result.add_issue(
                "ORPHAN_REFERENCES_DIR",
                context.display(parent / REFERENCES_DIRNAME),
                f"'{REFERENCES_DIRNAME}' folder has no sibling {SKILL_MD_FILENAME}",
                severity=WARNING,
            )
