"""
Reference Validation (Layer 2).

Checks links from a skill's Markdown into its references/ folder:
- every references/ path mentioned in SKILL.md or a reference file exists
- every reference file is mentioned somewhere else in the skill (orphans)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import get_close_matches
from pathlib import Path
from typing import List, Set

from ..errors import FrontmatterError
from ..markdown import FrontmatterParser, extract_reference_links
from ..models import REFERENCES_DIRNAME, SKILL_MD_FILENAME
from .context import LintContext
from .result import WARNING, LayerResult


@dataclass
class ReferenceValidationResult(LayerResult):
    """Result of reference validation."""

    links_checked: int = 0
    orphans: List[str] = field(default_factory=list)

    def add_orphan(self, item: str) -> None:
        """Add an orphan reference file."""
        self.orphans.append(item)


class ReferenceValidator:
    """Validates references/ links and detects unlinked reference files (Layer 2)."""

    def validate(self, context: LintContext) -> ReferenceValidationResult:
        result = ReferenceValidationResult(layer="references")

        for skill_dir in context.skill_dirs:
            self._validate_skill(skill_dir, context, result)

        return result

    def _validate_skill(
        self,
        skill_dir: Path,
        context: LintContext,
        result: ReferenceValidationResult,
    ) -> None:
        refs_dir = skill_dir / REFERENCES_DIRNAME
        available: List[str] = []
        if refs_dir.is_dir():
            available = sorted(
                p.relative_to(skill_dir).as_posix()
                for p in refs_dir.rglob("*")
                if p.is_file()
            )

        sources = [skill_dir / SKILL_MD_FILENAME]
        sources.extend(skill_dir / rel for rel in available if rel.lower().endswith(".md"))

        mentioned: Set[str] = set()
        resolved_root = skill_dir.resolve()

        for source in sources:
            content = context.read(source)
            if content is None:
                # Reported by the layer that owns the file
                continue
            result.files_checked += 1
            source_rel = source.relative_to(skill_dir).as_posix()

            body, offset = _strip_frontmatter(content)
            for link in extract_reference_links(body, line_offset=offset):
                result.links_checked += 1
                target_path = (skill_dir / link.target).resolve()
                inside = resolved_root in target_path.parents
                target_rel = link.target

                if inside and target_path.is_file():
                    if target_rel != source_rel:
                        mentioned.add(target_path.relative_to(resolved_root).as_posix())
                    continue

                suggestion = None
                close = get_close_matches(target_rel, available, n=1, cutoff=0.6)
                if close:
                    suggestion = f"Did you mean '{close[0]}'?"
                result.add_issue(
                    "BROKEN_REFERENCE",
                    context.display(source),
                    f"Referenced file '{target_rel}' does not exist",
                    line=link.line,
                    suggestion=suggestion,
                )

        for rel in available:
            if not rel.lower().endswith(".md"):
                continue
            if rel not in mentioned:
                display = context.display(skill_dir / rel)
                result.add_orphan(display)
                result.add_issue(
                    "ORPHAN_REFERENCE",
                    display,
                    "Reference file is not linked from SKILL.md or any other reference",
                    severity=WARNING,
                    suggestion=f"Link it from {SKILL_MD_FILENAME} so it can be discovered",
                )


def _strip_frontmatter(content: str):
    """Body after front matter and the line offset of that body."""
    try:
        data, body = FrontmatterParser.parse(content)
    except FrontmatterError:
        return content, 0
    return body, data.end_line
