"""
Lint Engine.

Combines all lint layers into a unified pipeline over a bundle root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..loader import SkillLoader
from ..logging_config import get_logger
from ..models import SkillBundle
from .context import LintContext
from .fences import CodeFenceValidator, FenceValidationResult
from .frontmatter import FrontmatterValidationResult, FrontmatterValidator
from .references import ReferenceValidationResult, ReferenceValidator
from .result import ERROR, WARNING, LayerResult, LintIssue
from .structure import StructureValidationResult, StructureValidator

logger = get_logger(__name__)


@dataclass
class LintResult:
    """
    Combined result from all lint layers.

    Contains results from:
    - Layer 1: Front Matter
    - Layer 2: References
    - Layer 3: Code Fences
    - Layer 4: Structure
    """

    valid: bool
    root: str = ""
    frontmatter_result: Optional[FrontmatterValidationResult] = None
    references_result: Optional[ReferenceValidationResult] = None
    fences_result: Optional[FenceValidationResult] = None
    structure_result: Optional[StructureValidationResult] = None
    load_result: Optional[LayerResult] = None
    bundle: Optional[SkillBundle] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    strict: bool = False

    @property
    def layers(self) -> Dict[str, LayerResult]:
        """Layer results that ran, keyed by layer name."""
        ordered = [
            self.frontmatter_result,
            self.references_result,
            self.fences_result,
            self.structure_result,
            self.load_result,
        ]
        return {layer.layer: layer for layer in ordered if layer is not None}

    @property
    def issues(self) -> List[LintIssue]:
        """All issues across layers, in layer order."""
        issues: List[LintIssue] = []
        for layer in self.layers.values():
            issues.extend(layer.issues)
        return issues

    @property
    def total_errors(self) -> int:
        """Total number of errors across all layers."""
        return len(self.errors) + sum(1 for i in self.issues if i.severity == ERROR)

    @property
    def total_warnings(self) -> int:
        """Total number of warnings across all layers."""
        return len(self.warnings) + sum(1 for i in self.issues if i.severity == WARNING)

    @property
    def files_checked(self) -> int:
        """Distinct Markdown files scanned (the fence layer reads every one)."""
        if self.fences_result:
            return self.fences_result.files_checked
        return 0

    def summary(self) -> str:
        """Generate a summary of lint results."""
        lines = []
        status = "PASSED" if self.valid else "FAILED"
        lines.append(f"Lint {status}{' (strict)' if self.strict else ''}")
        if self.root:
            lines.append(f"  Bundle: {self.root}")
        if self.bundle is not None:
            lines.append(f"  Skills: {len(self.bundle.skills)}")
        lines.append(f"  Files Checked: {self.files_checked}")
        lines.append(f"  Errors: {self.total_errors}")
        lines.append(f"  Warnings: {self.total_warnings}")

        for message in self.errors:
            lines.append(f"    - [ERROR] {message}")

        issues = self.issues
        if issues:
            lines.append("")
            for issue in issues:
                lines.append(f"  {issue}")
                if issue.suggestion:
                    lines.append(f"      -> {issue.suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        layers: Dict[str, Any] = {}
        for name, layer in self.layers.items():
            layers[name] = layer.to_dict()

        if self.references_result is not None:
            layers["references"]["links_checked"] = self.references_result.links_checked
            layers["references"]["orphans"] = self.references_result.orphans
        if self.fences_result is not None:
            layers["fences"]["fences_checked"] = self.fences_result.fences_checked
        if self.structure_result is not None:
            layers["structure"]["skills_found"] = self.structure_result.skills_found

        return {
            "valid": self.valid,
            "strict": self.strict,
            "root": self.root,
            "skills": self.bundle.skill_names() if self.bundle is not None else [],
            "files_checked": self.files_checked,
            "total_errors": self.total_errors,
            "total_warnings": self.total_warnings,
            "errors": self.errors,
            "warnings": self.warnings,
            "layers": layers,
        }


class LintEngine:
    """
    Unified lint engine combining all layers.

    Layers:
    - Layer 1: Front Matter (name/description present and well-formed)
    - Layer 2: References (references/ links resolve, orphans)
    - Layer 3: Code Fences (no unterminated fences)
    - Layer 4: Structure (bundle layout)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.frontmatter_validator = FrontmatterValidator(self.settings)
        self.reference_validator = ReferenceValidator()
        self.fence_validator = CodeFenceValidator(self.settings)
        self.structure_validator = StructureValidator(self.settings)

    def lint_path(self, root: Path, strict: Optional[bool] = None) -> LintResult:
        """
        Run all layers over a bundle root.

        Args:
            root: Bundle root, or a single skill directory.
            strict: Fail on warnings. Defaults to settings.strict.

        Returns:
            LintResult with combined results from all layers.
        """
        root = Path(root)
        strict = self.settings.strict if strict is None else strict
        result = LintResult(valid=True, root=str(root), strict=strict)

        if not root.is_dir():
            result.valid = False
            result.errors.append(f"Bundle root not found: {root}")
            return result

        context = LintContext.from_root(root)
        log = logger.bind(root=str(root))
        log.debug("lint_started", skills=len(context.skill_dirs), files=len(context.markdown_files))

        result.frontmatter_result = self.frontmatter_validator.validate(context)
        result.references_result = self.reference_validator.validate(context)
        result.fences_result = self.fence_validator.validate(context)
        result.structure_result = self.structure_validator.validate(context)

        result.bundle = SkillLoader(root).load_bundle()
        result.load_result = self._load_layer(result.bundle, result.frontmatter_result, context)

        result.valid = all(layer.valid for layer in result.layers.values())

        # In strict mode, warnings also cause failure
        if strict and result.total_warnings > 0:
            result.valid = False

        log.info(
            "lint_finished",
            valid=result.valid,
            errors=result.total_errors,
            warnings=result.total_warnings,
        )
        return result

    def _load_layer(
        self,
        bundle: SkillBundle,
        frontmatter_result: FrontmatterValidationResult,
        context: LintContext,
    ) -> LayerResult:
        """Report load failures that no front matter error already explains."""
        layer = LayerResult(layer="load")
        explained = {i.path for i in frontmatter_result.errors}

        for error in bundle.load_errors:
            display = context.display(error.path)
            if display in explained:
                continue
            layer.add_issue("LOAD_ERROR", display, error.reason)

        layer.files_checked = len(bundle.skills) + len(bundle.load_errors)
        return layer


def lint_bundle(
    root: Path,
    strict: Optional[bool] = None,
    settings: Optional[Settings] = None,
) -> LintResult:
    """
    Convenience function to lint a bundle root.

    Args:
        root: Bundle root directory.
        strict: If True, fail on warnings. Defaults to settings.strict.
        settings: Optional settings; defaults are used otherwise.
    """
    engine = LintEngine(settings)
    return engine.lint_path(root, strict=strict)
