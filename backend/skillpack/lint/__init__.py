"""
skillpack lint layers.

This package provides multi-layer integrity checks for skill bundles:
- Layer 1: Front Matter (name and description present and well-formed)
- Layer 2: References (references/ links resolve, orphaned files)
- Layer 3: Code Fences (no unterminated fences, language tags)
- Layer 4: Structure (bundle layout, duplicate names)
"""

from .context import LintContext
from .result import ERROR, WARNING, LayerResult, LintIssue
from .frontmatter import (
    FrontmatterValidator,
    FrontmatterValidationResult,
    validate_skill_md,
)
from .references import ReferenceValidator, ReferenceValidationResult
from .fences import CodeFenceValidator, FenceValidationResult
from .structure import StructureValidator, StructureValidationResult
from .engine import LintEngine, LintResult, lint_bundle

__all__ = [
    "LintContext",
    "LintIssue",
    "LayerResult",
    "ERROR",
    "WARNING",
    # Layer 1: Front Matter
    "FrontmatterValidator",
    "FrontmatterValidationResult",
    "validate_skill_md",
    # Layer 2: References
    "ReferenceValidator",
    "ReferenceValidationResult",
    # Layer 3: Code Fences
    "CodeFenceValidator",
    "FenceValidationResult",
    # Layer 4: Structure
    "StructureValidator",
    "StructureValidationResult",
    # Engine
    "LintEngine",
    "LintResult",
    "lint_bundle",
]
