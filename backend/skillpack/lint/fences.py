"""
Code Fence Validation (Layer 3).

An unterminated fence swallows the rest of the document into a code
block, hiding every heading and instruction after it. Every Markdown
file in the bundle is scanned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import Settings
from ..markdown import scan_code_fences
from .context import LintContext
from .result import WARNING, LayerResult


@dataclass
class FenceValidationResult(LayerResult):
    """Result of code fence validation."""

    fences_checked: int = 0


class CodeFenceValidator:
    """Validates fenced code blocks in all Markdown files (Layer 3)."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def validate(self, context: LintContext) -> FenceValidationResult:
        result = FenceValidationResult(layer="fences")

        for path in context.markdown_files:
            content = context.read(path)
            display = context.display(path)
            result.files_checked += 1

            if content is None:
                result.add_issue("UNREADABLE_FILE", display, "File is not valid UTF-8 text")
                continue

            self.validate_content(content, display, result)

        return result

    def validate_content(
        self,
        content: str,
        display: str,
        result: Optional[FenceValidationResult] = None,
    ) -> FenceValidationResult:
        """Check the fences of a single document."""
        if result is None:
            result = FenceValidationResult(layer="fences")

        for fence in scan_code_fences(content):
            result.fences_checked += 1
            opener = fence.marker * fence.length

            if not fence.terminated:
                result.add_issue(
                    "UNTERMINATED_FENCE",
                    display,
                    f"Code fence '{opener}' opened here is never closed",
                    line=fence.start_line,
                    suggestion=f"Add a closing '{opener}' line",
                )
            elif self.settings.require_fence_language and not fence.language:
                result.add_issue(
                    "MISSING_FENCE_LANGUAGE",
                    display,
                    "Code fence has no language tag",
                    severity=WARNING,
                    line=fence.start_line,
                    suggestion=f"Use e.g. '{opener}php' or '{opener}text'",
                )

        return result
