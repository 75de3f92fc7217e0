"""
Shared result types for lint layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

ERROR = "error"
WARNING = "warning"


@dataclass
class LintIssue:
    """A single finding against a file in the bundle."""

    rule: str
    path: str
    message: str
    severity: str = ERROR
    line: Optional[int] = None
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        location = f"{self.path}:{self.line}" if self.line else self.path
        return f"[{self.severity.upper()}] {self.rule}: {location}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "rule": self.rule,
            "path": self.path,
            "line": self.line,
            "message": self.message,
            "severity": self.severity,
        }
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data


@dataclass
class LayerResult:
    """Result of one lint layer."""

    layer: str
    valid: bool = True
    issues: List[LintIssue] = field(default_factory=list)
    files_checked: int = 0

    def add_issue(
        self,
        rule: str,
        path: str,
        message: str,
        severity: str = ERROR,
        line: Optional[int] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """Add an issue; errors mark the layer invalid."""
        self.issues.append(LintIssue(
            rule=rule,
            path=path,
            message=message,
            severity=severity,
            line=line,
            suggestion=suggestion,
        ))
        if severity == ERROR:
            self.valid = False

    @property
    def errors(self) -> List[LintIssue]:
        return [i for i in self.issues if i.severity == ERROR]

    @property
    def warnings(self) -> List[LintIssue]:
        return [i for i in self.issues if i.severity == WARNING]

    def rule_counts(self) -> Dict[str, int]:
        """Count issues per rule."""
        counts: Dict[str, int] = {}
        for issue in self.issues:
            counts[issue.rule] = counts.get(issue.rule, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "files_checked": self.files_checked,
            "issues": [i.to_dict() for i in self.issues],
            "rule_counts": self.rule_counts(),
        }
