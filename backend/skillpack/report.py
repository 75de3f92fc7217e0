"""
Lint Report Generator.

Generates machine-consumable lint reports for CI pipelines, with an
audit trail tying the report to the exact SKILL.md content checked.
"""

from __future__ import annotations

import hashlib
import json
import os
import subprocess
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .lint import LintResult
from .models import SKILL_MD_FILENAME


REPORT_VERSION = "skillpack-lint-report/1.0"
TOOL_VERSION = __version__

# Per-section cap on listed issues in the Markdown rendering
MARKDOWN_ISSUE_LIMIT = 20


@dataclass
class AuditMetadata:
    """Metadata for audit trail."""

    report_generated_at: str
    tool_version: str
    duration_ms: int
    file_checksums: Dict[str, str] = field(default_factory=dict)
    git_commit: Optional[str] = None
    ci_environment: Optional[Dict[str, str]] = None

    @classmethod
    def generate(
        cls,
        duration_ms: int,
        bundle_root: Optional[Path] = None,
        skill_dirs: Optional[List[Path]] = None,
    ) -> "AuditMetadata":
        """Generate audit metadata."""
        metadata = cls(
            report_generated_at=datetime.now(timezone.utc).isoformat(),
            tool_version=TOOL_VERSION,
            duration_ms=duration_ms,
        )

        for skill_dir in skill_dirs or []:
            skill_md = skill_dir / SKILL_MD_FILENAME
            if not skill_md.is_file():
                continue
            key = skill_md.as_posix()
            if bundle_root is not None:
                try:
                    key = skill_md.relative_to(bundle_root).as_posix()
                except ValueError:
                    pass
            metadata.file_checksums[key] = _compute_file_checksum(skill_md)

        metadata.git_commit = _get_git_commit(bundle_root)
        metadata.ci_environment = _get_ci_environment()

        return metadata

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {
            "report_generated_at": self.report_generated_at,
            "tool_version": self.tool_version,
            "duration_ms": self.duration_ms,
        }

        if self.file_checksums:
            result["file_checksums"] = self.file_checksums
        if self.git_commit:
            result["git_commit"] = self.git_commit
        if self.ci_environment:
            result["ci_environment"] = self.ci_environment

        return result


@dataclass
class LintReport:
    """Full lint report for a bundle."""

    report_version: str
    bundle: Dict[str, Any]
    lint: Dict[str, Any]
    audit_metadata: AuditMetadata

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "report_version": self.report_version,
            "bundle": self.bundle,
            "lint": self.lint,
            "audit_metadata": self.audit_metadata.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_markdown(self) -> str:
        """Convert to Markdown format report."""
        lines = []
        lint = self.lint
        valid = lint.get("valid", False)
        status = "PASSED" if valid else "FAILED"

        lines.append(f"# Lint Report: {self.bundle.get('root', 'Unknown')}")
        lines.append("")
        lines.append(f"**Status:** {status}")
        lines.append(f"**Errors:** {lint.get('total_errors', 0)}")
        lines.append(f"**Warnings:** {lint.get('total_warnings', 0)}")
        lines.append(f"**Files Checked:** {lint.get('files_checked', 0)}")
        lines.append("")

        skills = self.bundle.get("skills", [])
        lines.append("## Skills")
        lines.append("")
        if skills:
            lines.append("| Skill | References |")
            lines.append("|-------|------------|")
            for skill in skills:
                lines.append(f"| {skill.get('name', '')} | {skill.get('references', 0)} |")
        else:
            lines.append("No skills loaded.")
        lines.append("")

        if lint.get("errors"):
            lines.append("## Errors")
            lines.append("")
            for message in lint["errors"]:
                lines.append(f"- {message}")
            lines.append("")

        titles = {
            "frontmatter": "Front Matter",
            "references": "References",
            "fences": "Code Fences",
            "structure": "Structure",
            "load": "Loading",
        }
        for name, layer in lint.get("layers", {}).items():
            issues = layer.get("issues", [])
            if not issues:
                continue

            lines.append(f"## {titles.get(name, name.title())}")
            lines.append("")
            counts = layer.get("rule_counts", {})
            if counts:
                lines.append("| Rule | Count |")
                lines.append("|------|-------|")
                for rule, count in counts.items():
                    lines.append(f"| {rule} | {count} |")
                lines.append("")

            for issue in issues[:MARKDOWN_ISSUE_LIMIT]:
                location = issue.get("path", "")
                if issue.get("line"):
                    location = f"{location}:{issue['line']}"
                lines.append(
                    f"- [{issue.get('severity', '')}] **{issue.get('rule', '')}** "
                    f"at `{location}`: {issue.get('message', '')}"
                )
                suggestion = issue.get("suggestion")
                if suggestion:
                    lines.append(f"  - Fix: {suggestion}")
            if len(issues) > MARKDOWN_ISSUE_LIMIT:
                lines.append(f"- ... and {len(issues) - MARKDOWN_ISSUE_LIMIT} more")
            lines.append("")

        lines.append("## Audit Metadata")
        lines.append("")
        audit = self.audit_metadata.to_dict()
        lines.append(f"- **Generated At:** {audit.get('report_generated_at', '')}")
        lines.append(f"- **Tool Version:** {audit.get('tool_version', '')}")
        lines.append(f"- **Duration:** {audit.get('duration_ms', 0)}ms")
        if audit.get("git_commit"):
            lines.append(f"- **Git Commit:** {audit['git_commit']}")
        ci = audit.get("ci_environment")
        if ci:
            lines.append(f"- **CI Provider:** {ci.get('ci_provider', '')}")
        lines.append("")

        return "\n".join(lines)

    def save(self, output_path: Path, format: str = "json") -> None:
        """
        Save report to file.

        Args:
            output_path: Path to save the report.
            format: Output format, either 'json' or 'markdown'.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if format == "markdown":
            output_path.write_text(self.to_markdown(), encoding="utf-8")
        else:
            output_path.write_text(self.to_json(), encoding="utf-8")


def generate_lint_report(
    lint_result: LintResult,
    bundle_root: Path,
    duration_ms: int,
) -> LintReport:
    """
    Generate a lint report from a lint result.

    Args:
        lint_result: Result from LintEngine.
        bundle_root: Path to the bundle root.
        duration_ms: Lint duration in milliseconds.

    Returns:
        LintReport ready for serialization.
    """
    skills: List[Dict[str, Any]] = []
    skill_dirs: List[Path] = []
    if lint_result.bundle is not None:
        for skill in lint_result.bundle.skills:
            skills.append({
                "name": skill.name,
                "version": skill.version,
                "references": len(skill.references),
            })
            skill_dirs.append(skill.directory)

    bundle_info = {
        "root": str(bundle_root),
        "skills": skills,
    }

    audit_metadata = AuditMetadata.generate(
        duration_ms=duration_ms,
        bundle_root=bundle_root,
        skill_dirs=skill_dirs,
    )

    return LintReport(
        report_version=REPORT_VERSION,
        bundle=bundle_info,
        lint=lint_result.to_dict(),
        audit_metadata=audit_metadata,
    )


def _compute_file_checksum(path: Path) -> str:
    """Compute MD5 checksum of a file."""
    hasher = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def _get_git_commit(cwd: Optional[Path] = None) -> Optional[str]:
    """Get current git commit hash if in a git repo."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
            cwd=str(cwd) if cwd else None,
        )
        if result.returncode == 0:
            return result.stdout.strip()[:12]  # Short hash
    except (subprocess.SubprocessError, FileNotFoundError, NotADirectoryError):
        pass
    return None


def _get_ci_environment() -> Optional[Dict[str, str]]:
    """Detect CI environment from environment variables."""
    providers = [
        ("GITHUB_ACTIONS", "github_actions", "GITHUB_RUN_ID", "GITHUB_REF_NAME", "GITHUB_ACTOR"),
        ("GITLAB_CI", "gitlab_ci", "CI_JOB_ID", "CI_COMMIT_REF_NAME", "GITLAB_USER_LOGIN"),
        ("JENKINS_URL", "jenkins", "BUILD_NUMBER", "GIT_BRANCH", "BUILD_USER"),
        ("CIRCLECI", "circleci", "CIRCLE_BUILD_NUM", "CIRCLE_BRANCH", "CIRCLE_USERNAME"),
    ]

    for marker, provider, build_var, branch_var, user_var in providers:
        if os.getenv(marker):
            return {
                "ci_provider": provider,
                "build_id": os.getenv(build_var, ""),
                "branch": os.getenv(branch_var, ""),
                "triggered_by": os.getenv(user_var, ""),
            }

    return None


class ReportTimer:
    """Context manager for timing lint runs."""

    def __init__(self):
        self.start_time: float = 0
        self.duration_ms: int = 0

    def __enter__(self) -> "ReportTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.duration_ms = int((time.perf_counter() - self.start_time) * 1000)
