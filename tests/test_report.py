"""
Tests for Lint Report Generator.
"""

import json
import re
import time
from unittest.mock import MagicMock, patch

from backend.skillpack.lint import LintEngine
from backend.skillpack.report import (
    MARKDOWN_ISSUE_LIMIT,
    REPORT_VERSION,
    TOOL_VERSION,
    AuditMetadata,
    LintReport,
    ReportTimer,
    _compute_file_checksum,
    _get_ci_environment,
    _get_git_commit,
    generate_lint_report,
)


class TestAuditMetadata:
    """Tests for AuditMetadata dataclass."""

    def test_generate_metadata(self):
        """Test generating audit metadata."""
        metadata = AuditMetadata.generate(duration_ms=150)
        assert metadata.tool_version == TOOL_VERSION
        assert metadata.duration_ms == 150
        assert metadata.report_generated_at is not None
        assert metadata.file_checksums == {}

    def test_generate_with_file_checksums(self, bundle_root):
        """Test checksums are keyed by SKILL.md path relative to the root."""
        metadata = AuditMetadata.generate(
            duration_ms=100,
            bundle_root=bundle_root,
            skill_dirs=[bundle_root / "laravel-12", bundle_root / "pest-testing"],
        )
        assert set(metadata.file_checksums) == {"laravel-12/SKILL.md", "pest-testing/SKILL.md"}
        assert all(len(c) == 32 for c in metadata.file_checksums.values())  # MD5 hex

    def test_generate_skips_missing_skill_md(self, tmp_path):
        """Test directories without SKILL.md are ignored."""
        metadata = AuditMetadata.generate(duration_ms=1, bundle_root=tmp_path, skill_dirs=[tmp_path])
        assert metadata.file_checksums == {}

    def test_to_dict_excludes_empty_values(self):
        """Test that empty values are excluded from dict."""
        metadata = AuditMetadata(
            report_generated_at="2026-01-15T10:00:00+00:00",
            tool_version="1.0.0",
            duration_ms=100,
        )
        data = metadata.to_dict()
        assert data["report_generated_at"] == "2026-01-15T10:00:00+00:00"
        assert "file_checksums" not in data
        assert "git_commit" not in data
        assert "ci_environment" not in data


class TestLintReport:
    """Tests for LintReport."""

    def make_report(self, lint=None) -> LintReport:
        return LintReport(
            report_version=REPORT_VERSION,
            bundle={"root": "skills", "skills": [{"name": "laravel-12", "references": 2}]},
            lint=lint or {"valid": True, "total_errors": 0, "total_warnings": 0, "layers": {}},
            audit_metadata=AuditMetadata(
                report_generated_at="2026-01-15T10:00:00+00:00",
                tool_version="1.0.0",
                duration_ms=42,
                git_commit="abc123def456",
            ),
        )

    def test_to_json(self):
        """Test JSON output."""
        data = json.loads(self.make_report().to_json())
        assert data["report_version"] == REPORT_VERSION
        assert data["bundle"]["skills"][0]["name"] == "laravel-12"
        assert data["audit_metadata"]["git_commit"] == "abc123def456"

    def test_to_markdown_passed(self):
        """Test Markdown output for a passing bundle."""
        md = self.make_report().to_markdown()
        assert md.startswith("# Lint Report: skills")
        assert "**Status:** PASSED" in md
        assert "| laravel-12 | 2 |" in md
        assert "**Git Commit:** abc123def456" in md

    def test_to_markdown_lists_issues(self):
        """Test issues are grouped per layer with suggestions."""
        lint = {
            "valid": False,
            "total_errors": 1,
            "layers": {
                "references": {
                    "rule_counts": {"BROKEN_REFERENCE": 1},
                    "issues": [{
                        "rule": "BROKEN_REFERENCE",
                        "path": "laravel-12/SKILL.md",
                        "line": 12,
                        "message": "Referenced file 'references/eloquant.md' does not exist",
                        "severity": "error",
                        "suggestion": "Did you mean 'references/eloquent.md'?",
                    }],
                },
            },
        }
        md = self.make_report(lint).to_markdown()
        assert "**Status:** FAILED" in md
        assert "## References" in md
        assert "| BROKEN_REFERENCE | 1 |" in md
        assert "`laravel-12/SKILL.md:12`" in md
        assert "Fix: Did you mean" in md

    def test_to_markdown_truncates_long_lists(self):
        """Test long issue lists are capped."""
        issues = [
            {"rule": "ORPHAN_REFERENCE", "path": f"x/references/{i}.md", "severity": "warning"}
            for i in range(MARKDOWN_ISSUE_LIMIT + 5)
        ]
        lint = {"valid": True, "layers": {"references": {"issues": issues}}}
        md = self.make_report(lint).to_markdown()
        assert "... and 5 more" in md

    def test_save(self, tmp_path):
        """Test saving JSON and Markdown."""
        report = self.make_report()
        json_path = tmp_path / "out" / "report.json"
        md_path = tmp_path / "out" / "report.md"
        report.save(json_path)
        report.save(md_path, format="markdown")
        assert json.loads(json_path.read_text(encoding="utf-8"))["report_version"] == REPORT_VERSION
        assert md_path.read_text(encoding="utf-8").startswith("# Lint Report")


class TestGenerateLintReport:
    """Tests for generate_lint_report."""

    def test_generate_report(self, bundle_root):
        """Test a report built from a real lint run."""
        result = LintEngine().lint_path(bundle_root)
        report = generate_lint_report(result, bundle_root, duration_ms=7)
        data = report.to_dict()
        assert data["lint"]["valid"] is True
        assert [s["name"] for s in data["bundle"]["skills"]] == [
            "laravel-12", "pest-testing", "tailwind-v4",
        ]
        assert data["bundle"]["skills"][0]["version"] == "1.2.0"
        assert len(data["audit_metadata"]["file_checksums"]) == 3
        assert data["audit_metadata"]["duration_ms"] == 7

    def test_generate_report_missing_root(self, tmp_path):
        """Test a failed lint without a bundle still reports."""
        result = LintEngine().lint_path(tmp_path / "nope")
        report = generate_lint_report(result, tmp_path / "nope", duration_ms=0)
        assert report.bundle["skills"] == []
        assert report.lint["valid"] is False


class TestReportTimer:
    """Tests for ReportTimer."""

    def test_timing(self):
        """Test timer measures elapsed time."""
        with ReportTimer() as timer:
            time.sleep(0.01)
        assert timer.duration_ms >= 10

    def test_timer_zero_without_context(self):
        """Test timer is zero before use."""
        assert ReportTimer().duration_ms == 0


class TestHelperFunctions:
    """Tests for helper functions."""

    def test_compute_file_checksum(self, tmp_path):
        """Test MD5 checksum computation."""
        path = tmp_path / "SKILL.md"
        path.write_bytes(b"hello")
        assert _compute_file_checksum(path) == "5d41402abc4b2a76b9719d911017c592"

    def test_get_git_commit_returns_string_or_none(self):
        """Test git commit detection doesn't crash."""
        commit = _get_git_commit()
        assert commit is None or len(commit) == 12

    def test_get_git_commit_outside_repo(self, tmp_path):
        """Test a failing git command yields None."""
        completed = MagicMock(returncode=128, stdout="")
        with patch("backend.skillpack.report.subprocess.run", return_value=completed):
            assert _get_git_commit(tmp_path) is None

    def test_get_git_commit_git_missing(self, tmp_path):
        """Test a missing git binary yields None."""
        with patch("backend.skillpack.report.subprocess.run", side_effect=FileNotFoundError):
            assert _get_git_commit(tmp_path) is None

    def test_get_ci_environment_none_outside_ci(self):
        """Test CI detection returns None outside CI."""
        with patch.dict("os.environ", {}, clear=True):
            assert _get_ci_environment() is None

    def test_get_ci_environment_github_actions(self):
        """Test GitHub Actions detection."""
        with patch.dict(
            "os.environ",
            {
                "GITHUB_ACTIONS": "true",
                "GITHUB_RUN_ID": "12345",
                "GITHUB_REF_NAME": "main",
                "GITHUB_ACTOR": "octocat",
            },
            clear=True,
        ):
            ci = _get_ci_environment()
            assert ci == {
                "ci_provider": "github_actions",
                "build_id": "12345",
                "branch": "main",
                "triggered_by": "octocat",
            }

    def test_get_ci_environment_gitlab_ci(self):
        """Test GitLab CI detection."""
        with patch.dict(
            "os.environ",
            {"GITLAB_CI": "true", "CI_JOB_ID": "67890", "CI_COMMIT_REF_NAME": "develop"},
            clear=True,
        ):
            ci = _get_ci_environment()
            assert ci["ci_provider"] == "gitlab_ci"
            assert ci["build_id"] == "67890"
            assert ci["triggered_by"] == ""

    def test_get_ci_environment_jenkins(self):
        """Test Jenkins detection."""
        with patch.dict(
            "os.environ",
            {"JENKINS_URL": "http://jenkins.local", "BUILD_NUMBER": "42"},
            clear=True,
        ):
            assert _get_ci_environment()["ci_provider"] == "jenkins"

    def test_get_ci_environment_circleci(self):
        """Test CircleCI detection."""
        with patch.dict("os.environ", {"CIRCLECI": "true", "CIRCLE_BUILD_NUM": "99"}, clear=True):
            assert _get_ci_environment()["build_id"] == "99"


class TestReportVersions:
    """Tests for version constants."""

    def test_report_version_format(self):
        """Test report version names the schema."""
        assert REPORT_VERSION.startswith("skillpack-lint-report/")

    def test_tool_version_is_semver(self):
        """Test tool version is semver."""
        assert re.match(r"^\d+\.\d+\.\d+$", TOOL_VERSION)
