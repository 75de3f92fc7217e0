"""
Tests for the skillpack command line.
"""

import json
import zipfile

from click.testing import CliRunner

from backend.skillpack import __version__
from backend.skillpack.cli import cli


def run(*args):
    return CliRunner().invoke(cli, [str(a) for a in args])


class TestGroup:
    """Tests for group options."""

    def test_version(self):
        """Test --version prints the package version."""
        result = run("--version")
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self):
        """Test every command is registered."""
        result = run("--help")
        for command in ("index", "show", "match", "lint", "report", "bundle", "marketplace", "preflight"):
            assert command in result.output

    def test_missing_root_is_usage_error(self, tmp_path):
        """Test a missing bundle root exits 2."""
        result = run("index", tmp_path / "nope")
        assert result.exit_code == 2


class TestIndexCommands:
    """Tests for index, show and match."""

    def test_index(self, bundle_root):
        """Test the text listing."""
        result = run("index", bundle_root)
        assert result.exit_code == 0
        assert "laravel-12" in result.output
        assert "2 refs" in result.output

    def test_index_json(self, bundle_root):
        """Test JSON catalogue output."""
        result = run("index", bundle_root, "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [s["name"] for s in data["skills"]] == ["laravel-12", "pest-testing", "tailwind-v4"]

    def test_index_empty(self, tmp_path):
        """Test an empty bundle."""
        result = run("index", tmp_path)
        assert result.exit_code == 0
        assert "No skills found." in result.output

    def test_show(self, bundle_root):
        """Test printing a skill body and its references."""
        result = run("show", bundle_root, "laravel-12")
        assert result.exit_code == 0
        assert result.output.startswith("# Laravel 12")
        assert "references/eloquent.md" in result.output
        assert "name: laravel-12" not in result.output

    def test_show_reference(self, bundle_root):
        """Test printing one reference file."""
        result = run("show", bundle_root, "tailwind-v4", "-r", "theme")
        assert result.exit_code == 0
        assert "@theme" in result.output

    def test_show_unknown_skill(self, bundle_root):
        """Test unknown names exit 2 with suggestions."""
        result = run("show", bundle_root, "tailwind")
        assert result.exit_code == 2
        assert "Skill not found: tailwind" in result.output

    def test_show_unknown_reference(self, bundle_root):
        """Test unknown references exit 2."""
        result = run("show", bundle_root, "pest-testing", "-r", "browser")
        assert result.exit_code == 2
        assert "browser" in result.output

    def test_show_undecodable_reference(self, bundle_root):
        """Test a reference that is not UTF-8 exits 2."""
        (bundle_root / "tailwind-v4" / "references" / "theme.md").write_bytes(b"# Theme\n\xff\xfe\n")
        result = run("show", bundle_root, "tailwind-v4", "-r", "theme")
        assert result.exit_code == 2
        assert "not valid UTF-8" in result.output

    def test_match(self, bundle_root):
        """Test ranked matches."""
        result = run("match", bundle_root, "tailwind theme tokens")
        assert result.exit_code == 0
        assert result.output.split()[1] == "tailwind-v4"

    def test_match_json(self, bundle_root):
        """Test JSON matches respect the limit."""
        result = run("match", bundle_root, "laravel pest tailwind", "-n", "1", "--json")
        assert result.exit_code == 0
        assert len(json.loads(result.output)) == 1

    def test_match_nothing(self, bundle_root):
        """Test a query with no hits."""
        result = run("match", bundle_root, "kubernetes")
        assert result.exit_code == 0
        assert "No matching skills." in result.output


class TestLintCommands:
    """Tests for lint and report."""

    def test_lint_passes(self, bundle_root):
        """Test a clean bundle exits 0."""
        result = run("lint", bundle_root, "--strict")
        assert result.exit_code == 0
        assert "Lint PASSED (strict)" in result.output

    def test_lint_fails(self, bundle_root):
        """Test an unterminated fence exits 1."""
        (bundle_root / "README.md").write_text("# Skills\n\n```bash\nls\n", encoding="utf-8")
        result = run("lint", bundle_root)
        assert result.exit_code == 1
        assert "UNTERMINATED_FENCE" in result.output

    def test_lint_strict_fails_on_warning(self, bundle_root):
        """Test --strict turns warnings into failure."""
        (bundle_root / "README.md").unlink()
        assert run("lint", bundle_root).exit_code == 0
        assert run("lint", bundle_root, "--strict").exit_code == 1

    def test_lint_json(self, bundle_root):
        """Test JSON lint output."""
        result = run("lint", bundle_root, "--format", "json")
        assert result.exit_code == 0
        assert json.loads(result.output)["valid"] is True

    def test_lint_uses_bundle_config(self, bundle_root):
        """Test .skillpack.yaml in the bundle root is honoured."""
        (bundle_root / "README.md").unlink()
        (bundle_root / ".skillpack.yaml").write_text("require-readme: false\n", encoding="utf-8")
        assert run("lint", bundle_root, "--strict").exit_code == 0

    def test_lint_bad_config(self, bundle_root):
        """Test an unusable .skillpack.yaml exits 2."""
        (bundle_root / ".skillpack.yaml").write_text("- a\n- b\n", encoding="utf-8")
        result = run("lint", bundle_root)
        assert result.exit_code == 2
        assert "must contain a mapping" in result.output

    def test_lint_wrong_typed_config(self, bundle_root):
        """Test a well-formed .skillpack.yaml with a bad value exits 2."""
        (bundle_root / ".skillpack.yaml").write_text("min-description-length: abc\n", encoding="utf-8")
        result = run("lint", bundle_root)
        assert result.exit_code == 2
        assert ".skillpack.yaml" in result.output

    def test_report_json(self, bundle_root, tmp_path):
        """Test writing a JSON report."""
        out = tmp_path / "report.json"
        result = run("report", bundle_root, "-o", out)
        assert result.exit_code == 0
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["lint"]["valid"] is True

    def test_report_markdown_failed(self, bundle_root, tmp_path):
        """Test a failed run still writes the report and exits 1."""
        (bundle_root / "pest-testing" / "SKILL.md").write_text("# no front matter\n", encoding="utf-8")
        out = tmp_path / "report.md"
        result = run("report", bundle_root, "-o", out, "--format", "markdown")
        assert result.exit_code == 1
        assert "**Status:** FAILED" in out.read_text(encoding="utf-8")


class TestPackagingCommands:
    """Tests for bundle, marketplace and preflight."""

    def test_bundle(self, bundle_root, tmp_path):
        """Test zips are written for each skill."""
        out = tmp_path / "dist"
        result = run("bundle", bundle_root, "-o", out)
        assert result.exit_code == 0
        assert "3 bundle(s) written" in result.output
        with zipfile.ZipFile(out / "tailwind-v4.zip") as zf:
            assert "tailwind-v4/references/theme.md" in zf.namelist()

    def test_bundle_refuses_broken_skills(self, bundle_root, make_skill, tmp_path):
        """Test load failures block bundling."""
        make_skill(bundle_root, "broken", "no front matter\n")
        out = tmp_path / "dist"
        result = run("bundle", bundle_root, "-o", out)
        assert result.exit_code == 2
        assert not out.exists()

    def test_bundle_duplicate_names_written_once(self, bundle_root, make_skill, tmp_path):
        """Test a duplicated skill name produces one archive from the first skill."""
        make_skill(
            bundle_root,
            "zz-pest",
            "---\nname: pest-testing\ndescription: A stale copy of the Pest skill\n---\nold\n",
        )
        out = tmp_path / "dist"
        result = run("bundle", bundle_root, "-o", out)
        assert result.exit_code == 0
        assert "3 bundle(s) written" in result.output
        with zipfile.ZipFile(out / "pest-testing.zip") as zf:
            content = zf.read("pest-testing/SKILL.md").decode("utf-8")
        assert "# Pest Testing" in content
        assert "stale copy" not in content

    def test_marketplace(self, bundle_root):
        """Test marketplace.json defaults to the bundle root."""
        result = run("marketplace", bundle_root, "--name", "laravel-stack", "--owner", "Acme")
        assert result.exit_code == 0
        data = json.loads((bundle_root / "marketplace.json").read_text(encoding="utf-8"))
        assert [p["source"] for p in data["plugins"]] == [
            "./laravel-12", "./pest-testing", "./tailwind-v4",
        ]

    def test_marketplace_invalid_name(self, bundle_root):
        """Test schema violations exit 2."""
        result = run("marketplace", bundle_root, "--name", "Laravel Stack", "--owner", "Acme")
        assert result.exit_code == 2

    def test_preflight(self, bundle_root):
        """Test a clean bundle passes pre-flight."""
        result = run("preflight", bundle_root)
        assert result.exit_code == 0
        assert "[PASS] lint" in result.output
        assert "Preflight PASSED" in result.output

    def test_preflight_json_failure(self, tmp_path):
        """Test an empty root fails pre-flight."""
        result = run("preflight", tmp_path, "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["success"] is False
