"""CLI entry point for skillpack."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from . import __version__
from .config import get_settings, settings_for_root
from .errors import SkillpackError
from .lint import LintEngine
from .loader import SkillIndex, SkillLoader
from .logging_config import configure_logging, get_logger
from .package import MARKETPLACE_FILENAME, MarketplaceBuilder, create_bundles, run_preflight_checks
from .report import ReportTimer, generate_lint_report

logger = get_logger(__name__)

BUNDLE_ROOT = click.Path(exists=True, file_okay=False, path_type=Path)


class CliError(click.ClickException):
    """User-facing error; exits with status 2 like click's usage errors."""

    exit_code = 2


@contextmanager
def user_errors() -> Iterator[None]:
    """Turn skillpack errors into clean CLI failures."""
    try:
        yield
    except SkillpackError as e:
        raise CliError(str(e)) from e


@click.group()
@click.version_option(version=__version__, prog_name="skillpack")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default: SKILLPACK_LOG_LEVEL or WARNING).",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default=None,
    help="Log output format.",
)
def cli(log_level: Optional[str], log_format: Optional[str]):
    """skillpack - index, lint and package Markdown skill bundles."""
    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        fmt=log_format or settings.log_format,
    )


# -------------------------------------------------------------------------
# Index Commands
# -------------------------------------------------------------------------


@cli.command("index")
@click.argument("root", type=BUNDLE_ROOT)
@click.option("--json", "as_json", is_flag=True, help="Print the index as JSON.")
def index_cmd(root: Path, as_json: bool):
    """List the skills in a bundle."""
    with user_errors():
        index = SkillIndex.from_root(root)

    if as_json:
        click.echo(json.dumps(index.to_dict(), indent=2, ensure_ascii=False))
        return

    if not len(index):
        click.echo("No skills found.")
        return

    click.echo(f"\nSkills in {root}:")
    click.echo("-" * 60)
    for skill in index:
        click.echo(f"  {skill.name:<25} {len(skill.references):>3} refs  {skill.description}")
    click.echo()

    for error in index.bundle.load_errors:
        click.echo(f"Skipped {error.path}: {error.reason}", err=True)


@cli.command("show")
@click.argument("root", type=BUNDLE_ROOT)
@click.argument("name")
@click.option("--reference", "-r", help="Print one reference file instead of SKILL.md.")
def show_cmd(root: Path, name: str, reference: Optional[str]):
    """
    Print a skill's body or one of its reference files.

    Examples:
        skillpack show ./skills laravel-12
        skillpack show ./skills laravel-12 -r eloquent
    """
    with user_errors():
        skill = SkillIndex.from_root(root).get(name)
        if reference:
            click.echo(SkillLoader.read_reference(skill, reference))
            return

    click.echo(skill.body.strip())
    if skill.references:
        click.echo("\nReferences:")
        for ref in skill.references:
            click.echo(f"  {ref.path:<40} {ref.title}")


@cli.command("match")
@click.argument("root", type=BUNDLE_ROOT)
@click.argument("query")
@click.option("--limit", "-n", default=5, show_default=True, help="Maximum matches.")
@click.option("--json", "as_json", is_flag=True, help="Print matches as JSON.")
def match_cmd(root: Path, query: str, limit: int, as_json: bool):
    """Rank skills by relevance to a task description."""
    with user_errors():
        matches = SkillIndex.from_root(root).match(query, limit=limit)

    if as_json:
        click.echo(json.dumps([m.to_dict() for m in matches], indent=2, ensure_ascii=False))
        return

    if not matches:
        click.echo("No matching skills.")
        return

    for m in matches:
        click.echo(f"  {m.score:>3}  {m.skill.name:<25} ({', '.join(m.matched_terms)})")


# -------------------------------------------------------------------------
# Lint Commands
# -------------------------------------------------------------------------


@cli.command("lint")
@click.argument("root", type=BUNDLE_ROOT)
@click.option("--strict/--no-strict", default=None, help="Fail on warnings too.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
)
def lint_cmd(root: Path, strict: Optional[bool], output_format: str):
    """
    Check a bundle's integrity.

    Exits 0 when the bundle passes, 1 when it does not.
    """
    with user_errors():
        settings = settings_for_root(root)
    result = LintEngine(settings).lint_path(root, strict=strict)

    if output_format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        click.echo(result.summary())

    if not result.valid:
        raise SystemExit(1)


@cli.command("report")
@click.argument("root", type=BUNDLE_ROOT)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), required=True)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "markdown"]),
    default="json",
    show_default=True,
)
@click.option("--strict/--no-strict", default=None, help="Fail on warnings too.")
def report_cmd(root: Path, output: Path, output_format: str, strict: Optional[bool]):
    """Lint a bundle and write an audit report."""
    with user_errors():
        settings = settings_for_root(root)
    with ReportTimer() as timer:
        result = LintEngine(settings).lint_path(root, strict=strict)

    report = generate_lint_report(result, root, timer.duration_ms)
    report.save(output, format=output_format)
    click.echo(f"Report written to {output} ({'PASSED' if result.valid else 'FAILED'})")

    if not result.valid:
        raise SystemExit(1)


# -------------------------------------------------------------------------
# Packaging Commands
# -------------------------------------------------------------------------


@cli.command("bundle")
@click.argument("root", type=BUNDLE_ROOT)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("dist"),
    show_default=True,
)
def bundle_cmd(root: Path, output_dir: Path):
    """Zip every skill for distribution."""
    with user_errors():
        bundle = SkillLoader(root).load_bundle()
    if bundle.load_errors:
        for error in bundle.load_errors:
            click.echo(f"Error: {error.path}: {error.reason}", err=True)
        raise CliError("Refusing to bundle while skills fail to load")

    bundles = create_bundles(bundle, output_dir)
    for b in bundles:
        click.echo(f"  {b.skill_name:<25} {b.version:<10} {b.checksum}  ({len(b.files)} files)")
    click.echo(f"\n{len(bundles)} bundle(s) written to {output_dir}")


@cli.command("marketplace")
@click.argument("root", type=BUNDLE_ROOT)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--name", required=True, help="Marketplace name.")
@click.option("--owner", required=True, help="Owner name.")
@click.option("--owner-email", default=None)
@click.option("--description", default="", help="Marketplace description.")
@click.option("--version", "catalogue_version", default="1.0.0", show_default=True)
def marketplace_cmd(
    root: Path,
    output: Optional[Path],
    name: str,
    owner: str,
    owner_email: Optional[str],
    description: str,
    catalogue_version: str,
):
    """Write marketplace.json listing every skill in the bundle."""
    output = output or root / MARKETPLACE_FILENAME
    with user_errors():
        bundle = SkillLoader(root).load_bundle()
        manifest = MarketplaceBuilder(
            bundle,
            name=name,
            owner=owner,
            description=description,
            version=catalogue_version,
            owner_email=owner_email,
        ).write(output)

    click.echo(f"Wrote {output} with {len(manifest.plugins)} plugin(s)")


@cli.command("preflight")
@click.argument("root", type=BUNDLE_ROOT)
@click.option("--json", "as_json", is_flag=True)
def preflight_cmd(root: Path, as_json: bool):
    """Run pre-distribution checks."""
    with user_errors():
        engine = LintEngine(settings_for_root(root))
    result = run_preflight_checks(root, engine)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        for check in result.checks:
            mark = "PASS" if check.passed else ("FAIL" if check.severity == "error" else "WARN")
            click.echo(f"  [{mark}] {check.name}: {check.message}")
        click.echo(f"\nPreflight {'PASSED' if result.success else 'FAILED'}")

    if not result.success:
        raise SystemExit(1)


def main() -> None:
    cli(prog_name="skillpack")


if __name__ == "__main__":
    main()
