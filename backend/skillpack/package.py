"""
Packaging Module for skillpack.

Handles per-skill .zip bundle creation, the marketplace.json catalogue
and pre-flight checks before distribution.
"""

from __future__ import annotations

import hashlib
import json
import zipfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .errors import ManifestError
from .loader import SkillIndex, SkillLoader
from .logging_config import get_logger
from .models import (
    REFERENCES_DIRNAME,
    SKILL_MD_FILENAME,
    MarketplaceEntry,
    MarketplaceManifest,
    MarketplaceMetadata,
    MarketplaceOwner,
    Skill,
    SkillBundle,
)

logger = get_logger(__name__)

MARKETPLACE_FILENAME = "marketplace.json"


@dataclass
class DistributionBundle:
    """
    A zipped skill ready for distribution.

    Attributes:
        skill_name: Name of the skill.
        version: Version of the skill.
        created_at: Bundle creation timestamp.
        files: Archive member names.
        checksum: Bundle checksum for integrity.
        metadata: Additional bundle metadata.
    """

    skill_name: str
    version: str
    created_at: str
    files: List[str]
    checksum: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "skill_name": self.skill_name,
            "version": self.version,
            "created_at": self.created_at,
            "files": self.files,
            "checksum": self.checksum,
            "metadata": self.metadata,
        }


@dataclass
class PreflightCheck:
    """
    A pre-flight check item.

    Attributes:
        name: Check name.
        passed: Whether the check passed.
        message: Status message.
        severity: Check severity (error, warning).
    """

    name: str
    passed: bool
    message: str
    severity: str = "error"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "passed": self.passed,
            "message": self.message,
            "severity": self.severity,
        }


@dataclass
class PreflightResult:
    """Result of pre-flight checks."""

    success: bool
    checks: List[PreflightCheck] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "checks": [c.to_dict() for c in self.checks],
        }


class BundleCreator:
    """
    Creates a distribution .zip for one skill.

    Only SKILL.md and references/ are shipped; everything else in the
    skill directory is authoring material.
    """

    def __init__(self, skill: Skill):
        self.skill = skill

    def collect_files(self) -> List[Path]:
        """Files that go into the archive, SKILL.md first."""
        skill_md = self.skill.skill_md_path
        if not skill_md.is_file():
            raise FileNotFoundError(f"{SKILL_MD_FILENAME} not found in {self.skill.directory}")

        files = [skill_md]
        refs_dir = self.skill.directory / REFERENCES_DIRNAME
        if refs_dir.is_dir():
            files.extend(sorted(f for f in refs_dir.rglob("*") if f.is_file()))
        return files

    def create_bundle(self, output_path: Path) -> DistributionBundle:
        """
        Create a distribution bundle.

        Archive members live under a top-level folder named after the
        skill, so the zip unpacks into a ready-to-use skill directory.

        Args:
            output_path: Path for the output .zip file.

        Returns:
            DistributionBundle with bundle metadata.
        """
        files = self.collect_files()
        output_path.parent.mkdir(parents=True, exist_ok=True)

        members = []
        with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for file_path in files:
                relative = file_path.relative_to(self.skill.directory).as_posix()
                arcname = f"{self.skill.name}/{relative}"
                zf.write(file_path, arcname)
                members.append(arcname)

        bundle = DistributionBundle(
            skill_name=self.skill.name,
            version=self.skill.version,
            created_at=datetime.now(timezone.utc).isoformat(),
            files=members,
            checksum=compute_checksum(output_path),
            metadata={
                "bundle_path": str(output_path),
                "skill_dir": str(self.skill.directory),
                "description": self.skill.description,
            },
        )

        manifest_path = output_path.with_suffix(".manifest.json")
        with open(manifest_path, "w", encoding="utf-8") as f:
            json.dump(bundle.to_dict(), f, indent=2)

        logger.info(
            "bundle_written",
            skill=self.skill.name,
            path=str(output_path),
            files=len(members),
            checksum=bundle.checksum,
        )
        return bundle


def compute_checksum(path: Path) -> str:
    """Compute SHA256 checksum of a file (first 16 hex chars)."""
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            hasher.update(chunk)
    return hasher.hexdigest()[:16]


def create_bundles(bundle: SkillBundle, output_dir: Path) -> List[DistributionBundle]:
    """
    Zip every skill in a bundle.

    Args:
        bundle: Loaded skill bundle.
        output_dir: Directory receiving `<name>.zip` and `<name>.manifest.json`.

    Skills sharing a name are bundled once; the first in path order wins.

    Returns:
        One DistributionBundle per skill name, sorted by name.
    """
    return [
        BundleCreator(skill).create_bundle(output_dir / f"{skill.name}.zip")
        for skill in SkillIndex(bundle)
    ]


class MarketplaceBuilder:
    """
    Builds marketplace.json for a bundle.

    Each skill becomes one plugin whose source is the skill directory
    relative to the bundle root.
    """

    def __init__(
        self,
        bundle: SkillBundle,
        name: str,
        owner: str,
        description: str = "",
        version: str = "1.0.0",
        owner_email: Optional[str] = None,
    ):
        self.bundle = bundle
        self.name = name
        self.owner = owner
        self.description = description
        self.version = version
        self.owner_email = owner_email

    def build(self) -> MarketplaceManifest:
        root = self.bundle.root.resolve()
        plugins = []
        for skill in self.bundle.skills:
            try:
                relative = skill.directory.resolve().relative_to(root).as_posix()
            except ValueError:
                relative = skill.directory.as_posix()
            source = "./" if relative == "." else f"./{relative}"
            plugins.append(MarketplaceEntry(
                name=skill.name,
                description=skill.description,
                source=source,
                version=skill.frontmatter.version,
                skills=[source],
            ))

        try:
            return MarketplaceManifest(
                name=self.name,
                owner=MarketplaceOwner(name=self.owner, email=self.owner_email),
                metadata=MarketplaceMetadata(description=self.description, version=self.version),
                plugins=plugins,
            )
        except ValidationError as e:
            raise ManifestError(f"Cannot build marketplace manifest: {e}") from e

    def write(self, path: Path) -> MarketplaceManifest:
        """Build and write marketplace.json; returns the manifest written."""
        manifest = self.build()
        path.parent.mkdir(parents=True, exist_ok=True)
        data = manifest.model_dump(mode="json", exclude_none=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.info("marketplace_written", path=str(path), plugins=len(manifest.plugins))
        return manifest

    @staticmethod
    def load(path: Path) -> MarketplaceManifest:
        """
        Read and validate an existing marketplace.json.

        Raises:
            ManifestError: Missing file, bad JSON or schema violation.
        """
        if not path.is_file():
            raise ManifestError(f"{path} not found")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ManifestError(f"{path}: invalid JSON: {e}") from e
        try:
            return MarketplaceManifest.model_validate(data)
        except ValidationError as e:
            raise ManifestError(f"{path}: {e}") from e


class PreflightChecker:
    """
    Performs pre-flight checks before distribution.
    """

    def __init__(
        self,
        bundle_root: Path,
        lint_engine: Optional[Any] = None,
    ):
        """Initialize with bundle root and optional lint engine."""
        self.bundle_root = bundle_root
        self.lint_engine = lint_engine

    def run_checks(self) -> PreflightResult:
        """
        Run all pre-flight checks.

        Returns:
            PreflightResult with all check results.
        """
        loader = SkillLoader(self.bundle_root)
        bundle = loader.load_bundle()

        checks = [
            self._check_skills_present(bundle),
            self._check_all_loaded(bundle),
        ]

        if self.lint_engine:
            checks.append(self._check_lint())

        checks.append(self._check_versions(bundle))
        checks.append(self._check_no_todos(bundle))

        # Errors fail, warnings ok
        success = all(
            c.passed or c.severity != "error"
            for c in checks
        )

        return PreflightResult(success=success, checks=checks)

    def _check_skills_present(self, bundle: SkillBundle) -> PreflightCheck:
        """Check that the bundle holds at least one skill."""
        if bundle.skills:
            return PreflightCheck(
                name="skills_present",
                passed=True,
                message=f"{len(bundle.skills)} skill(s) found",
            )
        return PreflightCheck(
            name="skills_present",
            passed=False,
            message=f"No loadable {SKILL_MD_FILENAME} found",
        )

    def _check_all_loaded(self, bundle: SkillBundle) -> PreflightCheck:
        """Check that every SKILL.md parsed."""
        if not bundle.load_errors:
            return PreflightCheck(
                name="skills_loaded",
                passed=True,
                message="All skills loaded",
            )
        failed = ", ".join(str(e.path) for e in bundle.load_errors)
        return PreflightCheck(
            name="skills_loaded",
            passed=False,
            message=f"{len(bundle.load_errors)} skill(s) failed to load: {failed}",
        )

    def _check_lint(self) -> PreflightCheck:
        """Check that linting passes."""
        result = self.lint_engine.lint_path(self.bundle_root, strict=False)

        if result.valid:
            return PreflightCheck(
                name="lint",
                passed=True,
                message="Lint passed",
            )

        return PreflightCheck(
            name="lint",
            passed=False,
            message=f"Lint failed: {result.total_errors} errors",
        )

    def _check_versions(self, bundle: SkillBundle) -> PreflightCheck:
        """Check that every skill declares a version."""
        missing = [s.name for s in bundle.skills if s.frontmatter.version is None]
        if not missing:
            return PreflightCheck(
                name="version_specified",
                passed=True,
                message="All skills declare a version",
            )

        return PreflightCheck(
            name="version_specified",
            passed=False,
            message=f"No version in front matter: {', '.join(missing)}",
            severity="warning",
        )

    def _check_no_todos(self, bundle: SkillBundle) -> PreflightCheck:
        """Check that no TODO markers remain in SKILL.md files."""
        todo_count = 0
        for skill in bundle.skills:
            try:
                todo_count += skill.skill_md_path.read_text(encoding="utf-8").count("TODO")
            except (OSError, UnicodeDecodeError):
                continue

        if todo_count == 0:
            return PreflightCheck(
                name="no_todos",
                passed=True,
                message="No TODO markers found",
            )

        return PreflightCheck(
            name="no_todos",
            passed=False,
            message=f"Found {todo_count} TODO markers in {SKILL_MD_FILENAME} files",
            severity="warning",
        )


def run_preflight_checks(
    bundle_root: Path,
    lint_engine: Optional[Any] = None,
) -> PreflightResult:
    """
    Convenience function to run pre-flight checks.

    Args:
        bundle_root: Path to bundle root.
        lint_engine: Optional lint engine.

    Returns:
        PreflightResult with check results.
    """
    checker = PreflightChecker(bundle_root, lint_engine)
    return checker.run_checks()
