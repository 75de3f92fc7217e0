"""
Skill discovery, loading and indexing.

SkillLoader walks a bundle root for directories holding a SKILL.md and
turns each into a Skill. Reference files are listed at load time but
their content is only read when asked for. SkillIndex offers lookup by
name and keyword matching of a task description against skill metadata.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from difflib import get_close_matches
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from pydantic import ValidationError

from .errors import (
    DuplicateSkillError,
    FrontmatterError,
    ReferenceNotFoundError,
    SkillNotFoundError,
    SkillParseError,
)
from .logging_config import get_logger
from .markdown import FrontmatterParser, first_heading
from .models import (
    BUNDLE_DOC_FILENAMES,
    REFERENCES_DIRNAME,
    SKILL_MD_FILENAME,
    BundleDoc,
    LoadError,
    ReferenceFile,
    Skill,
    SkillBundle,
    SkillFrontmatter,
)

logger = get_logger(__name__)

SKIPPED_DIRS = {"node_modules", "__pycache__", "dist", "build"}


class SkillLoader:
    """
    Loads skills from a bundle root.

    The root may itself be a skill directory, or contain any number of
    skill directories at any depth.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def discover(self) -> List[Path]:
        """Return every directory under root that contains a SKILL.md, sorted."""
        if not self.root.is_dir():
            raise FileNotFoundError(f"Bundle root not found: {self.root}")

        found: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            # Prune in place so os.walk does not descend
            dirnames[:] = sorted(
                d for d in dirnames
                if not d.startswith(".") and d not in SKIPPED_DIRS
            )
            if SKILL_MD_FILENAME in filenames:
                found.append(Path(dirpath))

        return sorted(found)

    def load_skill(self, directory: Path) -> Skill:
        """
        Load one skill directory.

        Raises:
            SkillParseError: SKILL.md missing, without front matter, with
                malformed YAML, or with invalid name/description.
        """
        directory = Path(directory)
        skill_md = directory / SKILL_MD_FILENAME
        if not skill_md.is_file():
            raise SkillParseError(skill_md, "SKILL.md not found")

        try:
            content = skill_md.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise SkillParseError(skill_md, f"not valid UTF-8: {e}") from e

        try:
            frontmatter_data, body = FrontmatterParser.parse(content)
        except FrontmatterError as e:
            raise SkillParseError(skill_md, str(e)) from e

        if not frontmatter_data.present:
            raise SkillParseError(skill_md, "missing front matter block (--- ... ---)")

        try:
            frontmatter = SkillFrontmatter.from_raw(frontmatter_data.raw)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise SkillParseError(skill_md, f"invalid front matter: {problems}") from e

        skill = Skill(
            frontmatter=frontmatter,
            directory=directory,
            body=body,
            references=self.list_references(directory),
        )
        logger.debug(
            "skill_loaded",
            skill=skill.name,
            path=str(directory),
            references=len(skill.references),
        )
        return skill

    @staticmethod
    def list_references(directory: Path) -> List[ReferenceFile]:
        """List references/**/*.md under a skill directory without reading bodies."""
        refs_dir = directory / REFERENCES_DIRNAME
        if not refs_dir.is_dir():
            return []

        references = []
        for path in sorted(refs_dir.rglob("*.md")):
            if not path.is_file():
                continue
            relative = path.relative_to(directory).as_posix()
            title = _read_title(path) or path.stem
            references.append(ReferenceFile(
                name=path.stem,
                path=relative,
                title=title,
                size=path.stat().st_size,
            ))
        return references

    def list_docs(self) -> List[BundleDoc]:
        """Top-level README/OVERVIEW/QUICKSTART files present at the root."""
        return [
            BundleDoc(name=filename, path=self.root / filename)
            for filename in BUNDLE_DOC_FILENAMES
            if (self.root / filename).is_file()
        ]

    def load_bundle(self, strict: bool = False) -> SkillBundle:
        """
        Load every skill under the root.

        Args:
            strict: Re-raise the first load failure instead of recording it.

        Returns:
            SkillBundle with skills sorted by name.
        """
        skills: List[Skill] = []
        errors: List[LoadError] = []

        for directory in self.discover():
            try:
                skills.append(self.load_skill(directory))
            except SkillParseError as e:
                if strict:
                    raise
                logger.warning("skill_skipped", path=str(e.path), reason=e.reason)
                errors.append(LoadError(path=e.path, reason=e.reason))

        skills.sort(key=lambda s: (s.name, str(s.directory)))
        bundle = SkillBundle(
            root=self.root,
            skills=skills,
            docs=self.list_docs(),
            load_errors=errors,
        )
        logger.info(
            "bundle_loaded",
            root=str(self.root),
            skills=len(skills),
            errors=len(errors),
        )
        return bundle

    @staticmethod
    def read_reference(skill: Skill, name_or_path: str) -> str:
        """
        Read a reference file's content on demand.

        Raises:
            ReferenceNotFoundError: No such reference, or the path would
                leave the skill directory.
            SkillParseError: The reference is not valid UTF-8.
        """
        ref = skill.get_reference(name_or_path)
        if ref is None:
            raise ReferenceNotFoundError(skill.name, name_or_path)

        directory = skill.directory.resolve()
        path = (directory / ref.path).resolve()
        if directory not in path.parents:
            raise ReferenceNotFoundError(skill.name, name_or_path)

        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise SkillParseError(path, f"not valid UTF-8: {e}") from e

        logger.debug("reference_read", skill=skill.name, reference=ref.path)
        return content


def _read_title(path: Path) -> Optional[str]:
    """First level-1 heading of a Markdown file, ignoring front matter."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    try:
        _, body = FrontmatterParser.parse(content)
    except FrontmatterError:
        body = content
    return first_heading(body)


STOP_WORDS = {
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "how",
    "in", "into", "is", "it", "of", "on", "or", "the", "this", "to", "use",
    "when", "with", "you", "your", "i", "me", "my", "we", "our", "do",
}

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> List[str]:
    """Lowercase alphanumeric tokens of length >= 2, minus stop words."""
    return [
        t for t in _TOKEN_PATTERN.findall(text.lower())
        if len(t) >= 2 and t not in STOP_WORDS
    ]


@dataclass
class SkillMatch:
    """A skill ranked against a task description."""

    skill: Skill
    score: int
    matched_terms: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.skill.name,
            "score": self.score,
            "matched_terms": self.matched_terms,
            "description": self.skill.description,
        }


class SkillIndex:
    """
    Static index over a loaded bundle.

    Lookup is by front-matter name. Duplicate names keep the first skill
    in path order; strict mode raises DuplicateSkillError instead.
    """

    NAME_WEIGHT = 3
    DESCRIPTION_WEIGHT = 2
    REFERENCE_WEIGHT = 1

    def __init__(self, bundle: SkillBundle, strict: bool = False):
        self.bundle = bundle
        self._skills: Dict[str, Skill] = {}

        for skill in sorted(bundle.skills, key=lambda s: str(s.directory)):
            existing = self._skills.get(skill.name)
            if existing is not None:
                if strict:
                    raise DuplicateSkillError(skill.name, [existing.directory, skill.directory])
                logger.warning(
                    "duplicate_skill_ignored",
                    skill=skill.name,
                    kept=str(existing.directory),
                    ignored=str(skill.directory),
                )
                continue
            self._skills[skill.name] = skill

    @classmethod
    def from_root(cls, root: Path, strict: bool = False) -> "SkillIndex":
        """Load a bundle from disk and index it."""
        return cls(SkillLoader(root).load_bundle(strict=strict), strict=strict)

    def __len__(self) -> int:
        return len(self._skills)

    def __iter__(self) -> Iterator[Skill]:
        return iter(self._skills[name] for name in self.names())

    def __contains__(self, name: object) -> bool:
        return name in self._skills

    def names(self) -> List[str]:
        return sorted(self._skills)

    def get(self, name: str) -> Skill:
        """Get a skill by name, suggesting close matches on a miss."""
        skill = self._skills.get(name)
        if skill is None:
            suggestions = get_close_matches(name, self.names(), n=3, cutoff=0.5)
            raise SkillNotFoundError(name, suggestions)
        return skill

    def match(self, query: str, limit: int = 5) -> List[SkillMatch]:
        """
        Rank skills for a task description.

        Each query term found in a skill's name scores NAME_WEIGHT, in its
        description DESCRIPTION_WEIGHT, and in any reference title or file
        name REFERENCE_WEIGHT. Skills scoring zero are dropped.
        """
        terms = list(dict.fromkeys(tokenize(query)))
        if not terms:
            return []

        matches = []
        for skill in self:
            name_tokens = set(tokenize(skill.name))
            description_tokens = set(tokenize(skill.description))
            reference_tokens = set()
            for ref in skill.references:
                reference_tokens.update(tokenize(ref.title))
                reference_tokens.update(tokenize(ref.name))

            score = 0
            matched = []
            for term in terms:
                term_score = 0
                if term in name_tokens:
                    term_score += self.NAME_WEIGHT
                if term in description_tokens:
                    term_score += self.DESCRIPTION_WEIGHT
                if term in reference_tokens:
                    term_score += self.REFERENCE_WEIGHT
                if term_score:
                    score += term_score
                    matched.append(term)

            if score > 0:
                matches.append(SkillMatch(skill=skill, score=score, matched_terms=matched))

        matches.sort(key=lambda m: (-m.score, m.skill.name))
        return matches[:limit] if limit > 0 else matches

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready catalogue of skills and their reference files."""
        root = self.bundle.root
        return {
            "root": str(root),
            "skills": [
                {
                    "name": skill.name,
                    "description": skill.description,
                    "path": _relative_posix(skill.directory, root),
                    "version": skill.version,
                    "references": [
                        {"name": ref.name, "path": ref.path, "title": ref.title}
                        for ref in skill.references
                    ],
                }
                for skill in self
            ],
            "docs": [doc.name for doc in self.bundle.docs],
        }


def _relative_posix(path: Path, root: Path) -> str:
    try:
        relative = path.resolve().relative_to(root.resolve())
    except ValueError:
        return path.as_posix()
    return relative.as_posix() or "."
