"""
Filesystem view of a bundle shared by all lint layers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..loader import SKIPPED_DIRS, SkillLoader


@dataclass
class LintContext:
    """
    Files under a bundle root, read lazily and cached.

    Attributes:
        root: Bundle root directory.
        skill_dirs: Directories containing a SKILL.md.
        markdown_files: Every *.md file in the bundle, sorted.
    """

    root: Path
    skill_dirs: List[Path] = field(default_factory=list)
    markdown_files: List[Path] = field(default_factory=list)
    _cache: Dict[Path, Optional[str]] = field(default_factory=dict, repr=False)

    @classmethod
    def from_root(cls, root: Path) -> "LintContext":
        root = Path(root)
        skill_dirs = SkillLoader(root).discover()

        markdown_files: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(
                d for d in dirnames
                if not d.startswith(".") and d not in SKIPPED_DIRS
            )
            for filename in sorted(filenames):
                if filename.lower().endswith(".md"):
                    markdown_files.append(Path(dirpath) / filename)

        return cls(root=root, skill_dirs=skill_dirs, markdown_files=sorted(markdown_files))

    def read(self, path: Path) -> Optional[str]:
        """Return file content, or None when it cannot be decoded as UTF-8."""
        if path not in self._cache:
            try:
                self._cache[path] = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                self._cache[path] = None
        return self._cache[path]

    def display(self, path: Path) -> str:
        """Path relative to the bundle root, posix style."""
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    @property
    def root_is_skill(self) -> bool:
        return any(d == self.root for d in self.skill_dirs)
