"""
Markdown parsing helpers for skill files.

Covers the small subset of Markdown the loader and linters need:
front matter, heading hierarchy, fenced code blocks and links into a
skill's references/ folder.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import FrontmatterError


@dataclass
class FrontmatterData:
    """
    Parsed frontmatter data from a SKILL.md file.

    Attributes:
        present: Whether a --- delimited block was found at all.
        raw: Parsed YAML mapping.
        end_line: Line number of the closing delimiter (0 when absent).
    """

    present: bool = False
    raw: Dict[str, Any] = field(default_factory=dict)
    end_line: int = 0

    @property
    def name(self) -> str:
        value = self.raw.get("name")
        return "" if value is None else str(value).strip()

    @property
    def description(self) -> str:
        value = self.raw.get("description")
        return "" if value is None else " ".join(str(value).split())


@dataclass
class MarkdownSection:
    """
    A section extracted from a Markdown file.

    Attributes:
        title: Section title (without # prefix).
        level: Heading level (1-6).
        line: 1-based line of the heading.
        content: Raw content of the section.
        subsections: List of nested subsections.
    """

    title: str
    level: int
    line: int
    content: str
    subsections: List["MarkdownSection"] = field(default_factory=list)


@dataclass
class CodeFence:
    """A fenced code block. `end_line` is None when the fence never closes."""

    start_line: int
    marker: str
    length: int
    info: str = ""
    end_line: Optional[int] = None

    @property
    def terminated(self) -> bool:
        return self.end_line is not None

    @property
    def language(self) -> str:
        return self.info.split()[0] if self.info else ""


@dataclass
class ReferenceLink:
    """A mention of a references/ path in Markdown text."""

    target: str
    line: int
    text: str = ""


class FrontmatterParser:
    """Parser for YAML frontmatter in Markdown files."""

    FRONTMATTER_PATTERN = re.compile(
        r"\A---[ \t]*\r?\n(.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)",
        re.MULTILINE | re.DOTALL,
    )

    @classmethod
    def parse(cls, content: str) -> Tuple[FrontmatterData, str]:
        """
        Parse frontmatter from Markdown content.

        Args:
            content: Full Markdown file content.

        Returns:
            Tuple of (FrontmatterData, remaining content).

        Raises:
            FrontmatterError: The block exists but is not a YAML mapping.
        """
        if content.startswith("\ufeff"):
            content = content[1:]

        match = cls.FRONTMATTER_PATTERN.match(content)
        if not match:
            return FrontmatterData(), content

        try:
            raw_data = yaml.safe_load(match.group(1)) or {}
        except yaml.YAMLError as e:
            raise FrontmatterError(f"Invalid YAML in front matter: {e}") from e

        if not isinstance(raw_data, dict):
            raise FrontmatterError(
                f"Front matter must be a mapping, got {type(raw_data).__name__}"
            )

        end_line = content[:match.end()].rstrip("\n").count("\n") + 1
        return FrontmatterData(present=True, raw=raw_data, end_line=end_line), content[match.end():]


# Up to three spaces of indentation, then 3+ backticks or tildes.
_FENCE_OPEN = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")


def scan_code_fences(content: str) -> List[CodeFence]:
    """
    Find every fenced code block in `content`.

    A fence closes on a line using the same marker character, at least as
    long as the opener, with nothing but whitespace after it.
    """
    fences: List[CodeFence] = []
    current: Optional[CodeFence] = None

    for lineno, line in enumerate(content.splitlines(), 1):
        match = _FENCE_OPEN.match(line)
        if current is None:
            if not match:
                continue
            run, info = match.group(1), match.group(2).strip()
            # Backtick fences may not carry backticks in their info string
            if run[0] == "`" and "`" in info:
                continue
            current = CodeFence(start_line=lineno, marker=run[0], length=len(run), info=info)
            fences.append(current)
        elif match:
            run, rest = match.group(1), match.group(2)
            if run[0] == current.marker and len(run) >= current.length and not rest.strip():
                current.end_line = lineno
                current = None

    return fences


def fenced_lines(content: str) -> set:
    """Return 1-based line numbers that sit inside (or delimit) code fences."""
    total = content.count("\n") + 1
    lines = set()
    for fence in scan_code_fences(content):
        end = fence.end_line if fence.end_line is not None else total
        lines.update(range(fence.start_line, end + 1))
    return lines


class MarkdownSectionExtractor:
    """Extracts sections from Markdown content."""

    HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})\s+(.+?)(?:\s+#+)?\s*$")

    @classmethod
    def extract(cls, content: str) -> List[MarkdownSection]:
        """
        Extract all sections from Markdown content.

        Headings inside code fences are ignored.

        Args:
            content: Markdown content (without frontmatter).

        Returns:
            List of top-level sections with nested subsections.
        """
        skip = fenced_lines(content)
        lines = content.splitlines()

        headings = []
        for lineno, line in enumerate(lines, 1):
            if lineno in skip:
                continue
            match = cls.HEADING_PATTERN.match(line)
            if match:
                headings.append((lineno, len(match.group(1)), match.group(2).strip()))

        if not headings:
            return []

        sections = []
        for i, (lineno, level, title) in enumerate(headings):
            end = headings[i + 1][0] - 1 if i + 1 < len(headings) else len(lines)
            section_content = "\n".join(lines[lineno:end]).strip()
            sections.append(MarkdownSection(
                title=title,
                level=level,
                line=lineno,
                content=section_content,
            ))

        return cls._build_hierarchy(sections)

    @classmethod
    def _build_hierarchy(
        cls,
        flat_sections: List[MarkdownSection],
    ) -> List[MarkdownSection]:
        """Build section hierarchy from flat list."""
        result = []
        stack: List[MarkdownSection] = []

        for section in flat_sections:
            # Pop sections of same or higher level
            while stack and stack[-1].level >= section.level:
                stack.pop()

            if stack:
                stack[-1].subsections.append(section)
            else:
                result.append(section)

            stack.append(section)

        return result

    @classmethod
    def get_section(
        cls,
        sections: List[MarkdownSection],
        title: str,
    ) -> Optional[MarkdownSection]:
        """Find a section by title (case-insensitive)."""
        title_lower = title.lower()

        for section in sections:
            if section.title.lower() == title_lower:
                return section
            found = cls.get_section(section.subsections, title)
            if found:
                return found

        return None


def first_heading(content: str) -> Optional[str]:
    """Return the text of the first level-1 heading, if any."""
    for section in MarkdownSectionExtractor.extract(content):
        if section.level == 1:
            return section.title
    return None


_REFERENCE_PATTERN = re.compile(
    r"(?<![\w/.-])(?:\./)?(references/[^\s()\[\]`'\"<>#]+)(#[^\s)]*)?"
)
_TRAILING_PUNCTUATION = ".,;:!?"


def extract_reference_links(content: str, line_offset: int = 0) -> List[ReferenceLink]:
    """
    Find every references/ path mentioned outside code fences.

    Catches Markdown link targets, inline code spans and bare paths.
    Anchors and trailing sentence punctuation are dropped.

    Args:
        content: Markdown text.
        line_offset: Added to reported line numbers, for bodies that were
            split off a file after its front matter.
    """
    skip = fenced_lines(content)
    links: List[ReferenceLink] = []

    for lineno, line in enumerate(content.splitlines(), 1):
        if lineno in skip or "references/" not in line:
            continue
        for match in _REFERENCE_PATTERN.finditer(line):
            target = match.group(1).rstrip(_TRAILING_PUNCTUATION)
            if target.endswith("/") or target == "references":
                # Mentions of the folder itself are not file references
                continue
            links.append(ReferenceLink(
                target=target,
                line=lineno + line_offset,
                text=match.group(0),
            ))

    return links
