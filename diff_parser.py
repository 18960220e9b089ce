"""Unified diff parser for git diff output, including extended headers."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

DEV_NULL = "/dev/null"


class DiffError(Exception):
    """Base class for errors raised while obtaining or parsing a diff."""


class EmptyInputError(DiffError, ValueError):
    """Raised when the diff content is empty."""


class ReadError(DiffError, IOError):
    """Raised when diff text cannot be read from its source."""


class LineType(str, Enum):
    """Kind of a line inside a hunk."""
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


@dataclass(frozen=True)
class Line:
    """A single line of a hunk, with its diff marker stripped.

    ``number`` is a position in the new file. Removed lines get the new-file
    counter minus one, i.e. the position just before the next surviving line;
    it is not an old-file line number.
    """
    type: LineType
    content: str
    number: int


@dataclass(frozen=True)
class Hunk:
    """Represents a hunk of changes within a file."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: Tuple[Line, ...] = ()


@dataclass(frozen=True)
class FileDiff:
    """Represents changes to a single file in a diff."""
    old_path: str
    new_path: str
    hunks: Tuple[Hunk, ...] = ()
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    is_copied: bool = False
    is_binary: bool = False
    old_mode: str = ""
    new_mode: str = ""
    similarity: int = 0


@dataclass(frozen=True)
class Diff:
    """A complete parsed diff: files in the order they appear."""
    files: Tuple[FileDiff, ...] = ()


# Line shapes, tested in this order. The first match wins.
FILE_HEADER_RE = re.compile(r'^diff --git a/(.*) b/(.*)$')
OLD_FILE_RE = re.compile(r'^--- (?:a/(.*)|(/dev/null))$')
NEW_FILE_RE = re.compile(r'^\+\+\+ (?:b/(.*)|(/dev/null))$')
BINARY_FILE_RE = re.compile(r'^Binary files (.*) and (.*) differ$')
NEW_FILE_MODE_RE = re.compile(r'^new file mode ([0-9]+)$')
DELETED_FILE_MODE_RE = re.compile(r'^deleted file mode ([0-9]+)$')
OLD_MODE_RE = re.compile(r'^old mode ([0-9]+)$')
NEW_MODE_RE = re.compile(r'^new mode ([0-9]+)$')
RENAME_FROM_RE = re.compile(r'^rename from (.*)$')
RENAME_TO_RE = re.compile(r'^rename to (.*)$')
COPY_FROM_RE = re.compile(r'^copy from (.*)$')
COPY_TO_RE = re.compile(r'^copy to (.*)$')
SIMILARITY_RE = re.compile(r'^similarity index ([0-9]+)%$')
INDEX_RE = re.compile(r'^index ([0-9a-f]+)\.\.([0-9a-f]+)')
HUNK_HEADER_RE = re.compile(r'^@@ -([0-9]+),?([0-9]*) \+([0-9]+),?([0-9]*) @@')


def _to_int(text: str, default: int = 0) -> int:
    """Convert a numeral from a header, falling back to ``default``."""
    try:
        return int(text)
    except (TypeError, ValueError):
        return default


@dataclass
class _PendingHunk:
    """A hunk still being filled with lines."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: List[Line] = field(default_factory=list)

    def build(self) -> Hunk:
        return Hunk(
            old_start=self.old_start,
            old_count=self.old_count,
            new_start=self.new_start,
            new_count=self.new_count,
            lines=tuple(self.lines),
        )


@dataclass
class _PendingFile:
    """A file record still receiving headers and hunks."""
    old_path: str
    new_path: str
    hunks: List[Hunk] = field(default_factory=list)
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    is_copied: bool = False
    is_binary: bool = False
    old_mode: str = ""
    new_mode: str = ""
    similarity: int = 0

    def build(self) -> FileDiff:
        return FileDiff(
            old_path=self.old_path,
            new_path=self.new_path,
            hunks=tuple(self.hunks),
            is_new=self.is_new,
            is_deleted=self.is_deleted,
            is_renamed=self.is_renamed,
            is_copied=self.is_copied,
            is_binary=self.is_binary,
            old_mode=self.old_mode,
            new_mode=self.new_mode,
            similarity=self.similarity,
        )


class _DiffBuilder:
    """Holds the open file and open hunk during a single parse.

    Each ``on_*`` handler receives the match of its line shape. Handlers for
    per-file metadata are no-ops until a file header has been seen.
    """

    def __init__(self):
        self.files: List[FileDiff] = []
        self.current_file: Optional[_PendingFile] = None
        self.current_hunk: Optional[_PendingHunk] = None
        self.line_number = 0
        self.skipped = 0

    def flush_hunk(self):
        if self.current_hunk is not None and self.current_file is not None:
            self.current_file.hunks.append(self.current_hunk.build())
        self.current_hunk = None

    def flush_file(self):
        self.flush_hunk()
        if self.current_file is not None:
            self.files.append(self.current_file.build())
        self.current_file = None

    def finish(self) -> Diff:
        self.flush_file()
        return Diff(files=tuple(self.files))

    def on_file_header(self, match: re.Match):
        self.flush_file()
        self.current_file = _PendingFile(old_path=match.group(1), new_path=match.group(2))

    def on_old_file(self, match: re.Match):
        if self.current_file is not None and match.group(2) == DEV_NULL:
            self.current_file.is_new = True

    def on_new_file(self, match: re.Match):
        if self.current_file is not None and match.group(2) == DEV_NULL:
            self.current_file.is_deleted = True

    def on_binary(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.is_binary = True

    def on_new_file_mode(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.is_new = True
            self.current_file.new_mode = match.group(1)

    def on_deleted_file_mode(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.is_deleted = True
            self.current_file.old_mode = match.group(1)

    def on_old_mode(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.old_mode = match.group(1)

    def on_new_mode(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.new_mode = match.group(1)

    def on_rename_from(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.is_renamed = True
            self.current_file.old_path = match.group(1)

    def on_rename_to(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.is_renamed = True
            self.current_file.new_path = match.group(1)

    def on_copy_from(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.is_copied = True
            self.current_file.old_path = match.group(1)

    def on_copy_to(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.is_copied = True
            self.current_file.new_path = match.group(1)

    def on_similarity(self, match: re.Match):
        if self.current_file is not None:
            self.current_file.similarity = _to_int(match.group(1))

    def on_index(self, match: re.Match):
        pass

    def on_hunk_header(self, match: re.Match):
        self.flush_hunk()
        old_start, old_count, new_start, new_count = match.groups()
        self.current_hunk = _PendingHunk(
            old_start=_to_int(old_start),
            old_count=_to_int(old_count) if old_count else 1,
            new_start=_to_int(new_start),
            new_count=_to_int(new_count) if new_count else 1,
        )
        self.line_number = self.current_hunk.new_start

    def on_content(self, line: str):
        """Classify a line that matched no header shape."""
        if self.current_hunk is None:
            self.skipped += 1
            return

        if line.startswith('+') and not line.startswith('+++'):
            self.current_hunk.lines.append(Line(LineType.ADDED, line[1:], self.line_number))
            self.line_number += 1
        elif line.startswith('-') and not line.startswith('---'):
            # Removed lines do not advance the new-file counter.
            self.current_hunk.lines.append(Line(LineType.REMOVED, line[1:], self.line_number - 1))
        elif line.startswith(' '):
            self.current_hunk.lines.append(Line(LineType.CONTEXT, line[1:], self.line_number))
            self.line_number += 1
        else:
            logger.debug("Ignoring line inside hunk: %r", line)
            self.skipped += 1


LINE_RULES = (
    (FILE_HEADER_RE, _DiffBuilder.on_file_header),
    (OLD_FILE_RE, _DiffBuilder.on_old_file),
    (NEW_FILE_RE, _DiffBuilder.on_new_file),
    (BINARY_FILE_RE, _DiffBuilder.on_binary),
    (NEW_FILE_MODE_RE, _DiffBuilder.on_new_file_mode),
    (DELETED_FILE_MODE_RE, _DiffBuilder.on_deleted_file_mode),
    (OLD_MODE_RE, _DiffBuilder.on_old_mode),
    (NEW_MODE_RE, _DiffBuilder.on_new_mode),
    (RENAME_FROM_RE, _DiffBuilder.on_rename_from),
    (RENAME_TO_RE, _DiffBuilder.on_rename_to),
    (COPY_FROM_RE, _DiffBuilder.on_copy_from),
    (COPY_TO_RE, _DiffBuilder.on_copy_to),
    (SIMILARITY_RE, _DiffBuilder.on_similarity),
    (INDEX_RE, _DiffBuilder.on_index),
    (HUNK_HEADER_RE, _DiffBuilder.on_hunk_header),
)


def split_diff_lines(content: str) -> List[str]:
    """
    Split diff text into physical lines.

    Only ``\\n`` separates lines; a trailing ``\\r`` is dropped from each line
    and a final newline does not produce an extra empty line.

    Args:
        content: Raw diff text

    Returns:
        List of lines without line terminators
    """
    lines = content.split('\n')
    if lines and lines[-1] == '':
        lines.pop()
    return [line[:-1] if line.endswith('\r') else line for line in lines]


class DiffParser:
    """Parser that turns git diff text into a :class:`Diff`."""

    def __init__(self, rules=LINE_RULES):
        self.rules = rules

    def parse(self, content: str) -> Diff:
        """
        Parse git diff output into a structured Diff.

        Args:
            content: Raw git diff output

        Returns:
            Diff with files, hunks and lines in textual order

        Raises:
            EmptyInputError: If ``content`` is empty
        """
        if content == "":
            raise EmptyInputError("empty diff content")

        builder = _DiffBuilder()
        for line in split_diff_lines(content):
            self._dispatch(builder, line)

        diff = builder.finish()
        logger.debug(
            "Parsed diff: %d file(s), %d hunk(s), %d line(s) skipped",
            len(diff.files),
            sum(len(f.hunks) for f in diff.files),
            builder.skipped,
        )
        return diff

    def _dispatch(self, builder: _DiffBuilder, line: str):
        for pattern, handler in self.rules:
            match = pattern.match(line)
            if match:
                handler(builder, match)
                return
        builder.on_content(line)


def parse_diff(content: str) -> Diff:
    """
    Convenience function to parse git diff output.

    Args:
        content: Raw git diff output

    Returns:
        Parsed Diff
    """
    return DiffParser().parse(content)
