"""Read-only queries and aggregations over a parsed Diff."""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from diff_parser import Diff, FileDiff, Hunk, Line, LineType


@dataclass(frozen=True)
class DiffStats:
    """Statistics about a diff."""
    files: int
    lines_added: int
    lines_removed: int

    @property
    def net_change(self) -> int:
        return self.lines_added - self.lines_removed


@dataclass(frozen=True)
class LineInfo:
    """A changed line together with the file it belongs to."""
    file: str
    line: int
    content: str
    type: LineType


def stats(diff: Diff) -> DiffStats:
    """Count files and added/removed lines across the whole diff."""
    added = 0
    removed = 0
    for file_diff in diff.files:
        for hunk in file_diff.hunks:
            hunk_added, hunk_removed = hunk_line_counts(hunk)
            added += hunk_added
            removed += hunk_removed
    return DiffStats(files=len(diff.files), lines_added=added, lines_removed=removed)


def hunk_line_counts(hunk: Hunk) -> Tuple[int, int]:
    """Return the number of added and removed lines in a hunk."""
    added = sum(1 for line in hunk.lines if line.type is LineType.ADDED)
    removed = sum(1 for line in hunk.lines if line.type is LineType.REMOVED)
    return added, removed


def _collect_lines(diff: Diff, line_type: LineType, use_old_path: bool) -> List[LineInfo]:
    collected = []
    for file_diff in diff.files:
        path = file_diff.old_path if use_old_path else file_diff.new_path
        for hunk in file_diff.hunks:
            for line in hunk.lines:
                if line.type is line_type:
                    collected.append(LineInfo(
                        file=path,
                        line=line.number,
                        content=line.content,
                        type=line.type,
                    ))
    return collected


def get_added_lines(diff: Diff) -> List[LineInfo]:
    """
    Get every added line in the diff.

    Args:
        diff: Parsed diff

    Returns:
        LineInfo entries in file, hunk, line order, attributed to the new path
    """
    return _collect_lines(diff, LineType.ADDED, use_old_path=False)


def get_removed_lines(diff: Diff) -> List[LineInfo]:
    """
    Get every removed line in the diff.

    Args:
        diff: Parsed diff

    Returns:
        LineInfo entries in file, hunk, line order, attributed to the old path
    """
    return _collect_lines(diff, LineType.REMOVED, use_old_path=True)


def get_modified_files(diff: Diff) -> List[str]:
    """New path of every file in the diff, in order, duplicates kept."""
    return [file_diff.new_path for file_diff in diff.files]


def has_changes(hunk: Hunk) -> bool:
    """True if the hunk has at least one added or removed line."""
    return any(line.type is not LineType.CONTEXT for line in hunk.lines)


def get_context_around_line(hunk: Hunk, line_index: int, context_size: int) -> List[Line]:
    """
    Get the lines surrounding a line of a hunk.

    The window is clamped to the hunk, so indexes near either end return
    fewer lines. Lines of every type are included.

    Args:
        hunk: Hunk to slice
        line_index: Index into ``hunk.lines``
        context_size: Number of lines to include on each side

    Returns:
        Lines in ``[line_index - context_size, line_index + context_size]``
    """
    start = max(0, line_index - context_size)
    end = min(len(hunk.lines), line_index + context_size + 1)
    if end <= start:
        return []
    return list(hunk.lines[start:end])


def _file_to_dict(file_diff: FileDiff) -> Dict[str, Any]:
    return {
        "old_path": file_diff.old_path,
        "new_path": file_diff.new_path,
        "is_new": file_diff.is_new,
        "is_deleted": file_diff.is_deleted,
        "is_renamed": file_diff.is_renamed,
        "is_copied": file_diff.is_copied,
        "is_binary": file_diff.is_binary,
        "old_mode": file_diff.old_mode,
        "new_mode": file_diff.new_mode,
        "similarity": file_diff.similarity,
        "hunks": [
            {
                "old_start": hunk.old_start,
                "old_count": hunk.old_count,
                "new_start": hunk.new_start,
                "new_count": hunk.new_count,
                "lines": [
                    {"type": line.type.value, "content": line.content, "number": line.number}
                    for line in hunk.lines
                ],
            }
            for hunk in file_diff.hunks
        ],
    }


def diff_to_dict(diff: Diff) -> Dict[str, Any]:
    """Plain-data rendering of a diff, suitable for JSON."""
    return {"files": [_file_to_dict(file_diff) for file_diff in diff.files]}


def cache_key(diff: Diff) -> str:
    """
    Content-addressed key for a parsed diff.

    Identical diffs give the same key in every process.

    Args:
        diff: Parsed diff

    Returns:
        Hex SHA-256 digest of the diff's canonical JSON form
    """
    payload = json.dumps(diff_to_dict(diff), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


_LINE_MARKERS = {
    LineType.ADDED: "+",
    LineType.REMOVED: "-",
    LineType.CONTEXT: " ",
}


def format_diff(diff: Diff) -> str:
    """
    Render a parsed diff back into unified-diff text.

    Extended headers are not reproduced; the output carries file headers,
    ``---``/``+++`` lines, hunk headers and marked lines only.

    Args:
        diff: Parsed diff

    Returns:
        Diff text, one trailing newline per line
    """
    parts = []
    for file_diff in diff.files:
        parts.append(f"diff --git a/{file_diff.old_path} b/{file_diff.new_path}\n")
        parts.append(f"--- a/{file_diff.old_path}\n")
        parts.append(f"+++ b/{file_diff.new_path}\n")
        for hunk in file_diff.hunks:
            parts.append(
                f"@@ -{hunk.old_start},{hunk.old_count} +{hunk.new_start},{hunk.new_count} @@\n"
            )
            for line in hunk.lines:
                parts.append(f"{_LINE_MARKERS[line.type]}{line.content}\n")
    return "".join(parts)
