"""Tests for the read-only query layer."""

import json
import os
import sys

import pytest

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from diff_parser import Diff, FileDiff, Hunk, Line, LineType, parse_diff
from diff_queries import (
    DiffStats,
    LineInfo,
    cache_key,
    diff_to_dict,
    format_diff,
    get_added_lines,
    get_context_around_line,
    get_modified_files,
    get_removed_lines,
    has_changes,
    hunk_line_counts,
    stats,
)


SAMPLE_DIFF = """diff --git a/app.py b/app.py
index abc123..def456 100644
--- a/app.py
+++ b/app.py
@@ -1,4 +1,5 @@
 import os
-import sys
+import sys, json
+import logging

 def main():
diff --git a/old_name.py b/new_name.py
similarity index 90%
rename from old_name.py
rename to new_name.py
--- a/old_name.py
+++ b/new_name.py
@@ -10,3 +10,2 @@
 x = 1
-y = 2
 z = 3
diff --git a/logo.png b/logo.png
Binary files a/logo.png and b/logo.png differ
"""


def make_hunk(*kinds):
    """Build a hunk with one line per kind, numbered from 1."""
    lines = tuple(Line(LineType(kind), f"line {i}", i + 1) for i, kind in enumerate(kinds))
    return Hunk(old_start=1, old_count=len(kinds), new_start=1, new_count=len(kinds), lines=lines)


@pytest.fixture
def sample():
    return parse_diff(SAMPLE_DIFF)


class TestStats:
    """Diff-wide statistics."""

    def test_stats(self, sample):
        assert stats(sample) == DiffStats(files=3, lines_added=2, lines_removed=2)

    def test_net_change(self, sample):
        assert stats(sample).net_change == 0
        assert DiffStats(files=1, lines_added=5, lines_removed=2).net_change == 3

    def test_empty_diff(self):
        assert stats(Diff()) == DiffStats(files=0, lines_added=0, lines_removed=0)

    def test_context_lines_not_counted(self):
        hunk = make_hunk("context", "context", "added")
        diff = Diff(files=(FileDiff(old_path="f", new_path="f", hunks=(hunk,)),))
        assert hunk_line_counts(hunk) == (1, 0)
        assert stats(diff) == DiffStats(files=1, lines_added=1, lines_removed=0)

    def test_hunk_line_counts(self, sample):
        assert hunk_line_counts(sample.files[0].hunks[0]) == (2, 1)
        assert hunk_line_counts(sample.files[1].hunks[0]) == (0, 1)


class TestChangedLines:
    """Flattened added and removed lines."""

    def test_added_lines(self, sample):
        assert get_added_lines(sample) == [
            LineInfo(file="app.py", line=2, content="import sys, json", type=LineType.ADDED),
            LineInfo(file="app.py", line=3, content="import logging", type=LineType.ADDED),
        ]

    def test_removed_lines_use_old_path(self, sample):
        assert get_removed_lines(sample) == [
            LineInfo(file="app.py", line=1, content="import sys", type=LineType.REMOVED),
            LineInfo(file="old_name.py", line=10, content="y = 2", type=LineType.REMOVED),
        ]

    def test_added_lines_use_new_path(self):
        diff = parse_diff("""diff --git a/a.txt b/b.txt
rename from a.txt
rename to b.txt
@@ -1 +1,2 @@
 keep
+added""")
        assert [info.file for info in get_added_lines(diff)] == ["b.txt"]

    def test_order_across_files_and_hunks(self):
        diff = parse_diff("""diff --git a/one b/one
@@ -1 +1,2 @@
 a
+first
@@ -10 +11,2 @@
 b
+second
diff --git a/two b/two
@@ -1 +1,2 @@
+third
 c""")
        added = get_added_lines(diff)
        assert [(info.file, info.content) for info in added] == [
            ("one", "first"),
            ("one", "second"),
            ("two", "third"),
        ]
        assert [info.line for info in added] == [2, 12, 1]

    def test_no_removals(self):
        diff = parse_diff("diff --git a/f b/f\n@@ -1 +1,2 @@\n a\n+b\n")
        assert get_removed_lines(diff) == []


class TestModifiedFiles:
    """Modified file listing."""

    def test_modified_files(self, sample):
        assert get_modified_files(sample) == ["app.py", "new_name.py", "logo.png"]

    def test_duplicates_are_kept(self):
        diff = parse_diff("diff --git a/f b/f\n@@ -1 +1 @@\n+x\ndiff --git a/f b/f\n@@ -5 +5 @@\n+y\n")
        assert get_modified_files(diff) == ["f", "f"]

    def test_empty_diff(self):
        assert get_modified_files(Diff()) == []


class TestHunkQueries:
    """Per-hunk change detection and context windows."""

    @pytest.mark.parametrize("kinds, expected", [
        (("context", "context"), False),
        (("context", "added"), True),
        (("removed",), True),
        ((), False),
    ])
    def test_has_changes(self, kinds, expected):
        assert has_changes(make_hunk(*kinds)) is expected

    @pytest.mark.parametrize("index, size, expected", [
        (5, 2, [3, 4, 5, 6, 7]),
        (0, 2, [0, 1, 2]),
        (9, 2, [7, 8, 9]),
        (4, 0, [4]),
        (5, 100, list(range(10))),
        (20, 2, []),
    ])
    def test_context_around_line(self, index, size, expected):
        hunk = make_hunk(*["context"] * 10)
        window = get_context_around_line(hunk, index, size)
        assert window == [hunk.lines[i] for i in expected]

    def test_context_includes_every_line_type(self):
        hunk = make_hunk("context", "removed", "added", "context")
        window = get_context_around_line(hunk, 1, 1)
        assert [line.type for line in window] == [LineType.CONTEXT, LineType.REMOVED, LineType.ADDED]

    def test_context_is_a_copy(self):
        hunk = make_hunk("added", "added")
        window = get_context_around_line(hunk, 0, 1)
        window.clear()
        assert len(hunk.lines) == 2


class TestSerialization:
    """Plain-data rendering, cache keys and text reconstruction."""

    def test_diff_to_dict(self, sample):
        data = diff_to_dict(sample)

        assert [f["new_path"] for f in data["files"]] == ["app.py", "new_name.py", "logo.png"]
        renamed = data["files"][1]
        assert renamed["old_path"] == "old_name.py"
        assert renamed["is_renamed"] is True
        assert renamed["similarity"] == 90
        assert data["files"][2]["is_binary"] is True
        assert data["files"][2]["hunks"] == []
        assert data["files"][0]["hunks"][0]["lines"][1] == {
            "type": "removed", "content": "import sys", "number": 1,
        }
        # Must round-trip through JSON unchanged
        assert json.loads(json.dumps(data)) == data

    def test_cache_key_is_stable(self, sample):
        key = cache_key(sample)
        assert key == cache_key(parse_diff(SAMPLE_DIFF))
        assert len(key) == 64
        assert all(c in "0123456789abcdef" for c in key)

    def test_cache_key_changes_with_content(self, sample):
        changed = parse_diff(SAMPLE_DIFF.replace("import logging", "import typing"))
        assert cache_key(changed) != cache_key(sample)

    def test_cache_key_sees_metadata(self):
        plain = parse_diff("diff --git a/s b/s\n")
        with_mode = parse_diff("diff --git a/s b/s\nold mode 100644\nnew mode 100755\n")
        assert cache_key(plain) != cache_key(with_mode)

    def test_format_diff(self, sample):
        text = format_diff(sample)

        assert text.startswith("diff --git a/app.py b/app.py\n--- a/app.py\n+++ b/app.py\n")
        assert "@@ -1,4 +1,5 @@\n import os\n-import sys\n+import sys, json\n+import logging\n" in text
        assert "diff --git a/old_name.py b/new_name.py\n" in text
        assert "@@ -10,3 +10,2 @@\n x = 1\n-y = 2\n z = 3\n" in text
        assert text.endswith("+++ b/logo.png\n")

    def test_format_diff_parses_back(self, sample):
        reparsed = parse_diff(format_diff(sample))

        assert get_added_lines(reparsed) == get_added_lines(sample)
        assert get_removed_lines(reparsed) == get_removed_lines(sample)
        assert get_modified_files(reparsed) == get_modified_files(sample)

    def test_format_empty_diff(self):
        assert format_diff(Diff()) == ""
