import logging
import sys

from config import get_settings
from diff_parser import DiffError, LineType, parse_diff
from diff_queries import get_context_around_line, get_modified_files, has_changes, hunk_line_counts, stats
from diff_sources import get_commit_diff, read_diff_stream

logger = logging.getLogger("diffscope")


def main():
    """Example usage: summarize a diff piped on stdin, or the configured commit."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if sys.stdin.isatty():
            diff_text = get_commit_diff(settings.repo_path, settings.commit)
        else:
            diff_text = read_diff_stream(sys.stdin)
        diff = parse_diff(diff_text)
    except DiffError as e:
        logger.error("Could not parse diff: %s", e)
        return 1

    summary = stats(diff)
    print(f"Files changed:  {summary.files}")
    print(f"Lines added:    +{summary.lines_added}")
    print(f"Lines removed:  -{summary.lines_removed}")
    print(f"Net change:     {summary.net_change:+d}")

    print("\nModified files:")
    for path in get_modified_files(diff):
        print(f"  {path}")

    for file_diff in diff.files:
        flags = [name for name in ("new", "deleted", "renamed", "copied", "binary")
                 if getattr(file_diff, f"is_{name}")]
        print(f"\nFile: {file_diff.new_path}" + (f" ({', '.join(flags)})" if flags else ""))
        for i, hunk in enumerate(file_diff.hunks, start=1):
            added, removed = hunk_line_counts(hunk)
            print(f"  Hunk #{i}: @@ -{hunk.old_start},{hunk.old_count} "
                  f"+{hunk.new_start},{hunk.new_count} @@  +{added} -{removed}")
            if not has_changes(hunk):
                continue
            first_change = next(idx for idx, line in enumerate(hunk.lines)
                                if line.type is not LineType.CONTEXT)
            for line in get_context_around_line(hunk, first_change, settings.context_lines):
                print(f"    {line.number:>5} {line.type.value:<8} {line.content}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
