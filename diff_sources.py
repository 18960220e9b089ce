"""Sources of diff text: files, streams and git repositories."""

import logging
import sys
from typing import IO, Optional, Union

from git import Repo
from git.exc import GitError, ODBError

from diff_parser import Diff, ReadError, parse_diff

logger = logging.getLogger(__name__)

# Rename and copy detection, so that extended headers show up in the output.
DIFF_OPTIONS = ("-M", "-C")


def read_diff_file(path: str, encoding: str = "utf-8") -> str:
    """
    Read diff text from a file.

    Args:
        path: Path to a file holding git diff output
        encoding: Text encoding of the file

    Returns:
        The file contents

    Raises:
        ReadError: If the file cannot be opened or decoded
    """
    try:
        with open(path, "r", encoding=encoding, newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadError(f"failed to read diff from {path}: {exc}") from exc


def read_diff_stream(stream: Optional[IO] = None, encoding: str = "utf-8") -> str:
    """
    Read diff text from an open stream until EOF.

    Args:
        stream: Text or binary stream. Defaults to standard input.
        encoding: Used to decode binary streams

    Returns:
        Everything read from the stream

    Raises:
        ReadError: If reading or decoding fails
    """
    if stream is None:
        stream = sys.stdin
    try:
        data: Union[str, bytes] = stream.read()
        if isinstance(data, bytes):
            data = data.decode(encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadError(f"error reading diff stream: {exc}") from exc
    return data


def get_commit_diff(repo_path: str, commit_sha: str, parent_commit: Optional[str] = None) -> str:
    """
    Get the git diff for a specific commit.

    Args:
        repo_path: Path to the git repository
        commit_sha: SHA (or any revision) of the commit to get diff for
        parent_commit: SHA of parent commit. If None, uses the first parent.

    Returns:
        Raw git diff output as string

    Raises:
        ReadError: If the repository or revisions cannot be resolved
    """
    try:
        repo = Repo(repo_path)

        if parent_commit is None:
            commit = repo.commit(commit_sha)
            if commit.parents:
                parent = commit.parents[0]
                diff = repo.git.diff(*DIFF_OPTIONS, parent.hexsha, commit.hexsha)
            else:
                # Root commit: everything shows up as added
                diff = repo.git.show(*DIFF_OPTIONS, commit.hexsha, format="")
        else:
            diff = repo.git.diff(*DIFF_OPTIONS, parent_commit, commit_sha)
    except (GitError, ODBError, ValueError) as exc:
        raise ReadError(f"failed to get diff for {commit_sha} in {repo_path}: {exc}") from exc

    logger.info("Read %d bytes of diff for %s", len(diff), commit_sha)
    return diff


def get_working_tree_diff(repo_path: str, staged: bool = False) -> str:
    """
    Get the diff of uncommitted changes.

    Args:
        repo_path: Path to the git repository
        staged: Diff the index against HEAD instead of the working tree

    Returns:
        Raw git diff output as string, empty when nothing changed

    Raises:
        ReadError: If git fails
    """
    args = list(DIFF_OPTIONS)
    if staged:
        args.append("--cached")
    try:
        return Repo(repo_path).git.diff(*args)
    except GitError as exc:
        raise ReadError(f"failed to get working tree diff in {repo_path}: {exc}") from exc


def parse_file(path: str) -> Diff:
    """Read a diff file and parse it."""
    return parse_diff(read_diff_file(path))


def parse_commit(repo_path: str, commit_sha: str, parent_commit: Optional[str] = None) -> Diff:
    """Parse the diff introduced by a commit."""
    return parse_diff(get_commit_diff(repo_path, commit_sha, parent_commit))
