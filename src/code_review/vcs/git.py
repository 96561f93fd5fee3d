"""Git implementation of the version-control gateway.

Every git invocation goes through GitGateway.exec_tool(), which runs the
command synchronously and turns a non-zero exit into VcsCommandError. Tests
substitute behavior by overriding that single method.
"""

import subprocess
from pathlib import Path

from rich.markup import escape

from code_review.logging_config import get_logger
from code_review.vcs.base import (
    DEFAULT_BASE_BRANCH,
    NEW_FILE,
    VcsCommandError,
    VersionControlGateway,
)

logger = get_logger()

# Fragments of git's stderr meaning "no such object at this ref"
UNKNOWN_OBJECT_MARKERS = (
    "not a valid object name",
    "invalid object name",
    "does not exist in",
    "exists on disk, but not in",
)


# Options that keep the diff in the header format the formatter parses
DIFF_FORMAT_OPTIONS = ("--no-color", "--no-ext-diff", "--src-prefix=a/", "--dst-prefix=b/")


def is_unknown_object_error(error: VcsCommandError) -> bool:
    """Check whether a git failure means the requested object does not exist."""
    text = f"{error.message}\n{error.stderr}".lower()
    return any(marker in text for marker in UNKNOWN_OBJECT_MARKERS)


class GitGateway(VersionControlGateway):
    """Version-control gateway backed by the git command-line tool."""

    def __init__(self, path: Path | None = None, timeout: float | None = None) -> None:
        """Initialize git gateway.

        Args:
            path: Repository path. Defaults to current directory.
            timeout: Seconds allowed for each git invocation (None = no limit).
        """
        self.path = path
        self.timeout = timeout

    def current_branch(self) -> str:
        return self.exec_tool("git", "rev-parse", "--abbrev-ref", "HEAD")

    def base_branch(self) -> str:
        try:
            return self.exec_tool(
                "git", "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"
            )
        except VcsCommandError as e:
            logger.warning(
                f"No upstream branch configured ({escape(e.stderr.strip() or e.message)}); "
                f"falling back to '{DEFAULT_BASE_BRANCH}'"
            )
            return DEFAULT_BASE_BRANCH

    def merge_base(self, a: str, b: str) -> str:
        return self.exec_tool("git", "merge-base", a, b)

    def changed_files(self, base: str, head: str) -> list[str]:
        output = self.exec_tool("git", "diff", "--name-only", base, head)
        if not output:
            return []
        return output.split("\n")

    def raw_diff(self, base: str, head: str) -> str:
        # Same header format regardless of color, noprefix or diff driver config
        return self.exec_tool("git", "diff", *DIFF_FORMAT_OPTIONS, base, head)

    def file_content_at(self, path: str, ref: str) -> str:
        """Get the content of a file as of ref.

        Only the first whitespace-delimited token of path is used, so the
        rename notation "old -> new" looks up the old path.

        Args:
            path: File path relative to the repository root.
            ref: Commit or branch to read from.

        Returns:
            File content, or NEW_FILE if the file does not exist at ref.

        Raises:
            VcsCommandError: If path is blank or git fails for another reason.
        """
        tokens = path.split()
        if not tokens:
            raise VcsCommandError("invalid file path")
        lookup = tokens[0]
        spec = f"{ref}:{lookup}"

        try:
            self.exec_tool("git", "cat-file", "-e", spec)
        except VcsCommandError as e:
            if is_unknown_object_error(e):
                logger.debug(f"{escape(lookup)} does not exist at {ref}; treating as new file")
                return NEW_FILE
            raise VcsCommandError(
                f"error checking file existence: {e.message}",
                command=e.command,
                returncode=e.returncode,
                stderr=e.stderr,
            ) from e

        try:
            return self.exec_tool("git", "show", spec)
        except VcsCommandError as e:
            raise VcsCommandError(
                f"error getting file content: {e.message}",
                command=e.command,
                returncode=e.returncode,
                stderr=e.stderr,
            ) from e

    def exec_tool(self, name: str, *args: str) -> str:
        """Run an external command and return its output.

        Args:
            name: Executable to run (e.g. "git").
            *args: Command arguments.

        Returns:
            Captured stdout with trailing whitespace removed.

        Raises:
            VcsCommandError: If the command exits non-zero, is not installed,
                or exceeds the configured timeout.
        """
        cmd = [name]
        if self.path and name == "git":
            cmd.extend(["-C", str(self.path)])
        cmd.extend(args)

        logger.debug(f"Running: {escape(' '.join(cmd))}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise VcsCommandError(f"{name} command not found", command=cmd) from e
        except subprocess.TimeoutExpired as e:
            raise VcsCommandError(
                f"{' '.join(cmd)} timed out after {self.timeout} seconds", command=cmd
            ) from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            raise VcsCommandError(
                f"exit status {result.returncode}: {stderr}",
                command=cmd,
                returncode=result.returncode,
                stderr=result.stderr,
            )

        return result.stdout.rstrip()
