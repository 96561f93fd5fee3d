"""Abstract version-control gateway for code-review.

This module defines the operations the review pipeline needs from a version
control system, the value types they return, and the errors they raise.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from code_review.logging_config import get_logger

logger = get_logger()

T = TypeVar("T")

# Returned by file_content_at() when the file has no version at the given ref
NEW_FILE = "[NEW FILE]"

# Base branch used when the current branch has no upstream configured
DEFAULT_BASE_BRANCH = "develop"


class VcsCommandError(Exception):
    """Raised when a version-control command fails.

    Attributes:
        message: Human-readable error message
        command: Argument vector of the failing command, if any
        returncode: Exit status of the failing command, if it ran
        stderr: Error output captured from the command
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


@dataclass(frozen=True)
class BranchPair:
    """The branch under review and the branch it is compared against."""

    current: str
    base: str


@dataclass(frozen=True)
class DiffRange:
    """Result of comparing the current branch against its base.

    Attributes:
        branches: Current and base branch names
        merge_base: Common ancestor commit used as the comparison point
        diff: Raw multi-file diff text between merge_base and the current branch
        changed_files: Paths listed by the tool, one per changed file
    """

    branches: BranchPair
    merge_base: str
    diff: str
    changed_files: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """Check if the diff contains anything."""
        return bool(self.diff.strip())


class VersionControlGateway(ABC):
    """Abstract base class for version-control backends.

    Implementations resolve branches and commits and read file content and
    diffs. Each operation raises VcsCommandError when the underlying tool
    fails, except base_branch() which falls back to DEFAULT_BASE_BRANCH.
    """

    @abstractmethod
    def current_branch(self) -> str:
        """Return the name of the checked-out branch."""

    @abstractmethod
    def base_branch(self) -> str:
        """Return the upstream branch of the current branch.

        Falls back to DEFAULT_BASE_BRANCH when no upstream is configured.
        """

    @abstractmethod
    def merge_base(self, a: str, b: str) -> str:
        """Return the nearest common ancestor commit of two refs."""

    @abstractmethod
    def changed_files(self, base: str, head: str) -> list[str]:
        """Return the paths changed between two refs, in tool order."""

    @abstractmethod
    def raw_diff(self, base: str, head: str) -> str:
        """Return the full diff text between two refs."""

    @abstractmethod
    def file_content_at(self, path: str, ref: str) -> str:
        """Return the content of a file as of ref.

        Returns NEW_FILE if the file does not exist at ref.
        """

    def compare(self) -> DiffRange:
        """Compare the current branch against its base branch.

        Resolves the current branch, its base and their merge base, then
        collects the changed paths and the raw diff from the merge base.

        Returns:
            DiffRange describing the comparison.

        Raises:
            VcsCommandError: If any step fails. The message names the step.
        """
        current = self._step("failed to get current branch", self.current_branch)
        base = self.base_branch()
        branch_point = self._step(
            "failed to find branch point", self.merge_base, current, base
        )

        logger.comparison(current, base, branch_point)

        changed_files = self._step(
            "failed to get list of changed files", self.changed_files, branch_point, current
        )
        diff = self._step("failed to execute diff", self.raw_diff, branch_point, current)

        return DiffRange(
            branches=BranchPair(current=current, base=base),
            merge_base=branch_point,
            diff=diff,
            changed_files=changed_files,
        )

    @staticmethod
    def _step(description: str, operation: Callable[..., T], *args: str) -> T:
        try:
            return operation(*args)
        except VcsCommandError as e:
            raise VcsCommandError(
                f"{description}: {e.message}",
                command=e.command,
                returncode=e.returncode,
                stderr=e.stderr,
            ) from e
