"""Shared fixtures for code-review tests."""

from collections.abc import Callable

import pytest

from code_review.vcs.base import VcsCommandError
from code_review.vcs.git import GitGateway


class FakeGitGateway(GitGateway):
    """GitGateway whose commands are answered from a table.

    Keys are the full command line joined with spaces, e.g.
    ``"git merge-base HEAD @{-1}"``. A value is either the command's stdout or
    a VcsCommandError to raise. Unknown commands fail like a real git error.
    """

    def __init__(self, responses: dict[str, str | VcsCommandError]) -> None:
        super().__init__()
        self.responses = responses
        self.calls: list[str] = []

    def exec_tool(self, name: str, *args: str) -> str:
        key = " ".join((name, *args))
        self.calls.append(key)
        response = self.responses.get(key)
        if response is None:
            raise VcsCommandError(
                f"exit status 128: unexpected command {key}",
                command=[name, *args],
                returncode=128,
                stderr=f"unexpected command {key}",
            )
        if isinstance(response, VcsCommandError):
            raise response
        return response


def git_failure(stderr: str, returncode: int = 128) -> VcsCommandError:
    """Build the error exec_tool raises for a failing git command."""
    return VcsCommandError(
        f"exit status {returncode}: {stderr}",
        returncode=returncode,
        stderr=stderr,
    )


@pytest.fixture
def fake_git() -> Callable[[dict[str, str | VcsCommandError]], FakeGitGateway]:
    """Factory for table-driven fake git gateways."""
    return FakeGitGateway


@pytest.fixture
def git_error() -> Callable[..., VcsCommandError]:
    """Factory for git command failures."""
    return git_failure
