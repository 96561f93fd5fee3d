"""Version-control gateways for code-review."""

from code_review.vcs.base import (
    DEFAULT_BASE_BRANCH,
    NEW_FILE,
    BranchPair,
    DiffRange,
    VcsCommandError,
    VersionControlGateway,
)
from code_review.vcs.git import GitGateway

__all__ = [
    "DEFAULT_BASE_BRANCH",
    "NEW_FILE",
    "BranchPair",
    "DiffRange",
    "GitGateway",
    "VcsCommandError",
    "VersionControlGateway",
]
