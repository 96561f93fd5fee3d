"""code-review: AI review of a branch's changes against its base branch."""

__version__ = "0.1.0"
