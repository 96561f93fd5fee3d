"""CLI entry point for code-review.

This module provides the Click-based command-line interface:

- ``code-review set``: persist the OpenAI API key and/or model
- ``code-review review``: review the current branch against its base branch
"""

import logging
import sys
from pathlib import Path

import click
from rich.markup import escape

from code_review import __version__
from code_review.config import (
    ConfigError,
    ReviewConfig,
    default_config_path,
    load_config_file,
    load_environment,
    update_config_file,
)
from code_review.formatter import DiffDocument, DiffFormatter
from code_review.ignore import IgnoreMatcher
from code_review.logging_config import get_logger, set_log_level
from code_review.reviewers.base import Reviewer, ReviewGatewayError
from code_review.reviewers.openai_reviewer import OpenAIReviewer
from code_review.vcs.base import DiffRange, VcsCommandError
from code_review.vcs.git import GitGateway

logger = get_logger()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug output, including git commands")
@click.version_option(version=__version__, prog_name="code-review")
def main(verbose: bool) -> None:
    """code-review: AI review of the current branch's changes.

    Compares the current branch with its upstream branch (or "develop" when
    no upstream is configured) and sends the diff, together with the original
    content of each changed file, to OpenAI for review.

    \b
    Examples:
      code-review set --openai-api-key sk-...
      code-review set --openai-model gpt-4o
      code-review review
      code-review review --ignore "*.yaml,*.json,docs/*.md"

    \b
    Environment Variables:
      OPENAI_API_KEY              API key when none is stored in the config file
      CODE_REVIEW_MODEL           Model when none is stored (default: gpt-4o-mini)
      CODE_REVIEW_CONFIG          Config file location (default: ~/.code-review.yaml)
      CODE_REVIEW_MAX_TOKENS      Maximum tokens in the review (default: 1000)
      CODE_REVIEW_GIT_TIMEOUT     Seconds allowed per git command (default: no limit)
      CODE_REVIEW_REVIEW_TIMEOUT  Seconds allowed for the review call
    """
    if verbose:
        set_log_level(logging.DEBUG)


@main.command("set")
@click.option("--openai-api-key", default="", help="Set the OpenAI API key")
@click.option("--openai-model", default="", help="Set the OpenAI model")
def set_command(openai_api_key: str, openai_model: str) -> None:
    """Save the OpenAI API key and/or model to the config file."""
    if not openai_api_key and not openai_model:
        raise click.UsageError("Please provide at least one of --openai-api-key or --openai-model")

    path = default_config_path()
    try:
        update_config_file(path, api_key=openai_api_key or None, model=openai_model or None)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.success(f"Configuration has been saved to {path}")


@main.command("review")
@click.option(
    "--ignore",
    "ignore_patterns",
    default="",
    help="Comma-separated list of files or extensions to ignore (e.g., '*.yaml,*.json,docs.go')",
)
@click.option("--model", default=None, help="Model to use for this review only")
@click.option(
    "--print-document",
    is_flag=True,
    help="Print the document that would be sent and skip the review",
)
@click.option(
    "--path",
    "repo_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Repository to review (default: current directory)",
)
def review_command(
    ignore_patterns: str,
    model: str | None,
    print_document: bool,
    repo_path: Path | None,
) -> None:
    """Review the current branch against its base branch."""
    load_environment(repo_path / ".env" if repo_path else None)
    config = _load_config(model)

    try:
        config.validate(require_api_key=not print_document)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    gateway = GitGateway(path=repo_path, timeout=config.git_timeout)
    matcher = IgnoreMatcher.from_string(ignore_patterns)
    if matcher:
        patterns = ", ".join(p for p in matcher.patterns if p)
        logger.info(f"Ignoring files matching: {escape(patterns)}")

    try:
        diff_range = gateway.compare()
    except VcsCommandError as e:
        logger.error(f"Error getting git diff: {escape(e.message)}")
        sys.exit(1)

    if not diff_range.has_changes:
        logger.info("No changes detected in the current branch.")
        return

    formatter = DiffFormatter(gateway, matcher=matcher, compare_ref=diff_range.branches.base)
    document = formatter.format(diff_range.diff, merge_base=diff_range.merge_base)

    _report_document(diff_range, document)

    if document.is_empty:
        logger.info("No changes to review after applying ignore patterns.")
        return

    if print_document:
        click.echo(document.text)
        return

    reviewer = _build_reviewer(config)
    try:
        with logger.spinner(f"Waiting for review from {reviewer.model}..."):
            review = reviewer.review(document.text)
    except ReviewGatewayError as e:
        logger.error(f"Error sending to OpenAI: {escape(e.message)}")
        sys.exit(1)

    logger.review_panel(review, model=reviewer.model)


main.add_command(set_command, name="s")
main.add_command(review_command, name="r")


def _load_config(model: str | None) -> ReviewConfig:
    """Load configuration, falling back to the environment if the file is unreadable."""
    path = default_config_path()
    try:
        file_data = load_config_file(path)
    except ConfigError as e:
        logger.warning(f"Error loading config: {e}")
        file_data = {}

    try:
        config = ReviewConfig.load(config_path=path, file_data=file_data)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    return config.with_overrides(model=model)


def _build_reviewer(config: ReviewConfig) -> Reviewer:
    """Create the review gateway for this run."""
    return OpenAIReviewer(
        api_key=config.openai_api_key or "",
        model=config.model,
        max_tokens=config.max_tokens,
        timeout=config.review_timeout,
    )


def _report_document(diff_range: DiffRange, document: DiffDocument) -> None:
    """Show per-file errors and a summary of what will be reviewed."""
    if document.errors:
        logger.warning("Encountered errors while processing some files:")
        for error in document.errors:
            logger.warning(f"- {escape(str(error))}")
        if not document.is_empty:
            logger.warning("Continuing with the files that were processed successfully.")

    new_files = sum(1 for entry in document.entries if entry.is_new_file)
    logger.summary_panel(
        "Review Scope",
        {
            "Branch": diff_range.branches.current,
            "Base": diff_range.branches.base,
            "Branch point": diff_range.merge_base[:7],
            "Changed files": len(diff_range.changed_files),
            "Included": f"{len(document.entries)} ({new_files} new)",
            "Ignored": len(document.ignored),
            "Errors": len(document.errors),
        },
        style="yellow" if document.errors else "green",
    )
    for entry in document.entries:
        logger.debug(f"Including {escape(entry.path)}")


if __name__ == "__main__":
    main()
