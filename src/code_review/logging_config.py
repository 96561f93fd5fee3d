"""Logging configuration for code-review using rich for colored console output.

Provides level-prefixed console messages (info, success, warning, error, debug),
a spinner for the long-running review call, and a panel for printing the review.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

REVIEW_THEME = Theme(
    {
        "info": "blue",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "debug": "dim",
        "branch": "cyan",
        "commit": "magenta",
        "progress.active": "cyan",
    }
)


class ReviewLogger:
    """Logger with colored console output using rich.

    Provides:
    - info()
    - success()
    - warning()
    - error()
    - debug()
    """

    def __init__(self, name: str = "code_review", level: int = logging.INFO) -> None:
        """Initialize logger with rich console handler.

        Args:
            name: Logger name (default: "code_review")
            level: Logging level (default: INFO)
        """
        self.console = Console(theme=REVIEW_THEME)
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()

        handler = RichHandler(
            console=self.console,
            show_time=False,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.logger.addHandler(handler)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log info message with blue [INFO] prefix."""
        self.console.print(f"[info][INFO][/info] {message}", *args, **kwargs)

    def success(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log success message with green [SUCCESS] prefix."""
        self.console.print(f"[success][SUCCESS][/success] {message}", *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message with yellow [WARNING] prefix."""
        self.console.print(f"[warning][WARNING][/warning] {message}", *args, **kwargs)

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log error message with red bold [ERROR] prefix."""
        self.console.print(f"[error][ERROR][/error] {message}", *args, **kwargs)

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message with dim [DEBUG] prefix.

        Only printed when the logger level is DEBUG or lower.
        """
        if self.logger.level <= logging.DEBUG:
            self.console.print(f"[debug][DEBUG][/debug] {message}", *args, **kwargs)

    def comparison(self, current: str, base: str, branch_point: str) -> None:
        """Log the branch comparison summary line.

        Args:
            current: Branch being reviewed
            base: Branch it is compared against
            branch_point: Merge-base commit (shortened to 7 characters)
        """
        self.console.print(
            f"[info][INFO][/info] Comparing [branch]{escape(current)}[/branch] against "
            f"[branch]{escape(base)}[/branch] from branch point [commit]{branch_point[:7]}[/commit]"
        )

    @contextmanager
    def spinner(self, message: str = "Working...") -> Generator[Status, None, None]:
        """Context manager for showing a spinner during long operations.

        Args:
            message: Initial message to display

        Yields:
            Status object that can be updated with status.update()

        Example:
            with logger.spinner("Waiting for review...") as status:
                result = reviewer.review(document)
        """
        with self.console.status(f"[progress.active]{message}[/progress.active]") as status:
            yield status

    def summary_panel(
        self,
        title: str,
        data: dict[str, Any],
        style: str = "green",
    ) -> None:
        """Display a summary panel with key-value data.

        Args:
            title: Panel title
            data: Dictionary of key-value pairs to display
            style: Border style (default: green)
        """
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Key", style="bold")
        table.add_column("Value")

        for key, value in data.items():
            table.add_row(key, str(value))

        panel = Panel(
            table,
            title=f"[bold]{title}[/bold]",
            border_style=style,
            padding=(1, 2),
        )
        self.console.print(panel)

    def review_panel(self, review: str, model: str | None = None) -> None:
        """Display the review text returned by the model.

        The text is printed without markup interpretation since model output
        routinely contains square brackets.

        Args:
            review: Review text
            model: Model that produced the review (shown in the title)
        """
        title = "Review" if model is None else f"Review ({model})"
        panel = Panel(
            Text(review),
            title=f"[bold]{title}[/bold]",
            border_style="green",
            padding=(1, 2),
        )
        self.console.print(panel)


# Global logger instance (singleton pattern)
_logger_instance: ReviewLogger | None = None


def get_logger(name: str = "code_review", level: int = logging.INFO) -> ReviewLogger:
    """Get or create the global logger instance.

    Args:
        name: Logger name (default: "code_review")
        level: Logging level (default: INFO)

    Returns:
        ReviewLogger instance
    """
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = ReviewLogger(name=name, level=level)
    return _logger_instance


def set_log_level(level: int) -> None:
    """Set the logging level for the global logger.

    Args:
        level: Logging level (e.g., logging.DEBUG, logging.INFO)
    """
    logger = get_logger()
    logger.logger.setLevel(level)
