"""Abstract base class for review gateways.

A reviewer takes the formatted diff document and returns the model's review
as free text.
"""

from abc import ABC, abstractmethod


class ReviewGatewayError(Exception):
    """Raised when the remote review call fails.

    Attributes:
        message: Human-readable error message
        original_error: The underlying exception if any
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize review gateway error.

        Args:
            message: Human-readable error message
            original_error: The underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class Reviewer(ABC):
    """Abstract base class for review gateway implementations.

    Example:
        class MyReviewer(Reviewer):
            model = "my-model"

            def review(self, document):
                # Call the model with the document
                # Return its text
                pass
    """

    model: str

    @abstractmethod
    def review(self, document: str) -> str:
        """Send the diff document for review.

        Args:
            document: The ``<git-diff>`` document built by DiffFormatter.

        Returns:
            Review text produced by the model.

        Raises:
            ReviewGatewayError: If the call fails or returns no content.
        """
        pass
