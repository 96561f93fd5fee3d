"""Review gateways for code-review."""

from code_review.reviewers.base import Reviewer, ReviewGatewayError
from code_review.reviewers.openai_reviewer import OpenAIReviewer

__all__ = ["OpenAIReviewer", "Reviewer", "ReviewGatewayError"]
