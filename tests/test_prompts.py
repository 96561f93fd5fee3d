"""Tests for the review prompt."""

from code_review.prompts import REVIEW_SYSTEM_PROMPT, get_review_messages


class TestReviewPrompt:
    """Test the system prompt text."""

    def test_describes_document_format(self) -> None:
        """Test the prompt explains the document the model receives."""
        assert "<git-diff>" in REVIEW_SYSTEM_PROMPT
        assert "<original-content>" in REVIEW_SYSTEM_PROMPT
        assert "<changes>" in REVIEW_SYSTEM_PROMPT
        assert "[NEW FILE]" in REVIEW_SYSTEM_PROMPT

    def test_requests_review_sections(self) -> None:
        """Test the prompt asks for every review section."""
        for section in (
            "<style_and_conventions>",
            "<comments_review>",
            "<best_practices>",
            "<summary>",
            "<suggest_changes>",
        ):
            assert section in REVIEW_SYSTEM_PROMPT


class TestGetReviewMessages:
    """Test get_review_messages()."""

    def test_system_then_user(self) -> None:
        """Test the document is sent verbatim as the user message."""
        document = "<git-diff>\n</git-diff>"

        messages = get_review_messages(document)

        assert messages == [
            {"role": "system", "content": REVIEW_SYSTEM_PROMPT},
            {"role": "user", "content": document},
        ]
