"""Integration tests for the review pipeline against real git repositories.

These tests build a small repository with a "develop" base branch and a
feature branch, then run the gateway, formatter, and CLI against it. The
OpenAI call is never made.
"""

import base64
import shutil
import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from click.testing import CliRunner

from code_review.cli import main
from code_review.formatter import DiffFormatter
from code_review.ignore import IgnoreMatcher
from code_review.vcs.base import NEW_FILE
from code_review.vcs.git import GitGateway

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed"),
]


def git(repo: Path, *args: str) -> str:
    """Run a git command in repo and return its output."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def feature_repo(tmp_path: Path) -> Path:
    """Create a repository with a develop branch and a feature branch on top."""
    repo = tmp_path / "repo"
    repo.mkdir()

    git(repo, "init")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/develop")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "commit.gpgsign", "false")

    (repo / "app.py").write_text("def greet():\n    return 'hello'\n")
    (repo / "config.yaml").write_text("replicas: 1\n")
    git(repo, "add", ".")
    git(repo, "commit", "-m", "Initial commit")

    git(repo, "checkout", "-b", "feature")
    (repo / "app.py").write_text("def greet(name):\n    return f'hello <{name}> & bye'\n")
    (repo / "config.yaml").write_text("replicas: 2\n")
    (repo / "lib").mkdir()
    (repo / "lib" / "new.py").write_text("VALUE = 1\n")
    git(repo, "add", ".")
    git(repo, "commit", "-m", "Feature work")

    return repo


class TestGitGatewayIntegration:
    """Gateway operations against a real repository."""

    def test_compare_falls_back_to_develop(self, feature_repo: Path) -> None:
        """Test comparing a branch without upstream uses develop as the base."""
        gateway = GitGateway(path=feature_repo)

        diff_range = gateway.compare()

        assert diff_range.branches.current == "feature"
        assert diff_range.branches.base == "develop"
        assert diff_range.merge_base == git(feature_repo, "rev-parse", "develop")
        assert sorted(diff_range.changed_files) == ["app.py", "config.yaml", "lib/new.py"]
        assert "diff --git a/app.py b/app.py" in diff_range.diff

    def test_file_content_at_branch_point(self, feature_repo: Path) -> None:
        """Test original content is read and missing files are reported as new."""
        gateway = GitGateway(path=feature_repo)
        branch_point = gateway.merge_base("feature", "develop")

        assert gateway.file_content_at("app.py", branch_point) == (
            "def greet():\n    return 'hello'"
        )
        assert gateway.file_content_at("lib/new.py", branch_point) == NEW_FILE

    def test_format_real_diff(self, feature_repo: Path) -> None:
        """Test the document built from a real diff, with one file ignored."""
        gateway = GitGateway(path=feature_repo)
        diff_range = gateway.compare()
        formatter = DiffFormatter(gateway, matcher=IgnoreMatcher.from_string("*.yaml"))

        document = formatter.format(diff_range.diff, merge_base=diff_range.merge_base)

        assert document.errors == []
        assert [entry.path for entry in document.entries] == ["app.py", "lib/new.py"]
        assert document.ignored == ["config.yaml"]

        files = ET.fromstring(document.text).findall("file")
        assert files[0].find("original-content").text == "def greet():\n    return 'hello'"
        assert "+    return f'hello <{name}> & bye'" in files[0].find("changes").text
        assert files[1].find("original-content").text == NEW_FILE

    def test_format_with_previous_branch(self, feature_repo: Path) -> None:
        """Test the branch point defaults to the previously checked-out branch."""
        gateway = GitGateway(path=feature_repo)
        diff_range = gateway.compare()

        document = DiffFormatter(gateway).format(diff_range.diff)

        assert document.errors == []
        assert len(document.entries) == 3


class TestReviewCommandIntegration:
    """The review command against a real repository, without calling OpenAI."""

    def test_print_document(
        self, feature_repo: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test --print-document prints the document built from the branch."""
        monkeypatch.setenv("CODE_REVIEW_CONFIG", str(tmp_path / "config.yaml"))
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        result = CliRunner().invoke(
            main,
            ["review", "--path", str(feature_repo), "--ignore", "*.yaml", "--print-document"],
        )

        assert result.exit_code == 0, result.output
        assert '<file path="app.py">' in result.output
        assert '<file path="lib/new.py">' in result.output
        assert '<file path="config.yaml">' not in result.output

    def test_no_changes(
        self, feature_repo: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a branch without changes ends before building a document."""
        monkeypatch.setenv("CODE_REVIEW_CONFIG", str(tmp_path / "config.yaml"))
        git(feature_repo, "checkout", "develop")

        result = CliRunner().invoke(
            main, ["review", "--path", str(feature_repo), "--print-document"]
        )

        assert result.exit_code == 0, result.output
        assert "No changes detected in the current branch." in result.output


@pytest.fixture
def encoded_repo(tmp_path: Path) -> Path:
    """Create a feature branch touching a non-ASCII name, a CRLF file and a form feed.

    The repository also turns on diff settings that change git's default
    output: prefix-less paths and forced color.
    """
    repo = tmp_path / "encoded"
    repo.mkdir()

    git(repo, "init")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/develop")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "commit.gpgsign", "false")
    git(repo, "config", "core.autocrlf", "false")

    (repo / "café.md").write_text("# Café\n", encoding="utf-8")
    (repo / "crlf.txt").write_bytes(b"one\r\ntwo\r\n")
    (repo / "form.py").write_bytes(b"a = 1\n\x0c\nb = 2\n")
    git(repo, "add", ".")
    git(repo, "commit", "-m", "Initial commit")

    git(repo, "checkout", "-b", "feature")
    (repo / "café.md").write_text("# Café menu\n", encoding="utf-8")
    (repo / "crlf.txt").write_bytes(b"one\r\nTWO\r\n")
    (repo / "form.py").write_bytes(b"a = 1\n\x0c\nb = 3\n")
    git(repo, "add", ".")
    git(repo, "commit", "-m", "Feature work")

    git(repo, "config", "diff.noprefix", "true")
    git(repo, "config", "color.ui", "always")
    return repo


def body_text(element: ET.Element) -> str:
    """Read a body element, decoding base64 bodies."""
    if element.get("encoding") == "base64":
        return base64.b64decode(element.text or "").decode("utf-8")
    return element.text or ""


class TestEncodingIntegration:
    """Real git output with quoted paths, CRLF line endings and control characters."""

    def test_document_keeps_every_file(self, encoded_repo: Path) -> None:
        """Test each file is included under its real name with exact content."""
        gateway = GitGateway(path=encoded_repo)
        diff_range = gateway.compare()

        document = DiffFormatter(gateway).format(
            diff_range.diff, merge_base=diff_range.merge_base
        )

        assert document.errors == []
        files = {f.get("path"): f for f in ET.fromstring(document.text).findall("file")}
        assert sorted(files) == ["café.md", "crlf.txt", "form.py"]

        assert body_text(files["café.md"].find("original-content")) == "# Café"
        assert "+# Café menu" in body_text(files["café.md"].find("changes"))

        assert body_text(files["crlf.txt"].find("original-content")) == "one\r\ntwo"
        assert "+TWO\r\n" in body_text(files["crlf.txt"].find("changes"))

        assert files["form.py"].find("original-content").get("encoding") == "base64"
        assert body_text(files["form.py"].find("original-content")) == "a = 1\n\x0c\nb = 2"

    def test_print_document_with_non_ascii_name(
        self, encoded_repo: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the review command keeps the non-ASCII file in the document."""
        monkeypatch.setenv("CODE_REVIEW_CONFIG", str(tmp_path / "config.yaml"))

        result = CliRunner().invoke(
            main, ["review", "--path", str(encoded_repo), "--print-document"]
        )

        assert result.exit_code == 0, result.output
        assert '<file path="café.md">' in result.output
