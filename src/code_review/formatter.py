"""Diff document formatting for code-review.

This module turns a raw multi-file git diff into the XML document sent to the
reviewer:

    <git-diff>
      <file path="src/app.py">
        <original-content><![CDATA[...]]></original-content>
        <changes><![CDATA[diff --git a/src/app.py b/src/app.py ...]]></changes>
      </file>
    </git-diff>

A body holding characters XML 1.0 cannot carry (NUL, form feed and other
control characters) is base64-encoded instead and marked with
``encoding="base64"``. Carriage returns are written as ``&#13;`` so parsers
do not fold CRLF line endings.

Files matching an ignore pattern are left out. Failures for a single file are
collected as errors and never stop the rest of the document from being built.
"""

import base64
import re
from dataclasses import dataclass, field
from xml.sax.saxutils import escape as xml_escape

from rich.markup import escape

from code_review.ignore import IgnoreMatcher
from code_review.logging_config import get_logger
from code_review.vcs.base import NEW_FILE, VcsCommandError, VersionControlGateway

logger = get_logger()

DIFF_HEADER = "diff --git"

SEGMENT_START = re.compile(r"^(?=diff --git )", re.MULTILINE)

# Ref of the previously checked-out branch
PREVIOUS_BRANCH_REF = "@{-1}"

UNAVAILABLE_CONTENT = "Unable to retrieve"

CDATA_END = "]]>"

# Code points outside the XML 1.0 Char production
ILLEGAL_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

# Single-character escapes git uses in quoted paths
C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


class MalformedSegmentError(Exception):
    """Raised when a diff segment has no recoverable file path in its header."""

    def __init__(self, message: str, segment: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.segment = segment


@dataclass(frozen=True)
class SegmentPaths:
    """Paths named by a segment's ``diff --git a/OLD b/NEW`` header."""

    old: str
    new: str

    @property
    def is_rename(self) -> bool:
        return self.old != self.new

    @property
    def display(self) -> str:
        """Path shown in the document; renames read "old -> new"."""
        return f"{self.old} -> {self.new}" if self.is_rename else self.new


@dataclass(frozen=True)
class DiffEntry:
    """One file of the review document."""

    path: str
    original_content: str
    changes: str
    content_available: bool = True

    @property
    def is_new_file(self) -> bool:
        return self.content_available and self.original_content == NEW_FILE


@dataclass(frozen=True)
class DiffDocument:
    """Formatted review document plus the per-file errors met building it."""

    text: str
    entries: list[DiffEntry] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to review."""
        return not self.entries


def split_segments(diff: str) -> list[str]:
    """Split a raw diff into per-file segments.

    Segments begin at lines starting with the ``diff --git`` marker, so the
    marker appearing inside changed content does not start a new segment.
    Empty and whitespace-only fragments are dropped.
    """
    return [fragment for fragment in SEGMENT_START.split(diff) if fragment.strip()]


def parse_segment_paths(segment: str) -> SegmentPaths:
    """Extract the file paths from a segment's header line.

    git wraps a path in double quotes, with C-style escapes, when it holds
    non-ASCII bytes, control characters, ``"`` or ``\\``. Quoted paths are
    decoded back to text.

    Args:
        segment: One file's diff, starting with ``diff --git``.

    Returns:
        Old and new paths with their ``a/`` and ``b/`` prefixes removed.

    Raises:
        MalformedSegmentError: If the header names no path.
    """
    header = segment.split("\n", 1)[0].rstrip("\r")
    if not header.startswith(DIFF_HEADER + " "):
        raise MalformedSegmentError(
            f"no file path in diff header: {header[:80]!r}", segment=segment
        )
    names = header[len(DIFF_HEADER) + 1 :]

    try:
        if names.startswith('"'):
            old, end = unquote_path(names)
            rest = names[end:].lstrip(" ")
            new = unquote_path(rest)[0] if rest.startswith('"') else rest
        elif names.endswith('"') and ' "b/' in names:
            start = names.rfind(' "b/')
            old, new = names[:start], unquote_path(names[start + 1 :])[0]
        else:
            old, new = _split_unquoted(names)
    except ValueError as e:
        raise MalformedSegmentError(
            f"no file path in diff header: {header[:80]!r} ({e})", segment=segment
        ) from e

    if not (old.startswith("a/") and new.startswith("b/")) or not old[2:] or not new[2:]:
        raise MalformedSegmentError(
            f"no file path in diff header: {header[:80]!r}", segment=segment
        )
    return SegmentPaths(old=old[2:], new=new[2:])


def _split_unquoted(names: str) -> tuple[str, str]:
    # Unrenamed files read "a/P b/P"; splitting in the middle copes with
    # paths that contain spaces
    half = (len(names) - 1) // 2
    if names[half : half + 3] == " b/" and names[:half][2:] == names[half + 3 :]:
        return names[:half], names[half + 1 :]
    old, sep, new = names.partition(" b/")
    if not sep:
        return old, "b/" + old[2:]
    return old, "b/" + new


def unquote_path(text: str) -> tuple[str, int]:
    """Decode a double-quoted, C-escaped path at the start of text.

    Args:
        text: Text beginning with ``"``.

    Returns:
        The decoded path and the index just past its closing quote.

    Raises:
        ValueError: If the quoted string is unterminated or badly escaped.
    """
    raw = bytearray()
    i = 1
    while i < len(text):
        char = text[i]
        if char == '"':
            return raw.decode("utf-8", errors="replace"), i + 1
        if char != "\\":
            raw.extend(char.encode("utf-8"))
            i += 1
            continue
        if i + 1 >= len(text):
            break
        escaped = text[i + 1]
        if escaped in C_ESCAPES:
            raw.append(C_ESCAPES[escaped])
            i += 2
        elif text[i + 1 : i + 4].isdigit() and len(text[i + 1 : i + 4]) == 3:
            raw.append(int(text[i + 1 : i + 4], 8) & 0xFF)
            i += 4
        else:
            raise ValueError(f"unknown escape \\{escaped}")
    raise ValueError("unterminated quoted path")


def escape_attr(text: str) -> str:
    """Escape text for use inside a double-quoted XML attribute.

    Characters XML cannot represent at all become U+FFFD.
    """
    text = ILLEGAL_XML_CHARS.sub("\ufffd", text)
    return xml_escape(
        text, {'"': "&quot;", "'": "&apos;", "\n": "&#10;", "\r": "&#13;", "\t": "&#9;"}
    )


def cdata(text: str) -> str:
    """Wrap text in CDATA so a parser recovers it unchanged.

    Any ``]]>`` inside the text is split across two CDATA sections, and each
    ``\\r`` is emitted as a character reference between sections.
    """
    body = text.replace(CDATA_END, "]]]]><![CDATA[>").replace("\r", "]]>&#13;<![CDATA[")
    return "<![CDATA[" + body + "]]>"


def body_element(tag: str, text: str) -> str:
    """Serialize one text body, base64-encoding it if XML cannot hold it."""
    if ILLEGAL_XML_CHARS.search(text):
        encoded = base64.b64encode(text.encode("utf-8", errors="surrogateescape"))
        return f'<{tag} encoding="base64">{encoded.decode("ascii")}</{tag}>'
    return f"<{tag}>{cdata(text)}</{tag}>"


class DiffFormatter:
    """Builds the XML review document from a raw diff."""

    def __init__(
        self,
        gateway: VersionControlGateway,
        matcher: IgnoreMatcher | None = None,
        compare_ref: str = PREVIOUS_BRANCH_REF,
    ) -> None:
        """Initialize formatter.

        Args:
            gateway: Source of branch points and original file content.
            matcher: Ignore patterns; None ignores nothing.
            compare_ref: Ref whose merge base with HEAD supplies the original
                content when format() is not given a merge base.
        """
        self.gateway = gateway
        self.matcher = matcher or IgnoreMatcher()
        self.compare_ref = compare_ref

    def format(self, diff: str, merge_base: str | None = None) -> DiffDocument:
        """Format a raw diff into the review document.

        Args:
            diff: Raw multi-file diff text.
            merge_base: Commit to read original content from. When None, the
                merge base of HEAD and compare_ref is resolved for each file.

        Returns:
            DiffDocument with the XML text, its entries, and per-file errors.
        """
        entries: list[DiffEntry] = []
        errors: list[Exception] = []
        ignored: list[str] = []

        for segment in split_segments(diff):
            try:
                paths = parse_segment_paths(segment)
            except MalformedSegmentError as e:
                errors.append(e)
                continue

            pattern = self.matcher.matching_pattern(paths.new)
            if pattern is not None:
                logger.debug(f"Ignoring {escape(paths.new)} (matches '{escape(pattern)}')")
                ignored.append(paths.new)
                continue

            try:
                branch_point = merge_base or self.gateway.merge_base("HEAD", self.compare_ref)
            except VcsCommandError as e:
                errors.append(
                    VcsCommandError(
                        f"failed to find branch point for {paths.display}: {e.message}",
                        command=e.command,
                        returncode=e.returncode,
                        stderr=e.stderr,
                    )
                )
                continue

            try:
                original = self.gateway.file_content_at(paths.display, branch_point)
                available = True
            except VcsCommandError as e:
                errors.append(
                    VcsCommandError(
                        f"failed to get original content for {paths.display}: {e.message}",
                        command=e.command,
                        returncode=e.returncode,
                        stderr=e.stderr,
                    )
                )
                original = UNAVAILABLE_CONTENT
                available = False

            entries.append(
                DiffEntry(
                    path=paths.display,
                    original_content=original,
                    changes=segment,
                    content_available=available,
                )
            )

        return DiffDocument(
            text=self.render(entries),
            entries=entries,
            errors=errors,
            ignored=ignored,
        )

    @staticmethod
    def render(entries: list[DiffEntry]) -> str:
        """Serialize entries into the ``<git-diff>`` document."""
        lines = ["<git-diff>"]
        for entry in entries:
            lines.append(f"  <file path=\"{escape_attr(entry.path)}\">")
            if entry.content_available:
                lines.append("    " + body_element("original-content", entry.original_content))
            else:
                lines.append(f"    <original-content>{UNAVAILABLE_CONTENT}</original-content>")
            lines.append("    " + body_element("changes", entry.changes))
            lines.append("  </file>")
        lines.append("</git-diff>")
        return "\n".join(lines)
