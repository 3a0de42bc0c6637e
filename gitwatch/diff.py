"""
Diff Layer - Turn pending changes into a bounded commit message body.

Parses ``git diff -U0`` output into records qualified with the file path
and the absolute line number in the new version of the file, and falls
back to ``git diff --stat`` lines when the change is too large to list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional

from .config import DiffSummaryPolicy


# Colour escapes git emits with --color=always
_ESC = r"(?:\x1b\[[0-9;]*m)*"

OLD_FILE_RE = re.compile(rf"^{_ESC}--- (?:a/)?")
QUOTED_NEW_FILE_RE = re.compile(rf'^{_ESC}\+\+\+ "((?:[^"\\]|\\.)*)"')
NEW_FILE_RE = re.compile(rf"^{_ESC}\+\+\+ (?:b/)?([^\t\x1b]+)")
HUNK_RE = re.compile(rf"^{_ESC}@@ -\d+(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
CONTENT_RE = re.compile(rf"^{_ESC}([ +-])")


_C_ESCAPES = {
    "a": 0x07, "b": 0x08, "t": 0x09, "n": 0x0A, "v": 0x0B, "f": 0x0C, "r": 0x0D,
    '"': 0x22, "\\": 0x5C,
}


def unquote_path(quoted: str) -> str:
    """Undo git's C-style quoting of a path (without the surrounding quotes).

    Octal escapes are raw bytes of the UTF-8 encoded name.
    """
    out = bytearray()
    i = 0
    while i < len(quoted):
        char = quoted[i]
        if char != "\\" or i + 1 == len(quoted):
            out += char.encode("utf-8")
            i += 1
            continue
        nxt = quoted[i + 1]
        octal = quoted[i + 1:i + 4]
        if len(octal) == 3 and all(c in "01234567" for c in octal):
            out.append(int(octal, 8) & 0xFF)
            i += 4
        elif nxt in _C_ESCAPES:
            out.append(_C_ESCAPES[nxt])
            i += 2
        else:
            out += nxt.encode("utf-8")
            i += 2
    return out.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class DiffLine:
    """One changed line, positioned in the new version of its file."""
    path: str
    line: int
    text: str

    def __str__(self) -> str:
        return f"{self.path}:{self.line}: {self.text}"


def annotate_diff(lines: Iterable[str]) -> Iterator[DiffLine]:
    """Annotate unified diff lines with file paths and line numbers.

    The parser tracks the current file (from the ``+++`` header) and the
    current line (from the hunk header's new-file start). Each content line
    yields a record; the line counter advances for every line except
    deletions. Inside a hunk the remaining old/new line counts decide what
    is content, so a deleted line that itself starts with ``--`` is not
    mistaken for a file header.
    """
    path = ""
    line = 0
    old_left = 0
    new_left = 0

    for raw in lines:
        raw = raw.rstrip("\r\n")
        in_hunk = old_left > 0 or new_left > 0

        if not in_hunk:
            if OLD_FILE_RE.match(raw):
                continue
            match = QUOTED_NEW_FILE_RE.match(raw)
            if match:
                path = unquote_path(match.group(1))
                if path.startswith("b/"):
                    path = path[2:]
                continue
            match = NEW_FILE_RE.match(raw)
            if match:
                path = match.group(1).rstrip()
                continue
            match = HUNK_RE.match(raw)
            if match:
                old_count, start, new_count = match.groups()
                line = int(start)
                old_left = int(old_count) if old_count is not None else 1
                new_left = int(new_count) if new_count is not None else 1
                continue

        match = CONTENT_RE.match(raw)
        if not match:
            continue
        marker = match.group(1)
        yield DiffLine(path, line, raw)

        if marker != "-":
            line += 1
            new_left = max(0, new_left - 1)
        if marker != "+":
            old_left = max(0, old_left - 1)


def stat_lines(stat_output: str) -> List[str]:
    """Keep only the per-file lines of ``git diff --stat`` output."""
    return [line.rstrip() for line in stat_output.split("\n") if "|" in line]


class DiffSummarizer:
    """Produce the diff part of a commit message under a line budget.

    Args:
        policy: line budget and colour setting
        diff_source: callable taking ``color`` and returning ``git diff -U0`` text
        stat_source: callable returning ``git diff --stat`` text
    """

    def __init__(self, policy: DiffSummaryPolicy,
                 diff_source: Callable[[bool], str],
                 stat_source: Callable[[], str]):
        self.policy = policy
        self._diff_source = diff_source
        self._stat_source = stat_source

    @property
    def enabled(self) -> bool:
        return self.policy.enabled

    def annotated(self) -> List[DiffLine]:
        return list(annotate_diff(self._diff_source(self.policy.color).split("\n")))

    def summarize(self) -> str:
        """Return the annotated diff, the stat fallback, or an empty string."""
        if not self.enabled:
            return ""

        limit: Optional[int] = self.policy.line_limit
        records = self.annotated()
        if records and len(records) <= limit:
            return "\n".join(str(record) for record in records)

        return "\n".join(stat_lines(self._stat_source()))
