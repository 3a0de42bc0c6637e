"""
Unit tests for diff annotation and the diff summarizer.
"""

import pytest

from gitwatch.config import DiffSummaryPolicy
from gitwatch.diff import DiffLine, DiffSummarizer, annotate_diff, stat_lines, unquote_path


ADDED_AT_TEN = """\
diff --git a/notes.txt b/notes.txt
index 3b18e51..a2c7d01 100644
--- a/notes.txt
+++ b/notes.txt
@@ -9,0 +10,3 @@ heading
+first
+second
+third
"""

TWO_FILES = """\
diff --git a/a.py b/a.py
index 1111111..2222222 100644
--- a/a.py
+++ b/a.py
@@ -3,2 +3,1 @@ def f():
-    old_one
-    old_two
+    new_one
@@ -20 +19 @@ def g():
-    return 1
+    return 2
diff --git a/b.txt b/b.txt
new file mode 100644
index 0000000..3333333
--- /dev/null
+++ b/b.txt
@@ -0,0 +1,2 @@
+x
+y
"""

STAT = """\
 a.py  | 4 ++--
 b.txt | 2 ++
 2 files changed, 4 insertions(+), 2 deletions(-)
"""


def summarizer(diff_text, limit, stat=STAT, color=False):
    policy = DiffSummaryPolicy(line_limit=limit, color=color)
    return DiffSummarizer(policy, lambda _color: diff_text, lambda: stat)


class TestAnnotateDiff:
    """Path and line tracking over unified diffs."""

    def test_added_lines_numbered_from_hunk_start(self):
        records = list(annotate_diff(ADDED_AT_TEN.splitlines()))

        assert [r.line for r in records] == [10, 11, 12]
        assert all(r.path == "notes.txt" for r in records)
        assert [r.text for r in records] == ["+first", "+second", "+third"]

    def test_record_format(self):
        record = DiffLine("notes.txt", 10, "+first")
        assert str(record) == "notes.txt:10: +first"

    def test_deletions_do_not_advance_line(self):
        records = list(annotate_diff(TWO_FILES.splitlines()))

        rendered = [str(r) for r in records]
        assert rendered == [
            "a.py:3: -    old_one",
            "a.py:3: -    old_two",
            "a.py:3: +    new_one",
            "a.py:19: -    return 1",
            "a.py:19: +    return 2",
            "b.txt:1: +x",
            "b.txt:2: +y",
        ]

    def test_headers_are_not_records(self):
        records = list(annotate_diff(TWO_FILES.splitlines()))
        assert not any(r.text.startswith(("---", "+++", "@@", "diff", "index")) for r in records)

    def test_deleted_line_that_looks_like_header(self):
        diff = [
            "--- a/query.sql",
            "+++ b/query.sql",
            "@@ -4,2 +4,0 @@",
            "--- old comment",
            "-+++ not a header",
        ]
        records = list(annotate_diff(diff))

        assert [str(r) for r in records] == [
            "query.sql:4: --- old comment",
            "query.sql:4: -+++ not a header",
        ]

    def test_no_newline_marker_ignored(self):
        diff = [
            "--- a/f",
            "+++ b/f",
            "@@ -1 +1 @@",
            "-a",
            "\\ No newline at end of file",
            "+b",
        ]
        records = list(annotate_diff(diff))
        assert [str(r) for r in records] == ["f:1: -a", "f:1: +b"]

    def test_deleted_file_path(self):
        diff = [
            "diff --git a/gone.txt b/gone.txt",
            "deleted file mode 100644",
            "--- a/gone.txt",
            "+++ /dev/null",
            "@@ -1,2 +0,0 @@",
            "-one",
            "-two",
        ]
        records = list(annotate_diff(diff))
        assert [str(r) for r in records] == ["/dev/null:0: -one", "/dev/null:0: -two"]

    def test_colored_diff(self):
        esc = "\x1b"
        diff = [
            f"{esc}[1mdiff --git a/c.txt b/c.txt{esc}[m",
            f"{esc}[1mindex 1..2 100644{esc}[m",
            f"{esc}[1m--- a/c.txt{esc}[m",
            f"{esc}[1m+++ b/c.txt{esc}[m",
            f"{esc}[36m@@ -1 +7,2 @@{esc}[m",
            f"{esc}[31m-old{esc}[m",
            f"{esc}[32m+new{esc}[m",
            f"{esc}[32m+more{esc}[m",
        ]
        records = list(annotate_diff(diff))

        assert [(r.path, r.line) for r in records] == [("c.txt", 7), ("c.txt", 7), ("c.txt", 8)]
        assert records[1].text == f"{esc}[32m+new{esc}[m"

    def test_path_with_spaces(self):
        diff = ["--- a/my notes.txt", "+++ b/my notes.txt\t", "@@ -0,0 +1 @@", "+hi"]
        records = list(annotate_diff(diff))
        assert str(records[0]) == "my notes.txt:1: +hi"

    def test_quoted_path(self):
        diff = [
            '--- "a/caf\\303\\251.txt"',
            '+++ "b/caf\\303\\251.txt"',
            "@@ -0,0 +1 @@",
            "+hi",
        ]
        records = list(annotate_diff(diff))
        assert str(records[0]) == "caf\u00e9.txt:1: +hi"

    def test_form_feed_inside_changed_line(self):
        diff = "--- a/f\n+++ b/f\n@@ -0,0 +1,2 @@\n+page one\x0c -break\n+next\n"
        summary = summarizer(diff, limit=2)

        records = summary.annotated()
        assert [(r.line, r.text) for r in records] == [(1, "+page one\x0c -break"), (2, "+next")]
        assert summary.summarize() == "f:1: +page one\x0c -break\nf:2: +next"

    def test_empty_diff(self):
        assert list(annotate_diff([])) == []


class TestStatLines:

    def test_keeps_per_file_lines(self):
        assert stat_lines(STAT) == [" a.py  | 4 ++--", " b.txt | 2 ++"]

    def test_empty(self):
        assert stat_lines("") == []


class TestDiffSummarizer:
    """Line budget decisions."""

    def test_disabled_returns_nothing(self):
        policy = DiffSummaryPolicy.disabled()
        summary = DiffSummarizer(policy, lambda _c: TWO_FILES, lambda: STAT)

        assert summary.enabled is False
        assert summary.summarize() == ""

    def test_exactly_at_limit_uses_full_diff(self):
        summary = summarizer(ADDED_AT_TEN, limit=3).summarize()
        assert summary == "notes.txt:10: +first\nnotes.txt:11: +second\nnotes.txt:12: +third"

    def test_one_over_limit_uses_stats(self):
        summary = summarizer(ADDED_AT_TEN, limit=2).summarize()
        assert summary == " a.py  | 4 ++--\n b.txt | 2 ++"

    def test_zero_limit_always_stats(self):
        summary = summarizer(ADDED_AT_TEN, limit=0).summarize()
        assert summary == " a.py  | 4 ++--\n b.txt | 2 ++"

    def test_zero_limit_without_changes_is_empty(self):
        assert summarizer("", limit=0, stat="").summarize() == ""

    def test_empty_diff_falls_back_to_stats(self):
        stat = " logo.png | Bin 0 -> 1024 bytes\n 1 file changed, 0 insertions(+), 0 deletions(-)\n"
        assert summarizer("", limit=10, stat=stat).summarize() == " logo.png | Bin 0 -> 1024 bytes"

    def test_color_flag_passed_to_source(self):
        seen = []
        policy = DiffSummaryPolicy(line_limit=5, color=True)

        def source(color):
            seen.append(color)
            return ADDED_AT_TEN

        DiffSummarizer(policy, source, lambda: STAT).summarize()
        assert seen == [True]

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            DiffSummaryPolicy(line_limit=-1)


class TestUnquotePath:

    def test_octal_utf8_bytes(self):
        assert unquote_path("b/caf\\303\\251.txt") == "b/café.txt"

    def test_c_escapes(self):
        assert unquote_path('tab\\there \\"q\\" back\\\\slash') == 'tab\there "q" back\\slash'

    def test_plain_text_unchanged(self):
        assert unquote_path("plain.txt") == "plain.txt"
