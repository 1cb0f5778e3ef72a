"""Tests for git output parsing and patch synthesis."""

from cerebro_core.utils.patch import (
    NameStatus,
    count_changes,
    create_add_patch,
    create_binary_add_patch,
    create_delete_patch,
    expand_rename_path,
    parse_name_status,
    parse_numstat,
    parse_porcelain_status,
    status_from_letter,
    unquote_path,
)

SAMPLE_PATCH = """\
diff --git a/src/app.ts b/src/app.ts
index 1111111..2222222 100644
--- a/src/app.ts
+++ b/src/app.ts
@@ -1,3 +1,5 @@
 import x from "x";
-const a = 1;
+const a = 2;
+const b = 3;
+const c = 4;
 export default a;
"""


class TestCountChanges:
    def test_counts_exclude_file_headers(self):
        assert count_changes(SAMPLE_PATCH) == (3, 1)

    def test_empty_patch(self):
        assert count_changes("") == (0, 0)

    def test_plus_and_minus_lines_after_header(self):
        assert count_changes("--- a/f\n+++ b/f\n@@ -1 +1 @@\n+a\n-b\n") == (1, 1)

    def test_content_lines_that_look_like_headers(self):
        patch = (
            "diff --git a/q.sql b/q.sql\n"
            "--- a/q.sql\n"
            "+++ b/q.sql\n"
            "@@ -1,2 +1,2 @@\n"
            "--- header comment\n"
            "+++counter;\n"
            " select 1;\n"
        )
        assert count_changes(patch) == (1, 1)

    def test_headers_of_each_file_section_are_skipped(self):
        patch = SAMPLE_PATCH + SAMPLE_PATCH.replace("src/app.ts", "src/other.ts")
        assert count_changes(patch) == (6, 2)


class TestNameStatus:
    def test_status_letters(self):
        assert status_from_letter("A") == "added"
        assert status_from_letter("D") == "deleted"
        assert status_from_letter("R087") == "renamed"
        assert status_from_letter("M") == "modified"
        assert status_from_letter("T") == "modified"

    def test_parse_lines(self):
        output = "M\tsrc/app.ts\nA\tnew.py\nD\told.py\nR100\tsrc/a.py\tsrc/b.py\n\n"
        assert parse_name_status(output) == [
            NameStatus("modified", "src/app.ts"),
            NameStatus("added", "new.py"),
            NameStatus("deleted", "old.py"),
            NameStatus("renamed", "src/b.py", "src/a.py"),
        ]

    def test_quoted_path(self):
        [entry] = parse_name_status('M\t"with\\ttab.txt"\n')
        assert entry.path == "with\ttab.txt"

    def test_malformed_lines_are_skipped(self):
        assert parse_name_status("garbage\n\tpath\n") == []


class TestNumstat:
    def test_parse(self):
        output = "3\t1\tsrc/app.ts\n10\t0\tnew.py\n"
        assert parse_numstat(output) == {"src/app.ts": (3, 1), "new.py": (10, 0)}

    def test_binary_counts_are_zero(self):
        assert parse_numstat("-\t-\tlogo.png\n") == {"logo.png": (0, 0)}

    def test_rename_notation(self):
        output = "1\t1\tsrc/{old => new}/mod.py\n2\t0\ta.py => b.py\n"
        assert parse_numstat(output) == {"src/new/mod.py": (1, 1), "b.py": (2, 0)}

    def test_expand_rename_into_root(self):
        assert expand_rename_path("src/{pkg => }/mod.py") == "src/mod.py"
        assert expand_rename_path("plain.py") == "plain.py"


class TestUnquote:
    def test_plain_path_untouched(self):
        assert unquote_path("src/app.ts") == "src/app.ts"

    def test_octal_utf8(self):
        assert unquote_path('"caf\\303\\251.txt"') == "café.txt"

    def test_escaped_quote(self):
        assert unquote_path('"say \\"hi\\".txt"') == 'say "hi".txt'


class TestSynthesizedPatches:
    def test_add_patch(self):
        patch = create_add_patch("new.py", "a\nb\n")
        assert patch == (
            "diff --git a/new.py b/new.py\n"
            "new file mode 100644\n"
            "--- /dev/null\n"
            "+++ b/new.py\n"
            "@@ -0,0 +1,2 @@\n"
            "+a\n"
            "+b\n"
        )
        assert count_changes(patch) == (2, 0)

    def test_add_patch_single_line_without_newline(self):
        patch = create_add_patch("one.txt", "only")
        assert "@@ -0,0 +1 @@\n+only\n\\ No newline at end of file\n" in patch
        assert count_changes(patch) == (1, 0)

    def test_add_patch_empty_file_has_no_hunk(self):
        patch = create_add_patch("empty.txt", "")
        assert "@@" not in patch
        assert count_changes(patch) == (0, 0)

    def test_delete_patch(self):
        patch = create_delete_patch("old.py", "x\ny\nz\n")
        assert "deleted file mode 100644\n--- a/old.py\n+++ /dev/null\n@@ -1,3 +0,0 @@\n" in patch
        assert count_changes(patch) == (0, 3)

    def test_binary_add_patch(self):
        patch = create_binary_add_patch("logo.png")
        assert "Binary files /dev/null and b/logo.png differ" in patch
        assert count_changes(patch) == (0, 0)


class TestPorcelainStatus:
    def test_views(self):
        output = "\0".join(
            [
                " M src/app.ts",
                "M  staged.py",
                "MM both.py",
                " D gone.py",
                "?? new.txt",
                "A  added.py",
                "UU conflict.py",
                "",
            ]
        )
        status = parse_porcelain_status(output)
        assert status.modified == ["src/app.ts", "both.py"]
        assert status.deleted == ["gone.py"]
        assert status.untracked == ["new.txt"]
        assert status.staged == ["staged.py", "both.py", "added.py"]

    def test_rename_consumes_original_path(self):
        output = "R  new.py\0old.py\0 M other.py\0"
        status = parse_porcelain_status(output)
        assert status.codes == {"new.py": "R ", "other.py": " M"}
        assert status.staged == ["new.py"]

    def test_ignored_entries_skipped(self):
        assert parse_porcelain_status("!! build/\0").codes == {}

    def test_path_with_spaces(self):
        status = parse_porcelain_status("?? my file.txt\0")
        assert status.untracked == ["my file.txt"]
