import random

import pytest

from gitbridge.core.diff import DiffEngine, compute_diff, edit_opcodes, split_lines
from gitbridge.core.models import DiffComputationError, DiffLineType


def _types(result):
    return [line.type for line in result.lines]


def _count(result, line_type):
    return sum(1 for line in result.lines if line.type is line_type)


class TestDiffEngine:
    def test_appended_line_is_added(self):
        result = DiffEngine().compute_diff("hello\nworld", "hello\nworld\nfoo")

        assert _types(result) == [DiffLineType.UNCHANGED, DiffLineType.UNCHANGED, DiffLineType.ADDED]
        assert result.lines[2].content == "foo"
        assert result.added_lines == 1
        assert result.deleted_lines == 0
        assert result.unchanged_lines == 2

    def test_replaced_line_is_modified(self):
        result = DiffEngine().compute_diff("a\nb\nc", "a\nx\nc")

        modified = [line for line in result.lines if line.type is DiffLineType.MODIFIED]
        assert len(modified) == 1
        assert modified[0].content == "x"
        assert modified[0].old_content == "b"
        assert result.added_lines == 1
        assert result.deleted_lines == 1
        assert result.unchanged_lines == 2

    def test_removed_line_is_deleted(self):
        result = DiffEngine().compute_diff("a\nb\nc", "a\nc")

        assert _types(result) == [DiffLineType.UNCHANGED, DiffLineType.DELETED, DiffLineType.UNCHANGED]
        assert result.lines[1].old_line_number == 2
        assert result.lines[1].new_line_number is None
        assert result.deleted_lines == 1
        assert result.added_lines == 0

    def test_line_numbers_advance_per_side(self):
        result = DiffEngine().compute_diff("a\nb\nc", "a\nc\nd\ne")

        numbers = [(line.type, line.old_line_number, line.new_line_number) for line in result.lines]
        assert numbers == [
            (DiffLineType.UNCHANGED, 1, 1),
            (DiffLineType.DELETED, 2, None),
            (DiffLineType.UNCHANGED, 3, 2),
            (DiffLineType.ADDED, None, 3),
            (DiffLineType.ADDED, None, 4),
        ]

    def test_uneven_replacement_pairs_then_spills(self):
        result = DiffEngine().compute_diff("a\nb\nc\nz", "a\nx\nz")

        assert _types(result) == [
            DiffLineType.UNCHANGED,
            DiffLineType.MODIFIED,
            DiffLineType.DELETED,
            DiffLineType.UNCHANGED,
        ]
        assert result.lines[2].content == "c"
        assert result.lines[3].old_line_number == 4
        assert result.lines[3].new_line_number == 3

    def test_empty_inputs(self):
        assert DiffEngine().compute_diff("", "").lines == ()

        created = DiffEngine().compute_diff("", "one\ntwo\n")
        assert _types(created) == [DiffLineType.ADDED, DiffLineType.ADDED]
        assert [line.new_line_number for line in created.lines] == [1, 2]

    def test_line_endings_do_not_create_changes(self):
        result = DiffEngine().compute_diff("a\r\nb\r\n", "a\nb\n")
        assert _types(result) == [DiffLineType.UNCHANGED, DiffLineType.UNCHANGED]

    def test_none_and_bytes_are_treated_as_text(self):
        result = compute_diff(None, b"caf\xc3\xa9\n\xff")

        assert result.old_content == ""
        assert [line.content for line in result.lines] == ["café", "�"]

    def test_non_text_content_raises(self):
        with pytest.raises(DiffComputationError):
            DiffEngine().compute_diff(42, "a")

    @pytest.mark.parametrize("old, new", [
        ("", ""),
        ("a", ""),
        ("", "a"),
        ("a\nb\nc", "c\nb\na"),
        ("1\n2\n3\n4\n5", "1\n3\n4\nx\ny\n5\n6"),
        ("same\nsame\nsame", "same\ndiff\nsame\nsame"),
        ("x\n" * 20, "y\n" * 7),
        ("def f():\n    return 1\n", "def f():\n    return 2\n\n\ndef g():\n    pass\n"),
    ])
    def test_counts_match_classification(self, old, new):
        result = DiffEngine().compute_diff(old, new)

        added = _count(result, DiffLineType.ADDED)
        deleted = _count(result, DiffLineType.DELETED)
        modified = _count(result, DiffLineType.MODIFIED)
        assert result.added_lines == added + modified
        assert result.deleted_lines == deleted + modified

        old_numbers = [line.old_line_number for line in result.lines if line.old_line_number is not None]
        new_numbers = [line.new_line_number for line in result.lines if line.new_line_number is not None]
        assert old_numbers == list(range(1, len(old.splitlines()) + 1))
        assert new_numbers == list(range(1, len(new.splitlines()) + 1))


def _lcs_length(old, new):
    row = [0] * (len(new) + 1)
    for a in old:
        previous_diagonal = 0
        for j, b in enumerate(new, 1):
            current = row[j]
            row[j] = previous_diagonal + 1 if a == b else max(row[j], row[j - 1])
            previous_diagonal = current
    return row[-1]


class TestMinimalEditScript:
    def test_repeated_lines_keep_longest_common_subsequence(self):
        result = DiffEngine().compute_diff("c\na\na\nc\na\na", "c\nc\na")

        assert result.unchanged_lines == 3
        assert result.deleted_lines == 3
        assert result.added_lines == 0

    def test_unchanged_count_matches_lcs(self):
        rng = random.Random(20240611)
        for _ in range(300):
            old = [rng.choice("abc") for _ in range(rng.randint(0, 12))]
            new = [rng.choice("abc") for _ in range(rng.randint(0, 12))]

            result = DiffEngine().compute_diff("\n".join(old), "\n".join(new))

            lcs = _lcs_length(old, new)
            assert result.unchanged_lines == lcs, (old, new)
            assert result.added_lines == len(new) - lcs
            assert result.deleted_lines == len(old) - lcs
            assert result.modified_lines == _count(result, DiffLineType.MODIFIED)

    def test_edit_opcodes_cover_both_sides(self):
        old = list("abcabba")
        new = list("cbabac")

        opcodes = edit_opcodes(old, new)

        assert opcodes[0][1] == 0 and opcodes[0][3] == 0
        assert opcodes[-1][2] == len(old) and opcodes[-1][4] == len(new)
        for (_, _, i2, _, j2), (_, i1, _, j1, _) in zip(opcodes, opcodes[1:]):
            assert (i2, j2) == (i1, j1)


class TestLineSplitting:
    def test_only_newline_sequences_break_lines(self):
        result = DiffEngine().compute_diff("a\x0cb\nc", "a\x0cb\nd")

        assert [(line.type, line.old_line_number, line.new_line_number) for line in result.lines] == [
            (DiffLineType.UNCHANGED, 1, 1),
            (DiffLineType.MODIFIED, 2, 2),
        ]
        assert result.lines[0].content == "a\x0cb"

    def test_unicode_separators_stay_inside_lines(self):
        assert split_lines("one two\x85three\nfour") == ["one two\x85three", "four"]

    @pytest.mark.parametrize("text, expected", [
        ("", []),
        ("a", ["a"]),
        ("a\n", ["a"]),
        ("a\n\n", ["a", ""]),
        ("a\r\nb\rc\n", ["a", "b", "c"]),
    ])
    def test_trailing_break_adds_no_line(self, text, expected):
        assert split_lines(text) == expected
