"""Tests for ConflictFile content generation and resolution modes."""

import pytest

from merge_models import (
    BlockChoice,
    BlockResolution,
    ConflictFile,
    ConflictKind,
    FileResolution,
    LineResolution,
    LineSource,
    ResolutionMode,
    Side,
)
from merge_sections import build_sections, split_lines


def make_file(ancestor, ours, theirs, kind=ConflictKind.MODIFY_MODIFY, **kwargs) -> ConflictFile:
    sections = build_sections(
        None if ancestor is None else split_lines(ancestor),
        split_lines(ours),
        split_lines(theirs),
    )
    return ConflictFile(path="f.txt", kind=kind, sections=sections, **kwargs)


@pytest.fixture
def letters():
    """Stable(A) followed by one Conflict(ours=X,C / theirs=B,Y)."""
    return make_file("A\nB\nC\n", "A\nX\nC\n", "A\nB\nY\n")


@pytest.fixture
def two_conflicts():
    return make_file("1\n2\n3\n4\n5\n", "1\ntwo\n3\n4\n5\n", "1\n2\n3\nfour\n5\n")


class TestGenerateContent:
    def test_sides_reproduce_inputs(self, letters):
        assert letters.generate_content(Side.OURS) == "A\nX\nC\n"
        assert letters.generate_content(Side.THEIRS) == "A\nB\nY\n"
        assert letters.generate_content(Side.ANCESTOR) == "A\nB\nC\n"

    def test_unresolved_section_renders_markers(self, letters):
        letters.ours_label = "main"
        letters.theirs_label = "feature"
        assert letters.generate_content(Side.RESOLVED) == (
            "A\n<<<<<<< main\nX\nC\n=======\nB\nY\n>>>>>>> feature\n"
        )

    def test_block_use_ours_matches_ours(self, two_conflicts):
        for index in two_conflicts.conflict_indices():
            assert two_conflicts.choose_block(index, BlockChoice.USE_OURS)
        assert two_conflicts.generate_content(Side.RESOLVED) == two_conflicts.generate_content(Side.OURS)

    def test_block_use_theirs_matches_theirs(self, two_conflicts):
        for index in two_conflicts.conflict_indices():
            two_conflicts.choose_block(index, BlockChoice.USE_THEIRS)
        assert two_conflicts.generate_content(Side.RESOLVED) == two_conflicts.generate_content(Side.THEIRS)

    def test_mixed_block_choices(self, two_conflicts):
        first, second = two_conflicts.conflict_indices()
        two_conflicts.choose_block(first, BlockChoice.USE_OURS)
        two_conflicts.choose_block(second, BlockChoice.USE_THEIRS)
        assert two_conflicts.generate_content(Side.RESOLVED) == "1\ntwo\n3\nfour\n5\n"

    def test_use_both_orders(self, letters):
        (index,) = letters.conflict_indices()
        letters.choose_block(index, BlockChoice.USE_BOTH_OURS_FIRST)
        assert letters.generate_content(Side.RESOLVED) == "A\nX\nC\nB\nY\n"
        letters.choose_block(index, BlockChoice.USE_BOTH_THEIRS_FIRST)
        assert letters.generate_content(Side.RESOLVED) == "A\nB\nY\nX\nC\n"

    def test_unterminated_line_gets_newline_only_when_followed(self):
        conflict = make_file("a\nb", "a\nours", "a\ntheirs")
        (index,) = conflict.conflict_indices()
        conflict.choose_block(index, BlockChoice.USE_BOTH_OURS_FIRST)
        assert conflict.generate_content(Side.RESOLVED) == "a\nours\ntheirs"

    def test_override_wins(self, letters):
        letters.override = ["edited", "text"]
        assert letters.generate_content(Side.RESOLVED) == "edited\ntext"
        assert [line.source for line in letters.resolved_lines()] == [LineSource.EDITED] * 2

    def test_resolved_lines_provenance(self, letters):
        (index,) = letters.conflict_indices()
        letters.choose_block(index, BlockChoice.USE_THEIRS)
        lines = letters.resolved_lines()
        assert [(line.content, line.source) for line in lines] == [
            ("A", LineSource.CONTEXT),
            ("B", LineSource.THEIRS),
            ("Y", LineSource.THEIRS),
        ]


class TestLineMode:
    def test_select_ours_x_and_theirs_y(self, letters):
        """Picking X from ours and Y from theirs yields A,X,Y."""
        assert letters.set_mode(ResolutionMode.LINE)
        (index,) = letters.conflict_indices()
        assert letters.toggle_line(index, Side.OURS, 0)
        assert letters.toggle_line(index, Side.THEIRS, 1)
        assert letters.generate_content(Side.RESOLVED) == "A\nX\nY\n"
        assert letters.is_fully_resolved()

    def test_untouched_section_is_unresolved(self, letters):
        letters.set_mode(ResolutionMode.LINE)
        assert not letters.is_fully_resolved()
        assert "<<<<<<<" in letters.generate_content(Side.RESOLVED)

    def test_empty_selection_is_a_choice(self, letters):
        letters.set_mode(ResolutionMode.LINE)
        (index,) = letters.conflict_indices()
        letters.toggle_line(index, Side.OURS, 0)
        letters.toggle_line(index, Side.OURS, 0)
        assert letters.is_fully_resolved()
        assert letters.generate_content(Side.RESOLVED) == "A\n"

    def test_toggle_out_of_range_is_noop(self, letters):
        letters.set_mode(ResolutionMode.LINE)
        (index,) = letters.conflict_indices()
        assert not letters.toggle_line(index, Side.OURS, 5)
        assert not letters.toggle_line(0, Side.OURS, 0)  # Stable section

    def test_ours_lines_come_first(self, letters):
        letters.set_mode(ResolutionMode.LINE)
        (index,) = letters.conflict_indices()
        letters.toggle_line(index, Side.THEIRS, 0)
        letters.toggle_line(index, Side.OURS, 1)
        assert letters.generate_content(Side.RESOLVED) == "A\nC\nB\n"

    def test_line_chosen(self, letters):
        letters.set_mode(ResolutionMode.LINE)
        (index,) = letters.conflict_indices()
        assert letters.line_chosen(index, Side.OURS, 0) is None
        letters.toggle_line(index, Side.OURS, 0)
        assert letters.line_chosen(index, Side.OURS, 0) is True
        assert letters.line_chosen(index, Side.THEIRS, 0) is False


class TestModeConversion:
    def test_block_choice_seeds_line_selection(self, letters):
        (index,) = letters.conflict_indices()
        letters.choose_block(index, BlockChoice.USE_OURS)
        letters.set_mode(ResolutionMode.LINE)
        selection = letters.resolution.selections[index]
        assert selection.ours == {0, 1}
        assert selection.theirs == set()
        assert letters.generate_content(Side.RESOLVED) == "A\nX\nC\n"

    def test_both_theirs_first_survives_line_mode(self, letters):
        (index,) = letters.conflict_indices()
        letters.choose_block(index, BlockChoice.USE_BOTH_THEIRS_FIRST)
        letters.set_mode(ResolutionMode.LINE)
        assert letters.generate_content(Side.RESOLVED) == "A\nB\nY\nX\nC\n"
        letters.set_mode(ResolutionMode.BLOCK)
        assert letters.resolution.choice(index) == BlockChoice.USE_BOTH_THEIRS_FIRST

    def test_partial_line_selection_is_unresolved_in_block_mode(self, letters):
        letters.set_mode(ResolutionMode.LINE)
        (index,) = letters.conflict_indices()
        letters.toggle_line(index, Side.OURS, 0)
        letters.set_mode(ResolutionMode.BLOCK)
        assert letters.resolution.choice(index) == BlockChoice.UNRESOLVED

    def test_uniform_block_choice_becomes_file_choice(self, two_conflicts):
        for index in two_conflicts.conflict_indices():
            two_conflicts.choose_block(index, BlockChoice.USE_THEIRS)
        two_conflicts.set_mode(ResolutionMode.FILE)
        assert two_conflicts.resolution == FileResolution(Side.THEIRS)

    def test_mixed_block_choices_leave_file_unresolved(self, two_conflicts):
        first, second = two_conflicts.conflict_indices()
        two_conflicts.choose_block(first, BlockChoice.USE_OURS)
        two_conflicts.choose_block(second, BlockChoice.USE_THEIRS)
        two_conflicts.set_mode(ResolutionMode.FILE)
        assert two_conflicts.resolution.choice is None
        assert not two_conflicts.is_fully_resolved()

    def test_file_choice_seeds_blocks(self, two_conflicts):
        two_conflicts.set_mode(ResolutionMode.FILE)
        two_conflicts.choose_file(Side.OURS)
        two_conflicts.set_mode(ResolutionMode.BLOCK)
        assert isinstance(two_conflicts.resolution, BlockResolution)
        assert all(
            two_conflicts.resolution.choice(i) == BlockChoice.USE_OURS
            for i in two_conflicts.conflict_indices()
        )

    def test_mixed_block_choices_survive_file_round_trip(self, two_conflicts):
        first, second = two_conflicts.conflict_indices()
        two_conflicts.choose_block(first, BlockChoice.USE_OURS)
        two_conflicts.choose_block(second, BlockChoice.USE_THEIRS)
        assert two_conflicts.set_mode(ResolutionMode.FILE)
        assert two_conflicts.set_mode(ResolutionMode.BLOCK)
        assert two_conflicts.resolution.choices == {
            first: BlockChoice.USE_OURS,
            second: BlockChoice.USE_THEIRS,
        }
        assert two_conflicts.generate_content(Side.RESOLVED) == "1\ntwo\n3\nfour\n5\n"

    def test_partial_line_picks_survive_block_round_trip(self, letters):
        letters.set_mode(ResolutionMode.LINE)
        (index,) = letters.conflict_indices()
        letters.toggle_line(index, Side.OURS, 0)
        letters.toggle_line(index, Side.THEIRS, 1)
        assert letters.generate_content(Side.RESOLVED) == "A\nX\nY\n"

        letters.set_mode(ResolutionMode.BLOCK)
        letters.set_mode(ResolutionMode.LINE)

        assert letters.resolution.selections[index].ours == {0}
        assert letters.resolution.selections[index].theirs == {1}
        assert letters.generate_content(Side.RESOLVED) == "A\nX\nY\n"

    def test_choices_survive_a_detour_through_two_modes(self, two_conflicts):
        first, second = two_conflicts.conflict_indices()
        two_conflicts.choose_block(first, BlockChoice.USE_OURS)
        two_conflicts.choose_block(second, BlockChoice.USE_BOTH_THEIRS_FIRST)
        two_conflicts.set_mode(ResolutionMode.FILE)
        two_conflicts.set_mode(ResolutionMode.LINE)
        two_conflicts.set_mode(ResolutionMode.BLOCK)
        assert two_conflicts.resolution.choice(first) == BlockChoice.USE_OURS
        assert two_conflicts.resolution.choice(second) == BlockChoice.USE_BOTH_THEIRS_FIRST

    def test_new_choice_replaces_stashed_state(self, two_conflicts):
        first, second = two_conflicts.conflict_indices()
        two_conflicts.choose_block(first, BlockChoice.USE_OURS)
        two_conflicts.choose_block(second, BlockChoice.USE_THEIRS)
        two_conflicts.set_mode(ResolutionMode.FILE)
        two_conflicts.choose_file(Side.THEIRS)
        two_conflicts.set_mode(ResolutionMode.BLOCK)
        assert two_conflicts.resolution.choices == {
            first: BlockChoice.USE_THEIRS,
            second: BlockChoice.USE_THEIRS,
        }

    def test_same_mode_is_noop(self, letters):
        assert not letters.set_mode(ResolutionMode.BLOCK)

    def test_mode_switch_clears_override(self, letters):
        letters.override = ["x"]
        assert letters.set_mode(ResolutionMode.BLOCK)
        assert letters.override is None


class TestFileOnly:
    def test_binary_file_only_accepts_file_mode(self):
        conflict = ConflictFile(
            path="img.png",
            kind=ConflictKind.MODIFY_MODIFY,
            binary=True,
            blobs={Side.ANCESTOR: b"\x00a", Side.OURS: b"\x00o", Side.THEIRS: b"\x00t"},
        )
        assert conflict.mode == ResolutionMode.FILE
        assert not conflict.set_mode(ResolutionMode.LINE)
        assert not conflict.is_fully_resolved()
        conflict.choose_file(Side.THEIRS)
        assert conflict.resolved_bytes() == b"\x00t"

    def test_deleted_by_them_resolves_to_deletion(self):
        conflict = make_file(
            "a\n", "a\nb\n", "", kind=ConflictKind.MODIFY_DELETE,
            blobs={Side.ANCESTOR: b"a\n", Side.OURS: b"a\nb\n", Side.THEIRS: None},
        )
        assert conflict.file_only
        assert isinstance(conflict.resolution, FileResolution)
        conflict.choose_file(Side.THEIRS)
        assert conflict.resolves_to_deletion()
        assert conflict.resolved_bytes() is None
        conflict.choose_file(Side.OURS)
        assert conflict.resolved_bytes() == b"a\nb\n"

    def test_clear_choice_resets_file_choice(self):
        conflict = make_file(
            "a\n", "", "a\nb\n", kind=ConflictKind.DELETE_MODIFY,
            blobs={Side.ANCESTOR: b"a\n", Side.OURS: None, Side.THEIRS: b"a\nb\n"},
        )
        conflict.choose_file(Side.OURS)
        assert conflict.clear_choice()
        assert conflict.unresolved_count() == 1


def test_clear_choice_in_block_mode(letters):
    (index,) = letters.conflict_indices()
    letters.choose_block(index, BlockChoice.USE_OURS)
    assert letters.clear_choice(index)
    assert not letters.clear_choice(index)
    assert letters.unresolved_count() == 1


def test_resolution_state_is_a_deep_copy(letters):
    letters.set_mode(ResolutionMode.LINE)
    snapshot = letters.resolution_state()
    (index,) = letters.conflict_indices()
    letters.toggle_line(index, Side.OURS, 0)
    assert snapshot[0] == LineResolution()
