"""Tests for the panel renderers used by the TUI."""

from git_merge_resolver import file_label, render_editor, render_result, render_side
from merge_editor import EditBuffer
from merge_models import BlockChoice, ConflictFile, ConflictKind, Side
from merge_sections import build_sections, split_lines
from merge_session import PanelFocus, ResolutionSession


def make_session() -> ResolutionSession:
    sections = build_sections(split_lines("A\nB\nC\n"), split_lines("A\nX\nC\n"), split_lines("A\nB\nY\n"))
    conflict = ConflictFile(path="[x].txt", kind=ConflictKind.MODIFY_MODIFY, sections=sections)
    return ResolutionSession(files=[conflict])


def test_side_panel_numbers_every_line():
    session = make_session()
    lines = render_side(session, Side.OURS).plain.splitlines()
    assert len(lines) == 3
    assert lines[0].endswith("A")
    assert lines[1].startswith("▶")
    assert "● X" in lines[1]


def test_side_panel_marks_chosen_lines():
    session = make_session()
    session.panel_focus = PanelFocus.OURS
    (index,) = session.current.conflict_indices()
    session.current.choose_block(index, BlockChoice.USE_OURS)
    assert "✓ X" in render_side(session, Side.OURS).plain
    assert "· B" in render_side(session, Side.THEIRS).plain


def test_result_shows_markers_until_resolved():
    session = make_session()
    plain = render_result(session.current).plain
    assert "<<<<<<< ours" in plain
    assert ">>>>>>> theirs" in plain


def test_deleted_side_placeholder():
    conflict = ConflictFile(
        path="gone.txt",
        kind=ConflictKind.MODIFY_DELETE,
        blobs={Side.ANCESTOR: b"a\n", Side.OURS: b"a\nb\n", Side.THEIRS: None},
    )
    session = ResolutionSession(files=[conflict])
    assert "deleted" in render_side(session, Side.THEIRS).plain
    conflict.choose_file(Side.THEIRS)
    assert "will be deleted" in render_result(conflict).plain


def test_editor_marks_cursor_cell():
    text = render_editor(EditBuffer(lines=["abc", "de"], line=1, column=2))
    assert text.plain.splitlines() == ["1 abc", "2 de "]


def test_file_label_escapes_markup():
    session = make_session()
    assert "\\[x].txt" in file_label(session.current)
