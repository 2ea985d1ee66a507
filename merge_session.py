"""Resolution session: file list, panel focus, cursors and scroll offsets for a merge."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from merge_editor import EditBuffer
from merge_models import BlockChoice, ConflictFile, ResolutionMode, Side

# =============================================================================
# Focus and commands
# =============================================================================


class PanelFocus(Enum):
    """Panels in their fixed cycling order."""
    FILE_LIST = "files"
    OURS = "ours"
    THEIRS = "theirs"
    RESULT = "result"


PANEL_ORDER = list(PanelFocus)


class Command(Enum):
    """Discrete operator commands understood by a session."""
    NEXT_PANEL = "next_panel"
    PREV_PANEL = "prev_panel"
    NEXT_FILE = "next_file"
    PREV_FILE = "prev_file"
    NEXT_SECTION = "next_section"
    PREV_SECTION = "prev_section"
    LINE_DOWN = "line_down"
    LINE_UP = "line_up"
    SCROLL_DOWN = "scroll_down"
    SCROLL_UP = "scroll_up"
    CHOOSE_OURS = "choose_ours"
    CHOOSE_THEIRS = "choose_theirs"
    CHOOSE_BOTH = "choose_both"
    TOGGLE_LINE = "toggle_line"
    RESOLVE = "resolve"
    CLEAR_CHOICE = "clear_choice"
    SET_MODE_FILE = "mode_file"
    SET_MODE_BLOCK = "mode_block"
    SET_MODE_LINE = "mode_line"
    START_EDIT = "start_edit"
    CONFIRM_EDIT = "confirm_edit"
    CANCEL_EDIT = "cancel_edit"
    EDIT_INSERT = "edit_insert"
    EDIT_BACKSPACE = "edit_backspace"
    EDIT_DELETE = "edit_delete"
    EDIT_NEWLINE = "edit_newline"
    EDIT_UP = "edit_up"
    EDIT_DOWN = "edit_down"
    EDIT_LEFT = "edit_left"
    EDIT_RIGHT = "edit_right"
    EDIT_HOME = "edit_home"
    EDIT_END = "edit_end"


# Commands accepted while the inline editor is open
EDITOR_COMMANDS = {
    Command.CONFIRM_EDIT,
    Command.CANCEL_EDIT,
    Command.EDIT_INSERT,
    Command.EDIT_BACKSPACE,
    Command.EDIT_DELETE,
    Command.EDIT_NEWLINE,
    Command.EDIT_UP,
    Command.EDIT_DOWN,
    Command.EDIT_LEFT,
    Command.EDIT_RIGHT,
    Command.EDIT_HOME,
    Command.EDIT_END,
}

_BUFFER_OPS = {
    Command.EDIT_BACKSPACE: EditBuffer.delete_before,
    Command.EDIT_DELETE: EditBuffer.delete_at,
    Command.EDIT_NEWLINE: EditBuffer.split_line,
    Command.EDIT_UP: EditBuffer.move_up,
    Command.EDIT_DOWN: EditBuffer.move_down,
    Command.EDIT_LEFT: EditBuffer.move_left,
    Command.EDIT_RIGHT: EditBuffer.move_right,
    Command.EDIT_HOME: EditBuffer.move_home,
    Command.EDIT_END: EditBuffer.move_end,
}

_MODE_COMMANDS = {
    Command.SET_MODE_FILE: ResolutionMode.FILE,
    Command.SET_MODE_BLOCK: ResolutionMode.BLOCK,
    Command.SET_MODE_LINE: ResolutionMode.LINE,
}


# =============================================================================
# Session
# =============================================================================


@dataclass
class ResolutionSession:
    """Everything the conflict view needs to survive navigation.

    ``apply`` is the single entry point for operator commands. It returns
    True when the command changed something and False when the command has
    no effect in the current focus/mode (never raises for those).
    """

    files: list[ConflictFile] = field(default_factory=list)
    current_file: int = 0
    panel_focus: PanelFocus = PanelFocus.FILE_LIST
    section_cursor: Optional[int] = None  # Index into the current file's sections
    line_cursor: int = 0                  # Line within the cursor section (line mode)
    ours_scroll: int = 0
    theirs_scroll: int = 0
    result_scroll: int = 0
    result_height: int = 20               # Visible Result lines, reported by the UI
    ours_label: str = "ours"
    theirs_label: str = "theirs"
    description: str = ""

    # -- queries -------------------------------------------------------------

    @property
    def current(self) -> Optional[ConflictFile]:
        if 0 <= self.current_file < len(self.files):
            return self.files[self.current_file]
        return None

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def is_editing(self) -> bool:
        return self.current is not None and self.current.is_editing

    @property
    def mode(self) -> Optional[ResolutionMode]:
        return self.current.mode if self.current else None

    @property
    def focused_side(self) -> Optional[Side]:
        if self.panel_focus == PanelFocus.OURS:
            return Side.OURS
        if self.panel_focus == PanelFocus.THEIRS:
            return Side.THEIRS
        return None

    @property
    def active_section(self) -> Optional[int]:
        """Section under the secondary cursor; the first Conflict section when unset."""
        current = self.current
        if current is None or current.mode == ResolutionMode.FILE:
            return None
        if self.section_cursor is not None:
            return self.section_cursor
        conflicts = current.conflict_indices()
        return conflicts[0] if conflicts else None

    def is_fully_resolved(self) -> bool:
        return all(f.is_fully_resolved() for f in self.files)

    def unresolved_paths(self) -> list[str]:
        return [f.path for f in self.files if not f.is_fully_resolved()]

    def remaining_files(self) -> int:
        return len(self.unresolved_paths())

    def unresolved_sections(self) -> int:
        return sum(f.unresolved_count() for f in self.files)

    # -- dispatch ------------------------------------------------------------

    def apply(self, command: Command, arg: Optional[str] = None) -> bool:
        if self.current is None:
            return False
        if self.is_editing:
            if command not in EDITOR_COMMANDS:
                return False
            return self._apply_editor(command, arg)
        if command in EDITOR_COMMANDS:
            return False

        if command in _MODE_COMMANDS:
            return self.set_mode(_MODE_COMMANDS[command])
        handler = {
            Command.NEXT_PANEL: lambda: self._cycle_panel(1),
            Command.PREV_PANEL: lambda: self._cycle_panel(-1),
            Command.NEXT_FILE: lambda: self._step_file(1),
            Command.PREV_FILE: lambda: self._step_file(-1),
            Command.NEXT_SECTION: lambda: self._step_section(1),
            Command.PREV_SECTION: lambda: self._step_section(-1),
            Command.LINE_DOWN: lambda: self._step_line(1),
            Command.LINE_UP: lambda: self._step_line(-1),
            Command.SCROLL_DOWN: lambda: self._scroll(1),
            Command.SCROLL_UP: lambda: self._scroll(-1),
            Command.CHOOSE_OURS: lambda: self._choose(Side.OURS),
            Command.CHOOSE_THEIRS: lambda: self._choose(Side.THEIRS),
            Command.CHOOSE_BOTH: self._choose_both,
            Command.TOGGLE_LINE: self._toggle_line,
            Command.RESOLVE: self._resolve,
            Command.CLEAR_CHOICE: self._clear_choice,
            Command.START_EDIT: self.start_edit,
        }.get(command)
        return handler() if handler else False

    # -- navigation ----------------------------------------------------------

    def _cycle_panel(self, step: int) -> bool:
        index = PANEL_ORDER.index(self.panel_focus)
        self.panel_focus = PANEL_ORDER[(index + step) % len(PANEL_ORDER)]
        return True

    def _reset_view(self):
        self.section_cursor = None
        self.line_cursor = 0
        self.ours_scroll = 0
        self.theirs_scroll = 0
        self.result_scroll = 0

    def select_file(self, index: int) -> bool:
        """Make another file current. Cursors and every scroll offset start over."""
        if self.is_editing or not 0 <= index < len(self.files):
            return False
        self.current_file = index
        self._reset_view()
        return True

    def _step_file(self, step: int) -> bool:
        if self.panel_focus != PanelFocus.FILE_LIST:
            return False
        target = self.current_file + step
        if not 0 <= target < len(self.files):
            return False
        return self.select_file(target)

    def _cursor_enabled(self) -> bool:
        return self.focused_side is not None and self.current.mode != ResolutionMode.FILE

    def _sync_side_scrolls(self, section: int):
        """Point Ours and Theirs at the same section; each side has its own line offset."""
        self.ours_scroll = self.current.section_offsets(Side.OURS)[section]
        self.theirs_scroll = self.current.section_offsets(Side.THEIRS)[section]

    def _move_to_section(self, section: int, line: int = 0):
        self.section_cursor = section
        self.line_cursor = line
        self._sync_side_scrolls(section)

    def _step_section(self, step: int) -> bool:
        if not self._cursor_enabled():
            return False
        conflicts = self.current.conflict_indices()
        active = self.active_section
        if active is None:
            return False
        if active in conflicts:
            position = conflicts.index(active) + step
        else:
            # Cursor sits on a Stable section: find the neighbour in that direction
            later = [i for i in conflicts if (i > active if step > 0 else i < active)]
            if not later:
                return False
            position = conflicts.index(later[0] if step > 0 else later[-1])
        if not 0 <= position < len(conflicts):
            return False
        self._move_to_section(conflicts[position])
        return True

    def _step_line(self, step: int) -> bool:
        """Move the line cursor across the focused side's conflicting lines."""
        if not self._cursor_enabled() or self.current.mode != ResolutionMode.LINE:
            return False
        side = self.focused_side
        stops = [
            (index, line)
            for index in self.current.conflict_indices()
            for line in range(len(self.current.sections[index].lines(side)))
        ]
        if not stops:
            return False
        here = (self.active_section, self.line_cursor)
        if here in stops:
            position = stops.index(here) + step
        else:
            position = 0 if step > 0 else len(stops) - 1
        if not 0 <= position < len(stops):
            return False
        section, line = stops[position]
        if section != self.active_section or self.section_cursor is None:
            self._move_to_section(section, line)
        else:
            self.line_cursor = line
        return True

    def _scroll(self, step: int) -> bool:
        current = self.current
        if self.panel_focus == PanelFocus.OURS:
            limit = len(current.generate_content(Side.OURS).splitlines())
            attr = "ours_scroll"
        elif self.panel_focus == PanelFocus.THEIRS:
            limit = len(current.generate_content(Side.THEIRS).splitlines())
            attr = "theirs_scroll"
        elif self.panel_focus == PanelFocus.RESULT:
            limit = len(current.resolved_lines())
            attr = "result_scroll"
        else:
            return False
        value = max(0, min(getattr(self, attr) + step, max(limit - 1, 0)))
        if value == getattr(self, attr):
            return False
        setattr(self, attr, value)
        return True

    # -- resolution ----------------------------------------------------------

    def set_mode(self, mode: ResolutionMode) -> bool:
        if self.is_editing or not self.current.set_mode(mode):
            return False
        self.section_cursor = None
        self.line_cursor = 0
        self.result_scroll = 0
        return True

    def _choose(self, side: Side) -> bool:
        if self.focused_side is None:
            return False
        current = self.current
        if current.mode == ResolutionMode.FILE:
            return current.choose_file(side)
        choice = BlockChoice.USE_OURS if side == Side.OURS else BlockChoice.USE_THEIRS
        if current.mode == ResolutionMode.BLOCK:
            return current.choose_block(self.active_section, choice)
        return current.select_section_lines(self.active_section, choice)

    def _choose_both(self) -> bool:
        side = self.focused_side
        current = self.current
        if side is None or current.mode == ResolutionMode.FILE:
            return False
        if side == Side.OURS:
            choice = BlockChoice.USE_BOTH_OURS_FIRST
        else:
            choice = BlockChoice.USE_BOTH_THEIRS_FIRST
        if current.mode == ResolutionMode.BLOCK:
            return current.choose_block(self.active_section, choice)
        return current.select_section_lines(self.active_section, choice)

    def _toggle_line(self) -> bool:
        side = self.focused_side
        if side is None or self.current.mode != ResolutionMode.LINE:
            return False
        return self.current.toggle_line(self.active_section, side, self.line_cursor)

    def _resolve(self) -> bool:
        """Enter on a side panel: pick that side, or take the pick back if it was already made."""
        side = self.focused_side
        current = self.current
        if side is None:
            return False
        if current.mode == ResolutionMode.FILE:
            return self._choose(side)
        if current.mode == ResolutionMode.LINE:
            return self._toggle_line()
        choice = BlockChoice.USE_OURS if side == Side.OURS else BlockChoice.USE_THEIRS
        section = self.active_section
        if section is not None and current.resolution.choice(section) == choice:
            return current.choose_block(section, BlockChoice.UNRESOLVED)
        return current.choose_block(section, choice)

    def _clear_choice(self) -> bool:
        if self.focused_side is None:
            return False
        return self.current.clear_choice(self.active_section)

    # -- inline editing ------------------------------------------------------

    def start_edit(self) -> bool:
        current = self.current
        if self.panel_focus != PanelFocus.RESULT or current.binary or current.is_editing:
            return False
        current.edit = EditBuffer.from_text(current.generate_content(Side.RESOLVED))
        self.result_scroll = current.edit.scroll_for(self.result_scroll, self.result_height)
        return True

    def _apply_editor(self, command: Command, arg: Optional[str]) -> bool:
        current = self.current
        if command == Command.CONFIRM_EDIT:
            current.override = list(current.edit.lines)
            current.edit = None
            return True
        if command == Command.CANCEL_EDIT:
            current.edit = None
            return True
        if command == Command.EDIT_INSERT:
            if not arg:
                return False
            current.edit.insert_text(arg)
        else:
            _BUFFER_OPS[command](current.edit)
        self.result_scroll = current.edit.scroll_for(self.result_scroll, self.result_height)
        return True
