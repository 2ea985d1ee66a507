#!/usr/bin/env python3
"""Three-way Git merge conflict resolver: file, block and line granularity."""

import sys
from pathlib import Path

from rich.markup import escape
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen, Screen
from textual.widgets import Footer, Input, Label, ListItem, ListView, Static

from git_backend import GitRepository
from merge_config import (
    get_commit_message,
    get_default_mode,
    get_log_dir,
    get_log_level,
    get_marker_labels,
    get_result_height,
    get_theme,
)
from merge_editor import EditBuffer
from merge_errors import MergeError
from merge_logging import get_logger, read_log, setup_logging
from merge_models import ConflictFile, FileResolution, LineSource, ResolutionMode, Side
from merge_session import Command, PanelFocus, ResolutionSession
from merge_sync import RepositorySynchronizer
from session_manager import ConflictSessionManager

log = get_logger("app")

SIDE_COLORS = {Side.OURS: "green", Side.THEIRS: "yellow"}

SOURCE_STYLES = {
    LineSource.CONTEXT: "",
    LineSource.OURS: "green",
    LineSource.THEIRS: "yellow",
    LineSource.MARKER: "bold red",
    LineSource.EDITED: "cyan",
}

PANEL_IDS = {
    PanelFocus.FILE_LIST: "#file-sidebar",
    PanelFocus.OURS: "#ours-panel",
    PanelFocus.THEIRS: "#theirs-panel",
    PanelFocus.RESULT: "#result-panel",
}

HELP_TEXT = {
    PanelFocus.FILE_LIST: "j/k:file tab:panel 1/2/3:mode c:commit v:status ?:log",
    PanelFocus.OURS: "j/k:next o/t/b:choose enter:resolve space:line u:undo",
    PanelFocus.THEIRS: "j/k:next o/t/b:choose enter:resolve space:line u:undo",
    PanelFocus.RESULT: "j/k:scroll e:edit w:preview c:commit",
}

# Keys understood by the inline editor (printable characters insert themselves)
EDITOR_KEYS = {
    "escape": Command.CANCEL_EDIT,
    "ctrl+s": Command.CONFIRM_EDIT,
    "enter": Command.EDIT_NEWLINE,
    "backspace": Command.EDIT_BACKSPACE,
    "delete": Command.EDIT_DELETE,
    "up": Command.EDIT_UP,
    "down": Command.EDIT_DOWN,
    "left": Command.EDIT_LEFT,
    "right": Command.EDIT_RIGHT,
    "home": Command.EDIT_HOME,
    "end": Command.EDIT_END,
}


# =============================================================================
# Rendering
# =============================================================================


def _new_text() -> Text:
    return Text(no_wrap=True, overflow="ellipsis")


def _gutter_width(count: int) -> int:
    return len(str(max(count, 1)))


def _choice_marker(chosen: bool | None) -> tuple[str, str]:
    if chosen is None:
        return "●", "bold red"
    return ("✓", "bold green") if chosen else ("·", "dim")


def render_side(session: ResolutionSession, side: Side) -> Text:
    """Ours/Theirs panel: line numbers, a section cursor and per-line choice markers."""
    current = session.current
    text = _new_text()
    if current.binary:
        text.append("(binary content: choose a whole-file side)", style="dim italic")
        return text
    if not current.has_side(side):
        text.append(f"(deleted on {side.value} side)", style="dim italic")
        return text

    color = SIDE_COLORS[side]
    active = session.active_section
    line_cursor = session.mode == ResolutionMode.LINE and session.focused_side == side
    width = _gutter_width(sum(len(section.lines(side)) for section in current.sections))
    number = 1
    for index, section in enumerate(current.sections):
        for offset, line in enumerate(section.lines(side)):
            content = line.rstrip("\r\n")
            if section.is_conflict:
                pointer = "▶" if index == active else " "
                marker, marker_style = _choice_marker(current.line_chosen(index, side, offset))
                style = color
                if line_cursor and index == active and offset == session.line_cursor:
                    style = f"{color} reverse"
            else:
                pointer, marker, marker_style, style = " ", " ", "", "dim"
            text.append(f"{pointer}{number:>{width}} ", style="dim")
            text.append(f"{marker} ", style=marker_style)
            text.append(content + "\n", style=style)
            number += 1
    return text


def render_editor(buffer: EditBuffer) -> Text:
    """Edit buffer with the cursor cell shown in reverse video."""
    text = _new_text()
    width = _gutter_width(len(buffer.lines))
    for number, line in enumerate(buffer.lines):
        text.append(f"{number + 1:>{width}} ", style="dim cyan")
        if number != buffer.line:
            text.append(line + "\n")
            continue
        column = buffer.column
        text.append(line[:column])
        text.append(line[column:column + 1] or " ", style="reverse")
        text.append(line[column + 1:] + "\n")
    return text


def render_result(current: ConflictFile) -> Text:
    """Result panel, colour-coded by where each line came from."""
    if current.is_editing:
        return render_editor(current.edit)
    text = _new_text()
    if current.resolves_to_deletion():
        text.append("(file will be deleted)", style="dim italic")
        return text
    if current.binary and current.override is None:
        choice = current.resolution.choice if isinstance(current.resolution, FileResolution) else None
        if choice is None:
            text.append("(binary: choose ours or theirs)", style="dim italic")
        else:
            text.append(f"(binary: {choice.value} version)", style=SIDE_COLORS[choice])
        return text
    lines = current.resolved_lines()
    width = _gutter_width(len(lines))
    for number, line in enumerate(lines, 1):
        text.append(f"{number:>{width}} ", style="dim")
        text.append(line.content + "\n", style=SOURCE_STYLES[line.source])
    return text


def file_label(current: ConflictFile) -> str:
    if current.is_fully_resolved():
        icon = "[green]✓[/]"
    else:
        icon = f"[yellow]{current.unresolved_count()}[/]"
    return f" {icon} {escape(current.path)} [dim]({current.kind.value})[/]"


# =============================================================================
# Widgets
# =============================================================================


class FileItem(ListItem):
    """A conflicted file item in the sidebar."""

    def __init__(self, conflict_file: ConflictFile):
        super().__init__()
        self.conflict_file = conflict_file

    def compose(self) -> ComposeResult:
        yield Static(file_label(self.conflict_file), classes="file-label")

    def refresh_label(self):
        for label in self.query(".file-label").results(Static):
            label.update(file_label(self.conflict_file))


class ResultView(Static, can_focus=True):
    """Result content; takes keyboard focus while the inline editor is open."""

    def on_key(self, event: events.Key) -> None:
        app = self.app
        if not app.is_editing:
            return
        event.stop()
        event.prevent_default()
        command = EDITOR_KEYS.get(event.key)
        if command is not None:
            app.apply_command(command)
        elif event.is_printable and event.character:
            app.apply_command(Command.EDIT_INSERT, event.character)


# =============================================================================
# Modal Dialogs
# =============================================================================


class PreviewDialog(ModalScreen):
    """Preview the resolved content of the current file."""

    CSS = """
    PreviewDialog {
        align: center middle;
        background: transparent;
    }
    #preview-dialog {
        width: 90%;
        height: 90%;
        border: round $primary;
        background: $background;
        padding: 1;
        border-title-align: left;
        border-title-color: $primary;
        border-subtitle-align: right;
        border-subtitle-color: $text-muted;
    }
    #preview-scroll {
        height: 1fr;
        border: round $border;
    }
    """

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
    ]

    def __init__(self, title: str, content: str):
        super().__init__()
        self.title_text = title
        self.content = content

    def compose(self) -> ComposeResult:
        dialog = Vertical(id="preview-dialog")
        dialog.border_title = self.title_text
        dialog.border_subtitle = "Esc:Close"
        with dialog:
            with VerticalScroll(id="preview-scroll"):
                yield Static(self.content, markup=False)

    def on_mount(self):
        self.query_one("#preview-scroll").scroll_end(animate=False)

    def action_close(self):
        self.dismiss(None)


class LogDialog(PreviewDialog):
    """Tail of the resolver log file."""

    def __init__(self):
        super().__init__("Log", read_log(200))


class ConfirmDialog(ModalScreen):
    """Simple confirmation dialog."""

    CSS = """
    ConfirmDialog {
        align: center middle;
        background: transparent;
    }
    #confirm-box {
        width: 60;
        height: auto;
        border: round $warning;
        background: $surface;
        padding: 1 2;
        border-title-align: left;
        border-title-color: $warning;
    }
    #confirm-message {
        margin-bottom: 1;
    }
    #confirm-hint {
        color: $text-muted;
        text-align: center;
    }
    """

    BINDINGS = [
        ("y", "confirm", "Yes"),
        ("n", "cancel", "No"),
        ("escape", "cancel", "Cancel"),
    ]

    def __init__(self, title: str, message: str):
        super().__init__()
        self.title_text = title
        self.message = message

    def compose(self) -> ComposeResult:
        box = Vertical(id="confirm-box")
        box.border_title = self.title_text
        with box:
            yield Static(self.message, id="confirm-message")
            yield Static("y:Yes · n:No", id="confirm-hint")

    def action_confirm(self):
        self.dismiss(True)

    def action_cancel(self):
        self.dismiss(False)


class CommitDialog(ModalScreen):
    """Ask for the merge commit message."""

    CSS = """
    CommitDialog {
        align: center middle;
        background: transparent;
    }
    #commit-box {
        width: 80;
        height: auto;
        border: round $primary;
        background: $surface;
        padding: 1 2;
        border-title-align: left;
        border-title-color: $primary;
    }
    #commit-hint {
        color: $text-muted;
        text-align: center;
        margin-top: 1;
    }
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    def __init__(self, message: str, summary: str):
        super().__init__()
        self.message = message
        self.summary = summary

    def compose(self) -> ComposeResult:
        box = Vertical(id="commit-box")
        box.border_title = "Commit merge"
        with box:
            yield Label(self.summary)
            yield Input(value=self.message, id="commit-message")
            yield Static("Enter:Commit · Esc:Cancel", id="commit-hint")

    def on_mount(self):
        self.query_one("#commit-message", Input).focus()

    def on_input_submitted(self, event: Input.Submitted):
        message = event.value.strip()
        if message:
            self.dismiss(message)

    def action_cancel(self):
        self.dismiss(None)


class StatusScreen(Screen):
    """Repository overview shown outside the conflict view."""

    CSS = """
    #status-box {
        border: round $primary;
        background: $surface;
        padding: 1 2;
        border-title-align: left;
        border-title-color: $primary;
    }
    """

    BINDINGS = [
        ("m", "resolve", "Resolve conflicts"),
        ("?", "show_log", "Log"),
        ("q", "app.quit", "Quit"),
    ]

    def __init__(self, manager: ConflictSessionManager, note: str = ""):
        super().__init__()
        self.manager = manager
        self.note = note

    def compose(self) -> ComposeResult:
        box = Vertical(id="status-box")
        box.border_title = "Repository"
        with box:
            yield Static("", id="status-text")
        yield Footer()

    def on_mount(self):
        self.refresh_status()

    def on_screen_resume(self):
        self.refresh_status()

    def refresh_status(self, note: str | None = None):
        if note is not None:
            self.note = note
        repo = self.manager.synchronizer.repo
        lines = [f"[b]{repo.repo_path}[/]", ""]
        if self.manager.merge_in_progress():
            lines.append("[yellow]Merge in progress[/]  press [b]m[/] to resolve conflicts")
            session = self.manager.session
            if session is not None:
                if session.description:
                    lines.append(f"[dim]{escape(session.description)}[/]")
                lines.append(
                    f"{session.remaining_files()} of {session.file_count} file(s) unresolved, "
                    f"{session.unresolved_sections()} conflict section(s) left"
                )
        else:
            lines.append("[green]No merge in progress[/]")
        if self.note:
            lines += ["", self.note]
        self.query_one("#status-text", Static).update("\n".join(lines))

    def action_resolve(self):
        if not self.manager.merge_in_progress():
            self.notify("No merge in progress", severity="warning")
            return
        self.dismiss(True)

    def action_show_log(self):
        self.app.push_screen(LogDialog())


# =============================================================================
# Main Application
# =============================================================================


class MergeResolverApp(App):
    """Three-way Git merge conflict resolver."""

    TITLE = "Git Merge Resolver"

    CSS = """
    * {
        scrollbar-size: 1 1;
    }

    MergeResolverApp {
        background: $background;
    }

    /* File sidebar */
    #file-sidebar {
        width: 32;
        border: round $border;
        background: $surface;
        border-title-align: left;
        border-title-color: $text-muted;
        overflow: hidden;
    }
    #file-sidebar.focused {
        border: round $primary;
        border-title-color: $primary;
    }
    #file-list {
        height: 1fr;
        background: $surface;
        overflow-y: auto;
        overflow-x: hidden;
    }

    /* Three panels: Ours | Result | Theirs */
    #panels {
        height: 1fr;
        overflow: hidden;
    }
    .conflict-panel {
        width: 1fr;
        border-top: solid $border;
        border-bottom: solid $border;
        border-left: none;
        border-right: none;
        background: $background;
        border-title-align: center;
        border-title-style: bold;
        margin: 0;
        padding: 0 1;
        overflow-x: hidden;
        overflow-y: auto;
    }
    .conflict-panel > Static {
        width: 100%;
        overflow: hidden;
    }
    .conflict-panel.focused {
        border-top: solid $primary;
        border-bottom: solid $primary;
    }
    #ours-panel {
        border-left: solid $border;
        border-title-color: $success;
    }
    #result-panel {
        border-left: solid $border;
        border-right: solid $border;
        border-title-color: $primary;
    }
    #result-panel.editing {
        border-top: solid $accent;
        border-bottom: solid $accent;
    }
    #theirs-panel {
        border-right: solid $border;
        border-title-color: $warning;
    }

    /* Status bar - compact single line */
    #status-bar {
        height: 1;
        background: $surface;
        padding: 0 1;
        overflow: hidden;
    }
    #file-info {
        width: auto;
        overflow: hidden;
    }
    #progress-info {
        width: auto;
        margin: 0 2;
        overflow: hidden;
    }
    #help-info {
        width: 1fr;
        text-align: right;
        color: $text-muted;
        overflow: hidden;
    }

    /* ListItem styling */
    ListItem {
        background: $surface;
        overflow: hidden;
        width: 100%;
    }
    ListItem > Static {
        overflow: hidden;
        width: 100%;
    }
    ListItem.-highlight {
        background: $primary 30%;
    }
    ListView {
        background: $surface;
        overflow-x: hidden;
    }
    """

    BINDINGS = [
        # Navigation
        Binding("tab", "next_panel", "Next panel", priority=True),
        Binding("shift+tab", "prev_panel", "Prev panel", priority=True),
        ("j", "down", "Down"),
        ("k", "up", "Up"),
        Binding("down", "down", "Down", show=False),
        Binding("up", "up", "Up", show=False),
        ("J", "scroll_down", "Scroll down"),
        ("K", "scroll_up", "Scroll up"),
        # Resolution
        ("o", "choose_ours", "Ours"),
        ("t", "choose_theirs", "Theirs"),
        ("b", "choose_both", "Both"),
        Binding("space", "toggle_line", "Toggle line", show=False),
        Binding("enter", "resolve", "Resolve", show=False),
        ("u", "clear_choice", "Undo"),
        ("1", "mode_file", "File mode"),
        ("2", "mode_block", "Block mode"),
        ("3", "mode_line", "Line mode"),
        ("e", "start_edit", "Edit"),
        # Repository
        ("w", "preview_file", "Preview"),
        ("c", "finalize", "Commit"),
        ("A", "abort", "Abort merge"),
        ("v", "leave_view", "Status"),
        ("?", "show_log", "Log"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, repo_path: Path | None = None):
        super().__init__()
        repo = GitRepository(repo_path)
        ours, theirs = get_marker_labels()
        config = {
            "default_mode": get_default_mode().value,
            "marker_ours": ours,
            "marker_theirs": theirs,
            "result_height": get_result_height(),
            "commit_message": get_commit_message(),
        }
        self.manager = ConflictSessionManager(RepositorySynchronizer(repo, config))

    @property
    def session(self) -> ResolutionSession | None:
        return self.manager.session

    @property
    def is_editing(self) -> bool:
        return self.session is not None and self.session.is_editing

    @property
    def in_view(self) -> bool:
        """A session exists and the conflict view is the active screen."""
        return self.session is not None and self.screen is self.screen_stack[0]

    def compose(self) -> ComposeResult:
        with Horizontal(id="main-container"):
            sidebar = Vertical(id="file-sidebar")
            sidebar.border_title = "Files"
            with sidebar:
                yield ListView(id="file-list")

            with Horizontal(id="panels"):
                ours = VerticalScroll(id="ours-panel", classes="conflict-panel")
                ours.border_title = "◀ Ours"
                with ours:
                    yield Static("", id="ours-content")

                result = VerticalScroll(id="result-panel", classes="conflict-panel")
                result.border_title = "Result"
                with result:
                    yield ResultView("", id="result-content")

                theirs = VerticalScroll(id="theirs-panel", classes="conflict-panel")
                theirs.border_title = "Theirs ▶"
                with theirs:
                    yield Static("", id="theirs-content")

        with Horizontal(id="status-bar"):
            yield Static("", id="file-info")
            yield Static("", id="progress-info")
            yield Static("", id="help-info")
        yield Footer()

    def on_mount(self):
        theme = get_theme()
        if theme in self.available_themes:
            self.theme = theme
        # Panel focus lives in the session; widgets never hold it outside editing
        for selector in ("#file-list", "#ours-panel", "#result-panel", "#theirs-panel"):
            self.query_one(selector).can_focus = False
        self._enter_view()

    def on_resize(self, event: events.Resize):
        self.call_after_refresh(self._measure_result)

    def _measure_result(self):
        if self.session is not None:
            height = self.query_one("#result-panel").content_size.height
            if height > 0:
                self.session.result_height = height

    # =========================================================================
    # View lifecycle
    # =========================================================================

    def _enter_view(self):
        try:
            session = self.manager.enter_conflict_view()
        except MergeError as e:
            log.error("Cannot open conflict view: %s", e)
            self._show_status(f"[red]{escape(str(e))}[/]")
            return
        if session is None:
            self._show_status()
            return
        self._rebuild_file_list()
        self._redraw()
        self.call_after_refresh(self._measure_result)
        self.call_after_refresh(self._redraw)

    def _show_status(self, note: str = ""):
        if isinstance(self.screen, StatusScreen):
            self.screen.refresh_status(note)
            return

        def handle_result(resume: bool):
            if resume:
                self._enter_view()

        self.push_screen(StatusScreen(self.manager, note), handle_result)

    def action_leave_view(self):
        if self.is_editing:
            return
        self.manager.leave_conflict_view()
        self._show_status()

    # =========================================================================
    # Rendering
    # =========================================================================

    def _rebuild_file_list(self):
        file_list = self.query_one("#file-list", ListView)
        file_list.clear()
        for conflict_file in self.session.files:
            file_list.append(FileItem(conflict_file))

    def _redraw(self):
        session = self.session
        if session is None or session.current is None:
            return
        current = session.current

        self.query_one("#ours-content", Static).update(render_side(session, Side.OURS))
        self.query_one("#theirs-content", Static).update(render_side(session, Side.THEIRS))
        self.query_one("#result-content", ResultView).update(render_result(current))

        self.query_one("#ours-panel").border_title = f"◀ Ours ({session.ours_label})"
        self.query_one("#theirs-panel").border_title = f"Theirs ({session.theirs_label}) ▶"
        result_panel = self.query_one("#result-panel")
        if current.is_editing:
            result_panel.border_title = "✎ Editing · Ctrl+S:Save · Esc:Cancel"
        elif current.is_fully_resolved():
            result_panel.border_title = "✓ Result"
        else:
            result_panel.border_title = "Result"
        result_panel.set_class(current.is_editing, "editing")

        for focus, selector in PANEL_IDS.items():
            self.query_one(selector).set_class(session.panel_focus == focus, "focused")

        self.query_one("#ours-panel").scroll_to(y=session.ours_scroll, animate=False)
        self.query_one("#theirs-panel").scroll_to(y=session.theirs_scroll, animate=False)
        self.query_one("#result-panel").scroll_to(y=session.result_scroll, animate=False)

        file_list = self.query_one("#file-list", ListView)
        for item in file_list.query(FileItem):
            item.refresh_label()
        if file_list.index != session.current_file:
            file_list.index = session.current_file

        self._update_status_bar()

    def _update_status_bar(self):
        session = self.session
        current = session.current
        conflicts = current.conflict_indices()
        active = session.active_section
        if active in conflicts:
            position = f" · section {conflicts.index(active) + 1}/{len(conflicts)}"
        else:
            position = ""
        status = "[green]✓[/]" if current.is_fully_resolved() else "[yellow]●[/]"
        self.query_one("#file-info", Static).update(
            f"{status} {current.path} [dim]{current.mode.value}{position}[/]"
        )
        self.query_one("#progress-info", Static).update(
            f"[dim]{session.remaining_files()}/{session.file_count} files · "
            f"{session.unresolved_sections()} sections left[/]"
        )
        self.query_one("#help-info", Static).update(HELP_TEXT[session.panel_focus])

    # =========================================================================
    # Command dispatch
    # =========================================================================

    def apply_command(self, command: Command, arg: str | None = None) -> bool:
        """Apply one command to the session and redraw when it changed something."""
        if not self.in_view:
            return False
        was_editing = self.session.is_editing
        changed = self.session.apply(command, arg)
        if changed:
            if self.session.is_editing != was_editing:
                self._sync_editor_focus()
            self._redraw()
        return changed

    def _sync_editor_focus(self):
        result_view = self.query_one("#result-content", ResultView)
        if self.is_editing:
            result_view.focus()
        else:
            self.set_focus(None)

    def on_list_view_selected(self, event: ListView.Selected):
        if self.session is None or not isinstance(event.item, FileItem):
            return
        index = self.session.files.index(event.item.conflict_file)
        if self.session.select_file(index):
            self._redraw()

    # =========================================================================
    # Navigation Actions
    # =========================================================================

    def action_next_panel(self):
        self.apply_command(Command.NEXT_PANEL)

    def action_prev_panel(self):
        self.apply_command(Command.PREV_PANEL)

    def _vertical_command(self, forward: bool) -> Command:
        focus = self.session.panel_focus
        if focus == PanelFocus.FILE_LIST:
            return Command.NEXT_FILE if forward else Command.PREV_FILE
        if focus == PanelFocus.RESULT:
            return Command.SCROLL_DOWN if forward else Command.SCROLL_UP
        if self.session.mode == ResolutionMode.LINE:
            return Command.LINE_DOWN if forward else Command.LINE_UP
        return Command.NEXT_SECTION if forward else Command.PREV_SECTION

    def action_down(self):
        if self.in_view:
            self.apply_command(self._vertical_command(True))

    def action_up(self):
        if self.in_view:
            self.apply_command(self._vertical_command(False))

    def action_scroll_down(self):
        self.apply_command(Command.SCROLL_DOWN)

    def action_scroll_up(self):
        self.apply_command(Command.SCROLL_UP)

    # =========================================================================
    # Resolution Actions
    # =========================================================================

    def action_choose_ours(self):
        self.apply_command(Command.CHOOSE_OURS)

    def action_choose_theirs(self):
        self.apply_command(Command.CHOOSE_THEIRS)

    def action_choose_both(self):
        self.apply_command(Command.CHOOSE_BOTH)

    def action_toggle_line(self):
        self.apply_command(Command.TOGGLE_LINE)

    def action_resolve(self):
        self.apply_command(Command.RESOLVE)

    def action_clear_choice(self):
        if self.apply_command(Command.CLEAR_CHOICE):
            self.notify("Choice undone", timeout=2)

    def action_mode_file(self):
        self.apply_command(Command.SET_MODE_FILE)

    def action_mode_block(self):
        if self.in_view and self.session.current.file_only:
            self.notify("This file only supports whole-file resolution", severity="warning")
            return
        self.apply_command(Command.SET_MODE_BLOCK)

    def action_mode_line(self):
        if self.in_view and self.session.current.file_only:
            self.notify("This file only supports whole-file resolution", severity="warning")
            return
        self.apply_command(Command.SET_MODE_LINE)

    def action_start_edit(self):
        if not self.in_view:
            return
        if self.session.panel_focus != PanelFocus.RESULT:
            self.notify("Focus the Result panel to edit", severity="warning", timeout=2)
            return
        self.apply_command(Command.START_EDIT)

    # =========================================================================
    # Repository Actions
    # =========================================================================

    def action_preview_file(self):
        if not self.in_view:
            return
        current = self.session.current
        if not current.is_fully_resolved():
            self.notify(f"{current.unresolved_count()} unresolved conflict(s)", severity="warning")
        if current.resolves_to_deletion():
            content = "(file will be deleted)"
        elif current.binary and current.override is None:
            content = "(binary content)"
        else:
            content = current.generate_content(Side.RESOLVED)
        self.push_screen(PreviewDialog(f"Preview: {current.path}", content))

    def action_show_log(self):
        self.push_screen(LogDialog())

    def action_finalize(self):
        session = self.session
        if not self.in_view or session.is_editing:
            return
        unresolved = session.unresolved_paths()
        if unresolved:
            self.notify(
                f"Cannot commit: {len(unresolved)} unresolved file(s): {escape(', '.join(unresolved))}",
                severity="error",
                timeout=5,
            )
            return
        repo = self.manager.synchronizer.repo
        default_message = repo.merge_message() or get_commit_message()

        def handle_message(message: str | None):
            if message:
                self._do_finalize(message)

        summary = f"Merge {session.theirs_label} into {session.ours_label} ({session.file_count} file(s))"
        self.push_screen(CommitDialog(default_message.splitlines()[0], summary), handle_message)

    def _do_finalize(self, message: str):
        try:
            commit = self.manager.finalize(message)
        except MergeError as e:
            self.notify(escape(str(e)), severity="error", timeout=8)
            self._redraw()
            return
        self.notify(f"Committed merge {commit[:7]}", timeout=5)
        self._show_status(f"[green]Merge committed as {commit[:12]}[/]")

    def action_abort(self):
        if not self.in_view or self.session.is_editing:
            return

        def handle_confirm(confirmed: bool):
            try:
                aborted = self.manager.abort(confirmed)
            except MergeError as e:
                self.notify(escape(str(e)), severity="error", timeout=8)
                return
            if aborted:
                self.notify("Merge aborted", timeout=3)
                self._show_status("[yellow]Merge aborted[/]")

        self.push_screen(
            ConfirmDialog("Abort Merge", "Discard every resolution and restore the pre-merge state?"),
            handle_confirm,
        )


# =============================================================================
# Entry Point
# =============================================================================


def main():
    """Entry point."""
    setup_logging(get_log_dir(), get_log_level())
    repo_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    try:
        app = MergeResolverApp(repo_path)
    except MergeError as e:
        print(f"git-merge-resolver: {e}", file=sys.stderr)
        sys.exit(1)
    app.run()


if __name__ == "__main__":
    main()
