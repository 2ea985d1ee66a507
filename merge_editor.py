"""Line buffer with a clamped cursor for editing a resolved file in place."""

from dataclasses import dataclass, field


@dataclass
class EditBuffer:
    """Editable copy of a file's resolved content.

    Lines are stored without terminators; ``text()`` joins them with ``\\n``,
    so a buffer built with ``from_text`` gives back the exact same text.
    The cursor is ``(line, column)`` and is clamped after every operation to
    ``0 <= line < len(lines)`` and ``0 <= column <= len(lines[line])``.
    """

    lines: list[str] = field(default_factory=lambda: [""])
    line: int = 0
    column: int = 0

    def __post_init__(self):
        if not self.lines:
            self.lines = [""]
        self._clamp()

    @classmethod
    def from_text(cls, text: str) -> "EditBuffer":
        return cls(lines=text.split("\n"))

    @property
    def cursor(self) -> tuple[int, int]:
        return self.line, self.column

    def text(self) -> str:
        return "\n".join(self.lines)

    def _clamp(self):
        self.line = max(0, min(self.line, len(self.lines) - 1))
        self.column = max(0, min(self.column, len(self.lines[self.line])))

    # -- mutations -----------------------------------------------------------

    def insert_char(self, char: str):
        """Insert one character at the cursor and advance past it."""
        if char == "\n":
            self.split_line()
            return
        current = self.lines[self.line]
        self.lines[self.line] = current[:self.column] + char + current[self.column:]
        self.column += len(char)
        self._clamp()

    def insert_text(self, text: str):
        """Insert pasted text, splitting lines on newlines."""
        for char in text.replace("\r\n", "\n"):
            self.insert_char(char)

    def delete_before(self):
        """Backspace: remove the character left of the cursor.

        At column 0 of a non-first line the line is joined onto the previous one.
        """
        if self.column > 0:
            current = self.lines[self.line]
            self.lines[self.line] = current[:self.column - 1] + current[self.column:]
            self.column -= 1
        elif self.line > 0:
            current = self.lines.pop(self.line)
            self.line -= 1
            self.column = len(self.lines[self.line])
            self.lines[self.line] += current
        self._clamp()

    def delete_at(self):
        """Delete: remove the character under the cursor, joining the next line at end of line."""
        current = self.lines[self.line]
        if self.column < len(current):
            self.lines[self.line] = current[:self.column] + current[self.column + 1:]
        elif self.line + 1 < len(self.lines):
            self.lines[self.line] = current + self.lines.pop(self.line + 1)
        self._clamp()

    def split_line(self):
        current = self.lines[self.line]
        self.lines[self.line] = current[:self.column]
        self.lines.insert(self.line + 1, current[self.column:])
        self.line += 1
        self.column = 0

    # -- cursor movement -----------------------------------------------------

    def move_up(self):
        if self.line > 0:
            self.line -= 1
        self._clamp()

    def move_down(self):
        if self.line + 1 < len(self.lines):
            self.line += 1
        self._clamp()

    def move_left(self):
        if self.column > 0:
            self.column -= 1
        elif self.line > 0:
            self.line -= 1
            self.column = len(self.lines[self.line])
        self._clamp()

    def move_right(self):
        if self.column < len(self.lines[self.line]):
            self.column += 1
        elif self.line + 1 < len(self.lines):
            self.line += 1
            self.column = 0
        self._clamp()

    def move_home(self):
        self.column = 0

    def move_end(self):
        self.column = len(self.lines[self.line])

    def scroll_for(self, scroll: int, height: int) -> int:
        """Return the scroll offset that keeps the cursor line inside a window of ``height`` lines."""
        height = max(1, height)
        if self.line < scroll:
            return self.line
        if self.line >= scroll + height:
            return self.line - height + 1
        return scroll
