"""Data models for a conflicted merge: aligned sections and per-file resolution state."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from merge_editor import EditBuffer

# =============================================================================
# Enumerations
# =============================================================================


class Side(Enum):
    """Which version of a file to generate."""
    ANCESTOR = "ancestor"
    OURS = "ours"
    THEIRS = "theirs"
    RESOLVED = "resolved"


class SectionOrigin(Enum):
    STABLE = "stable"      # Identical on both sides
    CONFLICT = "conflict"  # Diverges between ours and theirs


class ConflictKind(Enum):
    """Which of ancestor/ours/theirs exist for a conflicted path."""
    MODIFY_MODIFY = "both modified"
    ADD_ADD = "both added"
    DELETE_MODIFY = "deleted by us"
    MODIFY_DELETE = "deleted by them"


class ResolutionMode(Enum):
    FILE = "file"
    BLOCK = "block"
    LINE = "line"


class BlockChoice(Enum):
    UNRESOLVED = "unresolved"
    USE_OURS = "ours"
    USE_THEIRS = "theirs"
    USE_BOTH_OURS_FIRST = "both (ours first)"
    USE_BOTH_THEIRS_FIRST = "both (theirs first)"


class LineSource(Enum):
    """Provenance of a line in the resolved result."""
    CONTEXT = "context"
    OURS = "ours"
    THEIRS = "theirs"
    MARKER = "marker"
    EDITED = "edited"


# =============================================================================
# Sections
# =============================================================================


@dataclass
class Section:
    """One aligned region of a conflicted file.

    Lines keep their terminators so that concatenating a side over all
    sections reproduces that side's file byte for byte.
    """

    origin: SectionOrigin
    ours_lines: list[str]
    theirs_lines: list[str]
    ancestor_lines: list[str] = field(default_factory=list)

    @classmethod
    def stable(cls, lines: list[str], ancestor: Optional[list[str]] = None) -> "Section":
        return cls(
            SectionOrigin.STABLE,
            list(lines),
            list(lines),
            list(lines) if ancestor is None else list(ancestor),
        )

    @classmethod
    def conflict(cls, ours: list[str], theirs: list[str], ancestor: list[str]) -> "Section":
        return cls(SectionOrigin.CONFLICT, list(ours), list(theirs), list(ancestor))

    @property
    def is_conflict(self) -> bool:
        return self.origin == SectionOrigin.CONFLICT

    def lines(self, side: Side) -> list[str]:
        if side == Side.OURS:
            return self.ours_lines
        if side == Side.THEIRS:
            return self.theirs_lines
        if side == Side.ANCESTOR:
            return self.ancestor_lines
        raise ValueError(f"Section has no {side.value} lines")


@dataclass
class LineSelection:
    """Line-mode state of one Conflict section."""
    ours: set[int] = field(default_factory=set)
    theirs: set[int] = field(default_factory=set)
    touched: bool = False       # Operator made a choice (an empty selection is a valid choice)
    theirs_first: bool = False  # Emit selected theirs lines before ours lines

    def indices(self, side: Side) -> set[int]:
        return self.ours if side == Side.OURS else self.theirs

    def toggle(self, side: Side, index: int):
        selected = self.indices(side)
        if index in selected:
            selected.discard(index)
        else:
            selected.add(index)
        self.touched = True


# =============================================================================
# Resolution variants (one per mode)
# =============================================================================


@dataclass
class FileResolution:
    choice: Optional[Side] = None  # OURS or THEIRS for the whole file

    mode = ResolutionMode.FILE


@dataclass
class BlockResolution:
    choices: dict[int, BlockChoice] = field(default_factory=dict)  # Keyed by section index

    mode = ResolutionMode.BLOCK

    def choice(self, index: int) -> BlockChoice:
        return self.choices.get(index, BlockChoice.UNRESOLVED)


@dataclass
class LineResolution:
    selections: dict[int, LineSelection] = field(default_factory=dict)  # Keyed by section index

    mode = ResolutionMode.LINE

    def selection(self, index: int) -> LineSelection:
        if index not in self.selections:
            self.selections[index] = LineSelection()
        return self.selections[index]


Resolution = Union[FileResolution, BlockResolution, LineResolution]


def empty_resolution(mode: ResolutionMode) -> Resolution:
    if mode == ResolutionMode.FILE:
        return FileResolution()
    if mode == ResolutionMode.BLOCK:
        return BlockResolution()
    return LineResolution()


@dataclass
class ResolvedLine:
    """A line of the resolved result with the place it came from."""
    content: str
    source: LineSource


def _block_to_selection(section: Section, choice: BlockChoice) -> Optional[LineSelection]:
    if choice == BlockChoice.UNRESOLVED:
        return None
    all_ours = set(range(len(section.ours_lines)))
    all_theirs = set(range(len(section.theirs_lines)))
    if choice == BlockChoice.USE_OURS:
        return LineSelection(ours=all_ours, touched=True)
    if choice == BlockChoice.USE_THEIRS:
        return LineSelection(theirs=all_theirs, touched=True)
    return LineSelection(
        ours=all_ours,
        theirs=all_theirs,
        touched=True,
        theirs_first=choice == BlockChoice.USE_BOTH_THEIRS_FIRST,
    )


def _selection_to_block(section: Section, selection: LineSelection) -> BlockChoice:
    if not selection.touched:
        return BlockChoice.UNRESOLVED
    full_ours = selection.ours == set(range(len(section.ours_lines)))
    full_theirs = selection.theirs == set(range(len(section.theirs_lines)))
    if full_ours and not selection.theirs:
        return BlockChoice.USE_OURS
    if full_theirs and not selection.ours:
        return BlockChoice.USE_THEIRS
    if full_ours and full_theirs:
        if selection.theirs_first:
            return BlockChoice.USE_BOTH_THEIRS_FIRST
        return BlockChoice.USE_BOTH_OURS_FIRST
    # Partial picks have no block equivalent
    return BlockChoice.UNRESOLVED


def _join_lines(pieces: list[str]) -> str:
    """Concatenate lines, terminating any unterminated line that is followed by another."""
    out: list[str] = []
    for piece in pieces:
        if out and not out[-1].endswith("\n"):
            out[-1] += "\n"
        out.append(piece)
    return "".join(out)


def _ensure_nl(line: str) -> str:
    return line if line.endswith("\n") else line + "\n"


# =============================================================================
# Conflict file
# =============================================================================


@dataclass
class ConflictFile:
    """One file under conflict together with its resolution state.

    ``resolution`` is a single tagged variant whose type is the current mode.
    ``override`` holds confirmed free-form edits and wins over any section
    state; ``edit`` is only set while the operator is editing.

    ``stashed`` keeps the variants left behind by ``set_mode``. Switching
    back to a stashed mode restores it verbatim as long as no choice was
    made in between; any choice empties the stash.
    """

    path: str
    kind: ConflictKind
    sections: list[Section] = field(default_factory=list)
    resolution: Resolution = field(default_factory=BlockResolution)
    override: Optional[list[str]] = None
    edit: Optional[EditBuffer] = None
    binary: bool = False  # Content could not be decoded as text
    blobs: dict[Side, Optional[bytes]] = field(default_factory=dict)  # Raw stage content
    index_mode: str = "100644"
    ours_label: str = "ours"
    theirs_label: str = "theirs"
    stashed: dict[ResolutionMode, Resolution] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        if self.file_only and not isinstance(self.resolution, FileResolution):
            self.resolution = FileResolution()

    # -- queries -------------------------------------------------------------

    @property
    def mode(self) -> ResolutionMode:
        return self.resolution.mode

    @property
    def is_editing(self) -> bool:
        return self.edit is not None

    @property
    def file_only(self) -> bool:
        """Binary and deletion conflicts only accept a whole-file choice."""
        return self.binary or self.kind in (ConflictKind.DELETE_MODIFY, ConflictKind.MODIFY_DELETE)

    def conflict_indices(self) -> list[int]:
        return [i for i, section in enumerate(self.sections) if section.is_conflict]

    def section_offsets(self, side: Side) -> list[int]:
        """First line number of every section within the given side's content."""
        offsets = []
        position = 0
        for section in self.sections:
            offsets.append(position)
            position += len(section.lines(side))
        return offsets

    def has_side(self, side: Side) -> bool:
        if side in self.blobs:
            return self.blobs[side] is not None
        return True

    def section_resolved(self, index: int) -> bool:
        section = self.sections[index]
        if not section.is_conflict:
            return True
        resolution = self.resolution
        if isinstance(resolution, FileResolution):
            return resolution.choice is not None
        if isinstance(resolution, BlockResolution):
            return resolution.choice(index) != BlockChoice.UNRESOLVED
        selection = resolution.selections.get(index)
        return selection is not None and selection.touched

    def is_fully_resolved(self) -> bool:
        if self.override is not None:
            return True
        if self.file_only:
            return isinstance(self.resolution, FileResolution) and self.resolution.choice is not None
        return all(self.section_resolved(i) for i in self.conflict_indices())

    def unresolved_count(self) -> int:
        if self.override is not None:
            return 0
        if self.file_only:
            return 0 if self.is_fully_resolved() else 1
        return sum(1 for i in self.conflict_indices() if not self.section_resolved(i))

    def resolves_to_deletion(self) -> bool:
        """True when the chosen whole-file side is the one that deleted the path."""
        if self.override is not None or not self.file_only:
            return False
        choice = self.resolution.choice if isinstance(self.resolution, FileResolution) else None
        return choice is not None and not self.has_side(choice)

    def line_chosen(self, index: int, side: Side, line: int) -> Optional[bool]:
        """Whether a conflicting line of one side goes into the result; None while undecided."""
        if self.override is not None or not self._is_conflict_index(index):
            return None
        resolution = self.resolution
        if isinstance(resolution, FileResolution):
            return None if resolution.choice is None else resolution.choice == side
        if isinstance(resolution, BlockResolution):
            choice = resolution.choice(index)
            if choice == BlockChoice.UNRESOLVED:
                return None
            if choice == BlockChoice.USE_OURS:
                return side == Side.OURS
            if choice == BlockChoice.USE_THEIRS:
                return side == Side.THEIRS
            return True
        selection = resolution.selections.get(index)
        if selection is None or not selection.touched:
            return None
        return line in selection.indices(side)

    def resolution_state(self) -> tuple:
        """Deep snapshot of everything a File/Block/Line choice can change."""
        return copy.deepcopy((self.resolution, self.override))

    # -- content generation --------------------------------------------------

    def generate_content(self, side: Side) -> str:
        if side != Side.RESOLVED:
            return "".join(line for section in self.sections for line in section.lines(side))
        if self.override is not None:
            return "\n".join(self.override)
        return _join_lines([line.content for line in self._resolved_pieces()])

    def resolved_lines(self) -> list[ResolvedLine]:
        """Resolved result for display: one entry per line, terminators stripped."""
        if self.override is not None:
            return [ResolvedLine(line, LineSource.EDITED) for line in self.override]
        return [
            ResolvedLine(piece.content.rstrip("\r\n"), piece.source)
            for piece in self._resolved_pieces()
        ]

    def resolved_bytes(self) -> Optional[bytes]:
        """Bytes to write for this path, or None when the path resolves to a deletion."""
        if self.resolves_to_deletion():
            return None
        if self.file_only and self.override is None:
            return self.blobs.get(self.resolution.choice) or b""
        return self.generate_content(Side.RESOLVED).encode("utf-8")

    def _markers(self, section: Section) -> list[ResolvedLine]:
        pieces = [ResolvedLine(f"<<<<<<< {self.ours_label}\n", LineSource.MARKER)]
        pieces += [ResolvedLine(_ensure_nl(line), LineSource.OURS) for line in section.ours_lines]
        pieces.append(ResolvedLine("=======\n", LineSource.MARKER))
        pieces += [ResolvedLine(_ensure_nl(line), LineSource.THEIRS) for line in section.theirs_lines]
        pieces.append(ResolvedLine(f">>>>>>> {self.theirs_label}\n", LineSource.MARKER))
        return pieces

    def _section_pieces(self, index: int, section: Section) -> list[ResolvedLine]:
        ours = [ResolvedLine(line, LineSource.OURS) for line in section.ours_lines]
        theirs = [ResolvedLine(line, LineSource.THEIRS) for line in section.theirs_lines]
        resolution = self.resolution

        if isinstance(resolution, FileResolution):
            if resolution.choice == Side.OURS:
                return ours
            if resolution.choice == Side.THEIRS:
                return theirs
            return self._markers(section)

        if isinstance(resolution, BlockResolution):
            choice = resolution.choice(index)
            if choice == BlockChoice.USE_OURS:
                return ours
            if choice == BlockChoice.USE_THEIRS:
                return theirs
            if choice == BlockChoice.USE_BOTH_OURS_FIRST:
                return ours + theirs
            if choice == BlockChoice.USE_BOTH_THEIRS_FIRST:
                return theirs + ours
            return self._markers(section)

        selection = resolution.selections.get(index)
        if selection is None or not selection.touched:
            return self._markers(section)
        picked_ours = [ours[i] for i in sorted(selection.ours) if i < len(ours)]
        picked_theirs = [theirs[i] for i in sorted(selection.theirs) if i < len(theirs)]
        if selection.theirs_first:
            return picked_theirs + picked_ours
        return picked_ours + picked_theirs

    def _resolved_pieces(self) -> list[ResolvedLine]:
        pieces: list[ResolvedLine] = []
        for index, section in enumerate(self.sections):
            if section.is_conflict:
                pieces.extend(self._section_pieces(index, section))
            else:
                pieces.extend(ResolvedLine(line, LineSource.CONTEXT) for line in section.ours_lines)
        return pieces

    # -- mode conversion -----------------------------------------------------

    def _block_choices(self) -> dict[int, BlockChoice]:
        resolution = self.resolution
        if isinstance(resolution, BlockResolution):
            return dict(resolution.choices)
        if isinstance(resolution, FileResolution):
            if resolution.choice == Side.OURS:
                return {i: BlockChoice.USE_OURS for i in self.conflict_indices()}
            if resolution.choice == Side.THEIRS:
                return {i: BlockChoice.USE_THEIRS for i in self.conflict_indices()}
            return {}
        choices = {}
        for index, selection in resolution.selections.items():
            choice = _selection_to_block(self.sections[index], selection)
            if choice != BlockChoice.UNRESOLVED:
                choices[index] = choice
        return choices

    def _convert(self, new_mode: ResolutionMode) -> Resolution:
        if new_mode == ResolutionMode.LINE and isinstance(self.resolution, LineResolution):
            return copy.deepcopy(self.resolution)
        choices = self._block_choices()
        if new_mode == ResolutionMode.BLOCK:
            return BlockResolution(choices)
        if new_mode == ResolutionMode.LINE:
            selections = {}
            for index, choice in choices.items():
                selection = _block_to_selection(self.sections[index], choice)
                if selection is not None:
                    selections[index] = selection
            return LineResolution(selections)
        conflicts = self.conflict_indices()
        picked = {choices.get(i, BlockChoice.UNRESOLVED) for i in conflicts}
        if conflicts and picked == {BlockChoice.USE_OURS}:
            return FileResolution(Side.OURS)
        if conflicts and picked == {BlockChoice.USE_THEIRS}:
            return FileResolution(Side.THEIRS)
        return FileResolution()

    def set_mode(self, new_mode: ResolutionMode) -> bool:
        """Switch granularity, carrying compatible choices over. Clears any edit override.

        The variant being left is stashed; returning to its mode before any
        new choice brings it back unchanged, including choices the
        intermediate mode could not express.
        """
        if self.file_only and new_mode != ResolutionMode.FILE:
            return False
        if new_mode == self.mode and self.override is None:
            return False
        if new_mode != self.mode:
            leaving = self.resolution
            restored = self.stashed.pop(new_mode, None)
            self.resolution = restored if restored is not None else self._convert(new_mode)
            self.stashed[leaving.mode] = leaving
        self.override = None
        return True

    def _changed(self) -> bool:
        """Record that a choice was made: stashed variants are stale from here on."""
        self.stashed.clear()
        return True

    # -- mutations -----------------------------------------------------------

    def choose_file(self, side: Side) -> bool:
        if not isinstance(self.resolution, FileResolution) or side not in (Side.OURS, Side.THEIRS):
            return False
        if self.resolution.choice == side:
            return False
        self.resolution.choice = side
        return self._changed()

    def choose_block(self, index: int, choice: BlockChoice) -> bool:
        if not isinstance(self.resolution, BlockResolution) or not self._is_conflict_index(index):
            return False
        if self.resolution.choice(index) == choice:
            return False
        if choice == BlockChoice.UNRESOLVED:
            self.resolution.choices.pop(index, None)
        else:
            self.resolution.choices[index] = choice
        return self._changed()

    def select_section_lines(self, index: int, choice: BlockChoice) -> bool:
        """Line mode: replace a section's selection with the lines a block choice implies."""
        if not isinstance(self.resolution, LineResolution) or not self._is_conflict_index(index):
            return False
        selection = _block_to_selection(self.sections[index], choice)
        if selection is None:
            if self.resolution.selections.pop(index, None) is None:
                return False
            return self._changed()
        if self.resolution.selections.get(index) == selection:
            return False
        self.resolution.selections[index] = selection
        return self._changed()

    def toggle_line(self, index: int, side: Side, line: int) -> bool:
        if not isinstance(self.resolution, LineResolution) or not self._is_conflict_index(index):
            return False
        if side not in (Side.OURS, Side.THEIRS):
            return False
        if not 0 <= line < len(self.sections[index].lines(side)):
            return False
        self.resolution.selection(index).toggle(side, line)
        return self._changed()

    def clear_choice(self, index: Optional[int] = None) -> bool:
        """Undo: drop the edit override, or reset the choice under the cursor."""
        if self.override is not None:
            self.override = None
            return True
        resolution = self.resolution
        if isinstance(resolution, FileResolution):
            if resolution.choice is None:
                return False
            resolution.choice = None
            return self._changed()
        if index is None:
            return False
        if isinstance(resolution, BlockResolution):
            cleared = resolution.choices.pop(index, None) is not None
        else:
            cleared = resolution.selections.pop(index, None) is not None
        return self._changed() if cleared else False

    def _is_conflict_index(self, index: Optional[int]) -> bool:
        return index is not None and 0 <= index < len(self.sections) and self.sections[index].is_conflict
