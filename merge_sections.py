"""Three-way line alignment of ancestor/ours/theirs into Stable and Conflict sections."""

from difflib import SequenceMatcher
from typing import Optional

from merge_models import Section


def split_lines(text: str) -> list[str]:
    """Split text into lines, keeping each line's terminator."""
    return text.splitlines(keepends=True)


def _matches(base: list[str], other: list[str]) -> dict[int, int]:
    """Map each base line index to the other-side index it is aligned with."""
    matcher = SequenceMatcher(None, base, other, autojunk=False)
    mapping = {}
    for block in matcher.get_matching_blocks():
        for offset in range(block.size):
            mapping[block.a + offset] = block.b + offset
    return mapping


def _anchors(
    ancestor: Optional[list[str]], ours: list[str], theirs: list[str]
) -> list[tuple[int, int, int]]:
    """Positions (ancestor, ours, theirs) of lines that every side keeps unchanged.

    Without an ancestor the two sides are aligned against each other and the
    ancestor coordinate is unused.
    """
    if ancestor is None:
        return [(0, j, k) for j, k in sorted(_matches(ours, theirs).items())]
    to_ours = _matches(ancestor, ours)
    to_theirs = _matches(ancestor, theirs)
    anchors = []
    last_ours = last_theirs = -1
    for i in range(len(ancestor)):
        if i in to_ours and i in to_theirs:
            j, k = to_ours[i], to_theirs[i]
            # Both alignments are monotonic, this only guards the lockstep walk
            if j > last_ours and k > last_theirs:
                anchors.append((i, j, k))
                last_ours, last_theirs = j, k
    return anchors


def _append(sections: list[Section], section: Section):
    """Append a section, folding it into the previous one when both have the same origin."""
    if sections and sections[-1].origin == section.origin:
        previous = sections[-1]
        previous.ours_lines.extend(section.ours_lines)
        previous.theirs_lines.extend(section.theirs_lines)
        previous.ancestor_lines.extend(section.ancestor_lines)
        return
    sections.append(section)


def _chunk(ancestor: list[str], ours: list[str], theirs: list[str]) -> Optional[Section]:
    if not (ancestor or ours or theirs):
        return None
    if ours == theirs:
        # Both sides made the same change
        return Section.stable(ours, ancestor)
    return Section.conflict(ours, theirs, ancestor)


def build_sections(
    ancestor: Optional[list[str]], ours: list[str], theirs: list[str]
) -> list[Section]:
    """Align three versions of a file into an ordered list of sections.

    Lines that ancestor, ours and theirs all keep form Stable runs; the gaps
    between those anchors become Conflict sections spanning both sides at
    once. A gap where both sides agree is Stable. Adjacent sections of the
    same origin are merged, so two Conflict sections are never neighbours.

    ``ancestor`` is None for add/add conflicts; ours and theirs are then
    aligned directly and sections carry no ancestor lines.
    """
    two_way = ancestor is None
    base = [] if two_way else ancestor
    sections: list[Section] = []
    pos_a = pos_o = pos_t = 0

    for i, j, k in _anchors(ancestor, ours, theirs):
        gap = _chunk(
            [] if two_way else base[pos_a:i],
            ours[pos_o:j],
            theirs[pos_t:k],
        )
        if gap is not None:
            _append(sections, gap)
        _append(sections, Section.stable([ours[j]], [] if two_way else [base[i]]))
        pos_a, pos_o, pos_t = i + 1, j + 1, k + 1

    tail = _chunk(base[pos_a:], ours[pos_o:], theirs[pos_t:])
    if tail is not None:
        _append(sections, tail)
    return sections
