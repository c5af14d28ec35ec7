"""
Positions and ranges used throughout the highlighting pipeline.

Columns are counted in UTF-16 code units, which is how editors speaking the
Language Server Protocol address text. The grammar engine reports byte
columns, so ``TextIndex`` translates between the two for a given text.
"""

from bisect import bisect_right
from typing import List, Optional, Tuple

import attrs

from treelight.errors import InvalidRangeError

# Editors may send lone surrogates; they are carried through as 3-byte UTF-8
# and a single UTF-16 unit instead of failing the encode.
SOURCE_ERRORS = "surrogatepass"


@attrs.frozen(order=True)
class SourcePosition:
    """A zero-based (line, column) position; compares lexicographically."""

    line: int
    column: int

    def translate(self, origin: "SourcePosition") -> "SourcePosition":
        """
        Move a position computed relative to ``origin`` into origin's coordinates.

        Only positions on the first line share a line with the origin, so
        only they are shifted horizontally.

        Args:
            origin: Position of the embedded text inside the enclosing document

        Returns:
            The position in enclosing document coordinates
        """
        if self.line == 0:
            return SourcePosition(origin.line, origin.column + self.column)
        return SourcePosition(origin.line + self.line, self.column)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


def _check_order(instance: "SourceRange", attribute, value: SourcePosition) -> None:
    if value < instance.start:
        raise InvalidRangeError(f"Range end {value} precedes its start {instance.start}")


@attrs.frozen(order=True)
class SourceRange:
    """An ordered (start, end) pair of positions with start <= end."""

    start: SourcePosition
    end: SourcePosition = attrs.field(validator=_check_order)

    @classmethod
    def from_coords(
        cls, start_line: int, start_column: int, end_line: int, end_column: int
    ) -> "SourceRange":
        return cls(
            SourcePosition(start_line, start_column), SourcePosition(end_line, end_column)
        )

    @property
    def is_single_line(self) -> bool:
        return self.start.line == self.end.line

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def covers(self, other: "SourceRange") -> bool:
        """True if ``other`` lies within this range; equal ranges cover each other."""
        return self.start <= other.start and other.end <= self.end

    def contains(self, other: "SourceRange") -> bool:
        """True if ``other`` lies strictly within this range (equal ranges excluded)."""
        return self != other and self.covers(other)

    def intersects(self, other: "SourceRange") -> bool:
        """True if the two ranges share at least one column."""
        return self.start < other.end and other.start < self.end

    def before(self, other: "SourceRange") -> Optional["SourceRange"]:
        """The part of this range before ``other`` starts, if any."""
        if self.start < other.start:
            return SourceRange(self.start, min(self.end, other.start))
        return None

    def after(self, other: "SourceRange") -> Optional["SourceRange"]:
        """The part of this range after ``other`` ends, if any."""
        if self.end > other.end:
            return SourceRange(max(self.start, other.end), self.end)
        return None

    def translate(self, origin: SourcePosition) -> "SourceRange":
        return SourceRange(self.start.translate(origin), self.end.translate(origin))

    def __str__(self) -> str:
        return f"[{self.start}-{self.end}]"


def utf16_length(text: str) -> int:
    """Number of UTF-16 code units needed to encode ``text``."""
    if text.isascii():
        return len(text)
    return len(text.encode("utf-16-le", errors=SOURCE_ERRORS)) // 2


class TextIndex:
    """
    Translates offsets within a text into UTF-16 based positions.

    Lines are split on ``\\n`` only, matching how the grammar engine counts
    rows; a trailing ``\\r`` stays part of its line.
    """

    def __init__(self, text: str):
        self.text = text
        self._lines = text.split("\n")
        self._line_starts = [0]
        for line in self._lines[:-1]:
            self._line_starts.append(self._line_starts[-1] + len(line) + 1)
        self._columns: dict[int, Tuple[List[int], List[int]]] = {}

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line(self, row: int) -> str:
        if 0 <= row < len(self._lines):
            return self._lines[row]
        return ""

    def from_point(self, row: int, byte_column: int) -> SourcePosition:
        """
        Convert an engine point (row, UTF-8 byte column) into a SourcePosition.

        Args:
            row: Zero-based row reported by the engine
            byte_column: Byte offset within that row

        Returns:
            Position whose column is measured in UTF-16 code units
        """
        line = self.line(row)
        if line.isascii():
            return SourcePosition(row, min(byte_column, len(line)))
        columns = self._columns.get(row)
        if columns is None:
            columns = self._columns[row] = _column_table(line)
        byte_offsets, utf16_offsets = columns
        # A column inside a multi-byte character counts from its start
        return SourcePosition(row, utf16_offsets[bisect_right(byte_offsets, byte_column) - 1])

    def from_offset(self, offset: int) -> SourcePosition:
        """Convert a character offset into ``text`` into a SourcePosition."""
        if offset < 0 or offset > len(self.text):
            raise ValueError(f"Offset {offset} is outside text range [0, {len(self.text)}]")
        row = bisect_right(self._line_starts, offset) - 1
        column_text = self._lines[row][: offset - self._line_starts[row]]
        return SourcePosition(row, utf16_length(column_text))

    def range_of(self, start_offset: int, end_offset: int) -> SourceRange:
        """SourceRange spanning the character offsets ``[start_offset, end_offset)``."""
        return SourceRange(self.from_offset(start_offset), self.from_offset(end_offset))


def _column_table(line: str) -> Tuple[List[int], List[int]]:
    """UTF-8 byte offset and UTF-16 column at every character boundary of ``line``."""
    byte_offsets = [0]
    utf16_offsets = [0]
    for char in line:
        code = ord(char)
        if code < 0x80:
            width = 1
        elif code < 0x800:
            width = 2
        elif code < 0x10000:
            width = 3
        else:
            width = 4
        byte_offsets.append(byte_offsets[-1] + width)
        utf16_offsets.append(utf16_offsets[-1] + (2 if width == 4 else 1))
    return byte_offsets, utf16_offsets
