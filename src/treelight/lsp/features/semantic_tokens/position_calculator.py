"""Position calculation utilities for semantic tokens."""

from typing import List, Optional, Sequence

from treelight.highlight.legend import TokenLegend
from treelight.highlight.positions import TextIndex, utf16_length
from treelight.highlight.tokens import Token


class PositionCalculator:
    """Encodes tokens into the relative integer stream of the LSP."""

    def __init__(self, legend: TokenLegend):
        self._legend = legend

    def calculate_relative_positions(
        self, tokens: Sequence[Token], index: Optional[TextIndex] = None
    ) -> List[int]:
        """
        Calculate relative positions for tokens in LSP semantic tokens format.

        Tokens must be single-line and sorted by start. Token ends past the
        end of their line (the line-end marker of split tokens) are clamped
        to the line when ``index`` is given.

        Args:
            tokens: Tokens to encode
            index: Index of the document text the tokens belong to

        Returns:
            List of integers in LSP semantic tokens format:
            [delta_line, delta_start, length, token_type, token_modifiers, ...]
        """
        data: List[int] = []
        prev_line = 0
        prev_start = 0

        for token in tokens:
            line = token.range.start.line
            start = token.range.start.column
            length = self._token_length(token, index)
            if length <= 0:
                continue

            delta_line = line - prev_line
            delta_start = start - prev_start if delta_line == 0 else start
            prev_line = line
            prev_start = start

            data.extend(self._create_token_data(token, delta_line, delta_start, length))
        return data

    def _token_length(self, token: Token, index: Optional[TextIndex]) -> int:
        end = token.range.end.column
        if index is not None and token.range.start.line < index.line_count:
            end = min(end, utf16_length(index.line(token.range.start.line)))
        return end - token.range.start.column

    def _create_token_data(
        self, token: Token, delta_line: int, delta_start: int, length: int
    ) -> List[int]:
        """Create the 5-element data array for a token."""
        return [
            delta_line,
            delta_start,
            length,
            self._legend.type_index(token.type),
            self._legend.modifier_bitmask(token.modifiers),
        ]
