"""Token normalization.

Captures of one grammar pass may nest (a string containing an escape
sequence) and may span several lines. Renderers accept neither, so the
normalizer hands each nested region to its innermost token and cuts
multi-line tokens into one fragment per line.
"""

from bisect import bisect_left, bisect_right
from typing import Iterable, List, Tuple

from .positions import SourcePosition, SourceRange
from .tokens import Token

# Column used for "until the end of the line". The real line length is not
# known here; a large finite value works where a type maximum confuses renderers.
LINE_END_SENTINEL = 100_000


def deduplicate(tokens: Iterable[Token]) -> List[Token]:
    """Keep only the first token for each exact range."""
    seen = set()
    result: List[Token] = []
    for token in tokens:
        if token.range in seen:
            continue
        seen.add(token.range)
        result.append(token)
    return result


def _point(position: SourcePosition) -> Tuple[int, int]:
    return position.line, position.column


def resolve_containment(tokens: List[Token]) -> List[Token]:
    """
    Replace every token that strictly contains other tokens by its gaps.

    For each token the strictly contained tokens are walked in start order;
    the outer token keeps only the stretches none of them covers. The walk
    never moves backwards, so a contained token nested inside another
    contained token cannot reopen a gap. Applied to every token of the flat
    set, this resolves arbitrarily deep nesting: each region ends up owned by
    its innermost token.

    Candidates are looked up by bisecting the start positions, so only the
    tokens starting inside a token's range are compared against it.

    Args:
        tokens: Tokens of a single grammar pass, without exact duplicates

    Returns:
        Non-overlapping tokens in input order
    """
    by_start = sorted(tokens, key=lambda t: _point(t.range.start))
    starts = [_point(t.range.start) for t in by_start]
    ends = [_point(t.range.end) for t in by_start]

    result: List[Token] = []
    for token in tokens:
        start = _point(token.range.start)
        end = _point(token.range.end)
        first = bisect_left(starts, start)
        last = bisect_right(starts, end)
        contained = [
            by_start[i]
            for i in range(first, last)
            if ends[i] <= end and (starts[i], ends[i]) != (start, end)
        ]
        if not contained:
            result.append(token)
            continue

        current = token.range.start
        for inner in contained:
            if current < inner.range.start:
                result.append(token.with_range(SourceRange(current, inner.range.start)))
            current = max(current, inner.range.end)
        if current < token.range.end:
            result.append(token.with_range(SourceRange(current, token.range.end)))
    return result


def split_token(token: Token) -> List[Token]:
    """
    Split a multi-line token into one token per line.

    The first fragment runs from the start column to the end of its line,
    intermediate lines are covered completely and the last fragment starts
    at column 0.
    """
    start = token.range.start
    end = token.range.end
    if start.line == end.line:
        return [token]

    fragments = [
        token.with_range(SourceRange(start, SourcePosition(start.line, LINE_END_SENTINEL)))
    ]
    for line in range(start.line + 1, end.line):
        fragments.append(
            token.with_range(SourceRange.from_coords(line, 0, line, LINE_END_SENTINEL))
        )
    fragments.append(token.with_range(SourceRange(SourcePosition(end.line, 0), end)))
    return fragments


def normalize(tokens: Iterable[Token]) -> List[Token]:
    """Resolve nesting, then split multi-line tokens into single-line fragments."""
    resolved = resolve_containment(deduplicate(tokens))
    result: List[Token] = []
    for token in resolved:
        result.extend(split_token(token))
    return result
