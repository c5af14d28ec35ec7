"""Token and injection value types produced by the highlighting pipeline."""

from typing import Tuple

import attrs

from .positions import SourcePosition, SourceRange


def _to_tuple(value) -> Tuple[str, ...]:
    return tuple(value)


@attrs.frozen
class Token:
    """A classified text range.

    Attributes:
        range: Where the token sits in the document
        type: Token type, a member of the legend's type vocabulary
        modifiers: Token modifiers in capture order
    """

    range: SourceRange
    type: str
    modifiers: Tuple[str, ...] = attrs.field(factory=tuple, converter=_to_tuple)

    def with_range(self, range: SourceRange) -> "Token":
        return attrs.evolve(self, range=range)

    def translate(self, origin: SourcePosition) -> "Token":
        return attrs.evolve(self, range=self.range.translate(origin))


@attrs.frozen
class Injection:
    """A region reparsed with another grammar, with its tokens in parent coordinates."""

    lang: str
    range: SourceRange
    tokens: Tuple[Token, ...] = attrs.field(factory=tuple, converter=_to_tuple)


def sort_tokens(tokens) -> list:
    """Stable sort by start position; required by relative LSP encoding."""
    return sorted(tokens, key=lambda token: token.range.start)
