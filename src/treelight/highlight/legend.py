"""Token type and modifier vocabularies shared with the rendering side."""

from typing import Dict, Iterable, List, Optional, Sequence

# Standard token types and modifiers as understood by VS Code and most
# LSP clients. Clients address them by position, so order matters.
TOKEN_TYPES: List[str] = [
    "namespace",
    "class",
    "enum",
    "interface",
    "struct",
    "typeParameter",
    "type",
    "parameter",
    "variable",
    "property",
    "enumMember",
    "decorator",
    "event",
    "function",
    "method",
    "macro",
    "label",
    "comment",
    "string",
    "keyword",
    "number",
    "regexp",
    "operator",
]

TOKEN_MODIFIERS: List[str] = [
    "declaration",
    "definition",
    "readonly",
    "static",
    "deprecated",
    "abstract",
    "async",
    "modification",
    "documentation",
    "defaultLibrary",
]


class TokenLegend:
    """
    Closed vocabulary of token types and modifiers.

    The legend is handed to the renderer once; afterwards token types are
    addressed by index and modifiers by bit position.
    """

    def __init__(
        self,
        token_types: Optional[Sequence[str]] = None,
        token_modifiers: Optional[Sequence[str]] = None,
    ):
        self.token_types: List[str] = list(TOKEN_TYPES if token_types is None else token_types)
        self.token_modifiers: List[str] = list(
            TOKEN_MODIFIERS if token_modifiers is None else token_modifiers
        )
        if len(set(self.token_types)) != len(self.token_types):
            raise ValueError("Token types must be unique")
        if len(set(self.token_modifiers)) != len(self.token_modifiers):
            raise ValueError("Token modifiers must be unique")
        self._type_indices: Dict[str, int] = {t: i for i, t in enumerate(self.token_types)}
        self._modifier_indices: Dict[str, int] = {
            m: i for i, m in enumerate(self.token_modifiers)
        }

    def has_type(self, token_type: str) -> bool:
        return token_type in self._type_indices

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self._modifier_indices

    def type_index(self, token_type: str) -> int:
        """Position of ``token_type`` in the legend; raises KeyError if unknown."""
        return self._type_indices[token_type]

    def modifier_bitmask(self, modifiers: Iterable[str]) -> int:
        """Bit set with one bit per known modifier, addressed by legend position."""
        mask = 0
        for modifier in modifiers:
            index = self._modifier_indices.get(modifier)
            if index is not None:
                mask |= 1 << index
        return mask

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenLegend):
            return NotImplemented
        return (
            self.token_types == other.token_types
            and self.token_modifiers == other.token_modifiers
        )

    def __repr__(self) -> str:
        return (
            f"TokenLegend(types={len(self.token_types)}, "
            f"modifiers={len(self.token_modifiers)})"
        )


DEFAULT_LEGEND = TokenLegend()
