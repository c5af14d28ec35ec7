"""LSP semantic tokens feature for treelight."""

from .position_calculator import PositionCalculator
from .semantic_tokens import RELOAD_COMMAND, SemanticTokensService, register_semantic_tokens

__all__ = [
    "register_semantic_tokens",
    "SemanticTokensService",
    "PositionCalculator",
    "RELOAD_COMMAND",
]
