"""LSP features for treelight."""

from .semantic_tokens.semantic_tokens import register_semantic_tokens

__all__ = [
    "register_semantic_tokens",
]
