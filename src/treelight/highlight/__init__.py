"""
Highlighting pipeline.

Key Components:
- SemanticTokensProvider: highlight a document, reload language bindings
- TreeSitterEngine: grammar engine backed by the tree-sitter bindings
- TokenLegend: token type and modifier vocabularies
"""

from .engine import GrammarEngine, TreeSitterEngine
from .legend import DEFAULT_LEGEND, TokenLegend
from .positions import SourcePosition, SourceRange
from .provider import SemanticTokensProvider
from .tokens import Injection, Token

__all__ = [
    "GrammarEngine",
    "TreeSitterEngine",
    "DEFAULT_LEGEND",
    "TokenLegend",
    "SourcePosition",
    "SourceRange",
    "SemanticTokensProvider",
    "Injection",
    "Token",
]
