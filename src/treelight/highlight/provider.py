"""
Semantic tokens provider: the whole-document highlighting pipeline.

    parse -> highlight matches -> classify -> normalize
          -> injection matches -> resolve (recursively) -> merge -> sort

The provider is invoked afresh for every document version; nothing but the
language bindings is cached between requests.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence

from treelight.config.types import LanguageConfigModel, TreelightConfigModel
from treelight.errors import InvalidCaptureError, UnconfiguredLanguageError

from .classifier import classify_capture
from .engine import GrammarEngine, QueryMatch, TreeSitterEngine
from .injections import InjectionResolver
from .legend import DEFAULT_LEGEND, TokenLegend
from .merger import merge_injections
from .normalizer import normalize
from .registry import LanguageBinding, LanguageRegistry
from .tokens import Token, sort_tokens

logger = logging.getLogger(__name__)

DEFAULT_MAX_INJECTION_DEPTH = 16


class SemanticTokensProvider:
    """
    Turns document text into a flat, sorted list of single-line tokens.

    Args:
        configs: Language configurations with absolute asset paths
        engine: Parsing/matching service; tree-sitter by default
        legend: Token vocabulary shared with the renderer
        max_injection_depth: How deep injections may nest
    """

    def __init__(
        self,
        configs: Sequence[LanguageConfigModel],
        engine: Optional[GrammarEngine] = None,
        legend: TokenLegend = DEFAULT_LEGEND,
        max_injection_depth: int = DEFAULT_MAX_INJECTION_DEPTH,
    ):
        self.engine = engine if engine is not None else TreeSitterEngine()
        self.legend = legend
        self.registry = LanguageRegistry(configs, self.engine)
        self._injections = InjectionResolver(
            self.registry, self.engine, self._tokenize, max_injection_depth
        )
        logger.debug(f"Configured languages: {', '.join(self.registry.languages)}")

    @classmethod
    def from_config(
        cls, config: TreelightConfigModel, engine: Optional[GrammarEngine] = None
    ) -> "SemanticTokensProvider":
        """Build a provider from a loaded configuration document."""
        return cls(
            config.language_configs,
            engine=engine,
            legend=TokenLegend(config.token_types, config.token_modifiers),
            max_injection_depth=config.max_injection_depth,
        )

    @property
    def document_languages(self) -> List[str]:
        """Languages offered for whole documents (everything not injection-only)."""
        return [c.lang for c in self.registry.configs if not c.injection_only]

    def provides(self, lang: str) -> bool:
        return lang in self.document_languages

    async def highlight(self, lang: str, text: str) -> List[Token]:
        """
        Highlight a whole document.

        Args:
            lang: Language identifier of the document
            text: Full document text

        Returns:
            Non-overlapping single-line tokens sorted by start position

        Raises:
            UnconfiguredLanguageError: If ``lang`` is not configured
            LanguageLoadError: If the document's grammar cannot be loaded
            InvalidRangeError: If the engine reports an inverted range
            InjectionDepthExceededError: If injections nest too deeply
        """
        if not self.registry.is_configured(lang):
            raise UnconfiguredLanguageError(lang)
        binding = await self.registry.resolve(lang)
        tokens = sort_tokens(await self._tokenize(binding, text, 0))
        logger.debug(f"Highlighted {lang} document with {len(tokens)} tokens")
        return tokens

    def reload(self, configs: Optional[Sequence[LanguageConfigModel]] = None) -> None:
        """Discard all language bindings; optionally swap in new configurations."""
        self.registry.reload(configs)

    async def _tokenize(self, binding: LanguageBinding, text: str, depth: int) -> List[Token]:
        tree = self.engine.parse(binding.parser, text)
        if tree is None:
            return []

        matches = self.engine.matches(binding.highlight_query, tree)
        tokens = normalize(self.classify_matches(binding, matches))

        if binding.injection_query is not None:
            # Yield once so a cancelled request stops before recursing.
            await asyncio.sleep(0)
            injections = await self._injections.resolve_injections(
                binding.injection_query, tree, depth
            )
            tokens = merge_injections(tokens, injections)
        return tokens

    def classify_matches(
        self, binding: LanguageBinding, matches: Iterable[QueryMatch]
    ) -> List[Token]:
        """
        Turn the captures of highlight matches into tokens.

        Captures whose type is not in the legend are dropped, as are captures
        with malformed names.
        """
        tokens: List[Token] = []
        for match in matches:
            for capture in match.captures:
                try:
                    candidate = classify_capture(capture.name, binding.type_mappings, self.legend)
                except InvalidCaptureError as e:
                    logger.warning(f"Dropping capture in {binding.lang}: {e}")
                    continue
                if candidate is None:
                    continue
                tokens.append(
                    Token(range=capture.range, type=candidate.type, modifiers=candidate.modifiers)
                )
        return tokens
