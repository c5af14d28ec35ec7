"""
Injection resolution.

An injection query marks regions of a document that belong to another
language, e.g. a ``<script>`` element in HTML. For every match the target
language is discovered, the captured text is highlighted recursively with
that language's grammar, and the tokens are moved into the coordinates of
the enclosing document.

Language discovery, in order of precedence:

1. ``(#set! injection.language "js")`` directive on the pattern. The content
   is the ``@injection.content`` capture, or the first capture of the match.
2. ``@injection.language`` capture whose text names the language, together
   with an ``@injection.content`` capture holding the text.
3. A capture named after a configured language, e.g. ``@javascript``; it is
   both the language selector and the content.

A match whose language is unknown contributes nothing.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from treelight.errors import InjectionDepthExceededError, LanguageLoadError

from .engine import Capture, GrammarEngine, QueryMatch, SyntaxTree
from .registry import LanguageBinding, LanguageRegistry
from .tokens import Injection, Token

logger = logging.getLogger(__name__)

LANGUAGE_SETTING = "injection.language"
LANGUAGE_CAPTURE = "injection.language"
CONTENT_CAPTURE = "injection.content"

TokenizeFn = Callable[[LanguageBinding, str, int], Awaitable[List[Token]]]


def discover_injection(
    match: QueryMatch, is_configured: Callable[[str], bool]
) -> Optional[Tuple[str, Capture]]:
    """
    Determine the target language and the content capture of a match.

    Args:
        match: A match of an injection query
        is_configured: Tells whether a language identifier is configured

    Returns:
        Tuple of language identifier and content capture, or None if the
        match names no usable language or lacks its content capture
    """
    directive = match.settings.get(LANGUAGE_SETTING) or None
    language_capture = match.find(LANGUAGE_CAPTURE)
    dynamic = language_capture.text.strip() if language_capture is not None else None
    named = next((c for c in match.captures if is_configured(c.name)), None)

    if directive is not None:
        if not match.captures:
            return None
        content = match.find(CONTENT_CAPTURE) or match.captures[0]
        lang = directive
    elif dynamic:
        content = match.find(CONTENT_CAPTURE)
        lang = dynamic
    elif named is not None:
        content = named
        lang = named.name
    else:
        return None

    if content is None:
        return None
    return lang, content


class InjectionResolver:
    """Finds injected regions and highlights them with their own grammar."""

    def __init__(
        self,
        registry: LanguageRegistry,
        engine: GrammarEngine,
        tokenize: TokenizeFn,
        max_depth: int = 16,
    ):
        self._registry = registry
        self._engine = engine
        self._tokenize = tokenize
        self._max_depth = max_depth

    async def resolve_injections(
        self, injection_query, tree: SyntaxTree, depth: int = 0
    ) -> List[Injection]:
        """
        Resolve every injection of ``injection_query`` in ``tree``.

        Args:
            injection_query: Compiled injection query of the tree's language
            tree: The parsed text
            depth: Nesting depth of ``tree``; 0 for the document itself

        Returns:
            Injections in match order; matches without a usable language are
            left out

        Raises:
            InjectionDepthExceededError: If nesting exceeds the ceiling
        """
        matches = self._engine.matches(injection_query, tree)
        results = await asyncio.gather(
            *(self._resolve_match(match, depth) for match in matches)
        )
        return [injection for injection in results if injection is not None]

    async def _resolve_match(self, match: QueryMatch, depth: int) -> Optional[Injection]:
        target = discover_injection(match, self._registry.is_configured)
        if target is None:
            return None
        lang, content = target

        if not self._registry.is_configured(lang):
            logger.debug(f"Skipping injection of unconfigured language '{lang}' at {content.range}")
            return None
        if depth + 1 > self._max_depth:
            raise InjectionDepthExceededError(lang, self._max_depth)

        try:
            binding = await self._registry.resolve(lang)
        except LanguageLoadError as e:
            logger.warning(f"Skipping injection at {content.range}: {e}")
            return None

        tokens = await self._tokenize(binding, content.text, depth + 1)
        origin = content.range.start
        return Injection(
            lang=lang,
            range=content.range,
            tokens=[token.translate(origin) for token in tokens],
        )
