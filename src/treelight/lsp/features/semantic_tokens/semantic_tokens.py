"""Main semantic tokens functionality for the LSP server."""

import logging
from typing import Callable, Optional

from lsprotocol import types
from pygls.server import LanguageServer

from treelight.errors import TreelightError
from treelight.highlight.positions import TextIndex
from treelight.highlight.provider import SemanticTokensProvider

from .position_calculator import PositionCalculator

logger = logging.getLogger(__name__)

RELOAD_COMMAND = "treelight.reload"


class SemanticTokensService:
    """Main service class for semantic tokens functionality."""

    def __init__(self, provider: SemanticTokensProvider):
        self._provider = provider
        self._position_calculator = PositionCalculator(provider.legend)

    @property
    def provider(self) -> SemanticTokensProvider:
        return self._provider

    def legend(self) -> types.SemanticTokensLegend:
        return types.SemanticTokensLegend(
            token_types=list(self._provider.legend.token_types),
            token_modifiers=list(self._provider.legend.token_modifiers),
        )

    async def get_semantic_tokens_full(
        self, params: types.SemanticTokensParams
    ) -> Optional[types.SemanticTokens]:
        """
        Return the semantic tokens for the entire document.

        Args:
            params: Semantic tokens parameters

        Returns:
            SemanticTokens object with token data, or None if the document's
            language is not served or highlighting failed
        """
        document_uri = params.text_document.uri
        logger.debug(f"Semantic tokens request received for {document_uri}")

        if not hasattr(self, "_server"):
            logger.error("Server not set - register_semantic_tokens must be called first")
            return None

        document = self._server.workspace.get_text_document(document_uri)
        lang = document.language_id
        if not lang or not self._provider.provides(lang):
            logger.debug(f"No highlighting for language '{lang}' of {document_uri}")
            return None

        try:
            text = document.source
            tokens = await self._provider.highlight(lang, text)
        except TreelightError as e:
            logger.error(f"Error generating semantic tokens for {document_uri}: {e}")
            return None

        data = self._position_calculator.calculate_relative_positions(tokens, TextIndex(text))
        logger.debug(f"Returning semantic tokens with {len(data)} data points")
        return types.SemanticTokens(data=data)

    def _set_server(self, server: LanguageServer) -> None:
        """Set the server instance (called by register function)."""
        self._server = server


def register_semantic_tokens(
    server: LanguageServer,
    provider: SemanticTokensProvider,
    on_reload: Optional[Callable[[], None]] = None,
) -> SemanticTokensService:
    """
    Register semantic tokens functionality with the LSP server.

    Args:
        server: The language server instance
        provider: Highlighter producing the tokens
        on_reload: Called by the reload command; defaults to discarding the
            provider's language bindings

    Returns:
        The semantic tokens service
    """
    service = SemanticTokensService(provider)
    service._set_server(server)

    semantic_tokens_options = types.SemanticTokensOptions(
        legend=service.legend(),
        full=True,
    )

    @server.feature(types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL, semantic_tokens_options)
    async def semantic_tokens_full(ls: LanguageServer, params: types.SemanticTokensParams):
        """Return the semantic tokens for the entire document."""
        return await service.get_semantic_tokens_full(params)

    @server.command(RELOAD_COMMAND)
    def reload(ls: LanguageServer, *args):
        """Re-read the configuration and discard all language bindings."""
        logger.info("LSP: Reloading languages")
        if on_reload is not None:
            on_reload()
        else:
            provider.reload()
        return None

    logger.info("Semantic tokens functionality registered successfully")
    return service
