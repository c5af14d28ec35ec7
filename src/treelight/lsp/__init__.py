"""
LSP server implementation for treelight.

Serves ``textDocument/semanticTokens/full`` for every configured language
that is not injection-only, and the ``treelight.reload`` command.

Usage Example:
    from treelight.config.loader import load_config
    from treelight.lsp import TreelightLSPServer

    server = TreelightLSPServer(load_config("treelight.yml"))

    # Start server (stdio mode for IDE integration)
    server.start()

    # Or start in TCP mode for testing
    server.start(use_tcp=True, host="localhost")
"""

from .features import register_semantic_tokens
from .server import ServerInitializationState, TreelightLSPServer

__all__ = [
    "TreelightLSPServer",
    "ServerInitializationState",
    "register_semantic_tokens",
]
