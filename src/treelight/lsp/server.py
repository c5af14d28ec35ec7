import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from lsprotocol.types import (
    INITIALIZE,
    TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL,
    InitializedParams,
    InitializeParams,
    ServerCapabilities,
)
from pygls.protocol import LanguageServerProtocol
from pygls.server import LanguageServer
from pygls.uris import to_fs_path

from treelight import __version__
from treelight.config.loader import load_config, parse_config
from treelight.config.types import LanguageConfigModel, TreelightConfigModel
from treelight.errors import ConfigError
from treelight.highlight.provider import SemanticTokensProvider

from .features.semantic_tokens import SemanticTokensService, register_semantic_tokens

logger = logging.getLogger(__name__)

# Settings an editor may pass in ``initializationOptions``.
CLIENT_OPTION_KEYS = ("languageConfigs", "debug")


class ServerInitializationState:
    """Tracks the initialization state of the LSP server components."""

    def __init__(self):
        self.client_options_applied = False
        self.features_registered = False
        self.initialization_errors: List[Tuple[str, str]] = []

    def add_error(self, component: str, error: Exception):
        """Add an initialization error for tracking."""
        self.initialization_errors.append((component, str(error)))
        logger.error(f"Initialization error in {component}: {error}")

    def get_error_summary(self) -> str:
        """Get a summary of initialization errors."""
        if not self.initialization_errors:
            return "No initialization errors"

        return f"Initialization errors: {'; '.join([f'{comp}: {err}' for comp, err in self.initialization_errors])}"


class PatchedLanguageServerProtocol(LanguageServerProtocol):
    """A patched version of the language server protocol to handle semantic tokens capabilities."""

    def __init__(self, *args, **kwargs):
        self._server_capabilities = ServerCapabilities()
        super().__init__(*args, **kwargs)

    @property
    def server_capabilities(self):
        return self._server_capabilities

    @server_capabilities.setter
    def server_capabilities(self, value: ServerCapabilities):
        # Check if semantic tokens full feature is registered and set the capability
        if TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL in self.fm.features:
            opts = self.fm.feature_options.get(TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL, None)
            if opts:
                value.semantic_tokens_provider = opts
        self._server_capabilities = value


class TreelightLSPServer:
    """
    LSP Server providing tree-sitter based semantic highlighting.

    Languages come from the configuration file and may be replaced by the
    client through ``initializationOptions``. The token legend is fixed by the
    configuration file because it is announced before the client speaks.
    """

    def __init__(
        self,
        config: TreelightConfigModel,
        config_path: Optional[Path] = None,
        workspace_root: Optional[Path] = None,
        port: Optional[int] = None,
    ):
        """
        Initialize the treelight LSP Server.

        Args:
            config: Configuration loaded from treelight.yml
            config_path: File the configuration was read from; re-read on reload
            workspace_root: Root for relative paths in client settings; the
                client's root is used when omitted
            port: Port number for TCP mode
        """
        self.config = config
        self.config_path = config_path
        self.workspace_root = workspace_root
        self.port = port or 3000
        self.client_options: Optional[Dict[str, Any]] = None

        self.provider = SemanticTokensProvider.from_config(config)
        self.semantic_tokens: Optional[SemanticTokensService] = None
        self.ls = LanguageServer(
            "treelight-lsp", f"v{__version__}", protocol_cls=PatchedLanguageServerProtocol
        )

        self.init_state = ServerInitializationState()
        self._setup_server()

        logger.info(f"Treelight LSP Server initialized on port {self.port}")
        logger.info(self.init_state.get_error_summary())

    def _setup_server(self):
        """Register protocol handlers, then features."""
        self._register_handlers()
        try:
            self.semantic_tokens = register_semantic_tokens(
                self.ls, self.provider, on_reload=self.reload_languages
            )
            self.init_state.features_registered = True
        except Exception as e:
            self.init_state.add_error("Semantic Tokens Feature", e)
            raise

    def _register_handlers(self):
        """Register LSP protocol handlers."""

        @self.ls.feature(INITIALIZE)
        def initialize(params: InitializeParams):
            """Pick up client settings and the workspace root."""
            if self.workspace_root is None:
                self.workspace_root = _client_root(params)
            options = params.initialization_options
            if isinstance(options, dict):
                self.apply_client_options(options)

        @self.ls.feature("initialized")
        def initialized(params: InitializedParams):
            """Handle the initialized notification."""
            logger.info("LSP: Server initialized successfully")

        @self.ls.feature("shutdown")
        def shutdown(params=None):
            """Handle LSP shutdown request."""
            logger.info("LSP: Handling shutdown request")
            self._cleanup_resources()
            return None

        @self.ls.feature("exit")
        def exit_handler(params=None):
            """Handle exit notification."""
            logger.info("LSP: Server exiting")

    def apply_client_options(self, options: Dict[str, Any]) -> bool:
        """
        Use editor-provided settings in place of the configuration file.

        Returns:
            True if the settings were valid and applied
        """
        client_options = {key: options[key] for key in CLIENT_OPTION_KEYS if key in options}
        if not client_options:
            return False
        try:
            client_config = parse_config(client_options, self.workspace_root)
        except ConfigError as e:
            self.init_state.add_error("Client Settings", e)
            return False

        self.client_options = client_options
        if client_config.debug:
            logging.getLogger("treelight").setLevel(logging.DEBUG)
        if "languageConfigs" in client_options:
            self.provider.reload(client_config.language_configs)
        self.init_state.client_options_applied = True
        logger.info("LSP: Applied client settings")
        return True

    def reload_languages(self):
        """Re-read the language configuration and discard every binding."""
        configs: List[LanguageConfigModel] = self.config.language_configs
        if self.config_path is not None:
            try:
                self.config = load_config(self.config_path, self.workspace_root)
                configs = self.config.language_configs
            except ConfigError as e:
                logger.error(f"Keeping previous configuration: {e}")

        if self.client_options and "languageConfigs" in self.client_options:
            try:
                configs = parse_config(self.client_options, self.workspace_root).language_configs
            except ConfigError as e:
                logger.error(f"Ignoring client settings on reload: {e}")

        self.provider.reload(configs)

    def _cleanup_resources(self):
        """Drop language bindings; grammars are reloaded if the server is reused."""
        logger.info("Cleaning up LSP server resources...")
        self.provider.reload()
        logger.info("LSP server resource cleanup completed")

    def start(self, host: str = "localhost", use_tcp: bool = False):
        """Start the LSP server

        Args:
            host: Host to bind to when using TCP (default: localhost)
            use_tcp: Whether to use TCP instead of stdio
        """
        logger.info("Starting Treelight LSP Server...")

        try:
            if use_tcp:
                logger.info(f"Starting LSP TCP server on {host}:{self.port}...")
                self.ls.start_tcp(host, self.port)
                logger.info("LSP TCP server finished")
            else:
                logger.info("Starting LSP IO server...")
                self.ls.start_io()
                logger.info("LSP IO server finished")
        except KeyboardInterrupt:
            logger.info("Received shutdown signal")
        except BrokenPipeError:
            logger.info("Broken pipe - client disconnected")
        except EOFError:
            logger.info("EOF - no more input from client")
        finally:
            self.shutdown()

    def shutdown(self):
        """Shutdown the LSP server and cleanup resources"""
        logger.info("Shutting down Treelight LSP Server...")
        self._cleanup_resources()


def _client_root(params: InitializeParams) -> Optional[Path]:
    if params.workspace_folders:
        path = to_fs_path(params.workspace_folders[0].uri)
    elif params.root_uri:
        path = to_fs_path(params.root_uri)
    else:
        path = params.root_path
    return Path(path) if path else None
