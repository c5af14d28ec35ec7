import signal
from pathlib import Path
from typing import Optional

import click

from treelight.cli.utils import configure_logging, load_cli_config, output_error
from treelight.config.loader import find_config_path
from treelight.config.types import TreelightConfigModel
from treelight.lsp.server import TreelightLSPServer


@click.command(name="lsp")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Configuration file (defaults to $TREELIGHT_CONFIG or ./treelight.yml)")
@click.option("--workspace", type=click.Path(file_okay=False, path_type=Path), help="Root for relative grammar and query paths (defaults to the client's workspace)")
@click.option("--port", type=int, help="Port number for LSP server (defaults to 3000)")
@click.option("--host", default="localhost", help="Host to bind to when using TCP mode (defaults to localhost)")
@click.option("--tcp", is_flag=True, help="Use TCP instead of stdio for LSP communication")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def lsp(
    config_path: Optional[Path],
    workspace: Optional[Path],
    port: Optional[int],
    host: str,
    tcp: bool,
    debug: bool,
):
    """Start the treelight LSP server for semantic highlighting.

    Languages are read from the configuration file when it exists; an editor
    can also pass them as ``languageConfigs`` in its initialization options.

    By default, the server uses stdio for communication (suitable for IDE integration).
    Use --tcp flag for testing or when stdio communication is not suitable.

    Examples:
        treelight lsp                     # Start LSP server using stdio
        treelight lsp --tcp               # Start LSP server using TCP on localhost:3000
        treelight lsp --tcp --port 4000   # Start LSP server using TCP on localhost:4000
        treelight lsp --debug             # Start with detailed debug logging
    """
    configure_logging(debug)

    try:
        resolved_path = find_config_path(config_path)
        if resolved_path.is_file():
            config = load_cli_config(resolved_path, workspace, debug)
        elif config_path is not None:
            raise click.BadParameter(f"{config_path} does not exist", param_hint="--config")
        else:
            # Languages will come from the client
            config = TreelightConfigModel()
            resolved_path = None

        final_port = port or 3000

        def signal_handler(signum, frame):
            raise KeyboardInterrupt()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        server = TreelightLSPServer(
            config=config,
            config_path=resolved_path,
            workspace_root=workspace,
            port=final_port,
        )

        if tcp:
            click.echo(f"Starting treelight LSP server on {host}:{final_port}", err=True)
            server.start(host=host, use_tcp=True)
        else:
            server.start(host=host, use_tcp=False)

    except KeyboardInterrupt:
        click.echo("\nLSP server stopped", err=True)
    except Exception as e:
        output_error(e, json_output=False, debug=debug)
