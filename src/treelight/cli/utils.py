import json
import logging
import os
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import click

from treelight.config.loader import load_config
from treelight.config.types import TreelightConfigModel
from treelight.errors import ConfigError, LanguageLoadError, PathResolutionError, TreelightError

DEBUG_ENV_VAR = "TREELIGHT_DEBUG"

# Attributes of treelight errors worth reporting next to the message
ERROR_CONTEXT = ("lang", "reason", "path", "max_depth", "capture_name")


def debug_requested(debug: bool = False) -> bool:
    """True if ``--debug`` was given or TREELIGHT_DEBUG is set to 1, true or yes."""
    if debug:
        return True
    return os.environ.get(DEBUG_ENV_VAR, "").lower() in ("1", "true", "yes")


def configure_logging(debug: bool = False) -> None:
    """Send treelight's log records to stderr.

    Only the ``treelight`` loggers drop to DEBUG; pygls and the other
    libraries stay at WARNING.

    Args:
        debug: Whether to enable debug logging
    """
    debug = debug_requested(debug)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stdout is reserved for results and the stdio LSP transport
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger("treelight").setLevel(logging.DEBUG if debug else logging.WARNING)


def format_error(error: Exception, debug: bool = False) -> Dict[str, Any]:
    """Describe an error for output.

    Treelight errors carry the language or path they concern; those are
    reported as separate fields. Errors raised outside treelight and click
    are flagged as internal.

    Args:
        error: The exception that occurred
        debug: Whether to include the traceback

    Returns:
        Dict containing error information
    """
    error_info: Dict[str, Any] = {
        "error": str(error),
        "type": error.__class__.__name__,
    }
    if isinstance(error, TreelightError):
        for name in ERROR_CONTEXT:
            value = getattr(error, name, None)
            if value is not None:
                error_info[name] = value
    elif not isinstance(error, click.ClickException):
        error_info["internal"] = True

    if debug:
        error_info["traceback"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

    return error_info


def _error_hint(error: Exception) -> Optional[str]:
    if isinstance(error, PathResolutionError):
        return "Pass --workspace to resolve relative grammar and query paths"
    if isinstance(error, ConfigError):
        return "Run 'treelight validate' after fixing the configuration file"
    if isinstance(error, LanguageLoadError):
        return "Run 'treelight validate' to check every configured language"
    return None


def output_result(result: Union[List[Any], Dict[str, Any]], json_output: bool = False) -> None:
    """Print a command result, as a JSON envelope or one row per line.

    Args:
        result: Rows for text output, or any JSON-serializable value
        json_output: Whether to output in JSON format
    """
    if json_output:
        click.echo(json.dumps({"status": "ok", "result": result}, indent=2))
    elif isinstance(result, list):
        for row in result:
            click.echo(row)
    else:
        click.echo(result)


def output_error(error: Exception, json_output: bool = False, debug: bool = False) -> None:
    """Report an error and abort the command with a non-zero exit code.

    Args:
        error: The exception that occurred
        json_output: Whether to output in JSON format
        debug: Whether to include the traceback
    """
    error_info = format_error(error, debug)

    if json_output:
        click.echo(json.dumps({"status": "error", **error_info}, indent=2, default=str))
    else:
        label = "Internal error" if error_info.get("internal") else "Error"
        click.echo(f"{label}: {error_info['error']}", err=True)
        hint = _error_hint(error)
        if hint:
            click.echo(f"Hint: {hint}", err=True)
        if "traceback" in error_info:
            click.echo("\nTraceback:", err=True)
            click.echo(error_info["traceback"], err=True)

    raise click.Abort()


def load_cli_config(
    config_path: Optional[Path], workspace: Optional[Path], debug: bool
) -> TreelightConfigModel:
    """Load the configuration for a command and apply its ``debug`` setting.

    Args:
        config_path: Value of ``--config``
        workspace: Value of ``--workspace``
        debug: Value of ``--debug``

    Returns:
        The loaded configuration
    """
    config = load_config(config_path, workspace)
    if config.debug and not debug:
        configure_logging(True)
    return config
