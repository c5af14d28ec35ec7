import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from treelight.cli.utils import configure_logging, load_cli_config, output_error, output_result
from treelight.highlight.positions import SOURCE_ERRORS, TextIndex, utf16_length
from treelight.highlight.provider import SemanticTokensProvider
from treelight.highlight.tokens import Token


def _visible_end(token: Token, index: TextIndex) -> int:
    line = index.line(token.range.start.line)
    return min(token.range.end.column, utf16_length(line))


def _token_text(token: Token, index: TextIndex) -> str:
    encoded = index.line(token.range.start.line).encode("utf-16-le", errors=SOURCE_ERRORS)
    start = token.range.start.column * 2
    end = _visible_end(token, index) * 2
    return encoded[start:end].decode("utf-16-le", errors="replace")


def visible_tokens(tokens: List[Token], index: TextIndex) -> List[Token]:
    """Drop tokens left empty once line-end columns are clamped to the line."""
    return [token for token in tokens if _visible_end(token, index) > token.range.start.column]


def token_to_dict(token: Token, index: TextIndex) -> Dict[str, Any]:
    """JSON-friendly token, with LSP style zero-based positions."""
    line = token.range.start.line
    return {
        "line": line,
        "startCharacter": token.range.start.column,
        "endCharacter": _visible_end(token, index),
        "type": token.type,
        "modifiers": list(token.modifiers),
        "text": _token_text(token, index),
    }


def format_tokens(tokens: List[Token], index: TextIndex) -> List[str]:
    """Format tokens as one ``line:start-end type[.modifiers] text`` row each."""
    rows = []
    for token in tokens:
        kind = ".".join([token.type, *token.modifiers])
        position = (
            f"{token.range.start.line + 1}:{token.range.start.column + 1}"
            f"-{_visible_end(token, index) + 1}"
        )
        rows.append(f"{position:<16} {kind:<32} {_token_text(token, index)!r}")
    return rows


@click.command(name="highlight")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--lang", required=True, help="Language identifier of the file")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Configuration file (defaults to $TREELIGHT_CONFIG or ./treelight.yml)")
@click.option("--workspace", type=click.Path(file_okay=False, path_type=Path), help="Root for relative grammar and query paths")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def highlight(
    file: Path,
    lang: str,
    config_path: Optional[Path],
    workspace: Optional[Path],
    json_output: bool,
    debug: bool,
):
    """Highlight a file and print its semantic tokens.

    Examples:
        treelight highlight index.html --lang html
        treelight highlight app.py --lang python --json-output
        treelight highlight page.vue --lang vue --config ./treelight.yml
    """
    configure_logging(debug)

    try:
        config = load_cli_config(config_path, workspace, debug)
        provider = SemanticTokensProvider.from_config(config)
        text = file.read_text(encoding="utf-8")

        tokens = asyncio.run(provider.highlight(lang, text))

        index = TextIndex(text)
        tokens = visible_tokens(tokens, index)
        if json_output:
            output_result([token_to_dict(token, index) for token in tokens], json_output)
        else:
            output_result(format_tokens(tokens, index))
    except Exception as e:
        output_error(e, json_output, debug)
