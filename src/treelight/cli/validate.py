import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from treelight.cli.utils import configure_logging, load_cli_config, output_error, output_result
from treelight.errors import LanguageLoadError
from treelight.highlight.provider import SemanticTokensProvider


async def validate_languages(provider: SemanticTokensProvider) -> Dict[str, Any]:
    """Load every configured language and report the outcome per language."""
    validated: List[Dict[str, Any]] = []
    for lang in provider.registry.languages:
        try:
            await provider.registry.resolve(lang)
            validated.append({"lang": lang, "status": "ok"})
        except LanguageLoadError as e:
            validated.append({"lang": lang, "status": "error", "message": e.reason})

    failed = sum(1 for result in validated if result["status"] != "ok")
    return {"status": "error" if failed else "ok", "validated": validated}


def format_validation_results(results: Dict[str, Any]) -> str:
    """Format validation results for human-readable output"""
    validated = results.get("validated", [])
    if not validated:
        return "No languages configured"

    valid_count = sum(1 for r in validated if r["status"] == "ok")
    failed_count = len(validated) - valid_count

    output = [f"Found {len(validated)} languages ({valid_count} valid, {failed_count} failed):", ""]

    failed = [r for r in validated if r["status"] != "ok"]
    if failed:
        output.append("Failed languages:")
        for result in failed:
            output.append(f"  ✗ {result['lang']}")
            output.append(f"    Error: {result['message']}")
        output.append("")

    valid = [r for r in validated if r["status"] == "ok"]
    if valid:
        output.append("Valid languages:")
        for result in valid:
            output.append(f"  ✓ {result['lang']}")

    return "\n".join(output)


@click.command(name="validate")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Configuration file (defaults to $TREELIGHT_CONFIG or ./treelight.yml)")
@click.option("--workspace", type=click.Path(file_okay=False, path_type=Path), help="Root for relative grammar and query paths")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def validate(config_path: Optional[Path], workspace: Optional[Path], json_output: bool, debug: bool):
    """Validate the configuration and load every configured language.

    Exits with status 1 if any grammar or query fails to load.

    Examples:
        treelight validate
        treelight validate --config ./treelight.yml --json-output
    """
    configure_logging(debug)

    try:
        config = load_cli_config(config_path, workspace, debug)
        provider = SemanticTokensProvider.from_config(config)
        results = asyncio.run(validate_languages(provider))

        if json_output:
            output_result(results, json_output)
        else:
            click.echo(format_validation_results(results))
    except Exception as e:
        output_error(e, json_output, debug)

    if results["status"] != "ok":
        click.get_current_context().exit(1)
