import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from jsonschema import ValidationError as SchemaValidationError
from jsonschema import validate
from pydantic import ValidationError

from treelight.config.types import MODULE_PARSER_PREFIX, LanguageConfigModel, TreelightConfigModel
from treelight.errors import ConfigError, PathResolutionError

logger = logging.getLogger(__name__)

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_FILE",
    "find_config_path",
    "load_config",
    "parse_config",
    "resolve_asset_path",
    "resolve_language_paths",
]

CONFIG_ENV_VAR = "TREELIGHT_CONFIG"
DEFAULT_CONFIG_FILE = "treelight.yml"

PathLike = Union[str, Path]


@lru_cache(maxsize=1)
def _load_schema() -> Dict[str, Any]:
    schema_path = Path(__file__).parent / "config_schemas" / "treelight-config-schema-1.json"
    with open(schema_path) as schema_file:
        return json.load(schema_file)


def find_config_path(path: Optional[PathLike] = None) -> Path:
    """Locate the configuration file: explicit path, TREELIGHT_CONFIG, then ./treelight.yml."""
    if path is not None:
        return Path(path)
    return Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE))


def load_config(
    path: Optional[PathLike] = None, workspace_root: Optional[PathLike] = None
) -> TreelightConfigModel:
    """Load the treelight configuration file.

    Relative asset paths are resolved against ``workspace_root``, or against
    the directory holding the configuration file when no root is given.

    Args:
        path: Configuration file; see ``find_config_path`` for the fallbacks
        workspace_root: Directory relative asset paths are resolved against

    Returns:
        The validated configuration with absolute asset paths

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or does not
            match the configuration schema
    """
    config_path = find_config_path(path)
    logger.debug(f"Looking for treelight config at: {config_path}")

    if not config_path.is_file():
        raise ConfigError(f"Treelight config not found at {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    logger.debug(f"Loaded treelight config from file: {raw}")

    root = Path(workspace_root) if workspace_root is not None else config_path.resolve().parent
    return parse_config(raw if raw is not None else {}, root)


def parse_config(raw: Any, workspace_root: Optional[PathLike] = None) -> TreelightConfigModel:
    """Validate a raw configuration document and resolve its asset paths.

    Used both for configuration files and for settings handed over by an
    editor.

    Args:
        raw: Parsed YAML/JSON document
        workspace_root: Directory relative asset paths are resolved against;
            without one, relative paths are an error

    Raises:
        ConfigError: If the document does not match the configuration schema
        PathResolutionError: If a relative path cannot be resolved
    """
    try:
        validate(instance=raw, schema=_load_schema())
    except SchemaValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path)
        suffix = f" at '{location}'" if location else ""
        raise ConfigError(f"Invalid treelight config{suffix}: {e.message}") from e

    try:
        config = TreelightConfigModel.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid treelight config: {e}") from e

    root = Path(workspace_root) if workspace_root is not None else None
    resolved = [resolve_language_paths(language, root) for language in config.language_configs]
    return config.model_copy(update={"language_configs": resolved})


def resolve_asset_path(path: str, workspace_root: Optional[Path]) -> str:
    """Make ``path`` absolute against ``workspace_root``.

    Grammar package references (``module:...``) and absolute paths are
    returned unchanged.

    Raises:
        PathResolutionError: If ``path`` is relative and there is no root
    """
    if path.startswith(MODULE_PARSER_PREFIX):
        return path
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    if workspace_root is None:
        raise PathResolutionError(path)
    return str(workspace_root / candidate)


def resolve_language_paths(
    config: LanguageConfigModel, workspace_root: Optional[Path]
) -> LanguageConfigModel:
    """Copy of ``config`` with parser and query paths made absolute."""
    update = {
        "parser": resolve_asset_path(config.parser, workspace_root),
        "highlights": resolve_asset_path(config.highlights, workspace_root),
    }
    if config.injections is not None:
        update["injections"] = resolve_asset_path(config.injections, workspace_root)
    return config.model_copy(update=update)
