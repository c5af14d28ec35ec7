"""Configuration models and loading."""

from .loader import load_config, parse_config
from .types import LanguageConfigModel, TokenTypeMappingModel, TreelightConfigModel

__all__ = [
    "load_config",
    "parse_config",
    "LanguageConfigModel",
    "TokenTypeMappingModel",
    "TreelightConfigModel",
]
