"""Pydantic models for treelight configuration.

The configuration mirrors the settings an editor hands to the highlighter:
a list of language entries plus a few global switches. Field names follow
the editor-facing camelCase spelling through aliases; Python code uses the
snake_case attribute names.

Example:
    >>> config = LanguageConfigModel.model_validate({
    ...     "lang": "html",
    ...     "parser": "/grammars/tree-sitter-html.so",
    ...     "highlights": "/queries/html/highlights.scm",
    ... })
    >>> config.injection_only
    False
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MODULE_PARSER_PREFIX = "module:"


class TreelightBaseModel(BaseModel):
    """Base model for all treelight configuration models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable so bindings can share them
    - populate_by_name=True: Accepts both the alias and the attribute name
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class TokenTypeMappingModel(TreelightBaseModel):
    """Remaps a capture (full dotted name or base type) to a legend type.

    Attributes:
        target_token_type: Token type to emit instead
        target_token_modifiers: Modifiers to emit instead; empty when omitted
    """

    target_token_type: str = Field(alias="targetTokenType")
    target_token_modifiers: List[str] = Field(
        default_factory=list, alias="targetTokenModifiers"
    )


class LanguageConfigModel(TreelightBaseModel):
    """Configuration of one language.

    Attributes:
        lang: Language identifier, matched against the document language and
            against injection targets
        parser: Grammar library path, or ``module:<package>[:<function>]``
        highlights: Path to the highlight query
        injections: Optional path to the injection query
        injection_only: Only reachable through injections, never offered for
            whole documents
        semantic_token_type_mappings: Per-capture remapping table
        parser_symbol: Exported language function of the grammar library when
            it cannot be derived from the file name
    """

    lang: str = Field(min_length=1)
    parser: str = Field(min_length=1)
    highlights: str = Field(min_length=1)
    injections: Optional[str] = None
    injection_only: bool = Field(default=False, alias="injectionOnly")
    semantic_token_type_mappings: Optional[Dict[str, TokenTypeMappingModel]] = Field(
        default=None, alias="semanticTokenTypeMappings"
    )
    parser_symbol: Optional[str] = Field(default=None, alias="parserSymbol")

    @property
    def parser_is_module(self) -> bool:
        return self.parser.startswith(MODULE_PARSER_PREFIX)


class TreelightConfigModel(TreelightBaseModel):
    """Root configuration document.

    ```yaml
    debug: false
    maxInjectionDepth: 16
    languageConfigs:
      - lang: html
        parser: grammars/tree-sitter-html.so
        highlights: queries/html/highlights.scm
        injections: queries/html/injections.scm
    ```
    """

    language_configs: List[LanguageConfigModel] = Field(
        default_factory=list, alias="languageConfigs"
    )
    debug: bool = False
    token_types: Optional[List[str]] = Field(default=None, alias="tokenTypes")
    token_modifiers: Optional[List[str]] = Field(default=None, alias="tokenModifiers")
    max_injection_depth: int = Field(default=16, ge=1, alias="maxInjectionDepth")

    def find_language(self, lang: str) -> Optional[LanguageConfigModel]:
        """First configuration entry for ``lang``, mirroring editor lookup order."""
        for config in self.language_configs:
            if config.lang == lang:
                return config
        return None
