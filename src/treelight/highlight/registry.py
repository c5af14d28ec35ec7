"""
Language registry: lazily built, cached grammar bindings per language.

Concurrency model:
    All registry operations run on one asyncio event loop. Construction of a
    binding happens at most once per language: the first caller starts a
    load task, concurrent callers await the same task. Callers await through
    ``asyncio.shield`` so a cancelled request never aborts a load halfway; the
    load either completes and is cached, or fails and nothing is cached.

    ``reload()`` has no suspension point, so no request can observe a
    half-cleared cache. Loads that were started before a reload finish for
    their waiting callers but are not admitted into the fresh cache.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import attrs

from treelight.config.types import LanguageConfigModel, TokenTypeMappingModel
from treelight.errors import LanguageLoadError, UnconfiguredLanguageError

from .engine import GrammarEngine

logger = logging.getLogger(__name__)


@attrs.frozen
class LanguageBinding:
    """Everything needed to highlight one language; never mutated once built."""

    lang: str
    parser: Any
    highlight_query: Any
    injection_query: Optional[Any] = None
    type_mappings: Optional[Mapping[str, TokenTypeMappingModel]] = None


class LanguageRegistry:
    """Caches one LanguageBinding per configured language identifier."""

    def __init__(self, configs: Sequence[LanguageConfigModel], engine: GrammarEngine):
        self._engine = engine
        self._configs: List[LanguageConfigModel] = list(configs)
        self._bindings: Dict[str, LanguageBinding] = {}
        self._pending: Dict[str, "asyncio.Task[LanguageBinding]"] = {}
        self._generation = 0

    @property
    def configs(self) -> List[LanguageConfigModel]:
        return list(self._configs)

    @property
    def languages(self) -> List[str]:
        return [config.lang for config in self._configs]

    @property
    def loaded_languages(self) -> List[str]:
        return sorted(self._bindings)

    def get_config(self, lang: str) -> Optional[LanguageConfigModel]:
        for config in self._configs:
            if config.lang == lang:
                return config
        return None

    def is_configured(self, lang: str) -> bool:
        return self.get_config(lang) is not None

    async def resolve(self, lang: str) -> LanguageBinding:
        """
        Get the binding for ``lang``, loading it on first use.

        Args:
            lang: Language identifier

        Returns:
            The cached or freshly built binding

        Raises:
            UnconfiguredLanguageError: If ``lang`` has no configuration
            LanguageLoadError: If the grammar or a query fails to load
        """
        binding = self._bindings.get(lang)
        if binding is not None:
            return binding

        task = self._pending.get(lang)
        if task is None:
            config = self.get_config(lang)
            if config is None:
                raise UnconfiguredLanguageError(lang)
            task = asyncio.ensure_future(self._load(config, self._generation))
            task.add_done_callback(_retrieve_exception)
            self._pending[lang] = task
        return await asyncio.shield(task)

    async def _load(self, config: LanguageConfigModel, generation: int) -> LanguageBinding:
        logger.debug(f"Initializing language: {config.lang}")
        try:
            binding = await asyncio.to_thread(self._build_binding, config)
        finally:
            if generation == self._generation:
                self._pending.pop(config.lang, None)

        if generation == self._generation:
            self._bindings[config.lang] = binding
        else:
            logger.debug(f"Discarding binding for {config.lang} loaded before a reload")
        return binding

    def _build_binding(self, config: LanguageConfigModel) -> LanguageBinding:
        language = self._engine.load_language(config)
        highlight_query = self._engine.compile_query(
            language, _read_query(config.lang, config.highlights), config.lang
        )
        injection_query = None
        if config.injections is not None:
            injection_query = self._engine.compile_query(
                language, _read_query(config.lang, config.injections), config.lang
            )
        return LanguageBinding(
            lang=config.lang,
            parser=self._engine.create_parser(language),
            highlight_query=highlight_query,
            injection_query=injection_query,
            type_mappings=config.semantic_token_type_mappings,
        )

    def reload(self, configs: Optional[Sequence[LanguageConfigModel]] = None) -> None:
        """
        Discard every binding so the next request loads languages afresh.

        Args:
            configs: Replacement language configurations; keeps the current
                ones when omitted
        """
        if configs is not None:
            self._configs = list(configs)
        self._generation += 1
        dropped = len(self._bindings)
        self._bindings = {}
        self._pending = {}
        logger.info(f"Language registry reloaded, discarded {dropped} bindings")


def _retrieve_exception(task: "asyncio.Task[LanguageBinding]") -> None:
    # Every waiter may have been cancelled; mark the failure as observed.
    if not task.cancelled():
        task.exception()


def _read_query(lang: str, path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LanguageLoadError(lang, f"cannot read query file '{path}': {e}") from e
