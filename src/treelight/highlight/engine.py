"""
Grammar engine adapter.

The highlighter treats parsing and query matching as a service. This module
defines the small interface the pipeline needs (``GrammarEngine``) and its
implementation on top of the tree-sitter Python bindings.

Grammars are referenced either by the path of a compiled grammar library or
as ``module:<package>[:<function>]`` for grammar packages installed from the
package index (for example ``module:tree_sitter_python``).

Positions leave this module already translated to UTF-16 columns.
"""

import ctypes
import importlib
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

import attrs
from tree_sitter import Language, Parser, Query, QueryCursor, QueryError

from treelight.config.types import MODULE_PARSER_PREFIX, LanguageConfigModel
from treelight.errors import LanguageLoadError

from .positions import SOURCE_ERRORS, SourceRange, TextIndex

logger = logging.getLogger(__name__)


@attrs.frozen
class Capture:
    """A named node captured by a query, with its text."""

    name: str
    range: SourceRange
    text: str


@attrs.frozen
class QueryMatch:
    """One match of a query pattern.

    Attributes:
        pattern_index: Index of the pattern that matched
        captures: Captures in the order the engine reported them
        settings: Key/value pairs set by ``#set!`` directives of the pattern
    """

    pattern_index: int
    captures: Tuple[Capture, ...] = attrs.field(factory=tuple, converter=tuple)
    settings: Mapping[str, Optional[str]] = attrs.field(factory=dict)

    def find(self, name: str) -> Optional[Capture]:
        """First capture called ``name``, if any."""
        for capture in self.captures:
            if capture.name == name:
                return capture
        return None


class SyntaxTree:
    """A parsed text: the engine's root node plus what is needed to read it."""

    def __init__(self, root: Any, text: str, source: Optional[bytes] = None):
        self.root = root
        self.text = text
        self.source = source if source is not None else text.encode("utf-8", errors=SOURCE_ERRORS)
        self.index = TextIndex(text)


class GrammarEngine(Protocol):
    """The parsing and matching service the highlighting pipeline relies on."""

    def load_language(self, config: LanguageConfigModel) -> Any:
        """Load the grammar of ``config``; raises LanguageLoadError on failure."""
        ...

    def compile_query(self, language: Any, source: str, lang: str) -> Any:
        """Compile query text for ``language``; raises LanguageLoadError on failure."""
        ...

    def create_parser(self, language: Any) -> Any:
        """Create a parser bound to ``language``."""
        ...

    def parse(self, parser: Any, text: str) -> Optional[SyntaxTree]:
        """Parse ``text``; None if the engine produced no tree."""
        ...

    def matches(self, query: Any, tree: SyntaxTree) -> List[QueryMatch]:
        """All matches of ``query`` against the tree root, in engine order."""
        ...


_CAPSULE_NAME = b"tree_sitter.Language"
_capsule_new = ctypes.pythonapi.PyCapsule_New
_capsule_new.restype = ctypes.py_object
_capsule_new.argtypes = (ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p)


def default_symbol_name(path: Path) -> str:
    """
    Derive the exported language function from a grammar library file name.

    ``libtree-sitter-html.so`` and ``tree-sitter-html.dylib`` both export
    ``tree_sitter_html``.
    """
    name = path.name.split(".", 1)[0]
    for prefix in ("libtree-sitter-", "libtree_sitter_", "tree-sitter-", "tree_sitter_"):
        if name.startswith(prefix):
            name = name[len(prefix):]
            break
    return f"tree_sitter_{name.replace('-', '_')}"


class TreeSitterEngine:
    """GrammarEngine backed by the tree-sitter Python bindings."""

    def __init__(self) -> None:
        # Grammar libraries stay loaded for the lifetime of the engine.
        self._libraries: Dict[str, ctypes.CDLL] = {}
        self._lock = threading.Lock()

    def load_language(self, config: LanguageConfigModel) -> Language:
        if config.parser_is_module:
            language = self._load_module_language(config)
        else:
            language = self._load_library_language(config)
        logger.debug(
            f"Tree-sitter ABI version for {config.lang} is {_abi_version(language)}."
        )
        return language

    def _load_module_language(self, config: LanguageConfigModel) -> Language:
        reference = config.parser[len(MODULE_PARSER_PREFIX):]
        module_name, _, function_name = reference.partition(":")
        try:
            module = importlib.import_module(module_name)
            language_fn = getattr(module, function_name or "language")
            return Language(language_fn())
        except (ImportError, AttributeError, TypeError, ValueError) as e:
            raise LanguageLoadError(config.lang, f"cannot load grammar package '{reference}': {e}") from e

    def _load_library_language(self, config: LanguageConfigModel) -> Language:
        path = Path(config.parser)
        if path.suffix == ".wasm":
            raise LanguageLoadError(
                config.lang,
                f"'{path}' is a WebAssembly grammar; build it as a shared library instead",
            )
        if not path.is_file():
            raise LanguageLoadError(config.lang, f"grammar library not found at '{path}'")

        symbol = config.parser_symbol or default_symbol_name(path)
        try:
            with self._lock:
                library = self._libraries.get(str(path))
                if library is None:
                    library = self._libraries[str(path)] = ctypes.cdll.LoadLibrary(str(path))
            language_fn = getattr(library, symbol)
            language_fn.restype = ctypes.c_void_p
            pointer = language_fn()
            return Language(_capsule_new(pointer, _CAPSULE_NAME, None))
        except AttributeError as e:
            raise LanguageLoadError(
                config.lang, f"'{path}' does not export '{symbol}'"
            ) from e
        except (OSError, ValueError) as e:
            raise LanguageLoadError(config.lang, f"cannot load '{path}': {e}") from e

    def compile_query(self, language: Language, source: str, lang: str) -> Query:
        try:
            return Query(language, source)
        except (QueryError, ValueError, TypeError, RuntimeError) as e:
            raise LanguageLoadError(lang, f"invalid query: {e}") from e

    def create_parser(self, language: Language) -> Parser:
        return Parser(language)

    def parse(self, parser: Parser, text: str) -> Optional[SyntaxTree]:
        source = text.encode("utf-8", errors=SOURCE_ERRORS)
        tree = parser.parse(source)
        if tree is None:
            return None
        return SyntaxTree(tree.root_node, text, source)

    def matches(self, query: Query, tree: SyntaxTree) -> List[QueryMatch]:
        cursor = QueryCursor(query)
        result: List[QueryMatch] = []
        for pattern_index, capture_map in cursor.matches(tree.root):
            captures = [
                self._to_capture(name, node, tree)
                for name, nodes in capture_map.items()
                for node in nodes
            ]
            result.append(
                QueryMatch(
                    pattern_index=pattern_index,
                    captures=captures,
                    settings=dict(query.pattern_settings(pattern_index)),
                )
            )
        return result

    def _to_capture(self, name: str, node: Any, tree: SyntaxTree) -> Capture:
        start = tree.index.from_point(*node.start_point)
        end = tree.index.from_point(*node.end_point)
        text = _decode(tree.source[node.start_byte:node.end_byte])
        return Capture(name=name, range=SourceRange(start, end), text=text)


def _abi_version(language: Language) -> Any:
    return getattr(language, "abi_version", None) or getattr(language, "version", None)


def _decode(source: bytes) -> str:
    try:
        return source.decode("utf-8", errors=SOURCE_ERRORS)
    except UnicodeDecodeError:
        # Node boundary inside an invalid sequence
        return source.decode("utf-8", errors="replace")
