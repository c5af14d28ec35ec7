"""End-to-end highlighting with the real tree-sitter bindings."""

import pytest

pytest.importorskip("tree_sitter_python")

from tests.highlight.fakes import token  # noqa: E402
from treelight.config.types import LanguageConfigModel  # noqa: E402
from treelight.errors import LanguageLoadError  # noqa: E402
from treelight.highlight.engine import TreeSitterEngine  # noqa: E402
from treelight.highlight.provider import SemanticTokensProvider  # noqa: E402

HIGHLIGHTS = """
(identifier) @variable
(integer) @number
(string) @string
(comment) @comment
"""

FUNCTION_HIGHLIGHTS = """
"def" @keyword
(function_definition name: (identifier) @function)
(integer) @number
"""

INJECTIONS = """
((string_content) @injection.content
 (#set! injection.language "python"))
"""


@pytest.fixture
def python_config(tmp_path):
    def factory(injections: bool = False, highlights: str = HIGHLIGHTS) -> LanguageConfigModel:
        highlights_path = tmp_path / "highlights.scm"
        highlights_path.write_text(highlights)
        data = {
            "lang": "python",
            "parser": "module:tree_sitter_python",
            "highlights": str(highlights_path),
        }
        if injections:
            injections_path = tmp_path / "injections.scm"
            injections_path.write_text(INJECTIONS)
            data["injections"] = str(injections_path)
        return LanguageConfigModel.model_validate(data)

    return factory


class TestTreeSitterHighlighting:
    async def test_function_definition(self, python_config):
        provider = SemanticTokensProvider(
            [python_config(highlights=FUNCTION_HIGHLIGHTS)], engine=TreeSitterEngine()
        )

        tokens = await provider.highlight("python", "def f():\n    return 10\n")

        assert tokens == [
            token(0, 0, 0, 3, "keyword"),
            token(0, 4, 0, 5, "function"),
            token(1, 11, 1, 13, "number"),
        ]

    async def test_columns_are_utf16(self, python_config):
        provider = SemanticTokensProvider([python_config()], engine=TreeSitterEngine())

        tokens = await provider.highlight("python", 's = "é😀"; t = 1')

        assert tokens == [
            token(0, 0, 0, 1, "variable"),
            token(0, 4, 0, 9, "string"),
            token(0, 11, 0, 12, "variable"),
            token(0, 15, 0, 16, "number"),
        ]

    async def test_lone_surrogate_does_not_break_highlighting(self, python_config):
        provider = SemanticTokensProvider([python_config()], engine=TreeSitterEngine())

        tokens = await provider.highlight("python", 'x = "\ud800"; t = 1\n')

        assert token(0, 0, 0, 1, "variable") in tokens
        assert token(0, 9, 0, 10, "variable") in tokens
        assert token(0, 13, 0, 14, "number") in tokens

    async def test_directive_injection(self, python_config):
        provider = SemanticTokensProvider(
            [python_config(injections=True)], engine=TreeSitterEngine()
        )

        tokens = await provider.highlight("python", 'code = "x = 1"\n')

        assert tokens == [
            token(0, 0, 0, 4, "variable"),
            token(0, 7, 0, 8, "string"),
            token(0, 8, 0, 9, "variable"),
            token(0, 12, 0, 13, "number"),
            token(0, 13, 0, 14, "string"),
        ]

    async def test_invalid_query(self, python_config):
        provider = SemanticTokensProvider(
            [python_config(highlights="(no_such_node) @keyword")], engine=TreeSitterEngine()
        )

        with pytest.raises(LanguageLoadError, match="invalid query"):
            await provider.highlight("python", "x")
