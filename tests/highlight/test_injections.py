"""Tests for injection discovery and recursive resolution."""

import pytest

from tests.highlight.fakes import (
    captures,
    highlight_rule,
    install_web_languages,
    named_injection_rule,
    token,
)
from treelight.errors import InjectionDepthExceededError
from treelight.highlight.engine import Capture, QueryMatch
from treelight.highlight.injections import discover_injection
from treelight.highlight.positions import SourceRange
from treelight.highlight.provider import SemanticTokensProvider


def capture(name, text="x", coords=(0, 0, 0, 1)):
    return Capture(name=name, range=SourceRange.from_coords(*coords), text=text)


CONFIGURED = {"javascript", "css", "html"}.__contains__


class TestDiscoverInjection:
    def test_directive_wins(self):
        content = capture("injection.content", "a { }")
        match = QueryMatch(
            pattern_index=0,
            captures=[capture("javascript"), content],
            settings={"injection.language": "css"},
        )

        assert discover_injection(match, CONFIGURED) == ("css", content)

    def test_directive_uses_sole_capture(self):
        raw = capture("raw_text", "let a;")
        match = QueryMatch(pattern_index=0, captures=[raw], settings={"injection.language": "javascript"})

        assert discover_injection(match, CONFIGURED) == ("javascript", raw)

    def test_directive_without_captures(self):
        match = QueryMatch(pattern_index=0, settings={"injection.language": "javascript"})

        assert discover_injection(match, CONFIGURED) is None

    def test_dynamic_language_capture(self):
        content = capture("injection.content", "let a;")
        match = QueryMatch(
            pattern_index=0,
            captures=[capture("injection.language", " javascript\n"), content],
        )

        assert discover_injection(match, CONFIGURED) == ("javascript", content)

    def test_dynamic_language_requires_content(self):
        match = QueryMatch(pattern_index=0, captures=[capture("injection.language", "javascript")])

        assert discover_injection(match, CONFIGURED) is None

    def test_dynamic_language_wins_over_name(self):
        content = capture("injection.content")
        match = QueryMatch(
            pattern_index=0,
            captures=[capture("css"), capture("injection.language", "javascript"), content],
        )

        assert discover_injection(match, CONFIGURED) == ("javascript", content)

    def test_name_as_language(self):
        js = capture("javascript")
        match = QueryMatch(pattern_index=0, captures=[capture("tag"), js])

        assert discover_injection(match, CONFIGURED) == ("javascript", js)

    def test_no_language(self):
        match = QueryMatch(pattern_index=0, captures=[capture("python")])

        assert discover_injection(match, CONFIGURED) is None


@pytest.fixture
def web_provider(engine, make_config):
    install_web_languages(engine)
    configs = [
        make_config("html", injections=True),
        make_config("javascript"),
        make_config("css", injectionOnly=True),
    ]
    return SemanticTokensProvider(configs, engine=engine)


class TestInjectionResolution:
    async def test_script_and_style_are_highlighted_by_their_grammar(self, web_provider):
        text = "<script>let x = 1;</script>\n<style>a { color: red; }</style>"

        tokens = await web_provider.highlight("html", text)

        assert tokens == [
            token(0, 1, 0, 7, "keyword"),
            token(0, 8, 0, 11, "keyword"),
            token(0, 12, 0, 13, "variable", "declaration"),
            token(0, 16, 0, 17, "number"),
            token(0, 20, 0, 26, "keyword"),
            token(1, 1, 1, 6, "keyword"),
            token(1, 7, 1, 8, "type"),
            token(1, 11, 1, 16, "property"),
            token(1, 18, 1, 21, "string"),
            token(1, 26, 1, 31, "keyword"),
        ]

    async def test_multiline_content_shifts_first_line_only(self, web_provider):
        text = "<p>\n<script>let a = 1;\nlet b = 22;</script>"

        tokens = await web_provider.highlight("html", text)

        assert tokens == [
            token(0, 1, 0, 2, "keyword"),
            token(1, 1, 1, 7, "keyword"),
            token(1, 8, 1, 11, "keyword"),
            token(1, 12, 1, 13, "variable", "declaration"),
            token(1, 16, 1, 17, "number"),
            token(2, 0, 2, 3, "keyword"),
            token(2, 4, 2, 5, "variable", "declaration"),
            token(2, 8, 2, 10, "number"),
            token(2, 13, 2, 19, "keyword"),
        ]

    async def test_unconfigured_injection_language_is_ignored(self, engine, make_config):
        """A match naming an unknown language leaves the parent tokens alone."""
        engine.add_language(
            "md",
            highlight_rule((r"```(.*?)```", "string", 1)),
            injections=named_injection_rule(r"```(.*?)```", "python"),
        )
        provider = SemanticTokensProvider([make_config("md", injections=True)], engine=engine)

        tokens = await provider.highlight("md", "```print(1)```")

        assert tokens == [token(0, 3, 0, 11, "string")]

    async def test_injection_that_fails_to_load_is_skipped(self, web_provider, engine):
        engine.failing.add("javascript")

        tokens = await web_provider.highlight("html", "<script>let x;</script>")

        assert token(0, 8, 0, 14, "string") in tokens
        assert all(t.type != "variable" for t in tokens)

    async def test_injection_without_tokens_keeps_parent_tokens(self, web_provider):
        tokens = await web_provider.highlight("html", "<script>;;</script>")

        assert token(0, 8, 0, 10, "string") in tokens

    async def test_parent_tokens_never_survive_inside_injections(self, web_provider):
        text = "<script>let x = 1;</script>"

        tokens = await web_provider.highlight("html", text)

        region = SourceRange.from_coords(0, 8, 0, 18)
        inside = [t for t in tokens if region.covers(t.range)]
        assert {t.type for t in inside} == {"keyword", "variable", "number"}
        assert token(0, 8, 0, 18, "string") not in tokens


class TestNesting:
    @pytest.fixture
    def nested_engine(self, engine):
        def injections(text):
            return [
                QueryMatch(pattern_index=0, captures=[c])
                for c in captures(text, r"\{\{(.*)\}\}", "tpl", 1)
            ]

        engine.add_language("tpl", highlight_rule((r"\w+", "variable")), injections=injections)
        return engine

    async def test_nested_injections_translate_through_every_level(self, nested_engine, make_config):
        provider = SemanticTokensProvider(
            [make_config("tpl", injections=True)], engine=nested_engine, max_injection_depth=3
        )

        tokens = await provider.highlight("tpl", "{{{{{{x}}}}}}")

        assert tokens == [token(0, 6, 0, 7, "variable")]

    async def test_depth_ceiling(self, nested_engine, make_config):
        provider = SemanticTokensProvider(
            [make_config("tpl", injections=True)], engine=nested_engine, max_injection_depth=2
        )

        with pytest.raises(InjectionDepthExceededError):
            await provider.highlight("tpl", "{{{{{{x}}}}}}")
