import json
import logging

import click
import pytest
import yaml
from click.testing import CliRunner

from tests.highlight.fakes import FakeEngine, install_web_languages, token
from treelight.cli.highlight import format_tokens, visible_tokens
from treelight.cli.utils import configure_logging, debug_requested, format_error, output_error
from treelight.errors import InjectionDepthExceededError, LanguageLoadError, PathResolutionError
from treelight.highlight.normalizer import LINE_END_SENTINEL
from treelight.highlight.positions import TextIndex
from treelight.__main__ import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_engine(monkeypatch):
    """Replace the tree-sitter engine with the scripted web grammars."""
    engine = FakeEngine()
    install_web_languages(engine)
    monkeypatch.setattr("treelight.highlight.provider.TreeSitterEngine", lambda: engine)
    return engine


@pytest.fixture
def workspace(tmp_path):
    for name in ("html-highlights.scm", "javascript-highlights.scm", "css-highlights.scm"):
        (tmp_path / name).write_text("highlights")
    (tmp_path / "html-injections.scm").write_text("injections")
    config = {
        "languageConfigs": [
            {
                "lang": "html",
                "parser": "grammars/html.so",
                "highlights": "html-highlights.scm",
                "injections": "html-injections.scm",
            },
            {"lang": "javascript", "parser": "grammars/js.so", "highlights": "javascript-highlights.scm"},
            {
                "lang": "css",
                "parser": "grammars/css.so",
                "highlights": "css-highlights.scm",
                "injectionOnly": True,
            },
        ]
    }
    (tmp_path / "treelight.yml").write_text(yaml.safe_dump(config))
    (tmp_path / "page.html").write_text("<script>let x = 1;</script>\n")
    return tmp_path


def test_no_subcommand_shows_help(runner):
    result = runner.invoke(cli, [])

    assert result.exit_code == 0
    assert "highlight" in result.output
    assert "validate" in result.output


def test_highlight_text_output(runner, workspace, fake_engine):
    result = runner.invoke(
        cli,
        ["highlight", str(workspace / "page.html"), "--lang", "html", "--config", str(workspace / "treelight.yml")],
    )

    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert len(lines) == 5
    assert lines[0].startswith("1:2-8")
    assert "keyword" in lines[0]
    assert "'script'" in lines[0]
    assert "variable.declaration" in lines[2]


def test_highlight_json_output(runner, workspace, fake_engine):
    result = runner.invoke(
        cli,
        [
            "highlight",
            str(workspace / "page.html"),
            "--lang",
            "html",
            "--config",
            str(workspace / "treelight.yml"),
            "--json-output",
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["status"] == "ok"
    assert payload["result"][1] == {
        "line": 0,
        "startCharacter": 8,
        "endCharacter": 11,
        "type": "keyword",
        "modifiers": [],
        "text": "let",
    }


def test_highlight_unconfigured_language(runner, workspace, fake_engine):
    result = runner.invoke(
        cli,
        ["highlight", str(workspace / "page.html"), "--lang", "php", "--config", str(workspace / "treelight.yml")],
    )

    assert result.exit_code != 0
    assert "No configuration for language 'php'" in result.output


def test_highlight_missing_config(runner, workspace, tmp_path):
    result = runner.invoke(
        cli,
        ["highlight", str(workspace / "page.html"), "--lang", "html", "--config", str(tmp_path / "none.yml")],
    )

    assert result.exit_code != 0
    assert "not found" in result.output


def test_config_from_environment(runner, workspace, fake_engine, monkeypatch):
    monkeypatch.setenv("TREELIGHT_CONFIG", str(workspace / "treelight.yml"))

    result = runner.invoke(cli, ["highlight", str(workspace / "page.html"), "--lang", "html"])

    assert result.exit_code == 0, result.output


def test_validate_all_languages_load(runner, workspace, fake_engine):
    result = runner.invoke(cli, ["validate", "--config", str(workspace / "treelight.yml")])

    assert result.exit_code == 0, result.output
    assert "3 valid, 0 failed" in result.output


def test_validate_reports_failures(runner, workspace, fake_engine):
    fake_engine.failing.add("css")

    result = runner.invoke(
        cli, ["validate", "--config", str(workspace / "treelight.yml"), "--json-output"]
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["result"]["status"] == "error"
    failed = [r for r in payload["result"]["validated"] if r["status"] == "error"]
    assert failed == [{"lang": "css", "status": "error", "message": "grammar library not found"}]


def test_validate_with_real_engine_reports_missing_grammars(runner, workspace):
    result = runner.invoke(cli, ["validate", "--config", str(workspace / "treelight.yml")])

    assert result.exit_code == 1
    assert "0 valid, 3 failed" in result.output
    assert "grammar library not found" in result.output


def test_highlight_json_error_carries_language(runner, workspace, fake_engine):
    result = runner.invoke(
        cli,
        [
            "highlight",
            str(workspace / "page.html"),
            "--lang",
            "php",
            "--config",
            str(workspace / "treelight.yml"),
            "--json-output",
        ],
    )

    assert result.exit_code != 0
    payload = json.loads(result.stdout)
    assert payload["status"] == "error"
    assert payload["type"] == "UnconfiguredLanguageError"
    assert payload["lang"] == "php"
    assert "internal" not in payload


class TestErrorFormatting:
    def test_language_load_error_fields(self):
        info = format_error(LanguageLoadError("css", "grammar library not found"))

        assert info == {
            "error": "Failed to load language 'css': grammar library not found",
            "type": "LanguageLoadError",
            "lang": "css",
            "reason": "grammar library not found",
        }

    def test_unexpected_errors_are_internal(self):
        info = format_error(RuntimeError("boom"))

        assert info["internal"] is True
        assert "traceback" not in info

    def test_debug_includes_traceback(self):
        try:
            raise InjectionDepthExceededError("tpl", 2)
        except InjectionDepthExceededError as e:
            info = format_error(e, debug=True)

        assert info["max_depth"] == 2
        assert "InjectionDepthExceededError" in info["traceback"]

    def test_output_error_prints_hint_and_aborts(self, capsys):
        with pytest.raises(click.Abort):
            output_error(PathResolutionError("queries/html.scm"))

        err = capsys.readouterr().err
        assert "Error: Cannot resolve relative path 'queries/html.scm'" in err
        assert "Hint: Pass --workspace" in err

    @pytest.mark.parametrize(
        "value,expected", [("1", True), ("TRUE", True), ("yes", True), ("0", False), ("", False)]
    )
    def test_debug_from_environment(self, monkeypatch, value, expected):
        monkeypatch.setenv("TREELIGHT_DEBUG", value)

        assert debug_requested() is expected

    def test_configure_logging_only_raises_treelight_verbosity(self):
        configure_logging(debug=True)

        assert logging.getLogger("treelight.highlight").getEffectiveLevel() == logging.DEBUG
        assert logging.getLogger("pygls").getEffectiveLevel() == logging.WARNING


class TestTokenOutput:
    def test_line_end_fragment_left_empty_is_skipped(self):
        index = TextIndex("<p>\nab")
        tokens = [
            token(0, 0, 0, 3, "keyword"),
            token(0, 3, 0, LINE_END_SENTINEL, "comment"),
            token(1, 0, 1, LINE_END_SENTINEL, "comment"),
        ]

        visible = visible_tokens(tokens, index)

        assert visible == [tokens[0], tokens[2]]
        assert format_tokens(visible, index)[1].startswith("2:1-3")

    def test_token_text_with_lone_surrogate(self):
        index = TextIndex('"\ud800"')

        row = format_tokens([token(0, 0, 0, 3, "string")], index)[0]

        assert row.startswith("1:1-4")
