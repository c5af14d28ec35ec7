from pathlib import Path

import pytest

from tests.highlight.fakes import FakeEngine
from treelight.config.types import LanguageConfigModel


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def make_config(tmp_path: Path):
    """Factory writing query files and returning a LanguageConfigModel."""

    def factory(lang: str, injections: bool = False, **fields) -> LanguageConfigModel:
        highlights_path = tmp_path / f"{lang}-highlights.scm"
        highlights_path.write_text(fields.pop("highlights_source", "highlights"))
        data = {
            "lang": lang,
            "parser": str(tmp_path / f"tree-sitter-{lang}.so"),
            "highlights": str(highlights_path),
        }
        if injections:
            injections_path = tmp_path / f"{lang}-injections.scm"
            injections_path.write_text("injections")
            data["injections"] = str(injections_path)
        data.update(fields)
        return LanguageConfigModel.model_validate(data)

    return factory
