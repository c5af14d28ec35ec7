import pytest
from unittest.mock import Mock

from pygls.server import LanguageServer

from tests.highlight.fakes import FakeEngine, install_web_languages
from treelight.config.types import LanguageConfigModel
from treelight.highlight.provider import SemanticTokensProvider


@pytest.fixture
def web_configs(tmp_path):
    configs = []
    for lang, injections in (("html", True), ("javascript", False)):
        highlights = tmp_path / f"{lang}-highlights.scm"
        highlights.write_text("highlights")
        data = {"lang": lang, "parser": f"/grammars/{lang}.so", "highlights": str(highlights)}
        if injections:
            injections_path = tmp_path / f"{lang}-injections.scm"
            injections_path.write_text("injections")
            data["injections"] = str(injections_path)
        configs.append(LanguageConfigModel.model_validate(data))
    return configs


@pytest.fixture
def fake_engine():
    engine = FakeEngine()
    install_web_languages(engine)
    return engine


@pytest.fixture
def provider(web_configs, fake_engine):
    return SemanticTokensProvider(web_configs, engine=fake_engine)


@pytest.fixture
def mock_server():
    return Mock(spec=LanguageServer)
