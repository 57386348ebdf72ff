import json

import pytest

from config import AppConfig, load_config, resolve_route
from config.registry import EVAL_KEY, QUESTION_KEY, bind_model, get_model, unbind_model
from config.settings import Settings


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.DB_PATH.endswith(".db")
    assert settings.MAX_QUESTIONS == 5
    assert settings.ROLE_WEIGHTED_OVERALL is False
    assert (settings.HIRE_YES, settings.HIRE_MAYBE) == (7.0, 5.0)
    assert settings.BAND_STRONG_HIRE == 8.5


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("MAX_QUESTIONS", "3")
    monkeypatch.setenv("ROLE_WEIGHTED_OVERALL", "true")
    settings = Settings(_env_file=None)
    assert settings.MAX_QUESTIONS == 3
    assert settings.ROLE_WEIGHTED_OVERALL is True


def test_settings_reject_invalid_values():
    with pytest.raises(ValueError):
        Settings(_env_file=None, MAX_QUESTIONS=0)


def test_registry_bind_and_retrieve():
    marker = object()
    bind_model(QUESTION_KEY, lambda **_: marker)
    try:
        assert get_model(QUESTION_KEY)() is marker
    finally:
        unbind_model(QUESTION_KEY)
    with pytest.raises(KeyError):
        get_model(QUESTION_KEY)


def test_app_config_routes(tmp_path):
    path = tmp_path / "app_config.json"
    path.write_text(
        json.dumps(
            {
                "llm_routes": {"grader": {"name": "grader", "base_url": "http://llm.local", "model": "m1"}},
                "registry": {EVAL_KEY: "grader", QUESTION_KEY: "missing"},
            }
        ),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert isinstance(cfg, AppConfig)
    route = resolve_route(cfg, EVAL_KEY)
    assert route.model == "m1"
    assert route.endpoint == "/v1/chat/completions"
    with pytest.raises(KeyError):
        resolve_route(cfg, QUESTION_KEY)
    with pytest.raises(KeyError):
        resolve_route(cfg, "models.unknown")
