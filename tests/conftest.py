import os
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

from storage.migrate import migrate
from config.settings import settings
from config.registry import EVAL_KEY, QUESTION_KEY, bind_model, unbind_model
from tests.fakes import FakeEvaluator, FakeQuestionSource


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield db_path
    finally:
        td.cleanup()


@pytest.fixture
def fake_models():
    models = SimpleNamespace(questions=FakeQuestionSource(), evaluator=FakeEvaluator())
    bind_model(QUESTION_KEY, models.questions)
    bind_model(EVAL_KEY, models.evaluator)
    try:
        yield models
    finally:
        unbind_model(QUESTION_KEY)
        unbind_model(EVAL_KEY)
