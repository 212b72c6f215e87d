import os

import pytest

from core.config import DEFAULT_TRACKED_TERMS, ConfigManager, reset_config
from core.env_loader import load_env_file


@pytest.fixture
def manager(tmp_path, monkeypatch):
    """Config manager reading an empty .env and a clean data dir."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    for key in ("TRACKED_TERMS", "SUMMARIZE_TIME", "BOARD_COURTESY_DELAY", "DEEPSEEK_API_KEY",
                "OPENAI_API_KEY", "X_API_KEY", "SUMMARY_ANALYSIS_PERCENTAGE"):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield ConfigManager(env_file_path=str(tmp_path / "missing.env"))
    reset_config()


def test_defaults(manager, tmp_path):
    config = manager.get_config()

    assert config.paths.threads_dir == (tmp_path / "data" / "threads").resolve()
    assert config.paths.summary_file.name == "latest-summary.json"
    assert config.board.top_by_replies == 20
    assert config.board.courtesy_delay == (0.25, 0.75)
    assert config.analyzers.tracked_terms == DEFAULT_TRACKED_TERMS
    assert config.scheduler.summarize_time == "23:30"
    assert not config.has_llm()
    assert not config.has_poster()
    assert manager.get_integration_status() == {"llm": False, "x_poster": False, "media_download": True}


def test_environment_overrides(manager, monkeypatch):
    monkeypatch.setenv("TRACKED_TERMS", " Alpha, beta ,,gamma")
    monkeypatch.setenv("BOARD_COURTESY_DELAY", "1,2")
    monkeypatch.setenv("DEEPSEEK_API_KEY", "secret")

    config = manager.get_config(force_reload=True)

    assert config.analyzers.tracked_terms == ["alpha", "beta", "gamma"]
    assert config.board.courtesy_delay == (1.0, 2.0)
    assert config.has_llm()


@pytest.mark.parametrize("key,value", [
    ("SUMMARIZE_TIME", "25:00"),
    ("SUMMARIZE_TIME", "noon"),
    ("BOARD_COURTESY_DELAY", "2,1"),
    ("SUMMARY_ANALYSIS_PERCENTAGE", "0"),
    ("LOG_LEVEL", "LOUD"),
])
def test_invalid_values_are_rejected(manager, monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ValueError, match=key):
        manager.get_config(force_reload=True)


def test_env_file_does_not_override_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\nexport BOARD_NAME='g'\nLLM_MODEL=from-file\nnot a pair\n",
        encoding="utf-8",
    )
    # Register both keys so monkeypatch restores them afterwards
    monkeypatch.setenv("BOARD_NAME", "placeholder")
    monkeypatch.delenv("BOARD_NAME")
    monkeypatch.setenv("LLM_MODEL", "from-env")

    assert load_env_file(str(env_file)) == 1
    assert os.environ["BOARD_NAME"] == "g"
    assert os.environ["LLM_MODEL"] == "from-env"
