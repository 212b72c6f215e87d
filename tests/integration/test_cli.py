import json

import pytest

from cli_router import main
from commands import COMMANDS, get_command
from commands.base import BaseCommand
from core.config import reset_config
from core.container import reset_container
from core.exceptions import InsufficientDiskSpaceError, SelectionError


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the pipeline at an empty data directory with no credentials."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    for key in ("DEEPSEEK_API_KEY", "OPENAI_API_KEY", "X_API_KEY", "X_API_SECRET",
                "X_ACCESS_TOKEN", "X_ACCESS_TOKEN_SECRET"):
        monkeypatch.setenv(key, "")
    reset_config()
    reset_container()
    yield tmp_path
    reset_container()
    reset_config()


def test_command_registry():
    assert set(COMMANDS) == {"harvest", "summarize", "post", "schedule", "data"}
    with pytest.raises(ValueError):
        get_command("news")


def test_no_command_prints_help(data_dir, capsys):
    assert main([]) == 1
    assert "harvest" in capsys.readouterr().out


def test_data_stats_on_empty_store(data_dir, capsys):
    assert main(["data", "stats"]) == 0

    out = capsys.readouterr().out
    assert "Stored threads: 0" in out
    assert "Summary: none yet" in out
    for name in ("get", "reply", "link", "geo", "terms"):
        assert f"  {name}: 0 results" in out


def test_data_results_without_results(data_dir, capsys):
    assert main(["data", "results", "geo"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload == {"name": "geo", "error": "No results available"}


def test_summarize_show_without_summary(data_dir, capsys):
    assert main(["summarize", "show"]) == 0
    assert "No summary available yet" in capsys.readouterr().out


def test_summarize_run_requires_llm_key(data_dir):
    assert main(["summarize", "run"]) == 22


def test_post_next_requires_credentials(data_dir):
    assert main(["post", "next"]) == 22


def test_schedule_next_lists_jobs(data_dir, capsys):
    assert main(["schedule", "next"]) == 0

    out = capsys.readouterr().out
    for name in ("harvest", "summarize", "post"):
        assert f"{name}: " in out


def test_invalid_configuration_exit_code(data_dir, monkeypatch):
    monkeypatch.setenv("SUMMARIZE_TIME", "late")
    reset_config()

    assert main(["data", "stats"]) == 22


@pytest.mark.parametrize("error,code", [
    (InsufficientDiskSpaceError("/data", 1, 2), 28),
    (SelectionError(5, 12), 3),
    (ValueError("bad"), 22),
    (RuntimeError("boom"), 1),
])
def test_error_exit_codes(data_dir, error, code):
    class Probe(BaseCommand):
        def execute(self, subcommand, args):
            return 0

    assert Probe().handle_error(error, "probe") == code
