import json
import logging
import os
import sys

import pytest

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from smartlogger import main as sample
from smartlogger.logger import setup_logging, _HANDLER_TAG_ATTR


@pytest.fixture(autouse=True)
def reset_logging():
    """remove handlers installed by setup_logging after each test."""
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, _HANDLER_TAG_ATTR, False):
            root.removeHandler(h)
            h.close()


def _read(path):
    with open(path, encoding="utf-8") as f:
        return f.read().splitlines()


def test_sample_program_suppresses_duplicates(tmp_path, capsys):
    log_file = tmp_path / "sample.log"
    config_path = tmp_path / "smartlogger.json"
    config_path.write_text(json.dumps({"log_file_path": str(log_file), "stale_seconds": 60}), encoding="utf-8")

    assert sample.main(["--config", str(config_path), "--count", "4", "--interval", "0"]) == 0

    lines = _read(log_file)
    assert sum("duplicate checking" in line for line in lines) == 1
    assert sum("deferred writing" in line for line in lines) == 1
    assert lines[-1].endswith("Logging tests completed.")
    out = capsys.readouterr().out
    assert f"Log found here => {log_file}" in out

def test_sample_program_bad_config(tmp_path, capsys):
    config_path = tmp_path / "broken.json"
    config_path.write_text(json.dumps({"max_history": -5}), encoding="utf-8")
    assert sample.main(["--config", str(config_path)]) == 1
    assert "Configuration error" in capsys.readouterr().err

def test_setup_logging_replaces_own_handlers(tmp_path):
    setup_logging("DEBUG")
    root = logging.getLogger()
    first = [h for h in root.handlers if getattr(h, _HANDLER_TAG_ATTR, False)]
    setup_logging("WARNING", str(tmp_path / "diag.log"))
    second = [h for h in root.handlers if getattr(h, _HANDLER_TAG_ATTR, False)]
    assert len(first) == 1
    assert len(second) == 2
    assert root.level == logging.WARNING

def test_setup_logging_unknown_level_defaults_to_info():
    setup_logging("chatty")
    assert logging.getLogger().level == logging.INFO
