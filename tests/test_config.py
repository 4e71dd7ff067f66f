"""Tests for configuration loading."""

import pytest
import structlog
import yaml
from pydantic import ValidationError

from mototask.config import LoggingConfig, Settings, load_config
from mototask.log import configure_from, configure_logging


def test_load_config_from_yaml(tmp_path):
    config_data = {
        "store": {"backend": "sqlite", "sqlite_path": str(tmp_path / "m.db")},
        "export": {"max_concurrent_fetches": 3},
        "reports": {"week_starts_on": "monday"},
        "links": {"public_base_url": "https://app.example.com"},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config_data))

    cfg = load_config(path)
    assert cfg.store.backend == "sqlite"
    assert cfg.export.max_concurrent_fetches == 3
    assert cfg.export.task_spreadsheet_name == "task_data.xlsx"
    assert cfg.reports.week_starts_on == "monday"
    assert cfg.links.public_base_url == "https://app.example.com"


def test_load_config_defaults():
    cfg = Settings()
    assert cfg.store.backend == "memory"
    assert cfg.blobs.backend == "memory"
    assert cfg.export.max_concurrent_fetches == 8
    assert cfg.export.all_tasks_spreadsheet_name == "tasks_data.xlsx"
    assert cfg.reports.week_starts_on == "sunday"
    assert cfg.logging.format == "json"


def test_load_config_empty_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_config(path).export.max_concurrent_fetches == 8


def test_load_config_file_not_found():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/path.yaml")


def test_env_override(monkeypatch):
    monkeypatch.setenv("MOTOTASK_EXPORT__MAX_CONCURRENT_FETCHES", "4")
    monkeypatch.setenv("MOTOTASK_REPORTS__WEEK_STARTS_ON", "monday")

    cfg = Settings()
    assert cfg.export.max_concurrent_fetches == 4
    assert cfg.reports.week_starts_on == "monday"


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        Settings(export={"max_concurrent_fetches": 0})
    with pytest.raises(ValidationError):
        Settings(reports={"week_starts_on": "friday"})


@pytest.mark.parametrize("fmt", ["json", "text"])
def test_configure_logging(fmt):
    configure_logging("warning", fmt)
    structlog.get_logger().warning("config.test", fmt=fmt)
    configure_from(LoggingConfig())
    structlog.reset_defaults()
