"""Unit tests for environment configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from motor_sales.config import DEFAULT_DB_PATH, DEFAULT_TOP_N, PipelineConfig
from motor_sales.errors import ConfigError

CONFIG_VARS = [
    "MOTOR_SALES_DB_PATH",
    "MOTOR_SALES_EXPORT_DIR",
    "MOTOR_SALES_LOG_DIR",
    "MOTOR_SALES_ON_ERROR",
    "MOTOR_SALES_TOP_N",
    "MOTOR_SALES_S3_BUCKET",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset config variables; values loaded from .env files are undone too."""
    for name in CONFIG_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_from_env_uses_defaults(tmp_path: Path) -> None:
    """Without overrides the defaults apply."""
    config = PipelineConfig.from_env(dotenv_path=str(tmp_path / "missing.env"))

    assert config.db_path == DEFAULT_DB_PATH
    assert config.on_error == "abort"
    assert config.top_n == DEFAULT_TOP_N
    assert config.s3_bucket is None


def test_from_env_reads_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment values should override defaults."""
    monkeypatch.setenv("MOTOR_SALES_ON_ERROR", " Reject ")
    monkeypatch.setenv("MOTOR_SALES_TOP_N", "5")
    monkeypatch.setenv("MOTOR_SALES_S3_BUCKET", "sales-reports")

    config = PipelineConfig.from_env(dotenv_path=str(tmp_path / "missing.env"))

    assert config.on_error == "reject"
    assert config.top_n == 5
    assert config.s3_bucket == "sales-reports"


def test_from_env_loads_dotenv_file(tmp_path: Path) -> None:
    """Values in a .env file are picked up."""
    dotenv_file = tmp_path / ".env"
    dotenv_file.write_text("MOTOR_SALES_DB_PATH=/tmp/from-dotenv.db\n", encoding="utf-8")

    config = PipelineConfig.from_env(dotenv_path=str(dotenv_file))

    assert config.db_path == "/tmp/from-dotenv.db"


@pytest.mark.parametrize(("name", "value"), [
    ("MOTOR_SALES_ON_ERROR", "ignore"),
    ("MOTOR_SALES_TOP_N", "ten"),
    ("MOTOR_SALES_TOP_N", "0"),
])
def test_from_env_raises_for_invalid_values(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    """Invalid settings should fail fast."""
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError):
        PipelineConfig.from_env(dotenv_path=str(tmp_path / "missing.env"))
