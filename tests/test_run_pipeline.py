"""Integration tests for the end-to-end pipeline and CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from data_generator import COUNTIES, generate_sales_data
from motor_sales.errors import CleaningError, IngestError
from motor_sales.run_pipeline import SalesPipeline, main


@pytest.fixture
def sales_csv(tmp_path: Path) -> str:
    """Synthetic two-year dataset written to CSV."""
    csv_file = tmp_path / "colorado_motor_vehicle_sales.csv"
    generate_sales_data(start_year=2014, end_year=2015, duplicate_rate=0.05, seed=11).to_csv(csv_file, index=False)
    return str(csv_file)


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point pipeline configuration at a temporary directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MOTOR_SALES_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("MOTOR_SALES_EXPORT_DIR", str(tmp_path / "reports"))
    monkeypatch.setenv("MOTOR_SALES_DB_PATH", str(tmp_path / "database" / "sales.db"))
    return tmp_path


def test_run_pipeline_produces_consistent_report(tmp_path: Path, sales_csv: str) -> None:
    """A full run should clean, dedupe and aggregate the generated data."""
    pipeline = SalesPipeline(db_path=str(tmp_path / "database" / "sales.db"), top_n=3)

    report = pipeline.run_pipeline(sales_csv)
    stats = pipeline.get_layer_stats()

    expected_rows = 2 * 4 * len(COUNTIES)
    assert report.summary["total_rows"] == expected_rows
    assert report.summary["unique_counties"] == len(COUNTIES)
    assert (report.summary["start_year"], report.summary["end_year"]) == (2014, 2015)
    assert report.yearly["total_sales"].sum() == report.summary["total_sales"]
    assert report.county_share["county_sales"].sum() == report.summary["total_sales"]
    assert len(report.top_n) == 3
    assert stats == {
        "raw_count": expected_rows + int(expected_rows * 0.05),
        "cleaned_count": expected_rows,
        "rejected_count": 0,
    }


def test_run_pipeline_aborts_on_malformed_row(tmp_path: Path) -> None:
    """Under the default policy one bad row fails the whole run."""
    csv_file = tmp_path / "bad.csv"
    csv_file.write_text("year,quarter,county,sales\n2020,1,Denver,100\n2020,1,Mesa,oops\n", encoding="utf-8")
    pipeline = SalesPipeline(db_path=str(tmp_path / "sales.db"))

    with pytest.raises(CleaningError):
        pipeline.run_pipeline(str(csv_file))

    assert pipeline.get_layer_stats()["cleaned_count"] is None


def test_run_pipeline_raises_for_missing_csv(tmp_path: Path) -> None:
    """A missing input file should surface as an ingest error."""
    pipeline = SalesPipeline(db_path=str(tmp_path / "sales.db"))

    with pytest.raises(IngestError):
        pipeline.run_pipeline(str(tmp_path / "missing.csv"))


def test_export_reports_writes_parquet_and_summary(tmp_path: Path, sales_csv: str) -> None:
    """Every report table is exported alongside a JSON summary."""
    pipeline = SalesPipeline(db_path=str(tmp_path / "sales.db"))
    report = pipeline.run_pipeline(sales_csv)

    exported = pipeline.export_reports(report, str(tmp_path / "reports"))

    parquet_files = [path for path in exported if path.endswith(".parquet")]
    summary_files = [path for path in exported if path.endswith(".json")]
    assert len(parquet_files) == len(report.tables())
    yearly_file = next(path for path in parquet_files if Path(path).name.startswith("yearly_sales_"))
    pd.testing.assert_frame_equal(pd.read_parquet(yearly_file), report.yearly)
    with open(summary_files[0], encoding="utf-8") as f:
        assert json.load(f) == report.summary


def test_main_runs_pipeline_and_exports(cli_env: Path, sales_csv: str, capsys: pytest.CaptureFixture) -> None:
    """The CLI should run every stage and write exports."""
    exit_code = main(["--csv", sales_csv, "--on-error", "reject", "--top-n", "5"])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Top 5 counties:" in output
    assert (cli_env / "database" / "sales.db").exists()
    assert any((cli_env / "reports").glob("cleaned_motor_sales_*.parquet"))
    assert (cli_env / "logs" / "motor_sales_pipeline.log").exists()


def test_main_returns_error_for_invalid_top_n(cli_env: Path, sales_csv: str) -> None:
    """A non-positive N fails the run instead of producing a report."""
    assert main(["--csv", sales_csv, "--top-n", "0"]) == 1


def test_main_requires_csv_without_export_only(cli_env: Path) -> None:
    """The CLI needs an input file unless only exporting."""
    with pytest.raises(SystemExit):
        main([])


def test_run_pipeline_raises_for_row_with_extra_fields(tmp_path: Path) -> None:
    """A data row wider than the header should surface as an ingest error."""
    csv_file = tmp_path / "wide.csv"
    csv_file.write_text("year,quarter,county,sales\n2020,1,Denver,100\n2020,1,Mesa,5,extra,more\n", encoding="utf-8")
    pipeline = SalesPipeline(db_path=str(tmp_path / "sales.db"))

    with pytest.raises(IngestError):
        pipeline.run_pipeline(str(csv_file))


@pytest.mark.parametrize(("name", "value"), [("MOTOR_SALES_TOP_N", "zero"), ("MOTOR_SALES_ON_ERROR", "ignore")])
def test_main_returns_error_for_invalid_environment(
    cli_env: Path, sales_csv: str, monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    """Bad configuration values fail the run with exit code 1."""
    monkeypatch.setenv(name, value)

    assert main(["--csv", sales_csv]) == 1
    assert not (cli_env / "database").exists()
