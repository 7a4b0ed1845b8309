#!/usr/bin/env python3
"""
Colorado Motor Vehicle Sales Pipeline

Runs the medallion pipeline over a single SQLite database:
bronze (raw_motor_sales) -> silver (cleaned_motor_sales) -> gold (views and reports),
then exports the reports to Parquet/JSON and optionally uploads them to S3.
"""

import os
import sys
import json
import sqlite3
import logging
import argparse
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from motor_sales.bronze import RAW_TABLE, ingest_data
from motor_sales.config import ERROR_POLICIES, PipelineConfig
from motor_sales.errors import ConfigError, SalesPipelineError
from motor_sales.gold import SalesReport, build_report
from motor_sales.s3_export import S3Exporter
from motor_sales.silver import CLEANED_TABLE, REJECTED_TABLE, CleaningResult, transform_bronze_to_silver
from utils.logger import setup_logger

logger = logging.getLogger("motor_sales.pipeline")


class SalesPipeline:
    """Runs ingestion, cleaning and reporting against one SQLite database."""

    def __init__(self, db_path: str, on_error: str = "abort", top_n: int = 10):
        """
        Initialize the pipeline.

        Args:
            db_path: Path to the SQLite database file (":memory:" is not supported,
                each step opens its own connection)
            on_error: Cleaning policy for malformed rows
            top_n: N for the parameterized top-N counties report
        """
        self.db_path = db_path
        self.on_error = on_error
        self.top_n = top_n
        self._ensure_db_directory()

    def _ensure_db_directory(self) -> None:
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def process_bronze_layer(self, csv_file: str) -> int:
        conn = self.connect()
        try:
            return ingest_data(csv_file, conn)
        finally:
            conn.close()

    def process_silver_layer(self) -> CleaningResult:
        conn = self.connect()
        try:
            return transform_bronze_to_silver(conn, on_error=self.on_error)
        finally:
            conn.close()

    def process_gold_layer(self) -> SalesReport:
        conn = self.connect()
        try:
            return build_report(conn, top_n=self.top_n)
        finally:
            conn.close()

    def export_reports(self, report: SalesReport, output_dir: str) -> List[str]:
        """
        Export every report table to Parquet and the summary to JSON.

        Args:
            report: Gold-layer report bundle
            output_dir: Directory to save the exported files

        Returns:
            Paths of the exported files
        """
        os.makedirs(output_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        exported = []

        for name, frame in report.tables().items():
            output_file = os.path.join(output_dir, f"{name}_{timestamp}.parquet")
            frame.to_parquet(output_file, index=False)
            logger.info(f"Exported {len(frame)} rows of {name} to {output_file}")
            exported.append(output_file)

        summary_file = os.path.join(output_dir, f"summary_{timestamp}.json")
        with open(summary_file, "w", encoding="utf-8") as f:
            json.dump(report.summary, f, indent=2)
        exported.append(summary_file)

        return exported

    def export_cleaned(self, output_dir: str) -> str:
        """Export the cleaned table to a timestamped Parquet file."""
        os.makedirs(output_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        output_file = os.path.join(output_dir, f"{CLEANED_TABLE}_{timestamp}.parquet")
        conn = self.connect()
        try:
            df = pd.read_sql(f"SELECT * FROM {CLEANED_TABLE}", conn)
        finally:
            conn.close()
        df.to_parquet(output_file, index=False)
        logger.info(f"Exported {len(df)} records from {CLEANED_TABLE} to {output_file}")
        return output_file

    def get_layer_stats(self) -> Dict[str, Optional[int]]:
        """
        Get record counts for each table; None for tables not yet built.
        """
        conn = self.connect()
        try:
            cursor = conn.cursor()
            stats = {}
            for key, table in (('raw_count', RAW_TABLE),
                               ('cleaned_count', CLEANED_TABLE),
                               ('rejected_count', REJECTED_TABLE)):
                cursor.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
                )
                if cursor.fetchone() is None:
                    stats[key] = None
                    continue
                cursor.execute(f"SELECT COUNT(*) FROM {table}")
                stats[key] = cursor.fetchone()[0]
            return stats
        finally:
            conn.close()

    def run_pipeline(self, csv_file: str) -> SalesReport:
        """
        Run ingestion, cleaning and reporting as one batch.

        Any stage failure propagates and aborts the run.

        Args:
            csv_file: Path to the raw sales CSV

        Returns:
            The gold-layer report bundle
        """
        logger.info("Starting motor sales pipeline...")
        raw_count = self.process_bronze_layer(csv_file)
        logger.info(f"Bronze layer processing completed: {raw_count} raw records")

        cleaning = self.process_silver_layer()
        logger.info(f"Silver layer processing completed: {len(cleaning.cleaned)} cleaned records")

        report = self.process_gold_layer()
        logger.info("Gold layer processing completed")

        logger.info(f"Pipeline completed successfully. Layer statistics: {self.get_layer_stats()}")
        return report


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point for the pipeline."""
    try:
        config = PipelineConfig.from_env()
    except ConfigError as e:
        setup_logger("motor_sales", log_dir=None)
        logger.error(f"Invalid configuration: {e}")
        return 1

    parser = argparse.ArgumentParser(description='Clean and report on Colorado motor vehicle sales')
    parser.add_argument('--csv', type=str, help='Path to the raw sales CSV file')
    parser.add_argument('--db', type=str, default=config.db_path, help='Path to SQLite database')
    parser.add_argument('--export-dir', type=str, default=config.export_dir, help='Directory for exported files')
    parser.add_argument('--on-error', choices=ERROR_POLICIES, default=config.on_error,
                        help='Abort the run or reject rows that fail cleaning')
    parser.add_argument('--top-n', type=int, default=config.top_n, help='N for the top-N counties report')
    parser.add_argument('--export-only', action='store_true',
                        help='Rebuild reports from the existing cleaned table without ingesting')
    parser.add_argument('--upload', action='store_true', help='Upload exported files to MOTOR_SALES_S3_BUCKET')

    args = parser.parse_args(argv)

    setup_logger("motor_sales", log_file="motor_sales_pipeline.log", log_dir=config.log_dir)

    if not args.export_only and not args.csv:
        parser.error('--csv is required unless --export-only is given')

    pipeline = SalesPipeline(db_path=args.db, on_error=args.on_error, top_n=args.top_n)

    try:
        if args.export_only:
            report = pipeline.process_gold_layer()
        else:
            report = pipeline.run_pipeline(args.csv)

        exported = pipeline.export_reports(report, args.export_dir)
        exported.append(pipeline.export_cleaned(args.export_dir))

        if args.upload:
            if not config.s3_bucket:
                raise SalesPipelineError("--upload requires MOTOR_SALES_S3_BUCKET to be set")
            exporter = S3Exporter(
                bucket=config.s3_bucket,
                region=config.aws_region,
                profile_name=config.aws_profile
            )
            uploaded = exporter.upload_files(exported)
            logger.info(f"Uploaded {len(uploaded)} files to s3://{config.s3_bucket}")
    except (SalesPipelineError, sqlite3.Error) as e:
        logger.error(f"Pipeline failed: {e}")
        return 1

    print("Pipeline execution completed:")
    for key, value in report.summary.items():
        print(f"  {key}: {value}")
    print(f"\nTop {report.n} counties:")
    print(report.top_n.to_string(index=False))

    stats = pipeline.get_layer_stats()
    print("\nLayer statistics:")
    print(f"Raw records: {stats['raw_count']}")
    print(f"Cleaned records: {stats['cleaned_count']}")
    print(f"Rejected records: {stats['rejected_count']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
