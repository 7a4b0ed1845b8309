import sqlite3
import os
import logging
from typing import List

import pandas as pd

from motor_sales.errors import IngestError

logger = logging.getLogger("motor_sales.bronze")

RAW_TABLE = "raw_motor_sales"
REQUIRED_COLUMNS: List[str] = ["year", "quarter", "county", "sales"]


def create_bronze_table(cursor):
    """
    Recreate the raw_motor_sales staging table.

    Values are kept as TEXT so malformed input survives until cleaning;
    row_id records the original ingestion order.
    """
    cursor.execute(f"DROP TABLE IF EXISTS {RAW_TABLE}")
    cursor.execute(f"""
        CREATE TABLE {RAW_TABLE} (
            row_id INTEGER PRIMARY KEY AUTOINCREMENT,
            year TEXT,
            quarter TEXT,
            county TEXT,
            sales TEXT
        )
    """)


def validate_csv_structure(csv_file: str, required_columns: List[str] = REQUIRED_COLUMNS) -> None:
    """
    Validate that the CSV file exists and carries the required header columns.

    Args:
        csv_file: Path to the CSV file
        required_columns: List of required column names

    Raises:
        IngestError: If the file is missing, empty or lacks a required column
    """
    if not os.path.exists(csv_file):
        raise IngestError(f"CSV file not found: {csv_file}")

    try:
        header = pd.read_csv(csv_file, nrows=0, encoding="utf-8")
    except pd.errors.EmptyDataError as e:
        raise IngestError(f"CSV file is empty or has no headers: {csv_file}") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise IngestError(f"CSV file header could not be parsed: {csv_file}: {e}") from e

    csv_columns = [str(col).strip().lower() for col in header.columns]
    missing_columns = [col for col in required_columns if col not in csv_columns]
    if missing_columns:
        raise IngestError(f"CSV file is missing required columns: {missing_columns}")


def read_raw_csv(csv_file: str) -> pd.DataFrame:
    """
    Read the raw CSV with every value as text.

    Header names are matched case-insensitively; extra columns are dropped.
    Empty cells become nulls, nothing else is touched.

    Args:
        csv_file: Path to the CSV file

    Returns:
        DataFrame with exactly the year, quarter, county, sales columns
    """
    validate_csv_structure(csv_file)
    try:
        df = pd.read_csv(csv_file, dtype=str, keep_default_na=False, na_values=[""], encoding="utf-8")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise IngestError(f"CSV file is malformed: {csv_file}: {e}") from e
    df.columns = [str(col).strip().lower() for col in df.columns]
    return df[REQUIRED_COLUMNS]


def load_raw_frame(conn: sqlite3.Connection, frame: pd.DataFrame) -> int:
    """
    Load raw rows verbatim into the bronze layer, replacing any previous load.

    Args:
        conn: Open SQLite connection
        frame: DataFrame with year, quarter, county, sales columns

    Returns:
        Number of rows loaded
    """
    missing_columns = [col for col in REQUIRED_COLUMNS if col not in frame.columns]
    if missing_columns:
        raise IngestError(f"Raw frame is missing required columns: {missing_columns}")

    cursor = conn.cursor()
    create_bronze_table(cursor)

    rows = [tuple(None if pd.isna(value) else str(value) for value in row)
            for row in frame[REQUIRED_COLUMNS].itertuples(index=False, name=None)]
    cursor.executemany(
        f"INSERT INTO {RAW_TABLE} (year, quarter, county, sales) VALUES (?, ?, ?, ?)",
        rows
    )
    conn.commit()
    logger.info(f"Loaded {len(rows)} raw records into {RAW_TABLE}")
    return len(rows)


def ingest_data(csv_file: str, conn: sqlite3.Connection) -> int:
    """
    Ingest a raw CSV file into the raw_motor_sales table.

    Args:
        csv_file: Path to the CSV file
        conn: Open SQLite connection

    Returns:
        Number of rows ingested
    """
    logger.info(f"Ingesting raw sales data from: {csv_file}")
    frame = read_raw_csv(csv_file)
    return load_raw_frame(conn, frame)


def read_bronze(conn: sqlite3.Connection) -> pd.DataFrame:
    """Return the bronze table in ingestion order."""
    return pd.read_sql(
        f"SELECT row_id, year, quarter, county, sales FROM {RAW_TABLE} ORDER BY row_id",
        conn
    )
