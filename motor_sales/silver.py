import sqlite3
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from motor_sales.bronze import read_bronze
from motor_sales.config import ERROR_POLICIES
from motor_sales.errors import CleaningError, InvalidArgumentError

logger = logging.getLogger("motor_sales.silver")

CLEANED_TABLE = "cleaned_motor_sales"
REJECTED_TABLE = "rejected_motor_sales"
RECORD_COLUMNS: List[str] = ["year", "quarter", "county", "sales"]
INTEGER_FIELDS = ("year", "quarter", "sales")

# Number of failing rows quoted in a CleaningError message
MAX_REPORTED_FAILURES = 5

# SQLite INTEGER bounds
MIN_INTEGER = -(2 ** 63)
MAX_INTEGER = 2 ** 63 - 1


@dataclass(frozen=True)
class CleaningResult:
    """
    Output of the cleaning stage.

    Attributes:
        cleaned: Deduplicated, typed records in original ingestion order
        rejected: Raw rows dropped under the 'reject' policy, with a reason column
        duplicates_removed: Number of exact duplicates collapsed
    """

    cleaned: pd.DataFrame
    rejected: pd.DataFrame
    duplicates_removed: int


def create_silver_table(cursor):
    """
    Recreate the cleaned_motor_sales table with non-null constraints.
    """
    cursor.execute(f"DROP TABLE IF EXISTS {CLEANED_TABLE}")
    cursor.execute(f"""
        CREATE TABLE {CLEANED_TABLE} (
            year INTEGER NOT NULL,
            quarter INTEGER NOT NULL,
            county TEXT NOT NULL,
            sales INTEGER NOT NULL
        )
    """)


def create_rejected_table(cursor):
    cursor.execute(f"DROP TABLE IF EXISTS {REJECTED_TABLE}")
    cursor.execute(f"""
        CREATE TABLE {REJECTED_TABLE} (
            row_id INTEGER,
            year TEXT,
            quarter TEXT,
            county TEXT,
            sales TEXT,
            reason TEXT NOT NULL
        )
    """)


def create_silver_indexes(cursor):
    cursor.execute(f"CREATE INDEX IF NOT EXISTS idx_year ON {CLEANED_TABLE}(year)")
    cursor.execute(f"CREATE INDEX IF NOT EXISTS idx_county ON {CLEANED_TABLE}(county)")


def _is_null(value: Any) -> bool:
    return value is None or (not isinstance(value, str) and pd.isna(value))


def normalize_county(value: Any) -> Optional[str]:
    """
    Normalize a raw county name.

    Every "/" becomes " & ", surrounding whitespace is trimmed, then the whole
    string is capitalised as one unit: "eagle/pitkin" -> "Eagle & pitkin".

    Args:
        value: Raw county value

    Returns:
        Normalized county name, or None for null or blank input
    """
    if _is_null(value):
        return None
    text = str(value).replace("/", " & ").strip()
    if not text:
        return None
    return text[:1].upper() + text[1:].lower()


def parse_integer(value: Any) -> Optional[int]:
    """
    Coerce a raw field to an integer.

    Surrounding whitespace is ignored and integral decimals such as "2020.0"
    are accepted.

    Args:
        value: Raw field value

    Returns:
        The parsed integer, or None for null or blank input

    Raises:
        ValueError: If the value is not an integral number
        OverflowError: If the value does not fit a 64-bit signed integer
    """
    if _is_null(value):
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = int(text)
    except ValueError:
        decimal = float(text)
        if not decimal.is_integer():
            raise ValueError(f"not an integral value: {text!r}")
        number = int(decimal)
    if not MIN_INTEGER <= number <= MAX_INTEGER:
        raise OverflowError(f"value out of 64-bit integer range: {text!r}")
    return number


def _clean_row(row: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Clean one raw row, returning the typed values and any failure reasons."""
    values: Dict[str, Any] = {}
    reasons: List[str] = []
    for field in RECORD_COLUMNS:
        if field == "county":
            values[field] = normalize_county(row[field])
        else:
            try:
                values[field] = parse_integer(row[field])
            except ValueError:
                values[field] = None
                reasons.append(f"non-numeric {field}")
                continue
            except OverflowError:
                values[field] = None
                reasons.append(f"out-of-range {field}")
                continue
        if values[field] is None:
            reasons.append(f"null {field}")
    return values, reasons


def _format_failures(failures: List[Tuple[int, str]]) -> str:
    shown = "; ".join(f"row {row_id}: {reason}" for row_id, reason in failures[:MAX_REPORTED_FAILURES])
    extra = len(failures) - MAX_REPORTED_FAILURES
    if extra > 0:
        shown += f"; ... and {extra} more"
    return shown


def clean_records(raw: pd.DataFrame, on_error: str = "abort") -> CleaningResult:
    """
    Coerce, normalize and deduplicate raw sales records.

    Rows are processed in row_id order (positional order when the frame has
    no row_id column). Among rows identical on (year, quarter, county, sales)
    after normalization, the one with the lowest row_id is kept.

    Args:
        raw: Raw frame with year, quarter, county, sales and optionally row_id
        on_error: 'abort' raises on the first malformed or null row set,
            'reject' drops those rows and returns them in the result

    Returns:
        CleaningResult with the cleaned records and the rejected rows

    Raises:
        InvalidArgumentError: If on_error is not a known policy
        CleaningError: If rows fail cleaning under the 'abort' policy
    """
    if on_error not in ERROR_POLICIES:
        raise InvalidArgumentError(
            f"Invalid cleaning policy '{on_error}': expected one of {', '.join(ERROR_POLICIES)}"
        )

    frame = raw.copy()
    if "row_id" not in frame.columns:
        frame.insert(0, "row_id", range(1, len(frame) + 1))
    frame = frame.sort_values("row_id", kind="stable")

    records = []
    rejected = []
    failures: List[Tuple[int, str]] = []
    for row in frame[["row_id"] + RECORD_COLUMNS].to_dict("records"):
        values, reasons = _clean_row(row)
        row_id = int(row["row_id"])
        if reasons:
            reason = ", ".join(reasons)
            failures.append((row_id, reason))
            rejected.append({
                "row_id": row_id,
                **{field: None if _is_null(row[field]) else str(row[field]) for field in RECORD_COLUMNS},
                "reason": reason,
            })
        else:
            records.append({"row_id": row_id, **values})

    if failures:
        if on_error == "abort":
            message = f"{len(failures)} raw rows failed cleaning: {_format_failures(failures)}"
            logger.error(message)
            raise CleaningError(message, failures)
        logger.warning(f"Rejected {len(failures)} malformed raw rows: {_format_failures(failures)}")

    cleaned = pd.DataFrame(records, columns=["row_id"] + RECORD_COLUMNS)
    before = len(cleaned)
    cleaned = cleaned.drop_duplicates(subset=RECORD_COLUMNS, keep="first")
    duplicates_removed = before - len(cleaned)
    if duplicates_removed:
        logger.info(f"Removed {duplicates_removed} exact duplicate records")

    cleaned = (
        cleaned.drop(columns=["row_id"])
        .astype({"year": "int64", "quarter": "int64", "county": object, "sales": "int64"})
        .reset_index(drop=True)
    )
    rejected_frame = pd.DataFrame(rejected, columns=["row_id"] + RECORD_COLUMNS + ["reason"])
    return CleaningResult(cleaned=cleaned, rejected=rejected_frame, duplicates_removed=duplicates_removed)


def transform_bronze_to_silver(conn: sqlite3.Connection, on_error: str = "abort") -> CleaningResult:
    """
    Clean the bronze layer into the cleaned_motor_sales table.

    The cleaned table is rebuilt from scratch on every call, so repeated runs
    over the same bronze data produce the same rows.

    Args:
        conn: Open SQLite connection holding raw_motor_sales
        on_error: Cleaning policy, 'abort' or 'reject'

    Returns:
        The CleaningResult that was persisted
    """
    raw = read_bronze(conn)
    logger.info(f"Read {len(raw)} records from bronze layer for silver transformation")

    cursor = conn.cursor()
    try:
        result = clean_records(raw, on_error=on_error)
    except CleaningError:
        # A stale cleaned table must not outlive the raw data it came from
        cursor.execute(f"DROP TABLE IF EXISTS {CLEANED_TABLE}")
        cursor.execute(f"DROP TABLE IF EXISTS {REJECTED_TABLE}")
        conn.commit()
        raise

    create_silver_table(cursor)
    create_rejected_table(cursor)
    conn.commit()

    result.cleaned.to_sql(CLEANED_TABLE, conn, if_exists="append", index=False)
    if not result.rejected.empty:
        result.rejected.to_sql(REJECTED_TABLE, conn, if_exists="append", index=False)

    create_silver_indexes(cursor)
    conn.commit()
    logger.info(
        f"Successfully transformed {len(result.cleaned)} records into silver layer "
        f"({len(result.rejected)} rejected, {result.duplicates_removed} duplicates removed)"
    )
    return result


def read_silver(conn: sqlite3.Connection) -> pd.DataFrame:
    """Return the cleaned table in insertion order."""
    return pd.read_sql(
        f"SELECT year, quarter, county, sales FROM {CLEANED_TABLE} ORDER BY rowid",
        conn
    )
