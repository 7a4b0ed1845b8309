import sqlite3
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from motor_sales.errors import InvalidArgumentError
from motor_sales.silver import CLEANED_TABLE

logger = logging.getLogger("motor_sales.gold")

DEFAULT_RANK_LIMIT = 10

# Reusable aggregate definitions exposed to downstream consumers
VIEW_DEFINITIONS: Dict[str, str] = {
    "v_yearly_sales": f"""
        SELECT year, SUM(sales) AS total_sales
        FROM {CLEANED_TABLE} GROUP BY year
    """,
    "v_quarterly_sales": f"""
        SELECT quarter, SUM(sales) AS total_sales
        FROM {CLEANED_TABLE} GROUP BY quarter
    """,
    "v_county_sales": f"""
        SELECT county, SUM(sales) AS total_sales
        FROM {CLEANED_TABLE} GROUP BY county
    """,
}


@dataclass(frozen=True)
class SalesReport:
    """All gold-layer report results for one pipeline run."""

    summary: Dict[str, Any]
    yearly: pd.DataFrame
    yoy: pd.DataFrame
    quarterly: pd.DataFrame
    top_counties: pd.DataFrame
    bottom_counties: pd.DataFrame
    timeline: pd.DataFrame
    county_share: pd.DataFrame
    top_n: pd.DataFrame
    n: int

    def tables(self) -> Dict[str, pd.DataFrame]:
        """Return the tabular reports keyed by export name."""
        return {
            "yearly_sales": self.yearly,
            "yoy_change": self.yoy,
            "quarterly_sales": self.quarterly,
            "top_10_counties": self.top_counties,
            "bottom_10_counties": self.bottom_counties,
            "quarterly_timeline": self.timeline,
            "county_share": self.county_share,
            "top_n_counties": self.top_n,
        }


def create_views(conn: sqlite3.Connection) -> None:
    """
    Drop and recreate the yearly, quarterly and county sales views.
    """
    cursor = conn.cursor()
    for name, query in VIEW_DEFINITIONS.items():
        cursor.execute(f"DROP VIEW IF EXISTS {name}")
        cursor.execute(f"CREATE VIEW {name} AS {query}")
    conn.commit()
    logger.info(f"Created views: {', '.join(VIEW_DEFINITIONS)}")


def ensure_views(conn: sqlite3.Connection) -> None:
    cursor = conn.cursor()
    for name, query in VIEW_DEFINITIONS.items():
        cursor.execute(f"CREATE VIEW IF NOT EXISTS {name} AS {query}")


def _validate_limit(n: Any) -> int:
    """
    Check a rank limit is a positive integer.

    Raises:
        InvalidArgumentError: If n is not an integer or is not positive
    """
    if isinstance(n, (bool, np.bool_)) or not isinstance(n, (int, np.integer)):
        raise InvalidArgumentError(f"n must be a positive integer, got {n!r}")
    if n <= 0:
        raise InvalidArgumentError(f"n must be a positive integer, got {n}")
    return int(n)


def summary_stats(conn: sqlite3.Connection) -> Dict[str, Optional[int]]:
    """
    Compute headline statistics over the cleaned table.

    Returns:
        Dictionary with total_rows, unique_counties, start_year, end_year and
        total_sales; the last three are None when the table is empty
    """
    cursor = conn.cursor()
    cursor.execute(f"""
        SELECT COUNT(*) AS total_rows,
               COUNT(DISTINCT county) AS unique_counties,
               MIN(year) AS start_year,
               MAX(year) AS end_year,
               SUM(sales) AS total_sales
        FROM {CLEANED_TABLE}
    """)
    columns = [description[0] for description in cursor.description]
    return dict(zip(columns, cursor.fetchone()))


def yearly_totals(conn: sqlite3.Connection) -> pd.DataFrame:
    ensure_views(conn)
    return pd.read_sql("SELECT year, total_sales FROM v_yearly_sales ORDER BY year", conn)


def yoy_change(conn: sqlite3.Connection) -> pd.DataFrame:
    """
    Year-over-year percentage change in total sales.

    yoy_change_pct is null for the first year and whenever the previous
    year's total is zero.
    """
    ensure_views(conn)
    query = """
    SELECT year,
           total_sales,
           ROUND(
               CAST(total_sales - LAG(total_sales) OVER (ORDER BY year) AS REAL)
               / NULLIF(LAG(total_sales) OVER (ORDER BY year), 0) * 100,
               2
           ) AS yoy_change_pct
    FROM v_yearly_sales
    ORDER BY year
    """
    return pd.read_sql(query, conn)


def quarterly_totals(conn: sqlite3.Connection) -> pd.DataFrame:
    ensure_views(conn)
    return pd.read_sql("SELECT quarter, total_sales FROM v_quarterly_sales ORDER BY quarter", conn)


def get_top_counties(conn: sqlite3.Connection, n: int) -> pd.DataFrame:
    """
    Return the N counties with the highest total sales.

    Args:
        conn: Open SQLite connection holding cleaned_motor_sales
        n: Number of counties to return, a positive integer

    Returns:
        DataFrame of county, total_sales ordered by total_sales descending

    Raises:
        InvalidArgumentError: If n is not a positive integer
    """
    limit = _validate_limit(n)
    ensure_views(conn)
    return pd.read_sql(
        "SELECT county, total_sales FROM v_county_sales "
        "ORDER BY total_sales DESC, county ASC LIMIT ?",
        conn,
        params=(limit,)
    )


def top_counties(conn: sqlite3.Connection) -> pd.DataFrame:
    return get_top_counties(conn, DEFAULT_RANK_LIMIT)


def bottom_counties(conn: sqlite3.Connection, n: int = DEFAULT_RANK_LIMIT) -> pd.DataFrame:
    limit = _validate_limit(n)
    ensure_views(conn)
    return pd.read_sql(
        "SELECT county, total_sales FROM v_county_sales "
        "ORDER BY total_sales ASC, county ASC LIMIT ?",
        conn,
        params=(limit,)
    )


def quarterly_timeline(conn: sqlite3.Connection) -> pd.DataFrame:
    return pd.read_sql(f"""
        SELECT year, quarter, SUM(sales) AS total_sales
        FROM {CLEANED_TABLE}
        GROUP BY year, quarter
        ORDER BY year, quarter
    """, conn)


def county_share(conn: sqlite3.Connection) -> pd.DataFrame:
    """
    Each county's share of the state-wide sales total, in percent.
    """
    ensure_views(conn)
    query = f"""
    WITH state_total AS (
        SELECT SUM(sales) AS state_sales FROM {CLEANED_TABLE}
    )
    SELECT c.county,
           c.total_sales AS county_sales,
           ROUND(CAST(c.total_sales AS REAL) / NULLIF(s.state_sales, 0) * 100, 2) AS pct_of_state_sales
    FROM v_county_sales c CROSS JOIN state_total s
    ORDER BY c.total_sales DESC, c.county ASC
    """
    return pd.read_sql(query, conn)


def build_report(conn: sqlite3.Connection, top_n: int = DEFAULT_RANK_LIMIT) -> SalesReport:
    """
    Create the views and run every gold-layer report.

    Args:
        conn: Open SQLite connection holding cleaned_motor_sales
        top_n: N for the parameterized top-N counties report

    Returns:
        SalesReport bundling every report result
    """
    limit = _validate_limit(top_n)
    create_views(conn)

    summary = summary_stats(conn)
    logger.info(f"Summary statistics: {summary}")

    report = SalesReport(
        summary=summary,
        yearly=yearly_totals(conn),
        yoy=yoy_change(conn),
        quarterly=quarterly_totals(conn),
        top_counties=top_counties(conn),
        bottom_counties=bottom_counties(conn),
        timeline=quarterly_timeline(conn),
        county_share=county_share(conn),
        top_n=get_top_counties(conn, limit),
        n=limit,
    )
    logger.info(f"Built {len(report.tables())} gold-layer reports")
    return report
