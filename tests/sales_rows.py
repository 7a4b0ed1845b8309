"""Helpers for building raw sales rows in tests."""

from __future__ import annotations

from typing import List, Tuple

import pandas as pd

RawRow = Tuple[object, object, object, object]


def raw_frame(rows: List[RawRow]) -> pd.DataFrame:
    """Build a raw frame from (year, quarter, county, sales) tuples.

    Args:
        rows: Raw rows in ingestion order.

    Returns:
        Frame with year, quarter, county, sales columns.
    """
    return pd.DataFrame(rows, columns=["year", "quarter", "county", "sales"])
