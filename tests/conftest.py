"""Shared fixtures for pipeline tests."""

from __future__ import annotations

import sqlite3
from typing import Callable, Iterator, List

import pytest

from motor_sales.bronze import load_raw_frame
from motor_sales.silver import transform_bronze_to_silver
from tests.sales_rows import RawRow, raw_frame


@pytest.fixture
def conn() -> Iterator[sqlite3.Connection]:
    """In-memory SQLite connection closed after the test."""
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def load_sales(conn: sqlite3.Connection) -> Callable[[List[RawRow]], sqlite3.Connection]:
    """Load raw rows through bronze and silver, returning the connection."""

    def _load(rows: List[RawRow]) -> sqlite3.Connection:
        load_raw_frame(conn, raw_frame(rows))
        transform_bronze_to_silver(conn)
        return conn

    return _load
