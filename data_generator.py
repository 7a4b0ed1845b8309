#!/usr/bin/env python3
"""
Motor Vehicle Sales Data Generator

Generates a synthetic Colorado-style quarterly sales dataset (year, quarter,
county, sales) with the kinds of dirt the cleaning stage has to handle:
inconsistent casing, stray whitespace, "/" joined county names and exact
duplicate rows.
"""

import os
import argparse
from typing import List, Optional

import numpy as np
import pandas as pd

DEFAULT_OUTPUT_FILE = "data/sample/colorado_motor_vehicle_sales.csv"
DEFAULT_START_YEAR = 2008
DEFAULT_END_YEAR = 2015

COUNTIES: List[str] = [
    "Adams", "Arapahoe", "Boulder/Broomfield", "Denver", "Douglas",
    "El Paso", "Fremont", "Garfield", "Jefferson", "La Plata",
    "Larimer", "Mesa", "Pueblo", "Summit", "Weld",
    "Eagle/Pitkin", "Montrose", "Rest of State",
]


def _dirty_county(name: str, rng: np.random.Generator) -> str:
    """Apply a random casing/whitespace variation to a county name."""
    choice = rng.integers(0, 4)
    if choice == 0:
        return name.lower()
    if choice == 1:
        return name.upper()
    if choice == 2:
        return f"  {name} "
    return name


def generate_sales_data(
    start_year: int = DEFAULT_START_YEAR,
    end_year: int = DEFAULT_END_YEAR,
    counties: Optional[List[str]] = None,
    duplicate_rate: float = 0.02,
    dirty_rate: float = 0.1,
    seed: int = 42
) -> pd.DataFrame:
    """
    Generate one row per year, quarter and county plus injected dirt.

    Args:
        start_year: First year to generate
        end_year: Last year to generate (inclusive)
        counties: County names (default: COUNTIES)
        duplicate_rate: Fraction of rows repeated verbatim at the end
        dirty_rate: Fraction of county names given casing/whitespace noise
        seed: Random seed

    Returns:
        DataFrame with year, quarter, county, sales columns
    """
    rng = np.random.default_rng(seed)
    counties = counties or COUNTIES

    rows = []
    base_sales = rng.uniform(5_000_000, 500_000_000, size=len(counties))
    for year in range(start_year, end_year + 1):
        growth = 1 + 0.04 * (year - start_year)
        for quarter in range(1, 5):
            seasonality = 1.1 if quarter in (2, 3) else 0.9
            for county, base in zip(counties, base_sales):
                sales = int(base * growth * seasonality * rng.normal(1.0, 0.05))
                if rng.random() < dirty_rate:
                    county = _dirty_county(county, rng)
                rows.append({"year": year, "quarter": quarter, "county": county, "sales": max(sales, 0)})

    df = pd.DataFrame(rows)
    n_duplicates = int(len(df) * duplicate_rate)
    if n_duplicates:
        duplicates = df.sample(n=n_duplicates, random_state=seed)
        df = pd.concat([df, duplicates], ignore_index=True)
    return df


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description='Generate a synthetic motor vehicle sales CSV')
    parser.add_argument('--output', type=str, default=DEFAULT_OUTPUT_FILE, help='Output CSV path')
    parser.add_argument('--start-year', type=int, default=DEFAULT_START_YEAR)
    parser.add_argument('--end-year', type=int, default=DEFAULT_END_YEAR)
    parser.add_argument('--seed', type=int, default=42)
    args = parser.parse_args(argv)

    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    df = generate_sales_data(args.start_year, args.end_year, seed=args.seed)
    df.to_csv(args.output, index=False)
    print(f"Generated {len(df)} rows at: {args.output}")


if __name__ == "__main__":
    main()
