"""
Colorado Motor Vehicle Sales Pipeline

Modules:
    bronze.py       - Loads the raw sales CSV verbatim into the raw_motor_sales table.
    silver.py       - Coerces, normalizes and deduplicates raw rows into cleaned_motor_sales.
    gold.py         - Sales views, summary statistics and rank-ordered reports.
    run_pipeline.py - Orchestrates the full pipeline and exports the reports.
    s3_export.py    - Uploads exported report files to S3.
    config.py       - Environment configuration.
    errors.py       - Pipeline exception hierarchy.

Version: 1.0.0
"""

__version__ = "1.0.0"
