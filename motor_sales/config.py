"""
Runtime configuration for the motor sales pipeline.

Values come from the process environment, optionally seeded from a .env file.
Other modules consume the typed PipelineConfig instead of reading os.environ.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from motor_sales.errors import ConfigError

DEFAULT_DB_PATH = "database/motor_sales.db"
DEFAULT_EXPORT_DIR = "data/reports"
DEFAULT_LOG_DIR = "logs"
DEFAULT_ON_ERROR = "abort"
DEFAULT_TOP_N = 10
DEFAULT_REGION = "us-east-1"

ERROR_POLICIES = ("abort", "reject")


@dataclass(frozen=True)
class PipelineConfig:
    """
    Validated pipeline configuration.

    Attributes:
        db_path: SQLite database file holding every layer
        export_dir: Directory for exported report files
        log_dir: Directory for pipeline log files
        on_error: Cleaning policy for malformed rows ('abort' or 'reject')
        top_n: Default N for the top-N counties report
        s3_bucket: Optional bucket for report uploads
        aws_region: AWS region for the S3 client
        aws_profile: Optional AWS profile name
    """

    db_path: str = DEFAULT_DB_PATH
    export_dir: str = DEFAULT_EXPORT_DIR
    log_dir: str = DEFAULT_LOG_DIR
    on_error: str = DEFAULT_ON_ERROR
    top_n: int = DEFAULT_TOP_N
    s3_bucket: Optional[str] = None
    aws_region: str = DEFAULT_REGION
    aws_profile: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "PipelineConfig":
        """
        Build config from environment variables, loading a .env file first.

        Args:
            dotenv_path: Optional explicit .env path (default: search upwards)

        Returns:
            A validated config object

        Raises:
            ConfigError: If an environment value is invalid
        """
        load_dotenv(dotenv_path)

        on_error = os.environ.get("MOTOR_SALES_ON_ERROR", DEFAULT_ON_ERROR).strip().lower()
        if on_error not in ERROR_POLICIES:
            raise ConfigError(
                f"Invalid MOTOR_SALES_ON_ERROR value '{on_error}': "
                f"expected one of {', '.join(ERROR_POLICIES)}"
            )

        return cls(
            db_path=os.environ.get("MOTOR_SALES_DB_PATH", DEFAULT_DB_PATH),
            export_dir=os.environ.get("MOTOR_SALES_EXPORT_DIR", DEFAULT_EXPORT_DIR),
            log_dir=os.environ.get("MOTOR_SALES_LOG_DIR", DEFAULT_LOG_DIR),
            on_error=on_error,
            top_n=_parse_top_n(os.environ.get("MOTOR_SALES_TOP_N", str(DEFAULT_TOP_N))),
            s3_bucket=os.environ.get("MOTOR_SALES_S3_BUCKET") or None,
            aws_region=os.environ.get("AWS_REGION", DEFAULT_REGION),
            aws_profile=os.environ.get("AWS_PROFILE") or None,
        )


def _parse_top_n(raw_value: str) -> int:
    try:
        value = int(raw_value)
    except ValueError as e:
        raise ConfigError(f"Invalid MOTOR_SALES_TOP_N value '{raw_value}': expected an integer") from e
    if value <= 0:
        raise ConfigError(f"Invalid MOTOR_SALES_TOP_N value '{raw_value}': must be positive")
    return value
