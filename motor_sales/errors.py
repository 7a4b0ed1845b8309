"""
Exception hierarchy for the motor sales pipeline.

Each pipeline stage raises its own error type so a failed run can be traced
back to the layer that aborted it.
"""

from typing import List, Optional, Tuple


class SalesPipelineError(Exception):
    """Base exception for all pipeline failures."""


class ConfigError(SalesPipelineError):
    """Raised for invalid environment configuration."""


class IngestError(SalesPipelineError):
    """Raised when the raw input file cannot be loaded."""


class CleaningError(SalesPipelineError):
    """
    Raised when raw rows fail coercion or null checks under the abort policy.

    Attributes:
        failures: (row_id, reason) pairs for the offending rows
    """

    def __init__(self, message: str, failures: Optional[List[Tuple[int, str]]] = None):
        super().__init__(message)
        self.failures = failures or []


class InvalidArgumentError(SalesPipelineError, ValueError):
    """Raised when a caller passes an invalid parameter to a report or stage."""


class ExportError(SalesPipelineError):
    """Raised when report export or upload fails."""
