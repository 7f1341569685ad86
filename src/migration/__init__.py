"""
Row-by-row data migration

Streams a source query and writes each record to the destination with
batched or single-row execution under a configurable transaction mode.
"""

from .definition import MigrationDefinition
from .engine import run_migration

__version__ = "1.0.0"

__all__ = ["MigrationDefinition", "run_migration"]
