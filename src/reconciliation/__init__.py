"""
Pairwise source/destination reconciliation

Streams the source query and looks up each record's counterpart in the
destination, reporting missing rows and mismatches without stopping.
"""

from .definition import ReconciliationDefinition
from .engine import run_reconciliation

__version__ = "1.0.0"

__all__ = ["ReconciliationDefinition", "run_reconciliation"]
