"""
Domain layer for repostat.

Contains pure domain objects with no I/O or side effects:
- RepositoryRef: A tracked repository (name and path)
- RepositoryStatus: Snapshot produced by one inspection
- Success / Failure: Outcome of one inspection
- ResultSet: Ordered outcomes for a batch of repositories

These objects are immutable and provide serialization methods
for machine-readable output.
"""

from .repository import RepositoryRef, RepositoryStatus, Distance, SYMBOL_WIDTH
from .outcome import (
    ErrorKind,
    InspectionError,
    InspectionOutcome,
    Success,
    Failure,
    ResultEntry,
    ResultSet,
)

__all__ = [
    'RepositoryRef',
    'RepositoryStatus',
    'Distance',
    'SYMBOL_WIDTH',
    'ErrorKind',
    'InspectionError',
    'InspectionOutcome',
    'Success',
    'Failure',
    'ResultEntry',
    'ResultSet',
]
