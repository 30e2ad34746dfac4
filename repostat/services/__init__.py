"""
Service layer for repostat.

Contains the status collection engine:
- Scheduler: Bounded parallel inspection of many repositories
- ResultCollector: Reassembles outcomes into input order

Services are the primary API for commands to use.
They handle coordination between infrastructure and domain layers.
"""

from .collector import (
    ResultCollector,
    CollectorError,
    DuplicateOutcomeError,
    MissingOutcomeError,
)
from .scheduler import (
    Scheduler,
    default_concurrency,
    outcome_from_exception,
    MIN_WORKERS,
    MAX_WORKERS,
)

__all__ = [
    'ResultCollector',
    'CollectorError',
    'DuplicateOutcomeError',
    'MissingOutcomeError',
    'Scheduler',
    'default_concurrency',
    'outcome_from_exception',
    'MIN_WORKERS',
    'MAX_WORKERS',
]
