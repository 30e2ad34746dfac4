"""
Inspection outcome domain objects for repostat.

Every inspected repository yields exactly one outcome: a Success
carrying its RepositoryStatus, or a Failure carrying an ErrorKind and
a message. A ResultSet pairs outcomes with their refs in input order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Iterator, List, Tuple, Union

from .repository import RepositoryRef, RepositoryStatus


class ErrorKind(Enum):
    """Reasons an inspection can fail."""
    NOT_A_REPOSITORY = "not_a_repository"
    NO_COMMITS = "no_commits"
    PERMISSION_DENIED = "permission_denied"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    CORRUPTED = "corrupted"
    TIMEOUT = "timeout"

    @property
    def label(self) -> str:
        """Human readable label, e.g. 'not a repository'."""
        return self.value.replace('_', ' ')


class InspectionError(Exception):
    """
    Raised by an inspector when a repository cannot be inspected.

    The scheduler turns it into a Failure outcome for that repository.
    """
    def __init__(self, kind: ErrorKind, message: str = ""):
        super().__init__(message or kind.label)
        self.kind = kind
        self.message = message or kind.label


@dataclass(frozen=True)
class Success:
    """Inspection finished and produced a status snapshot."""
    status: RepositoryStatus

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        return {'ok': True, 'status': self.status.to_dict()}


@dataclass(frozen=True)
class Failure:
    """Inspection failed; only this repository is affected."""
    kind: ErrorKind
    message: str

    ok = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': False,
            'error': self.message,
            'error_type': self.kind.value,
        }


InspectionOutcome = Union[Success, Failure]


@dataclass(frozen=True)
class ResultEntry:
    """One row of a result set."""
    ref: RepositoryRef
    outcome: InspectionOutcome

    def to_dict(self) -> Dict[str, Any]:
        result = self.ref.to_dict()
        result.update(self.outcome.to_dict())
        return result


@dataclass(frozen=True)
class ResultSet:
    """
    Outcomes for a batch of repositories, in the order they were requested.

    ``total`` is the number of repositories requested. When the batch was
    cancelled, ``entries`` may hold fewer items than ``total``.
    """
    entries: Tuple[ResultEntry, ...] = ()
    total: int = 0
    cancelled: bool = False

    def __iter__(self) -> Iterator[ResultEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def succeeded(self) -> int:
        return sum(1 for entry in self.entries if entry.outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for entry in self.entries if not entry.outcome.ok)

    @property
    def missing(self) -> int:
        """Repositories that never produced an outcome (cancelled runs only)."""
        return self.total - len(self.entries)

    @property
    def complete(self) -> bool:
        return self.missing == 0

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self.entries]
