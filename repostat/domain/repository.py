"""
Repository domain objects for repostat.

RepositoryRef names a tracked repository; RepositoryStatus is the
snapshot produced by one inspection. Both are immutable.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any

SYMBOL_WIDTH = 3


class Distance(Enum):
    """Relationship between the local branch and its upstream."""
    SAME = "=="
    AHEAD = ">>"
    BEHIND = "<<"
    DIVERGED = "<>"
    NO_UPSTREAM = "--"

    @property
    def marker(self) -> str:
        """Two-character marker shown in the status table."""
        return self.value

    @classmethod
    def from_counts(cls, ahead: Optional[int], behind: Optional[int]) -> 'Distance':
        """
        Derive the distance from ahead/behind commit counts.

        Args:
            ahead: Commits the local branch has that the upstream lacks,
                   or None when no upstream is configured
            behind: Commits the upstream has that the local branch lacks

        Returns:
            Matching Distance member
        """
        if ahead is None or behind is None:
            return cls.NO_UPSTREAM
        if ahead == 0 and behind == 0:
            return cls.SAME
        if behind == 0:
            return cls.AHEAD
        if ahead == 0:
            return cls.BEHIND
        return cls.DIVERGED


@dataclass(frozen=True)
class RepositoryRef:
    """A tracked repository: user-facing name plus absolute path."""
    name: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'path': self.path}


@dataclass(frozen=True)
class RepositoryStatus:
    """Result of inspecting one repository."""
    branch: str
    staged: bool = False
    unstaged: bool = False
    untracked: bool = False
    distance: Distance = Distance.NO_UPSTREAM
    remote_name: Optional[str] = None
    last_commit_subject: str = ""
    ahead: int = 0
    behind: int = 0

    @property
    def dirty(self) -> bool:
        return self.staged or self.unstaged or self.untracked

    @property
    def symbols(self) -> str:
        """
        Staged/unstaged/untracked symbols, always three characters wide.

        Present symbols keep the order '+', '*', '_' and are packed to the
        left; the remainder is padded with spaces ('+_ ', '*  ', '   ').
        """
        present = ''
        if self.staged:
            present += '+'
        if self.unstaged:
            present += '*'
        if self.untracked:
            present += '_'
        return present.ljust(SYMBOL_WIDTH)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'branch': self.branch,
            'staged': self.staged,
            'unstaged': self.unstaged,
            'untracked': self.untracked,
            'distance': self.distance.name.lower(),
            'ahead': self.ahead,
            'behind': self.behind,
            'remote': self.remote_name,
            'last_commit': self.last_commit_subject,
        }
