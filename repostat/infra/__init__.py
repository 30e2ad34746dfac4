"""
Infrastructure layer for repostat.

Contains abstractions for external systems:
- GitClient: Git command execution and repository inspection

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient, classify_git_error, parse_status_porcelain

__all__ = [
    'GitClient',
    'classify_git_error',
    'parse_status_porcelain',
]
