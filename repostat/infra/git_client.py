"""
Git client infrastructure for repostat.

Provides the repository inspector used by the status scheduler.
All git commands go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Read-only with respect to the inspected repositories
"""

import logging
import os
import subprocess
from typing import Dict, List, Optional

from ..domain import (
    Distance,
    ErrorKind,
    InspectionError,
    RepositoryRef,
    RepositoryStatus,
)

logger = logging.getLogger(__name__)

DETACHED_BRANCH = "HEAD"

# Fragments of git's stderr (with LC_ALL=C) mapped to failure kinds
STDERR_ERROR_KINDS = [
    ("not a git repository", ErrorKind.NOT_A_REPOSITORY),
    ("permission denied", ErrorKind.PERMISSION_DENIED),
    ("dubious ownership", ErrorKind.PERMISSION_DENIED),
    ("does not have any commits", ErrorKind.NO_COMMITS),
]


def classify_git_error(stderr: str) -> ErrorKind:
    """
    Map git's error output to an ErrorKind.

    Args:
        stderr: Standard error of a failed git command

    Returns:
        Matching ErrorKind, CORRUPTED when nothing more specific applies
    """
    lowered = (stderr or "").lower()
    for fragment, kind in STDERR_ERROR_KINDS:
        if fragment in lowered:
            return kind
    return ErrorKind.CORRUPTED


def parse_status_porcelain(output: str) -> Dict[str, object]:
    """
    Parse ``git status --porcelain=v2 --branch`` output.

    Args:
        output: Raw command output

    Returns:
        Dictionary with branch, oid, upstream, ahead, behind,
        staged, unstaged and untracked keys. ``ahead``/``behind`` are
        None when the branch has no (reachable) upstream.
    """
    result: Dict[str, object] = {
        'branch': DETACHED_BRANCH,
        'oid': None,
        'upstream': None,
        'ahead': None,
        'behind': None,
        'staged': False,
        'unstaged': False,
        'untracked': False,
    }

    for line in output.splitlines():
        if not line:
            continue

        if line.startswith('# '):
            parts = line[2:].split(' ')
            header, values = parts[0], parts[1:]
            if header == 'branch.oid' and values:
                result['oid'] = None if values[0] == '(initial)' else values[0]
            elif header == 'branch.head' and values:
                if values[0] != '(detached)':
                    result['branch'] = values[0]
            elif header == 'branch.upstream' and values:
                result['upstream'] = values[0]
            elif header == 'branch.ab' and len(values) == 2:
                try:
                    result['ahead'] = int(values[0].lstrip('+'))
                    result['behind'] = int(values[1].lstrip('-'))
                except ValueError:
                    logger.debug(f"Unparseable ahead/behind header: {line}")
            continue

        kind = line[0]
        if kind in ('1', '2'):
            xy = line[2:4]
            if xy[0] != '.':
                result['staged'] = True
            if xy[1] != '.':
                result['unstaged'] = True
        elif kind == 'u':
            # Unmerged entries need attention in the working tree
            result['unstaged'] = True
        elif kind == '?':
            result['untracked'] = True

    return result


class GitClient:
    """
    Repository inspector backed by the git command line.

    Example:
        client = GitClient(timeout=10)
        status = client.inspect("/path/to/repo")
        print(status.branch, status.distance.marker)
    """

    def __init__(self, timeout: int = 30, fetch: bool = False, git: str = "git"):
        """
        Initialize GitClient.

        Args:
            timeout: Per-command timeout in seconds (default: 30)
            fetch: Run ``git fetch`` before inspecting
            git: Git executable to invoke
        """
        self.timeout = timeout
        self.fetch_first = fetch
        self.git = git

    def _env(self, path: str) -> Dict[str, str]:
        env = os.environ.copy()
        env['LC_ALL'] = 'C'
        # Never take the index lock or refresh the index on disk
        env['GIT_OPTIONAL_LOCKS'] = '0'
        # Only the given directory itself may be a repository, not its parents
        env['GIT_CEILING_DIRECTORIES'] = os.path.dirname(os.path.abspath(path))
        # Fail instead of prompting for credentials or host keys
        env['GIT_TERMINAL_PROMPT'] = '0'
        env['GIT_SSH_COMMAND'] = env.get('GIT_SSH_COMMAND', 'ssh') + ' -o BatchMode=yes'
        return env

    def _run(self, path: str, args: List[str]) -> str:
        """
        Run a git command inside ``path``.

        Args:
            path: Repository path
            args: Git arguments, e.g. ['log', '-1']

        Returns:
            Standard output of the command

        Raises:
            InspectionError: If the command cannot run or exits non-zero
        """
        command = [self.git] + args
        try:
            result = subprocess.run(
                command,
                cwd=path,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._env(path),
            )
        except subprocess.TimeoutExpired:
            raise InspectionError(
                ErrorKind.TIMEOUT,
                f"git {args[0]} timed out after {self.timeout}s"
            )
        except PermissionError as e:
            raise InspectionError(ErrorKind.PERMISSION_DENIED, str(e))
        except FileNotFoundError as e:
            if e.filename == path:
                raise InspectionError(ErrorKind.NOT_A_REPOSITORY, f"path does not exist: {path}")
            raise InspectionError(ErrorKind.BACKEND_UNAVAILABLE, f"git executable not found: {self.git}")

        if result.returncode != 0:
            stderr = result.stderr.strip()
            message = stderr.splitlines()[-1] if stderr else f"git {args[0]} exited with {result.returncode}"
            if message.lower().startswith('fatal: '):
                message = message[len('fatal: '):]
            raise InspectionError(classify_git_error(stderr), message)

        return result.stdout

    def fetch(self, path: str, remote: Optional[str] = None) -> bool:
        """
        Fetch from the upstream remote. Failures are logged, never raised.

        Args:
            path: Path to git repository
            remote: Remote name (default: git's choice for the current branch)

        Returns:
            True if the fetch succeeded
        """
        args = ['fetch', '--quiet']
        if remote:
            args.append(remote)
        try:
            self._run(path, args)
            return True
        except InspectionError as e:
            logger.debug(f"Fetch failed for {path}: {e.message}")
            return False

    def inspect(self, path: str) -> RepositoryStatus:
        """
        Inspect a repository without modifying it.

        Args:
            path: Path to git repository

        Returns:
            RepositoryStatus snapshot

        Raises:
            InspectionError: If the repository cannot be inspected
        """
        if not os.path.exists(path):
            raise InspectionError(ErrorKind.NOT_A_REPOSITORY, f"path does not exist: {path}")
        if not os.path.isdir(path):
            raise InspectionError(ErrorKind.NOT_A_REPOSITORY, f"not a directory: {path}")

        if self.fetch_first:
            self.fetch(path)

        output = self._run(path, ['status', '--porcelain=v2', '--branch', '--untracked-files=normal'])
        parsed = parse_status_porcelain(output)

        if parsed['oid'] is None and parsed['branch'] != DETACHED_BRANCH:
            raise InspectionError(ErrorKind.NO_COMMITS, f"branch '{parsed['branch']}' has no commits")

        subject = self._run(path, ['log', '-1', '--format=%s']).strip()

        ahead = parsed['ahead']
        behind = parsed['behind']
        return RepositoryStatus(
            branch=parsed['branch'],
            staged=parsed['staged'],
            unstaged=parsed['unstaged'],
            untracked=parsed['untracked'],
            distance=Distance.from_counts(ahead, behind),
            remote_name=parsed['upstream'],
            last_commit_subject=subject,
            ahead=ahead or 0,
            behind=behind or 0,
        )

    def inspect_ref(self, ref: RepositoryRef) -> RepositoryStatus:
        """Inspect a tracked repository by its ref."""
        return self.inspect(ref.path)
