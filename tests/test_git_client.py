"""
Tests for GitClient.

Unit tests mock subprocess.run; the integration tests at the bottom
create throwaway repositories with the real git executable.
"""
import os
import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from repostat.domain import Distance, ErrorKind, InspectionError, RepositoryRef
from repostat.infra.git_client import (
    DETACHED_BRANCH,
    GitClient,
    classify_git_error,
    parse_status_porcelain,
)

CLEAN_MAIN = """\
# branch.oid 1a2b3c4d5e6f
# branch.head main
# branch.upstream origin/main
# branch.ab +0 -0
"""


def completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestParseStatusPorcelain:
    """Tests for porcelain v2 parsing."""

    def test_clean_tracking_branch(self):
        parsed = parse_status_porcelain(CLEAN_MAIN)
        assert parsed['branch'] == "main"
        assert parsed['oid'] == "1a2b3c4d5e6f"
        assert parsed['upstream'] == "origin/main"
        assert (parsed['ahead'], parsed['behind']) == (0, 0)
        assert not (parsed['staged'] or parsed['unstaged'] or parsed['untracked'])

    def test_ahead_and_behind(self):
        parsed = parse_status_porcelain(
            "# branch.oid abc\n# branch.head dev\n# branch.upstream origin/dev\n# branch.ab +2 -3\n"
        )
        assert (parsed['ahead'], parsed['behind']) == (2, 3)

    def test_change_flags(self):
        output = CLEAN_MAIN + "\n".join([
            "1 M. N... 100644 100644 100644 aaa bbb staged.txt",
            "1 .M N... 100644 100644 100644 aaa bbb unstaged.txt",
            "? new.txt",
        ])
        parsed = parse_status_porcelain(output)
        assert parsed['staged'] and parsed['unstaged'] and parsed['untracked']

    def test_rename_entry_is_staged(self):
        output = CLEAN_MAIN + "2 R. N... 100644 100644 100644 aaa bbb R100 new.txt\told.txt\n"
        parsed = parse_status_porcelain(output)
        assert parsed['staged']
        assert not parsed['unstaged']

    def test_unmerged_entry_is_unstaged(self):
        output = CLEAN_MAIN + "u UU N... 100644 100644 100644 100644 a b c conflict.txt\n"
        assert parse_status_porcelain(output)['unstaged']

    def test_no_upstream(self):
        parsed = parse_status_porcelain("# branch.oid abc\n# branch.head topic\n")
        assert parsed['upstream'] is None
        assert parsed['ahead'] is None

    def test_detached_head(self):
        parsed = parse_status_porcelain("# branch.oid abc\n# branch.head (detached)\n")
        assert parsed['branch'] == DETACHED_BRANCH

    def test_initial_commit(self):
        parsed = parse_status_porcelain("# branch.oid (initial)\n# branch.head main\n")
        assert parsed['oid'] is None
        assert parsed['branch'] == "main"


class TestClassifyGitError:
    """Tests for stderr classification."""

    @pytest.mark.parametrize("stderr, kind", [
        ("fatal: not a git repository (or any of the parent directories): .git", ErrorKind.NOT_A_REPOSITORY),
        ("error: open(\".git/index\"): Permission denied", ErrorKind.PERMISSION_DENIED),
        ("fatal: detected dubious ownership in repository at '/r'", ErrorKind.PERMISSION_DENIED),
        ("fatal: your current branch 'main' does not have any commits yet", ErrorKind.NO_COMMITS),
        ("fatal: bad object HEAD", ErrorKind.CORRUPTED),
        ("", ErrorKind.CORRUPTED),
    ])
    def test_classification(self, stderr, kind):
        assert classify_git_error(stderr) is kind


class TestGitClientMocked:
    """GitClient with subprocess.run mocked out."""

    def setup_method(self):
        self.client = GitClient(timeout=5)

    def test_inspect_builds_status(self, tmp_path):
        outputs = [
            completed(stdout=CLEAN_MAIN.replace("+0 -0", "+2 -0") + "? scratch.txt\n"),
            completed(stdout="Add feature\n"),
        ]
        with patch('repostat.infra.git_client.subprocess.run', side_effect=outputs) as mock_run:
            status = self.client.inspect(str(tmp_path))

        assert status.branch == "main"
        assert status.untracked
        assert status.distance is Distance.AHEAD
        assert status.ahead == 2
        assert status.remote_name == "origin/main"
        assert status.last_commit_subject == "Add feature"

        first_call = mock_run.call_args_list[0]
        assert first_call.args[0][:2] == ["git", "status"]
        assert first_call.kwargs['cwd'] == str(tmp_path)
        assert first_call.kwargs['timeout'] == 5
        env = first_call.kwargs['env']
        assert env['LC_ALL'] == 'C'
        assert env['GIT_OPTIONAL_LOCKS'] == '0'
        assert env['GIT_CEILING_DIRECTORIES'] == str(tmp_path.parent)

    def test_no_upstream_status(self, tmp_path):
        outputs = [
            completed(stdout="# branch.oid abc\n# branch.head topic\n"),
            completed(stdout="WIP\n"),
        ]
        with patch('repostat.infra.git_client.subprocess.run', side_effect=outputs):
            status = self.client.inspect(str(tmp_path))

        assert status.distance is Distance.NO_UPSTREAM
        assert status.remote_name is None

    def test_missing_path(self, tmp_path):
        with pytest.raises(InspectionError) as exc_info:
            self.client.inspect(str(tmp_path / "gone"))
        assert exc_info.value.kind is ErrorKind.NOT_A_REPOSITORY

    def test_file_path(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")
        with pytest.raises(InspectionError) as exc_info:
            self.client.inspect(str(target))
        assert exc_info.value.kind is ErrorKind.NOT_A_REPOSITORY

    def test_git_failure_is_classified(self, tmp_path):
        failure = completed(
            stderr="fatal: not a git repository (or any of the parent directories): .git\n",
            returncode=128,
        )
        with patch('repostat.infra.git_client.subprocess.run', return_value=failure):
            with pytest.raises(InspectionError) as exc_info:
                self.client.inspect(str(tmp_path))

        assert exc_info.value.kind is ErrorKind.NOT_A_REPOSITORY
        assert exc_info.value.message == "not a git repository (or any of the parent directories): .git"

    def test_no_commits(self, tmp_path):
        with patch('repostat.infra.git_client.subprocess.run',
                   return_value=completed(stdout="# branch.oid (initial)\n# branch.head main\n")):
            with pytest.raises(InspectionError) as exc_info:
                self.client.inspect(str(tmp_path))
        assert exc_info.value.kind is ErrorKind.NO_COMMITS

    def test_timeout(self, tmp_path):
        with patch('repostat.infra.git_client.subprocess.run',
                   side_effect=subprocess.TimeoutExpired(cmd="git", timeout=5)):
            with pytest.raises(InspectionError) as exc_info:
                self.client.inspect(str(tmp_path))
        assert exc_info.value.kind is ErrorKind.TIMEOUT
        assert "5s" in exc_info.value.message

    def test_git_not_installed(self, tmp_path):
        client = GitClient(git="definitely-not-git")
        error = FileNotFoundError(2, "No such file or directory", "definitely-not-git")
        with patch('repostat.infra.git_client.subprocess.run', side_effect=error):
            with pytest.raises(InspectionError) as exc_info:
                client.inspect(str(tmp_path))
        assert exc_info.value.kind is ErrorKind.BACKEND_UNAVAILABLE

    def test_permission_denied(self, tmp_path):
        with patch('repostat.infra.git_client.subprocess.run', side_effect=PermissionError("denied")):
            with pytest.raises(InspectionError) as exc_info:
                self.client.inspect(str(tmp_path))
        assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED

    def test_fetch_runs_first_when_enabled(self, tmp_path):
        client = GitClient(fetch=True)
        outputs = [completed(), completed(stdout=CLEAN_MAIN), completed(stdout="msg\n")]
        with patch('repostat.infra.git_client.subprocess.run', side_effect=outputs) as mock_run:
            client.inspect(str(tmp_path))

        commands = [c.args[0][1] for c in mock_run.call_args_list]
        assert commands == ["fetch", "status", "log"]

    def test_fetch_failure_does_not_fail_inspection(self, tmp_path):
        client = GitClient(fetch=True)
        outputs = [
            completed(stderr="fatal: unable to access remote\n", returncode=128),
            completed(stdout=CLEAN_MAIN),
            completed(stdout="msg\n"),
        ]
        with patch('repostat.infra.git_client.subprocess.run', side_effect=outputs):
            status = client.inspect(str(tmp_path))
        assert status.distance is Distance.SAME

    def test_fetch_returns_false_on_failure(self, tmp_path):
        with patch('repostat.infra.git_client.subprocess.run',
                   return_value=completed(returncode=1, stderr="error\n")):
            assert self.client.fetch(str(tmp_path)) is False

    def test_inspect_ref_uses_path(self, tmp_path):
        self.client.inspect = MagicMock(return_value="status")
        assert self.client.inspect_ref(RepositoryRef("r", str(tmp_path))) == "status"
        self.client.inspect.assert_called_once_with(str(tmp_path))

    def test_fetch_never_prompts(self, tmp_path, monkeypatch):
        monkeypatch.delenv('GIT_SSH_COMMAND', raising=False)
        client = GitClient(fetch=True)
        outputs = [completed(), completed(stdout=CLEAN_MAIN), completed(stdout="msg\n")]
        with patch('repostat.infra.git_client.subprocess.run', side_effect=outputs) as mock_run:
            client.inspect(str(tmp_path))

        for call in mock_run.call_args_list:
            assert call.kwargs['stdin'] is subprocess.DEVNULL
            env = call.kwargs['env']
            assert env['GIT_TERMINAL_PROMPT'] == '0'
            assert env['GIT_SSH_COMMAND'] == 'ssh -o BatchMode=yes'

    def test_custom_ssh_command_is_kept(self, tmp_path, monkeypatch):
        monkeypatch.setenv('GIT_SSH_COMMAND', 'ssh -i ~/.ssh/deploy')
        with patch('repostat.infra.git_client.subprocess.run',
                   return_value=completed()) as mock_run:
            self.client.fetch(str(tmp_path))

        env = mock_run.call_args.kwargs['env']
        assert env['GIT_SSH_COMMAND'] == 'ssh -i ~/.ssh/deploy -o BatchMode=yes'


requires_git = pytest.mark.skipif(shutil.which('git') is None, reason="git executable not available")


def git(path, *args):
    subprocess.run(
        ['git', '-c', 'user.name=Test', '-c', 'user.email=test@example.com',
         '-c', 'commit.gpgsign=false'] + list(args),
        cwd=path, check=True, capture_output=True,
    )


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    git(path, 'init', '--quiet')
    git(path, 'symbolic-ref', 'HEAD', 'refs/heads/main')
    (path / "README.md").write_text("hello\n")
    git(path, 'add', 'README.md')
    git(path, 'commit', '--quiet', '-m', 'Initial commit')
    return path


@requires_git
class TestGitClientIntegration:
    """GitClient against real repositories."""

    def test_clean_repository(self, repo):
        status = GitClient().inspect(str(repo))
        assert status.branch == "main"
        assert status.symbols == "   "
        assert status.distance is Distance.NO_UPSTREAM
        assert status.last_commit_subject == "Initial commit"

    def test_staged_and_untracked(self, repo):
        (repo / "staged.txt").write_text("s\n")
        git(repo, 'add', 'staged.txt')
        (repo / "untracked.txt").write_text("u\n")

        status = GitClient().inspect(str(repo))
        assert status.symbols == "+_ "

    def test_unstaged(self, repo):
        (repo / "README.md").write_text("changed\n")
        assert GitClient().inspect(str(repo)).symbols == "*  "

    def test_ahead_of_upstream(self, repo, tmp_path):
        remote = tmp_path / "remote.git"
        git(tmp_path, 'init', '--quiet', '--bare', str(remote))
        git(repo, 'remote', 'add', 'origin', str(remote))
        git(repo, 'push', '--quiet', '-u', 'origin', 'main')
        git(repo, 'commit', '--quiet', '--allow-empty', '-m', 'Second')
        git(repo, 'commit', '--quiet', '--allow-empty', '-m', 'Third')

        status = GitClient().inspect(str(repo))
        assert status.distance is Distance.AHEAD
        assert status.ahead == 2
        assert status.remote_name == "origin/main"
        assert status.last_commit_subject == "Third"

    def test_inspection_does_not_modify_repository(self, repo):
        (repo / "README.md").write_text("changed\n")
        index = repo / ".git" / "index"
        before = (index.read_bytes(), os.stat(index).st_mtime_ns)

        GitClient().inspect(str(repo))

        assert (index.read_bytes(), os.stat(index).st_mtime_ns) == before

    def test_plain_directory_is_not_a_repository(self, repo, tmp_path):
        plain = repo / "subdir"
        plain.mkdir()
        with pytest.raises(InspectionError) as exc_info:
            GitClient().inspect(str(plain))
        assert exc_info.value.kind is ErrorKind.NOT_A_REPOSITORY

    def test_repository_without_commits(self, tmp_path):
        path = tmp_path / "empty"
        path.mkdir()
        git(path, 'init', '--quiet')
        git(path, 'symbolic-ref', 'HEAD', 'refs/heads/main')

        with pytest.raises(InspectionError) as exc_info:
            GitClient().inspect(str(path))
        assert exc_info.value.kind is ErrorKind.NO_COMMITS
