"""Tests for the git command line gateway against throwaway repositories."""

import shutil
import subprocess

import pytest

from branchflow.models.conflict import Applied, ConflictDetected
from branchflow.operations.conflict_resolver import ConflictResolver
from branchflow.utils.config import Config
from branchflow.utils.errors import GatewayFailure
from branchflow.utils.gateway import MergeStrategy
from branchflow.utils.git_gateway import GitGateway

pytestmark = pytest.mark.skipif(shutil.which('git') is None, reason="git is not installed")


def git(cwd, *args):
    return subprocess.run(['git', *args], cwd=cwd, check=True, capture_output=True, text=True).stdout.strip()


def commit_file(cwd, path, content, message):
    (cwd / path).write_text(content)
    git(cwd, 'add', path)
    git(cwd, 'commit', '-q', '-m', message)
    return git(cwd, 'rev-parse', 'HEAD')


@pytest.fixture
def repos(tmp_path, monkeypatch):
    """A bare origin with master, d1 and r1, plus a developer clone and a promoter clone."""
    monkeypatch.setenv('HOME', str(tmp_path))
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    for role in ('AUTHOR', 'COMMITTER'):
        monkeypatch.setenv(f'GIT_{role}_NAME', "Promoter")
        monkeypatch.setenv(f'GIT_{role}_EMAIL', "promoter@example.com")

    seed = tmp_path / "seed"
    seed.mkdir()
    git(seed, 'init', '-q')
    git(seed, 'symbolic-ref', 'HEAD', 'refs/heads/master')
    commit_file(seed, 'app.py', "version = 1\n", "Initial commit")
    git(seed, 'branch', 'd1')
    git(seed, 'branch', 'r1')

    git(tmp_path, 'clone', '-q', '--bare', str(seed), 'origin.git')
    git(tmp_path, 'clone', '-q', str(tmp_path / "origin.git"), 'developer')
    git(tmp_path, 'clone', '-q', str(tmp_path / "origin.git"), 'promoter')
    return tmp_path / "developer", tmp_path / "promoter"


@pytest.fixture
def git_gateway(repos):
    return GitGateway(str(repos[1]))


def push_change(developer, branch, path, content, start=None):
    """Commit on branch (optionally creating it from start) and push it to origin."""
    git(developer, 'fetch', '-q', 'origin')
    if start:
        git(developer, 'checkout', '-q', '-b', branch, f'origin/{start}')
    else:
        git(developer, 'checkout', '-q', '-B', branch, f'origin/{branch}')
    sha = commit_file(developer, path, content, f"Change {path} on {branch}")
    git(developer, 'push', '-q', 'origin', branch)
    return sha


class TestQueries:
    def test_list_remote_branches(self, git_gateway):
        assert git_gateway.list_remote_branches() == ['d1', 'master', 'r1']
        assert git_gateway.list_remote_branches('r') == ['r1']

    def test_completion_tag_round_trip(self, repos, git_gateway):
        developer, _ = repos
        git(developer, 'tag', 'r1-complete', 'origin/r1')
        git(developer, 'push', '-q', 'origin', 'r1-complete')

        assert git_gateway.list_remote_tags('r1-complete') == ['r1-complete']
        assert git_gateway.list_remote_tags('d1-complete') == []

    def test_unknown_ref(self, git_gateway):
        with pytest.raises(GatewayFailure) as excinfo:
            git_gateway.current_head_commit('origin/d9')
        assert excinfo.value.operation == 'current-head-commit'

    def test_is_ancestor(self, repos, git_gateway):
        developer, _ = repos
        change = push_change(developer, 'r1', 'app.py', "version = 1.0.1\n")
        git_gateway.fetch_all()

        base = git_gateway.current_head_commit('origin/master')
        assert git_gateway.is_ancestor(base, 'r1')
        assert git_gateway.is_ancestor(change, 'r1')
        assert not git_gateway.is_ancestor(change, 'master')

    def test_is_ancestor_of_unknown_branch(self, git_gateway):
        head = git_gateway.current_head_commit('origin/master')
        with pytest.raises(GatewayFailure) as excinfo:
            git_gateway.is_ancestor(head, 'd9')
        assert excinfo.value.operation == 'is-ancestor'


class TestMutations:
    def test_tag_and_push(self, git_gateway):
        head = git_gateway.current_head_commit('origin/r1')
        git_gateway.tag('release-r1-20240102.030405', head, "Release r1")
        git_gateway.push('release-r1-20240102.030405')
        assert 'release-r1-20240102.030405' in git_gateway.list_remote_tags()

    def test_merge_no_ff_into_master(self, repos, git_gateway):
        developer, _ = repos
        release_head = push_change(developer, 'r1', 'app.py', "version = 1.0.1\n")
        git_gateway.fetch_all()

        assert git_gateway.merge(release_head, 'master', MergeStrategy.NO_FAST_FORWARD)
        git_gateway.push('master')

        git(developer, 'fetch', '-q', 'origin')
        parents = git(developer, 'rev-list', '--parents', '-n', '1', 'origin/master').split()
        assert len(parents) == 3
        assert release_head in parents

    def test_conflicting_merge_is_aborted(self, repos, git_gateway):
        developer, promoter = repos
        release_head = push_change(developer, 'r1', 'app.py', "version = 1.0.1\n")
        push_change(developer, 'master', 'app.py', "version = 9\n")
        git_gateway.fetch_all()

        with pytest.raises(GatewayFailure) as excinfo:
            git_gateway.merge(release_head, 'master', MergeStrategy.NO_FAST_FORWARD)

        assert 'app.py' in str(excinfo.value)
        assert not git_gateway.has_uncommitted_changes()


class TestPropagation:
    def resolver(self, git_gateway):
        return ConflictResolver(Config(), git_gateway)

    def test_clean_cherry_pick(self, repos, git_gateway):
        developer, _ = repos
        push_change(developer, 'd1', 'feature.py', "feature\n")
        fix = push_change(developer, 'hotfix/r1-fix', 'app.py', "version = 1.1\n", start='r1')
        git_gateway.fetch_all()

        result = self.resolver(git_gateway).execute(fix, 'd1', '9')

        assert isinstance(result, Applied)
        git(developer, 'fetch', '-q', 'origin')
        assert git(developer, 'show', 'origin/d1:app.py') == "version = 1.1"
        assert git(developer, 'show', 'origin/d1:feature.py') == "feature"

    def test_conflict_leaves_resolution_branch(self, repos, git_gateway):
        developer, _ = repos
        dev_head = push_change(developer, 'd1', 'app.py', "version = 2\n")
        fix = push_change(developer, 'hotfix/r1-fix', 'app.py', "version = 1.1\n", start='r1')
        git_gateway.fetch_all()

        result = self.resolver(git_gateway).execute(fix, 'd1', '9')

        assert isinstance(result, ConflictDetected)
        assert result.report.conflicting_paths == frozenset({'app.py'})
        assert 'merge-hotfix-to-dev-9' in git_gateway.list_remote_branches()
        assert not git_gateway.has_uncommitted_changes()

        git(developer, 'fetch', '-q', 'origin')
        assert git(developer, 'rev-parse', 'origin/d1') == dev_head
        assert "<<<<<<<" in git(developer, 'show', 'origin/merge-hotfix-to-dev-9:app.py')
