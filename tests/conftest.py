"""Shared test fixtures for branch promotion.

Provides an in-memory gateway that models a remote, a local clone and a
working tree closely enough to exercise merges, cherry-picks and conflicts
without invoking git.
"""

import fnmatch
from datetime import datetime

import pytest

from branchflow.operations.conflict_resolver import ConflictResolver
from branchflow.operations.promotion_engine import PromotionEngine
from branchflow.utils.config import Config
from branchflow.utils.errors import GatewayFailure
from branchflow.utils.gateway import MergeStrategy, VCSGateway
from branchflow.utils.notifier import EventNotifier
from branchflow.utils.run_reporter import RunReporter

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)

MUTATING_OPERATIONS = {'create_branch', 'push', 'tag', 'merge', 'cherry_pick', 'commit_all'}


class FakeGateway(VCSGateway):
    """In-memory repository.

    Commits hold a full tree (path -> content). Remote branches and tags are
    what other clones see; local branches and tags only become visible after
    push(). Conflicts arise when both sides changed the same path differently.
    """

    def __init__(self):
        self.commits = {}
        self.remote_branches = {}
        self.remote_tags = {}
        self.local_branches = {}
        self.local_tags = {}
        self.head = None
        self.working_tree = {}
        self.conflicts = set()
        self.in_progress = None
        self.calls = []
        self.failures = {}
        self._counter = 0

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def new_commit(self, tree, parents, message):
        self._counter += 1
        sha = f"{self._counter:040x}"
        self.commits[sha] = {'tree': dict(tree), 'parents': list(parents), 'message': message}
        return sha

    def seed_branch(self, name, files=None, start=None, message=None):
        """Create a remote branch, optionally committing files on top of start."""
        if start is not None:
            base = self.resolve(start)
            tree = dict(self.commits[base]['tree'])
            parents = [base]
        else:
            tree, parents = {}, []
        if files is not None or not parents:
            tree.update(files or {})
            sha = self.new_commit(tree, parents, message or f"Seed {name}")
        else:
            sha = base
        self.remote_branches[name] = sha
        return sha

    def commit_on(self, branch, files, message="change"):
        """Commit files onto a remote branch as if another developer pushed it."""
        parent = self.remote_branches[branch]
        tree = dict(self.commits[parent]['tree'])
        tree.update(files)
        sha = self.new_commit(tree, [parent], message)
        self.remote_branches[branch] = sha
        return sha

    def add_remote_tag(self, name, target):
        self.remote_tags[name] = self.resolve(target)

    def fail(self, operation, message="simulated failure", when=None):
        """Make operation raise GatewayFailure, optionally only when when(*args) is true."""
        self.failures[operation] = (message, when)

    def tree_of(self, ref):
        return self.commits[self.resolve(ref)]['tree']

    def mutations(self):
        return [call for call in self.calls if call[0] in MUTATING_OPERATIONS]

    def resolve(self, ref):
        if ref == "HEAD":
            return self.local_branches[self.head]
        if ref.startswith(f"{self.remote}/") and ref[len(self.remote) + 1:] in self.remote_branches:
            return self.remote_branches[ref[len(self.remote) + 1:]]
        if ref in self.local_branches:
            return self.local_branches[ref]
        if ref in self.remote_branches:
            return self.remote_branches[ref]
        if ref in self.local_tags:
            return self.local_tags[ref]
        if ref in self.commits:
            return ref
        raise GatewayFailure('resolve', f"unknown revision {ref}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record(self, operation, *args):
        self.calls.append((operation,) + args)
        if operation in self.failures:
            message, when = self.failures[operation]
            if when is None or when(*args):
                raise GatewayFailure(operation, message)

    def _ancestors(self, sha):
        seen = set()
        stack = [sha]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.commits[current]['parents'])
        return seen

    def _merge_base(self, a, b):
        ours = self._ancestors(a)
        queue = [b]
        seen = set()
        while queue:
            current = queue.pop(0)
            if current in ours:
                return current
            if current in seen:
                continue
            seen.add(current)
            queue.extend(self.commits[current]['parents'])
        return None

    def _three_way(self, base, ours, theirs):
        merged, conflicts = {}, set()
        for path in set(base) | set(ours) | set(theirs):
            b, o, t = base.get(path), ours.get(path), theirs.get(path)
            if t == b or o == t:
                value = o
            elif o == b:
                value = t
            else:
                conflicts.add(path)
                value = f"<<<<<<< ours\n{o}=======\n{t}>>>>>>> theirs\n"
            if value is not None:
                merged[path] = value
        return merged, conflicts

    def _reset_working_tree(self):
        self.working_tree = dict(self.commits[self.local_branches[self.head]]['tree'])
        self.conflicts = set()
        self.in_progress = None

    def _commit_head(self, tree, message, extra_parents=()):
        sha = self.new_commit(tree, [self.local_branches[self.head], *extra_parents], message)
        self.local_branches[self.head] = sha
        self._reset_working_tree()
        return sha

    # ------------------------------------------------------------------
    # VCSGateway
    # ------------------------------------------------------------------

    def fetch_all(self):
        self._record('fetch_all')

    def list_remote_branches(self, prefix=""):
        self._record('list_remote_branches', prefix)
        return sorted(name for name in self.remote_branches if name.startswith(prefix))

    def list_remote_tags(self, pattern="*"):
        self._record('list_remote_tags', pattern)
        return sorted(name for name in self.remote_tags if fnmatch.fnmatchcase(name, pattern))

    def checkout(self, ref):
        self._record('checkout', ref)
        if ref in self.remote_branches:
            self.local_branches[ref] = self.remote_branches[ref]
        elif ref not in self.local_branches:
            raise GatewayFailure('checkout', f"pathspec '{ref}' did not match")
        self.head = ref
        self._reset_working_tree()

    def create_branch(self, name, start_point):
        self._record('create_branch', name, start_point)
        if name in self.local_branches:
            raise GatewayFailure('create-branch', f"a branch named '{name}' already exists")
        self.local_branches[name] = self.resolve(start_point)
        self.head = name
        self._reset_working_tree()

    def push(self, ref):
        self._record('push', ref)
        if ref in self.local_tags:
            self.remote_tags[ref] = self.local_tags[ref]
        elif ref in self.local_branches:
            self.remote_branches[ref] = self.local_branches[ref]
        else:
            raise GatewayFailure('push', f"src refspec {ref} does not match any")

    def tag(self, name, target, message):
        self._record('tag', name, target, message)
        if name in self.remote_tags:
            raise GatewayFailure('tag', f"tag '{name}' already exists")
        self.local_tags[name] = self.resolve(target)

    def merge(self, source, target, strategy):
        self._record('merge', source, target, strategy)
        self.checkout(target)
        ours_sha = self.local_branches[target]
        theirs_sha = self.resolve(source)
        if theirs_sha in self._ancestors(ours_sha):
            return True

        base_sha = self._merge_base(ours_sha, theirs_sha)
        base = self.commits[base_sha]['tree'] if base_sha else {}
        merged, conflicts = self._three_way(base, self.commits[ours_sha]['tree'], self.commits[theirs_sha]['tree'])

        if strategy is MergeStrategy.TRIAL_NO_COMMIT:
            self.working_tree = merged
            self.conflicts = conflicts
            self.in_progress = 'merge'
            return not conflicts

        if conflicts:
            raise GatewayFailure('merge', f"{source} conflicts with {target} in: {', '.join(sorted(conflicts))}")
        self._commit_head(merged, f"Merge {source} into {target}", extra_parents=[theirs_sha])
        return True

    def abort_merge(self):
        self._record('abort_merge')
        self._reset_working_tree()

    def cherry_pick(self, commit, onto):
        self._record('cherry_pick', commit, onto)
        self.checkout(onto)
        picked = self.commits[self.resolve(commit)]
        parent_tree = self.commits[picked['parents'][0]]['tree'] if picked['parents'] else {}
        ours = self.working_tree
        merged, conflicts = self._three_way(parent_tree, ours, picked['tree'])

        if conflicts:
            self.working_tree = merged
            self.conflicts = conflicts
            self.in_progress = 'cherry-pick'
            return False
        if merged != ours:
            self._commit_head(merged, picked['message'])
        return True

    def diff_unmerged_paths(self):
        self._record('diff_unmerged_paths')
        return sorted(self.conflicts)

    def current_head_commit(self, ref="HEAD"):
        self._record('current_head_commit', ref)
        return self.resolve(ref)

    def is_ancestor(self, commit, branch_name):
        self._record('is_ancestor', commit, branch_name)
        tip = self.remote_branches.get(branch_name) or self.resolve(branch_name)
        return self.resolve(commit) in self._ancestors(tip)

    def commit_all(self, message):
        self._record('commit_all', message)
        return self._commit_head(self.working_tree, message)

    def has_uncommitted_changes(self):
        if self.head is None:
            return False
        return bool(self.conflicts) or self.working_tree != self.commits[self.local_branches[self.head]]['tree']


def make_gateway():
    """master, d1 and r1 share one base commit."""
    gateway = FakeGateway()
    base = gateway.seed_branch('master', {'app.py': "version = 1\n", 'README': "readme\n"})
    gateway.seed_branch('d1', start=base)
    gateway.seed_branch('r1', start=base)
    return gateway


@pytest.fixture
def gateway():
    return make_gateway()


@pytest.fixture
def config(tmp_path):
    cfg = Config()
    cfg.repo_dir = str(tmp_path)
    cfg.output_directory = str(tmp_path / "output")
    cfg.run_id = "42"
    return cfg


@pytest.fixture
def reporter():
    return RunReporter("42")


@pytest.fixture
def notifier(reporter):
    return EventNotifier(run_id="42", reporter=reporter, clock=lambda: FIXED_NOW)


@pytest.fixture
def engine(config, gateway, notifier, reporter):
    return PromotionEngine(config, gateway, notifier, reporter=reporter, clock=lambda: FIXED_NOW)


@pytest.fixture
def resolver(config, gateway):
    return ConflictResolver(config, gateway)


ENV_VARS = [
    'BRANCHFLOW_REPO_DIR', 'BRANCHFLOW_REMOTE', 'BRANCHFLOW_WEBHOOK_URL', 'BRANCHFLOW_WEBHOOK_TOKEN',
    'BRANCHFLOW_OUTPUT_DIR', 'BRANCHFLOW_DEBUG', 'BRANCHFLOW_GIT_TIMEOUT', 'BRANCHFLOW_RUN_ID',
    'BRANCHFLOW_AUTHOR_NAME', 'BRANCHFLOW_AUTHOR_EMAIL', 'BUILD_NUMBER',
]


@pytest.fixture
def clean_env(monkeypatch):
    """Unset configuration variables; anything load_dotenv() sets is removed afterwards."""
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
