"""Gateway backed by the git command line."""

import os
import subprocess
from branchflow.utils.errors import GatewayFailure
from branchflow.utils.gateway import VCSGateway, MergeStrategy

class GitGateway(VCSGateway):
    """Run git commands against a local clone of the remote."""

    def __init__(self, repo_dir, remote='origin', timeout=None, author_name=None,
                 author_email=None, debug_logger=None):
        """Initialize the git gateway.

        Args:
            repo_dir (str): Path to the working clone
            remote (str): Remote name
            timeout (float, optional): Per-command timeout in seconds
            author_name (str, optional): Committer name for merges and cherry-picks
            author_email (str, optional): Committer email for merges and cherry-picks
            debug_logger (DebugLogger, optional): Debug logger instance
        """
        self.repo_dir = repo_dir
        self.remote = remote
        self.timeout = timeout
        self.author_name = author_name
        self.author_email = author_email
        self.logger = debug_logger

    def _run(self, operation, args, check=True):
        """Run a git command.

        Args:
            operation (str): Operation name reported on failure
            args (list): Arguments after 'git'
            check (bool): Raise GatewayFailure on a non-zero exit

        Returns:
            subprocess.CompletedProcess: The finished process
        """
        command = ['git']
        if self.author_name:
            command += ['-c', f'user.name={self.author_name}']
        if self.author_email:
            command += ['-c', f'user.email={self.author_email}']
        command += args

        if self.logger:
            self.logger.log(f"    $ git {' '.join(args)}")

        try:
            proc = subprocess.run(
                command,
                cwd=self.repo_dir,
                text=True,
                capture_output=True,
                timeout=self.timeout,
                check=False
            )
        except subprocess.TimeoutExpired:
            raise GatewayFailure(operation, f"git {args[0]} timed out after {self.timeout}s")
        except OSError as e:
            raise GatewayFailure(operation, str(e))

        if check and proc.returncode != 0:
            raise GatewayFailure(operation, proc.stderr.strip() or proc.stdout.strip() or f"git {args[0]} failed")
        return proc

    def _lines(self, output):
        return [line.strip() for line in output.splitlines() if line.strip()]

    def _ref_exists(self, ref):
        return self._run('rev-parse', ['rev-parse', '-q', '--verify', ref], check=False).returncode == 0

    def _has_remote_tracking(self, branch_name):
        return self._ref_exists(f'refs/remotes/{self.remote}/{branch_name}')

    def fetch_all(self):
        self._run('fetch', ['fetch', '--prune', '--tags', '--force', self.remote])

    def list_remote_branches(self, prefix=""):
        proc = self._run('list-remote-branches', ['ls-remote', '--heads', '--refs', self.remote])
        branches = []
        for line in self._lines(proc.stdout):
            ref = line.split('\t', 1)[-1]
            name = ref[len('refs/heads/'):]
            if name.startswith(prefix):
                branches.append(name)
        return sorted(branches)

    def list_remote_tags(self, pattern="*"):
        args = ['ls-remote', '--tags', '--refs', self.remote]
        if pattern != "*":
            args.append(f'refs/tags/{pattern}')
        proc = self._run('list-remote-tags', args)
        return sorted(line.split('\t', 1)[-1][len('refs/tags/'):] for line in self._lines(proc.stdout))

    def checkout(self, ref):
        if self._has_remote_tracking(ref):
            self._run('checkout', ['checkout', '-f', '-B', ref, self.remote_ref(ref)])
        else:
            self._run('checkout', ['checkout', '-f', ref])

    def create_branch(self, name, start_point):
        self._run('create-branch', ['checkout', '-f', '-b', name, start_point])

    def push(self, ref):
        if self._ref_exists(f'refs/tags/{ref}'):
            refspec = f'refs/tags/{ref}:refs/tags/{ref}'
        else:
            refspec = f'refs/heads/{ref}:refs/heads/{ref}'
        self._run('push', ['push', self.remote, refspec])

    def tag(self, name, target, message):
        # -f: a tag left behind by a run whose push failed is replaced
        self._run('tag', ['tag', '-a', '-f', name, target, '-m', message])

    def merge(self, source, target, strategy):
        self.checkout(target)
        if strategy is MergeStrategy.TRIAL_NO_COMMIT:
            args = ['merge', '--no-commit', '--no-ff', source]
        else:
            args = ['merge', '--no-ff', '--no-edit', '-m', f"Merge {source} into {target}", source]

        proc = self._run('merge', args, check=False)
        if proc.returncode == 0:
            return True

        conflicted = self.diff_unmerged_paths()
        if strategy is MergeStrategy.TRIAL_NO_COMMIT and conflicted:
            return False

        self.abort_merge()
        if conflicted:
            raise GatewayFailure('merge', f"{source} conflicts with {target} in: {', '.join(conflicted)}")
        raise GatewayFailure('merge', proc.stderr.strip() or proc.stdout.strip())

    def abort_merge(self):
        if self._ref_exists('MERGE_HEAD'):
            self._run('abort-merge', ['merge', '--abort'])
        if self._ref_exists('CHERRY_PICK_HEAD'):
            self._run('abort-merge', ['cherry-pick', '--abort'])
        if self.has_uncommitted_changes():
            self._run('abort-merge', ['reset', '--hard', 'HEAD'])

    def cherry_pick(self, commit, onto):
        self.checkout(onto)
        args = ['cherry-pick']
        parents = self._run('cherry-pick', ['rev-list', '--parents', '-n', '1', commit]).stdout.split()
        if len(parents) > 2:
            args += ['-m', '1']
        args.append(commit)

        proc = self._run('cherry-pick', args, check=False)
        if proc.returncode == 0:
            return True
        if self.diff_unmerged_paths():
            return False
        if self._ref_exists('CHERRY_PICK_HEAD') and not self.has_uncommitted_changes():
            # Change is already on onto
            self._run('cherry-pick', ['cherry-pick', '--skip'])
            return True
        raise GatewayFailure('cherry-pick', proc.stderr.strip() or proc.stdout.strip())

    def diff_unmerged_paths(self):
        proc = self._run('diff-unmerged-paths', ['diff', '--name-only', '--diff-filter=U'])
        return self._lines(proc.stdout)

    def current_head_commit(self, ref="HEAD"):
        proc = self._run('current-head-commit', ['rev-parse', '--verify', f'{ref}^{{commit}}'])
        return proc.stdout.strip()

    def is_ancestor(self, commit, branch_name):
        proc = self._run('is-ancestor', ['merge-base', '--is-ancestor', commit, self.remote_ref(branch_name)],
                         check=False)
        if proc.returncode in (0, 1):
            return proc.returncode == 0
        raise GatewayFailure('is-ancestor', proc.stderr.strip() or f"cannot compare {commit} with {branch_name}")

    def commit_all(self, message):
        self._run('commit', ['add', '-A'])
        self._run('commit', ['commit', '--allow-empty', '--no-verify', '-m', message])
        return self.current_head_commit()

    def has_uncommitted_changes(self):
        proc = self._run('status', ['status', '--porcelain', '--untracked-files=no'])
        return bool(proc.stdout.strip())

    def __repr__(self):
        return f"GitGateway(repo={os.path.abspath(self.repo_dir)}, remote={self.remote})"
