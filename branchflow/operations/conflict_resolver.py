"""Hotfix-to-development propagation with conflict detection."""

from branchflow.operations.base import Operation
from branchflow.models.conflict import Applied, ConflictDetected, ConflictReport, Failed
from branchflow.models.tag import resolution_branch_name
from branchflow.utils.errors import GatewayFailure
from branchflow.utils.gateway import MergeStrategy

class ConflictResolver(Operation):
    """Apply a commit to a branch, or leave a resolution branch when it conflicts.

    Stateless apart from its collaborators, so an interrupted run can simply
    be started again with a new run id.
    """

    def execute(self, source_commit, target_branch, run_id):
        """Propagate source_commit into target_branch.

        1. Check out target_branch at its latest remote tip.
        2. Trial-merge source_commit without committing, then always abort.
        3. Clean: cherry-pick source_commit onto target_branch and push.
        4. Conflict: cherry-pick onto merge-hotfix-to-dev-{run_id} instead,
           commit whatever is left (conflict markers included) and push it.
           target_branch itself is not touched.

        Args:
            source_commit (str): Commit to propagate
            target_branch (str): Development branch to propagate into
            run_id (str): Distinct id of this pipeline run

        Returns:
            PropagationResult: Applied, ConflictDetected or Failed
        """
        self.log(f"Propagating {source_commit[:12]} into {target_branch}")
        try:
            self.gateway.checkout(target_branch)
            target_tip = self.gateway.current_head_commit()

            if self._trial_merge(source_commit, target_branch):
                applied = self._apply(source_commit, target_branch)
                if applied:
                    return applied
            return self._materialize_conflict(source_commit, target_branch, target_tip, run_id)

        except GatewayFailure as e:
            self.log(f"ERROR: Propagation into {target_branch} failed at {e.operation}: {e.message}")
            return Failed(e)

    def _trial_merge(self, source_commit, target_branch):
        """Merge without committing and abort no matter what happened."""
        try:
            clean = self.gateway.merge(source_commit, target_branch, MergeStrategy.TRIAL_NO_COMMIT)
        finally:
            self.gateway.abort_merge()
        self.log(f"  Trial merge into {target_branch}: {'clean' if clean else 'conflicts'}")
        return clean

    def _apply(self, source_commit, target_branch):
        if not self.gateway.cherry_pick(source_commit, target_branch):
            # Merge and cherry-pick can disagree; nothing may be left behind on target
            self.gateway.abort_merge()
            self.log(f"  Cherry-pick onto {target_branch} conflicts despite a clean trial merge")
            return None
        self.gateway.push(target_branch)
        commit = self.gateway.current_head_commit()
        self.log(f"  ✓ Applied {source_commit[:12]} to {target_branch} as {commit[:12]}")
        return Applied(target_branch, commit)

    def _materialize_conflict(self, source_commit, target_branch, target_tip, run_id):
        resolution_branch = resolution_branch_name(run_id)
        self.gateway.create_branch(resolution_branch, target_tip)

        # Expected to conflict; the markers are the starting point for a human
        picked = self.gateway.cherry_pick(source_commit, resolution_branch)
        conflicting_paths = [] if picked else self.gateway.diff_unmerged_paths()

        self.gateway.commit_all(
            f"Unresolved cherry-pick of {source_commit} onto {target_branch}\n\n"
            f"Conflicting paths:\n" + ''.join(f"  {path}\n" for path in conflicting_paths)
        )
        self.gateway.push(resolution_branch)
        self.gateway.checkout(target_branch)

        report = ConflictReport(
            source_ref=source_commit,
            target_branch=target_branch,
            resolution_branch=resolution_branch,
            conflicting_paths=frozenset(conflicting_paths)
        )
        self.log(f"  ✗ Conflict propagating into {target_branch}; pushed {resolution_branch} "
                 f"({len(conflicting_paths)} conflicting paths)")
        return ConflictDetected(report)
