"""Branch sweep operation."""

from branchflow.operations.base import Operation
from branchflow.operations.completion_gate import resolve_parent_release
from branchflow.models.branch import BranchKind, MASTER_BRANCH, classify
from branchflow.models.tag import CompletionTag
from branchflow.utils.errors import NoReleaseBranch

# Hotfixes first so a release they complete is not promoted twice
SWEEP_ORDER = {BranchKind.HOTFIX: 0, BranchKind.RELEASE: 1, BranchKind.DEVELOPMENT: 2}


class BranchSweep(Operation):
    """Handle every promotable branch on the remote, one event at a time.

    Mirrors a multibranch pipeline scan: each d<n>, r<n> and hotfix/* branch
    that carries its completion tag and has not been promoted yet becomes
    one branch event. Branches without a completion tag are left alone so a
    sweep does not flood the channel with reminders.
    """

    def execute(self, engine, run_id, progress=None):
        """Execute the sweep.

        Args:
            engine (PromotionEngine): Engine handling each branch event
            run_id (str): Run id; each event gets a distinct '{run_id}-{n}'
            progress (SweepProgress, optional): Progress display

        Returns:
            list: ActionResult per handled branch
        """
        self.gateway.fetch_all()
        candidates = self.discover()

        self.log(f"Sweep found {len(candidates)} branches awaiting promotion")
        if progress:
            progress.start(len(candidates))

        results = []
        for index, descriptor in enumerate(candidates, 1):
            result = None
            # Re-checked per branch: an earlier event may have promoted this one
            if self.already_promoted(descriptor):
                self.log(f"  Skipping {descriptor.raw_name}: promoted earlier in this sweep")
            else:
                result = engine.execute(descriptor.raw_name, run_id=f"{run_id}-{index}")
                results.append(result)

            if progress:
                progress.advance(result)

        if progress:
            progress.finish()
        return results

    def discover(self):
        """List completed, not yet promoted branches in sweep order.

        Returns:
            list: BranchDescriptor objects
        """
        completed = set()
        for tag_name in self.gateway.list_remote_tags():
            tag = CompletionTag.from_tag_name(tag_name)
            if tag:
                completed.add(tag.target_branch)

        candidates = []
        for name in self.gateway.list_remote_branches():
            descriptor = classify(name)
            if descriptor.kind not in SWEEP_ORDER or name not in completed:
                continue
            if self.already_promoted(descriptor):
                continue
            candidates.append(descriptor)

        return sorted(candidates, key=lambda d: (SWEEP_ORDER[d.kind], d.sequence_id or 0, d.raw_name))

    def already_promoted(self, descriptor):
        """Whether this branch's promotion has landed.

        d<n> has its r<n> branch. r<n> and hotfix branches count as promoted
        only once their head is reachable from master or the parent release,
        so a run that tagged but failed to merge is retried.
        """
        if descriptor.kind is BranchKind.DEVELOPMENT:
            release = f"r{descriptor.sequence_id}"
            return release in self.gateway.list_remote_branches(release)

        head = self.gateway.current_head_commit(self.gateway.remote_ref(descriptor.raw_name))
        if descriptor.kind is BranchKind.RELEASE:
            return self.gateway.is_ancestor(head, MASTER_BRANCH)

        try:
            descriptor = resolve_parent_release(descriptor, self.gateway)
        except NoReleaseBranch:
            # Left for the engine to report
            return False
        parent = descriptor.parent_release_name
        if parent not in self.gateway.list_remote_branches(parent):
            return False
        return self.gateway.is_ancestor(head, parent)
