"""Version-control capability interface."""

import enum


class MergeStrategy(enum.Enum):
    NO_FAST_FORWARD = "no-ff"
    TRIAL_NO_COMMIT = "trial"


class VCSGateway:
    """Base class for version-control gateways.

    The gateway is the single writer of repository state. Every method is
    a blocking call that either completes or raises GatewayFailure. Branch
    names passed in are remote branch names without the remote prefix.
    """

    remote = "origin"

    def fetch_all(self):
        """Fetch all branches and tags from the remote, pruning deleted refs."""
        raise NotImplementedError("Gateway must implement fetch_all")

    def list_remote_branches(self, prefix=""):
        """List remote branch names starting with prefix.

        Returns:
            list: Branch names without the remote prefix
        """
        raise NotImplementedError("Gateway must implement list_remote_branches")

    def list_remote_tags(self, pattern="*"):
        """List tag names on the remote matching a glob pattern. Never cached."""
        raise NotImplementedError("Gateway must implement list_remote_tags")

    def checkout(self, ref):
        """Check out ref. A remote branch is reset to its latest remote tip."""
        raise NotImplementedError("Gateway must implement checkout")

    def create_branch(self, name, start_point):
        """Create branch name at start_point and check it out."""
        raise NotImplementedError("Gateway must implement create_branch")

    def push(self, ref):
        """Push a branch or tag to the remote."""
        raise NotImplementedError("Gateway must implement push")

    def tag(self, name, target, message):
        """Create an annotated tag on target."""
        raise NotImplementedError("Gateway must implement tag")

    def merge(self, source, target, strategy):
        """Merge source into target.

        NO_FAST_FORWARD commits a merge on target and raises GatewayFailure
        on conflict, leaving target unchanged. TRIAL_NO_COMMIT stops before
        committing and leaves the merge in progress for abort_merge().

        Returns:
            bool: True if the merge is clean, False if it conflicts
        """
        raise NotImplementedError("Gateway must implement merge")

    def abort_merge(self):
        """Discard any in-progress merge or cherry-pick and return to the checked-out head."""
        raise NotImplementedError("Gateway must implement abort_merge")

    def cherry_pick(self, commit, onto):
        """Apply a single commit on top of branch onto.

        On conflict the conflict markers are left in the working tree.

        Returns:
            bool: True if applied cleanly, False if it conflicts
        """
        raise NotImplementedError("Gateway must implement cherry_pick")

    def diff_unmerged_paths(self):
        """List paths with unresolved conflicts in the working tree."""
        raise NotImplementedError("Gateway must implement diff_unmerged_paths")

    def current_head_commit(self, ref="HEAD"):
        """Return the commit id ref points at."""
        raise NotImplementedError("Gateway must implement current_head_commit")

    def is_ancestor(self, commit, branch_name):
        """Whether commit is reachable from the remote tip of branch_name."""
        raise NotImplementedError("Gateway must implement is_ancestor")

    def commit_all(self, message):
        """Stage everything and commit, recording an empty commit if nothing is staged."""
        raise NotImplementedError("Gateway must implement commit_all")

    def has_uncommitted_changes(self):
        raise NotImplementedError("Gateway must implement has_uncommitted_changes")

    def remote_ref(self, branch_name):
        return f"{self.remote}/{branch_name}"
