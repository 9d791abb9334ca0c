"""Error types raised by branch promotion."""


class PromotionError(Exception):
    """Base exception for all promotion errors.

    next_steps holds copy-pasteable recovery commands once the failing
    action has filled them in.
    """

    next_steps = None


class GatewayFailure(PromotionError):
    """A version-control operation failed (network, auth, non-conflict merge failure)."""

    def __init__(self, operation, message):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class NoReleaseBranch(PromotionError):
    """A hotfix has no parent release and no release branch exists on the remote."""

    def __init__(self, hotfix_branch):
        self.hotfix_branch = hotfix_branch
        super().__init__(
            f"Cannot resolve a parent release for {hotfix_branch}: no r<n> branch exists on the remote. "
            f"Rename the hotfix to hotfix/r<n>-<description> or push the release branch first."
        )


class RepositoryBusy(PromotionError):
    """Another promotion run holds the repository lock."""

    def __init__(self, lock_path):
        self.lock_path = lock_path
        super().__init__(f"Another promotion run holds {lock_path}")
