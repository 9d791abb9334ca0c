"""Completion gate and branch resolution queries.

These are plain query functions over the gateway. Nothing here is cached:
a completion tag pushed seconds ago must be visible on the next call.
"""

from branchflow.models.branch import BranchKind, classify
from branchflow.models.tag import CompletionTag
from branchflow.utils.errors import NoReleaseBranch


def is_complete(descriptor, gateway):
    """Check whether a branch carries its completion tag.

    Args:
        descriptor (BranchDescriptor): Branch to check
        gateway (VCSGateway): Gateway to query

    Returns:
        bool: True for master, otherwise True iff '{name}-complete' exists on the remote
    """
    if descriptor.kind is BranchKind.MASTER:
        return True
    tag = CompletionTag(descriptor.raw_name).name
    return tag in gateway.list_remote_tags(tag)


def _latest(gateway, kind, prefix):
    candidates = [classify(name) for name in gateway.list_remote_branches(prefix)]
    candidates = [d for d in candidates if d.kind is kind]
    if not candidates:
        return None
    return max(candidates, key=lambda d: d.sequence_id)


def resolve_parent_release(descriptor, gateway):
    """Resolve the release a hotfix belongs to.

    A release token in the hotfix name wins. Otherwise the release branch
    with the highest sequence number on the remote is used.

    Args:
        descriptor (BranchDescriptor): Hotfix branch
        gateway (VCSGateway): Gateway to query

    Returns:
        BranchDescriptor: The hotfix descriptor with parent_release_id set

    Raises:
        NoReleaseBranch: If the name has no token and no release branch exists
    """
    if descriptor.parent_release_id is not None:
        return descriptor
    latest = _latest(gateway, BranchKind.RELEASE, 'r')
    if latest is None:
        raise NoReleaseBranch(descriptor.raw_name)
    return descriptor.with_parent_release(latest.sequence_id)


def resolve_current_dev_branch(gateway):
    """The development branch with the highest sequence number, or None."""
    return _latest(gateway, BranchKind.DEVELOPMENT, 'd')
