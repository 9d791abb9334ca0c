"""Branch data model and naming rules."""

import enum
import re
from dataclasses import dataclass, replace
from typing import Optional

MASTER_BRANCH = "master"
HOTFIX_PREFIX = "hotfix/"

DEVELOPMENT_PATTERN = re.compile(r"^d(\d+)$")
RELEASE_PATTERN = re.compile(r"^r(\d+)$")
RELEASE_TOKEN = re.compile(r"r(\d+)")


class BranchKind(enum.Enum):
    """Lifecycle stage a branch name belongs to."""

    DEVELOPMENT = "development"
    RELEASE = "release"
    HOTFIX = "hotfix"
    MASTER = "master"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class BranchDescriptor:
    """Typed view of a branch name.

    Built fresh for every event and never persisted. A hotfix's parent
    release is filled in through with_parent_release(), which returns a
    new descriptor instead of changing this one.
    """

    raw_name: str
    kind: BranchKind
    sequence_id: Optional[int] = None
    parent_release_id: Optional[int] = None

    @property
    def is_gated(self):
        return self.kind in (BranchKind.DEVELOPMENT, BranchKind.RELEASE, BranchKind.HOTFIX)

    @property
    def hotfix_suffix(self):
        """Hotfix name without the 'hotfix/' prefix, None for other kinds."""
        if self.kind is not BranchKind.HOTFIX:
            return None
        return self.raw_name[len(HOTFIX_PREFIX):]

    @property
    def parent_release_name(self):
        if self.parent_release_id is None:
            return None
        return f"r{self.parent_release_id}"

    def with_parent_release(self, release_id):
        """Return a copy with the parent release resolved.

        Args:
            release_id (int): Sequence number of the parent release

        Returns:
            BranchDescriptor: The resolved descriptor

        Raises:
            ValueError: If this is not a hotfix or the parent is already set
        """
        if self.kind is not BranchKind.HOTFIX:
            raise ValueError(f"{self.raw_name} is not a hotfix branch")
        if self.parent_release_id is not None:
            raise ValueError(f"Parent release of {self.raw_name} is already r{self.parent_release_id}")
        return replace(self, parent_release_id=release_id)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'branch_name': self.raw_name,
            'kind': self.kind.value,
            'sequence_id': self.sequence_id,
            'parent_release_id': self.parent_release_id
        }


def classify(name):
    """Classify a branch name.

    Rules are checked in priority order: master, d{n}, r{n}, hotfix/*.
    Anything else is UNKNOWN. Matching is case-sensitive.

    Args:
        name (str): Branch name as it appears on the remote

    Returns:
        BranchDescriptor: Descriptor for the name
    """
    if name == MASTER_BRANCH:
        return BranchDescriptor(raw_name=name, kind=BranchKind.MASTER)

    match = DEVELOPMENT_PATTERN.match(name)
    if match:
        return BranchDescriptor(raw_name=name, kind=BranchKind.DEVELOPMENT, sequence_id=int(match.group(1)))

    match = RELEASE_PATTERN.match(name)
    if match:
        return BranchDescriptor(raw_name=name, kind=BranchKind.RELEASE, sequence_id=int(match.group(1)))

    if name.startswith(HOTFIX_PREFIX) and len(name) > len(HOTFIX_PREFIX):
        token = RELEASE_TOKEN.search(name[len(HOTFIX_PREFIX):])
        parent = int(token.group(1)) if token else None
        return BranchDescriptor(raw_name=name, kind=BranchKind.HOTFIX, parent_release_id=parent)

    return BranchDescriptor(raw_name=name, kind=BranchKind.UNKNOWN)
