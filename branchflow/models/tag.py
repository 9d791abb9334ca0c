"""Tag and generated-artifact naming."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

COMPLETION_SUFFIX = "-complete"
TIMESTAMP_FORMAT = "%Y%m%d.%H%M%S"
RESOLUTION_BRANCH_PREFIX = "merge-hotfix-to-dev-"


@dataclass(frozen=True)
class CompletionTag:
    """Human-created marker saying a branch is ready for promotion."""

    target_branch: str
    created_at: Optional[datetime] = None

    @property
    def name(self):
        return completion_tag_name(self.target_branch)

    @classmethod
    def from_tag_name(cls, tag_name, created_at=None):
        """Create CompletionTag from a tag name, None if it is not a completion tag."""
        if not tag_name.endswith(COMPLETION_SUFFIX) or len(tag_name) == len(COMPLETION_SUFFIX):
            return None
        return cls(target_branch=tag_name[:-len(COMPLETION_SUFFIX)], created_at=created_at)


def completion_tag_name(branch_name):
    return f"{branch_name}{COMPLETION_SUFFIX}"


def format_timestamp(moment):
    return moment.strftime(TIMESTAMP_FORMAT)


def release_tag_name(release_branch, moment):
    """Immutable record of a release shipped to master, e.g. release-r3-20240101.120000."""
    return f"release-{release_branch}-{format_timestamp(moment)}"


def hotfix_tag_name(hotfix_suffix, moment):
    """Immutable record of a shipped hotfix, e.g. hotfix-r1-login-fix-20240101.120000."""
    return f"hotfix-{hotfix_suffix}-{format_timestamp(moment)}"


def resolution_branch_name(run_id):
    return f"{RESOLUTION_BRANCH_PREFIX}{run_id}"


def tag_command_text(branch_name, remote="origin"):
    """Exact commands an operator runs to mark a branch complete."""
    tag = completion_tag_name(branch_name)
    return f"git tag {tag} {remote}/{branch_name} && git push {remote} {tag}"
