"""Conflict report and propagation result models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ConflictReport:
    """Hotfix-to-development conflict left on a resolution branch.

    An empty conflicting_paths means a conflict was detected but the
    simulation could not name the files.
    """

    source_ref: str
    target_branch: str
    resolution_branch: str
    conflicting_paths: frozenset = field(default_factory=frozenset)

    def next_steps(self, remote="origin"):
        """Commands a developer runs to finish the merge by hand."""
        return (
            f"git fetch {remote} && git checkout {self.resolution_branch} && "
            f"resolve conflicts in {', '.join(sorted(self.conflicting_paths)) or 'the files git reports'}, "
            f"then merge {self.resolution_branch} into {self.target_branch}"
        )

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'source_ref': self.source_ref,
            'target_branch': self.target_branch,
            'resolution_branch': self.resolution_branch,
            'conflicting_paths': sorted(self.conflicting_paths)
        }


class PropagationResult:
    """Base for the three outcomes of a hotfix-to-dev propagation."""


class Applied(PropagationResult):
    def __init__(self, target_branch, commit):
        self.target_branch = target_branch
        self.commit = commit

    def __repr__(self):
        return f"Applied(target={self.target_branch}, commit={self.commit})"


class ConflictDetected(PropagationResult):
    def __init__(self, report):
        self.report = report

    def __repr__(self):
        return f"ConflictDetected(branch={self.report.resolution_branch})"


class Failed(PropagationResult):
    def __init__(self, error):
        self.error = error

    def __repr__(self):
        return f"Failed(error={self.error})"
