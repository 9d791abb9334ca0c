"""Promotion action and result models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CreateRelease:
    from_dev: str
    release_id: int

    @property
    def release_branch(self):
        return f"r{self.release_id}"


@dataclass(frozen=True)
class MergeToMaster:
    from_branch: str


@dataclass(frozen=True)
class PropagateHotfix:
    hotfix_branch: str
    parent_release: str


@dataclass(frozen=True)
class AwaitReleaseCompletion:
    parent_release: str


@dataclass(frozen=True)
class Noop:
    reason: str


class ActionStatus:
    """Terminal outcomes of a branch event."""

    COMPLETED = 'completed'
    GATE_CLOSED = 'gate_closed'
    AWAITING = 'awaiting'
    NOOP = 'noop'
    CONFLICT = 'conflict'
    FAILED = 'failed'


class ActionResult:
    """Outcome of handling one branch event."""

    def __init__(self, branch_name, status, action=None, events=None, error=None):
        """Initialize an ActionResult.

        Args:
            branch_name (str): Branch the event was for
            status (str): One of the ActionStatus values
            action (optional): The action that was selected
            events (list, optional): Events emitted while handling the event
            error (Exception, optional): Failure that halted the action
        """
        self.branch_name = branch_name
        self.status = status
        self.action = action
        self.events = list(events or [])
        self.error = error

    @property
    def exit_code(self):
        return 1 if self.status == ActionStatus.FAILED else 0

    @property
    def succeeded(self):
        return self.status != ActionStatus.FAILED

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'branch_name': self.branch_name,
            'status': self.status,
            'action': type(self.action).__name__ if self.action is not None else None,
            'events': [event.kind.value for event in self.events],
            'error': str(self.error) if self.error else None
        }

    def __repr__(self):
        return f"ActionResult(branch={self.branch_name}, status={self.status})"
