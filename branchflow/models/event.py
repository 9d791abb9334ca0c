"""Event data model."""

import enum
from datetime import datetime


class EventKind(enum.Enum):
    TAG_REMINDER = "TagReminder"
    RELEASE_CREATED = "ReleaseCreated"
    RELEASE_DEPLOYED = "ReleaseDeployed"
    AWAITING_RELEASE_COMPLETION = "AwaitingReleaseCompletion"
    HOTFIX_PROPAGATED = "HotfixPropagated"
    CONFLICT_DETECTED = "ConflictDetected"
    PROPAGATION_FAILED = "PropagationFailed"


# Payload keys every kind must carry
REQUIRED_FIELDS = {
    EventKind.TAG_REMINDER: ('branch_kind', 'branch_name', 'tag_command_text'),
    EventKind.RELEASE_CREATED: ('from_dev', 'new_release'),
    EventKind.RELEASE_DEPLOYED: ('release_branch', 'tag_name'),
    EventKind.AWAITING_RELEASE_COMPLETION: ('parent_release',),
    EventKind.HOTFIX_PROPAGATED: ('target_dev',),
    EventKind.CONFLICT_DETECTED: ('report',),
    EventKind.PROPAGATION_FAILED: ('target_dev', 'error'),
}


class Event:
    """A structured event for the external messaging collaborator."""

    def __init__(self, kind, payload, run_id=None, sequence=0, emitted_at=None):
        """Initialize an Event.

        Args:
            kind (EventKind): The event kind
            payload (dict): Kind-specific fields
            run_id (str, optional): Pipeline run that produced the event
            sequence (int): Position of the event within the run
            emitted_at (datetime, optional): Emission time, defaults to now

        Raises:
            ValueError: If a required payload field is missing
        """
        missing = [name for name in REQUIRED_FIELDS[kind] if name not in payload]
        if missing:
            raise ValueError(f"{kind.value} event is missing fields: {', '.join(missing)}")
        self.kind = kind
        self.payload = dict(payload)
        self.run_id = run_id
        self.sequence = sequence
        self.emitted_at = emitted_at or datetime.now()

    @property
    def next_steps(self):
        return self.payload.get('next_steps')

    def to_dict(self):
        """Convert to a JSON-serializable dictionary."""
        payload = {}
        for key, value in self.payload.items():
            payload[key] = value.to_dict() if hasattr(value, 'to_dict') else value
        return {
            'kind': self.kind.value,
            'run_id': self.run_id,
            'sequence': self.sequence,
            'emitted_at': self.emitted_at.isoformat(),
            'payload': payload
        }

    def __repr__(self):
        return f"Event(kind={self.kind.value}, sequence={self.sequence})"
