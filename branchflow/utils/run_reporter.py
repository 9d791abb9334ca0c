"""Run summary reporting."""

from datetime import datetime
from branchflow.models.action import ActionStatus
from branchflow.models.event import EventKind

class RunReporter:
    """Track events, outcomes and failures of a run and write the run report."""

    def __init__(self, run_id=None):
        """Initialize the run reporter.

        Args:
            run_id (str, optional): Pipeline run id shown in the report
        """
        self.run_id = run_id
        self.events = []
        self.results = []
        self.failures = []
        self.delivery_warnings = []

        self.stats = {
            'branches_processed': 0,
            'actions_completed': 0,
            'gates_closed': 0,
            'awaiting': 0,
            'noops': 0,
            'conflicts': 0,
            'failures': 0,
            'execution_time': '0h 0m 0s'
        }

    def add_event(self, event):
        """Record an emitted event."""
        self.events.append(event)

    def add_result(self, result):
        """Record the outcome of one branch event."""
        self.results.append(result)
        self.stats['branches_processed'] += 1
        key = {
            ActionStatus.COMPLETED: 'actions_completed',
            ActionStatus.GATE_CLOSED: 'gates_closed',
            ActionStatus.AWAITING: 'awaiting',
            ActionStatus.NOOP: 'noops',
            ActionStatus.CONFLICT: 'conflicts',
            ActionStatus.FAILED: 'failures',
        }[result.status]
        self.stats[key] += 1

    def add_failure(self, branch_name, error):
        """Record an error that halted an action."""
        self.failures.append({
            'branch': branch_name,
            'operation': getattr(error, 'operation', type(error).__name__),
            'error': str(error),
            'next_steps': getattr(error, 'next_steps', None)
        })

    def add_delivery_warning(self, event_kind, message):
        """Record a notification that could not be delivered."""
        self.delivery_warnings.append({
            'event': event_kind,
            'message': message
        })

    def update_stats(self, **kwargs):
        """Update summary statistics."""
        self.stats.update(kwargs)

    @property
    def has_failures(self):
        return bool(self.failures)

    def next_steps(self):
        """Copy-pasteable instructions collected from emitted events and failures.

        Returns:
            list: (kind, instruction) pairs, events in emission order, then failures
        """
        steps = []
        for event in self.events:
            if event.kind is EventKind.TAG_REMINDER:
                steps.append((event.kind.value, event.payload['tag_command_text']))
            elif event.next_steps:
                steps.append((event.kind.value, event.next_steps))
        for failure in self.failures:
            if failure['next_steps']:
                steps.append(('Failure', f"{failure['branch']}: {failure['next_steps']}"))
        return steps

    def render(self):
        """Build the report text.

        Returns:
            str: Report content
        """
        lines = []
        lines.append("=" * 80)
        lines.append("Branch Promotion - Run Report")
        lines.append("=" * 80)
        lines.append(f"Run ID: {self.run_id}")
        lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("")

        # === SUMMARY STATISTICS ===
        lines.append("=" * 80)
        lines.append("SUMMARY STATISTICS")
        lines.append("=" * 80)
        lines.append(f"Branches Processed:    {self.stats['branches_processed']:,}")
        lines.append(f"Actions Completed:     {self.stats['actions_completed']:,}")
        lines.append(f"Awaiting Completion:   {self.stats['gates_closed'] + self.stats['awaiting']:,}")
        lines.append(f"No Action Needed:      {self.stats['noops']:,}")
        lines.append(f"Conflicts:             {self.stats['conflicts']:,}")
        lines.append(f"Failures:              {self.stats['failures']:,}")
        lines.append(f"Execution Time:        {self.stats['execution_time']}")
        lines.append("")

        # === OUTCOMES ===
        if self.results:
            lines.append("=" * 80)
            lines.append(f"OUTCOMES ({len(self.results)})")
            lines.append("=" * 80)
            for result in self.results:
                action = type(result.action).__name__ if result.action is not None else '-'
                lines.append(f"  {result.branch_name:<40} {result.status:<12} {action}")
            lines.append("")

        # === EVENTS ===
        if self.events:
            lines.append("=" * 80)
            lines.append(f"EVENTS ({len(self.events)})")
            lines.append("=" * 80)
            for event in self.events:
                lines.append(f"{event.sequence}. {event.kind.value}: {event.to_dict()['payload']}")
            lines.append("")

        # === NEXT STEPS ===
        steps = self.next_steps()
        if steps:
            lines.append("=" * 80)
            lines.append(f"NEXT STEPS ({len(steps)})")
            lines.append("=" * 80)
            for idx, (kind, instruction) in enumerate(steps, 1):
                lines.append(f"{idx}. [{kind}] {instruction}")
            lines.append("")

        # === FAILURES ===
        if self.failures:
            lines.append("=" * 80)
            lines.append(f"FAILURES ({len(self.failures)})")
            lines.append("=" * 80)
            lines.append("")
            for idx, failure in enumerate(self.failures, 1):
                lines.append(f"{idx}. Branch: {failure['branch']}")
                lines.append(f"   Operation: {failure['operation']}")
                lines.append(f"   Error: {failure['error']}")
                if failure['next_steps']:
                    lines.append(f"   Next steps: {failure['next_steps']}")
                lines.append("")

        # === DELIVERY WARNINGS ===
        if self.delivery_warnings:
            lines.append("=" * 80)
            lines.append(f"NOTIFICATION DELIVERY WARNINGS ({len(self.delivery_warnings)})")
            lines.append("=" * 80)
            for warning in self.delivery_warnings:
                lines.append(f"  - {warning['event']}: {warning['message']}")
            lines.append("")

        if not (self.failures or self.delivery_warnings):
            lines.append("=" * 80)
            lines.append("NO FAILURES")
            lines.append("=" * 80)
            lines.append("")

        lines.append("=" * 80)
        lines.append("END OF REPORT")
        lines.append("=" * 80)
        return '\n'.join(lines)

    def generate_report(self, report_path):
        """Write the run report.

        Args:
            report_path (str): Where to write the report

        Returns:
            str: Path to the generated report file
        """
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(self.render())
        return report_path
