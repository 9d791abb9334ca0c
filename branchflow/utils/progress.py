"""Console progress for promotion runs."""

import sys
from collections import Counter
from tqdm import tqdm

class SweepProgress:
    """Progress bar over the branches of a sweep with running outcome counts."""

    def __init__(self, disable=False):
        """Initialize the sweep progress display.

        Args:
            disable (bool): Suppress the bar (non-interactive runs)
        """
        self.disable = disable
        self.bar = None
        self.counts = Counter()

    def start(self, total):
        self.finish()
        self.counts = Counter()
        self.bar = tqdm(
            total=total,
            desc="Promoting branches",
            unit='branch',
            ncols=100,
            file=sys.stdout,
            disable=self.disable
        )

    def advance(self, result=None):
        """Count one branch.

        Args:
            result (ActionResult, optional): Outcome; None when the branch was skipped
        """
        self.counts[result.status if result is not None else 'skipped'] += 1
        if self.bar:
            self.bar.update(1)
            self.bar.set_postfix(**self.counts)

    def finish(self):
        if self.bar:
            self.bar.close()
            self.bar = None


class StageTracker:
    """Print a banner when a stage starts and its outcome counts when it ends."""

    def __init__(self):
        self.current = None

    def start_stage(self, stage_name):
        print(f"\n{'='*80}")
        print(f"Stage: {stage_name}")
        print(f"{'='*80}")
        self.current = stage_name

    def end_stage(self, results, events_emitted):
        """Print outcome counts for the current stage.

        Args:
            results (list): ActionResult per handled branch
            events_emitted (int): Events emitted during the stage
        """
        print(f"\n{self.current} completed:")
        print(f"  - branches handled: {len(results)}")
        for status, count in sorted(Counter(r.status for r in results).items()):
            print(f"  - {status}: {count}")
        print(f"  - events emitted: {events_emitted}")
