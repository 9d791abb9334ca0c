"""Branch promotion state machine."""

from datetime import datetime
from branchflow.operations.base import Operation
from branchflow.operations.completion_gate import is_complete, resolve_parent_release, resolve_current_dev_branch
from branchflow.operations.conflict_resolver import ConflictResolver
from branchflow.models.action import (
    ActionResult, ActionStatus, AwaitReleaseCompletion, CreateRelease, MergeToMaster, Noop, PropagateHotfix
)
from branchflow.models.branch import BranchKind, MASTER_BRANCH, classify
from branchflow.models.conflict import Applied, ConflictDetected, Failed
from branchflow.models.event import EventKind
from branchflow.models.tag import hotfix_tag_name, release_tag_name, tag_command_text
from branchflow.utils.errors import GatewayFailure, NoReleaseBranch
from branchflow.utils.gateway import MergeStrategy
from branchflow.utils.notifier import EventNotifier

class PromotionEngine(Operation):
    """Decide and run the next lifecycle action for a branch event.

    d{n} complete        -> create r{n} from d{n}
    r{n} complete        -> tag the release, merge r{n} into master
    hotfix/* complete    -> tag, merge into the parent release, then
                            (independently) cherry-pick into the current dev branch
    master, anything else -> nothing

    Gateway failures are never retried or swallowed: the action halts and the
    result is marked failed. Sub-steps that already succeeded stay in place.
    """

    def __init__(self, config, gateway, notifier=None, debug_logger=None, reporter=None,
                 resolver=None, clock=None):
        """Initialize the engine.

        Args:
            config (Config): Configuration instance
            gateway (VCSGateway): Version-control gateway instance
            notifier (EventNotifier, optional): Event notifier instance
            debug_logger (DebugLogger, optional): Debug logger instance
            reporter (RunReporter, optional): Run reporter instance
            resolver (ConflictResolver, optional): Hotfix-to-dev propagation
            clock (callable, optional): Returns the time used in generated tag names
        """
        notifier = notifier or EventNotifier(run_id=config.run_id, debug_logger=debug_logger, reporter=reporter)
        super().__init__(config, gateway, notifier, debug_logger, reporter)
        self.resolver = resolver or ConflictResolver(config, gateway, notifier, debug_logger, reporter)
        self.clock = clock or datetime.now

    def decide(self, descriptor):
        """Select the action for a gated-open branch.

        Args:
            descriptor (BranchDescriptor): Branch, with the parent release resolved for hotfixes

        Returns:
            CreateRelease, MergeToMaster, PropagateHotfix or Noop
        """
        kind = descriptor.kind
        if kind is BranchKind.DEVELOPMENT:
            return CreateRelease(from_dev=descriptor.raw_name, release_id=descriptor.sequence_id)
        if kind is BranchKind.RELEASE:
            return MergeToMaster(from_branch=descriptor.raw_name)
        if kind is BranchKind.HOTFIX:
            if descriptor.parent_release_name is None:
                raise ValueError(f"Parent release of {descriptor.raw_name} must be resolved before deciding")
            return PropagateHotfix(hotfix_branch=descriptor.raw_name, parent_release=descriptor.parent_release_name)
        if kind is BranchKind.MASTER:
            return Noop(reason="master is the end of the promotion lifecycle")
        if kind is BranchKind.UNKNOWN:
            return Noop(reason=f"{descriptor.raw_name} does not match d<n>, r<n>, hotfix/* or master")
        raise AssertionError(f"Unhandled branch kind: {kind}")

    def execute(self, branch_name, run_id=None):
        """Handle one branch event end to end.

        Args:
            branch_name (str): Branch the event is for
            run_id (str, optional): Distinct id of this pipeline run

        Returns:
            ActionResult: Outcome of the event
        """
        run_id = run_id or self.config.ensure_run_id()
        first_event = len(self.notifier.events)
        descriptor = classify(branch_name)
        self.log(f"Branch event for {branch_name}: {descriptor.kind.value}")

        action = None
        error = None
        try:
            if not descriptor.is_gated:
                action = self.decide(descriptor)
                status = self.run_action(action, run_id)
            else:
                self.gateway.fetch_all()
                if not is_complete(descriptor, self.gateway):
                    status = self._remind(descriptor)
                else:
                    if descriptor.kind is BranchKind.HOTFIX:
                        descriptor = self._resolve_parent(descriptor)
                        self.log(f"  Parent release of {branch_name}: {descriptor.parent_release_name}")
                    action = self.decide(descriptor)
                    status = self.run_action(action, run_id)
        except (GatewayFailure, NoReleaseBranch) as e:
            error = e
            status = ActionStatus.FAILED
            if e.next_steps is None:
                e.next_steps = f"Re-run the event once the cause is fixed: python main.py event --branch {branch_name}"
            self.log(f"ERROR: {branch_name}: {e}")
            if self.reporter:
                self.reporter.add_failure(branch_name, e)

        result = ActionResult(branch_name, status, action, self.notifier.events[first_event:], error)
        if self.reporter:
            self.reporter.add_result(result)
        self.log(f"  Result for {branch_name}: {status}")
        return result

    def run_action(self, action, run_id=None):
        """Carry out a selected action.

        Returns:
            str: ActionStatus of the outcome
        """
        if isinstance(action, CreateRelease):
            return self._create_release(action)
        if isinstance(action, MergeToMaster):
            return self._merge_to_master(action)
        if isinstance(action, PropagateHotfix):
            return self._propagate_hotfix(action, run_id)
        if isinstance(action, AwaitReleaseCompletion):
            self.notifier.emit(
                EventKind.AWAITING_RELEASE_COMPLETION,
                parent_release=action.parent_release,
                next_steps=tag_command_text(action.parent_release, self.gateway.remote)
            )
            return ActionStatus.AWAITING
        if isinstance(action, Noop):
            self.log(f"  No action: {action.reason}")
            return ActionStatus.NOOP
        raise AssertionError(f"Unhandled action: {action!r}")

    def _remind(self, descriptor):
        command = tag_command_text(descriptor.raw_name, self.gateway.remote)
        self.log(f"  {descriptor.raw_name} is not marked complete")
        self.notifier.emit(
            EventKind.TAG_REMINDER,
            branch_kind=descriptor.kind.value,
            branch_name=descriptor.raw_name,
            tag_command_text=command
        )
        return ActionStatus.GATE_CLOSED

    def _resolve_parent(self, descriptor):
        try:
            return resolve_parent_release(descriptor, self.gateway)
        except NoReleaseBranch as e:
            remote = self.gateway.remote
            renamed = f"hotfix/r<n>-{descriptor.hotfix_suffix}"
            e.next_steps = (
                f"git fetch {remote} && git push {remote} {remote}/{descriptor.raw_name}:refs/heads/{renamed} && "
                f"{tag_command_text(renamed, remote)}"
            )
            raise

    def _tag_head(self, tag_name, head, message):
        """Create and push tag_name on head unless an earlier attempt already pushed it."""
        if tag_name in self.gateway.list_remote_tags(tag_name):
            self.log(f"  {tag_name} already exists on {self.gateway.remote}")
            return
        self.gateway.tag(tag_name, head, message)
        self.gateway.push(tag_name)

    def _create_release(self, action):
        release = action.release_branch
        remote = self.gateway.remote
        if release in self.gateway.list_remote_branches(release):
            # Never move an existing release line
            return self.run_action(Noop(reason=f"{release} already exists on the remote"))

        try:
            head = self.gateway.current_head_commit(self.gateway.remote_ref(action.from_dev))
            self.gateway.create_branch(release, head)
            self.gateway.push(release)
        except GatewayFailure as e:
            e.next_steps = e.next_steps or (
                f"git fetch {remote} && git push {remote} {remote}/{action.from_dev}:refs/heads/{release}"
            )
            raise
        self.log(f"  ✓ Created {release} from {action.from_dev} at {head[:12]}")

        self.notifier.emit(EventKind.RELEASE_CREATED, from_dev=action.from_dev, new_release=release, commit=head)
        return ActionStatus.COMPLETED

    def _merge_to_master(self, action):
        release = action.from_branch
        remote = self.gateway.remote
        tag_name = release_tag_name(release, self.clock())
        message = f"Release {release} deployed to {MASTER_BRANCH}"

        tagged = False
        try:
            head = self.gateway.current_head_commit(self.gateway.remote_ref(release))
            self._tag_head(tag_name, head, message)
            tagged = True
            self.gateway.merge(head, MASTER_BRANCH, MergeStrategy.NO_FAST_FORWARD)
            self.gateway.push(MASTER_BRANCH)
        except GatewayFailure as e:
            merge_steps = (
                f"git fetch {remote} && git checkout -B {MASTER_BRANCH} {remote}/{MASTER_BRANCH} && "
                f"git merge --no-ff {remote}/{release} && git push {remote} {MASTER_BRANCH}"
            )
            if tagged:
                steps = f"{tag_name} is already on {remote}; {merge_steps}"
            else:
                steps = (f"{merge_steps} && git tag -a {tag_name} {remote}/{release} -m \"{message}\" && "
                         f"git push {remote} {tag_name}")
            e.next_steps = e.next_steps or steps
            raise
        self.log(f"  ✓ Merged {release} ({head[:12]}) into {MASTER_BRANCH}, tagged {tag_name}")

        self.notifier.emit(EventKind.RELEASE_DEPLOYED, release_branch=release, tag_name=tag_name)
        return ActionStatus.COMPLETED

    def _propagate_hotfix(self, action, run_id):
        hotfix = action.hotfix_branch
        parent = action.parent_release
        remote = self.gateway.remote

        # 1. Record what shipped; nothing has been propagated if this fails
        head = self.gateway.current_head_commit(self.gateway.remote_ref(hotfix))
        tag_name = hotfix_tag_name(classify(hotfix).hotfix_suffix, self.clock())
        self._tag_head(tag_name, head, f"Hotfix {hotfix} shipped via {parent}")

        # 2-3. Release line; a failure here must not stop the development line below
        release_error = None
        release_status = None
        try:
            release_status = self._propagate_to_release(hotfix, head, parent)
        except GatewayFailure as e:
            release_error = e
            release_error.next_steps = release_error.next_steps or (
                f"{tag_name} is already on {remote}; git fetch {remote} && "
                f"git checkout -B {parent} {remote}/{parent} && git merge --no-ff {head} && git push {remote} {parent}"
            )
            self.log(f"ERROR: Merging {hotfix} into {parent} failed at {e.operation}: {e.message}")

        # 4. Development line
        dev_status, dev_error = self._propagate_to_dev(head, run_id)

        if release_error:
            if dev_error and self.reporter:
                self.reporter.add_failure(hotfix, dev_error)
            raise release_error
        if dev_error:
            raise dev_error
        if dev_status == ActionStatus.CONFLICT:
            return ActionStatus.CONFLICT
        return release_status

    def _propagate_to_release(self, hotfix, head, parent):
        if self.gateway.is_ancestor(head, parent):
            self.log(f"  {hotfix} is already in {parent}")
        else:
            self.gateway.merge(head, parent, MergeStrategy.NO_FAST_FORWARD)
            self.gateway.push(parent)
            self.log(f"  ✓ Merged {hotfix} into {parent}")

        if is_complete(classify(parent), self.gateway):
            return self.run_action(MergeToMaster(from_branch=parent))
        return self.run_action(AwaitReleaseCompletion(parent_release=parent))

    def _propagate_to_dev(self, head, run_id):
        """Cherry-pick the hotfix into the current development branch.

        Returns:
            tuple: (ActionStatus, error or None)
        """
        dev = resolve_current_dev_branch(self.gateway)
        if dev is None:
            self.log("  No development branch on the remote; skipping development propagation")
            return ActionStatus.COMPLETED, None

        result = self.resolver.execute(head, dev.raw_name, run_id)

        if isinstance(result, Applied):
            self.notifier.emit(EventKind.HOTFIX_PROPAGATED, target_dev=dev.raw_name, commit=result.commit)
            return ActionStatus.COMPLETED, None
        if isinstance(result, ConflictDetected):
            self.notifier.emit(
                EventKind.CONFLICT_DETECTED,
                report=result.report,
                next_steps=result.report.next_steps(self.gateway.remote)
            )
            return ActionStatus.CONFLICT, None
        if isinstance(result, Failed):
            self.notifier.emit(
                EventKind.PROPAGATION_FAILED,
                target_dev=dev.raw_name,
                error=str(result.error),
                next_steps=(f"git fetch {self.gateway.remote} && git checkout {dev.raw_name} && "
                            f"git cherry-pick {head} && git push {self.gateway.remote} {dev.raw_name}")
            )
            return ActionStatus.FAILED, result.error
        raise AssertionError(f"Unhandled propagation result: {result!r}")
