#!/usr/bin/env python3
"""
GitFlow Branch Promoter

Promotes d<n> -> r<n> -> master on completion tags and propagates hotfixes
into the release and development lines.
"""

import sys
import argparse
import time
from branchflow.utils.config import Config
from branchflow.utils.debug_logger import DebugLogger
from branchflow.utils.errors import PromotionError, RepositoryBusy
from branchflow.utils.file_manager import FileManager
from branchflow.utils.git_gateway import GitGateway
from branchflow.utils.notifier import EventNotifier, WebhookSink
from branchflow.utils.progress import SweepProgress, StageTracker
from branchflow.utils.repo_lock import RepoLock
from branchflow.utils.run_reporter import RunReporter
from branchflow.operations.branch_sweep import BranchSweep
from branchflow.operations.completion_gate import is_complete
from branchflow.operations.promotion_engine import PromotionEngine
from branchflow.models.branch import classify
from branchflow.models.tag import completion_tag_name, tag_command_text

def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='GitFlow Branch Promoter - promote branches on completion tags and propagate hotfixes'
    )
    parser.add_argument('--env-file', default='.env', help='Path to environment file (default: .env)')
    parser.add_argument('--repo-dir', help='Path to the working clone')
    parser.add_argument('--remote', help='Remote name (default: origin)')
    parser.add_argument('--webhook-url', help='Webhook receiving promotion events')
    parser.add_argument('--output-dir', help='Output directory for run log and report')
    parser.add_argument('--debug', action='store_true', help='Enable debug output')

    subparsers = parser.add_subparsers(dest='command', required=True)

    event = subparsers.add_parser('event', help='Handle one branch event')
    event.add_argument('--branch', required=True, help='Branch the event is for')
    event.add_argument('--run-id', help='Distinct id of this pipeline run')
    event.add_argument('--no-wait', action='store_true', help='Fail instead of waiting for the repository lock')

    sweep = subparsers.add_parser('sweep', help='Handle every completed branch on the remote')
    sweep.add_argument('--run-id', help='Distinct id of this pipeline run')
    sweep.add_argument('--no-wait', action='store_true', help='Fail instead of waiting for the repository lock')

    check = subparsers.add_parser('check', help='Show whether a branch carries its completion tag')
    check.add_argument('--branch', required=True, help='Branch to check')

    classify_cmd = subparsers.add_parser('classify', help='Show how a branch name is classified')
    classify_cmd.add_argument('name', help='Branch name')

    return parser.parse_args(argv)

def build_config(args):
    """Load configuration from the env file and apply command line overrides."""
    config = Config.from_env(args.env_file)

    if args.repo_dir:
        config.repo_dir = args.repo_dir
    if args.remote:
        config.remote = args.remote
    if args.webhook_url:
        config.webhook_url = args.webhook_url
    if args.output_dir:
        config.output_directory = args.output_dir
    if args.debug:
        config.debug = args.debug
    if getattr(args, 'run_id', None):
        config.run_id = args.run_id

    return config

def build_gateway(config, debug_logger=None):
    return GitGateway(
        config.repo_dir,
        remote=config.remote,
        timeout=config.git_timeout,
        author_name=config.author_name,
        author_email=config.author_email,
        debug_logger=debug_logger
    )

def run_classify(args):
    descriptor = classify(args.name)
    for key, value in descriptor.to_dict().items():
        print(f"{key}: {value}")
    return 0

def run_check(config, branch_name):
    gateway = build_gateway(config)
    descriptor = classify(branch_name)
    if not descriptor.is_gated:
        action = PromotionEngine(config, gateway).decide(descriptor)
        print(f"- {descriptor.raw_name} takes no completion tag: {action.reason}")
        return 0

    gateway.fetch_all()
    if is_complete(descriptor, gateway):
        print(f"✓ {descriptor.raw_name} is complete")
    else:
        print(f"✗ {descriptor.raw_name} has no {completion_tag_name(descriptor.raw_name)} tag. Run:")
        print(f"  {tag_command_text(descriptor.raw_name, config.remote)}")
    return 0

def run_promotion(args, config):
    """Run an event or sweep command under the repository lock.

    Returns:
        int: Process exit code
    """
    start_time = time.time()
    run_id = config.ensure_run_id()

    file_manager = FileManager(config, config.debug)
    file_manager.setup_directories()
    debug_log_path = file_manager.get_debug_log_path()

    print("="*80)
    print("GitFlow Branch Promoter")
    print("="*80)
    print(f"Repository: {config.repo_dir}")
    print(f"Remote: {config.remote}")
    print(f"Run ID: {run_id}")
    print("="*80)

    with DebugLogger(debug_log_path, console_debug=config.debug) as debug_logger:
        debug_logger.log(f"Repository: {config.repo_dir} (remote {config.remote})")
        debug_logger.log(f"Run ID: {run_id}")

        reporter = RunReporter(run_id)
        sinks = []
        if config.webhook_url:
            sinks.append(WebhookSink(config.webhook_url, config, config.webhook_token, debug_logger))
        notifier = EventNotifier(run_id=run_id, sinks=sinks, debug_logger=debug_logger, reporter=reporter)

        gateway = build_gateway(config, debug_logger)
        engine = PromotionEngine(config, gateway, notifier, debug_logger, reporter)
        stage_tracker = StageTracker()

        try:
            with RepoLock(file_manager.get_lock_path(), blocking=not args.no_wait, debug_logger=debug_logger):
                if args.command == 'event':
                    stage = f"Branch event: {args.branch}"
                    stage_tracker.start_stage(stage)
                    debug_logger.section(stage)
                    results = [engine.execute(args.branch, run_id=run_id)]
                else:
                    stage = "Sweeping remote branches"
                    stage_tracker.start_stage(stage)
                    debug_logger.section(stage)
                    sweep = BranchSweep(config, gateway, notifier, debug_logger, reporter)
                    results = sweep.execute(engine, run_id, SweepProgress(disable=not sys.stdout.isatty()))
        except RepositoryBusy as e:
            print(f"\nError: {e}")
            debug_logger.log(f"FATAL ERROR: {e}")
            return 1
        except PromotionError as e:
            # Raised outside any single branch event, e.g. the sweep's fetch
            print(f"\nError: {e}")
            debug_logger.log(f"FATAL ERROR: {e}")
            reporter.add_failure(args.branch if args.command == 'event' else "sweep", e)
            results = []

        stage_tracker.end_stage(results, len(notifier.events))

        elapsed_time = time.time() - start_time
        hours = int(elapsed_time // 3600)
        minutes = int((elapsed_time % 3600) // 60)
        seconds = int(elapsed_time % 60)
        reporter.update_stats(execution_time=f"{hours}h {minutes}m {seconds}s")
        report_path = reporter.generate_report(file_manager.get_report_path())

        print("\n" + "="*80)
        print("EXECUTION SUMMARY")
        print("="*80)
        for result in results:
            marker = "✗" if not result.succeeded else "✓"
            print(f"{marker} {result.branch_name}: {result.status}")
            if result.error:
                print(f"    {result.error}")
        steps = reporter.next_steps()
        if steps:
            print("\nNext steps:")
            for kind, instruction in steps:
                print(f"  [{kind}] {instruction}")
        print(f"\nOutput:")
        print(f"  - Report File: {report_path}")
        print(f"  - Debug Log: {debug_log_path}")
        print(f"\nExecution time: {hours}h {minutes}m {seconds}s")
        print("="*80)

        return 1 if reporter.has_failures else 0

def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.command == 'classify':
        return run_classify(args)

    config = build_config(args)

    # Validate configuration
    is_valid, error = config.validate()
    if not is_valid:
        print(f"Configuration error: {error}")
        return 1

    try:
        if args.command == 'check':
            return run_check(config, args.branch)
        return run_promotion(args, config)
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 1
    except Exception as e:
        print(f"\nError: {e}")
        if config.debug:
            import traceback
            traceback.print_exc()
        return 1

if __name__ == "__main__":
    sys.exit(main())
