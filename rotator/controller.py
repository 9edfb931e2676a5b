"""
Run controller - sequences one rotation run.

    init -> locked -> listed -> classified -> (pre_hook) -> backed_up
         -> relisted -> pruned | prune_skipped -> (post_hook) -> unlocked -> done

Any fatal condition ends in failed. The lock is held from locked to unlocked,
and pruning only happens when every target was backed up.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .config import RotatorConfig
from .exceptions import (
    CatalogUnavailable,
    HookFailure,
    LockContention,
    RotatorError,
    TargetBackupFailure,
)
from .hooks import run_hook
from .lock import LockManager
from .backup.catalog import ArchiveCatalog
from .backup.classifier import classify_tier
from .backup.engine import BorgEngine
from .backup.executor import BackupExecutor, TargetResult
from .backup.naming import Tier, format_timestamp, make_archive_name, make_prefix, to_utc
from .backup.retention import RetentionManager, RetentionPolicy, plan_prune


logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class RunState(str, Enum):
    """States of a rotation run."""

    INIT = 'init'
    LOCKED = 'locked'
    LISTED = 'listed'
    CLASSIFIED = 'classified'
    PRE_HOOK = 'pre_hook'
    BACKED_UP = 'backed_up'
    RELISTED = 'relisted'
    PRUNED = 'pruned'
    PRUNE_SKIPPED = 'prune_skipped'
    POST_HOOK = 'post_hook'
    UNLOCKED = 'unlocked'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class RunOutcome:
    """Everything known about a finished run."""

    host: str
    state: RunState = RunState.INIT
    transitions: List[RunState] = field(default_factory=lambda: [RunState.INIT])
    tier: Optional[Tier] = None
    prefix: Optional[str] = None
    results: List[TargetResult] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    fatal: Optional[RotatorError] = None
    diagnostics: List[str] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def exit_code(self) -> int:
        return EXIT_FAILURE if self.fatal is not None else EXIT_SUCCESS

    @property
    def succeeded(self) -> bool:
        return self.fatal is None

    def to_dict(self) -> dict:
        return {
            'host': self.host,
            'state': self.state.value,
            'transitions': [state.value for state in self.transitions],
            'tier': self.tier.value if self.tier else None,
            'prefix': self.prefix,
            'targets': [
                {'target': r.target, 'archive': r.archive, 'success': r.success}
                for r in self.results
            ],
            'deleted': list(self.deleted),
            'error': str(self.fatal) if self.fatal else None,
            'diagnostics': list(self.diagnostics),
            'exit_code': self.exit_code,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class RunController:
    """
    Orchestrates lock, catalog, classification, backup, pruning and hooks.
    """

    def __init__(self, config: RotatorConfig, engine=None, lock: LockManager = None,
                 policy: RetentionPolicy = RetentionPolicy()):
        """
        Initialize run controller.

        Args:
            config: Rotation configuration
            engine: Storage engine client (default: BorgEngine from config)
            lock: Lock manager (default: LockManager on config.lockfile)
            policy: Retention counts
        """
        self.config = config
        self.engine = engine or BorgEngine(config.backup_tool_path, config.repository)
        self.lock = lock or LockManager(config.lockfile)
        self.policy = policy
        self.catalog = ArchiveCatalog(self.engine)
        self.outcome = None

    def run(self, now: datetime = None) -> RunOutcome:
        """
        Execute one rotation.

        Args:
            now: UTC time of the run (default: current UTC time)

        Returns:
            RunOutcome; exit_code is 0 on full success, 1 otherwise
        """
        now = to_utc(now) if now else datetime.utcnow()
        self.outcome = outcome = RunOutcome(host=self.config.hostname, started_at=now)

        try:
            with self.lock:
                self._advance(RunState.LOCKED)
                self._rotate(now)
            self._advance(RunState.UNLOCKED)
        except LockContention as e:
            self._fail(e)
        except CatalogUnavailable as e:
            self._advance(RunState.UNLOCKED)
            self._fail(e)
        except OSError as e:
            self._fail(RotatorError(f"Run aborted: {e}"))

        if outcome.fatal is None and outcome.state == RunState.UNLOCKED:
            self._advance(RunState.DONE)
            self._log("Rotation completed successfully")
        elif outcome.state != RunState.FAILED:
            self._fail(outcome.fatal)

        outcome.completed_at = datetime.utcnow()
        return outcome

    def _rotate(self, now: datetime):
        outcome = self.outcome
        host = self.config.hostname

        catalog = self.catalog.list()
        self._advance(RunState.LISTED)

        outcome.tier = tier = classify_tier(catalog, host, now.year, now.month)
        timestamp = format_timestamp(now)
        outcome.prefix = make_prefix(host, tier, timestamp)
        self._advance(RunState.CLASSIFIED)
        self._log(f"Next generation: {outcome.prefix} (tier {tier.value})")

        hook_env = {
            'ROTATOR_HOST': host,
            'ROTATOR_TIER': tier.value,
            'ROTATOR_PREFIX': outcome.prefix,
        }

        if self._run_hook(self.config.pre_backup_script, 'pre', hook_env):
            self._advance(RunState.PRE_HOOK)

        executor = BackupExecutor(self.config, self.engine)
        backup = executor.run(self.config.backup_targets, tier, timestamp)
        outcome.results = backup.results
        outcome.logs.extend(executor.logs)
        self._advance(RunState.BACKED_UP)

        if backup.catalog_error is not None:
            raise backup.catalog_error
        self._advance(RunState.RELISTED)

        if backup.failed:
            failed_targets = [result.target for result in backup.failures]
            outcome.fatal = TargetBackupFailure(
                f"{len(failed_targets)} backup target(s) failed; pruning and post-backup hook skipped",
                details={'targets': failed_targets},
            )
            self._advance(RunState.PRUNE_SKIPPED)
            self._log(outcome.fatal.message, level=logging.ERROR)
            return

        retention = RetentionManager(self.engine, self.policy)
        pruned = retention.prune(backup.catalog, host)
        outcome.deleted = pruned.deleted
        outcome.logs.extend(retention.logs)
        outcome.diagnostics.extend(error.message for error in pruned.errors)
        self._advance(RunState.PRUNED)

        if self._run_hook(self.config.post_backup_script, 'post', hook_env):
            self._advance(RunState.POST_HOOK)

    def _run_hook(self, path: Optional[str], phase: str, env: dict) -> bool:
        """Run a hook; True if it was invoked, whether or not it succeeded."""
        try:
            return run_hook(path, phase, env)
        except HookFailure as e:
            self.outcome.diagnostics.append(e.message)
            self._log(e.message, level=logging.ERROR)
            output = e.details.get('output')
            if output:
                logger.error(output.rstrip())
            return True

    def _advance(self, state: RunState):
        self.outcome.state = state
        self.outcome.transitions.append(state)
        logger.debug(f"Run state: {state.value}")

    def _fail(self, error: RotatorError):
        self.outcome.fatal = error
        self._advance(RunState.FAILED)
        self._log(f"Rotation failed: {error.message}", level=logging.ERROR)

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Logging level for the module logger
        """
        timestamp = datetime.utcnow().strftime('%Y-%m-%d %H:%M:%S UTC')
        self.outcome.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)


def execute_rotation(config: RotatorConfig, engine=None) -> RunOutcome:
    """
    Run one rotation with the given configuration.

    Returns:
        RunOutcome of the run
    """
    controller = RunController(config, engine=engine)
    return controller.run()


def plan_rotation(config: RotatorConfig, engine=None, now: datetime = None,
                  policy: RetentionPolicy = RetentionPolicy()) -> dict:
    """
    Describe what the next run would do, without locking or writing anything.

    The prune plan assumes every target of the next generation succeeds.

    Returns:
        Dict with tier, prefix, planned archives and archives to delete

    Raises:
        CatalogUnavailable: If the catalog cannot be listed
    """
    engine = engine or BorgEngine(config.backup_tool_path, config.repository)
    now = to_utc(now) if now else datetime.utcnow()
    host = config.hostname

    catalog = ArchiveCatalog(engine).list()
    tier = classify_tier(catalog, host, now.year, now.month)
    timestamp = format_timestamp(now)
    planned = [make_archive_name(host, tier, timestamp, target) for target in config.backup_targets]

    return {
        'host': host,
        'tier': tier.value,
        'prefix': make_prefix(host, tier, timestamp),
        'catalog_size': len(catalog),
        'archives': planned,
        'to_delete': plan_prune(catalog + planned, host, policy),
    }
