"""
Backup executor - creates one archive per configured target.

Workflow:
1. For each target, in order: build the archive name and ask the engine to
   create it, rooted at '/' with the target as the relative include path
2. Record a TargetResult per target; a failure never stops the loop
3. Refresh the catalog so later phases see the new archives
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from ..config import RotatorConfig
from ..exceptions import CatalogUnavailable, StorageError
from .catalog import ArchiveCatalog
from .naming import Tier, make_archive_name, make_prefix


logger = logging.getLogger(__name__)

FILESYSTEM_ROOT = '/'


@dataclass
class TargetResult:
    """Outcome of backing up one target."""

    target: str
    archive: str
    success: bool
    output: str = ''


@dataclass
class BackupRun:
    """Results of one backup phase."""

    tier: Tier
    timestamp: str
    prefix: str
    results: List[TargetResult] = field(default_factory=list)
    catalog: Optional[List[str]] = None
    catalog_error: Optional[CatalogUnavailable] = None

    @property
    def failed(self) -> bool:
        return any(not result.success for result in self.results)

    @property
    def failures(self) -> List[TargetResult]:
        return [result for result in self.results if not result.success]

    @property
    def archives(self) -> List[str]:
        return [result.archive for result in self.results if result.success]


class BackupExecutor:
    """
    Runs the backup phase of a rotation.
    """

    def __init__(self, config: RotatorConfig, engine):
        """
        Initialize backup executor.

        Args:
            config: Rotation configuration
            engine: Storage engine client
        """
        self.config = config
        self.engine = engine
        self.catalog = ArchiveCatalog(engine)
        self.logs = []

    def run(self, targets: Sequence[str], tier: Tier, timestamp: str) -> BackupRun:
        """
        Back up every target under one generation prefix.

        Args:
            targets: Absolute paths, in configured order
            tier: Tier of this generation
            timestamp: Generation timestamp (archive format)

        Returns:
            BackupRun with a result per target and the refreshed catalog.
            A failed refresh is kept in catalog_error.
        """
        host = self.config.hostname
        backup = BackupRun(
            tier=tier,
            timestamp=timestamp,
            prefix=make_prefix(host, tier, timestamp),
        )

        self._log(f"Starting {tier.value} backup {backup.prefix} ({len(targets)} targets)")

        for target in targets:
            backup.results.append(self._backup_target(target, host, tier, timestamp))

        if backup.failed:
            self._log(
                f"Backup finished with {len(backup.failures)} of {len(targets)} targets failed",
                level=logging.ERROR,
            )
        else:
            self._log(f"Backup finished: {len(targets)} archives created")

        try:
            backup.catalog = self.catalog.list()
        except CatalogUnavailable as e:
            self._log(f"Catalog refresh after backup failed: {e.message}", level=logging.ERROR)
            backup.catalog_error = e
        return backup

    def _backup_target(self, target: str, host: str, tier: Tier, timestamp: str) -> TargetResult:
        archive = make_archive_name(host, tier, timestamp, target)
        include = target.lstrip('/')

        self._log(f"Creating archive {archive} from {target}")
        try:
            result = self.engine.create_archive(
                archive,
                FILESYSTEM_ROOT,
                include,
                self.config.extra_backup_options,
            )
        except StorageError as e:
            self._log(f"Backup of {target} failed: {e.message}", level=logging.ERROR)
            if e.output:
                logger.error(e.output.rstrip())
            return TargetResult(target=target, archive=archive, success=False, output=e.output)

        if result.output:
            logger.debug(result.output.rstrip())
        self._log(f"Archive created: {archive}")
        return TargetResult(target=target, archive=archive, success=True, output=result.output)

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Logging level for the module logger
        """
        timestamp = datetime.utcnow().strftime('%Y-%m-%d %H:%M:%S UTC')
        self.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)
