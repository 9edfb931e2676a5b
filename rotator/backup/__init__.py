"""
Backup module for backup-rotator.

This module handles the rotation core:
- Archive naming and parsing
- Storage engine client
- Catalog listing
- Tier classification
- Per-target backup execution
- Retention pruning
"""

from .naming import Tier, ArchiveName, make_archive_name, parse_archive_name
from .engine import BorgEngine, CommandResult
from .catalog import ArchiveCatalog
from .classifier import classify_tier
from .executor import BackupExecutor, BackupRun, TargetResult
from .retention import RetentionManager, RetentionPolicy, PruneResult, plan_prune

__all__ = [
    'Tier',
    'ArchiveName',
    'make_archive_name',
    'parse_archive_name',
    'BorgEngine',
    'CommandResult',
    'ArchiveCatalog',
    'classify_tier',
    'BackupExecutor',
    'BackupRun',
    'TargetResult',
    'RetentionManager',
    'RetentionPolicy',
    'PruneResult',
    'plan_prune'
]
