"""
Retention policy enforcement for backup generations.

Yearly generations are kept forever. Monthly and daily generations are
counted per host by distinct prefix; everything beyond the newest N prefixes
of a tier is deleted, one archive at a time, covering every target archive
under a condemned prefix.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List

from ..exceptions import PruneDeletionFailure, StorageError
from .catalog import natural_sort_key
from .naming import Tier, parse_archive_name


logger = logging.getLogger(__name__)

MONTHLY_KEEP = 12
DAILY_KEEP = 31


@dataclass(frozen=True)
class RetentionPolicy:
    """Number of distinct generations kept per pruned tier."""

    monthly: int = MONTHLY_KEEP
    daily: int = DAILY_KEEP

    def keep_count(self, tier: Tier):
        """Return how many generations of a tier to keep, or None for unlimited."""
        if tier == Tier.MONTHLY:
            return self.monthly
        if tier == Tier.DAILY:
            return self.daily
        return None


@dataclass
class PruneResult:
    """Outcome of a prune pass."""

    condemned: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    errors: List[PruneDeletionFailure] = field(default_factory=list)


def condemned_prefixes(catalog: Iterable[str], host: str, policy: RetentionPolicy) -> List[str]:
    """
    Work out which generation prefixes fall outside the policy.

    Returns:
        Condemned prefixes, oldest first
    """
    prefixes: Dict[Tier, set] = {}
    for name in catalog:
        entry = parse_archive_name(name)
        if entry is None or entry.host != host:
            continue
        prefixes.setdefault(entry.tier, set()).add(entry.prefix)

    condemned = []
    for tier in (Tier.MONTHLY, Tier.DAILY):
        keep = policy.keep_count(tier)
        newest_first = sorted(prefixes.get(tier, ()), key=natural_sort_key, reverse=True)
        condemned.extend(reversed(newest_first[keep:]))
    return condemned


def plan_prune(catalog: Iterable[str], host: str, policy: RetentionPolicy = RetentionPolicy()) -> List[str]:
    """
    Compute the exact archives to delete.

    Args:
        catalog: Current archive names (already refreshed)
        host: Host whose generations are pruned
        policy: Retention counts

    Returns:
        Archive names to delete, oldest generation first
    """
    names = sorted(catalog, key=natural_sort_key)
    doomed = set(condemned_prefixes(names, host, policy))
    if not doomed:
        return []

    to_delete = []
    for name in names:
        entry = parse_archive_name(name)
        if entry is not None and entry.prefix in doomed:
            to_delete.append(name)
    return to_delete


class RetentionManager:
    """
    Deletes archives that fall outside the retention policy.

    Deletion is best-effort: a failed delete is recorded and the sweep goes on.
    """

    def __init__(self, engine, policy: RetentionPolicy = RetentionPolicy()):
        """
        Initialize retention manager.

        Args:
            engine: Storage engine client
            policy: Retention counts
        """
        self.engine = engine
        self.policy = policy
        self.logs = []

    def prune(self, catalog: Iterable[str], host: str) -> PruneResult:
        """
        Delete every archive of every condemned generation.

        Args:
            catalog: Archive names from a fresh listing
            host: Host whose generations are pruned

        Returns:
            PruneResult with deleted names and per-archive failures
        """
        result = PruneResult(condemned=plan_prune(catalog, host, self.policy))

        if not result.condemned:
            self._log("Retention: nothing to prune")
            return result

        self._log(f"Retention: {len(result.condemned)} archives to delete")

        for name in result.condemned:
            try:
                self.engine.delete_archive(name)
            except StorageError as e:
                failure = PruneDeletionFailure(
                    f"Failed to delete archive {name}: {e.message}",
                    details={'archive': name, 'output': e.output},
                )
                result.errors.append(failure)
                self._log(failure.message, level=logging.WARNING)
                continue
            result.deleted.append(name)
            self._log(f"Deleted archive: {name}")

        self._log(
            f"Retention complete. Deleted: {len(result.deleted)}, "
            f"Errors: {len(result.errors)}"
        )
        return result

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
