"""
Archive identifier format.

    <host>-<tier>-<YYYY>-<MM>-<DD>_<HH>:<MM>:<SS>-<targetname>

The host may contain hyphens, so parsing anchors on the tier keyword and the
fixed timestamp shape. The zero-padded timestamp makes identifiers of one
host and tier sort chronologically.
"""

import re
from datetime import datetime, timezone
from dataclasses import dataclass
from enum import Enum
from typing import Optional


TIMESTAMP_FORMAT = '%Y-%m-%d_%H:%M:%S'


class Tier(str, Enum):
    """Retention tier of a backup generation."""

    YEARLY = 'yearly'
    MONTHLY = 'monthly'
    DAILY = 'daily'


ARCHIVE_NAME_RE = re.compile(
    r'^(?P<host>.+)-(?P<tier>yearly|monthly|daily)-'
    r'(?P<timestamp>\d{4}-\d{2}-\d{2}_\d{2}:\d{2}:\d{2})-'
    r'(?P<target>.*)$'
)


@dataclass(frozen=True)
class ArchiveName:
    """Parsed archive identifier."""

    host: str
    tier: Tier
    timestamp: str
    target: str

    @property
    def prefix(self) -> str:
        return make_prefix(self.host, self.tier, self.timestamp)

    def __str__(self) -> str:
        return f"{self.prefix}-{self.target}"


def to_utc(moment: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC."""
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def format_timestamp(moment: datetime) -> str:
    """Render a UTC datetime in archive timestamp form."""
    return moment.strftime(TIMESTAMP_FORMAT)


def sanitize_target(target: str) -> str:
    """Turn a target path into an archive target name by dropping every '/'."""
    return target.replace('/', '')


def make_prefix(host: str, tier: Tier, timestamp: str) -> str:
    return f"{host}-{Tier(tier).value}-{timestamp}"


def make_archive_name(host: str, tier: Tier, timestamp: str, target: str) -> str:
    """Build the full identifier for one target of a generation."""
    return f"{make_prefix(host, tier, timestamp)}-{sanitize_target(target)}"


def parse_archive_name(name: str) -> Optional[ArchiveName]:
    """
    Parse an identifier.

    Returns:
        ArchiveName, or None if the name does not follow the format
    """
    match = ARCHIVE_NAME_RE.match(name)
    if not match:
        return None
    return ArchiveName(
        host=match.group('host'),
        tier=Tier(match.group('tier')),
        timestamp=match.group('timestamp'),
        target=match.group('target'),
    )
