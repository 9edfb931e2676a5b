"""
Tier classification for the next backup generation.

Only the existence of a prefix is consulted, never how many archives carry
it. The first run of a year is yearly, the first run of each later month is
monthly, every other run is daily.
"""

from typing import Iterable

from .naming import Tier


def _has_prefix(catalog: Iterable[str], prefix: str) -> bool:
    return any(name.startswith(prefix) for name in catalog)


def classify_tier(catalog: Iterable[str], host: str, year: int, month: int) -> Tier:
    """
    Decide the tier of the next generation.

    Args:
        catalog: Current archive names
        host: Host the archives belong to
        year: Current UTC year
        month: Current UTC month (1-12)

    Returns:
        Tier.YEARLY, Tier.MONTHLY or Tier.DAILY
    """
    names = list(catalog)

    if not _has_prefix(names, f"{host}-{Tier.YEARLY.value}-{year:04d}-"):
        return Tier.YEARLY

    if not _has_prefix(names, f"{host}-{Tier.MONTHLY.value}-{year:04d}-{month:02d}-"):
        return Tier.MONTHLY

    return Tier.DAILY
