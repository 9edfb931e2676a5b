"""
Archive catalog - the storage engine's current list of archives.

Nothing is cached: every call to list() asks the engine again.
"""

import re
import logging
from typing import List

from ..exceptions import CatalogUnavailable, StorageError
from .naming import ArchiveName, parse_archive_name


logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r'(\d+)')


def natural_sort_key(name: str):
    """Sort key comparing digit runs numerically and everything else lexically."""
    return [(0, int(part), '') if part.isdigit() else (1, 0, part)
            for part in _DIGITS_RE.split(name)]


class ArchiveCatalog:
    """Fresh view of the archives held by a storage engine."""

    def __init__(self, engine):
        self.engine = engine

    def list(self) -> List[str]:
        """
        Fetch all archive names, naturally sorted.

        Raises:
            CatalogUnavailable: If the engine cannot list archives
        """
        try:
            names = self.engine.list_archives()
        except StorageError as e:
            raise CatalogUnavailable(
                f"Could not list archives: {e.message}",
                details={'output': e.output},
            )
        names = sorted(names, key=natural_sort_key)
        logger.debug(f"Catalog holds {len(names)} archives")
        return names

    def entries(self) -> List[ArchiveName]:
        """Fetch and parse the catalog, skipping names in a foreign format."""
        parsed = []
        for name in self.list():
            entry = parse_archive_name(name)
            if entry is not None:
                parsed.append(entry)
        return parsed
