"""
Storage engine client.

BorgEngine drives the external backup tool through its CLI. Only this module
knows about command lines and text output; callers get lists of names and
CommandResult values, or a StorageError.

Supports:
- list_archives: every archive name in the repository
- create_archive: one archive of a path relative to a root directory
- delete_archive: remove one archive by name
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..exceptions import StorageError


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a successful engine command."""

    args: List[str]
    returncode: int
    output: str


class BorgEngine:
    """
    Handler for a BorgBackup repository.

    Archives are addressed as <repository>::<name>. When no repository is
    given, borg resolves it from BORG_REPO and the addresses become ::<name>.
    """

    def __init__(self, tool_path: str = 'borg', repository: Optional[str] = None):
        """
        Initialize the engine client.

        Args:
            tool_path: Path or name of the borg binary
            repository: Repository location (default: taken from BORG_REPO)
        """
        self.tool_path = tool_path
        self.repository = repository or ''

    def _archive_ref(self, name: str) -> str:
        return f"{self.repository}::{name}"

    def _run(self, args: List[str], cwd: Optional[str] = None) -> CommandResult:
        """
        Run the backup tool and capture combined output.

        Raises:
            StorageError: If the tool is missing or exits non-zero
        """
        command = [self.tool_path] + args
        logger.debug(f"Running: {' '.join(command)}")

        try:
            proc = subprocess.run(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding='utf-8',
                errors='replace',
            )
        except FileNotFoundError as e:
            raise StorageError(f"Backup tool not found: {self.tool_path}", output=str(e))
        except OSError as e:
            raise StorageError(f"Failed to run {self.tool_path}: {e}", output=str(e))

        output = proc.stdout or ''
        if proc.returncode != 0:
            raise StorageError(
                f"{self.tool_path} {args[0]} exited with status {proc.returncode}",
                output=output,
                details={'returncode': proc.returncode},
            )

        return CommandResult(args=command, returncode=proc.returncode, output=output)

    def list_archives(self) -> List[str]:
        """
        List archive names in the repository.

        Returns:
            Archive names in the order reported by the tool

        Raises:
            StorageError: If listing fails
        """
        args = ['list', '--short']
        if self.repository:
            args.append(self.repository)
        result = self._run(args)
        return [line.strip() for line in result.output.splitlines() if line.strip()]

    def create_archive(self, name: str, root: str, include: str,
                       options: Sequence[str] = ()) -> CommandResult:
        """
        Create one archive.

        Args:
            name: Archive name
            root: Directory the tool runs from
            include: Path to archive, relative to root
            options: Extra flags passed through unchanged

        Raises:
            StorageError: If creation fails
        """
        args = ['create'] + list(options) + [self._archive_ref(name), include]
        return self._run(args, cwd=root)

    def delete_archive(self, name: str) -> CommandResult:
        """
        Delete one archive.

        Raises:
            StorageError: If deletion fails
        """
        return self._run(['delete', self._archive_ref(name)])
