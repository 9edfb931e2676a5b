"""
Pre/post backup hook invocation.

A hook is an executable run synchronously with no arguments. Run details are
passed through the environment:

    ROTATOR_PHASE   pre or post
    ROTATOR_HOST    configured hostname
    ROTATOR_TIER    tier of the current generation
    ROTATOR_PREFIX  archive prefix of the current generation
"""

import os
import logging
import subprocess
from typing import Dict, Optional

from .exceptions import HookFailure


logger = logging.getLogger(__name__)


def hook_is_runnable(path: str) -> bool:
    """Check that a hook exists as a regular file and is executable."""
    return os.path.isfile(path) and os.access(path, os.X_OK)


def run_hook(path: Optional[str], phase: str, env: Optional[Dict[str, str]] = None) -> bool:
    """
    Run a configured hook.

    Args:
        path: Hook path, or None if not configured
        phase: 'pre' or 'post'
        env: Extra environment variables for the hook

    Returns:
        True if the hook ran and succeeded, False if it was skipped

    Raises:
        HookFailure: If the hook exits non-zero or cannot be started
    """
    if not path:
        return False

    if not hook_is_runnable(path):
        logger.warning(f"{phase}-backup hook {path} is missing or not executable, skipping")
        return False

    hook_env = dict(os.environ)
    hook_env['ROTATOR_PHASE'] = phase
    hook_env.update(env or {})

    logger.info(f"Running {phase}-backup hook {path}")
    try:
        proc = subprocess.run(
            [path],
            env=hook_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            encoding='utf-8',
            errors='replace',
        )
    except OSError as e:
        raise HookFailure(f"{phase}-backup hook {path} could not be started: {e}")

    if proc.stdout:
        logger.debug(proc.stdout.rstrip())

    if proc.returncode != 0:
        raise HookFailure(
            f"{phase}-backup hook {path} exited with status {proc.returncode}",
            details={'returncode': proc.returncode, 'output': proc.stdout or ''},
        )

    return True
