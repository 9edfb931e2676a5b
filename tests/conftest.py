"""
Shared pytest fixtures for backup-rotator tests.

This module provides fixtures for:
- Rotation configuration and INI config files
- An in-memory storage engine standing in for borg
- Flask app and test client
- Catalog builders for tiered generations
- Logger and scheduler state cleanup
"""

import logging
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from rotator import create_app
from rotator import scheduler as scheduler_module
from rotator.config import RotatorConfig
from rotator.exceptions import StorageError
from rotator.backup.engine import CommandResult
from rotator.backup.naming import Tier, make_archive_name


class FakeEngine:
    """
    In-memory storage engine.

    Records every call; failures are injected through fail_targets,
    fail_deletes and fail_list.
    """

    def __init__(self, archives=None):
        self.archives = list(archives or [])
        self.calls = []
        self.fail_targets = set()
        self.fail_deletes = set()
        self.fail_list = False
        self.fail_list_after = None

    def list_archives(self):
        self.calls.append(('list',))
        list_calls = sum(1 for call in self.calls if call[0] == 'list')
        if self.fail_list or (self.fail_list_after is not None and list_calls > self.fail_list_after):
            raise StorageError("borg list exited with status 2", output="Repository does not exist.")
        return list(self.archives)

    def create_archive(self, name, root, include, options=()):
        self.calls.append(('create', name, root, include, tuple(options)))
        if '/' + include in self.fail_targets:
            raise StorageError("borg create exited with status 2", output=f"{include}: permission denied")
        self.archives.append(name)
        return CommandResult(args=['borg', 'create', name], returncode=0, output='')

    def delete_archive(self, name):
        self.calls.append(('delete', name))
        if name in self.fail_deletes:
            raise StorageError("borg delete exited with status 2", output="lock timeout")
        self.archives.remove(name)
        return CommandResult(args=['borg', 'delete', name], returncode=0, output='')

    def operations(self, kind):
        return [call for call in self.calls if call[0] == kind]


def generation(host, tier, timestamp, targets=('/etc', '/var/www')):
    """Archive names of one generation."""
    return [make_archive_name(host, Tier(tier), timestamp, target) for target in targets]


def monthly_generations(host, count, year=2023, targets=('/etc', '/var/www')):
    """`count` consecutive monthly generations starting January of `year`."""
    names = []
    for i in range(count):
        y, m = year + i // 12, i % 12 + 1
        names.extend(generation(host, 'monthly', f"{y:04d}-{m:02d}-01_03:00:00", targets))
    return names


def daily_generations(host, count, start_day=1, year=2024, month=1, targets=('/etc', '/var/www')):
    """`count` daily generations, one per day (rolling into later months)."""
    from datetime import date, timedelta

    names = []
    first = date(year, month, start_day)
    for i in range(count):
        day = first + timedelta(days=i)
        names.extend(generation(host, 'daily', f"{day.isoformat()}_03:00:00", targets))
    return names


@pytest.fixture
def engine():
    """Empty in-memory storage engine."""
    return FakeEngine()


@pytest.fixture
def make_engine():
    """Factory for an in-memory storage engine holding the given archives."""
    return FakeEngine


@pytest.fixture
def archives():
    """Builders for archive names of tiered generations."""
    return SimpleNamespace(
        generation=generation,
        monthly=monthly_generations,
        daily=daily_generations,
    )


@pytest.fixture
def rotator_config(tmp_path):
    """
    Rotation config for host web1 backing up /etc and /var/www.

    The lock lives under tmp_path.
    """
    return RotatorConfig(
        backup_targets=('/etc', '/var/www'),
        hostname='web1',
        lockfile=str(tmp_path / 'rotator.lock'),
        extra_backup_options=('--compression', 'lz4'),
    )


@pytest.fixture
def config_file(tmp_path):
    """Write an INI config file and return its path."""
    path = tmp_path / 'backup-rotator.conf'
    path.write_text(
        "[rotator]\n"
        "hostname = web1\n"
        "backuptargets =\n"
        "    /etc\n"
        "    /var/www\n"
        f"lockfile = {tmp_path / 'rotator.lock'}\n"
        "backup-tool-path = /usr/bin/borg\n"
        "extra-backup-options = --compression lz4 --exclude-caches\n"
        "verbose = 1\n"
    )
    return path


@pytest.fixture
def make_hook(tmp_path):
    """Factory creating an executable shell hook that exits with a given status."""
    def _make(name, exit_code=0, executable=True, body=''):
        path = tmp_path / name
        path.write_text(f"#!/bin/sh\n{body}\nexit {exit_code}\n")
        path.chmod(0o755 if executable else 0o644)
        return str(path)
    return _make


@pytest.fixture
def app(rotator_config):
    """Flask app with testing config and no background scheduler."""
    app = create_app('testing', rotator_config=rotator_config)
    yield app


@pytest.fixture
def client(app):
    """Flask test client for making HTTP requests."""
    return app.test_client()


@pytest.fixture
def mock_scheduler():
    """
    Mock APScheduler for testing scheduler functionality.
    """
    with patch('rotator.scheduler.BackgroundScheduler') as mock_sched:
        scheduler_instance = mock_sched.return_value
        scheduler_instance.running = False
        scheduler_instance.state = 0
        scheduler_instance.get_jobs.return_value = []
        yield scheduler_instance


@pytest.fixture(autouse=True)
def reset_global_state():
    """Undo logging configuration and scheduler globals after each test."""
    yield
    package_logger = logging.getLogger('rotator')
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True

    scheduler_module.scheduler = None
    scheduler_module.flask_app = None
    scheduler_module.last_outcome = None
